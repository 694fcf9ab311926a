"""
CHIPCASINO - Chip Ledger

Balance bookkeeping for every chip movement. Provides:

  1. Accounts: create / look up users and their chip balance
  2. Guarded settlement: one conditional UPDATE per round, never below zero
  3. Transaction log: one row per balance change (side write)
  4. Game history: one row per finished round (side write)

Balance updates do not commit; the caller commits once the round state and
the balance agree. Side writes run after that commit, and a failing side
write is logged, never allowed to undo a settled payout.

Usage:
    from tools.ledger import Ledger
    ledger = Ledger(db)
    balance = ledger.settle(user_id, stake=100, payout=150)
    db.commit()
    ledger.record_round(user_id, "slots", 100, "win", 50)
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from config.settings import EconomyConfig
from sim_engine.rmg.errors import InsufficientBalanceError, NotFoundError

logger = logging.getLogger("chipcasino.ledger")


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())[:12]


class Ledger:
    def __init__(self, db):
        self.db = db

    # ── Accounts ──

    def create_account(self, username: str, email: Optional[str] = None,
                       chips: Optional[int] = None, is_admin: bool = False,
                       user_id: Optional[str] = None) -> dict:
        """Insert a user with the starting stack and commit."""
        user_id = user_id or new_id()
        chips = EconomyConfig.STARTING_CHIPS if chips is None else chips
        self.db.execute(
            "INSERT INTO users (id, username, email, chip_balance, is_admin, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            [user_id, username, email, chips, 1 if is_admin else 0, utcnow_iso()],
        )
        self.db.commit()
        logger.info(f"Account created: {username} ({user_id}) with {chips} chips")
        return self.get_user(user_id)

    def get_user(self, user_id: str) -> dict:
        row = self.db.execute("SELECT * FROM users WHERE id = ?", [user_id]).fetchone()
        if row is None:
            raise NotFoundError("User not found")
        row["is_admin"] = bool(row.get("is_admin"))
        return row

    def balance(self, user_id: str) -> int:
        row = self.db.execute(
            "SELECT chip_balance FROM users WHERE id = ?", [user_id]).fetchone()
        if row is None:
            raise NotFoundError("User not found")
        return int(row["chip_balance"])

    # ── Guarded balance changes (caller commits) ──

    def settle(self, user_id: str, stake: int, payout: int = 0) -> int:
        """Apply payout - stake in one statement, only if the user holds the stake.

        Returns the new balance. Raises InsufficientBalanceError if the
        stake is not covered, NotFoundError if the user does not exist.
        """
        delta = payout - stake
        self.db.execute(
            "UPDATE users SET chip_balance = chip_balance + ? "
            "WHERE id = ? AND chip_balance >= ?",
            [delta, user_id, stake],
        )
        if self.db.rowcount != 1:
            self.balance(user_id)   # raises NotFoundError for unknown users
            raise InsufficientBalanceError()
        return self.balance(user_id)

    def debit(self, user_id: str, amount: int) -> int:
        return self.settle(user_id, stake=amount, payout=0)

    def credit(self, user_id: str, amount: int) -> int:
        return self.settle(user_id, stake=0, payout=amount)

    def adjust(self, user_id: str, delta: int) -> int:
        """Signed change that may not push the balance below zero."""
        if delta >= 0:
            return self.credit(user_id, delta)
        return self.debit(user_id, -delta)

    # ── Side writes (own commit, never raise) ──

    def _side_write(self, what: str, sql: str, params: list):
        try:
            self.db.execute(sql, params)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.warning(f"Ledger side write failed ({what}): {e}")

    def record_transaction(self, user_id: str, amount: int, balance_after: int,
                           reason: str, game_type: Optional[str] = None):
        if amount == 0:
            return
        self._side_write(
            "transaction",
            "INSERT INTO transactions (id, user_id, game_type, amount, balance_after, reason, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            [new_id(), user_id, game_type, amount, balance_after, reason, utcnow_iso()],
        )

    def record_round(self, user_id: str, game_type: str, bet_amount: int,
                     result: str, winnings: int, details: Optional[dict] = None):
        """Append a game_history row. `winnings` is the net chip change."""
        self._side_write(
            "game_history",
            "INSERT INTO game_history (id, user_id, game_type, bet_amount, result, winnings, details, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            [new_id(), user_id, game_type, bet_amount, result, winnings,
             json.dumps(details) if details is not None else None, utcnow_iso()],
        )

    def history(self, user_id: str, limit: int = 50) -> list:
        return self.db.execute(
            "SELECT * FROM game_history WHERE user_id = ? ORDER BY created_at DESC LIMIT ?",
            [user_id, limit],
        ).fetchall()

    def transactions(self, user_id: str, limit: int = 50) -> list:
        return self.db.execute(
            "SELECT * FROM transactions WHERE user_id = ? ORDER BY created_at DESC LIMIT ?",
            [user_id, limit],
        ).fetchall()
