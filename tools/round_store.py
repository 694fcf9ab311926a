"""
CHIPCASINO - Round Store

Persists Landmines sessions and Crash rounds. Every state change is a
conditional UPDATE that only matches the row in the state the caller read,
so a session or round can leave the active state exactly once no matter how
many requests race for it. Nothing here commits.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Optional

from sim_engine.rmg.crash import CrashRound
from sim_engine.rmg.errors import GameFinishedError, InvalidMoveError, NotFoundError, NotOwnedError
from sim_engine.rmg.mines import MinesSession


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def _parse(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _mines_from_row(row: dict) -> MinesSession:
    return MinesSession(
        id=row["id"],
        user_id=row["user_id"],
        bet_amount=int(row["bet_amount"]),
        grid_size=int(row["grid_size"]),
        mine_count=int(row["mine_count"]),
        mine_positions=json.loads(row["mine_positions"]),
        revealed_cells=json.loads(row["revealed_cells"] or "[]"),
        safe_revealed=int(row["safe_revealed"]),
        status=row["status"],
        current_multiplier=float(row["current_multiplier"]),
        created_at=_parse(row["created_at"]),
        finished_at=_parse(row.get("finished_at")),
    )


class RoundStore:
    def __init__(self, db):
        self.db = db

    # ═══════════════════════════════════════════════════════════
    # Landmines
    # ═══════════════════════════════════════════════════════════

    def insert_mines(self, session: MinesSession):
        self.db.execute(
            "INSERT INTO landmines_sessions (id, user_id, bet_amount, grid_size, mine_count, "
            "mine_positions, revealed_cells, safe_revealed, current_multiplier, status, "
            "is_active, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [session.id, session.user_id, session.bet_amount, session.grid_size,
             session.mine_count, json.dumps(session.mine_positions),
             json.dumps(session.revealed_cells), session.safe_revealed,
             session.current_multiplier, session.status, 1, _iso(session.created_at)],
        )

    def load_mines(self, session_id: str, user_id: str) -> MinesSession:
        row = self.db.execute(
            "SELECT * FROM landmines_sessions WHERE id = ?", [session_id]).fetchone()
        if row is None:
            raise NotFoundError("Game session not found")
        if row["user_id"] != user_id:
            raise NotOwnedError("Game session belongs to another player")
        return _mines_from_row(row)

    def save_mines_move(self, session: MinesSession, prev_safe_revealed: int):
        """Persist a reveal or cash-out made on a session read as active with prev_safe_revealed."""
        self.db.execute(
            "UPDATE landmines_sessions SET revealed_cells = ?, safe_revealed = ?, "
            "current_multiplier = ?, status = ?, is_active = ?, finished_at = ? "
            "WHERE id = ? AND is_active = 1 AND safe_revealed = ?",
            [json.dumps(session.revealed_cells), session.safe_revealed,
             session.current_multiplier, session.status, 1 if session.is_active else 0,
             _iso(session.finished_at), session.id, prev_safe_revealed],
        )
        if self.db.rowcount != 1:
            row = self.db.execute(
                "SELECT is_active FROM landmines_sessions WHERE id = ?", [session.id]).fetchone()
            if row is None or not row["is_active"]:
                raise GameFinishedError("Game is already finished")
            raise InvalidMoveError("Another move was made on this game, refresh and retry")

    def active_mines(self, user_id: str) -> list:
        """Unfinished sessions, oldest first, so a client can resume them."""
        rows = self.db.execute(
            "SELECT * FROM landmines_sessions WHERE user_id = ? AND is_active = 1 "
            "ORDER BY created_at",
            [user_id],
        ).fetchall()
        return [_mines_from_row(row) for row in rows]

    # ═══════════════════════════════════════════════════════════
    # Crash
    # ═══════════════════════════════════════════════════════════

    def insert_crash(self, rnd: CrashRound):
        self.db.execute(
            "INSERT INTO crash_rounds (id, user_id, bet_amount, crash_multiplier, started_at, "
            "status, is_active, server_seed, server_seed_hash, client_seed, nonce) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [rnd.id, rnd.user_id, rnd.bet_amount, rnd.crash_multiplier,
             _iso(rnd.started_at), rnd.status, 1, rnd.server_seed,
             rnd.server_seed_hash, rnd.client_seed, rnd.nonce],
        )

    def load_crash(self, round_id: str, user_id: str) -> CrashRound:
        row = self.db.execute("SELECT * FROM crash_rounds WHERE id = ?", [round_id]).fetchone()
        if row is None:
            raise NotFoundError("Round not found")
        if row["user_id"] != user_id:
            raise NotOwnedError("Round belongs to another player")
        return CrashRound(
            id=row["id"],
            user_id=row["user_id"],
            bet_amount=int(row["bet_amount"]),
            crash_multiplier=float(row["crash_multiplier"]),
            started_at=_parse(row["started_at"]),
            status=row["status"],
            cashed_out_at=row.get("cashed_out_at"),
            payout=int(row.get("payout") or 0),
            finished_at=_parse(row.get("finished_at")),
            server_seed=row.get("server_seed"),
            server_seed_hash=row.get("server_seed_hash"),
            client_seed=row.get("client_seed"),
            nonce=int(row.get("nonce") or 0),
        )

    def finish_crash(self, rnd: CrashRound):
        """Persist the terminal state of a round that was read as running."""
        self.db.execute(
            "UPDATE crash_rounds SET status = ?, is_active = 0, cashed_out_at = ?, "
            "payout = ?, finished_at = ? WHERE id = ? AND is_active = 1",
            [rnd.status, rnd.cashed_out_at, rnd.payout, _iso(rnd.finished_at), rnd.id],
        )
        if self.db.rowcount != 1:
            raise GameFinishedError("Round already finished")
