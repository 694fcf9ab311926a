"""
CHIPCASINO - Game Settlement Service

Server-side settlement for every game. Each operation:

  1. validates and computes the outcome with the engine (no state touched)
  2. applies the chip delta and the round state change in one transaction
  3. commits, then appends transaction / history rows as side writes

Slots and Roulette settle stake and payout in a single guarded UPDATE.
Landmines and Crash debit at start and credit at cash-out; the round row
can only leave the active state once, so a duplicate cash-out is rejected
before any credit happens.

Usage:
    from tools.game_service import GameService
    svc = GameService(db)
    out = svc.spin_slots(user_id, bet_amount=100)
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from sim_engine.rmg import CrashEngine, MinesEngine, RouletteEngine, SlotsEngine
from sim_engine.rmg.base import result_label
from sim_engine.rmg.mines import HIT_MINE
from tools.casino_rng import CommittedRNG, get_rng
from tools.ledger import Ledger
from tools.round_store import RoundStore

logger = logging.getLogger("chipcasino.games")


class GameService:
    def __init__(self, db, rng_for: Callable = get_rng,
                 clock: Optional[Callable[[], datetime]] = None,
                 crash_rng: Callable = CommittedRNG):
        self.db = db
        self.ledger = Ledger(db)
        self.store = RoundStore(db)
        self.rng_for = rng_for
        self.crash_rng = crash_rng
        self.clock = clock
        self.slots = SlotsEngine()
        self.roulette = RouletteEngine()
        self.mines = MinesEngine()
        self.crash = CrashEngine()

    def _now(self) -> Optional[datetime]:
        return self.clock() if self.clock else None

    def _commit_or_rollback(self, fn):
        try:
            result = fn()
            self.db.commit()
            return result
        except Exception:
            self.db.rollback()
            raise

    # ═══════════════════════════════════════════════════════════
    # Slots
    # ═══════════════════════════════════════════════════════════

    def spin_slots(self, user_id: str, bet_amount: int) -> dict:
        self.ledger.balance(user_id)
        outcome = self.slots.spin(bet_amount, self.rng_for("slots"))
        balance = self._commit_or_rollback(
            lambda: self.ledger.settle(user_id, bet_amount, outcome.gross_winnings))

        self.ledger.record_transaction(user_id, outcome.net, balance, "slots_spin", "slots")
        self.ledger.record_round(user_id, "slots", bet_amount, outcome.result, outcome.net,
                                 {"reels": [s.value for s in outcome.reels]})
        logger.info(f"slots user={user_id} bet={bet_amount} reels={[s.value for s in outcome.reels]} "
                    f"net={outcome.net}")
        return dict(outcome.to_dict(), betAmount=bet_amount, balance=balance)

    # ═══════════════════════════════════════════════════════════
    # Roulette
    # ═══════════════════════════════════════════════════════════

    def spin_roulette(self, user_id: str, bets: list) -> dict:
        self.ledger.balance(user_id)
        settlement = self.roulette.spin(bets, self.rng_for("roulette"))
        balance = self._commit_or_rollback(
            lambda: self.ledger.settle(user_id, settlement.total_stake, settlement.total_payout))

        result = result_label(settlement.total_payout, settlement.total_stake)
        self.ledger.record_transaction(user_id, settlement.net, balance, "roulette_spin", "roulette")
        self.ledger.record_round(user_id, "roulette", settlement.total_stake, result, settlement.net,
                                 {"winningNumber": settlement.winning_number,
                                  "bets": len(settlement.per_bet)})
        logger.info(f"roulette user={user_id} pocket={settlement.winning_number} "
                    f"stake={settlement.total_stake} payout={settlement.total_payout}")
        return dict(settlement.to_dict(), balance=balance)

    # ═══════════════════════════════════════════════════════════
    # Landmines
    # ═══════════════════════════════════════════════════════════

    def start_mines(self, user_id: str, bet_amount: int, grid_size: int, mine_count: int) -> dict:
        self.ledger.balance(user_id)
        session = self.mines.start(bet_amount, grid_size, mine_count,
                                   self.rng_for("landmines"), user_id=user_id)

        def _open():
            balance = self.ledger.debit(user_id, bet_amount)
            self.store.insert_mines(session)
            return balance

        balance = self._commit_or_rollback(_open)
        self.ledger.record_transaction(user_id, -bet_amount, balance, "landmines_bet", "landmines")
        logger.info(f"landmines start user={user_id} session={session.id} "
                    f"grid={grid_size} mines={mine_count} bet={bet_amount}")
        return {"session": session.to_public_dict(), "balance": balance}

    def reveal_mines(self, user_id: str, session_id: str, cell_index: int) -> dict:
        session = self.store.load_mines(session_id, user_id)
        prev = session.safe_revealed
        outcome = self.mines.reveal(session, cell_index)
        self._commit_or_rollback(lambda: self.store.save_mines_move(session, prev))

        data = outcome.to_dict()
        if session.status == HIT_MINE:
            self.ledger.record_round(user_id, "landmines", session.bet_amount, "loss",
                                     -session.bet_amount,
                                     {"sessionId": session.id, "safeRevealed": session.safe_revealed})
            data["minePositions"] = sorted(session.mine_positions)
            logger.info(f"landmines hit user={user_id} session={session.id} cell={cell_index}")
        return data

    def cashout_mines(self, user_id: str, session_id: str) -> dict:
        session = self.store.load_mines(session_id, user_id)
        prev = session.safe_revealed
        payout = self.mines.cash_out(session)

        def _close():
            self.store.save_mines_move(session, prev)
            return self.ledger.credit(user_id, payout)

        balance = self._commit_or_rollback(_close)
        net = payout - session.bet_amount
        self.ledger.record_transaction(user_id, payout, balance, "landmines_cashout", "landmines")
        self.ledger.record_round(user_id, "landmines", session.bet_amount,
                                 result_label(payout, session.bet_amount), net,
                                 {"sessionId": session.id, "safeRevealed": session.safe_revealed,
                                  "multiplier": session.current_multiplier})
        logger.info(f"landmines cashout user={user_id} session={session.id} payout={payout}")
        return {
            "payout": payout,
            "multiplier": session.current_multiplier,
            "safeRevealed": session.safe_revealed,
            "minePositions": sorted(session.mine_positions),
            "balance": balance,
        }

    # ═══════════════════════════════════════════════════════════
    # Crash
    # ═══════════════════════════════════════════════════════════

    def start_crash(self, user_id: str, bet_amount: int,
                    client_seed: Optional[str] = None) -> dict:
        self.ledger.balance(user_id)
        rng = self.crash_rng(client_seed=client_seed)
        rnd = self.crash.start(bet_amount, rng, user_id=user_id, now=self._now())

        def _open():
            balance = self.ledger.debit(user_id, bet_amount)
            self.store.insert_crash(rnd)
            return balance

        balance = self._commit_or_rollback(_open)
        self.ledger.record_transaction(user_id, -bet_amount, balance, "crash_bet", "crash")
        logger.info(f"crash start user={user_id} round={rnd.id} bet={bet_amount}")
        return {
            "roundId": rnd.id,
            "crashMultiplier": rnd.crash_multiplier,
            "startedAt": rnd.started_at.isoformat(),
            "curveDurationSeconds": self.crash.table.curve_target_seconds,
            "balance": balance,
            **rnd.fairness(),
        }

    def cashout_crash(self, user_id: str, round_id: str,
                      elapsed_seconds: Optional[float] = None) -> dict:
        rnd = self.store.load_crash(round_id, user_id)
        outcome = self.crash.resolve_cashout(rnd, elapsed_seconds, now=self._now())

        def _close():
            self.store.finish_crash(rnd)
            if outcome.payout > 0:
                return self.ledger.credit(user_id, outcome.payout)
            return self.ledger.balance(user_id)

        balance = self._commit_or_rollback(_close)
        net = outcome.payout - rnd.bet_amount
        if outcome.payout > 0:
            self.ledger.record_transaction(user_id, outcome.payout, balance, "crash_cashout", "crash")
        self.ledger.record_round(user_id, "crash", rnd.bet_amount,
                                 result_label(outcome.payout, rnd.bet_amount), net,
                                 {"roundId": rnd.id, "crashMultiplier": rnd.crash_multiplier,
                                  "cashoutMultiplier": outcome.cashout_multiplier})
        logger.info(f"crash cashout user={user_id} round={rnd.id} crashed={outcome.crashed} "
                    f"elapsed={outcome.elapsed_seconds:.3f} payout={outcome.payout}")
        data = dict(outcome.to_dict(), **rnd.fairness())
        if not outcome.crashed:
            data["balance"] = balance
        return data

    def resolve_crash(self, user_id: str, round_id: str) -> dict:
        rnd = self.store.load_crash(round_id, user_id)
        outcome = self.crash.resolve_expired(rnd, now=self._now())
        self._commit_or_rollback(lambda: self.store.finish_crash(rnd))
        self.ledger.record_round(user_id, "crash", rnd.bet_amount, "loss", -rnd.bet_amount,
                                 {"roundId": rnd.id, "crashMultiplier": rnd.crash_multiplier})
        logger.info(f"crash resolved user={user_id} round={rnd.id} at {rnd.crash_multiplier}x")
        return dict(outcome.to_dict(), **rnd.fairness())
