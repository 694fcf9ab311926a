"""Crash - pre-committed crash point, fixed-rate exponential curve.

The crash point is drawn once, at round start, from a heavy-tailed
distribution and never changes. The curve every client animates is the
same for all rounds: it reaches 50x after 12 seconds and is capped at the
round's crash point. A cash-out at elapsed time t wins iff curve(t) is still below
the crash point; the server decides t.

Live rounds draw through CommittedRNG: the seed hash is handed out at start
and the server seed is revealed when the round ends, so verify_crash_point()
can replay the draw.
"""
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from config.game_schema import CRASH_TABLE, CrashTable
from config.settings import GameConfig
from sim_engine.rmg.base import BaseRMGEngine, gross_payout
from sim_engine.rmg.errors import GameFinishedError, InvalidGameParameters, RoundStillRunningError
from tools.casino_rng import committed_uniform, seed_hash

RUNNING = "running"
CRASHED = "crashed"
CASHED_OUT = "cashed_out"


@dataclass
class CrashRound:
    id: str
    user_id: Optional[str]
    bet_amount: int
    crash_multiplier: float
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: str = RUNNING
    cashed_out_at: Optional[float] = None
    payout: int = 0
    finished_at: Optional[datetime] = None
    # Commit-reveal inputs of the crash point draw
    server_seed: Optional[str] = None
    server_seed_hash: Optional[str] = None
    client_seed: Optional[str] = None
    nonce: int = 0

    @property
    def is_active(self) -> bool:
        return self.status == RUNNING

    def fairness(self) -> dict:
        """Commitment while running; the server seed is added once the round is over."""
        data = {
            "serverSeedHash": self.server_seed_hash,
            "clientSeed": self.client_seed,
            "nonce": self.nonce,
        }
        if not self.is_active:
            data["serverSeed"] = self.server_seed
        return data


@dataclass
class CashoutOutcome:
    crashed: bool
    crash_multiplier: float
    cashout_multiplier: Optional[float]
    payout: int
    elapsed_seconds: float

    def to_dict(self) -> dict:
        data = {"crashed": self.crashed, "crashMultiplier": self.crash_multiplier}
        if not self.crashed:
            data["cashoutMultiplier"] = self.cashout_multiplier
            data["payout"] = self.payout
        return data


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CrashEngine(BaseRMGEngine):
    game_type = "crash"
    display_name = "Crash"
    description = "Ride the rising multiplier and cash out before it crashes."
    emoji = "🚀"

    def __init__(self, table: Optional[CrashTable] = None,
                 client_tolerance_s: Optional[float] = None):
        self.table = table or CRASH_TABLE
        self.client_tolerance_s = (GameConfig.CRASH_CLIENT_TOLERANCE_S
                                   if client_tolerance_s is None else client_tolerance_s)

    # ── Pure functions ──

    def crash_point_from_uniform(self, u: float) -> float:
        raw = 1 + (-math.log(1 - u) * self.table.tail_scale)
        clamped = min(max(raw, self.table.min_crash), self.table.max_crash)
        return round(clamped, 2)

    def draw_crash_point(self, rng) -> float:
        return self.crash_point_from_uniform(rng.random())

    def verify_crash_point(self, server_seed: str, client_seed: str, nonce: int = 0,
                           server_seed_hash: Optional[str] = None) -> float:
        """Recompute a finished round's crash point from its revealed seeds."""
        if server_seed_hash is not None and seed_hash(server_seed) != server_seed_hash:
            raise InvalidGameParameters("Server seed does not match its hash")
        return self.crash_point_from_uniform(committed_uniform(server_seed, client_seed, nonce))

    def curve(self, elapsed_seconds: float, crash_multiplier: float) -> float:
        """Displayed multiplier at elapsed_seconds, capped at the crash point."""
        if not elapsed_seconds > 0:
            return 1.0
        grown = math.exp(self.table.growth_rate * elapsed_seconds)
        return round(min(grown, crash_multiplier), 2)

    def crash_time_seconds(self, crash_multiplier: float) -> float:
        """Elapsed time at which the curve reaches crash_multiplier."""
        return math.log(crash_multiplier) / self.table.growth_rate

    def effective_elapsed(self, server_elapsed: float,
                          client_elapsed: Optional[float] = None) -> float:
        """Client time is trusted only if sane and not ahead of the server by more than the tolerance."""
        if (client_elapsed is not None
                and isinstance(client_elapsed, (int, float))
                and not isinstance(client_elapsed, bool)
                and math.isfinite(client_elapsed)
                and client_elapsed >= 0
                and client_elapsed <= server_elapsed + self.client_tolerance_s):
            return float(client_elapsed)
        return server_elapsed

    # ── Round lifecycle ──

    def start(self, bet_amount: int, rng, user_id: Optional[str] = None,
              now: Optional[datetime] = None) -> CrashRound:
        """Open a round. With a CommittedRNG the seeds behind the draw are kept on the round."""
        nonce = getattr(rng, "nonce", 0)
        return CrashRound(
            id=str(uuid.uuid4()),
            user_id=user_id,
            bet_amount=bet_amount,
            crash_multiplier=self.draw_crash_point(rng),
            started_at=now or _utcnow(),
            server_seed=getattr(rng, "server_seed", None),
            server_seed_hash=getattr(rng, "server_seed_hash", None),
            client_seed=getattr(rng, "client_seed", None),
            nonce=nonce,
        )

    def server_elapsed(self, rnd: CrashRound, now: Optional[datetime] = None) -> float:
        return max(0.0, ((now or _utcnow()) - rnd.started_at).total_seconds())

    def resolve_cashout(self, rnd: CrashRound, client_elapsed: Optional[float] = None,
                        now: Optional[datetime] = None) -> CashoutOutcome:
        if not rnd.is_active:
            raise GameFinishedError("Round already finished")
        elapsed = self.effective_elapsed(self.server_elapsed(rnd, now), client_elapsed)
        current = self.curve(elapsed, rnd.crash_multiplier)
        rnd.finished_at = now or _utcnow()

        if current >= rnd.crash_multiplier:
            rnd.status = CRASHED
            rnd.payout = 0
            return CashoutOutcome(True, rnd.crash_multiplier, None, 0, elapsed)

        rnd.status = CASHED_OUT
        rnd.cashed_out_at = current
        rnd.payout = gross_payout(rnd.bet_amount, current)
        return CashoutOutcome(False, rnd.crash_multiplier, current, rnd.payout, elapsed)

    def resolve_expired(self, rnd: CrashRound, now: Optional[datetime] = None) -> CashoutOutcome:
        """Close a round the player never cashed out, once server time has passed the crash point."""
        if not rnd.is_active:
            raise GameFinishedError("Round already finished")
        elapsed = self.server_elapsed(rnd, now)
        if self.curve(elapsed, rnd.crash_multiplier) < rnd.crash_multiplier:
            raise RoundStillRunningError()
        rnd.status = CRASHED
        rnd.payout = 0
        rnd.finished_at = now or _utcnow()
        return CashoutOutcome(True, rnd.crash_multiplier, None, 0, elapsed)

    # ── Math model ──

    def generate_config(self, target: Optional[float] = None, **kw) -> dict:
        return {
            "game_type": "crash",
            "target": self.table.sim_cashout_target if target is None else float(target),
        }

    def win_probability(self, target: float) -> float:
        """P(crash point > target) under the rounded, clamped distribution."""
        threshold = target + 0.005   # round(raw, 2) > target
        if threshold <= self.table.min_crash:
            return 1.0
        if target >= self.table.max_crash:
            return 0.0
        return math.exp(-(threshold - 1) / self.table.tail_scale)

    def compute_house_edge(self, config: dict) -> float:
        """Edge for an auto cash-out at config['target']. Negative means the player is favoured."""
        target = config["target"]
        return 1.0 - self.win_probability(target) * target

    def simulate_round(self, config: dict, rng) -> float:
        target = config["target"]
        return target if self.draw_crash_point(rng) > target else 0.0
