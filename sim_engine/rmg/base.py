"""
CHIPCASINO - Base Game Engine

Abstract base for the game outcome engines. Every engine can:
    - describe itself (game_type, display_name, metadata for the lobby)
    - compute its theoretical house edge for a config
    - play one headless round against an injected RNG (Monte Carlo)

Engines never touch storage, identity or the wall clock implicitly.
"""

import math
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field


def gross_payout(bet_amount: int, multiplier: float) -> int:
    """Chips returned for a stake at a multiplier, floored to whole chips."""
    return int(math.floor(bet_amount * multiplier + 1e-9))


def result_label(payout: int, bet_amount: int) -> str:
    """'win' / 'tie' / 'loss' by the sign of payout - bet."""
    if payout > bet_amount:
        return "win"
    if payout == bet_amount:
        return "tie"
    return "loss"


@dataclass
class SimResult:
    """Monte Carlo results for one engine/config."""
    game_type: str
    rounds: int
    house_edge_theoretical: float
    house_edge_measured: float
    avg_multiplier: float
    max_multiplier_hit: float
    hit_rate: float  # share of rounds that returned > 0
    total_wagered: float
    total_returned: float
    rtp: float  # 1 - house_edge_measured
    confidence_95: tuple = (0.0, 0.0)
    distribution: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "game_type": self.game_type,
            "rounds": self.rounds,
            "house_edge_theoretical": round(self.house_edge_theoretical, 6),
            "house_edge_measured": round(self.house_edge_measured, 6),
            "rtp": round(self.rtp, 4),
            "avg_multiplier": round(self.avg_multiplier, 4),
            "max_multiplier_hit": round(self.max_multiplier_hit, 2),
            "hit_rate": round(self.hit_rate, 4),
            "total_wagered": round(self.total_wagered, 2),
            "total_returned": round(self.total_returned, 2),
            "confidence_95": [round(x, 6) for x in self.confidence_95],
            "distribution": self.distribution,
        }


def _bucket(mult: float) -> str:
    if mult == 0:
        return "0x"
    if mult < 1:
        return "<1x"
    if mult < 2:
        return "1-2x"
    if mult < 5:
        return "2-5x"
    if mult < 10:
        return "5-10x"
    if mult < 50:
        return "10-50x"
    return "50x+"


class BaseRMGEngine(ABC):
    """Abstract base for all game engines."""

    game_type: str = "base"
    display_name: str = "Base Game"
    description: str = ""
    emoji: str = ""

    @abstractmethod
    def generate_config(self, **kwargs) -> dict:
        """Build a simulation config dict from parameters."""
        ...

    @abstractmethod
    def compute_house_edge(self, config: dict) -> float:
        """Theoretical house edge for a config (negative = player edge)."""
        ...

    @abstractmethod
    def simulate_round(self, config: dict, rng) -> float:
        """Play one round for a 1-chip stake. Returns gross multiplier (0 = loss)."""
        ...

    def simulate(self, config: dict, rounds: int = 100_000, seed: int = 42) -> SimResult:
        """Run a Monte Carlo simulation."""
        rng = random.Random(seed)

        total_returned = 0.0
        sum_sq = 0.0
        wins = 0
        max_mult = 0.0
        buckets = {}

        for _ in range(rounds):
            mult = self.simulate_round(config, rng)
            total_returned += mult
            sum_sq += mult * mult
            if mult > 0:
                wins += 1
            if mult > max_mult:
                max_mult = mult
            b = _bucket(mult)
            buckets[b] = buckets.get(b, 0) + 1

        total_wagered = float(rounds)
        rtp = total_returned / total_wagered if rounds > 0 else 0.0
        he_measured = 1 - rtp
        avg_mult = rtp
        hit_rate = wins / rounds if rounds > 0 else 0.0

        # 95% confidence interval for the measured house edge
        variance = (sum_sq / rounds - avg_mult ** 2) if rounds > 0 else 0.0
        std_err = math.sqrt(max(variance, 0.0) / rounds) if rounds > 0 else 0.0
        ci = (he_measured - 1.96 * std_err, he_measured + 1.96 * std_err)

        return SimResult(
            game_type=self.game_type,
            rounds=rounds,
            house_edge_theoretical=self.compute_house_edge(config),
            house_edge_measured=he_measured,
            avg_multiplier=avg_mult,
            max_multiplier_hit=max_mult,
            hit_rate=hit_rate,
            total_wagered=total_wagered,
            total_returned=total_returned,
            rtp=rtp,
            confidence_95=ci,
            distribution={k: round(v / rounds, 4) for k, v in sorted(buckets.items())},
        )

    def get_metadata(self) -> dict:
        """Lobby entry for this game."""
        return {
            "id": self.game_type,
            "name": self.display_name,
            "description": self.description,
            "route": f"/games/{self.game_type}",
            "emoji": self.emoji,
            "status": "available",
        }
