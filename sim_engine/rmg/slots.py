"""Slots - three weighted reels, triple and pair paytable."""
import itertools
from dataclasses import dataclass
from typing import Optional, Sequence

from config.game_schema import SLOTS_TABLE, SlotSymbol, SlotsTable
from sim_engine.rmg.base import BaseRMGEngine, gross_payout, result_label
from sim_engine.rmg.errors import InvalidGameParameters


@dataclass
class SlotsOutcome:
    reels: tuple
    multiplier: float
    gross_winnings: int
    net: int
    result: str

    def to_dict(self) -> dict:
        return {
            "reels": [s.value for s in self.reels],
            "multiplier": self.multiplier,
            "grossWinnings": self.gross_winnings,
            "net": self.net,
            "result": self.result,
        }


class SlotsEngine(BaseRMGEngine):
    game_type = "slots"
    display_name = "Slots"
    description = "Classic three-reel slot machine. Match symbols to win."
    emoji = "🎰"

    def __init__(self, table: Optional[SlotsTable] = None):
        self.table = table or SLOTS_TABLE
        self._pool = self.table.reel_pool()

    # ── Pure paytable ──

    def multiplier_for(self, reels: Sequence[SlotSymbol]) -> float:
        a, b, c = reels
        if a == b == c:
            return self.table.triple_payouts[a]
        if a == b or b == c or a == c:
            matched = a if a == b else c
            return self.table.pair_payouts[matched]
        return 0.0

    def evaluate(self, bet_amount: int, reels: Sequence[SlotSymbol]) -> SlotsOutcome:
        """Settle a stake against a known set of reels."""
        if len(reels) != self.table.reel_count:
            raise InvalidGameParameters(f"Expected {self.table.reel_count} reels")
        reels = tuple(SlotSymbol(r) for r in reels)
        mult = self.multiplier_for(reels)
        gross = gross_payout(bet_amount, mult)
        return SlotsOutcome(
            reels=reels,
            multiplier=mult,
            gross_winnings=gross,
            net=gross - bet_amount,
            result=result_label(gross, bet_amount),
        )

    def draw_reels(self, rng) -> tuple:
        return tuple(self._pool[rng.randrange(len(self._pool))]
                     for _ in range(self.table.reel_count))

    def spin(self, bet_amount: int, rng) -> SlotsOutcome:
        return self.evaluate(bet_amount, self.draw_reels(rng))

    # ── Math model ──

    def generate_config(self, **kw) -> dict:
        return {"game_type": "slots"}

    def compute_house_edge(self, config: dict = None) -> float:
        """Exact edge over every weighted reel combination."""
        weights = self.table.reel_weights
        total_weight = sum(weights.values()) ** self.table.reel_count
        expected = 0.0
        for combo in itertools.product(weights, repeat=self.table.reel_count):
            w = 1
            for symbol in combo:
                w *= weights[symbol]
            expected += w * self.multiplier_for(combo)
        return 1.0 - expected / total_weight

    def simulate_round(self, config: dict, rng) -> float:
        return self.multiplier_for(self.draw_reels(rng))
