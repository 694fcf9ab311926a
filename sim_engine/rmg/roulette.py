"""Roulette - single-zero wheel, straight and even-money bets."""
from dataclasses import dataclass, field
from typing import Iterable, Optional

from config.game_schema import ROULETTE_TABLE, RouletteBetType, RouletteTable
from sim_engine.rmg.base import BaseRMGEngine
from sim_engine.rmg.errors import MalformedBetError


@dataclass
class RouletteBet:
    type: str
    value: object
    amount: int

    @classmethod
    def coerce(cls, bet) -> "RouletteBet":
        """Build from a dict, a request model or another RouletteBet."""
        if isinstance(bet, RouletteBet):
            return bet
        if isinstance(bet, dict):
            bet_type, value, amount = bet.get("type"), bet.get("value"), bet.get("amount", 0)
        else:
            bet_type = getattr(bet, "type", None)
            value = getattr(bet, "value", None)
            amount = getattr(bet, "amount", 0)
        if isinstance(bet_type, RouletteBetType):
            bet_type = bet_type.value
        if not bet_type or value is None:
            raise MalformedBetError()
        if bet_type not in {t.value for t in RouletteBetType}:
            raise MalformedBetError("Unsupported bet type")
        return cls(type=bet_type, value=value, amount=int(amount))

    def to_dict(self) -> dict:
        return {"type": self.type, "value": self.value, "amount": self.amount}


@dataclass
class RouletteSettlement:
    winning_number: int
    winning_color: str
    per_bet: list = field(default_factory=list)   # [(RouletteBet, payout)]
    total_stake: int = 0
    total_payout: int = 0

    @property
    def net(self) -> int:
        return self.total_payout - self.total_stake

    def to_dict(self) -> dict:
        return {
            "winningNumber": self.winning_number,
            "winningColor": self.winning_color,
            "bets": [dict(bet.to_dict(), payout=payout) for bet, payout in self.per_bet],
            "totalStake": self.total_stake,
            "totalPayout": self.total_payout,
            "net": self.net,
        }


class RouletteEngine(BaseRMGEngine):
    game_type = "roulette"
    display_name = "Roulette"
    description = "European roulette. Bet on numbers, colours, odd/even or low/high."
    emoji = "🎲"

    def __init__(self, table: Optional[RouletteTable] = None):
        self.table = table or ROULETTE_TABLE

    def bet_wins(self, bet: RouletteBet, number: int) -> bool:
        t, v = bet.type, bet.value
        if t == RouletteBetType.STRAIGHT.value:
            return isinstance(v, int) and not isinstance(v, bool) and v == number
        # Zero loses every even-money bet
        if number == 0:
            return False
        if t == RouletteBetType.COLOR.value:
            return v == self.table.color_of(number).value
        if t == RouletteBetType.ODD_EVEN.value:
            return v == ("even" if number % 2 == 0 else "odd")
        if t == RouletteBetType.LOW_HIGH.value:
            lo, hi = self.table.low_range, self.table.high_range
            if v == "low":
                return lo[0] <= number <= lo[1]
            if v == "high":
                return hi[0] <= number <= hi[1]
        return False

    def payout_for(self, bet: RouletteBet, number: int) -> int:
        if not self.bet_wins(bet, number):
            return 0
        return bet.amount * self.table.payouts[RouletteBetType(bet.type)]

    def evaluate_bets(self, bets: Iterable, winning_number: int) -> RouletteSettlement:
        """Settle a list of bets against a known pocket."""
        if not 0 <= winning_number < self.table.pockets:
            raise MalformedBetError(f"Pocket out of range: {winning_number}")
        settlement = RouletteSettlement(
            winning_number=winning_number,
            winning_color=self.table.color_of(winning_number).value,
        )
        for raw in bets:
            bet = RouletteBet.coerce(raw)
            payout = self.payout_for(bet, winning_number)
            settlement.per_bet.append((bet, payout))
            settlement.total_stake += bet.amount
            settlement.total_payout += payout
        return settlement

    def draw_pocket(self, rng) -> int:
        return rng.randrange(self.table.pockets)

    def spin(self, bets: Iterable, rng) -> RouletteSettlement:
        bets = [RouletteBet.coerce(b) for b in bets]
        return self.evaluate_bets(bets, self.draw_pocket(rng))

    # ── Math model ──

    def generate_config(self, bet_type: str = "color", value=None, **kw) -> dict:
        default_values = {"straight": 17, "color": "red", "odd_even": "odd", "low_high": "low"}
        return {
            "game_type": "roulette",
            "bet_type": bet_type,
            "value": default_values.get(bet_type) if value is None else value,
        }

    def compute_house_edge(self, config: dict) -> float:
        bet = RouletteBet(type=config["bet_type"], value=config["value"], amount=1)
        returned = sum(self.payout_for(bet, n) for n in range(self.table.pockets))
        return 1.0 - returned / self.table.pockets

    def simulate_round(self, config: dict, rng) -> float:
        bet = RouletteBet(type=config["bet_type"], value=config["value"], amount=1)
        return float(self.payout_for(bet, self.draw_pocket(rng)))
