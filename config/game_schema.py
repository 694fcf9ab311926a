"""
CHIPCASINO - Game Table Schema

Payout tables, symbol pools, wheel colours and curve constants for every
game, as frozen pydantic models. One instance of each is built at import
and shared by the engines, the CLI and the tests, so a payout rule is
changed in exactly one place.

Usage:
    from config.game_schema import SLOTS_TABLE, ROULETTE_TABLE
    SLOTS_TABLE.triple_payouts[SlotSymbol.DIAMOND]   # 20.0
    ROULETTE_TABLE.color_of(17)                      # "black"
    print(CRASH_TABLE.model_dump_json(indent=2))
"""

from __future__ import annotations

import math
from enum import Enum
from types import MappingProxyType
from typing import Annotated, Literal, Optional, Union

from pydantic import (
    AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer, ValidationError,
    field_validator, model_validator,
)

from config.settings import BetLimits, GameConfig


# ═══════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════

class GameType(str, Enum):
    SLOTS = "slots"
    ROULETTE = "roulette"
    LANDMINES = "landmines"
    CRASH = "crash"


class SlotSymbol(str, Enum):
    # Ordered by value, lowest first
    CHERRY = "CHERRY"
    LEMON = "LEMON"
    BAR = "BAR"
    SEVEN = "SEVEN"
    DIAMOND = "DIAMOND"


class RouletteBetType(str, Enum):
    STRAIGHT = "straight"
    COLOR = "color"
    ODD_EVEN = "odd_even"
    LOW_HIGH = "low_high"


class RouletteColor(str, Enum):
    RED = "red"
    BLACK = "black"
    GREEN = "green"


def _read_only(value: dict) -> MappingProxyType:
    return MappingProxyType(dict(value))


def _plain_dict(value) -> dict:
    return {getattr(k, "value", k): v for k, v in value.items()}


# frozen=True only blocks reassignment; table mappings are also read-only views
SymbolWeights = Annotated[
    dict[SlotSymbol, int], AfterValidator(_read_only), PlainSerializer(_plain_dict)]
SymbolPayouts = Annotated[
    dict[SlotSymbol, float], AfterValidator(_read_only), PlainSerializer(_plain_dict)]
BetPayouts = Annotated[
    dict[RouletteBetType, int], AfterValidator(_read_only), PlainSerializer(_plain_dict)]


class _Table(BaseModel):
    model_config = ConfigDict(frozen=True, validate_default=True)


# ═══════════════════════════════════════════════════════════════
# Slots
# ═══════════════════════════════════════════════════════════════

class SlotsTable(_Table):
    """Three-reel slot: weighted symbol pool, triple and pair paytables."""
    reel_weights: SymbolWeights = Field(default_factory=lambda: {
        SlotSymbol.CHERRY: 4,
        SlotSymbol.LEMON: 3,
        SlotSymbol.BAR: 2,
        SlotSymbol.SEVEN: 1,
        SlotSymbol.DIAMOND: 1,
    })
    triple_payouts: SymbolPayouts = Field(default_factory=lambda: {
        SlotSymbol.DIAMOND: 20.0,
        SlotSymbol.SEVEN: 10.0,
        SlotSymbol.BAR: 6.0,
        SlotSymbol.CHERRY: 4.0,
        SlotSymbol.LEMON: 3.0,
    })
    pair_payouts: SymbolPayouts = Field(default_factory=lambda: {
        SlotSymbol.DIAMOND: 3.0,
        SlotSymbol.SEVEN: 3.0,
        SlotSymbol.BAR: 2.0,
        SlotSymbol.CHERRY: 1.5,
        SlotSymbol.LEMON: 1.5,
    })
    reel_count: int = 3

    def reel_pool(self) -> tuple[SlotSymbol, ...]:
        """Flattened pool - one entry per unit of weight."""
        pool = []
        for symbol, weight in self.reel_weights.items():
            pool.extend([symbol] * weight)
        return tuple(pool)


# ═══════════════════════════════════════════════════════════════
# Roulette (European, single zero)
# ═══════════════════════════════════════════════════════════════

class RouletteTable(_Table):
    """Single-zero wheel and the gross payout factor per bet type."""
    pockets: int = 37                   # 0..36
    red_numbers: frozenset[int] = frozenset({
        1, 3, 5, 7, 9,
        12, 14, 16, 18,
        19, 21, 23, 25, 27,
        30, 32, 34, 36,
    })
    # Gross return as a multiple of the stake (stake is not added back)
    payouts: BetPayouts = Field(default_factory=lambda: {
        RouletteBetType.STRAIGHT: 35,
        RouletteBetType.COLOR: 2,
        RouletteBetType.ODD_EVEN: 2,
        RouletteBetType.LOW_HIGH: 2,
    })
    low_range: tuple[int, int] = (1, 18)
    high_range: tuple[int, int] = (19, 36)

    def color_of(self, number: int) -> RouletteColor:
        if number == 0:
            return RouletteColor.GREEN
        return RouletteColor.RED if number in self.red_numbers else RouletteColor.BLACK


# ═══════════════════════════════════════════════════════════════
# Landmines
# ═══════════════════════════════════════════════════════════════

class MinesTable(_Table):
    """Grid limits and the per-reveal edge of the multiplier curve."""
    min_grid_size: int = 3
    max_grid_size: int = 8
    step_edge_factor: float = 0.96      # applied on every safe reveal
    max_multiplier: float = 50.0
    min_multiplier: float = 1.0


# ═══════════════════════════════════════════════════════════════
# Crash
# ═══════════════════════════════════════════════════════════════

class CrashTable(_Table):
    """Crash point distribution and the fixed-rate growth curve."""
    tail_scale: float = 3.5             # raw = 1 + (-ln(1-U) * tail_scale)
    min_crash: float = 1.01
    max_crash: float = 100.0
    # Curve reaches curve_target_multiplier after curve_target_seconds,
    # for every round regardless of its crash point.
    curve_target_multiplier: float = 50.0
    curve_target_seconds: float = 12.0
    # Target used by Monte Carlo runs (auto cash-out)
    sim_cashout_target: float = 2.0

    @property
    def growth_rate(self) -> float:
        return math.log(self.curve_target_multiplier) / self.curve_target_seconds


SLOTS_TABLE = SlotsTable()
ROULETTE_TABLE = RouletteTable()
MINES_TABLE = MinesTable()
CRASH_TABLE = CrashTable()


# ═══════════════════════════════════════════════════════════════
# Request models (HTTP payloads, camelCase on the wire)
# ═══════════════════════════════════════════════════════════════

def _whole_chips(value, message: str) -> int:
    """Accept ints and integral numeric strings/floats; reject everything else."""
    if isinstance(value, bool) or value is None:
        raise ValueError(message)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(message) from None
    if not math.isfinite(number) or number != int(number):
        raise ValueError(message)
    return int(number)


def _stake(value) -> int:
    amount = _whole_chips(value, "Invalid bet amount")
    if amount < BetLimits.MIN_BET:
        raise ValueError("Bet amount too small")
    if amount > BetLimits.MAX_BET:
        raise ValueError("Bet amount too large")
    return amount


def first_error_message(exc: ValidationError) -> str:
    """Human message for the first failing field of a ValidationError."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    err = errors[0]
    ctx = err.get("ctx") or {}
    if "error" in ctx:
        return str(ctx["error"])
    loc = ".".join(str(p) for p in err.get("loc", ()))
    return f"{loc}: {err['msg']}" if loc else err["msg"]


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class StakeRequest(_Request):
    bet_amount: int = Field(alias="betAmount")

    @field_validator("bet_amount", mode="before")
    @classmethod
    def _check_stake(cls, v):
        return _stake(v)


class SlotsSpinRequest(StakeRequest):
    pass


class CrashStartRequest(StakeRequest):
    # Mixed into the crash point draw; generated server-side when omitted
    client_seed: Optional[str] = Field(default=None, alias="clientSeed", min_length=1, max_length=64)


class MinesStartRequest(StakeRequest):
    grid_size: int = Field(default_factory=lambda: GameConfig.DEFAULT_GRID_SIZE, alias="gridSize")
    mine_count: int = Field(default_factory=lambda: GameConfig.DEFAULT_MINE_COUNT, alias="mineCount")

    @field_validator("grid_size", mode="before")
    @classmethod
    def _check_grid(cls, v):
        return _whole_chips(v, "Invalid grid size")

    @field_validator("mine_count", mode="before")
    @classmethod
    def _check_mines(cls, v):
        return _whole_chips(v, "Invalid mine count")


class MinesRevealRequest(_Request):
    session_id: str = Field(alias="sessionId", min_length=1)
    cell_index: int = Field(alias="cellIndex")

    @field_validator("cell_index", mode="before")
    @classmethod
    def _check_cell(cls, v):
        return _whole_chips(v, "Invalid cell index")


class MinesCashoutRequest(_Request):
    session_id: str = Field(alias="sessionId", min_length=1)


class CrashCashoutRequest(_Request):
    round_id: str = Field(alias="roundId", min_length=1)
    # Untrusted. Anything that is not a number is treated as absent.
    elapsed_seconds: Optional[float] = Field(default=None, alias="elapsedSeconds")

    @field_validator("elapsed_seconds", mode="before")
    @classmethod
    def _lenient_elapsed(cls, v):
        if v is None or isinstance(v, bool):
            return None
        try:
            return float(v)
        except (TypeError, ValueError):
            return None


class CrashResolveRequest(_Request):
    round_id: str = Field(alias="roundId", min_length=1)


class RouletteBetRequest(_Request):
    type: RouletteBetType
    value: Union[int, str]
    amount: int

    @model_validator(mode="before")
    @classmethod
    def _check_shape(cls, data):
        if not isinstance(data, dict) or not data.get("type") or "value" not in data:
            raise ValueError("Invalid bet format")
        if data["type"] not in {t.value for t in RouletteBetType}:
            raise ValueError("Unsupported bet type")
        data = dict(data)
        data["amount"] = _stake(data.get("amount"))
        return data

    @model_validator(mode="after")
    def _check_value(self):
        v = self.value
        if self.type == RouletteBetType.STRAIGHT:
            if not isinstance(v, int) or not 0 <= v <= 36:
                raise ValueError("Invalid straight bet value")
        elif self.type == RouletteBetType.COLOR:
            if v not in ("red", "black"):
                raise ValueError("Invalid color bet value")
        elif self.type == RouletteBetType.ODD_EVEN:
            if v not in ("odd", "even"):
                raise ValueError("Invalid odd/even bet value")
        elif self.type == RouletteBetType.LOW_HIGH:
            if v not in ("low", "high"):
                raise ValueError("Invalid low/high bet value")
        return self


class RouletteSpinRequest(_Request):
    bets: list[RouletteBetRequest]

    @field_validator("bets", mode="before")
    @classmethod
    def _check_count(cls, v):
        if not isinstance(v, list) or not v:
            raise ValueError("At least one bet is required")
        if len(v) > BetLimits.MAX_ROULETTE_BETS:
            raise ValueError("Too many bets for a single spin")
        return v


# ── Economy / admin ──

TaskType = Literal["math", "trivia", "captcha", "typing", "waiting"]
TASK_TYPES = ("math", "trivia", "captcha", "typing", "waiting")


class _TaskRequest(_Request):
    task_type: TaskType = Field(alias="taskType")

    @field_validator("task_type", mode="before")
    @classmethod
    def _check_task_type(cls, v):
        if v not in TASK_TYPES:
            raise ValueError("Invalid task type")
        return v


class TaskStartRequest(_TaskRequest):
    pass


class TaskCompleteRequest(_TaskRequest):
    completion_data: dict = Field(default_factory=dict, alias="completionData")

    @field_validator("completion_data", mode="before")
    @classmethod
    def _default_data(cls, v):
        return {} if v is None else v


class AddChipsRequest(_Request):
    user_id: str = Field(alias="userId", min_length=1)
    amount: int
    reason: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _check_amount(cls, v):
        amount = _whole_chips(v, "Invalid amount")
        if amount == 0:
            raise ValueError("Amount must be non-zero")
        return amount


class TaskConfigUpdate(_TaskRequest):
    reward_amount: int = Field(alias="rewardAmount", ge=0)
    cooldown_seconds: int = Field(alias="cooldownSeconds", ge=0)


class AchievementUnlockRequest(_Request):
    achievement_type: Optional[str] = Field(
        default=None, alias="achievementType", validate_default=True)
    achievement_data: dict = Field(default_factory=dict, alias="achievementData")

    @field_validator("achievement_type", mode="before")
    @classmethod
    def _check_type(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("Achievement type is required")
        if len(v.strip()) > 64:
            raise ValueError("Achievement type is too long")
        return v.strip()

    @field_validator("achievement_data", mode="before")
    @classmethod
    def _default_data(cls, v):
        return {} if v is None else v
