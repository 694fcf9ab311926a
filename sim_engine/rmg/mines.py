"""Landmines - hidden mine grid, cash out before you step on one.

The multiplier is a product over safe reveals of the inverse survival odds
of that step, shaved by a flat per-step edge, floored at 1x and capped at
50x. It depends only on (grid size, mine count, safe reveals), never on
which cells were picked.
"""
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from config.game_schema import MINES_TABLE, MinesTable
from sim_engine.rmg.base import BaseRMGEngine, gross_payout
from sim_engine.rmg.errors import GameFinishedError, InvalidGameParameters, InvalidMoveError

IN_PROGRESS = "in_progress"
HIT_MINE = "hit_mine"
CASHED_OUT = "cashed_out"


@dataclass
class MinesSession:
    id: str
    user_id: Optional[str]
    bet_amount: int
    grid_size: int
    mine_count: int
    mine_positions: list
    revealed_cells: list = field(default_factory=list)
    safe_revealed: int = 0
    status: str = IN_PROGRESS
    current_multiplier: float = 1.0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == IN_PROGRESS

    @property
    def total_cells(self) -> int:
        return self.grid_size * self.grid_size

    def to_public_dict(self) -> dict:
        """Client view. The layout stays hidden until the game ends."""
        data = {
            "id": self.id,
            "betAmount": self.bet_amount,
            "gridSize": self.grid_size,
            "mineCount": self.mine_count,
            "revealedCells": list(self.revealed_cells),
            "safeRevealed": self.safe_revealed,
            "currentMultiplier": self.current_multiplier,
            "status": self.status,
            "isActive": self.is_active,
        }
        if not self.is_active:
            data["minePositions"] = sorted(self.mine_positions)
        return data


@dataclass
class RevealOutcome:
    hit_mine: bool
    cell_index: int
    safe_revealed: int
    multiplier: float

    def to_dict(self) -> dict:
        return {
            "hitMine": self.hit_mine,
            "cellIndex": self.cell_index,
            "safeRevealed": self.safe_revealed,
            "multiplier": self.multiplier,
        }


class MinesEngine(BaseRMGEngine):
    game_type = "landmines"
    display_name = "Landmines"
    description = "Reveal safe cells to grow your multiplier. Hit a mine and lose it all."
    emoji = "💣"

    def __init__(self, table: Optional[MinesTable] = None):
        self.table = table or MINES_TABLE

    # ── Pure multiplier curve ──

    def calculate_multiplier(self, grid_size: int, mine_count: int, safe_revealed: int) -> float:
        if safe_revealed <= 0:
            return self.table.min_multiplier
        total = grid_size * grid_size
        safe_cells = total - mine_count
        mult = 1.0
        i = 0
        while i < safe_revealed and i < safe_cells:
            remaining = total - i
            survive = 1 - mine_count / remaining
            if survive <= 0:
                break
            mult *= (1 / survive) * self.table.step_edge_factor
            i += 1
        if not math.isfinite(mult) or mult < self.table.min_multiplier:
            return self.table.min_multiplier
        return round(min(mult, self.table.max_multiplier), 2)

    def multiplier_ladder(self, grid_size: int, mine_count: int) -> list:
        """Multiplier after each possible safe reveal, 1..safe cells."""
        self.validate_parameters(grid_size, mine_count)
        safe_cells = grid_size * grid_size - mine_count
        return [self.calculate_multiplier(grid_size, mine_count, k)
                for k in range(1, safe_cells + 1)]

    # ── Session lifecycle ──

    def validate_parameters(self, grid_size: int, mine_count: int, bet_amount: int = 1):
        if not isinstance(bet_amount, int) or bet_amount < 1:
            raise InvalidGameParameters("Invalid bet amount")
        if not isinstance(grid_size, int) or not (
                self.table.min_grid_size <= grid_size <= self.table.max_grid_size):
            raise InvalidGameParameters("Invalid grid size")
        if not isinstance(mine_count, int) or not 1 <= mine_count <= grid_size * grid_size - 1:
            raise InvalidGameParameters("Invalid mine count")

    def start(self, bet_amount: int, grid_size: int, mine_count: int, rng,
              user_id: Optional[str] = None) -> MinesSession:
        self.validate_parameters(grid_size, mine_count, bet_amount)
        cells = list(range(grid_size * grid_size))
        rng.shuffle(cells)
        return MinesSession(
            id=str(uuid.uuid4()),
            user_id=user_id,
            bet_amount=bet_amount,
            grid_size=grid_size,
            mine_count=mine_count,
            mine_positions=sorted(cells[:mine_count]),
        )

    def reveal(self, session: MinesSession, cell_index) -> RevealOutcome:
        if not session.is_active:
            raise GameFinishedError("Game is already finished")
        if (not isinstance(cell_index, int) or isinstance(cell_index, bool)
                or not 0 <= cell_index < session.total_cells):
            raise InvalidMoveError("Invalid cell index")
        if cell_index in session.revealed_cells:
            raise InvalidMoveError("Cell already revealed")

        session.revealed_cells.append(cell_index)
        if cell_index in session.mine_positions:
            session.status = HIT_MINE
            session.current_multiplier = 0.0
            session.finished_at = datetime.now(timezone.utc)
            return RevealOutcome(True, cell_index, session.safe_revealed, 0.0)

        session.safe_revealed += 1
        session.current_multiplier = self.calculate_multiplier(
            session.grid_size, session.mine_count, session.safe_revealed)
        return RevealOutcome(False, cell_index, session.safe_revealed,
                             session.current_multiplier)

    def cash_out(self, session: MinesSession) -> int:
        """Close the session and return the gross payout."""
        if not session.is_active:
            raise GameFinishedError("Game is already finished")
        if session.safe_revealed <= 0:
            raise InvalidMoveError("Reveal at least one cell before cashing out")
        mult = self.calculate_multiplier(
            session.grid_size, session.mine_count, session.safe_revealed)
        session.current_multiplier = mult
        session.status = CASHED_OUT
        session.finished_at = datetime.now(timezone.utc)
        return gross_payout(session.bet_amount, mult)

    # ── Math model ──

    def generate_config(self, grid_size: int = 5, mine_count: int = 5,
                        reveals: int = 3, **kw) -> dict:
        self.validate_parameters(grid_size, mine_count)
        safe_cells = grid_size * grid_size - mine_count
        return {
            "game_type": "landmines",
            "grid_size": grid_size,
            "mine_count": mine_count,
            "reveals": max(1, min(safe_cells, reveals)),
        }

    def survival_probability(self, grid_size: int, mine_count: int, reveals: int) -> float:
        total = grid_size * grid_size
        prob = 1.0
        for i in range(reveals):
            prob *= (total - mine_count - i) / (total - i)
        return max(prob, 0.0)

    def compute_house_edge(self, config: dict) -> float:
        """Edge for a player who always cashes out after `reveals` safe cells."""
        gs, mc, k = config["grid_size"], config["mine_count"], config["reveals"]
        ev = self.survival_probability(gs, mc, k) * self.calculate_multiplier(gs, mc, k)
        return 1.0 - ev

    def simulate_round(self, config: dict, rng) -> float:
        gs, mc, k = config["grid_size"], config["mine_count"], config["reveals"]
        cells = list(range(gs * gs))
        rng.shuffle(cells)
        mines = set(cells[:mc])
        picks = list(range(gs * gs))
        rng.shuffle(picks)
        for cell in picks[:k]:
            if cell in mines:
                return 0.0
        return self.calculate_multiplier(gs, mc, k)
