"""
CHIPCASINO - Game Outcome Engines

Outcome math for every game on the floor. Each engine exposes
compute_house_edge(), simulate() and generate_config() for Monte Carlo
work, plus its own play API (spin / start / reveal / cash_out / ...).

Usage:
    from sim_engine.rmg import get_game_engine
    engine = get_game_engine("landmines")
    config = engine.generate_config(grid_size=5, mine_count=3, reveals=4)
    results = engine.simulate(config, rounds=100_000)
"""

from sim_engine.rmg.crash import CrashEngine
from sim_engine.rmg.mines import MinesEngine
from sim_engine.rmg.roulette import RouletteEngine
from sim_engine.rmg.slots import SlotsEngine

GAME_ENGINES = {
    "slots": SlotsEngine,
    "landmines": MinesEngine,
    "roulette": RouletteEngine,
    "crash": CrashEngine,
}

# Accepted spellings on the CLI
_ALIASES = {"mines": "landmines"}

GAME_TYPES = list(GAME_ENGINES.keys())


def get_game_engine(game_type: str):
    """Get the engine for a game type."""
    key = game_type.lower()
    cls = GAME_ENGINES.get(_ALIASES.get(key, key))
    if cls is None:
        raise ValueError(f"Unknown game type: {game_type}. Available: {GAME_TYPES}")
    return cls()


def game_registry() -> list:
    """Lobby metadata for every game, in display order."""
    return [cls().get_metadata() for cls in GAME_ENGINES.values()]
