"""
CHIPCASINO - Configuration

Betting limits, economy rewards and anti-cheat tolerances.
Every value can be overridden from the environment (or a .env file).

Payout tables and curve constants live in config/game_schema.py; this
module only holds the knobs an operator is expected to tune.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).parent.parent


def _env_int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


def _env_float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


# ============================================================
# Betting limits
# ============================================================

class BetLimits:
    MIN_BET = _env_int("MIN_BET", 1)
    MAX_BET = _env_int("MAX_BET", 1_000_000)
    MAX_ROULETTE_BETS = _env_int("MAX_ROULETTE_BETS", 32)   # bets per spin


# ============================================================
# Game defaults & anti-cheat
# ============================================================

class GameConfig:
    # Landmines start request defaults (grid is gridSize x gridSize)
    DEFAULT_GRID_SIZE = _env_int("DEFAULT_GRID_SIZE", 5)
    DEFAULT_MINE_COUNT = _env_int("DEFAULT_MINE_COUNT", 5)

    # How far (seconds) a client-reported crash elapsed time may run ahead
    # of server time and still be trusted.
    CRASH_CLIENT_TOLERANCE_S = _env_float("CRASH_CLIENT_TOLERANCE_S", 0.25)

    # Games whose draws come from the OS CSPRNG instead of the Mersenne Twister.
    # Crash always uses HMAC commit-reveal draws (tools/casino_rng.CommittedRNG).
    SECURE_RNG_GAMES = frozenset(
        g.strip().lower()
        for g in os.getenv("SECURE_RNG_GAMES", "landmines").split(",")
        if g.strip()
    )


# ============================================================
# Economy
# ============================================================

class EconomyConfig:
    STARTING_CHIPS = _env_int("STARTING_CHIPS", 10_000)
    DAILY_BONUS = _env_int("DAILY_BONUS", 100_000)
    DAILY_BONUS_SECONDS = _env_int("DAILY_BONUS_SECONDS", 24 * 60 * 60)

    # Seed rows for task_config. Admins retune these at runtime via
    # PUT /api/admin/tasks/config; the table wins once it exists.
    TASK_DEFAULTS = {
        "captcha": {"reward_amount": 2_000, "cooldown_seconds": 180},
        "math":    {"reward_amount": 5_000, "cooldown_seconds": 300},
        "trivia":  {"reward_amount": 3_000, "cooldown_seconds": 300},
        "typing":  {"reward_amount": 4_000, "cooldown_seconds": 300},
        "waiting": {"reward_amount": 1_000, "cooldown_seconds": 120},
    }


# ============================================================
# Web server
# ============================================================

class ServerConfig:
    PORT = _env_int("PORT", 5000)
    DEBUG = os.getenv("FLASK_DEBUG", "false").lower() == "true"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    SESSION_DAYS = _env_int("SESSION_DAYS", 7)
