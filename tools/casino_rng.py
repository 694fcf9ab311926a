"""
CHIPCASINO - RNG Provider

Three sources of uniform randomness:

    committed → HMAC-SHA256(server_seed, client_seed:nonce). Crash draws its
                crash point from this: SHA-256(server_seed) is published at
                round start and server_seed is revealed once the round ends,
                so a player can recompute the crash point afterwards.
    secure    → random.SystemRandom (os.urandom under the hood). Games named
                in SECURE_RNG_GAMES, by default Landmines, whose layout stays
                hidden for the whole session.
    uniform   → random.Random (Mersenne Twister). Everything else.

All three expose random(); the secure and uniform sources are full
random.Random objects (randrange, choice, shuffle). Seeded sources exist
for replays and Monte Carlo runs.

Usage:
    from tools.casino_rng import CommittedRNG, get_rng, seeded_rng

    rng = CommittedRNG()            # crash round
    rng.server_seed_hash            # share before the round
    rng = get_rng("landmines")      # SystemRandom
    rng = get_rng("slots")          # shared Mersenne Twister
    rng = seeded_rng(42)            # reproducible
"""

from __future__ import annotations

import hashlib
import hmac
import os
import random
from typing import Iterable, Optional

from config.settings import GameConfig

_uniform = random.Random()
_secure = random.SystemRandom()


def uniform_rng() -> random.Random:
    """Process-wide Mersenne Twister source."""
    return _uniform


def secure_rng() -> random.Random:
    """Process-wide CSPRNG source."""
    return _secure


def seeded_rng(seed) -> random.Random:
    """Fresh deterministic source - same seed, same draws."""
    return random.Random(seed)


def get_rng(game_type: str, secure_games: Optional[Iterable[str]] = None) -> random.Random:
    """Return the RNG a game should draw from."""
    games = GameConfig.SECURE_RNG_GAMES if secure_games is None else frozenset(secure_games)
    if game_type.lower() in games:
        return _secure
    return _uniform


class ScriptedRNG(random.Random):
    """Replays a fixed list of random() values, then falls back to a seeded stream.

    Lets a caller pin the exact uniform draw behind an outcome, e.g. a crash
    point, without monkeypatching the random module.
    """

    def __init__(self, values: Iterable[float], seed=0):
        super().__init__(seed)
        self._values = list(values)

    def random(self) -> float:
        if self._values:
            value = self._values.pop(0)
            if not 0.0 <= value < 1.0:
                raise ValueError(f"Scripted draw out of range [0, 1): {value}")
            return value
        return super().random()


# ═══════════════════════════════════════════════════════════════
# Commit-reveal draws
# ═══════════════════════════════════════════════════════════════

def seed_hash(server_seed: str) -> str:
    """SHA-256 commitment published before the draw."""
    return hashlib.sha256(server_seed.encode()).hexdigest()


def committed_uniform(server_seed: str, client_seed: str, nonce: int) -> float:
    """Float in [0, 1) from the first 8 hex chars of HMAC-SHA256(server_seed, client_seed:nonce)."""
    digest = hmac.new(
        server_seed.encode(),
        f"{client_seed}:{nonce}".encode(),
        hashlib.sha256,
    ).hexdigest()
    return int(digest[:8], 16) / 0x100000000  # 2^32


class CommittedRNG:
    """Verifiable uniform draws for one round.

    server_seed stays secret until the round is over; server_seed_hash is
    what the player sees up front. Each random() call consumes one nonce.
    """

    def __init__(self, client_seed: Optional[str] = None,
                 server_seed: Optional[str] = None, nonce: int = 0):
        self.server_seed = server_seed or os.urandom(32).hex()
        self.server_seed_hash = seed_hash(self.server_seed)
        self.client_seed = client_seed or os.urandom(16).hex()
        self.nonce = nonce

    def random(self) -> float:
        value = committed_uniform(self.server_seed, self.client_seed, self.nonce)
        self.nonce += 1
        return value
