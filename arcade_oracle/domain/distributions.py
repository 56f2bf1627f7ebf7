"""Outcome draws. Every function takes its random source as an argument.

The house edge of Dice and Tower lives in the payout multiplier; the Crash
distribution carries its own edge through the instant-crash band.
"""

import hashlib
import hmac
import math
from typing import List, Sequence

import numpy as np

from arcade_oracle.domain.game_rules import (
    BASIS_POINTS,
    CRASH_INSTANT_PROBABILITY,
    CRASH_MAX_POINT,
    CRASH_MIN_POINT,
    DICE_MAX_RESULT,
    DICE_MIN_RESULT,
)


def draw_dice(rng: np.random.Generator) -> int:
    """Roll one die face uniformly from [1, 100]."""
    return int(rng.integers(DICE_MIN_RESULT, DICE_MAX_RESULT + 1))


def draw_death_tile(rng: np.random.Generator, tiles: int) -> int:
    """Pick the death tile of a row with `tiles` tiles, uniformly from [0, tiles-1]."""
    if tiles < 2:
        raise ValueError("a row needs at least 2 tiles")
    return int(rng.integers(0, tiles))


def draw_tower(rng: np.random.Generator, pattern: Sequence[int]) -> List[int]:
    """Draw the death tile of every row up front, bottom row first."""
    return [draw_death_tile(rng, tiles) for tiles in pattern]


def crash_point_from_sample(u: float) -> int:
    """Map one uniform sample in [0, 1) to a crash point in basis points.

    Args:
        u (float): uniform sample

    Returns:
        int: crash point, 10000 (1.00x) up to 1000000 (100x)
    """
    if not 0.0 <= u < 1.0:
        raise ValueError("sample must be in [0, 1)")
    if u < CRASH_INSTANT_PROBABILITY:
        return CRASH_MIN_POINT
    raw = math.floor(BASIS_POINTS / (1.0 - u))
    return min(CRASH_MAX_POINT, max(CRASH_MIN_POINT, raw))


def draw_crash_point(rng: np.random.Generator) -> int:
    return crash_point_from_sample(float(rng.random()))


def tower_rng(secret: bytes, player: str, nonce: int) -> np.random.Generator:
    """Generator whose stream is fixed by (player, nonce).

    The full death-tile sequence of a Tower game therefore exists before the
    first reveal, and repeating a reveal request returns the same tile.
    """
    message = bytes.fromhex(player[2:].lower()) + nonce.to_bytes(32, "big")
    seed = hmac.new(secret, message, hashlib.sha256).digest()
    return np.random.default_rng(int.from_bytes(seed, "big"))
