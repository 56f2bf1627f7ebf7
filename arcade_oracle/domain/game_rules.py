"""Game constants and bet validation shared by the three games.

Rule of thumb:
- OK: bounds, validation, pure transformations.
- Not OK: touching DB sessions, Redis, FastAPI, datetime.now(), etc.
"""

from decimal import Decimal

from arcade_oracle.errors import InvalidBetError

HOUSE_EDGE = Decimal("0.10")

# ==============================================================================
# ==== Dice ====================================================================
# ==============================================================================
DICE_MIN_RESULT = 1
DICE_MAX_RESULT = 100
DICE_MIN_TARGET = 2
DICE_MAX_TARGET = 98

# ==============================================================================
# ==== Tower ===================================================================
# ==============================================================================
# Tiles per row, bottom row first. Matches TOWER_ROWS on the TowerGame contract.
TOWER_PATTERN = (7, 6, 5, 4, 3, 4, 5, 6, 7, 6, 5, 4, 3, 4, 5, 6, 7, 6, 5, 4)
TOWER_ROWS = len(TOWER_PATTERN)

# ==============================================================================
# ==== Crash ===================================================================
# ==============================================================================
# Multipliers are basis points: 10000 == 1.00x.
BASIS_POINTS = 10000
CRASH_INSTANT_PROBABILITY = 0.10
CRASH_MIN_POINT = 10000
CRASH_MAX_POINT = 1000000
# The client animates 1.06 ** (10 * elapsed_seconds).
CRASH_GROWTH_BASE = 1.06
CRASH_GROWTH_RATE = 10.0
# Seconds of slack for network latency between the client tick and the cashout request.
CRASH_LATENCY_ALLOWANCE = 1.0


def validate_dice_target(target: int) -> None:
    if target < DICE_MIN_TARGET or target > DICE_MAX_TARGET:
        raise InvalidBetError(
            f"target must be between {DICE_MIN_TARGET} and {DICE_MAX_TARGET}"
        )


def validate_tower_row(row: int, tiles_in_row: int, pattern=TOWER_PATTERN) -> None:
    """Check that row exists and that the caller's tile count matches the pattern."""
    if row < 0 or row >= len(pattern):
        raise InvalidBetError(f"row must be between 0 and {len(pattern) - 1}")
    if tiles_in_row != pattern[row]:
        raise InvalidBetError(
            f"row {row} has {pattern[row]} tiles, got tilesInRow={tiles_in_row}"
        )


def validate_tile_index(tile: int, tiles_in_row: int) -> None:
    if tile < 0 or tile >= tiles_in_row:
        raise InvalidBetError(f"tile must be between 0 and {tiles_in_row - 1}")


def validate_cashout_multiplier(cashout_multiplier: int | None) -> int:
    if cashout_multiplier is None:
        raise InvalidBetError("cashoutMultiplier is required to cash out")
    if cashout_multiplier < CRASH_MIN_POINT:
        raise InvalidBetError(
            f"cashoutMultiplier must be at least {CRASH_MIN_POINT} basis points"
        )
    return cashout_multiplier
