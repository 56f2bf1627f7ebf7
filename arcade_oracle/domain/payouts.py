"""Outcome evaluation: (bet, drawn outcome) -> won / multiplier / payout.

Multipliers are Decimal, rounded half-up to 2 places, so the values shown
to players match the contract's fixed-point table.
"""

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, ROUND_DOWN, Decimal
from typing import List, Sequence

from arcade_oracle.domain.game_rules import (
    BASIS_POINTS,
    CRASH_GROWTH_BASE,
    CRASH_GROWTH_RATE,
    CRASH_LATENCY_ALLOWANCE,
    CRASH_MAX_POINT,
    CRASH_MIN_POINT,
    DICE_MAX_RESULT,
    HOUSE_EDGE,
    TOWER_PATTERN,
    validate_tile_index,
)
from arcade_oracle.errors import InvalidBetError

CENT = Decimal("0.01")
# USDC carries 6 decimals on chain.
PAYOUT_QUANTUM = Decimal("0.000001")


@dataclass(frozen=True)
class Evaluation:
    won: bool
    multiplier: Decimal
    payout: Decimal | None = None


def _payout(bet_amount: Decimal | None, won: bool, multiplier: Decimal) -> Decimal | None:
    if bet_amount is None:
        return None
    if not won:
        return Decimal(0)
    return (bet_amount * multiplier).quantize(PAYOUT_QUANTUM, rounding=ROUND_DOWN)


# ==============================================================================
# ==== Dice ====================================================================
# ==============================================================================


def dice_win_chance(target: int, bet_under: bool) -> int:
    """Number of winning faces out of 100."""
    if bet_under:
        return max(0, target - 1)
    return max(0, DICE_MAX_RESULT - target)


def dice_multiplier(target: int, bet_under: bool, house_edge: Decimal = HOUSE_EDGE) -> Decimal:
    win_chance = dice_win_chance(target, bet_under)
    if win_chance <= 0:
        raise InvalidBetError(f"target {target} leaves no winning faces")
    fair = Decimal(DICE_MAX_RESULT) / Decimal(win_chance)
    return (fair * (1 - house_edge)).quantize(CENT, rounding=ROUND_HALF_UP)


def dice_won(result: int, target: int, bet_under: bool) -> bool:
    # result == target loses in both directions
    if bet_under:
        return result < target
    return result > target


def evaluate_dice(
    target: int,
    bet_under: bool,
    result: int,
    bet_amount: Decimal | None = None,
    house_edge: Decimal = HOUSE_EDGE,
) -> Evaluation:
    multiplier = dice_multiplier(target, bet_under, house_edge)
    won = dice_won(result, target, bet_under)
    return Evaluation(won=won, multiplier=multiplier, payout=_payout(bet_amount, won, multiplier))


# ==============================================================================
# ==== Tower ===================================================================
# ==============================================================================


def tower_multiplier(
    row: int, pattern: Sequence[int] = TOWER_PATTERN, house_edge: Decimal = HOUSE_EDGE
) -> Decimal:
    """Multiplier after surviving rows 0..row.

    Args:
        row (int): highest row survived
        pattern (Sequence[int]): tiles per row

    Returns:
        Decimal: (1 / product of survival rates) * (1 - house_edge), 2 places
    """
    if row < 0 or row >= len(pattern):
        raise InvalidBetError(f"row must be between 0 and {len(pattern) - 1}")
    survival = Decimal(1)
    for tiles in pattern[: row + 1]:
        survival *= Decimal(tiles - 1) / Decimal(tiles)
    return ((1 / survival) * (1 - house_edge)).quantize(CENT, rounding=ROUND_HALF_UP)


def tower_multipliers(
    pattern: Sequence[int] = TOWER_PATTERN, house_edge: Decimal = HOUSE_EDGE
) -> List[Decimal]:
    return [tower_multiplier(row, pattern, house_edge) for row in range(len(pattern))]


def evaluate_tower(
    row: int,
    tile: int,
    death_tile: int,
    bet_amount: Decimal | None = None,
    pattern: Sequence[int] = TOWER_PATTERN,
    house_edge: Decimal = HOUSE_EDGE,
) -> Evaluation:
    """Evaluate one click. A safe click moves the cash-out value to this row's multiplier."""
    multiplier = tower_multiplier(row, pattern, house_edge)
    validate_tile_index(tile, pattern[row])
    safe = tile != death_tile
    return Evaluation(
        won=safe,
        multiplier=multiplier if safe else Decimal(0),
        payout=_payout(bet_amount, safe, multiplier),
    )


# ==============================================================================
# ==== Crash ===================================================================
# ==============================================================================

_MAX_GROWTH_EXPONENT = math.log(CRASH_MAX_POINT / BASIS_POINTS)


def crash_multiplier_at(elapsed_seconds: float) -> int:
    """Multiplier the client displays after `elapsed_seconds`, in basis points.

    The client floors to 0.01x, so the result is always a multiple of 100.
    """
    if elapsed_seconds <= 0:
        return CRASH_MIN_POINT
    exponent = CRASH_GROWTH_RATE * elapsed_seconds * math.log(CRASH_GROWTH_BASE)
    if exponent >= _MAX_GROWTH_EXPONENT:
        return CRASH_MAX_POINT
    hundredths = math.floor(math.exp(exponent) * 100)
    return max(CRASH_MIN_POINT, hundredths * 100)


def crash_cashout_reachable(cashout_multiplier: int, elapsed_seconds: float) -> bool:
    return cashout_multiplier <= crash_multiplier_at(elapsed_seconds + CRASH_LATENCY_ALLOWANCE)


def evaluate_crash(
    crash_point: int,
    cashout_multiplier: int | None,
    elapsed_seconds: float | None = None,
    bet_amount: Decimal | None = None,
) -> Evaluation:
    """Evaluate a crash resolution.

    The crash point is authoritative. A claimed cashout above it, or above
    what the growth curve could have shown since start, is not a win.

    Args:
        crash_point (int): drawn at start, basis points
        cashout_multiplier (int | None): client-reported cashout, basis points. None for a crash
        elapsed_seconds (float | None): time since start. None skips the growth check

    Returns:
        Evaluation: multiplier is the cashout multiplier as a decimal (e.g. 2.5)
    """
    won = cashout_multiplier is not None and cashout_multiplier <= crash_point
    if won and elapsed_seconds is not None:
        won = crash_cashout_reachable(cashout_multiplier, elapsed_seconds)
    multiplier = Decimal(cashout_multiplier) / BASIS_POINTS if won else Decimal(0)
    return Evaluation(won=won, multiplier=multiplier, payout=_payout(bet_amount, won, multiplier))
