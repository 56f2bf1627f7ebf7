"""Provably-fair game use cases.

- Routers call this module; it owns the validate -> draw -> evaluate ->
  canonicalize -> sign sequence.
- Validation happens before any draw or state change.
- A signature is only produced for an outcome drawn in this call (or, for
  Crash, drawn at start and held in the session store).
- A (player, nonce) has one outcome per game. Dice rolls are recorded in the
  store, Tower rows are derived from the nonce, Crash claims the nonce at start.
"""

import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Sequence

import numpy as np

from arcade_oracle import canonical
from arcade_oracle.attestation import AttestationSigner
from arcade_oracle.domain import distributions, payouts
from arcade_oracle.domain.game_rules import (
    HOUSE_EDGE,
    TOWER_PATTERN,
    validate_cashout_multiplier,
    validate_dice_target,
    validate_tile_index,
    validate_tower_row,
)
from arcade_oracle.errors import InvalidBetError, NonceReusedError
from arcade_oracle.session_store import CrashSession, DiceRoll, SessionStore, game_id

MAX_NONCE = 2**256 - 1


@dataclass(frozen=True)
class DiceOutcome:
    result: int
    won: bool
    multiplier: Decimal
    win_chance: int
    payout: Decimal | None
    signature: str


@dataclass(frozen=True)
class TowerOutcome:
    row: int
    death_tile: int
    signature: str
    safe: bool | None = None
    multiplier: Decimal | None = None
    payout: Decimal | None = None


@dataclass(frozen=True)
class CrashOutcome:
    crash_point: int
    won: bool
    multiplier: Decimal
    payout: Decimal | None
    signature: str


def _check_identity(player: str, nonce: int) -> str:
    if nonce < 0 or nonce > MAX_NONCE:
        raise InvalidBetError("nonce must fit in uint256")
    return canonical.normalize_address(player)


class FairGameService:
    def __init__(
        self,
        signer: AttestationSigner,
        store: SessionStore,
        tower_secret: bytes,
        rng: np.random.Generator | None = None,
        house_edge: Decimal = HOUSE_EDGE,
        tower_pattern: Sequence[int] = TOWER_PATTERN,
        clock: Callable[[], float] = time.time,
    ):
        self.signer = signer
        self.store = store
        self.tower_secret = tower_secret
        self.rng = rng if rng is not None else np.random.default_rng()
        self.house_edge = house_edge
        self.tower_pattern = tuple(tower_pattern)
        self.clock = clock

    async def roll_dice(
        self,
        player: str,
        nonce: int,
        target: int,
        bet_under: bool,
        bet_amount: Decimal | None = None,
    ) -> DiceOutcome:
        """Roll once per nonce and sign (player, nonce, target, betUnder, result).

        A repeated request with the same target and direction gets the first
        roll back, never a new one.

        Raises:
            InvalidBetError: bad player, nonce or target
            NonceReusedError: the nonce was already rolled with another target or direction
        """
        player = _check_identity(player, nonce)
        validate_dice_target(target)

        drawn = DiceRoll(target=target, bet_under=bet_under, result=distributions.draw_dice(self.rng))
        roll = await self.store.record_roll(player, nonce, drawn)
        if roll.target != target or roll.bet_under != bet_under:
            raise NonceReusedError(f"Game {game_id(player, nonce)} was already rolled with other parameters")
        if roll is not drawn:
            logging.info(f"Dice {game_id(player, nonce)}: repeated request, returning the first roll")

        result = roll.result
        evaluation = payouts.evaluate_dice(target, bet_under, result, bet_amount, self.house_edge)
        message = canonical.dice_message(player, nonce, target, bet_under, result)
        attestation = self.signer.sign_message(message)
        logging.info(f"Dice {game_id(player, nonce)}: target={target} under={bet_under} result={result}")
        return DiceOutcome(
            result=result,
            won=evaluation.won,
            multiplier=evaluation.multiplier,
            win_chance=payouts.dice_win_chance(target, bet_under),
            payout=evaluation.payout,
            signature=attestation.signature,
        )

    def death_tiles(self, player: str, nonce: int) -> list:
        """Every row's death tile for the game (player, nonce)."""
        rng = distributions.tower_rng(self.tower_secret, player, nonce)
        return distributions.draw_tower(rng, self.tower_pattern)

    def reveal_tower(
        self,
        player: str,
        nonce: int,
        row: int,
        tiles_in_row: int,
        tile: int | None = None,
        bet_amount: Decimal | None = None,
    ) -> TowerOutcome:
        """Reveal one row's death tile and sign (player, nonce, row, deathTile).

        When `tile` is given the click is evaluated as well.
        """
        player = _check_identity(player, nonce)
        validate_tower_row(row, tiles_in_row, self.tower_pattern)
        if tile is not None:
            validate_tile_index(tile, tiles_in_row)

        death_tile = self.death_tiles(player, nonce)[row]
        message = canonical.tower_message(player, nonce, row, death_tile)
        attestation = self.signer.sign_message(message)
        logging.info(f"Tower {game_id(player, nonce)}: row={row} revealed")

        if tile is None:
            return TowerOutcome(row=row, death_tile=death_tile, signature=attestation.signature)
        evaluation = payouts.evaluate_tower(
            row, tile, death_tile, bet_amount, self.tower_pattern, self.house_edge
        )
        return TowerOutcome(
            row=row,
            death_tile=death_tile,
            signature=attestation.signature,
            safe=evaluation.won,
            multiplier=evaluation.multiplier,
            payout=evaluation.payout,
        )

    async def start_crash(self, player: str, nonce: int) -> str:
        """Draw the crash point and hold it until resolution. Nothing is signed yet.

        Raises:
            SessionAlreadyActiveError: the nonce was already started
        """
        player = _check_identity(player, nonce)
        crash_point = distributions.draw_crash_point(self.rng)
        await self.store.start(player, nonce, CrashSession(crash_point=crash_point, start_time=self.clock()))
        logging.info(f"Crash {game_id(player, nonce)}: started")
        return game_id(player, nonce)

    async def resolve_crash(
        self,
        player: str,
        nonce: int,
        action: str,
        cashout_multiplier: int | None = None,
        bet_amount: Decimal | None = None,
    ) -> CrashOutcome:
        """Consume the session and sign (player, nonce, crashPoint).

        Args:
            action (str): "cashout" or "crash"
            cashout_multiplier (int | None): claimed cashout in basis points, required for "cashout"

        Raises:
            InvalidBetError: unknown action or missing cashout multiplier
            SessionNotFoundError: no active session for (player, nonce)
        """
        player = _check_identity(player, nonce)
        if action not in ("cashout", "crash"):
            raise InvalidBetError(f"Invalid action: {action}")
        if action == "cashout":
            cashout_multiplier = validate_cashout_multiplier(cashout_multiplier)
        else:
            cashout_multiplier = None

        session = await self.store.consume(player, nonce)
        elapsed = self.clock() - session.start_time
        evaluation = payouts.evaluate_crash(session.crash_point, cashout_multiplier, elapsed, bet_amount)
        if action == "cashout" and not evaluation.won:
            logging.warning(
                f"Crash {game_id(player, nonce)}: refused cashout at {cashout_multiplier} "
                f"(crash point {session.crash_point}, elapsed {elapsed:.2f}s)"
            )

        message = canonical.crash_message(player, nonce, session.crash_point)
        attestation = self.signer.sign_message(message)
        logging.info(f"Crash {game_id(player, nonce)}: settled by {action}, won={evaluation.won}")
        return CrashOutcome(
            crash_point=session.crash_point,
            won=evaluation.won,
            multiplier=evaluation.multiplier,
            payout=evaluation.payout,
            signature=attestation.signature,
        )
