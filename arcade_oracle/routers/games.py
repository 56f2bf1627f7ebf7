import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from arcade_oracle.errors import (
    InvalidBetError,
    SessionAlreadyActiveError,
    SessionNotFoundError,
    SigningError,
)
from arcade_oracle.models.bet_models import (
    CrashModel,
    CrashResolveResponse,
    CrashStartResponse,
    DiceRollModel,
    DiceRollResponse,
    SignerModel,
    TowerRevealModel,
    TowerRevealResponse,
)
from arcade_oracle.services.fair_games import FairGameService

game_router = APIRouter(prefix="/api")


def get_game_service(request: Request) -> FairGameService:
    return request.app.state.game_service


def _as_http_error(e: Exception) -> HTTPException:
    if isinstance(e, InvalidBetError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, SessionNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, SessionAlreadyActiveError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    logging.error(f"Signing failed: {e}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Signing failed")


def _optional_float(value) -> float | None:
    return None if value is None else float(value)


class DiceAPI:
    @staticmethod
    @game_router.post("/dice/roll", response_model=DiceRollResponse)
    async def roll(bet: DiceRollModel, service: FairGameService = Depends(get_game_service)):
        try:
            outcome = await service.roll_dice(
                bet.user_address, bet.nonce, bet.target, bet.bet_under, bet.bet_amount
            )
        except (InvalidBetError, SessionAlreadyActiveError, SigningError) as e:
            raise _as_http_error(e) from e
        return DiceRollResponse(
            result=outcome.result,
            won=outcome.won,
            multiplier=float(outcome.multiplier),
            win_chance=outcome.win_chance,
            payout=_optional_float(outcome.payout),
            signature=outcome.signature,
        )


class TowerAPI:
    @staticmethod
    @game_router.post("/tower/reveal", response_model=TowerRevealResponse, response_model_exclude_none=True)
    async def reveal(bet: TowerRevealModel, service: FairGameService = Depends(get_game_service)):
        try:
            outcome = service.reveal_tower(
                bet.user_address, bet.nonce, bet.row, bet.tiles_in_row, bet.tile, bet.bet_amount
            )
        except (InvalidBetError, SigningError) as e:
            raise _as_http_error(e) from e
        return TowerRevealResponse(
            death_tile=outcome.death_tile,
            row=outcome.row,
            signature=outcome.signature,
            safe=outcome.safe,
            multiplier=_optional_float(outcome.multiplier),
            payout=_optional_float(outcome.payout),
        )


class CrashAPI:
    @staticmethod
    @game_router.post("/crash", response_model=CrashStartResponse | CrashResolveResponse)
    async def crash(bet: CrashModel, service: FairGameService = Depends(get_game_service)):
        """Start a round, or settle it by cashout or crash.

        The crash point is withheld until settlement. Settlement consumes the
        round, so a second cashout or crash for the same nonce is a 404.
        """
        try:
            if bet.action == "start":
                game_id = await service.start_crash(bet.user_address, bet.nonce)
                return CrashStartResponse(success=True, game_id=game_id)
            outcome = await service.resolve_crash(
                bet.user_address, bet.nonce, bet.action, bet.cashout_multiplier, bet.bet_amount
            )
        except (InvalidBetError, SessionNotFoundError, SessionAlreadyActiveError, SigningError) as e:
            raise _as_http_error(e) from e
        return CrashResolveResponse(
            crash_point=outcome.crash_point,
            signature=outcome.signature,
            won=outcome.won,
            success=outcome.won,
            multiplier=float(outcome.multiplier),
            payout=_optional_float(outcome.payout),
        )


class SignerAPI:
    @staticmethod
    @game_router.get("/signer", response_model=SignerModel)
    async def signer(service: FairGameService = Depends(get_game_service)):
        """Address the settlement contracts must trust."""
        return SignerModel(address=service.signer.address)
