import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import async_sessionmaker

from arcade_oracle.errors import InvalidBetError, PersistenceError, RegistrationError, UserNotFoundError
from arcade_oracle.models.schema_models import (
    GameListResponse,
    GameRecordModel,
    GameRecordResponse,
    UsernameCheckResponse,
    UserModel,
    UserResponse,
)
from arcade_oracle.services import player_db

player_router = APIRouter(prefix="/api")


def get_session_factory(request: Request) -> async_sessionmaker:
    return request.app.state.Session


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _server_error(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


class UserAPI:
    @staticmethod
    @player_router.get("/users", response_model=UserResponse)
    async def get_user(wallet: str = Query(...), Session: async_sessionmaker = Depends(get_session_factory)):
        try:
            user = await player_db.read_user(Session, wallet)
        except InvalidBetError as e:
            raise _bad_request(str(e)) from e
        return UserResponse(user=user, registered=user is not None, success=True)

    @staticmethod
    @player_router.post("/users", response_model=UserResponse)
    async def register(body: UserModel, Session: async_sessionmaker = Depends(get_session_factory)):
        try:
            user = await player_db.register_user(Session, body.wallet, body.username)
        except (InvalidBetError, RegistrationError) as e:
            raise _bad_request(str(e)) from e
        except PersistenceError as e:
            raise _server_error(str(e)) from e
        logging.info(f"Registered user {user.username_display} for {user.wallet_address}")
        return UserResponse(user=user, registered=True, success=True)

    @staticmethod
    @player_router.patch("/users", response_model=UserResponse)
    async def rename(body: UserModel, Session: async_sessionmaker = Depends(get_session_factory)):
        try:
            user = await player_db.rename_user(Session, body.wallet, body.username)
        except UserNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
        except (InvalidBetError, RegistrationError) as e:
            raise _bad_request(str(e)) from e
        except PersistenceError as e:
            raise _server_error(str(e)) from e
        return UserResponse(user=user, registered=True, success=True)

    @staticmethod
    @player_router.get("/users/check", response_model=UsernameCheckResponse)
    async def check_username(username: str = Query(...), Session: async_sessionmaker = Depends(get_session_factory)):
        if not player_db.valid_username(username):
            return UsernameCheckResponse(available=False, username=username, error="Invalid username format")
        available = await player_db.username_available(Session, username)
        return UsernameCheckResponse(available=available, username=username)


class GameRecordAPI:
    @staticmethod
    @player_router.post("/games", response_model=GameRecordResponse)
    async def record_game(record: GameRecordModel, Session: async_sessionmaker = Depends(get_session_factory)):
        try:
            game_session, streak = await player_db.record_game(Session, record, date.today())
        except (InvalidBetError, RegistrationError) as e:
            raise _bad_request(str(e)) from e
        except PersistenceError as e:
            raise _server_error(str(e)) from e
        return GameRecordResponse(success=True, session=game_session, streak=streak)

    @staticmethod
    @player_router.get("/games", response_model=GameListResponse)
    async def recent_games(
        wallet: str = Query(...),
        limit: int = Query(10),
        Session: async_sessionmaker = Depends(get_session_factory),
    ):
        try:
            games = await player_db.recent_games(Session, wallet, limit)
        except InvalidBetError as e:
            raise _bad_request(str(e)) from e
        return GameListResponse(games=games)
