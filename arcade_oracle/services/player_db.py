"""DB service layer for players and recorded games.

- Routers should not touch DB sessions directly; they call this module.
- This layer owns session/transaction boundaries.
"""

import logging
import re
from datetime import date
from typing import List, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from arcade_oracle.canonical import normalize_address
from arcade_oracle.crud import CreateData, ReadData, UpdateData
from arcade_oracle.domain.activity_rules import next_streak, week_number
from arcade_oracle.errors import PersistenceError, RegistrationError, UserNotFoundError
from arcade_oracle.models.schema_models import (
    USERNAME_PATTERN,
    GameRecordModel,
    GameSessionSchema,
    UserSchema,
)

MAX_GAMES_LIMIT = 50
_username_re = re.compile(USERNAME_PATTERN)


def wallet_key(wallet: str) -> str:
    return normalize_address(wallet).lower()


def valid_username(username: str) -> bool:
    return bool(_username_re.match(username))


async def read_user(Session: async_sessionmaker, wallet: str) -> UserSchema | None:
    async with Session() as session:
        return await ReadData.read_user(wallet_key(wallet), session)


async def username_available(Session: async_sessionmaker, username: str) -> bool:
    async with Session() as session:
        return await ReadData.read_user_by_username(username.lower(), session) is None


async def register_user(Session: async_sessionmaker, wallet: str, username: str) -> UserSchema:
    """Register a wallet under a unique, case-insensitive username

    Raises:
        RegistrationError: bad username format, wallet already registered or username taken
    """
    wallet_address = wallet_key(wallet)
    if not valid_username(username):
        raise RegistrationError("Username must be 3-16 characters, alphanumeric and underscores only")
    async with Session() as session:
        if await ReadData.read_user(wallet_address, session) is not None:
            raise RegistrationError("Wallet already registered")
        if await ReadData.read_user_by_username(username.lower(), session) is not None:
            raise RegistrationError("Username already taken")
        user = await CreateData.create_user(wallet_address, username, session)
    if user is None:
        raise PersistenceError("Failed to register user")
    return user


async def rename_user(Session: async_sessionmaker, wallet: str, username: str) -> UserSchema:
    wallet_address = wallet_key(wallet)
    if not valid_username(username):
        raise RegistrationError("Username must be 3-16 characters, alphanumeric and underscores only")
    async with Session() as session:
        current = await ReadData.read_user(wallet_address, session)
        if current is None:
            raise UserNotFoundError("User not found")
        if current.username_changes_remaining <= 0:
            raise RegistrationError("No username changes remaining")
        owner = await ReadData.read_user_by_username(username.lower(), session)
        if owner is not None and owner.wallet_address != wallet_address:
            raise RegistrationError("Username already taken")
        user = await UpdateData.update_username(wallet_address, username, session)
    if user is None:
        raise PersistenceError("Failed to update user")
    return user


async def record_game(
    Session: async_sessionmaker, record: GameRecordModel, today: date
) -> Tuple[GameSessionSchema, int]:
    """Store a settled game and move the player's daily streak in one transaction

    Args:
        record (GameRecordModel): game reported after settlement
        today (date): day the game is recorded on

    Raises:
        RegistrationError: the wallet is not registered
        PersistenceError: the write was rolled back; neither the game nor the streak changed

    Returns:
        Tuple[GameSessionSchema, int]: stored game and the streak after it
    """
    wallet_address = wallet_key(record.wallet)
    async with Session() as session:
        user = await ReadData.read_user(wallet_address, session)
        if user is None:
            raise RegistrationError("User not registered")

        streak = next_streak(user.current_streak, user.last_played_date, today)
        try:
            if user.last_played_date != today:
                await UpdateData.stage_streak(wallet_address, streak, today, session)
            game_session = await CreateData.stage_game_session(
                record, week_number(today), today.year, session
            )
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logging.error(f"Failed to record game for {wallet_address}: {e}")
            raise PersistenceError("Failed to record game") from e
        return GameSessionSchema.model_validate(game_session), streak


async def recent_games(Session: async_sessionmaker, wallet: str, limit: int = 10) -> List[GameSessionSchema]:
    async with Session() as session:
        return await ReadData.read_recent_games(
            wallet_key(wallet), max(1, min(limit, MAX_GAMES_LIMIT)), session
        )
