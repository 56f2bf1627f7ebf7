import logging
from datetime import date
from typing import List

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from arcade_oracle.models.schema_models import GameRecordModel, GameSessionSchema, UserSchema
from arcade_oracle.models.schemas import GameSession, User


class ReadData:
    @staticmethod
    async def read_user(wallet_address: str, session: AsyncSession) -> UserSchema | None:
        """Read a registered user

        Args:
            wallet_address (str): lower-cased wallet address

        Returns:
            UserSchema | None: None if the wallet is not registered
        """
        stmt = select(User).where(User.wallet_address == wallet_address)
        result = await session.execute(stmt)
        user = result.scalars().first()
        if user is None:
            return None
        return UserSchema.model_validate(user)

    @staticmethod
    async def read_user_by_username(username_lower: str, session: AsyncSession) -> UserSchema | None:
        stmt = select(User).where(User.username_lower == username_lower)
        result = await session.execute(stmt)
        user = result.scalars().first()
        if user is None:
            return None
        return UserSchema.model_validate(user)

    @staticmethod
    async def read_recent_games(
        wallet_address: str, limit: int, session: AsyncSession
    ) -> List[GameSessionSchema]:
        """Read the latest games of a wallet, newest first"""
        stmt = (
            select(GameSession)
            .where(GameSession.wallet_address == wallet_address)
            .order_by(desc(GameSession.played_at))
            .limit(limit)
        )
        result = await session.execute(stmt)
        return [GameSessionSchema.model_validate(row) for row in result.scalars().all()]


class CreateData:
    @staticmethod
    async def create_user(wallet_address: str, username: str, session: AsyncSession) -> UserSchema | None:
        try:
            new_user = User(
                wallet_address=wallet_address,
                username_display=username,
                username_lower=username.lower(),
                username_changes_remaining=1,
                lifetime_xp=0,
                current_streak=0,
                last_played_date=None,
            )
            session.add(new_user)
            await session.commit()
            return UserSchema.model_validate(new_user)
        except SQLAlchemyError as e:
            await session.rollback()
            logging.error(f"Error creating user data: {e}")
            return None

    @staticmethod
    async def stage_game_session(
        record: GameRecordModel, week_number: int, year: int, session: AsyncSession
    ) -> GameSession:
        """Insert one settled game. Flushed, not committed: the caller owns the transaction.

        Args:
            record (GameRecordModel): game reported by the client after settlement
            week_number (int): week of the year the game was played
            year (int): year the game was played
        """
        game_session = GameSession(
            wallet_address=record.wallet.lower(),
            game=record.game,
            bet_amount=record.bet_amount,
            payout=record.payout,
            multiplier=record.multiplier,
            won=record.won,
            tx_hash=record.tx_hash,
            week_number=week_number,
            year=year,
        )
        session.add(game_session)
        await session.flush()
        return game_session


class UpdateData:
    @staticmethod
    async def update_username(wallet_address: str, username: str, session: AsyncSession) -> UserSchema | None:
        """Rename a user and spend one rename"""
        try:
            stmt = select(User).where(User.wallet_address == wallet_address)
            result = await session.execute(stmt)
            user = result.scalars().first()
            if user is None:
                return None
            user.username_display = username
            user.username_lower = username.lower()
            user.username_changes_remaining = user.username_changes_remaining - 1
            await session.commit()
            return UserSchema.model_validate(user)
        except SQLAlchemyError as e:
            await session.rollback()
            logging.error(f"Failed to update username: {e}")
            return None

    @staticmethod
    async def stage_streak(wallet_address: str, streak: int, today: date, session: AsyncSession) -> bool:
        """Set the daily streak. Flushed, not committed: the caller owns the transaction."""
        stmt = select(User).where(User.wallet_address == wallet_address)
        result = await session.execute(stmt)
        user = result.scalars().first()
        if user is None:
            return False
        user.current_streak = streak
        user.last_played_date = today
        await session.flush()
        return True
