from datetime import datetime

from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.schema import Column
from sqlalchemy.types import Boolean, Date, DateTime, Float, Integer, String, Uuid
from uuid6 import uuid7


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"
    wallet_address = Column(String, primary_key=True, index=True)
    username_display = Column(String, nullable=False)
    username_lower = Column(String, unique=True, index=True, nullable=False)
    username_changes_remaining = Column(Integer, default=1)
    lifetime_xp = Column(Integer, default=0)
    current_streak = Column(Integer, default=0)
    last_played_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.now)


class GameSession(Base):
    __tablename__ = "game_sessions"
    game_session_id = Column(Uuid, primary_key=True, default=uuid7)
    wallet_address = Column(String, index=True)
    game = Column(String)
    bet_amount = Column(Float)
    payout = Column(Float)
    multiplier = Column(Float, default=0.0)
    won = Column(Boolean)
    tx_hash = Column(String, nullable=True)
    week_number = Column(Integer)
    year = Column(Integer)
    played_at = Column(DateTime, default=datetime.now)
