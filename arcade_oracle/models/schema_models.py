from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

USERNAME_PATTERN = r"^[a-zA-Z0-9_]{3,16}$"


class UserSchema(BaseModel):
    wallet_address: str
    username_display: str
    username_lower: str
    username_changes_remaining: int
    lifetime_xp: int
    current_streak: int
    last_played_date: Optional[date] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GameSessionSchema(BaseModel):
    game_session_id: UUID
    wallet_address: str
    game: str
    bet_amount: float
    payout: float
    multiplier: float
    won: bool
    tx_hash: Optional[str] = None
    week_number: int
    year: int
    played_at: datetime

    class Config:
        from_attributes = True


class UserModel(BaseModel):
    wallet: str
    username: str


class UserResponse(BaseModel):
    user: Optional[UserSchema] = None
    registered: bool = False
    success: bool = False


class UsernameCheckResponse(BaseModel):
    available: bool
    username: str
    error: Optional[str] = None


class GameRecordModel(BaseModel):
    wallet: str
    game: Literal["dice", "tower", "crash"]
    bet_amount: float = Field(ge=0)
    payout: float = Field(ge=0)
    multiplier: float = 0.0
    won: bool
    tx_hash: Optional[str] = None


class GameRecordResponse(BaseModel):
    success: bool
    session: GameSessionSchema
    streak: int


class GameListResponse(BaseModel):
    games: List[GameSessionSchema]
