from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field


class DiceRollModel(BaseModel):
    user_address: str = Field(alias="userAddress")
    nonce: int = Field(ge=0)
    target: int
    bet_under: bool = Field(alias="betUnder")
    bet_amount: Optional[Decimal] = Field(default=None, alias="betAmount", gt=0)

    class Config:
        populate_by_name = True


class DiceRollResponse(BaseModel):
    result: int
    won: bool
    multiplier: float
    win_chance: int = Field(alias="winChance")
    payout: Optional[float] = None
    signature: str

    class Config:
        populate_by_name = True


class TowerRevealModel(BaseModel):
    user_address: str = Field(alias="userAddress")
    nonce: int = Field(ge=0)
    row: int
    tiles_in_row: int = Field(alias="tilesInRow")
    tile: Optional[int] = None
    bet_amount: Optional[Decimal] = Field(default=None, alias="betAmount", gt=0)

    class Config:
        populate_by_name = True


class TowerRevealResponse(BaseModel):
    death_tile: int = Field(alias="deathTile")
    row: int
    signature: str
    safe: Optional[bool] = None
    multiplier: Optional[float] = None
    payout: Optional[float] = None

    class Config:
        populate_by_name = True


class CrashModel(BaseModel):
    action: Literal["start", "cashout", "crash"]
    user_address: str = Field(alias="userAddress")
    nonce: int = Field(ge=0)
    # basis points, 10000 == 1.00x
    cashout_multiplier: Optional[int] = Field(default=None, alias="cashoutMultiplier")
    bet_amount: Optional[Decimal] = Field(default=None, alias="betAmount", gt=0)

    class Config:
        populate_by_name = True


class CrashStartResponse(BaseModel):
    success: bool = True
    game_id: str = Field(alias="gameId")

    class Config:
        populate_by_name = True


class CrashResolveResponse(BaseModel):
    crash_point: int = Field(alias="crashPoint")
    signature: str
    won: bool
    success: bool
    multiplier: float
    payout: Optional[float] = None

    class Config:
        populate_by_name = True


class SignerModel(BaseModel):
    address: str
