"""
Pydantic models for HTTP request bodies.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class DepositorsBody(BaseModel):
    caller: str
    ids: List[str]


class DepositBody(BaseModel):
    depositor: str
    asset_ref: str


class TicketBody(BaseModel):
    player_id: str
    payment: int


class OrderRequestBody(BaseModel):
    seed: int


class OrderFinalizeBody(BaseModel):
    token: str
    values: Optional[List[int]] = None  # omitted: the built-in entropy source fulfils the token


class CallerBody(BaseModel):
    caller: str


class CatchUpBody(BaseModel):
    caller: str
    missed_index: Optional[int] = Field(default=None, ge=0)


class StealBody(BaseModel):
    caller: str
    target: int = Field(ge=0)
    prize: Optional[int] = Field(default=None, ge=0)


class FinalSwapBody(BaseModel):
    caller: str
    target: int = Field(ge=0)


class FundsBody(BaseModel):
    caller: str
    to: str
    amount: int = Field(ge=0)
