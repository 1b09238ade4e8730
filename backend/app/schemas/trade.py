"""Trade request/response schemas."""

from typing import Optional
from pydantic import BaseModel


class TradeRequest(BaseModel):
    market_id: str
    outcome_id: Optional[str] = None  # required for prediction markets
    side: str  # BUY | SELL
    qty: int


class TradeResponse(BaseModel):
    id: str
    market_id: str
    outcome_id: Optional[str]
    side: str
    qty: int
    price: float
    total: float
    created_at: str

    class Config:
        from_attributes = True


class TradeResultResponse(BaseModel):
    trade: TradeResponse
    new_balance: float
    bankruptcy_reset: bool
