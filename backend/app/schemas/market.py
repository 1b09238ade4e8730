"""Stock, market and candle response schemas."""

from typing import Optional
from pydantic import BaseModel


class OutcomeResponse(BaseModel):
    id: str
    label: str
    price: float
    display_order: int

    class Config:
        from_attributes = True


class StockResponse(BaseModel):
    id: str
    ticker: str
    name: str
    description: Optional[str]
    category: str
    status: str
    initial_price: float
    current_price: float
    change_percent: float
    float_supply: int
    market_cap: float


class StockListResponse(BaseModel):
    stocks: list[StockResponse]
    total: int


class MarketResponse(BaseModel):
    id: str
    title: str
    description: Optional[str]
    market_type: str
    category: str
    status: str
    resolution_rule: Optional[str]
    close_at: Optional[str]
    created_at: str
    outcomes: list[OutcomeResponse] = []

    class Config:
        from_attributes = True


class MarketListResponse(BaseModel):
    markets: list[MarketResponse]
    total: int


class CandleResponse(BaseModel):
    timestamp: str
    open: float
    high: float
    low: float
    close: float
    volume: int


class CandleSeriesResponse(BaseModel):
    market_id: str
    outcome_id: Optional[str] = None
    candles: list[CandleResponse]
