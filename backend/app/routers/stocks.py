"""Stocks router — club stock listings and daily candles."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.market import Market, STOCK
from app.models.user import User
from app.schemas.market import (
    CandleResponse,
    CandleSeriesResponse,
    StockListResponse,
    StockResponse,
)
from app.middleware.auth import get_current_user
from app.services import market_service

router = APIRouter(prefix="/api/stocks", tags=["stocks"])


def _stock_to_response(market: Market) -> StockResponse:
    meta = market.stock_meta
    change = (meta.current_price - meta.initial_price) / meta.initial_price * 100 if meta.initial_price else 0.0
    return StockResponse(
        id=market.id,
        ticker=meta.ticker,
        name=market.title,
        description=market.description,
        category=market.category,
        status=market.status,
        initial_price=meta.initial_price,
        current_price=meta.current_price,
        change_percent=round(change, 2),
        float_supply=meta.float_supply,
        market_cap=round(meta.market_cap, 2),
    )


def candle_to_response(candle) -> CandleResponse:
    return CandleResponse(
        timestamp=candle.timestamp.isoformat(),
        open=candle.open,
        high=candle.high,
        low=candle.low,
        close=candle.close,
        volume=candle.volume,
    )


def _get_stock_or_404(db: Session, stock_id: str) -> Market:
    market = market_service.get_market(db, stock_id, market_type=STOCK)
    if not market or market.stock_meta is None:
        raise HTTPException(status_code=404, detail="Stock not found")
    return market


@router.get("", response_model=StockListResponse)
def list_stocks(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List all listed club stocks with their live prices."""
    stocks = [m for m in market_service.list_markets(db, market_type=STOCK) if m.stock_meta is not None]
    stocks.sort(key=lambda m: m.stock_meta.ticker)
    return StockListResponse(
        stocks=[_stock_to_response(m) for m in stocks],
        total=len(stocks),
    )


@router.get("/{stock_id}", response_model=StockResponse)
def get_stock(
    stock_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _stock_to_response(_get_stock_or_404(db, stock_id))


@router.get("/{stock_id}/candles", response_model=CandleSeriesResponse)
def get_stock_candles(
    stock_id: str,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Daily candles for the price chart, oldest first."""
    market = _get_stock_or_404(db, stock_id)
    candles = market_service.get_stock_candles(db, market.id, limit=limit)
    return CandleSeriesResponse(
        market_id=market.id,
        candles=[candle_to_response(c) for c in candles],
    )
