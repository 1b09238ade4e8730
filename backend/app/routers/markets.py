"""Markets router — prediction markets, outcome odds and outcome candles."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.market import Market, PREDICTION
from app.models.user import User
from app.schemas.market import (
    CandleSeriesResponse,
    MarketListResponse,
    MarketResponse,
    OutcomeResponse,
)
from app.middleware.auth import get_current_user
from app.routers.stocks import candle_to_response
from app.services import market_service

router = APIRouter(prefix="/api/markets", tags=["markets"])


def _market_to_response(market: Market) -> MarketResponse:
    """Convert a Market ORM model to a response schema."""
    return MarketResponse(
        id=market.id,
        title=market.title,
        description=market.description,
        market_type=market.market_type,
        category=market.category,
        status=market.status,
        resolution_rule=market.resolution_rule,
        close_at=market.close_at.isoformat() if market.close_at else None,
        created_at=market.created_at.isoformat() if market.created_at else "",
        outcomes=[
            OutcomeResponse(id=o.id, label=o.label, price=o.current_price, display_order=o.display_order)
            for o in market.outcomes
        ],
    )


@router.get("", response_model=MarketListResponse)
def list_markets(
    category: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List prediction markets, optionally filtered by category."""
    markets = market_service.list_markets(db, market_type=PREDICTION)
    if category:
        markets = [m for m in markets if m.category == category]
    return MarketListResponse(
        markets=[_market_to_response(m) for m in markets],
        total=len(markets),
    )


@router.get("/{market_id}", response_model=MarketResponse)
def get_market(
    market_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get market detail with outcomes and current prices."""
    market = market_service.get_market(db, market_id, market_type=PREDICTION)
    if not market:
        raise HTTPException(status_code=404, detail="Market not found")
    return _market_to_response(market)


@router.get("/{market_id}/outcomes/{outcome_id}/candles", response_model=CandleSeriesResponse)
def get_outcome_candles(
    market_id: str,
    outcome_id: str,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Daily candles for one outcome's odds chart."""
    market = market_service.get_market(db, market_id, market_type=PREDICTION)
    if not market or not any(o.id == outcome_id for o in market.outcomes):
        raise HTTPException(status_code=404, detail="Outcome not found")
    candles = market_service.get_outcome_candles(db, market_id, outcome_id, limit=limit)
    return CandleSeriesResponse(
        market_id=market_id,
        outcome_id=outcome_id,
        candles=[candle_to_response(c) for c in candles],
    )
