"""Market service — listings, lookups and chart data for stocks and prediction markets."""

import logging
import random
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app import repository
from app.clock import days_ago, utcnow
from app.models.candle import Candle
from app.models.market import Market, STOCK, PREDICTION
from app.models.outcome import Outcome
from app.models.stock_meta import StockMeta
from app.price_model import PATTERNS
from app.services.backfill_service import backfill_history

logger = logging.getLogger(__name__)

OUTCOME_HISTORY_DAYS = 30


def list_markets(db: Session, market_type: Optional[str] = None) -> list[Market]:
    """List visible markets, newest first."""
    query = db.query(Market).filter(Market.status != "HIDDEN")
    if market_type:
        query = query.filter(Market.market_type == market_type)
    return query.order_by(Market.created_at.desc()).all()


def get_market(db: Session, market_id: str, market_type: Optional[str] = None) -> Optional[Market]:
    market = repository.get_market(db, market_id)
    if market and market_type and market.market_type != market_type:
        return None
    return market


def list_stock(
    db: Session,
    ticker: str,
    name: str,
    description: str,
    initial_price: float,
    float_supply: int,
    pattern_type: str,
    category: str = "Clubs",
    market_id: Optional[str] = None,
    history_days: Optional[int] = None,
    rng=random,
    now: Optional[datetime] = None,
) -> Market:
    """List a new stock and backfill its synthetic history."""
    if pattern_type not in PATTERNS:
        raise ValueError(f"Unknown pattern type: {pattern_type}")
    if initial_price <= 0:
        raise ValueError("Initial price must be positive")

    market = Market(
        market_type=STOCK,
        title=name,
        description=description,
        category=category,
        status="OPEN",
    )
    if market_id:
        market.id = market_id
    db.add(market)
    db.flush()

    db.add(StockMeta(
        market_id=market.id,
        ticker=ticker.upper(),
        initial_price=initial_price,
        current_price=initial_price,
        float_supply=float_supply,
    ))
    db.flush()

    backfill_history(db, market.id, initial_price, pattern_type, days=history_days, rng=rng, now=now)
    db.commit()
    db.refresh(market)
    return market


def _outcome_history(market_id: str, yes_id: str, no_id: str, yes_price: float, days: int, rng, now: datetime) -> tuple[list[Candle], float]:
    """Mirrored YES/NO daily candles drifting randomly around the opening odds."""
    rows = []
    price = yes_price
    start = days_ago(now, days)
    for day in range(days):
        ts = start + timedelta(days=day)
        change = (rng.random() - 0.5) * 0.08
        open_ = price
        close = max(0.05, min(0.95, price * (1 + change)))
        high = max(min(0.98, max(open_, close) * (1 + rng.random() * 0.02)), open_, close)
        low = min(max(0.02, min(open_, close) * (1 - rng.random() * 0.02)), open_, close)
        volume = int(50 + rng.random() * 500)
        rows.append(Candle(
            market_id=market_id, outcome_id=yes_id, timestamp=ts, volume=volume,
            open=round(open_, 2), high=round(high, 2), low=round(low, 2), close=round(close, 2),
        ))
        rows.append(Candle(
            market_id=market_id, outcome_id=no_id, timestamp=ts, volume=volume,
            open=round(1 - open_, 2), high=round(1 - low, 2), low=round(1 - high, 2), close=round(1 - close, 2),
        ))
        price = close
    return rows, round(price, 2)


def create_prediction_market(
    db: Session,
    title: str,
    description: str,
    category: str,
    resolution_rule: Optional[str] = None,
    close_at: Optional[datetime] = None,
    yes_price: Optional[float] = None,
    history_days: int = OUTCOME_HISTORY_DAYS,
    rng=random,
    now: Optional[datetime] = None,
) -> Market:
    """Create an OPEN binary market with complementary YES/NO outcomes."""
    now = now or utcnow()
    opening = yes_price if yes_price is not None else 0.3 + rng.random() * 0.4
    if not 0 < opening < 1:
        raise ValueError("YES price must be between 0 and 1")

    market = Market(
        market_type=PREDICTION,
        title=title,
        description=description,
        category=category,
        status="OPEN",
        resolution_rule=resolution_rule,
        close_at=close_at,
    )
    db.add(market)
    db.flush()

    yes = Outcome(market_id=market.id, label="YES", current_price=0.5, display_order=0)
    no = Outcome(market_id=market.id, label="NO", current_price=0.5, display_order=1)
    db.add_all([yes, no])
    db.flush()

    if history_days > 0:
        history, opening = _outcome_history(market.id, yes.id, no.id, opening, history_days, rng, now)
        repository.append_candles(db, history)

    yes.current_price = round(opening, 2)
    no.current_price = round(1 - yes.current_price, 2)
    db.commit()
    db.refresh(market)
    return market


def get_stock_candles(db: Session, market_id: str, limit: int = 100) -> list[Candle]:
    return repository.load_candles(db, market_id, None, limit)


def get_outcome_candles(db: Session, market_id: str, outcome_id: str, limit: int = 100) -> list[Candle]:
    return repository.load_candles(db, market_id, outcome_id, limit)
