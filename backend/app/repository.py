"""Persistence boundary used by the simulator and the ledger.

Thin functions over a SQLAlchemy Session. None of them commit: the caller
owns the transaction so a trade or a simulation step lands as one unit.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.clock import day_start, utcnow
from app.models.balance_event import BalanceEvent
from app.models.candle import Candle
from app.models.market import Market, OPEN, STOCK
from app.models.position import Position
from app.models.stock_meta import StockMeta
from app.models.stock_sim_profile import StockSimProfile
from app.models.trade import Trade
from app.models.user import User


# ── Simulation profiles ──────────────────────────────────────────────────────

def load_stock_profiles(db: Session, active_only: bool = True) -> list[StockSimProfile]:
    query = db.query(StockSimProfile)
    if active_only:
        query = query.join(Market, StockSimProfile.market_id == Market.id).filter(
            Market.market_type == STOCK, Market.status == OPEN
        )
    return query.order_by(StockSimProfile.market_id).all()


def get_stock_profile(db: Session, market_id: str) -> Optional[StockSimProfile]:
    return db.query(StockSimProfile).filter(StockSimProfile.market_id == market_id).first()


def save_stock_profile(db: Session, profile: StockSimProfile) -> StockSimProfile:
    db.add(profile)
    db.flush()
    return profile


# ── Prices ───────────────────────────────────────────────────────────────────

def load_market_price(db: Session, market_id: str) -> Optional[float]:
    meta = db.query(StockMeta).filter(StockMeta.market_id == market_id).first()
    return meta.current_price if meta else None


def save_market_price(db: Session, market_id: str, price: float) -> None:
    meta = db.query(StockMeta).filter(StockMeta.market_id == market_id).first()
    if not meta:
        raise ValueError(f"No stock metadata for market {market_id}")
    meta.current_price = price
    db.flush()


def highest_stock_price(db: Session, exclude: Iterable[str] = ()) -> Optional[float]:
    """Highest current price among stocks not in ``exclude``."""
    excluded = list(exclude)
    query = db.query(StockMeta.current_price)
    if excluded:
        query = query.filter(StockMeta.market_id.notin_(excluded))
    prices = [row[0] for row in query.all()]
    return max(prices) if prices else None


# ── Candles ──────────────────────────────────────────────────────────────────

def _candle_query(db: Session, market_id: str, outcome_id: Optional[str]):
    query = db.query(Candle).filter(Candle.market_id == market_id)
    if outcome_id:
        return query.filter(Candle.outcome_id == outcome_id)
    return query.filter(Candle.outcome_id.is_(None))


def has_candles(db: Session, market_id: str, outcome_id: Optional[str] = None) -> bool:
    return _candle_query(db, market_id, outcome_id).first() is not None


def load_today_candle(
    db: Session,
    market_id: str,
    outcome_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Optional[Candle]:
    """The open candle for today's period, or None if the day has rolled over."""
    start = day_start(now or utcnow())
    return (
        _candle_query(db, market_id, outcome_id)
        .filter(Candle.timestamp >= start, Candle.timestamp < start + timedelta(days=1))
        .order_by(Candle.timestamp.desc())
        .first()
    )


def load_candles(db: Session, market_id: str, outcome_id: Optional[str] = None, limit: int = 100) -> list[Candle]:
    """Most recent ``limit`` candles in chronological order."""
    rows = _candle_query(db, market_id, outcome_id).order_by(Candle.timestamp.desc()).limit(limit).all()
    return list(reversed(rows))


def append_candle(db: Session, candle: Candle) -> Candle:
    db.add(candle)
    db.flush()
    return candle


def append_candles(db: Session, candles: list[Candle]) -> None:
    db.add_all(candles)
    db.flush()


def update_candle(db: Session, candle: Candle) -> Candle:
    db.add(candle)
    db.flush()
    return candle


# ── Users, positions, trades ─────────────────────────────────────────────────

def get_user(db: Session, user_id: str, for_update: bool = False) -> Optional[User]:
    query = db.query(User).filter(User.id == user_id)
    if for_update:
        query = query.with_for_update()
    return query.first()


def update_user(
    db: Session,
    user: User,
    balance: Optional[float] = None,
    last_bankruptcy_reset: Optional[datetime] = None,
) -> User:
    if balance is not None:
        user.balance = balance
    if last_bankruptcy_reset is not None:
        user.last_bankruptcy_reset = last_bankruptcy_reset
    db.flush()
    return user


def get_market(db: Session, market_id: str, for_update: bool = False) -> Optional[Market]:
    query = db.query(Market).filter(Market.id == market_id)
    if for_update:
        query = query.with_for_update()
    return query.first()


def get_position(db: Session, user_id: str, market_id: str, outcome_id: Optional[str] = None) -> Optional[Position]:
    query = db.query(Position).filter(Position.user_id == user_id, Position.market_id == market_id)
    if outcome_id:
        query = query.filter(Position.outcome_id == outcome_id)
    else:
        query = query.filter(Position.outcome_id.is_(None))
    return query.first()


def upsert_position(
    db: Session,
    user_id: str,
    market_id: str,
    outcome_id: Optional[str],
    qty: int,
    avg_cost: float,
) -> Position:
    position = get_position(db, user_id, market_id, outcome_id)
    if position:
        position.qty = qty
        position.avg_cost = avg_cost
    else:
        position = Position(
            user_id=user_id,
            market_id=market_id,
            outcome_id=outcome_id,
            qty=qty,
            avg_cost=avg_cost,
        )
        db.add(position)
    db.flush()
    return position


def append_trade(db: Session, trade: Trade) -> Trade:
    db.add(trade)
    db.flush()
    return trade


def append_balance_event(db: Session, event: BalanceEvent) -> BalanceEvent:
    db.add(event)
    db.flush()
    return event
