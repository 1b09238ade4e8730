"""Trade service — validates and executes a single trade against the ledger.

A trade either completes fully or is rejected before anything is written.
The whole sequence (price read through bankruptcy check) runs while holding
the user's and the market's locks, and the user and market rows are selected
FOR UPDATE on databases that support it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app import candles, repository
from app.clock import day_start, utcnow
from app.config import settings
from app.exceptions import (
    InsufficientFunds,
    InsufficientHoldings,
    InvalidQuantity,
    InvalidSide,
    MarketUnavailable,
    OutcomeNotFound,
    UserNotFound,
)
from app.locks import trade_critical_section
from app.models.balance_event import TRADE
from app.models.candle import Candle
from app.models.market import Market, PREDICTION, STOCK
from app.models.trade import Trade
from app.models.user import User
from app.services import coin_service

logger = logging.getLogger(__name__)

BUY = "BUY"
SELL = "SELL"

PREDICTION_PRICE_STEP = 0.02
PREDICTION_PRICE_MIN = 0.01
PREDICTION_PRICE_MAX = 0.99
STOCK_IMPACT_PCT = 0.01
STOCK_PRICE_MIN = 0.01


@dataclass
class TradeResult:
    trade: Trade
    new_balance: float
    bankruptcy_reset: bool


# ─────────────────────────────────────────────────────────────────────────────
# Validation
# ─────────────────────────────────────────────────────────────────────────────

def _validate_order(side: str, qty) -> None:
    if side not in (BUY, SELL):
        raise InvalidSide(f"Side must be BUY or SELL, got {side!r}")
    if isinstance(qty, bool) or not isinstance(qty, int):
        raise InvalidQuantity("Quantity must be a whole number of shares")
    if qty < 1 or qty > settings.MAX_TRADE_QTY:
        raise InvalidQuantity(f"Quantity must be between 1 and {settings.MAX_TRADE_QTY}")


def _resolve_price(market: Market, outcome_id: Optional[str]) -> float:
    """Current execution price for the instrument being traded."""
    if market.market_type == PREDICTION:
        outcome = next((o for o in market.outcomes if o.id == outcome_id), None)
        if outcome is None:
            raise OutcomeNotFound("Outcome not found")
        return outcome.current_price
    if market.market_type == STOCK:
        if outcome_id:
            raise OutcomeNotFound("Stocks have no outcomes")
        if market.stock_meta is None:
            raise MarketUnavailable("Stock not found")
        return market.stock_meta.current_price
    raise MarketUnavailable(f"Unknown market type {market.market_type}")


def _load_tradable_market(db: Session, market_id: str) -> Market:
    market = repository.get_market(db, market_id, for_update=True)
    if not market or not market.is_open:
        raise MarketUnavailable("Market not available for trading")
    return market


def _check_funds_and_holdings(
    db: Session, user: User, market_id: str, outcome_id: Optional[str], side: str, qty: int, total: float
) -> None:
    if side == BUY:
        if user.balance < total:
            raise InsufficientFunds(f"Insufficient balance: have {user.balance:.2f}, need {total:.2f}")
    else:
        position = repository.get_position(db, user.id, market_id, outcome_id)
        held = position.qty if position else 0
        if held < qty:
            raise InsufficientHoldings(f"Insufficient shares: have {held}, selling {qty}")


# ─────────────────────────────────────────────────────────────────────────────
# Mutations
# ─────────────────────────────────────────────────────────────────────────────

def _update_position(db: Session, user_id: str, market_id: str, outcome_id: Optional[str], side: str, qty: int, price: float):
    """Weighted average cost on BUY; SELL reduces quantity and keeps the cost basis."""
    position = repository.get_position(db, user_id, market_id, outcome_id)
    old_qty = position.qty if position else 0
    old_cost = position.avg_cost if position else 0.0

    if side == BUY:
        new_qty = old_qty + qty
        new_avg = (old_qty * old_cost + qty * price) / new_qty
    else:
        new_qty = old_qty - qty
        new_avg = old_cost

    return repository.upsert_position(db, user_id, market_id, outcome_id, new_qty, new_avg)


def _record_price(db: Session, market_id: str, outcome_id: Optional[str], old_price: float, new_price: float, volume: int, now: datetime) -> None:
    """Fold a post-trade price into today's candle, opening one if needed."""
    candle = repository.load_today_candle(db, market_id, outcome_id, now)
    if candle is None:
        repository.append_candle(db, Candle(
            market_id=market_id,
            outcome_id=outcome_id,
            open=round(old_price, 2),
            high=round(max(old_price, new_price), 2),
            low=round(min(old_price, new_price), 2),
            close=round(new_price, 2),
            volume=volume,
            timestamp=day_start(now),
        ))
    else:
        repository.update_candle(db, candles.extend(candle, new_price, volume))


def _apply_price_impact(db: Session, market: Market, outcome_id: Optional[str], side: str, qty: int, price: float, now: datetime) -> None:
    direction = 1 if side == BUY else -1

    if market.market_type == PREDICTION:
        new_price = round(
            min(max(price + direction * PREDICTION_PRICE_STEP, PREDICTION_PRICE_MIN), PREDICTION_PRICE_MAX), 2
        )
        for outcome in market.outcomes:
            old = outcome.current_price
            outcome.current_price = new_price if outcome.id == outcome_id else round(1 - new_price, 2)
            _record_price(db, market.id, outcome.id, old, outcome.current_price, qty, now)
    else:
        new_price = round(max(price + direction * price * STOCK_IMPACT_PCT, STOCK_PRICE_MIN), 2)
        repository.save_market_price(db, market.id, new_price)
        _record_price(db, market.id, None, price, new_price, qty, now)
    db.flush()


# ─────────────────────────────────────────────────────────────────────────────
# Entry point
# ─────────────────────────────────────────────────────────────────────────────

def execute_trade(
    db: Session,
    user_id: str,
    market_id: str,
    side: str,
    qty: int,
    outcome_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> TradeResult:
    """Execute a trade with all validation and transactional safety.

    Steps:
    1. Resolve the current execution price
    2. Compute total = qty * price
    3. Check funds (BUY) or holdings (SELL)
    4. Insert trade record, move cash, upsert position
    5. Apply price impact
    6. Bankruptcy reset check
    All within a single DB transaction under the user+market locks.

    Raises:
        TradeRejected subclasses, before any mutation.
    """
    _validate_order(side, qty)
    now = now or utcnow()

    with trade_critical_section(user_id, market_id):
        try:
            user = repository.get_user(db, user_id, for_update=True)
            if not user:
                raise UserNotFound("User not found")
            market = _load_tradable_market(db, market_id)

            price = _resolve_price(market, outcome_id)
            total = round(qty * price, 2)
            _check_funds_and_holdings(db, user, market_id, outcome_id, side, qty, total)

            trade = repository.append_trade(db, Trade(
                user_id=user.id,
                market_id=market_id,
                outcome_id=outcome_id,
                side=side,
                qty=qty,
                price=price,
                total=total,
                created_at=now,
            ))
            coin_service.adjust_balance(
                db, user, TRADE, -total if side == BUY else total,
                f"{side} {qty} shares at ${price:.2f}",
            )
            _update_position(db, user.id, market_id, outcome_id, side, qty, price)
            _apply_price_impact(db, market, outcome_id, side, qty, price, now)

            reset = coin_service.apply_bankruptcy_reset(db, user, now)
            new_balance = user.balance
            db.commit()
        except Exception:
            db.rollback()
            raise

    db.refresh(trade)
    logger.debug("Trade %s: %s %d @ %.2f on %s by %s", trade.id, side, qty, price, market_id, user_id)
    return TradeResult(trade=trade, new_balance=new_balance, bankruptcy_reset=reset)


def get_user_trades(db: Session, user_id: str, limit: int = 50) -> list[Trade]:
    """Get recent trades for a user."""
    return (
        db.query(Trade)
        .filter(Trade.user_id == user_id)
        .order_by(Trade.created_at.desc())
        .limit(limit)
        .all()
    )
