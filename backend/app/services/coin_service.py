"""Coin service — every cash balance change and the portfolio views built on it.

``adjust_balance`` is the single write path for ``User.balance``: it applies the
delta and appends the matching BalanceEvent, so a user's balance always equals
the sum of their events.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app import repository
from app.clock import ensure_utc, utcnow
from app.config import settings
from app.exceptions import InsufficientFunds, UserNotFound
from app.locks import user_critical_section
from app.models.balance_event import (
    BalanceEvent,
    STARTING_CREDIT,
    BANKRUPTCY_RESET,
    ADMIN_ADJUST,
    FEATURE_PURCHASE,
)
from app.models.position import Position
from app.models.user import User

logger = logging.getLogger(__name__)


def adjust_balance(db: Session, user: User, kind: str, amount: float, note: Optional[str] = None) -> BalanceEvent:
    """Apply a signed delta to the user's balance and log it. Does not commit."""
    amount = round(amount, 2)
    repository.update_user(db, user, balance=round(user.balance + amount, 2))
    return repository.append_balance_event(
        db, BalanceEvent(user_id=user.id, kind=kind, amount=amount, note=note)
    )


def open_account(
    db: Session,
    email: str,
    display_name: str,
    grade: Optional[str] = None,
    role: str = "student",
) -> User:
    """Create a ledger account funded with the starting credit."""
    user = User(email=email, display_name=display_name, grade=grade, role=role, balance=0.0)
    db.add(user)
    db.flush()
    adjust_balance(db, user, STARTING_CREDIT, settings.STARTING_BALANCE, "Initial balance upon registration")
    db.commit()
    db.refresh(user)
    return user


def get_balance(db: Session, user_id: str) -> float:
    """Get user's current cash balance."""
    user = repository.get_user(db, user_id)
    if not user:
        raise UserNotFound("User not found")
    return user.balance


def bankruptcy_reset_due(user: User, now: datetime) -> bool:
    """Balance is exhausted and no reset happened within the cooldown."""
    if user.balance > 0:
        return False
    last = ensure_utc(user.last_bankruptcy_reset)
    if last is None:
        return True
    return now - last > timedelta(hours=settings.BANKRUPTCY_COOLDOWN_HOURS)


def apply_bankruptcy_reset(db: Session, user: User, now: Optional[datetime] = None) -> bool:
    """Credit the reset amount if due. Does not commit.

    The balance is set to the reset amount; the logged event carries the
    exact delta so the event sum still matches the balance.
    """
    now = now or utcnow()
    if not bankruptcy_reset_due(user, now):
        return False
    delta = settings.BANKRUPTCY_RESET_AMOUNT - user.balance
    adjust_balance(db, user, BANKRUPTCY_RESET, delta, "Automatic bankruptcy reset")
    repository.update_user(db, user, last_bankruptcy_reset=now)
    logger.info("Bankruptcy reset for user %s (+%.2f)", user.id, delta)
    return True


def admin_adjust(db: Session, user_id: str, amount: float, note: str) -> float:
    """Manual credit or debit by an administrator."""
    with user_critical_section(user_id):
        user = repository.get_user(db, user_id, for_update=True)
        if not user:
            raise UserNotFound("User not found")
        adjust_balance(db, user, ADMIN_ADJUST, amount, note)
        db.commit()
        return user.balance


def purchase_advisor_access(db: Session, user_id: str) -> float:
    """Buy the paid advisor feature with play money."""
    with user_critical_section(user_id):
        user = repository.get_user(db, user_id, for_update=True)
        if not user:
            raise UserNotFound("User not found")
        if user.has_advisor_access:
            raise ValueError("You already have advisor access")
        if user.balance < settings.ADVISOR_PRICE:
            raise InsufficientFunds(
                f"Insufficient balance: need {settings.ADVISOR_PRICE:.2f} to purchase advisor access"
            )
        adjust_balance(db, user, FEATURE_PURCHASE, -settings.ADVISOR_PRICE, "Purchased advisor access")
        user.has_advisor_access = True
        db.commit()
        return user.balance


def get_balance_events(db: Session, user_id: str, limit: int = 100) -> list[BalanceEvent]:
    return (
        db.query(BalanceEvent)
        .filter(BalanceEvent.user_id == user_id)
        .order_by(BalanceEvent.created_at.desc())
        .limit(limit)
        .all()
    )


def _mark_price(position: Position) -> float:
    """Current price of the instrument a position is held in."""
    if position.outcome_id:
        return position.outcome.current_price if position.outcome else 0.0
    meta = position.market.stock_meta if position.market else None
    return meta.current_price if meta else 0.0


def get_positions_valued(db: Session, user_id: str) -> list[dict]:
    """Open positions with mark-to-market value and unrealized PnL."""
    positions = (
        db.query(Position)
        .filter(Position.user_id == user_id, Position.qty > 0)
        .all()
    )
    result = []
    for pos in positions:
        current_price = _mark_price(pos)
        current_value = pos.qty * current_price
        result.append({
            "id": pos.id,
            "market_id": pos.market_id,
            "market_title": pos.market.title if pos.market else "",
            "market_type": pos.market.market_type if pos.market else "",
            "outcome_id": pos.outcome_id,
            "outcome_label": pos.outcome.label if pos.outcome else None,
            "qty": pos.qty,
            "avg_cost": pos.avg_cost,
            "current_price": current_price,
            "current_value": current_value,
            "pnl": current_value - pos.qty * pos.avg_cost,
        })
    return result


def get_portfolio_value(db: Session, user_id: str) -> dict:
    """Get user's total portfolio value (cash + positions at market)."""
    user = repository.get_user(db, user_id)
    if not user:
        raise UserNotFound("User not found")

    positions = get_positions_valued(db, user_id)
    positions_value = sum(p["current_value"] for p in positions)
    total_value = user.balance + positions_value
    return {
        "cash_balance": user.balance,
        "positions_value": positions_value,
        "total_value": total_value,
        "total_pnl": total_value - settings.STARTING_BALANCE,
        "positions": positions,
    }


def get_leaderboard(db: Session, limit: int = 50) -> list[dict]:
    """Students ranked by total value."""
    students = db.query(User).filter(User.role != "admin").all()
    entries = []
    for user in students:
        positions_value = sum(p["current_value"] for p in get_positions_valued(db, user.id))
        total_value = user.balance + positions_value
        entries.append({
            "user_id": user.id,
            "display_name": user.display_name,
            "grade": user.grade,
            "cash_balance": user.balance,
            "positions_value": positions_value,
            "total_value": total_value,
            "change_percent": (total_value - settings.STARTING_BALANCE) / settings.STARTING_BALANCE * 100,
        })

    entries.sort(key=lambda e: e["total_value"], reverse=True)
    for i, entry in enumerate(entries[:limit]):
        entry["rank"] = i + 1
    return entries[:limit]
