"""Portfolio router — holdings, cash history, leaderboard and the advisor purchase."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.middleware.auth import get_current_user
from app.models.user import User
from app.routers.trades import rejection_response
from app.schemas.portfolio import (
    AdvisorPurchaseResponse,
    BalanceEventResponse,
    LeaderboardEntry,
    PortfolioResponse,
    PositionResponse,
)
from app.services import coin_service

router = APIRouter(prefix="/api", tags=["portfolio"])


@router.get("/portfolio/my", response_model=PortfolioResponse)
def my_portfolio(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Cash, positions at market and total P&L against the starting balance."""
    portfolio = coin_service.get_portfolio_value(db, current_user.id)
    return PortfolioResponse(
        cash_balance=portfolio["cash_balance"],
        positions_value=portfolio["positions_value"],
        total_value=portfolio["total_value"],
        total_pnl=portfolio["total_pnl"],
        positions=[PositionResponse(**p) for p in portfolio["positions"]],
    )


@router.get("/balance-events/my", response_model=list[BalanceEventResponse])
def my_balance_events(
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    events = coin_service.get_balance_events(db, current_user.id, limit=limit)
    return [
        BalanceEventResponse(
            id=e.id,
            kind=e.kind,
            amount=e.amount,
            note=e.note,
            created_at=e.created_at.isoformat(),
        )
        for e in events
    ]


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
def leaderboard(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return [LeaderboardEntry(**e) for e in coin_service.get_leaderboard(db, limit=limit)]


@router.post("/advisor/purchase", response_model=AdvisorPurchaseResponse)
def purchase_advisor(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Unlock the advisor feature for play money."""
    try:
        new_balance = coin_service.purchase_advisor_access(db, current_user.id)
    except ValueError as e:
        db.rollback()
        return rejection_response(e)
    return AdvisorPurchaseResponse(has_advisor_access=True, new_balance=new_balance)
