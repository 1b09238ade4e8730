"""Trades router — order execution and trade history."""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.exceptions import TradeRejected, UserNotFound
from app.middleware.auth import get_current_user
from app.middleware.rate_limit import limiter
from app.models.trade import Trade
from app.models.user import User
from app.schemas.trade import TradeRequest, TradeResponse, TradeResultResponse
from app.services import trade_service

router = APIRouter(prefix="/api", tags=["trades"])


def rejection_response(error: ValueError) -> JSONResponse:
    """400 with a machine readable code; unknown accounts are 404."""
    status_code = 404 if isinstance(error, UserNotFound) else 400
    code = error.code if isinstance(error, TradeRejected) else "bad_request"
    return JSONResponse(status_code=status_code, content={"detail": str(error), "code": code})


def _trade_to_response(trade: Trade) -> TradeResponse:
    return TradeResponse(
        id=trade.id,
        market_id=trade.market_id,
        outcome_id=trade.outcome_id,
        side=trade.side,
        qty=trade.qty,
        price=trade.price,
        total=trade.total,
        created_at=trade.created_at.isoformat(),
    )


@router.post("/trades", response_model=TradeResultResponse)
@limiter.limit(settings.TRADE_RATE_LIMIT)
def execute_trade(
    request: Request,
    req: TradeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Buy or sell at the current price."""
    try:
        result = trade_service.execute_trade(
            db, current_user.id, req.market_id, req.side.upper(), req.qty, outcome_id=req.outcome_id
        )
    except ValueError as e:
        return rejection_response(e)
    return TradeResultResponse(
        trade=_trade_to_response(result.trade),
        new_balance=result.new_balance,
        bankruptcy_reset=result.bankruptcy_reset,
    )


@router.get("/trades/my", response_model=list[TradeResponse])
def my_trades(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get current user's trade history, newest first."""
    trades = trade_service.get_user_trades(db, current_user.id, limit=limit)
    return [_trade_to_response(t) for t in trades]
