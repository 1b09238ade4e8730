"""Portfolio, balance history and leaderboard schemas."""

from typing import Optional
from pydantic import BaseModel


class PositionResponse(BaseModel):
    id: str
    market_id: str
    market_title: str
    market_type: str
    outcome_id: Optional[str]
    outcome_label: Optional[str]
    qty: int
    avg_cost: float
    current_price: float
    current_value: float
    pnl: float


class PortfolioResponse(BaseModel):
    cash_balance: float
    positions_value: float
    total_value: float
    total_pnl: float
    positions: list[PositionResponse]


class BalanceEventResponse(BaseModel):
    id: str
    kind: str
    amount: float
    note: Optional[str]
    created_at: str


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    display_name: str
    grade: Optional[str]
    cash_balance: float
    positions_value: float
    total_value: float
    change_percent: float


class AdvisorPurchaseResponse(BaseModel):
    has_advisor_access: bool
    new_balance: float
