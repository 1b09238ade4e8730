"""SQLAlchemy ORM models."""

from app.models.user import User
from app.models.market import Market
from app.models.outcome import Outcome
from app.models.stock_meta import StockMeta
from app.models.stock_sim_profile import StockSimProfile
from app.models.candle import Candle
from app.models.trade import Trade
from app.models.position import Position
from app.models.balance_event import BalanceEvent

__all__ = [
    "User",
    "Market",
    "Outcome",
    "StockMeta",
    "StockSimProfile",
    "Candle",
    "Trade",
    "Position",
    "BalanceEvent",
]
