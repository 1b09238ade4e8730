"""Candle model — one daily OHLCV bar for a stock or a prediction outcome."""

import uuid

from sqlalchemy import Column, String, Float, Integer, DateTime, ForeignKey, Index, UniqueConstraint, text

from app.database import Base


class Candle(Base):
    __tablename__ = "candles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    market_id = Column(String(36), ForeignKey("markets.id"), nullable=False)
    outcome_id = Column(String(36), ForeignKey("outcomes.id"), nullable=True)  # null for stocks
    open = Column(Float, nullable=False)
    high = Column(Float, nullable=False)
    low = Column(Float, nullable=False)
    close = Column(Float, nullable=False)
    volume = Column(Integer, nullable=False, default=0)
    timestamp = Column(DateTime, nullable=False)  # period start (UTC midnight)

    __table_args__ = (
        UniqueConstraint("market_id", "outcome_id", "timestamp", name="uq_candle_market_outcome_ts"),
        # NULLs never collide in the constraint above, so stock bars need their own index
        Index(
            "uq_candle_stock_ts",
            "market_id",
            "timestamp",
            unique=True,
            sqlite_where=text("outcome_id IS NULL"),
            postgresql_where=text("outcome_id IS NULL"),
        ),
    )
