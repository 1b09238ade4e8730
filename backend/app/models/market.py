"""Market model — one tradable instrument, either a stock or a binary prediction."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.orm import relationship

from app.database import Base

STOCK = "STOCK"
PREDICTION = "PREDICTION"
OPEN = "OPEN"


class Market(Base):
    __tablename__ = "markets"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    market_type = Column(String(20), nullable=False)  # STOCK | PREDICTION
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=False, default="Clubs")
    status = Column(String(20), nullable=False, default=OPEN)  # OPEN | CLOSED | RESOLVED | HIDDEN
    resolution_rule = Column(Text, nullable=True)
    close_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    outcomes = relationship("Outcome", back_populates="market", order_by="Outcome.display_order")
    stock_meta = relationship("StockMeta", back_populates="market", uselist=False)
    sim_profile = relationship("StockSimProfile", back_populates="market", uselist=False)
    trades = relationship("Trade", back_populates="market")

    @property
    def is_open(self) -> bool:
        return self.status == OPEN
