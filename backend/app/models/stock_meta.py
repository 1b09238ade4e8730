"""Stock metadata — ticker, live price and float for a STOCK market."""

import uuid

from sqlalchemy import Column, String, Float, Integer, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base


class StockMeta(Base):
    __tablename__ = "stock_meta"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    market_id = Column(String(36), ForeignKey("markets.id"), unique=True, nullable=False)
    ticker = Column(String(10), unique=True, nullable=False)
    initial_price = Column(Float, nullable=False)
    current_price = Column(Float, nullable=False)
    float_supply = Column(Integer, nullable=False, default=10000)

    # Relationships
    market = relationship("Market", back_populates="stock_meta")

    @property
    def market_cap(self) -> float:
        return self.current_price * self.float_supply
