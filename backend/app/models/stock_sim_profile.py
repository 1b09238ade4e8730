"""Simulation profile — pattern parameters plus the running (price, volatility) state."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base


class StockSimProfile(Base):
    __tablename__ = "stock_sim_profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    market_id = Column(String(36), ForeignKey("markets.id"), unique=True, nullable=False)
    pattern_type = Column(String(20), nullable=False)
    base_volatility = Column(Float, nullable=False)
    drift = Column(Float, nullable=False)
    mean_reversion_speed = Column(Float, nullable=False)
    long_term_mean = Column(Float, nullable=False)
    jump_frequency = Column(Float, nullable=False)
    jump_magnitude = Column(Float, nullable=False)
    last_price = Column(Float, nullable=False)
    last_volatility = Column(Float, nullable=False)
    last_updated = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    market = relationship("Market", back_populates="sim_profile")
