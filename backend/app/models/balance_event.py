"""Balance event model — append-only explanation of every cash balance change."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Float, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from app.database import Base

STARTING_CREDIT = "STARTING_CREDIT"
TRADE = "TRADE"
BANKRUPTCY_RESET = "BANKRUPTCY_RESET"
ADMIN_ADJUST = "ADMIN_ADJUST"
FEATURE_PURCHASE = "FEATURE_PURCHASE"


class BalanceEvent(Base):
    __tablename__ = "balance_events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    kind = Column(String(30), nullable=False)
    amount = Column(Float, nullable=False)  # signed delta applied to the balance
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    user = relationship("User", back_populates="balance_events")
