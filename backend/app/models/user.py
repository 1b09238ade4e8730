"""User model — only the fields the ledger needs; accounts live elsewhere."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Float, DateTime, Boolean
from sqlalchemy.orm import relationship

from app.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    display_name = Column(String(255), nullable=False)
    grade = Column(String(50), nullable=True)
    role = Column(String(20), nullable=False, default="student")  # student | admin
    # Only ever changed through coin_service.adjust_balance
    balance = Column(Float, nullable=False, default=0.0)
    last_bankruptcy_reset = Column(DateTime, nullable=True)
    has_advisor_access = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    trades = relationship("Trade", back_populates="user")
    positions = relationship("Position", back_populates="user")
    balance_events = relationship("BalanceEvent", back_populates="user")
