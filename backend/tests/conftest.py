"""Shared fixtures: an in-memory database and factories for accounts and markets."""

import os
import random
import sys
import uuid

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from app.database import Base
from app import models  # noqa: F401  (registers every table on Base.metadata)
from app.models.balance_event import ADMIN_ADJUST
from app.models.market import Market
from app.services import coin_service, market_service


class ScriptedRandom:
    """Stands in for random.Random, replaying fixed draws then a default."""

    def __init__(self, values, default=0.5):
        self.values = list(values)
        self.default = default

    def random(self):
        if self.values:
            return self.values.pop(0)
        return self.default


@pytest.fixture
def scripted():
    return ScriptedRandom


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    """Open an account; ``balance`` tops it up or drains it via an admin adjustment."""

    def _make(balance=None, role="student", display_name=None):
        name = display_name or f"Student {uuid.uuid4().hex[:6]}"
        user = coin_service.open_account(db, email=f"{uuid.uuid4().hex}@school.test", display_name=name, role=role)
        if balance is not None and balance != user.balance:
            coin_service.adjust_balance(db, user, ADMIN_ADJUST, balance - user.balance, "test setup")
            db.commit()
        return user

    return _make


@pytest.fixture
def make_stock(db):
    """List a stock and pin its live price so trades execute at a known price."""

    def _make(price=40.0, pattern="STABLE", history_days=0, market_id=None, seed=7, status="OPEN"):
        market = market_service.list_stock(
            db,
            ticker=uuid.uuid4().hex[:5].upper(),
            name="Test Club",
            description="A club for tests",
            initial_price=price,
            float_supply=10000,
            pattern_type=pattern,
            market_id=market_id,
            history_days=history_days,
            rng=random.Random(seed),
        )
        market.stock_meta.current_price = price
        market.sim_profile.last_price = price
        market.status = status
        db.commit()
        db.refresh(market)
        return market

    return _make


@pytest.fixture
def make_prediction(db):
    def _make(yes_price=0.5, history_days=0, status="OPEN") -> Market:
        market = market_service.create_prediction_market(
            db,
            title=f"Will it happen? {uuid.uuid4().hex[:6]}",
            description="Resolves YES if it happens.",
            category="Events",
            yes_price=yes_price,
            history_days=history_days,
            rng=random.Random(3),
        )
        market.status = status
        db.commit()
        db.refresh(market)
        return market

    return _make
