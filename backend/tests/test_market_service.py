"""Tests for listings, prediction market creation, the startup seed, keyed locks and candle storage."""

import random
import threading
import time
from datetime import datetime, timedelta, timezone

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from sqlalchemy.exc import IntegrityError

from app import repository, seed
from app.candles import is_valid
from app.config import settings
from app.locks import KeyedLocks, trade_critical_section
from app.models.candle import Candle
from app.models.market import Market, PREDICTION, STOCK
from app.models.stock_meta import StockMeta
from app.models.user import User
from app.services import market_service


class TestPredictionMarkets:
    """YES/NO market creation."""

    def test_outcomes_complementary(self, db):
        market = market_service.create_prediction_market(
            db, title="Will it snow?", description="", category="Events", rng=random.Random(1)
        )
        yes, no = market.outcomes
        assert (yes.label, no.label) == ("YES", "NO")
        assert round(yes.current_price + no.current_price, 2) == 1.0

    def test_history_mirrored_and_ends_at_opening_price(self, db):
        market = market_service.create_prediction_market(
            db, title="Will it rain?", description="", category="Events", yes_price=0.4,
            history_days=30, rng=random.Random(2),
        )
        yes, no = market.outcomes
        yes_candles = market_service.get_outcome_candles(db, market.id, yes.id)
        no_candles = market_service.get_outcome_candles(db, market.id, no.id)

        assert len(yes_candles) == len(no_candles) == 30
        assert yes_candles[-1].close == yes.current_price
        for y, n in zip(yes_candles, no_candles):
            assert is_valid(y) and is_valid(n)
            assert round(y.close + n.close, 2) == 1.0
            assert 0.05 <= y.close <= 0.95

    def test_rejects_out_of_range_odds(self, db):
        with pytest.raises(ValueError):
            market_service.create_prediction_market(db, title="x", description="", category="Events", yes_price=1.2)


class TestListings:
    """Listing and lookups."""

    def test_list_stock_rejects_bad_price(self, db):
        with pytest.raises(ValueError):
            market_service.list_stock(
                db, ticker="BAD", name="Bad", description="", initial_price=0.0,
                float_supply=100, pattern_type="STABLE",
            )

    def test_get_market_checks_type(self, db, make_stock):
        stock = make_stock()
        assert market_service.get_market(db, stock.id, market_type=STOCK) is not None
        assert market_service.get_market(db, stock.id, market_type=PREDICTION) is None

    def test_hidden_markets_not_listed(self, db, make_prediction):
        make_prediction(status="HIDDEN")
        visible = make_prediction()
        assert [m.id for m in market_service.list_markets(db, PREDICTION)] == [visible.id]


class TestSeed:
    """Startup catalog."""

    def test_seed_is_idempotent(self, db, monkeypatch):
        monkeypatch.setattr(settings, "HISTORY_BACKFILL_DAYS", 5)
        seed.seed_all(db)
        counts = (
            db.query(StockMeta).count(),
            db.query(Market).filter(Market.market_type == PREDICTION).count(),
            db.query(User).count(),
            db.query(Candle).count(),
        )

        seed.seed_all(db)

        assert counts[0] == len(seed.CLUBS) + 1
        assert counts[1] == len(seed.PREDICTION_MARKETS)
        assert counts[2] == len(seed.DEMO_ACCOUNTS)
        assert (
            db.query(StockMeta).count(),
            db.query(Market).filter(Market.market_type == PREDICTION).count(),
            db.query(User).count(),
            db.query(Candle).count(),
        ) == counts

    def test_premium_stock_uses_configured_id(self, db, monkeypatch):
        monkeypatch.setattr(settings, "HISTORY_BACKFILL_DAYS", 1)
        seed.seed_stocks(db)
        premium = db.query(StockMeta).filter(StockMeta.ticker == "VIBE").one()
        assert premium.market_id == settings.PREMIUM_STOCK_ID

    def test_patterns_cycle_through_catalog(self, db, monkeypatch):
        monkeypatch.setattr(settings, "HISTORY_BACKFILL_DAYS", 1)
        seed.seed_stocks(db)
        first = db.query(StockMeta).filter(StockMeta.ticker == seed.CLUBS[0][0]).one()
        second = db.query(StockMeta).filter(StockMeta.ticker == seed.CLUBS[1][0]).one()
        assert first.market.sim_profile.pattern_type == "UPTREND"
        assert second.market.sim_profile.pattern_type == "DOWNTREND"


class TestLocks:
    """Keyed mutexes used by the ledger and the simulator."""

    def test_same_key_same_lock(self):
        locks = KeyedLocks()
        assert locks.get("a") is locks.get("a")
        assert locks.get("a") is not locks.get("b")
        assert len(locks) == 2

    def test_reentrant(self):
        with trade_critical_section("u1", "m1"):
            with trade_critical_section("u1", "m1"):
                pass

    def test_serializes_same_user_and_market(self):
        inside = []
        overlaps = []

        def work():
            with trade_critical_section("u-race", "m-race"):
                if inside:
                    overlaps.append(True)
                inside.append(True)
                time.sleep(0.01)
                inside.pop()

        threads = [threading.Thread(target=work) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(5)
        assert overlaps == []


class TestCandleStorage:
    """One stored bar per instrument and day."""

    BAR = dict(open=1.0, high=1.0, low=1.0, close=1.0, volume=0)
    DAY = datetime(2026, 4, 1, tzinfo=timezone.utc)

    def test_duplicate_stock_day_rejected(self, db, make_stock):
        stock = make_stock()
        repository.append_candle(db, Candle(market_id=stock.id, timestamp=self.DAY, **self.BAR))

        with pytest.raises(IntegrityError):
            repository.append_candle(db, Candle(market_id=stock.id, timestamp=self.DAY, **self.BAR))
        db.rollback()

    def test_duplicate_outcome_day_rejected(self, db, make_prediction):
        market = make_prediction()
        yes = market.outcomes[0]
        repository.append_candle(db, Candle(market_id=market.id, outcome_id=yes.id, timestamp=self.DAY, **self.BAR))

        with pytest.raises(IntegrityError):
            repository.append_candle(db, Candle(market_id=market.id, outcome_id=yes.id, timestamp=self.DAY, **self.BAR))
        db.rollback()

    def test_other_days_and_outcomes_allowed(self, db, make_stock, make_prediction):
        stock = make_stock()
        market = make_prediction()
        yes, no = market.outcomes
        next_day = self.DAY + timedelta(days=1)

        repository.append_candles(db, [
            Candle(market_id=stock.id, timestamp=self.DAY, **self.BAR),
            Candle(market_id=stock.id, timestamp=next_day, **self.BAR),
            Candle(market_id=market.id, outcome_id=yes.id, timestamp=self.DAY, **self.BAR),
            Candle(market_id=market.id, outcome_id=no.id, timestamp=self.DAY, **self.BAR),
        ])
        db.commit()

        assert db.query(Candle).count() == 4
