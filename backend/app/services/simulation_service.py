"""Simulation service — advances every active stock by one step."""

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app import candles, price_model, repository
from app.clock import day_of_year, day_start, utcnow
from app.locks import market_critical_section
from app.models.candle import Candle
from app.models.stock_sim_profile import StockSimProfile
from app.price_model import PriceOverride

logger = logging.getLogger(__name__)

TICK_VOLUME_MIN = 50
TICK_VOLUME_MAX = 149


@dataclass
class TickReport:
    updated: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def advance_stock(
    db: Session,
    profile: StockSimProfile,
    override: Optional[PriceOverride] = None,
    highest_ordinary_price: Optional[float] = None,
    rng=random,
    now: Optional[datetime] = None,
) -> float:
    """Step one stock, persist its state and today's candle. Does not commit.

    Returns the new price.
    """
    now = now or utcnow()
    params = price_model.params_from_profile(profile)
    if override:
        params = override.adjust_params(params)

    prev_price = profile.last_price
    new_price, new_volatility = price_model.step(prev_price, profile.last_volatility, params, day_of_year(now), rng)
    if override:
        new_price = override.adjust_price(new_price, highest_ordinary_price, rng)

    profile.last_price = new_price
    profile.last_volatility = new_volatility
    profile.last_updated = now
    repository.save_stock_profile(db, profile)
    repository.save_market_price(db, profile.market_id, new_price)

    candle = repository.load_today_candle(db, profile.market_id, None, now)
    if candle is None:
        bar = candles.synthesize(prev_price, new_price, new_volatility, rng)
        repository.append_candle(db, Candle(market_id=profile.market_id, timestamp=day_start(now), **bar))
    else:
        increment = TICK_VOLUME_MIN + int(rng.random() * (TICK_VOLUME_MAX - TICK_VOLUME_MIN + 1))
        repository.update_candle(db, candles.extend(candle, new_price, increment))
    return new_price


def advance_all(
    db: Session,
    overrides: Optional[dict] = None,
    rng=random,
    now: Optional[datetime] = None,
    skip: frozenset = frozenset(),
) -> TickReport:
    """Advance every active stock once, committing per stock.

    A failure on one stock is rolled back and logged; the remaining stocks
    still advance.
    """
    overrides = overrides or {}
    now = now or utcnow()
    report = TickReport()

    profiles = repository.load_stock_profiles(db)
    market_ids = [p.market_id for p in profiles]
    highest_ordinary = repository.highest_stock_price(db, exclude=overrides.keys())

    for market_id in market_ids:
        if market_id in skip:
            report.skipped.append(market_id)
            continue
        try:
            with market_critical_section(market_id):
                profile = repository.get_stock_profile(db, market_id)
                advance_stock(db, profile, overrides.get(market_id), highest_ordinary, rng, now)
                db.commit()
            report.updated.append(market_id)
        except Exception:
            db.rollback()
            logger.exception("Price update failed for market %s", market_id)
            report.failed.append(market_id)

    logger.debug(
        "Simulation tick: %d updated, %d failed, %d skipped",
        len(report.updated), len(report.failed), len(report.skipped),
    )
    return report
