"""Backfill service — synthetic price history for newly listed stocks."""

import logging
import random
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app import candles, price_model, repository
from app.clock import day_of_year, days_ago, utcnow
from app.config import settings
from app.models.candle import Candle
from app.models.stock_sim_profile import StockSimProfile

logger = logging.getLogger(__name__)

START_PRICE_MIN_FACTOR = 0.7
START_PRICE_MAX_FACTOR = 1.3


def backfill_history(
    db: Session,
    market_id: str,
    listing_price: float,
    pattern_type: str,
    days: Optional[int] = None,
    rng=random,
    now: Optional[datetime] = None,
) -> Optional[StockSimProfile]:
    """Generate ``days`` daily candles ending yesterday and seed the profile.

    Idempotent: if the stock already has candles nothing is written and None
    is returned. Otherwise the stock's current price and its simulation
    profile are left at the final running (price, volatility) so the live
    simulation continues from the last candle's close. With ``days <= 0`` the
    profile is seeded once at the listing price and the current price is left
    alone. Does not commit.
    """
    if repository.has_candles(db, market_id):
        logger.debug("Market %s already has history, skipping backfill", market_id)
        return None

    days = settings.HISTORY_BACKFILL_DAYS if days is None else days
    now = now or utcnow()
    params = price_model.params_for_pattern(pattern_type, listing_price)

    if days <= 0:
        # no history: the live simulation starts from the listing price
        if repository.get_stock_profile(db, market_id) is not None:
            return None
        return _seed_profile(db, market_id, params, listing_price, params.base_volatility, now)

    price = listing_price * price_model.uniform(START_PRICE_MIN_FACTOR, START_PRICE_MAX_FACTOR, rng)
    volatility = params.base_volatility
    start = days_ago(now, days)

    batch: list[Candle] = []
    for day in range(days):
        period_start = start + timedelta(days=day)
        open_price = price
        price, volatility = price_model.step(price, volatility, params, day_of_year(period_start), rng)
        bar = candles.synthesize(open_price, price, volatility, rng)
        batch.append(Candle(market_id=market_id, timestamp=period_start, **bar))

        if len(batch) >= settings.BACKFILL_BATCH_SIZE:
            repository.append_candles(db, batch)
            batch = []
    if batch:
        repository.append_candles(db, batch)

    if repository.load_market_price(db, market_id) is not None:
        repository.save_market_price(db, market_id, price)

    profile = _seed_profile(db, market_id, params, price, volatility, now)
    logger.info("Backfilled %d days for market %s (%s), last price %.2f", days, market_id, pattern_type, price)
    return profile


def _seed_profile(
    db: Session,
    market_id: str,
    params: price_model.SimulationParams,
    price: float,
    volatility: float,
    now: datetime,
) -> StockSimProfile:
    profile = repository.get_stock_profile(db, market_id) or StockSimProfile(market_id=market_id)
    profile.pattern_type = params.pattern_type
    profile.base_volatility = params.base_volatility
    profile.drift = params.drift
    profile.mean_reversion_speed = params.mean_reversion_speed
    profile.long_term_mean = params.long_term_mean
    profile.jump_frequency = params.jump_frequency
    profile.jump_magnitude = params.jump_magnitude
    profile.last_price = price
    profile.last_volatility = volatility
    profile.last_updated = now
    repository.save_stock_profile(db, profile)
    return profile
