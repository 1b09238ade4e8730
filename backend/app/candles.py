"""OHLCV bar synthesis for simulated periods.

A bar is built from the period's open and close plus its volatility:

    range = |close - open|
    extra = range * U(0.2, 0.7) + volatility * open * 0.5
    high  = max(open, close) + extra * U
    low   = min(open, close) - extra * U
    vol   = floor(U(1000, 3000) * (1 + 10 * volatility + 20 * range / open))

Bars are plain dicts with keys open/high/low/close/volume so they can be
splatted straight into a Candle row.
"""

import math
import random

LOW_FLOOR = 1.0


def synthesize(open_price: float, close_price: float, volatility: float, rng=random) -> dict:
    """Synthesize one OHLCV bar.

    Guarantees ``low <= min(open, close) <= max(open, close) <= high`` after
    rounding, and ``volume >= 0``. ``low`` is floored at LOW_FLOOR unless the
    body itself trades below it.
    """
    if open_price <= 0:
        raise ValueError("Open price must be positive")

    price_range = abs(close_price - open_price)
    extra_range = price_range * (0.2 + rng.random() * 0.5) + volatility * open_price * 0.5

    high = max(open_price, close_price) + extra_range * rng.random()
    low = min(open_price, close_price) - extra_range * rng.random()

    base_volume = 1000 + rng.random() * 2000
    volume_multiplier = 1 + volatility * 10 + (price_range / open_price) * 20
    volume = max(int(math.floor(base_volume * volume_multiplier)), 0)

    body_low = min(open_price, close_price)
    body_high = max(open_price, close_price)
    return {
        "open": round(open_price, 2),
        "high": round(max(high, body_high), 2),
        "low": round(min(max(low, LOW_FLOOR), body_low), 2),
        "close": round(close_price, 2),
        "volume": volume,
    }


def extend(candle, price: float, volume_increment: int = 0):
    """Fold a later price into an open candle (in place) and return it."""
    price = round(price, 2)
    candle.high = max(candle.high, price)
    candle.low = min(candle.low, price)
    candle.close = price
    candle.volume = candle.volume + max(int(volume_increment), 0)
    return candle


def is_valid(bar) -> bool:
    """Check the OHLC law on a dict bar or a Candle row."""
    get = bar.get if isinstance(bar, dict) else lambda key: getattr(bar, key)
    return (
        get("low") <= min(get("open"), get("close"))
        and get("high") >= max(get("open"), get("close"))
        and get("volume") >= 0
    )
