"""
Synthetic stock price model.

Each step advances one simulated trading period (one day) for one stock:

    Volatility:  v' = k * v + (1 - k) * v_base + |g1| * eps,   clamped to [0.3 v_base, 3 v_base]
    Return:      r  = drift + lambda * (mean - p) / p + g2 * v' + jump + cycle
    Price:       p' = round(max(p * (1 + r), 1), 2)

Where:
    k      = volatility clustering factor (0.85)
    g1, g2 = standard normal draws (Box-Muller)
    jump   = +/- jump_magnitude * (0.5 + 0.5 U) with probability jump_frequency
    cycle  = sin(day_of_year / 30 * pi) * 0.002 for the CYCLICAL pattern only

The six patterns only differ in their parameter constants. Special-cased
stocks (the premium stock) are handled by PriceOverride objects looked up by
market id, never inside ``step``.

Every function takes an ``rng`` with a ``random()`` method; the ``random``
module is the default, tests pass ``random.Random(seed)`` or scripted stubs.
"""

import math
import random
from dataclasses import dataclass, replace
from typing import Optional, Tuple

PATTERNS = ("UPTREND", "DOWNTREND", "VOLATILE", "STABLE", "CYCLICAL", "RANDOM_WALK")

VOL_CLUSTER = 0.85
VOL_NOISE = 0.005
VOL_FLOOR_MULT = 0.3
VOL_CAP_MULT = 3.0
CYCLE_DAYS = 30
CYCLE_AMPLITUDE = 0.002
MIN_PRICE = 1.0


@dataclass(frozen=True)
class SimulationParams:
    pattern_type: str
    base_volatility: float
    drift: float
    mean_reversion_speed: float
    long_term_mean: float
    jump_frequency: float
    jump_magnitude: float


# drift, base volatility, mean reversion speed, jump frequency, jump magnitude
PATTERN_CONFIGS = {
    "UPTREND": dict(drift=0.0015, base_volatility=0.025, mean_reversion_speed=0.02, jump_frequency=0.03, jump_magnitude=0.08),
    "DOWNTREND": dict(drift=-0.001, base_volatility=0.03, mean_reversion_speed=0.02, jump_frequency=0.04, jump_magnitude=0.1),
    "VOLATILE": dict(drift=0.0005, base_volatility=0.06, mean_reversion_speed=0.05, jump_frequency=0.08, jump_magnitude=0.15),
    "STABLE": dict(drift=0.0003, base_volatility=0.01, mean_reversion_speed=0.15, jump_frequency=0.01, jump_magnitude=0.03),
    "CYCLICAL": dict(drift=0.0, base_volatility=0.035, mean_reversion_speed=0.12, jump_frequency=0.02, jump_magnitude=0.05),
    "RANDOM_WALK": dict(drift=0.0002, base_volatility=0.03, mean_reversion_speed=0.03, jump_frequency=0.03, jump_magnitude=0.07),
}


# ─────────────────────────────────────────────────────────────────────────────
# Random process
# ─────────────────────────────────────────────────────────────────────────────

def gaussian(rng=random) -> float:
    """One standard normal draw via the Box-Muller transform."""
    u = 0.0
    v = 0.0
    while u == 0.0:
        u = rng.random()
    while v == 0.0:
        v = rng.random()
    return math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)


def uniform(low: float, high: float, rng=random) -> float:
    return low + (high - low) * rng.random()


def chance(probability: float, rng=random) -> bool:
    return rng.random() < probability


def coin_sign(rng=random) -> int:
    return 1 if rng.random() > 0.5 else -1


# ─────────────────────────────────────────────────────────────────────────────
# Parameters
# ─────────────────────────────────────────────────────────────────────────────

def params_for_pattern(pattern_type: str, long_term_mean: float) -> SimulationParams:
    """Build simulation parameters for one of the six patterns.

    Raises:
        ValueError: If the pattern is unknown or the mean is not positive.
    """
    if pattern_type not in PATTERN_CONFIGS:
        raise ValueError(f"Unknown pattern type: {pattern_type}")
    if long_term_mean <= 0:
        raise ValueError("Long-term mean must be positive")
    return SimulationParams(pattern_type=pattern_type, long_term_mean=long_term_mean, **PATTERN_CONFIGS[pattern_type])


def params_from_profile(profile) -> SimulationParams:
    """Read the stored parameters off a StockSimProfile row."""
    return SimulationParams(
        pattern_type=profile.pattern_type,
        base_volatility=profile.base_volatility,
        drift=profile.drift,
        mean_reversion_speed=profile.mean_reversion_speed,
        long_term_mean=profile.long_term_mean,
        jump_frequency=profile.jump_frequency,
        jump_magnitude=profile.jump_magnitude,
    )


def assign_pattern_type(index: int) -> str:
    """Cycle through the patterns so a catalog gets an even mix."""
    return PATTERNS[index % len(PATTERNS)]


# ─────────────────────────────────────────────────────────────────────────────
# Stepping
# ─────────────────────────────────────────────────────────────────────────────

def next_volatility(prev_volatility: float, base_volatility: float, rng=random) -> float:
    raw = VOL_CLUSTER * prev_volatility + (1 - VOL_CLUSTER) * base_volatility + abs(gaussian(rng)) * VOL_NOISE
    return min(max(raw, base_volatility * VOL_FLOOR_MULT), base_volatility * VOL_CAP_MULT)


def cyclical_term(params: SimulationParams, day_of_year: int) -> float:
    if params.pattern_type != "CYCLICAL":
        return 0.0
    return math.sin((day_of_year / CYCLE_DAYS) * math.pi) * CYCLE_AMPLITUDE


def jump_term(params: SimulationParams, rng=random) -> float:
    if not chance(params.jump_frequency, rng):
        return 0.0
    sign = coin_sign(rng)
    return sign * params.jump_magnitude * (0.5 + 0.5 * rng.random())


def step(
    prev_price: float,
    prev_volatility: float,
    params: SimulationParams,
    day_of_year: int,
    rng=random,
) -> Tuple[float, float]:
    """Advance one period.

    Args:
        prev_price: Price at the end of the previous period (must be > 0).
        prev_volatility: Volatility of the previous period.
        params: Pattern parameters (possibly adjusted by an override).
        day_of_year: Calendar day of the period, drives the cyclical term.
        rng: Source of uniform draws.

    Returns:
        Tuple of (new_price, new_volatility). The price is rounded to cents
        and never below MIN_PRICE.
    """
    if prev_price <= 0:
        raise ValueError("Previous price must be positive")

    volatility = next_volatility(prev_volatility, params.base_volatility, rng)

    pull = params.mean_reversion_speed * (params.long_term_mean - prev_price) / prev_price
    shock = gaussian(rng) * volatility
    jump = jump_term(params, rng)
    cycle = cyclical_term(params, day_of_year)

    return_rate = params.drift + pull + shock + jump + cycle
    new_price = max(prev_price * (1 + return_rate), MIN_PRICE)
    return round(new_price, 2), volatility


# ─────────────────────────────────────────────────────────────────────────────
# Overrides
# ─────────────────────────────────────────────────────────────────────────────

class PriceOverride:
    """Per-stock adjustment applied around the generic step."""

    def adjust_params(self, params: SimulationParams) -> SimulationParams:
        return params

    def adjust_price(self, price: float, highest_ordinary_price: Optional[float], rng=random) -> float:
        return price


class PremiumStockOverride(PriceOverride):
    """Keeps the premium stock calm, rising, and well above every other stock."""

    base_volatility = 0.015
    drift = 0.006
    jump_frequency = 0.04
    jump_magnitude = 0.15
    floor_multiple = 1.5
    floor_jitter = 10.0
    nudge_probability = 0.3
    nudge_max = 0.02

    def adjust_params(self, params: SimulationParams) -> SimulationParams:
        return replace(
            params,
            base_volatility=self.base_volatility,
            drift=self.drift,
            jump_frequency=self.jump_frequency,
            jump_magnitude=self.jump_magnitude,
        )

    def adjust_price(self, price: float, highest_ordinary_price: Optional[float], rng=random) -> float:
        if highest_ordinary_price is not None:
            floor = highest_ordinary_price * self.floor_multiple
            if price < floor:
                price = floor + rng.random() * self.floor_jitter
        if chance(self.nudge_probability, rng):
            price *= 1 + rng.random() * self.nudge_max
        return round(price, 2)


def build_price_overrides(premium_market_id: str) -> dict:
    """Override table keyed by market id."""
    if not premium_market_id:
        return {}
    return {premium_market_id: PremiumStockOverride()}
