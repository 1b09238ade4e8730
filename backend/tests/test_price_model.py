"""Tests for the synthetic price model (pure functions, no DB dependency)."""

import math
import random
import statistics

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from app.price_model import (
    MIN_PRICE,
    PATTERNS,
    PremiumStockOverride,
    assign_pattern_type,
    build_price_overrides,
    cyclical_term,
    gaussian,
    jump_term,
    next_volatility,
    params_for_pattern,
    step,
)
from conftest import ScriptedRandom

# u=0.5, v=0.25 gives cos(pi/2), i.e. a zero normal draw
ZERO_GAUSSIAN = [0.5, 0.25]


class TestGaussian:
    """Box-Muller normal draws."""

    def test_standard_normal_moments(self):
        rng = random.Random(1)
        draws = [gaussian(rng) for _ in range(20000)]
        assert abs(statistics.mean(draws)) < 0.05
        assert abs(statistics.pstdev(draws) - 1.0) < 0.05

    def test_zero_uniforms_are_redrawn(self):
        """A 0.0 uniform would hit log(0); it must be skipped."""
        rng = ScriptedRandom([0.0, 0.5, 0.0, 0.25])
        assert abs(gaussian(rng)) < 1e-9
        assert rng.values == []

    def test_known_value(self):
        rng = ScriptedRandom([math.exp(-0.5), 0.0001])
        # sqrt(-2 ln u) == 1 and cos(~0) ~ 1
        assert gaussian(rng) == pytest.approx(1.0, abs=1e-6)


class TestVolatility:
    """Volatility clustering and its clamp."""

    def test_capped_at_three_times_base(self):
        assert next_volatility(100.0, 0.02, random.Random(0)) == pytest.approx(0.06)

    def test_floored_at_thirty_percent_of_base(self):
        rng = ScriptedRandom(ZERO_GAUSSIAN)
        assert next_volatility(0.0, 1.0, rng) == pytest.approx(0.3)

    def test_reverts_toward_base_without_noise(self):
        rng = ScriptedRandom(ZERO_GAUSSIAN)
        assert next_volatility(0.05, 0.03, rng) == pytest.approx(0.85 * 0.05 + 0.15 * 0.03)

    @pytest.mark.parametrize("pattern", PATTERNS)
    def test_always_within_bounds(self, pattern):
        params = params_for_pattern(pattern, 50.0)
        rng = random.Random(42)
        vol = params.base_volatility
        for _ in range(500):
            vol = next_volatility(vol, params.base_volatility, rng)
            assert params.base_volatility * 0.3 - 1e-12 <= vol <= params.base_volatility * 3 + 1e-12


class TestStep:
    """One simulated period."""

    def test_drift_only_when_draws_are_neutral(self):
        params = params_for_pattern("UPTREND", 100.0)
        rng = ScriptedRandom(ZERO_GAUSSIAN + ZERO_GAUSSIAN + [0.99])
        price, vol = step(100.0, params.base_volatility, params, 1, rng)
        assert price == pytest.approx(100.15)
        assert vol == pytest.approx(params.base_volatility)

    def test_mean_reversion_pulls_toward_mean(self):
        params = params_for_pattern("STABLE", 100.0)
        rng = ScriptedRandom(ZERO_GAUSSIAN + ZERO_GAUSSIAN + [0.99])
        price, _ = step(50.0, params.base_volatility, params, 1, rng)
        # drift 0.0003 + 0.15 * (100 - 50) / 50
        assert price == pytest.approx(50.0 * 1.1503, abs=0.01)

    def test_price_never_below_floor_under_adversarial_draws(self):
        """Crash jump plus a huge negative shock still floors at 1."""
        params = params_for_pattern("VOLATILE", 1.0)
        # vol draw, shock draw pushing ~ -4.3 sigma, then a negative jump
        rng = ScriptedRandom([0.5, 0.25, 1e-4, 0.5, 0.0, 0.1, 1.0])
        price, _ = step(1.0, params.base_volatility * 3, params, 1, rng)
        assert price == MIN_PRICE

    @pytest.mark.parametrize("pattern", PATTERNS)
    def test_prices_positive_and_in_cents_over_many_seeds(self, pattern):
        for seed in range(20):
            rng = random.Random(seed)
            params = params_for_pattern(pattern, 5.0)
            price, vol = 1.5, params.base_volatility
            for day in range(200):
                price, vol = step(price, vol, params, day % 365 + 1, rng)
                assert price >= MIN_PRICE
                assert round(price, 2) == price

    def test_same_seed_same_path(self):
        params = params_for_pattern("RANDOM_WALK", 40.0)
        paths = []
        for _ in range(2):
            rng = random.Random(99)
            price, vol = 40.0, params.base_volatility
            path = []
            for day in range(30):
                price, vol = step(price, vol, params, day + 1, rng)
                path.append(price)
            paths.append(path)
        assert paths[0] == paths[1]

    def test_rejects_non_positive_previous_price(self):
        params = params_for_pattern("STABLE", 10.0)
        with pytest.raises(ValueError):
            step(0.0, 0.01, params, 1)


class TestTerms:
    """Cyclical and jump components."""

    def test_cyclical_peak(self):
        params = params_for_pattern("CYCLICAL", 10.0)
        assert cyclical_term(params, 15) == pytest.approx(0.002)

    def test_cyclical_only_for_cyclical_pattern(self):
        params = params_for_pattern("UPTREND", 10.0)
        assert cyclical_term(params, 15) == 0.0

    def test_upward_jump(self):
        params = params_for_pattern("VOLATILE", 10.0)
        assert jump_term(params, ScriptedRandom([0.0, 0.9, 1.0])) == pytest.approx(params.jump_magnitude)

    def test_downward_half_jump(self):
        params = params_for_pattern("VOLATILE", 10.0)
        assert jump_term(params, ScriptedRandom([0.0, 0.2, 0.0])) == pytest.approx(-params.jump_magnitude * 0.5)

    def test_no_jump_above_frequency(self):
        params = params_for_pattern("VOLATILE", 10.0)
        assert jump_term(params, ScriptedRandom([0.99])) == 0.0


class TestPatterns:
    """Pattern table and assignment."""

    def test_unknown_pattern_rejected(self):
        with pytest.raises(ValueError):
            params_for_pattern("SIDEWAYS", 10.0)

    def test_non_positive_mean_rejected(self):
        with pytest.raises(ValueError):
            params_for_pattern("STABLE", 0.0)

    def test_assignment_cycles_in_order(self):
        assigned = [assign_pattern_type(i) for i in range(8)]
        assert assigned[:6] == list(PATTERNS)
        assert assigned[6:] == ["UPTREND", "DOWNTREND"]

    def test_pattern_constants(self):
        params = params_for_pattern("DOWNTREND", 20.0)
        assert params.drift == -0.001
        assert params.base_volatility == 0.03
        assert params.mean_reversion_speed == 0.02
        assert params.jump_frequency == 0.04
        assert params.jump_magnitude == 0.1


class TestPremiumOverride:
    """The premium stock's override strategy."""

    def test_adjusts_parameters(self):
        params = PremiumStockOverride().adjust_params(params_for_pattern("VOLATILE", 100.0))
        assert params.base_volatility == 0.015
        assert params.drift == 0.006
        assert params.jump_frequency == 0.04
        assert params.jump_magnitude == 0.15
        assert params.mean_reversion_speed == 0.05

    def test_lifted_to_floor_above_highest_ordinary(self):
        price = PremiumStockOverride().adjust_price(10.0, 100.0, ScriptedRandom([0.5, 0.9]))
        assert price == 155.0

    def test_nudged_up_when_above_floor(self):
        price = PremiumStockOverride().adjust_price(200.0, 100.0, ScriptedRandom([0.1, 0.5]))
        assert price == pytest.approx(202.0)

    def test_no_floor_without_other_stocks(self):
        assert PremiumStockOverride().adjust_price(10.0, None, ScriptedRandom([0.9])) == 10.0

    def test_override_table(self):
        overrides = build_price_overrides("premium-id")
        assert isinstance(overrides["premium-id"], PremiumStockOverride)
        assert build_price_overrides("") == {}
