"""Tests for OHLCV bar synthesis (unit-level, no DB dependency)."""

import random
from types import SimpleNamespace

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from app.candles import LOW_FLOOR, extend, is_valid, synthesize
from app.price_model import params_for_pattern, step
from conftest import ScriptedRandom


class TestSynthesize:
    """Bars built from open, close and volatility."""

    @pytest.mark.parametrize("seed", range(25))
    def test_ohlc_law_over_simulated_paths(self, seed):
        rng = random.Random(seed)
        params = params_for_pattern("VOLATILE", 3.0)
        price, vol = 2.0, params.base_volatility
        for day in range(120):
            open_price = price
            price, vol = step(price, vol, params, day + 1, rng)
            bar = synthesize(open_price, price, vol, rng)
            assert is_valid(bar), bar
            assert bar["low"] >= LOW_FLOOR

    def test_flat_bar_volume_formula(self):
        # extra-range, high, low, then base volume draws
        bar = synthesize(100.0, 100.0, 0.0, ScriptedRandom([0.0, 0.0, 0.0, 0.5]))
        assert bar == {"open": 100.0, "high": 100.0, "low": 100.0, "close": 100.0, "volume": 2000}

    def test_volume_grows_with_volatility_and_range(self):
        calm = synthesize(100.0, 100.0, 0.0, ScriptedRandom([0.5] * 4))
        wild = synthesize(100.0, 110.0, 0.05, ScriptedRandom([0.5] * 4))
        # 2000 * (1 + 0.5 + 2.0)
        assert wild["volume"] == 7000
        assert wild["volume"] > calm["volume"]

    def test_low_floored_near_one(self):
        bar = synthesize(1.2, 1.0, 0.06, ScriptedRandom([0.7, 0.9, 1.0, 0.5]))
        assert bar["low"] == LOW_FLOOR
        assert is_valid(bar)

    def test_low_never_above_body(self):
        """A body trading under the floor keeps the law rather than the floor."""
        bar = synthesize(0.8, 0.5, 0.02, ScriptedRandom([0.5] * 4))
        assert bar["low"] == 0.5
        assert is_valid(bar)

    def test_prices_rounded_to_cents(self):
        bar = synthesize(41.23456, 42.98765, 0.03, random.Random(5))
        for key in ("open", "high", "low", "close"):
            assert round(bar[key], 2) == bar[key]
        assert bar["open"] == 41.23
        assert bar["close"] == 42.99

    def test_rejects_non_positive_open(self):
        with pytest.raises(ValueError):
            synthesize(0.0, 1.0, 0.01)


class TestExtend:
    """Folding later prices into an open bar."""

    def _bar(self):
        return SimpleNamespace(open=10.0, high=10.5, low=9.8, close=10.2, volume=100)

    def test_new_high(self):
        bar = extend(self._bar(), 11.0, 60)
        assert (bar.high, bar.low, bar.close, bar.volume) == (11.0, 9.8, 11.0, 160)

    def test_new_low(self):
        bar = extend(self._bar(), 9.5, 50)
        assert (bar.high, bar.low, bar.close) == (10.5, 9.5, 9.5)
        assert bar.open == 10.0

    def test_inside_range_only_moves_close(self):
        bar = extend(self._bar(), 10.1)
        assert (bar.high, bar.low, bar.close, bar.volume) == (10.5, 9.8, 10.1, 100)

    def test_negative_volume_ignored(self):
        assert extend(self._bar(), 10.0, -5).volume == 100

    def test_extended_bar_stays_valid(self):
        rng = random.Random(8)
        bar = self._bar()
        for _ in range(200):
            extend(bar, bar.close * (1 + (rng.random() - 0.5) * 0.1), rng.randint(50, 149))
            assert is_valid(bar)
