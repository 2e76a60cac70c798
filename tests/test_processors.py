"""Tests for the three signal processors."""
from __future__ import annotations

import math

import pytest

from polywrath.history import RollingHistory
from polywrath.models import SignalDirection, SignalSource, SignalStrength
from polywrath.processors import process_divergence, process_sentiment, process_spike_detection


class TestSpikeDetection:
    def test_insufficient_history_returns_none(self) -> None:
        assert process_spike_detection(0.9, [0.5] * 19) is None

    def test_spike_above_average_is_bearish(self) -> None:
        history = [0.5] * 19 + [0.6]
        sig = process_spike_detection(0.6, history)
        assert sig is not None
        assert sig.source is SignalSource.SPIKE_DETECTION
        assert sig.direction is SignalDirection.BEARISH
        assert sig.strength is SignalStrength.VERY_STRONG
        assert sig.confidence == pytest.approx(0.90)
        assert sig.metadata["mode"] == "ma_deviation"

    def test_spike_below_average_is_bullish(self) -> None:
        history = [0.5] * 19 + [0.4]
        sig = process_spike_detection(0.4, history)
        assert sig is not None
        assert sig.direction is SignalDirection.BULLISH

    @pytest.mark.parametrize("current", [0.80, 0.85, 0.92, 1.075, 1.20, 1.30])
    def test_reversion_direction_opposes_deviation(self, current: float) -> None:
        history = [1.0] * 20
        for cur in (current, 2.0 - current):
            sig = process_spike_detection(cur, history)
            assert sig is not None
            expected = SignalDirection.BEARISH if cur > 1.0 else SignalDirection.BULLISH
            assert sig.direction is expected

    def test_strength_tiers_follow_deviation(self) -> None:
        history = [1.0] * 20
        assert process_spike_detection(1.07, history).strength is SignalStrength.MODERATE
        assert process_spike_detection(1.09, history).strength is SignalStrength.STRONG
        assert process_spike_detection(1.13, history).strength is SignalStrength.VERY_STRONG

    def test_confidence_formula(self) -> None:
        sig = process_spike_detection(1.07, [1.0] * 20)
        assert sig.confidence == pytest.approx(0.50 + 0.02 * 3.0)

    def test_small_spike_dropped_below_confidence_floor(self) -> None:
        # deviation 0.051 -> confidence 0.503 < 0.55
        assert process_spike_detection(1.051, [1.0] * 20) is None

    def test_velocity_momentum_bullish(self) -> None:
        history = [1.0] * 17 + [0.97, 0.98, 0.99]
        sig = process_spike_detection(1.0, history)
        assert sig is not None
        assert sig.metadata["mode"] == "velocity"
        assert sig.direction is SignalDirection.BULLISH
        assert sig.strength is SignalStrength.WEAK
        assert sig.confidence == pytest.approx(0.57)

    def test_velocity_multiple_graduates_strength(self) -> None:
        history = [1.0] * 17 + [1.10, 1.0, 1.0]
        sig = process_spike_detection(1.0, history)
        assert sig.direction is SignalDirection.BEARISH
        assert sig.strength is SignalStrength.MODERATE
        assert sig.confidence == pytest.approx(0.65)

    def test_velocity_suppressed_when_deviation_not_small(self) -> None:
        # deviation ~0.04 sits between 60% of threshold and the threshold
        history = [1.0] * 17 + [1.0, 1.0, 1.0]
        assert process_spike_detection(1.04, history) is None

    def test_quiet_series_emits_nothing(self) -> None:
        assert process_spike_detection(1.0, [1.0] * 30) is None


class TestSentiment:
    def test_extreme_fear_very_strong_bullish(self) -> None:
        sig = process_sentiment(5, 0.5)
        assert sig.direction is SignalDirection.BULLISH
        assert sig.strength is SignalStrength.VERY_STRONG
        assert sig.confidence == pytest.approx(0.85)

    def test_monotonic_confidence_in_fear(self) -> None:
        deep = process_sentiment(5, 0.5)
        shallow = process_sentiment(20, 0.5)
        assert deep.direction is shallow.direction is SignalDirection.BULLISH
        assert deep.confidence >= shallow.confidence
        assert shallow.strength is SignalStrength.MODERATE
        assert shallow.confidence == pytest.approx(0.65)

    def test_strong_tier(self) -> None:
        sig = process_sentiment(12, 0.5)
        assert sig.strength is SignalStrength.STRONG
        assert sig.confidence == pytest.approx(0.75)

    def test_extreme_greed_bearish(self) -> None:
        sig = process_sentiment(95, 0.5)
        assert sig.direction is SignalDirection.BEARISH
        assert sig.strength is SignalStrength.VERY_STRONG
        assert process_sentiment(80, 0.5).strength is SignalStrength.MODERATE

    def test_mild_leans_are_weak(self) -> None:
        fear = process_sentiment(40, 0.5)
        greed = process_sentiment(60, 0.5)
        assert fear.direction is SignalDirection.BULLISH
        assert greed.direction is SignalDirection.BEARISH
        assert fear.strength is greed.strength is SignalStrength.WEAK
        assert fear.confidence == greed.confidence == pytest.approx(0.55)

    @pytest.mark.parametrize("value", [45, 50, 55])
    def test_neutral_band_emits_nothing(self, value: float) -> None:
        assert process_sentiment(value, 0.5) is None

    def test_confidence_floor_drops_weak_lean(self) -> None:
        assert process_sentiment(40, 0.5, min_confidence=0.6) is None


class TestDivergence:
    def test_extreme_high_probability_fades_bearish(self) -> None:
        spots = RollingHistory(10)
        sig = process_divergence(0.70, 100.0, spots)
        assert sig.source is SignalSource.PRICE_DIVERGENCE
        assert sig.direction is SignalDirection.BEARISH
        assert sig.strength is SignalStrength.MODERATE
        assert sig.confidence == pytest.approx(0.55 + 0.0625 * 0.25)
        assert sig.metadata["type"] == "extreme_prob_fade_down"

    def test_very_extreme_high_is_strong(self) -> None:
        sig = process_divergence(0.95, 100.0, RollingHistory(10))
        assert sig.strength is SignalStrength.STRONG
        assert sig.confidence == pytest.approx(0.55 + (0.27 / 0.32) * 0.25)

    def test_confidence_capped(self) -> None:
        sig = process_divergence(1.0, 100.0, RollingHistory(10))
        assert sig.confidence == pytest.approx(0.80)

    def test_extreme_low_probability_fades_bullish(self) -> None:
        sig = process_divergence(0.20, 100.0, RollingHistory(10))
        assert sig.direction is SignalDirection.BULLISH
        assert sig.confidence == pytest.approx(0.55 + 0.375 * 0.25)
        assert sig.metadata["type"] == "extreme_prob_fade_up"

    def test_rising_spot_blocks_high_fade(self) -> None:
        spots = RollingHistory(10)
        process_divergence(0.70, 100.0, spots)
        process_divergence(0.70, 100.0, spots)
        assert process_divergence(0.70, 101.0, spots) is None

    def test_mid_band_momentum_mispricing(self) -> None:
        spots = RollingHistory(10)
        process_divergence(0.5, 100.0, spots)
        process_divergence(0.5, 100.0, spots)
        sig = process_divergence(0.5, 100.5, spots)
        assert sig.direction is SignalDirection.BULLISH
        assert sig.strength is SignalStrength.WEAK
        assert sig.confidence == pytest.approx(0.55 + (0.005 / 0.003 - 1) * 0.08)

    def test_large_momentum_is_strong_and_capped(self) -> None:
        spots = RollingHistory(10)
        process_divergence(0.5, 100.0, spots)
        process_divergence(0.5, 100.0, spots)
        sig = process_divergence(0.5, 99.0, spots)
        assert sig.direction is SignalDirection.BEARISH
        assert sig.strength is SignalStrength.STRONG
        assert sig.confidence == pytest.approx(0.71)

    def test_quiet_mid_band_emits_nothing(self) -> None:
        assert process_divergence(0.5, 100.0, RollingHistory(10)) is None

    def test_spot_history_updated_and_bounded(self) -> None:
        spots = RollingHistory(10)
        for i in range(15):
            process_divergence(0.5, 100.0 + i, spots)
        assert len(spots) == 10
        assert spots.values()[-1] == 114.0

    def test_missing_spot_not_recorded(self) -> None:
        spots = RollingHistory(10)
        process_divergence(0.5, None, spots)
        process_divergence(0.5, math.nan, spots)
        assert len(spots) == 0
