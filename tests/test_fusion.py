"""Tests for weighted-voting signal fusion."""
from __future__ import annotations

import time

import pytest

from polywrath.fusion import RECENCY_WINDOW_S, contribution, fuse_signals
from polywrath.models import Signal, SignalDirection, SignalSource, SignalStrength

BULL = SignalDirection.BULLISH
BEAR = SignalDirection.BEARISH


def _sig(source, direction, strength=SignalStrength.VERY_STRONG, confidence=1.0, age_s=0.0, now=None):
    now = time.time() if now is None else now
    return Signal(source=source, direction=direction, strength=strength,
                  confidence=confidence, timestamp=now - age_s)


class TestContribution:
    def test_weighted_by_source_confidence_and_tier(self) -> None:
        sig = _sig(SignalSource.PRICE_DIVERGENCE, BULL, SignalStrength.MODERATE, 0.8)
        assert contribution(sig) == pytest.approx(0.30 * 0.8 * 0.5)

    def test_external_source_gets_default_weight(self) -> None:
        sig = _sig(SignalSource.EXTERNAL, BULL)
        assert contribution(sig) == pytest.approx(0.10)

    def test_confidence_clamped(self) -> None:
        sig = _sig(SignalSource.SENTIMENT, BEAR, confidence=1.5)
        assert contribution(sig) == pytest.approx(0.20)


class TestFuseSignals:
    def test_unanimous_max_conviction_scores_100(self) -> None:
        signals = [
            _sig(SignalSource.SPIKE_DETECTION, BULL),
            _sig(SignalSource.PRICE_DIVERGENCE, BULL),
            _sig(SignalSource.SENTIMENT, BULL),
        ]
        fused = fuse_signals(signals)
        assert fused is not None
        assert fused.direction is BULL
        assert fused.score == pytest.approx(100.0)
        assert fused.confidence == pytest.approx(1.0)
        assert fused.is_actionable
        assert fused.is_strong
        assert fused.metadata["bullish_contrib"] == pytest.approx(0.9)
        assert fused.metadata["bearish_contrib"] == 0
        assert fused.metadata["num_bullish"] == 3
        assert fused.metadata["num_bearish"] == 0

    def test_all_stale_signals_yield_none(self) -> None:
        now = time.time()
        signals = [
            _sig(SignalSource.SPIKE_DETECTION, BULL, age_s=RECENCY_WINDOW_S + 1, now=now),
            _sig(SignalSource.SENTIMENT, BULL, age_s=600, now=now),
        ]
        assert fuse_signals(signals, now=now) is None

    def test_stale_signals_excluded(self) -> None:
        now = time.time()
        signals = [
            _sig(SignalSource.SPIKE_DETECTION, BEAR, age_s=RECENCY_WINDOW_S + 1, now=now),
            _sig(SignalSource.SENTIMENT, BULL, age_s=10, now=now),
        ]
        fused = fuse_signals(signals, now=now)
        assert fused.direction is BULL
        assert len(fused.signals) == 1

    def test_empty_input(self) -> None:
        assert fuse_signals([]) is None

    def test_min_signals_gate(self) -> None:
        assert fuse_signals([_sig(SignalSource.SENTIMENT, BULL)], min_signals=2) is None

    def test_zero_total_contribution(self) -> None:
        assert fuse_signals([_sig(SignalSource.SENTIMENT, BULL, confidence=0.0)]) is None

    def test_score_is_winning_share(self) -> None:
        signals = [
            _sig(SignalSource.SPIKE_DETECTION, BULL, SignalStrength.STRONG, 0.8),
            _sig(SignalSource.SENTIMENT, BEAR, SignalStrength.MODERATE, 0.65),
        ]
        bull = 0.40 * 0.8 * 0.75
        bear = 0.20 * 0.65 * 0.5
        fused = fuse_signals(signals)
        assert fused.direction is BULL
        assert fused.score == pytest.approx(bull / (bull + bear) * 100)
        # mean across both directions, not just the winner
        assert fused.confidence == pytest.approx((0.8 + 0.65) / 2)
        assert fused.metadata["num_bullish"] == 1
        assert fused.metadata["num_bearish"] == 1

    def test_tie_favors_bullish(self) -> None:
        signals = [
            _sig(SignalSource.EXTERNAL, BEAR),
            _sig(SignalSource.EXTERNAL, BULL),
        ]
        fused = fuse_signals(signals, min_score=0)
        assert fused.direction is BULL
        assert fused.score == pytest.approx(50.0)

    def test_below_min_score_rejected(self) -> None:
        signals = [
            _sig(SignalSource.SENTIMENT, BULL, SignalStrength.MODERATE, 0.65),
            _sig(SignalSource.PRICE_DIVERGENCE, BEAR, SignalStrength.MODERATE, 0.565625),
        ]
        assert fuse_signals(signals) is None
        assert fuse_signals(signals, min_score=50) is not None

    @pytest.mark.parametrize("confs", [(0.1, 0.9, 0.5), (1.0, 1.0, 0.2), (0.55, 0.6, 0.65)])
    def test_score_bounded(self, confs) -> None:
        signals = [
            _sig(SignalSource.SPIKE_DETECTION, BULL, SignalStrength.WEAK, confs[0]),
            _sig(SignalSource.PRICE_DIVERGENCE, BEAR, SignalStrength.STRONG, confs[1]),
            _sig(SignalSource.SENTIMENT, BULL, SignalStrength.MODERATE, confs[2]),
        ]
        fused = fuse_signals(signals, min_score=0)
        assert 0.0 <= fused.score <= 100.0

    def test_high_score_low_confidence_not_actionable(self) -> None:
        fused = fuse_signals([_sig(SignalSource.SENTIMENT, BULL, SignalStrength.WEAK, 0.55)])
        assert fused.score == pytest.approx(100.0)
        assert fused.is_strong
        assert not fused.is_actionable
