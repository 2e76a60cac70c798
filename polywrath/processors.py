"""Signal processors: three independent lenses on the active market.

1. Spike detection: MA deviation (mean reversion) or short velocity (momentum)
   on the Polymarket UP probability series.
2. Sentiment: Fear & Greed contrarian (buy the fear, fade the greed).
3. Price divergence: Polymarket probability vs spot momentum.

Each returns at most one Signal, or None when its lens sees nothing.
"""
from __future__ import annotations

import logging
import math

from polywrath.history import RollingHistory
from polywrath.models import Signal, SignalDirection, SignalSource, SignalStrength

log = logging.getLogger(__name__)

# Spike detection
SPIKE_THRESHOLD = 0.05
SPIKE_LOOKBACK = 20
SPIKE_MIN_CONFIDENCE = 0.55
VELOCITY_THRESHOLD = 0.03
VELOCITY_WINDOW = 3
MOMENTUM_DEVIATION_CEILING = 0.6  # velocity branch only while |dev| < 60% of threshold

# Sentiment
EXTREME_FEAR = 25
EXTREME_GREED = 75
MILD_FEAR = 45
MILD_GREED = 55
SENTIMENT_MIN_CONFIDENCE = 0.50

# Price divergence
MOMENTUM_THRESHOLD = 0.003
HIGH_PROB = 0.68
LOW_PROB = 0.32
MID_BAND = (0.35, 0.65)
FLAT_MOMENTUM = 0.001
DIVERGENCE_MIN_CONFIDENCE = 0.55


def _extremeness_tier(extremeness: float) -> tuple[SignalStrength, float]:
    if extremeness >= 0.8:
        return SignalStrength.VERY_STRONG, 0.85
    if extremeness >= 0.5:
        return SignalStrength.STRONG, 0.75
    return SignalStrength.MODERATE, 0.65


def process_spike_detection(
    current: float,
    history: list[float],
    *,
    spike_threshold: float = SPIKE_THRESHOLD,
    lookback: int = SPIKE_LOOKBACK,
    min_confidence: float = SPIKE_MIN_CONFIDENCE,
    velocity_threshold: float = VELOCITY_THRESHOLD,
) -> Signal | None:
    """MA-deviation spike → mean reversion; velocity spike → continuation.

    `history` is the rolling probability series, oldest first. The caller
    feeds `current` into it before evaluating, so the MA includes it.
    """
    if len(history) < lookback:
        return None

    window = history[-lookback:]
    ma = sum(window) / len(window)
    deviation = (current - ma) / ma if ma > 0 else 0.0
    deviation_abs = abs(deviation)

    velocity = 0.0
    if len(history) >= VELOCITY_WINDOW:
        ref = history[-VELOCITY_WINDOW]
        velocity = (current - ref) / ref if ref > 0 else 0.0

    if deviation_abs >= spike_threshold:
        # Far above average → expect reversion down, and vice versa
        direction = SignalDirection.BEARISH if deviation > 0 else SignalDirection.BULLISH
        if deviation_abs >= 0.12:
            strength = SignalStrength.VERY_STRONG
        elif deviation_abs >= 0.08:
            strength = SignalStrength.STRONG
        elif deviation_abs >= 0.05:
            strength = SignalStrength.MODERATE
        else:
            strength = SignalStrength.WEAK

        confidence = min(0.90, 0.50 + (deviation_abs - spike_threshold) * 3.0)
        if confidence < min_confidence:
            log.debug("[SPIKE] deviation %.4f below confidence floor (%.3f)", deviation, confidence)
            return None
        return Signal(
            source=SignalSource.SPIKE_DETECTION,
            direction=direction,
            strength=strength,
            confidence=confidence,
            metadata={"mode": "ma_deviation", "deviation": deviation, "ma": ma, "velocity": velocity},
        )

    if abs(velocity) >= velocity_threshold and deviation_abs < spike_threshold * MOMENTUM_DEVIATION_CEILING:
        direction = SignalDirection.BULLISH if velocity > 0 else SignalDirection.BEARISH
        multiple = abs(velocity) / velocity_threshold
        if multiple >= 3:
            strength, confidence = SignalStrength.MODERATE, 0.65
        elif multiple >= 2:
            strength, confidence = SignalStrength.WEAK, 0.60
        else:
            strength, confidence = SignalStrength.WEAK, 0.57

        if confidence < min_confidence:
            return None
        return Signal(
            source=SignalSource.SPIKE_DETECTION,
            direction=direction,
            strength=strength,
            confidence=confidence,
            metadata={"mode": "velocity", "velocity": velocity, "ma": ma, "deviation": deviation},
        )

    return None


def process_sentiment(
    fear_greed: float,
    current: float,
    *,
    extreme_fear: float = EXTREME_FEAR,
    extreme_greed: float = EXTREME_GREED,
    min_confidence: float = SENTIMENT_MIN_CONFIDENCE,
) -> Signal | None:
    """Fear & Greed contrarian signal.

    0-25 extreme fear → bullish, 75-100 extreme greed → bearish, scaled by
    how deep into the extreme zone the index sits. Below 45 / above 55 is a
    weak lean; 45-55 is neutral and emits nothing.
    """
    if fear_greed <= extreme_fear:
        direction = SignalDirection.BULLISH
        extremeness = (extreme_fear - fear_greed) / extreme_fear
        strength, confidence = _extremeness_tier(extremeness)
    elif fear_greed >= extreme_greed:
        direction = SignalDirection.BEARISH
        extremeness = (fear_greed - extreme_greed) / (100 - extreme_greed)
        strength, confidence = _extremeness_tier(extremeness)
    elif fear_greed < MILD_FEAR:
        direction, strength, confidence = SignalDirection.BULLISH, SignalStrength.WEAK, 0.55
    elif fear_greed > MILD_GREED:
        direction, strength, confidence = SignalDirection.BEARISH, SignalStrength.WEAK, 0.55
    else:
        return None

    if confidence < min_confidence:
        return None

    return Signal(
        source=SignalSource.SENTIMENT,
        direction=direction,
        strength=strength,
        confidence=confidence,
        metadata={"fear_greed": fear_greed, "reading": current},
    )


def process_divergence(
    probability: float,
    spot_price: float | None,
    spot_history: RollingHistory,
    *,
    momentum_threshold: float = MOMENTUM_THRESHOLD,
    high_prob: float = HIGH_PROB,
    low_prob: float = LOW_PROB,
    min_confidence: float = DIVERGENCE_MIN_CONFIDENCE,
) -> Signal | None:
    """Polymarket UP probability vs spot momentum.

    Fades extreme probabilities that spot isn't confirming, and bets with
    spot when it moves but Polymarket still sits in the mid band.
    Every finite spot price is pushed into `spot_history`.
    """
    momentum = 0.0
    if spot_price is not None and math.isfinite(spot_price):
        spots = spot_history.push(spot_price)
        if len(spots) >= 3:
            ref = spots[-3]
            momentum = (spot_price - ref) / ref if ref > 0 else 0.0

    if probability >= high_prob and momentum <= FLAT_MOMENTUM:
        extremeness = (probability - high_prob) / (1.0 - high_prob)
        confidence = min(0.80, min_confidence + extremeness * 0.25)
        strength = SignalStrength.STRONG if extremeness > 0.5 else SignalStrength.MODERATE
        return Signal(
            source=SignalSource.PRICE_DIVERGENCE,
            direction=SignalDirection.BEARISH,
            strength=strength,
            confidence=confidence,
            metadata={"type": "extreme_prob_fade_down", "probability": probability,
                      "spot_momentum": momentum, "extremeness": extremeness},
        )

    if probability <= low_prob and momentum >= -FLAT_MOMENTUM:
        extremeness = (low_prob - probability) / low_prob
        confidence = min(0.80, min_confidence + extremeness * 0.25)
        strength = SignalStrength.STRONG if extremeness > 0.5 else SignalStrength.MODERATE
        return Signal(
            source=SignalSource.PRICE_DIVERGENCE,
            direction=SignalDirection.BULLISH,
            strength=strength,
            confidence=confidence,
            metadata={"type": "extreme_prob_fade_up", "probability": probability,
                      "spot_momentum": momentum, "extremeness": extremeness},
        )

    lo, hi = MID_BAND
    if lo <= probability <= hi and abs(momentum) >= momentum_threshold:
        multiple = abs(momentum) / momentum_threshold
        confidence = min(0.78, 0.55 + min(multiple - 1, 2) * 0.08)
        if multiple >= 3:
            strength = SignalStrength.STRONG
        elif multiple >= 2:
            strength = SignalStrength.MODERATE
        else:
            strength = SignalStrength.WEAK

        if confidence < min_confidence:
            return None

        direction = SignalDirection.BULLISH if momentum > 0 else SignalDirection.BEARISH
        return Signal(
            source=SignalSource.PRICE_DIVERGENCE,
            direction=direction,
            strength=strength,
            confidence=confidence,
            metadata={"type": "momentum_mispricing", "probability": probability,
                      "spot_momentum": momentum, "multiple": multiple},
        )

    return None
