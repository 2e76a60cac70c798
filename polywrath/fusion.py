"""Signal fusion: weighted voting across processor signals.

contribution = source weight × confidence × (strength tier / 4)

The consensus score is the winning side's share of total weighted
conviction, not an absolute strength: one lone weak signal scores 100.
"""
from __future__ import annotations

import logging
import time
from typing import Iterable

from polywrath.models import (
    DEFAULT_SOURCE_WEIGHT,
    SOURCE_WEIGHTS,
    FusedSignal,
    Signal,
    SignalDirection,
)

log = logging.getLogger(__name__)

RECENCY_WINDOW_S = 5 * 60
MIN_TOTAL_CONTRIB = 0.0001


def source_weight(signal: Signal) -> float:
    return SOURCE_WEIGHTS.get(signal.source, DEFAULT_SOURCE_WEIGHT)


def contribution(signal: Signal) -> float:
    conf = min(1.0, max(0.0, signal.confidence))
    return source_weight(signal) * conf * (signal.strength.value / 4)


def fuse_signals(
    signals: Iterable[Signal],
    *,
    min_signals: int = 1,
    min_score: float = 60,
    now: float | None = None,
) -> FusedSignal | None:
    """Fuse recent signals into one consensus, or None if there is none."""
    now = time.time() if now is None else now
    recent = [s for s in signals if now - s.timestamp < RECENCY_WINDOW_S]
    if len(recent) < min_signals:
        log.debug("[FUSION] %d recent signals, need %d", len(recent), min_signals)
        return None

    bullish = 0.0
    bearish = 0.0
    for sig in recent:
        if sig.direction is SignalDirection.BULLISH:
            bullish += contribution(sig)
        elif sig.direction is SignalDirection.BEARISH:
            bearish += contribution(sig)

    total = bullish + bearish
    if total < MIN_TOTAL_CONTRIB:
        return None

    direction = SignalDirection.BULLISH if bullish >= bearish else SignalDirection.BEARISH
    score = max(bullish, bearish) / total * 100
    confidence = sum(s.confidence for s in recent) / len(recent)

    if score < min_score:
        log.debug("[FUSION] score %.1f < %.1f (bull=%.4f bear=%.4f)", score, min_score, bullish, bearish)
        return None

    return FusedSignal(
        direction=direction,
        score=score,
        confidence=confidence,
        signals=tuple(recent),
        metadata={
            "bullish_contrib": round(bullish, 4),
            "bearish_contrib": round(bearish, 4),
            "total_contrib": round(total, 4),
            "num_bullish": sum(1 for s in recent if s.direction is SignalDirection.BULLISH),
            "num_bearish": sum(1 for s in recent if s.direction is SignalDirection.BEARISH),
        },
    )
