"""Data models exchanged between the decision core and the outside world.

Signals, fused signals, snapshots and decisions are frozen: each is built
once per evaluation and never mutated afterwards.
"""
from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from enum import Enum


class SignalDirection(Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"


class SignalStrength(Enum):
    WEAK = 1
    MODERATE = 2
    STRONG = 3
    VERY_STRONG = 4


class SignalSource(Enum):
    SPIKE_DETECTION = "SpikeDetection"
    PRICE_DIVERGENCE = "PriceDivergence"
    SENTIMENT = "SentimentAnalysis"
    EXTERNAL = "External"


# Fusion voting weights. They need not sum to 1 over a signal set.
SOURCE_WEIGHTS = {
    SignalSource.SPIKE_DETECTION: 0.40,
    SignalSource.PRICE_DIVERGENCE: 0.30,
    SignalSource.SENTIMENT: 0.20,
}
DEFAULT_SOURCE_WEIGHT = 0.10


class TradeSide(Enum):
    UP = "UP"
    DOWN = "DOWN"


class DecisionAction(Enum):
    TRADE = "trade"
    SKIP = "skip"
    HOLD = "hold"


@dataclass(frozen=True)
class Signal:
    """A directional hypothesis from one processor invocation."""
    source: SignalSource
    direction: SignalDirection
    strength: SignalStrength
    confidence: float             # 0.0 - 1.0
    metadata: dict = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    @property
    def score(self) -> float:
        """0-100 blend of strength tier and confidence."""
        return (self.strength.value / 4 * 0.5 + self.confidence * 0.5) * 100

    def to_dict(self) -> dict:
        return {
            "source": self.source.value,
            "direction": self.direction.value,
            "strength": self.strength.name,
            "confidence": self.confidence,
            "score": self.score,
            "metadata": dict(self.metadata),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class FusedSignal:
    direction: SignalDirection
    score: float                  # 0-100, winning side's share of weighted conviction
    confidence: float             # mean confidence of all contributing signals
    signals: tuple[Signal, ...]
    metadata: dict = field(default_factory=dict)

    @property
    def is_actionable(self) -> bool:
        return self.score >= 60 and self.confidence >= 0.6

    @property
    def is_strong(self) -> bool:
        return self.score >= 70

    def to_dict(self) -> dict:
        return {
            "direction": self.direction.value,
            "score": self.score,
            "confidence": self.confidence,
            "isActionable": self.is_actionable,
            "isStrong": self.is_strong,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class MarketSnapshot:
    price: float                  # canonical spot, NaN when no source had one
    bid: float
    ask: float
    spread: float
    volume_24h: float
    buy_sell_imbalance: float     # (buys - sells) / (buys + sells), in [-1, 1]
    vwap_delta: float | None      # (spot - window vwap) / spot
    fear_greed: float             # 0-100, 50 when the index is unavailable
    chain_slot: int | None
    is_valid: bool
    reasons: tuple[str, ...]
    timestamp: float
    source_lag_s: float
    missing_sources: tuple[str, ...] = ()
    high_24h: float = math.nan
    low_24h: float = math.nan
    bid_depth: float = 0.0        # summed size over the parsed Coinbase book levels
    ask_depth: float = 0.0

    def to_dict(self) -> dict:
        def _num(x: float) -> float | None:
            return x if math.isfinite(x) else None

        return {
            "price": _num(self.price),
            "bid": _num(self.bid),
            "ask": _num(self.ask),
            "spread": _num(self.spread),
            "volume24h": self.volume_24h,
            "high24h": _num(self.high_24h),
            "low24h": _num(self.low_24h),
            "book": {"bidDepth": self.bid_depth, "askDepth": self.ask_depth},
            "flow": {
                "buySellImbalance": self.buy_sell_imbalance,
                "vwapDelta": self.vwap_delta,
            },
            "sentiment": {"fearGreed": self.fear_greed},
            "chainSlot": self.chain_slot,
            "meta": {
                "ts": self.timestamp,
                "sourceLagS": self.source_lag_s,
                "isValid": self.is_valid,
                "reasons": list(self.reasons),
                "missingSources": list(self.missing_sources),
            },
        }


@dataclass(frozen=True)
class Decision:
    """Terminal output of one evaluation cycle, with its full evidence trail."""
    action: DecisionAction
    snapshot: MarketSnapshot
    raw_signals: tuple[Signal, ...] = ()
    fused_signal: FusedSignal | None = None
    side: TradeSide | None = None
    reason: str | None = None

    def to_dict(self) -> dict:
        return {
            "decision": self.action.value,
            "side": self.side.value if self.side else None,
            "reason": self.reason,
            "fusedSignal": self.fused_signal.to_dict() if self.fused_signal else None,
            "rawSignals": [s.to_dict() for s in self.raw_signals],
            "snapshot": self.snapshot.to_dict(),
        }
