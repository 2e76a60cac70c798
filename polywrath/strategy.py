"""Strategy decision engine.

Ingest → processors → fusion → flow confirmation → Decision.

  1. SpikeDetection (MA deviation + velocity)          weight 0.40
  2. PriceDivergence (extreme fade + momentum mispricing) weight 0.30
  3. SentimentAnalysis (Fear & Greed contrarian)        weight 0.20

Every terminal state carries the snapshot, the raw signals and the fused
signal where one exists, so the execution and logging layers can audit it.
"""
from __future__ import annotations

import asyncio
import logging
import math

from polywrath.config import Config
from polywrath.fusion import fuse_signals
from polywrath.history import RollingHistory
from polywrath.ingestion import Ingestor
from polywrath.models import (
    Decision,
    DecisionAction,
    FusedSignal,
    MarketSnapshot,
    Signal,
    SignalDirection,
    TradeSide,
)
from polywrath.processors import process_divergence, process_sentiment, process_spike_detection

log = logging.getLogger(__name__)


def _check_probability(probability: float) -> float:
    if not isinstance(probability, (int, float)) or not math.isfinite(probability):
        raise ValueError(f"probability must be a finite number, got {probability!r}")
    if not 0.0 <= probability <= 1.0:
        raise ValueError(f"probability must be within [0, 1], got {probability}")
    return float(probability)


def side_for(direction: SignalDirection) -> TradeSide:
    return TradeSide.UP if direction is SignalDirection.BULLISH else TradeSide.DOWN


def flow_agrees(imbalance: float, side: TradeSide) -> bool:
    return imbalance * (1 if side is TradeSide.UP else -1) > 0


class StrategyEngine:
    """Evaluates one market per call. Owns its rolling histories."""

    def __init__(
        self,
        cfg: Config | None = None,
        ingestor: Ingestor | None = None,
        prob_history: RollingHistory | None = None,
        spot_history: RollingHistory | None = None,
    ):
        self.cfg = cfg or Config()
        self.ingestor = ingestor if ingestor is not None else Ingestor(self.cfg)
        self.prob_history = prob_history if prob_history is not None else RollingHistory(self.cfg.prob_history_cap)
        self.spot_history = spot_history if spot_history is not None else RollingHistory(self.cfg.spot_history_cap)

    def feed(self, probability: float) -> None:
        """Append a Polymarket UP probability reading to the rolling history."""
        self.prob_history.append(_check_probability(probability))

    def run_processors(self, probability: float, snapshot: MarketSnapshot) -> list[Signal]:
        cfg = self.cfg
        signals: list[Signal] = []

        spike = process_spike_detection(
            probability,
            self.prob_history.values(),
            spike_threshold=cfg.spike_threshold,
            lookback=cfg.spike_lookback,
            min_confidence=cfg.spike_min_confidence,
            velocity_threshold=cfg.velocity_threshold,
        )
        if spike:
            signals.append(spike)

        sentiment = process_sentiment(
            snapshot.fear_greed,
            probability,
            extreme_fear=cfg.extreme_fear,
            extreme_greed=cfg.extreme_greed,
            min_confidence=cfg.sentiment_min_confidence,
        )
        if sentiment:
            signals.append(sentiment)

        divergence = process_divergence(
            probability,
            snapshot.price,
            self.spot_history,
            momentum_threshold=cfg.momentum_threshold,
            high_prob=cfg.high_prob_threshold,
            low_prob=cfg.low_prob_threshold,
            min_confidence=cfg.divergence_min_confidence,
        )
        if divergence:
            signals.append(divergence)

        return signals

    def evaluate(self, probability: float) -> Decision:
        """Run one full evaluation cycle for the current UP probability."""
        self.feed(probability)

        snapshot = self.ingestor.ingest()
        if not snapshot.is_valid:
            return self._finish(
                DecisionAction.SKIP, snapshot,
                reason=f"Ingestion invalid: {'; '.join(snapshot.reasons)}",
            )

        raw = tuple(self.run_processors(probability, snapshot))
        if not raw:
            return self._finish(DecisionAction.HOLD, snapshot, reason="No signals generated")

        fused = fuse_signals(raw, min_signals=self.cfg.fusion_min_signals, min_score=self.cfg.fusion_min_score)
        if fused is None:
            return self._finish(
                DecisionAction.HOLD, snapshot, raw,
                reason="Fusion did not produce actionable signal",
            )

        if not fused.is_actionable:
            return self._finish(
                DecisionAction.HOLD, snapshot, raw, fused,
                reason=f"Signal not strong enough (score={fused.score:.1f}, conf={fused.confidence:.0%})",
            )

        side = side_for(fused.direction)
        imbalance = snapshot.buy_sell_imbalance
        if not flow_agrees(imbalance, side) and abs(imbalance) > self.cfg.flow_veto_imbalance:
            return self._finish(
                DecisionAction.SKIP, snapshot, raw, fused,
                reason=f"Flow disagreement (imbalance={imbalance * 100:.1f}% vs {side.value})",
            )

        return self._finish(DecisionAction.TRADE, snapshot, raw, fused, side=side)

    async def evaluate_async(self, probability: float) -> Decision:
        """evaluate() off the event loop; provider I/O is blocking."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.evaluate, probability)

    @staticmethod
    def _finish(
        action: DecisionAction,
        snapshot: MarketSnapshot,
        raw: tuple[Signal, ...] = (),
        fused: FusedSignal | None = None,
        side: TradeSide | None = None,
        reason: str | None = None,
    ) -> Decision:
        decision = Decision(
            action=action,
            snapshot=snapshot,
            raw_signals=raw,
            fused_signal=fused,
            side=side,
            reason=reason,
        )
        if action is DecisionAction.TRADE:
            log.info(
                "[STRATEGY] TRADE %s | score=%.1f conf=%.2f signals=%d",
                side.value, fused.score, fused.confidence, len(raw),
            )
        else:
            log.info("[STRATEGY] %s | %s", action.value.upper(), reason)
        return decision
