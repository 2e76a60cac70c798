"""Market scanner. Runs the indicator engine over each candidate market.

Independent of the fusion strategy: a candidate's UP-token price history is
turned into candles, scored, and kept when the score clears the risk-level
threshold. The caller supplies the candidates (discovery lives elsewhere).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from polywrath.config import Config
from polywrath.indicators import Candle, IndicatorSnapshot, compute_indicators
from polywrath.polymarket import fetch_market, fetch_price_history

log = logging.getLogger(__name__)

MIN_HISTORY_POINTS = 14
MAX_CANDLES = 100
SYNTHETIC_VOLUME = 1000.0   # price history carries no volume
WICK = 0.001

RISK_THRESHOLDS = {
    "conservative": 70,
    "moderate": 55,
    "aggressive": 50,
}

ASSET_KEYWORDS = {
    "btc": ("btc", "bitcoin"),
    "eth": ("eth", "ethereum"),
    "sol": ("sol", "solana"),
}


@dataclass(frozen=True)
class ScannerConfig:
    risk_level: str = "moderate"
    max_position_size: float = 100.0     # USDC
    markets: dict = field(default_factory=lambda: {"btc": True, "eth": True, "sol": True})

    @property
    def signal_threshold(self) -> int:
        return RISK_THRESHOLDS[self.risk_level]


@dataclass
class ScanCandidate:
    question: str
    slug: str
    up_token_id: str
    down_token_id: str
    up_price: float
    down_price: float
    history: list[tuple[float, float]]   # (timestamp, price), oldest first


@dataclass
class ScanSignal:
    market: str
    slug: str
    token_id: str
    side: str                 # "BUY_UP" or "BUY_DOWN"
    price: float
    signal: str               # "LONG" or "SHORT"
    strength: int
    indicators: IndicatorSnapshot
    suggested_size: float


def load_candidate(cfg: Config, market_id: str) -> ScanCandidate | None:
    """Build a candidate for a known market id from the CLOB."""
    market = fetch_market(cfg, market_id)
    if not market:
        return None
    tokens = market.get("tokens") or []
    if len(tokens) < 2:
        return None
    up, down = tokens[0], tokens[1]
    up_token, down_token = up.get("token_id"), down.get("token_id")
    if not up_token or not down_token:
        log.warning("[SCAN] market %s has tokens without ids", market_id[:16])
        return None
    history = fetch_price_history(cfg, up_token)
    if history is None:
        return None
    return ScanCandidate(
        question=market.get("question", ""),
        slug=market.get("market_slug", market_id),
        up_token_id=up_token,
        down_token_id=down_token,
        up_price=float(up.get("price") or 0.0),
        down_price=float(down.get("price") or 0.0),
        history=history,
    )


def candles_from_history(history: list[tuple[float, float]]) -> list[Candle]:
    """Synthesize candles from bare price points, keeping the newest MAX_CANDLES."""
    points = history[-(MAX_CANDLES + 1):]
    candles = []
    for i, (ts, price) in enumerate(points):
        candles.append(Candle(
            timestamp=ts,
            open=points[i - 1][1] if i > 0 else price,
            high=price * (1 + WICK),
            low=price * (1 - WICK),
            close=price,
            volume=SYNTHETIC_VOLUME,
        ))
    return candles[-MAX_CANDLES:]


class MarketScanner:
    def __init__(self, config: ScannerConfig | None = None):
        if config is not None and config.risk_level not in RISK_THRESHOLDS:
            raise ValueError(f"unknown risk level: {config.risk_level}")
        self.config = config or ScannerConfig()

    def update_config(self, **changes) -> ScannerConfig:
        if "risk_level" in changes and changes["risk_level"] not in RISK_THRESHOLDS:
            raise ValueError(f"unknown risk level: {changes['risk_level']}")
        self.config = replace(self.config, **changes)
        log.info("[SCAN] config updated: risk=%s threshold=%d max_size=%.2f",
                 self.config.risk_level, self.config.signal_threshold, self.config.max_position_size)
        return self.config

    def is_market_enabled(self, question: str) -> bool:
        q = question.lower()
        for asset, keywords in ASSET_KEYWORDS.items():
            if any(k in q for k in keywords):
                return bool(self.config.markets.get(asset, False))
        return True

    def evaluate_candidate(self, cand: ScanCandidate) -> ScanSignal | None:
        if len(cand.history) < MIN_HISTORY_POINTS:
            return None

        ta = compute_indicators(candles_from_history(cand.history))
        if ta.signal == "NEUTRAL" or ta.strength < self.config.signal_threshold:
            return None

        is_long = ta.signal == "LONG"
        max_size = self.config.max_position_size
        size = min(max_size * ta.strength / 100, max_size)
        return ScanSignal(
            market=cand.question,
            slug=cand.slug,
            token_id=cand.up_token_id if is_long else cand.down_token_id,
            side="BUY_UP" if is_long else "BUY_DOWN",
            price=cand.up_price if is_long else cand.down_price,
            signal=ta.signal,
            strength=ta.strength,
            indicators=ta,
            suggested_size=round(size, 2),
        )

    def scan(self, candidates: list[ScanCandidate]) -> list[ScanSignal]:
        """Score every enabled candidate; strongest first."""
        signals: list[ScanSignal] = []
        for cand in candidates:
            if not self.is_market_enabled(cand.question):
                continue
            try:
                sig = self.evaluate_candidate(cand)
            except Exception as e:
                log.warning("[SCAN] %s failed: %s", cand.slug, str(e)[:100])
                continue
            if sig is not None:
                signals.append(sig)

        signals.sort(key=lambda s: s.strength, reverse=True)
        log.info("[SCAN] %d/%d markets produced signals", len(signals), len(candidates))
        return signals
