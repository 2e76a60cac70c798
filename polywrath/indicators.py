"""Technical-indicator engine for the market scanner.

RSI, MACD, VWAP, Heiken-Ashi and short deltas over a candle series, reduced
by a point scorer to a LONG / SHORT / NEUTRAL call with a 0-100 strength.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np


@dataclass
class Candle:
    timestamp: float
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass
class MacdResult:
    value: float = 0.0
    signal: float = 0.0
    histogram: float = 0.0


@dataclass
class HeikenAshi:
    open: float
    high: float
    low: float
    close: float
    trend: str   # "bullish", "bearish" or "neutral"


@dataclass
class IndicatorSnapshot:
    rsi: float
    macd: MacdResult
    vwap: float
    heiken_ashi: HeikenAshi
    delta_1: float          # % change over 1 candle
    delta_3: float          # % change over 3 candles
    long_pct: int
    short_pct: int
    signal: str             # "LONG", "SHORT" or "NEUTRAL"
    strength: int           # |long% - short%|

    def to_dict(self) -> dict:
        return {
            "rsi": self.rsi,
            "macd": {"value": self.macd.value, "signal": self.macd.signal, "histogram": self.macd.histogram},
            "vwap": self.vwap,
            "heikenAshi": {
                "open": self.heiken_ashi.open, "high": self.heiken_ashi.high,
                "low": self.heiken_ashi.low, "close": self.heiken_ashi.close,
                "trend": self.heiken_ashi.trend,
            },
            "delta1m": self.delta_1,
            "delta3m": self.delta_3,
            "prediction": {"long": self.long_pct, "short": self.short_pct},
            "signal": self.signal,
            "strength": self.strength,
        }


def _ema(data: np.ndarray, span: int) -> np.ndarray:
    """Compute EMA over a numpy array."""
    alpha = 2.0 / (span + 1)
    out = np.empty_like(data, dtype=float)
    out[0] = data[0]
    for i in range(1, len(data)):
        out[i] = alpha * data[i] + (1 - alpha) * out[i - 1]
    return out


def calc_rsi(closes: list[float], period: int = 14) -> float:
    """Average gain / average loss over the trailing window. 50 if too short."""
    if len(closes) < period + 1:
        return 50.0

    deltas = np.diff(np.asarray(closes[-(period + 1):], dtype=float))
    avg_gain = float(np.sum(np.where(deltas > 0, deltas, 0.0))) / period
    avg_loss = float(np.sum(np.where(deltas < 0, -deltas, 0.0))) / period
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def calc_macd(closes: list[float], fast: int = 12, slow: int = 26, signal_period: int = 9) -> MacdResult:
    if len(closes) < slow:
        return MacdResult()

    arr = np.asarray(closes, dtype=float)
    macd_line = _ema(arr, fast) - _ema(arr, slow)
    # Signal line seeded from the most recent MACD values only
    signal_line = _ema(macd_line[-signal_period:], signal_period)
    value = float(macd_line[-1])
    signal = float(signal_line[-1])
    return MacdResult(value=value, signal=signal, histogram=value - signal)


def calc_vwap(candles: list[Candle]) -> float:
    if not candles:
        return 0.0
    typical = np.array([(c.high + c.low + c.close) / 3.0 for c in candles])
    volume = np.array([c.volume for c in candles], dtype=float)
    total_vol = float(volume.sum())
    if total_vol <= 0:
        return 0.0
    return float((typical * volume).sum() / total_vol)


def calc_heiken_ashi(candles: list[Candle]) -> HeikenAshi:
    """Smoothed candle from the last two raw candles."""
    if len(candles) < 2:
        c = candles[0]
        return HeikenAshi(open=c.open, high=c.high, low=c.low, close=c.close, trend="neutral")

    prev, curr = candles[-2], candles[-1]
    ha_close = (curr.open + curr.high + curr.low + curr.close) / 4
    ha_open = (prev.open + prev.close) / 2
    if ha_close > ha_open:
        trend = "bullish"
    elif ha_close < ha_open:
        trend = "bearish"
    else:
        trend = "neutral"
    return HeikenAshi(
        open=ha_open,
        high=max(curr.high, ha_open, ha_close),
        low=min(curr.low, ha_open, ha_close),
        close=ha_close,
        trend=trend,
    )


def calc_delta(closes: list[float], n: int) -> float:
    """Percent change over the last n candles."""
    if len(closes) < n + 1:
        return 0.0
    past = closes[-1 - n]
    return (closes[-1] - past) / past * 100 if past > 0 else 0.0


def score(rsi: float, macd: MacdResult, ha: HeikenAshi, delta_1: float, delta_3: float) -> tuple[int, int, str, int]:
    """Bull/bear points → (long%, short%, signal, strength)."""
    bull = 0
    bear = 0

    if rsi < 30:
        bull += 3
    elif rsi < 40:
        bull += 1
    elif rsi > 70:
        bear += 3
    elif rsi > 60:
        bear += 1

    if macd.histogram > 0:
        bull += 2
    elif macd.histogram < 0:
        bear += 2

    if ha.trend == "bullish":
        bull += 2
    elif ha.trend == "bearish":
        bear += 2

    if delta_1 > 0.05:
        bull += 1
    elif delta_1 < -0.05:
        bear += 1
    if delta_3 > 0.1:
        bull += 1
    elif delta_3 < -0.1:
        bear += 1

    total = bull + bear
    if total == 0:
        return 50, 50, "NEUTRAL", 0
    long_pct = int(math.floor(bull / total * 100 + 0.5))
    short_pct = 100 - long_pct
    strength = abs(long_pct - short_pct)
    if long_pct > 60:
        signal = "LONG"
    elif short_pct > 60:
        signal = "SHORT"
    else:
        signal = "NEUTRAL"
    return long_pct, short_pct, signal, strength


def compute_indicators(candles: list[Candle]) -> IndicatorSnapshot:
    if not candles:
        raise ValueError("compute_indicators needs at least one candle")

    closes = [c.close for c in candles]
    rsi_val = calc_rsi(closes)
    macd_val = calc_macd(closes)
    ha = calc_heiken_ashi(candles)
    d1 = calc_delta(closes, 1)
    d3 = calc_delta(closes, 3)
    long_pct, short_pct, signal, strength = score(rsi_val, macd_val, ha, d1, d3)
    return IndicatorSnapshot(
        rsi=rsi_val,
        macd=macd_val,
        vwap=calc_vwap(candles),
        heiken_ashi=ha,
        delta_1=d1,
        delta_3=d3,
        long_pct=long_pct,
        short_pct=short_pct,
        signal=signal,
        strength=strength,
    )
