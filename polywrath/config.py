from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env(key: str, default: str = "") -> str:
    return os.getenv(key, default)


@dataclass(frozen=True)
class Config:
    # Data providers
    coinbase_url: str = _env("COINBASE_URL", "https://api.exchange.coinbase.com")
    coinbase_product: str = _env("COINBASE_PRODUCT", "BTC-USD")
    binance_url: str = _env("BINANCE_URL", "https://api.binance.com")
    binance_symbol: str = _env("BINANCE_SYMBOL", "BTCUSDT")
    fng_url: str = _env("FNG_URL", "https://api.alternative.me/fng/?limit=1&format=json")
    solana_rpc_url: str = _env("SOLANA_RPC_URL", "https://api.mainnet-beta.solana.com")
    provider_timeout_s: float = float(_env("PROVIDER_TIMEOUT_S", "5"))
    flow_window_s: float = float(_env("FLOW_WINDOW_S", "60"))
    max_price_mismatch: float = float(_env("MAX_PRICE_MISMATCH", "0.02"))

    # Polymarket (read-only)
    clob_host: str = _env("CLOB_HOST", "https://clob.polymarket.com")
    market_id: str = _env("MARKET_ID")
    up_token_id: str = _env("UP_TOKEN_ID")

    # Spike detection
    spike_threshold: float = float(_env("SPIKE_THRESHOLD", "0.05"))
    spike_lookback: int = int(_env("SPIKE_LOOKBACK", "20"))
    spike_min_confidence: float = float(_env("SPIKE_MIN_CONFIDENCE", "0.55"))
    velocity_threshold: float = float(_env("VELOCITY_THRESHOLD", "0.03"))

    # Sentiment (contrarian Fear & Greed)
    extreme_fear: float = float(_env("EXTREME_FEAR", "25"))
    extreme_greed: float = float(_env("EXTREME_GREED", "75"))
    sentiment_min_confidence: float = float(_env("SENTIMENT_MIN_CONFIDENCE", "0.50"))

    # Price divergence
    momentum_threshold: float = float(_env("MOMENTUM_THRESHOLD", "0.003"))
    high_prob_threshold: float = float(_env("HIGH_PROB_THRESHOLD", "0.68"))
    low_prob_threshold: float = float(_env("LOW_PROB_THRESHOLD", "0.32"))
    divergence_min_confidence: float = float(_env("DIVERGENCE_MIN_CONFIDENCE", "0.55"))

    # Fusion + flow veto
    fusion_min_signals: int = int(_env("FUSION_MIN_SIGNALS", "1"))
    fusion_min_score: float = float(_env("FUSION_MIN_SCORE", "60"))
    flow_veto_imbalance: float = float(_env("FLOW_VETO_IMBALANCE", "0.1"))

    # Rolling history caps
    prob_history_cap: int = int(_env("PROB_HISTORY_CAP", "100"))
    spot_history_cap: int = int(_env("SPOT_HISTORY_CAP", "10"))

    # Market scanner (comma-separated CLOB market ids)
    scan_market_ids: str = _env("SCAN_MARKET_IDS")
    risk_level: str = _env("RISK_LEVEL", "moderate")
    max_position_usd: float = float(_env("MAX_POSITION_USD", "100.0"))

    # Runner
    tick_interval_s: int = int(_env("TICK_INTERVAL_S", "30"))
    log_level: str = _env("LOG_LEVEL", "INFO")
