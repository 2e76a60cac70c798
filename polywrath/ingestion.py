"""Merge provider snapshots into one validated MarketSnapshot.

All providers are fetched concurrently. A provider that fails or returns
nothing is recorded as missing; ingestion itself never raises for it and
never retries. Validity is decided by explicit rules, each failing rule
contributing a human-readable reason.
"""
from __future__ import annotations

import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

from polywrath import feeds
from polywrath.config import Config
from polywrath.models import MarketSnapshot

log = logging.getLogger(__name__)

NEUTRAL_FEAR_GREED = 50.0

Provider = Callable[[], Any]


def safe_diff_pct(a: float, b: float) -> float:
    """Relative difference |a - b| / |a|, 0 when either side is unusable."""
    if not math.isfinite(a) or not math.isfinite(b) or a == 0:
        return 0.0
    return abs(a - b) / abs(a)


def default_providers(cfg: Config) -> dict[str, Provider]:
    return {
        "coinbase": lambda: feeds.fetch_coinbase(cfg),
        "binance": lambda: feeds.fetch_binance_flow(cfg),
        "fear_greed": lambda: feeds.fetch_fear_greed(cfg),
        "solana": lambda: feeds.fetch_solana_slot(cfg),
    }


class Ingestor:
    """Fetches every provider in parallel and builds the snapshot."""

    def __init__(self, cfg: Config | None = None, providers: dict[str, Provider] | None = None):
        self.cfg = cfg or Config()
        self.providers = providers if providers is not None else default_providers(self.cfg)

    def _fetch_all(self) -> dict[str, Any]:
        if not self.providers:
            return {}
        results: dict[str, Any] = {}
        with ThreadPoolExecutor(max_workers=len(self.providers), thread_name_prefix="ingest") as pool:
            futures = {name: pool.submit(fn) for name, fn in self.providers.items()}
            for name, fut in futures.items():
                try:
                    results[name] = fut.result()
                except Exception as e:
                    log.warning("[INGEST] provider %s failed: %s", name, str(e)[:100])
                    results[name] = None
        return results

    def ingest(self) -> MarketSnapshot:
        ctx = self._fetch_all()
        now = time.time()
        coinbase = ctx.get("coinbase")
        binance = ctx.get("binance")
        fng = ctx.get("fear_greed")
        solana = ctx.get("solana")
        missing = tuple(name for name in self.providers if ctx.get(name) is None)
        reasons: list[str] = []

        if coinbase is not None:
            spot = coinbase.price
        elif binance is not None:
            spot = binance.last_price
        else:
            spot = math.nan
        bid = coinbase.bid if coinbase is not None else math.nan
        ask = coinbase.ask if coinbase is not None else math.nan
        spread = ask - bid if math.isfinite(bid) and math.isfinite(ask) else math.nan

        imbalance = 0.0
        vwap_delta = None
        if binance is not None:
            total = binance.buy_volume_window + binance.sell_volume_window
            if total > 0:
                imbalance = (binance.buy_volume_window - binance.sell_volume_window) / total
            if binance.vwap_window and math.isfinite(spot) and spot != 0:
                vwap_delta = (spot - binance.vwap_window) / spot

        fear_greed = float(fng.value) if fng is not None else NEUTRAL_FEAR_GREED

        # Validation rules
        if not math.isfinite(spot):
            reasons.append("No canonical spot price")
        if coinbase is not None and binance is not None:
            if safe_diff_pct(coinbase.price, binance.last_price) > self.cfg.max_price_mismatch:
                reasons.append(
                    f"Coinbase vs Binance price mismatch > {self.cfg.max_price_mismatch:.0%}"
                )
        if binance is not None and binance.trades_window == 0:
            reasons.append("No recent trades in Binance window")

        present = [src for src in (coinbase, binance, fng, solana) if src is not None]
        source_lag = max((max(now - src.ts, 0.0) for src in present), default=0.0)

        if coinbase is not None:
            volume = coinbase.volume_24h
        elif binance is not None:
            volume = binance.volume_24h
        else:
            volume = 0.0

        snapshot = MarketSnapshot(
            price=spot,
            bid=bid,
            ask=ask,
            spread=spread,
            volume_24h=volume,
            buy_sell_imbalance=imbalance,
            vwap_delta=vwap_delta,
            fear_greed=fear_greed,
            chain_slot=solana.slot if solana is not None else None,
            is_valid=not reasons,
            reasons=tuple(reasons),
            timestamp=now,
            source_lag_s=source_lag,
            missing_sources=missing,
            high_24h=coinbase.high_24h if coinbase is not None else math.nan,
            low_24h=coinbase.low_24h if coinbase is not None else math.nan,
            bid_depth=sum(lvl.size for lvl in coinbase.bids) if coinbase is not None else 0.0,
            ask_depth=sum(lvl.size for lvl in coinbase.asks) if coinbase is not None else 0.0,
        )
        if missing:
            log.info("[INGEST] missing sources: %s", ", ".join(missing))
        if reasons:
            log.warning("[INGEST] snapshot invalid: %s", "; ".join(reasons))
        else:
            log.debug(
                "[INGEST] spot=%.2f spread=%.2f imbalance=%+.3f fng=%.0f lag=%.1fs",
                spot, spread, imbalance, fear_greed, source_lag,
            )
        return snapshot
