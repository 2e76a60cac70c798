"""Point-in-time snapshot providers (Coinbase, Binance, Fear & Greed, Solana).

Each fetcher returns a snapshot dataclass, or None on any failure.
Graceful degradation: a dead provider never blocks the others.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

import requests

from polywrath.config import Config
from polywrath.http_session import get_session

log = logging.getLogger(__name__)

BOOK_DEPTH = 20
BINANCE_TRADE_LIMIT = 100


@dataclass
class BookLevel:
    price: float
    size: float


@dataclass
class CoinbaseSnapshot:
    symbol: str
    price: float
    bid: float
    ask: float
    volume_24h: float
    high_24h: float
    low_24h: float
    bids: list[BookLevel] = field(default_factory=list)
    asks: list[BookLevel] = field(default_factory=list)
    ts: float = 0.0


@dataclass
class BinanceFlowSnapshot:
    symbol: str
    last_price: float
    volume_24h: float
    window_s: float
    trades_window: int
    buy_volume_window: float
    sell_volume_window: float
    vwap_window: float | None
    ts: float = 0.0


@dataclass
class FearGreedSnapshot:
    value: int               # 0-100
    classification: str
    timestamp: float         # index publication time
    ts: float = 0.0


@dataclass
class SolanaSnapshot:
    slot: int
    ts: float = 0.0


def _get_json(session: requests.Session, url: str, timeout: float, params: dict | None = None):
    resp = session.get(url, params=params, timeout=timeout)
    if resp.status_code != 200:
        raise requests.HTTPError(f"HTTP {resp.status_code} for {url}")
    return resp.json()


def _parse_book_side(side: list) -> list[BookLevel]:
    return [BookLevel(price=float(lvl[0]), size=float(lvl[1])) for lvl in side[:BOOK_DEPTH]]


def fetch_coinbase(cfg: Config, session: requests.Session | None = None) -> CoinbaseSnapshot | None:
    """Coinbase Exchange ticker + level-2 book + 24h stats."""
    session = session or get_session()
    base = f"{cfg.coinbase_url}/products/{cfg.coinbase_product}"
    try:
        ticker = _get_json(session, f"{base}/ticker", cfg.provider_timeout_s)
        book = _get_json(session, f"{base}/book", cfg.provider_timeout_s, params={"level": 2})
        stats = _get_json(session, f"{base}/stats", cfg.provider_timeout_s)
        return CoinbaseSnapshot(
            symbol=cfg.coinbase_product,
            price=float(ticker["price"]),
            bid=float(ticker["bid"]),
            ask=float(ticker["ask"]),
            volume_24h=float(stats["volume"]),
            high_24h=float(stats["high"]),
            low_24h=float(stats["low"]),
            bids=_parse_book_side(book.get("bids", [])),
            asks=_parse_book_side(book.get("asks", [])),
            ts=time.time(),
        )
    except Exception as e:
        log.warning("[FEED] Coinbase snapshot failed: %s", str(e)[:100])
        return None


def summarize_trades(trades: list[dict], now_ms: float, window_s: float) -> tuple[int, float, float, float | None]:
    """Aggregate Binance trades inside the window.

    Returns (trade_count, buy_volume, sell_volume, vwap). A buyer-maker
    trade is a sell hitting the bid.
    """
    window_ms = window_s * 1000
    recent = [t for t in trades if now_ms - t["time"] <= window_ms]
    buy_vol = 0.0
    sell_vol = 0.0
    notional = 0.0
    size_total = 0.0
    for t in recent:
        price = float(t["price"])
        size = float(t["qty"])
        notional += price * size
        size_total += size
        if t["isBuyerMaker"]:
            sell_vol += size
        else:
            buy_vol += size
    vwap = notional / size_total if size_total > 0 else None
    return len(recent), buy_vol, sell_vol, vwap


def fetch_binance_flow(cfg: Config, session: requests.Session | None = None) -> BinanceFlowSnapshot | None:
    """Binance 24h ticker + recent trades, reduced to a short buy/sell flow window."""
    session = session or get_session()
    try:
        ticker = _get_json(
            session, f"{cfg.binance_url}/api/v3/ticker/24hr", cfg.provider_timeout_s,
            params={"symbol": cfg.binance_symbol},
        )
        trades = _get_json(
            session, f"{cfg.binance_url}/api/v3/trades", cfg.provider_timeout_s,
            params={"symbol": cfg.binance_symbol, "limit": BINANCE_TRADE_LIMIT},
        )
        now = time.time()
        count, buys, sells, vwap = summarize_trades(trades, now * 1000, cfg.flow_window_s)
        return BinanceFlowSnapshot(
            symbol=cfg.binance_symbol,
            last_price=float(ticker["lastPrice"]),
            volume_24h=float(ticker["volume"]),
            window_s=cfg.flow_window_s,
            trades_window=count,
            buy_volume_window=buys,
            sell_volume_window=sells,
            vwap_window=vwap,
            ts=now,
        )
    except Exception as e:
        log.warning("[FEED] Binance flow snapshot failed: %s", str(e)[:100])
        return None


def fetch_fear_greed(cfg: Config, session: requests.Session | None = None) -> FearGreedSnapshot | None:
    """Crypto Fear & Greed Index (alternative.me)."""
    session = session or get_session()
    try:
        data = _get_json(session, cfg.fng_url, cfg.provider_timeout_s)
        latest = data["data"][0]
        return FearGreedSnapshot(
            value=int(latest["value"]),
            classification=latest.get("value_classification", ""),
            timestamp=float(latest.get("timestamp", 0)),
            ts=time.time(),
        )
    except Exception as e:
        log.warning("[FEED] Fear & Greed fetch failed: %s", str(e)[:100])
        return None


def fetch_solana_slot(cfg: Config, session: requests.Session | None = None) -> SolanaSnapshot | None:
    """Chain liveness probe: current Solana slot via JSON-RPC getSlot."""
    session = session or get_session()
    body = {"jsonrpc": "2.0", "id": 1, "method": "getSlot", "params": []}
    try:
        resp = session.post(cfg.solana_rpc_url, json=body, timeout=cfg.provider_timeout_s)
        if resp.status_code != 200:
            log.warning("[FEED] Solana RPC returned %d", resp.status_code)
            return None
        return SolanaSnapshot(slot=int(resp.json()["result"]), ts=time.time())
    except Exception as e:
        log.warning("[FEED] Solana RPC failed: %s", str(e)[:100])
        return None
