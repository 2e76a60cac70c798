"""Read-only Polymarket CLOB calls: market tokens, UP probability, price history.

No auth, no order placement. Every call returns None on failure.
"""
from __future__ import annotations

import logging

from polywrath.config import Config
from polywrath.http_session import get_session

log = logging.getLogger(__name__)

CLOB_TIMEOUT = 5


def fetch_market(cfg: Config, market_id: str) -> dict | None:
    """Raw CLOB market record (question, market_slug, tokens[...])."""
    try:
        resp = get_session().get(f"{cfg.clob_host}/markets/{market_id}", timeout=CLOB_TIMEOUT)
        if resp.status_code != 200:
            log.debug("CLOB market returned %d for %s", resp.status_code, market_id[:16])
            return None
        return resp.json()
    except Exception as e:
        log.debug("CLOB market fetch failed for %s: %s", market_id[:16], str(e)[:80])
        return None


def fetch_up_probability(cfg: Config, market_id: str, up_token_id: str) -> float | None:
    """Current price of the UP token, i.e. the market's implied UP probability."""
    market = fetch_market(cfg, market_id)
    if market is None:
        return None
    for t in market.get("tokens", []):
        if t.get("token_id") == up_token_id:
            price = t.get("price")
            if price is not None:
                return float(price)
    return None


def fetch_price_history(
    cfg: Config,
    token_id: str,
    interval: str = "1m",
    fidelity: int = 60,
) -> list[tuple[float, float]] | None:
    """Token price history as (timestamp, price) points, oldest first."""
    try:
        resp = get_session().get(
            f"{cfg.clob_host}/prices-history",
            params={"market": token_id, "interval": interval, "fidelity": fidelity},
            timeout=CLOB_TIMEOUT,
        )
        if resp.status_code != 200:
            log.debug("Price history returned %d for %s", resp.status_code, token_id[:16])
            return None
        points = resp.json().get("history", [])
        return sorted((float(p["t"]), float(p["p"])) for p in points)
    except Exception as e:
        log.debug("Price history failed for %s: %s", token_id[:16], str(e)[:80])
        return None
