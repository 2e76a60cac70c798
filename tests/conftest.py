"""Pytest configuration and fixtures."""
from __future__ import annotations

import time

import pytest

from polywrath.config import Config
from polywrath.feeds import BinanceFlowSnapshot, BookLevel, CoinbaseSnapshot, FearGreedSnapshot, SolanaSnapshot
from polywrath.models import MarketSnapshot


@pytest.fixture
def cfg() -> Config:
    return Config()


def make_snapshot(**overrides) -> MarketSnapshot:
    fields = dict(
        price=100_000.0,
        bid=99_999.0,
        ask=100_001.0,
        spread=2.0,
        volume_24h=1_000.0,
        buy_sell_imbalance=0.0,
        vwap_delta=None,
        fear_greed=50.0,
        chain_slot=123,
        is_valid=True,
        reasons=(),
        timestamp=time.time(),
        source_lag_s=0.0,
        missing_sources=(),
    )
    fields.update(overrides)
    return MarketSnapshot(**fields)


class StubIngestor:
    """Returns canned snapshots and counts calls."""

    def __init__(self, snapshot: MarketSnapshot):
        self.snapshot = snapshot
        self.calls = 0

    def ingest(self) -> MarketSnapshot:
        self.calls += 1
        return self.snapshot


@pytest.fixture
def coinbase_snap() -> CoinbaseSnapshot:
    return CoinbaseSnapshot(
        symbol="BTC-USD", price=100_000.0, bid=99_990.0, ask=100_010.0,
        volume_24h=5_000.0, high_24h=101_000.0, low_24h=98_000.0,
        bids=[BookLevel(99_990.0, 1.5), BookLevel(99_980.0, 2.0)],
        asks=[BookLevel(100_010.0, 0.5)],
        ts=time.time(),
    )


@pytest.fixture
def binance_snap() -> BinanceFlowSnapshot:
    return BinanceFlowSnapshot(
        symbol="BTCUSDT", last_price=100_500.0, volume_24h=20_000.0, window_s=60,
        trades_window=40, buy_volume_window=3.0, sell_volume_window=1.0,
        vwap_window=99_000.0, ts=time.time(),
    )


@pytest.fixture
def fng_snap() -> FearGreedSnapshot:
    return FearGreedSnapshot(value=22, classification="Extreme Fear", timestamp=0.0, ts=time.time())


@pytest.fixture
def solana_snap() -> SolanaSnapshot:
    return SolanaSnapshot(slot=250_000_000, ts=time.time())


@pytest.fixture
def snapshot_factory():
    return make_snapshot


@pytest.fixture
def engine_factory():
    """Build a StrategyEngine over a canned snapshot."""
    from polywrath.strategy import StrategyEngine

    def _build(cfg: Config | None = None, **snapshot_overrides):
        ingestor = StubIngestor(make_snapshot(**snapshot_overrides))
        return StrategyEngine(cfg or Config(), ingestor=ingestor)

    return _build


@pytest.fixture
def stub_ingestor():
    """StubIngestor over a canned snapshot built from overrides."""
    def _build(**snapshot_overrides) -> StubIngestor:
        return StubIngestor(make_snapshot(**snapshot_overrides))

    return _build
