from __future__ import annotations

import asyncio
import json
import logging
import signal
from typing import Callable

from polywrath.config import Config
from polywrath.models import Decision
from polywrath.polymarket import fetch_up_probability
from polywrath.scanner import MarketScanner, ScannerConfig, ScanSignal, load_candidate
from polywrath.strategy import StrategyEngine

log = logging.getLogger("polywrath")


def _log_decision(decision: Decision) -> None:
    log.debug("Decision payload: %s", json.dumps(decision.to_dict(), default=str))


class DecisionAgent:
    """Polls the configured market, evaluates it every tick, hands off decisions.

    Orders are never placed here: `on_decision` is the seam to the execution
    layer. The scanner runs alongside on SCAN_MARKET_IDS, independent of the
    fusion strategy.
    """

    def __init__(
        self,
        cfg: Config,
        engine: StrategyEngine | None = None,
        on_decision: Callable[[Decision], None] = _log_decision,
    ):
        self.cfg = cfg
        self._setup_logging()
        self.engine = engine or StrategyEngine(cfg)
        self.scanner = MarketScanner(ScannerConfig(
            risk_level=cfg.risk_level,
            max_position_size=cfg.max_position_usd,
        ))
        self.on_decision = on_decision
        self._shutdown_event = asyncio.Event()

    def _setup_logging(self) -> None:
        logging.basicConfig(
            level=getattr(logging, self.cfg.log_level.upper(), logging.INFO),
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )

    async def run(self) -> None:
        log.info("=" * 60)
        log.info("Poly-Wrath decision core")
        log.info("Spike 0.40 | Divergence 0.30 | Sentiment 0.20 -> fusion -> flow veto")
        log.info("Market: %s | Tick: %ds", self.cfg.market_id or "(none)", self.cfg.tick_interval_s)
        log.info("=" * 60)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._handle_shutdown)

        while not self._shutdown_event.is_set():
            await self._tick()
            try:
                await asyncio.wait_for(
                    self._shutdown_event.wait(),
                    timeout=self.cfg.tick_interval_s,
                )
            except asyncio.TimeoutError:
                pass
        log.info("Shutdown complete")

    def _handle_shutdown(self) -> None:
        log.info("Shutdown signal received")
        self._shutdown_event.set()

    async def _tick(self) -> None:
        log.info("--- Tick ---")
        if self.cfg.market_id and self.cfg.up_token_id:
            try:
                await self._evaluate_market()
            except Exception as e:
                log.error("Market evaluation failed: %s", str(e)[:200])
        if self.cfg.scan_market_ids:
            try:
                await self._scan_markets()
            except Exception as e:
                log.error("Market scan failed: %s", str(e)[:200])

    async def _evaluate_market(self) -> Decision | None:
        loop = asyncio.get_running_loop()
        prob = await loop.run_in_executor(
            None, fetch_up_probability, self.cfg, self.cfg.market_id, self.cfg.up_token_id,
        )
        if prob is None:
            log.warning("No UP probability for %s, skipping tick", self.cfg.market_id[:16])
            return None

        decision = await self.engine.evaluate_async(prob)
        try:
            self.on_decision(decision)
        except Exception as e:
            log.error("Decision handler failed: %s", str(e)[:200])
        return decision

    async def _scan_markets(self) -> list[ScanSignal]:
        loop = asyncio.get_running_loop()
        ids = [m.strip() for m in self.cfg.scan_market_ids.split(",") if m.strip()]
        candidates = []
        for market_id in ids:
            try:
                cand = await loop.run_in_executor(None, load_candidate, self.cfg, market_id)
            except Exception as e:
                log.error("[SCAN] loading %s failed: %s", market_id[:16], str(e)[:200])
                continue
            if cand is not None:
                candidates.append(cand)
        signals = self.scanner.scan(candidates)
        for s in signals:
            log.info("[SCAN] %s %s strength=%d size=$%.2f @ %.3f",
                     s.slug, s.side, s.strength, s.suggested_size, s.price)
        return signals


def main() -> None:
    cfg = Config()
    agent = DecisionAgent(cfg)
    try:
        asyncio.run(agent.run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
