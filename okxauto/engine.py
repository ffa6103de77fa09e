"""
Trading Engine

Owns the engine lifecycle and its concurrent tasks:
- one market-data polling task per symbol (ticks -> range-entry rules and
  strategies -> signal queue; position PnL checks on their own timer)
- one order executor consuming the signal queue
- one periodic margin audit across all symbols

Shutdown is cooperative: every task waits on the shared stop event, so a
gateway call already in progress always completes.
"""

import asyncio
import logging
from datetime import datetime
from typing import Dict, List, Optional

from okxauto.constants import (
    MARGIN_CHECK_INTERVAL,
    MARKET_POLL_INTERVAL,
    PNL_CHECK_INTERVAL,
    SIGNAL_QUEUE_SIZE,
    SWAP_SUFFIX,
    TICK_CANDLE_INTERVAL,
)
from okxauto.exceptions import StrategyInitializationError, StrategyNotFoundError
from okxauto.exchange_clients.base import ExchangeClient
from okxauto.schemas.config import EngineConfig
from okxauto.schemas.exchange import Balance
from okxauto.services.shutdown_manager import ShutdownManager
from okxauto.services.trade_store import TradeStore
from okxauto.strategies import StrategyRegistry, TradingStrategy
from okxauto.trading_engine.margin_monitor import check_and_adjust_margin
from okxauto.trading_engine.order_executor import OrderExecutor
from okxauto.trading_engine.position_monitor import check_position_pnl
from okxauto.trading_engine.range_entry import RangeEntryRules
from okxauto.trading_engine.signals import Signal, Tick

logger = logging.getLogger(__name__)

# How long a producer waits on a full queue before re-checking the stop event
ENQUEUE_TIMEOUT = 0.5


class TradingEngine:
    def __init__(
        self,
        exchange: ExchangeClient,
        config: EngineConfig,
        trade_store: Optional[TradeStore] = None,
        shutdown_manager: Optional[ShutdownManager] = None,
        market_interval: float = MARKET_POLL_INTERVAL,
        pnl_interval: float = PNL_CHECK_INTERVAL,
        margin_interval: float = MARGIN_CHECK_INTERVAL,
    ):
        self.exchange = exchange
        self.config = config
        self.trade_store = trade_store or TradeStore()
        self.shutdown_manager = shutdown_manager or ShutdownManager()
        self.market_interval = market_interval
        self.pnl_interval = pnl_interval
        self.margin_interval = margin_interval

        self.running = False
        self.started_at: Optional[datetime] = None

        self._signals: "asyncio.Queue[Signal]" = asyncio.Queue(maxsize=SIGNAL_QUEUE_SIZE)
        self._stop_event = asyncio.Event()
        self._tasks: List[asyncio.Task] = []

        self.executor = OrderExecutor(exchange, config, self.trade_store, self.shutdown_manager)
        self.range_rules: Dict[str, RangeEntryRules] = {
            symbol: RangeEntryRules(symbol, config) for symbol in config.symbols
        }
        self.strategies: List[TradingStrategy] = self._build_strategies()

    # ----------------------------------------------------------
    # Setup
    # ----------------------------------------------------------

    def strategy_symbols(self) -> List[str]:
        """Symbols matching the instrument class: -SWAP for futures, the rest for spot."""
        if self.config.is_futures:
            return [s for s in self.config.symbols if s.endswith(SWAP_SUFFIX)]
        return [s for s in self.config.symbols if not s.endswith(SWAP_SUFFIX)]

    def _build_strategies(self) -> List[TradingStrategy]:
        strategies = []
        symbols = self.strategy_symbols()
        for name, strategy_class in StrategyRegistry.items():
            strategy_config = getattr(self.config, strategy_class.config_section, None)
            if strategy_config is None or not strategy_config.enabled:
                continue
            for symbol in symbols:
                strategies.append(StrategyRegistry.create(name, self.exchange, symbol, strategy_config))
        logger.info(f"Configured strategies: {[f'{s.name}-{s.symbol}' for s in strategies]}")
        return strategies

    def _strategies_named(self, name: str) -> List[TradingStrategy]:
        matches = [s for s in self.strategies if s.name == name]
        if not matches:
            raise StrategyNotFoundError(name)
        return matches

    # ----------------------------------------------------------
    # Lifecycle
    # ----------------------------------------------------------

    async def start(self):
        """
        Initialize strategies and spawn the engine tasks.

        Raises:
            StrategyInitializationError: a strategy failed to initialize
        """
        if self.running:
            logger.warning("Trading engine already running")
            return

        for strategy in self.strategies:
            if not strategy.enabled:
                continue
            try:
                await strategy.initialize()
            except Exception as e:
                raise StrategyInitializationError(strategy.name, strategy.symbol, e) from e

        self._stop_event.clear()
        self.shutdown_manager.reset()
        self._discard_pending_signals()
        for rules in self.range_rules.values():
            rules.reset()

        self._tasks = [asyncio.create_task(self.executor.run(self._signals, self._stop_event))]
        for symbol in self.config.symbols:
            self._tasks.append(asyncio.create_task(self._poll_symbol(symbol)))
        self._tasks.append(asyncio.create_task(self._margin_loop()))

        self.running = True
        self.started_at = datetime.utcnow()
        logger.info(
            f"Trading engine started ({self.config.mode}, {self.config.trade_type}, "
            f"{len(self.config.symbols)} symbols, {len(self.strategies)} strategies)"
        )

    async def stop(self, timeout: float = 60.0):
        """Wait for in-flight orders, stop every task, then stop the strategies."""
        if not self.running:
            return
        self.running = False

        logger.info("Stopping trading engine...")
        drain = await self.shutdown_manager.prepare_shutdown(timeout=timeout)
        if not drain.drained:
            logger.warning(f"Stopping with orders still in flight for {drain.pending_symbols}")
        self._stop_event.set()

        results = await asyncio.gather(*self._tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Engine task ended with error: {result}")
        self._tasks = []
        self._discard_pending_signals()

        for strategy in self.strategies:
            await strategy.stop()

        logger.info("Trading engine stopped")

    def _discard_pending_signals(self) -> int:
        """Empty the signal queue so a restart never executes stale signals."""
        dropped = 0
        while True:
            try:
                signal = self._signals.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._signals.task_done()
            dropped += 1
            logger.info(
                f"[{signal.symbol}] Dropping queued {signal.strategy} {signal.action} "
                f"signal @ {signal.price}, engine stopping"
            )
        return dropped

    async def _wait_for_stop(self, timeout: float) -> bool:
        """Sleep up to `timeout`; True if the stop event was set."""
        if timeout > 0:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                pass
        return self._stop_event.is_set()

    # ----------------------------------------------------------
    # Tasks
    # ----------------------------------------------------------

    async def _poll_symbol(self, symbol: str):
        """Market-data polling for one symbol, with the PnL check on its own deadline."""
        loop = asyncio.get_running_loop()
        next_market = loop.time() + self.market_interval
        next_pnl = loop.time() + self.pnl_interval
        logger.info(f"[{symbol}] Market polling started")

        while not await self._wait_for_stop(min(next_market, next_pnl) - loop.time()):
            now = loop.time()
            if now >= next_market:
                await self._market_cycle(symbol)
                next_market = max(next_market + self.market_interval, loop.time())
            if now >= next_pnl:
                await self._pnl_cycle(symbol)
                next_pnl = max(next_pnl + self.pnl_interval, loop.time())

        logger.info(f"[{symbol}] Market polling stopped")

    async def _market_cycle(self, symbol: str):
        try:
            candles = await self.exchange.get_klines(symbol, TICK_CANDLE_INTERVAL, 1)
        except Exception as e:
            logger.error(f"[{symbol}] Failed to fetch candles: {e}")
            return

        if not candles:
            logger.warning(f"[{symbol}] No candle data returned")
            return

        try:
            tick = Tick(symbol=symbol, price=float(candles[0].close), volume=float(candles[0].volume or 0))
        except ValueError:
            logger.error(f"[{symbol}] Invalid candle data: {candles[0]}")
            return

        await self.process_tick(tick)

    async def process_tick(self, tick: Tick):
        """Feed a tick to the symbol's range-entry rules and strategies, queueing any signals."""
        signals: List[Signal] = []
        rules = self.range_rules.get(tick.symbol)
        if rules:
            signals.extend(rules.evaluate(tick))

        for strategy in self.strategies:
            if strategy.symbol != tick.symbol or not strategy.enabled:
                continue
            try:
                signal = await strategy.process_tick(tick)
            except Exception as e:
                logger.error(f"[{strategy.name}-{tick.symbol}] Strategy failed to process tick: {e}", exc_info=True)
                continue
            if signal:
                signals.append(signal)

        for signal in signals:
            if not await self._enqueue(signal):
                break

    async def _enqueue(self, signal: Signal) -> bool:
        """Block while the queue is full; give up (False) once stopping."""
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._signals.put(signal), timeout=ENQUEUE_TIMEOUT)
                return True
            except asyncio.TimeoutError:
                logger.warning(f"[{signal.symbol}] Signal queue full, waiting...")
        logger.info(f"[{signal.symbol}] Dropping {signal.strategy} signal, engine stopping")
        return False

    async def _pnl_cycle(self, symbol: str):
        try:
            await check_position_pnl(self.exchange, self.config, symbol)
        except Exception as e:
            logger.error(f"[{symbol}] Take-profit/stop-loss check failed: {e}")

    async def _margin_loop(self):
        logger.info(f"Margin monitor started (interval: {self.margin_interval}s)")
        while not await self._wait_for_stop(self.margin_interval):
            for symbol in self.config.symbols:
                if self._stop_event.is_set():
                    break
                try:
                    await check_and_adjust_margin(self.exchange, self.config, symbol)
                except Exception as e:
                    logger.error(f"[{symbol}] Margin check failed: {e}")
        logger.info("Margin monitor stopped")

    # ----------------------------------------------------------
    # Host operations
    # ----------------------------------------------------------

    async def enable_strategy(self, name: str):
        """Re-initialize and resume every instance of strategy `name`."""
        for strategy in self._strategies_named(name):
            try:
                await strategy.initialize()
            except Exception as e:
                raise StrategyInitializationError(strategy.name, strategy.symbol, e) from e
            strategy.enabled = True
            logger.info(f"[{strategy.name}-{strategy.symbol}] Strategy enabled")

    async def disable_strategy(self, name: str):
        """Stop every instance of strategy `name` and skip it on future ticks."""
        for strategy in self._strategies_named(name):
            strategy.enabled = False
            await strategy.stop()
            logger.info(f"[{strategy.name}-{strategy.symbol}] Strategy disabled")

    async def get_balance(self) -> List[Balance]:
        return await self.exchange.get_balances()

    def get_config(self) -> EngineConfig:
        """Copy of the engine configuration; changes do not affect the engine."""
        return self.config.model_copy(deep=True)

    def list_strategies(self) -> List[dict]:
        return [{"name": s.name, "symbol": s.symbol, "enabled": s.enabled} for s in self.strategies]

    def get_status(self) -> dict:
        return {
            "running": self.running,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "mode": self.config.mode,
            "trade_type": self.config.trade_type,
            "symbols": list(self.config.symbols),
            "strategies": self.list_strategies(),
            "queue_size": self._signals.qsize(),
            "in_flight_orders": self.shutdown_manager.in_flight_count,
        }
