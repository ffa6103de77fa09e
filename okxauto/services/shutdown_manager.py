"""
Graceful Shutdown Manager

Counts order executions in flight, per symbol, so TradingEngine.stop() can
let them finish before the engine tasks are told to exit. Once draining has
started no new order may begin until reset() is called.
"""

import asyncio
import logging
import time
from collections import Counter
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional

logger = logging.getLogger(__name__)


class ShutdownInProgressError(RuntimeError):
    """Raised when an order tries to start after draining began."""


@dataclass(frozen=True)
class DrainResult:
    drained: bool
    pending: int = 0
    waited_seconds: float = 0.0
    pending_symbols: List[str] = field(default_factory=list)


class ShutdownManager:
    """
    Usage:
        async with shutdown_manager.order_in_flight(signal.symbol):
            ...  # leverage, balance checks, place_order

        result = await shutdown_manager.prepare_shutdown(timeout=60)
    """

    def __init__(self):
        self._draining = False
        self._orders: Counter = Counter()
        self._lock = asyncio.Lock()
        self._idle = asyncio.Event()
        self._idle.set()
        self._drain_started: Optional[float] = None

    @property
    def is_shutting_down(self) -> bool:
        return self._draining

    @property
    def in_flight_count(self) -> int:
        return sum(self._orders.values())

    def pending_symbols(self) -> List[str]:
        return sorted(symbol for symbol, count in self._orders.items() if count > 0)

    async def _begin(self, symbol: str):
        async with self._lock:
            if self._draining:
                raise ShutdownInProgressError(f"[{symbol}] Engine is stopping, order not started")
            self._orders[symbol] += 1
            self._idle.clear()

    async def _finish(self, symbol: str):
        async with self._lock:
            self._orders[symbol] -= 1
            if self._orders[symbol] <= 0:
                del self._orders[symbol]
            if not self._orders:
                self._idle.set()

    @asynccontextmanager
    async def order_in_flight(self, symbol: str = "") -> AsyncIterator[None]:
        """Track one order execution for `symbol` for the duration of the block."""
        await self._begin(symbol)
        try:
            yield
        finally:
            await self._finish(symbol)

    async def prepare_shutdown(self, timeout: float = 60.0) -> DrainResult:
        """
        Refuse new orders and wait up to `timeout` seconds for running ones.

        Returns:
            DrainResult; drained is False when orders were still running at timeout
        """
        async with self._lock:
            self._draining = True
            self._drain_started = time.monotonic()
            pending = self.in_flight_count

        if pending == 0:
            logger.info("No orders in flight, ready to stop")
            return DrainResult(drained=True)

        logger.info(f"Waiting up to {timeout}s for {pending} in-flight orders ({', '.join(self.pending_symbols())})")
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{self.in_flight_count} orders still in flight after {timeout}s: {self.pending_symbols()}")
            return DrainResult(
                drained=False,
                pending=self.in_flight_count,
                waited_seconds=timeout,
                pending_symbols=self.pending_symbols(),
            )

        waited = time.monotonic() - self._drain_started
        logger.info(f"In-flight orders finished after {waited:.1f}s")
        return DrainResult(drained=True, waited_seconds=waited)

    def reset(self):
        """Accept orders again after a stop, so the engine can be restarted."""
        self._draining = False
        self._drain_started = None

    def get_status(self) -> dict:
        return {
            "shutting_down": self._draining,
            "in_flight_count": self.in_flight_count,
            "pending_symbols": self.pending_symbols(),
        }
