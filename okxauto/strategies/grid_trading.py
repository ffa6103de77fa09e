"""
Grid Trading Strategy

Splits a configured price band into equal buckets and trades the bucket
edges: a price close to a bucket's lower edge is a buy, a price close to its
upper edge is a sell.

Signals are a pure function of the current price and the grid levels. There
is no position bookkeeping and no debounce, so a price that stays inside a
trigger band emits a signal on every tick.
"""

import logging
from typing import List, Optional

from okxauto.constants import GRID_TRIGGER_FRACTION, STRATEGY_SIGNAL_AMOUNT
from okxauto.exceptions import ConfigurationError
from okxauto.schemas.config import GridConfig
from okxauto.strategies import StrategyRegistry, TradingStrategy
from okxauto.trading_engine.signals import BUY, SELL, Signal, Tick

logger = logging.getLogger(__name__)


def calculate_grid_levels(lower: float, upper: float, grid_count: int) -> List[float]:
    """
    Calculate evenly spaced grid boundaries.

    Formula: step = (upper - lower) / grid_count
             level[i] = lower + i * step,  i = 0..grid_count

    Args:
        lower: Lower price bound
        upper: Upper price bound
        grid_count: Number of buckets

    Returns:
        grid_count + 1 strictly increasing levels

    Example:
        >>> calculate_grid_levels(100, 110, 5)
        [100.0, 102.0, 104.0, 106.0, 108.0, 110.0]
    """
    if grid_count < 1:
        raise ConfigurationError("grid_count must be at least 1")
    if upper <= lower:
        raise ConfigurationError("upper must be greater than lower")

    step = (upper - lower) / grid_count
    return [lower + i * step for i in range(grid_count + 1)]


def find_bucket(levels: List[float], price: float) -> int:
    """Index i of the bucket [levels[i], levels[i+1]) holding price, or -1."""
    for i in range(len(levels) - 1):
        if levels[i] <= price < levels[i + 1]:
            return i
    return -1


@StrategyRegistry.register
class GridStrategy(TradingStrategy):
    """Bucket-edge grid strategy"""

    name = "Grid"
    config_section = "grid_strategy"

    def __init__(self, exchange, symbol: str, config: GridConfig):
        self.grid_levels: List[float] = []
        super().__init__(exchange, symbol, config)

    def validate_config(self):
        # Raises ConfigurationError on an unusable band
        calculate_grid_levels(self.config.lower_price, self.config.upper_price, self.config.grid_number)

    async def initialize(self):
        async with self._lock:
            self.grid_levels = calculate_grid_levels(
                self.config.lower_price, self.config.upper_price, self.config.grid_number
            )
            logger.info(f"[Grid-{self.symbol}] Grid levels: {[round(level, 8) for level in self.grid_levels]}")

    async def process_tick(self, tick: Tick) -> Optional[Signal]:
        async with self._lock:
            price = tick.price
            logger.debug(f"[Grid-{self.symbol}] Analyzing price: {price:.2f}")

            if price < self.config.lower_price:
                logger.debug(f"[Grid-{self.symbol}] Price {price:.2f} below grid floor {self.config.lower_price:.2f}")
                return None
            if price > self.config.upper_price:
                logger.debug(f"[Grid-{self.symbol}] Price {price:.2f} above grid ceiling {self.config.upper_price:.2f}")
                return None

            index = find_bucket(self.grid_levels, price)
            if index == -1:
                logger.debug(f"[Grid-{self.symbol}] Price {price:.2f} not inside any bucket")
                return None

            lower = self.grid_levels[index]
            upper = self.grid_levels[index + 1]
            band = (upper - lower) * GRID_TRIGGER_FRACTION

            action = None
            if price - lower < band:
                action = BUY
            elif upper - price < band:
                action = SELL

            if action is None:
                logger.debug(f"[Grid-{self.symbol}] Price {price:.2f} mid-bucket [{lower:.2f} - {upper:.2f}]")
                return None

            logger.info(
                f"[Grid-{self.symbol}] {action} signal: price {price:.2f} near "
                f"{'lower' if action == BUY else 'upper'} edge of bucket {index} [{lower:.2f} - {upper:.2f}]"
            )
            return Signal(
                symbol=self.symbol,
                strategy=self.name,
                action=action,
                price=price,
                amount=STRATEGY_SIGNAL_AMOUNT,
                timestamp=tick.timestamp,
            )

    async def stop(self):
        async with self._lock:
            self.grid_levels = []
            logger.info(f"[Grid-{self.symbol}] Strategy stopped")
