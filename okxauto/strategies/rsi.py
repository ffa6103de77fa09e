"""
RSI Strategy

Sells when RSI is overbought, buys when RSI is oversold.

A signal needs `signal_confirmation` consecutive qualifying ticks, where a
tick qualifies if RSI is beyond the threshold and moved by at least
`min_change` since the previous tick. Any tick inside the neutral band
resets the confirmation count.
"""

import logging
from enum import Enum
from typing import List, Optional

from okxauto.constants import STRATEGY_SIGNAL_AMOUNT, TICK_CANDLE_INTERVAL
from okxauto.exceptions import ConfigurationError, ResponseDecodeError
from okxauto.schemas.config import RSIConfig
from okxauto.strategies import StrategyRegistry, TradingStrategy
from okxauto.trading_engine.signals import BUY, SELL, Signal, Tick

logger = logging.getLogger(__name__)

NEUTRAL_RSI = 50.0


def calculate_rsi(prices: List[float], period: int = 14) -> float:
    """
    Calculate Wilder's RSI over the whole price series.

    The first `period` deltas seed the average gain/loss; every later delta
    is folded in with Wilder smoothing:
        avg = (avg * (period - 1) + delta) / period

    Returns:
        RSI in [0, 100]; 100 when there were no losses, and the neutral 50
        when fewer than period + 1 prices are available
    """
    if len(prices) < period + 1:
        return NEUTRAL_RSI

    avg_gain = 0.0
    avg_loss = 0.0
    for i in range(1, period + 1):
        change = prices[i] - prices[i - 1]
        if change >= 0:
            avg_gain += change
        else:
            avg_loss -= change
    avg_gain /= period
    avg_loss /= period

    for i in range(period + 1, len(prices)):
        change = prices[i] - prices[i - 1]
        gain = change if change > 0 else 0.0
        loss = -change if change < 0 else 0.0
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


class RSIZone(str, Enum):
    OVERBOUGHT = "overbought"
    OVERSOLD = "oversold"
    NEUTRAL = "neutral"


class SignalConfirmation:
    """
    Debounce counter for threshold signals.

    States: idle (count 0) -> confirming (0 < count < required) -> fire.
    Firing and any reset return to idle.
    """

    def __init__(self, required: int):
        self.required = max(1, required)
        self.count = 0

    def observe(self) -> bool:
        """Record one qualifying tick. True when the signal should fire."""
        self.count += 1
        if self.count >= self.required:
            self.count = 0
            return True
        return False

    def reset(self):
        self.count = 0


@StrategyRegistry.register
class RSIStrategy(TradingStrategy):
    """RSI threshold strategy with confirmation counting"""

    name = "RSI"
    config_section = "rsi_strategy"

    def __init__(self, exchange, symbol: str, config: RSIConfig):
        self.prices: List[float] = []
        self.last_rsi = 0.0
        super().__init__(exchange, symbol, config)
        self.confirmation = SignalConfirmation(config.signal_confirmation)

    @property
    def max_history(self) -> int:
        return self.config.period * 3

    @property
    def signal_count(self) -> int:
        return self.confirmation.count

    def validate_config(self):
        if self.config.period < 2:
            raise ConfigurationError("RSI period must be at least 2")
        if self.config.oversold_threshold >= self.config.overbought_threshold:
            raise ConfigurationError("RSI oversold threshold must be below overbought threshold")

    async def initialize(self):
        """Back-fill the price buffer from recent candles and seed the RSI."""
        logger.info(f"[RSI-{self.symbol}] Initializing strategy...")

        candles = await self.exchange.get_klines(self.symbol, TICK_CANDLE_INTERVAL, self.max_history)

        prices: List[float] = []
        # OKX returns newest first; the buffer is oldest first
        for candle in reversed(candles):
            try:
                prices.append(float(candle.close))
            except ValueError as e:
                raise ResponseDecodeError(f"Invalid candle close for {self.symbol}: {candle.close!r}") from e

        async with self._lock:
            self.prices = prices[-self.max_history:]
            self.confirmation.reset()
            if len(self.prices) >= self.config.period:
                self.last_rsi = calculate_rsi(self.prices, self.config.period)
                logger.info(f"[RSI-{self.symbol}] Initial RSI: {self.last_rsi:.2f}")

        logger.info(f"[RSI-{self.symbol}] Initialized with {len(self.prices)} historical prices")

    def classify(self, rsi: float) -> RSIZone:
        if rsi >= self.config.overbought_threshold:
            return RSIZone.OVERBOUGHT
        if rsi <= self.config.oversold_threshold:
            return RSIZone.OVERSOLD
        return RSIZone.NEUTRAL

    async def process_tick(self, tick: Tick) -> Optional[Signal]:
        async with self._lock:
            self.prices.append(tick.price)
            if len(self.prices) > self.max_history:
                self.prices = self.prices[-self.max_history:]

            if len(self.prices) < self.config.period:
                logger.debug(
                    f"[RSI-{self.symbol}] Waiting for more prices: {len(self.prices)}/{self.config.period}"
                )
                return None

            current_rsi = calculate_rsi(self.prices, self.config.period)
            change = current_rsi - self.last_rsi
            self.last_rsi = current_rsi

            logger.debug(f"[RSI-{self.symbol}] RSI: {current_rsi:.2f}, change: {change:.2f}")

            zone = self.classify(current_rsi)
            if zone == RSIZone.NEUTRAL:
                self.confirmation.reset()
                return None

            if abs(change) < self.config.min_change:
                return None

            if not self.confirmation.observe():
                logger.debug(
                    f"[RSI-{self.symbol}] {zone.value} confirmation "
                    f"{self.confirmation.count}/{self.confirmation.required}"
                )
                return None

            action = SELL if zone == RSIZone.OVERBOUGHT else BUY
            logger.info(f"[RSI-{self.symbol}] {action} signal - RSI: {current_rsi:.2f}, price: {tick.price:.2f}")
            return Signal(
                symbol=self.symbol,
                strategy=self.name,
                action=action,
                price=tick.price,
                amount=STRATEGY_SIGNAL_AMOUNT,
                timestamp=tick.timestamp,
            )

    async def stop(self):
        async with self._lock:
            self.prices = []
            self.last_rsi = 0.0
            self.confirmation.reset()
            logger.info(f"[RSI-{self.symbol}] Strategy stopped")
