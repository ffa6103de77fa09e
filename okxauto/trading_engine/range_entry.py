"""
Range-entry position rules

Static long/short price bands per symbol. Entering a band emits one signal;
the rule then stays quiet until price leaves the band again.
"""

import logging
from enum import Enum
from typing import List, Optional

from okxauto.schemas.config import EngineConfig, PositionSideConfig
from okxauto.trading_engine.signals import BUY, SELL, Signal, Tick

logger = logging.getLogger(__name__)


class RuleState(str, Enum):
    ARMED = "armed"  # Next tick inside the band fires
    TRIGGERED = "triggered"  # Fired; waiting for price to leave the band


class RangeEntryRule:
    """Edge-triggered entry rule for one symbol and side."""

    def __init__(self, symbol: str, strategy: str, action: str, config: PositionSideConfig):
        self.symbol = symbol
        self.strategy = strategy
        self.action = action
        self.config = config
        self.state = RuleState.ARMED

    def evaluate(self, tick: Tick) -> Optional[Signal]:
        if not self.config.enabled:
            return None

        if not self.config.entry_range.contains(tick.price):
            if self.state == RuleState.TRIGGERED:
                logger.debug(f"[{self.symbol}] {self.strategy} re-armed at {tick.price:.4f}")
            self.state = RuleState.ARMED
            return None

        if self.state == RuleState.TRIGGERED:
            return None

        self.state = RuleState.TRIGGERED
        logger.info(
            f"[{self.symbol}] {self.strategy} entry: price {tick.price:.4f} in "
            f"[{self.config.entry_range.min} - {self.config.entry_range.max}]"
        )
        return Signal(
            symbol=self.symbol,
            strategy=self.strategy,
            action=self.action,
            price=tick.price,
            amount=float(self.config.position_size),
            timestamp=tick.timestamp,
        )

    def reset(self):
        self.state = RuleState.ARMED


class RangeEntryRules:
    """Long and short range-entry rules for one symbol."""

    def __init__(self, symbol: str, config: EngineConfig):
        self.symbol = symbol
        self.long = RangeEntryRule(symbol, "LongPosition", BUY, config.long_position)
        self.short = RangeEntryRule(symbol, "ShortPosition", SELL, config.short_position)

    def evaluate(self, tick: Tick) -> List[Signal]:
        signals = []
        for rule in (self.long, self.short):
            signal = rule.evaluate(tick)
            if signal:
                signals.append(signal)
        return signals

    def reset(self):
        self.long.reset()
        self.short.reset()
