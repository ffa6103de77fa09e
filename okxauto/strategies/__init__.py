"""
Trading Strategy Framework

This module provides the base class and a registry for trading strategies.
Each strategy instance is bound to one symbol, owns its rolling state, and
turns ticks into signals.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type

from okxauto.exceptions import StrategyNotFoundError
from okxauto.exchange_clients.base import ExchangeClient
from okxauto.trading_engine.signals import Signal, Tick


class TradingStrategy(ABC):
    """
    Base class for all trading strategies.

    Each strategy must implement:
    - validate_config(): Reject unusable parameters
    - initialize(): Load warm-up state (may query the exchange)
    - process_tick(): Evaluate one tick, optionally returning a Signal
    - stop(): Clear internal state

    Subclasses guard their mutable state with `self._lock`; it is held for
    the whole of initialize/process_tick/stop.
    """

    # Registry key and display name (e.g. "Grid")
    name: str = ""
    # EngineConfig attribute holding this strategy's parameters
    config_section: str = ""

    def __init__(self, exchange: ExchangeClient, symbol: str, config: Any):
        """
        Initialize strategy for one symbol

        Args:
            exchange: Gateway used for warm-up queries
            symbol: Instrument id this instance evaluates
            config: Strategy-specific parameter model
        """
        self.exchange = exchange
        self.symbol = symbol
        self.config = config
        self.enabled = True
        self._lock = asyncio.Lock()
        self.validate_config()

    @abstractmethod
    def validate_config(self):
        """Validate configuration parameters"""
        pass

    @abstractmethod
    async def initialize(self):
        """Load warm-up history / derived state"""
        pass

    @abstractmethod
    async def process_tick(self, tick: Tick) -> Optional[Signal]:
        """
        Evaluate a tick

        Returns:
            Signal to execute, or None
        """
        pass

    @abstractmethod
    async def stop(self):
        """Clear internal state"""
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}-{self.symbol} enabled={self.enabled}>"


class StrategyRegistry:
    """Registry of all available trading strategies"""

    _strategies: Dict[str, Type[TradingStrategy]] = {}

    @classmethod
    def register(cls, strategy_class: Type[TradingStrategy]):
        """Register a strategy class under its name"""
        cls._strategies[strategy_class.name] = strategy_class
        return strategy_class

    @classmethod
    def get_strategy_class(cls, name: str) -> Type[TradingStrategy]:
        if name not in cls._strategies:
            raise StrategyNotFoundError(name)
        return cls._strategies[name]

    @classmethod
    def create(cls, name: str, exchange: ExchangeClient, symbol: str, config: Any) -> TradingStrategy:
        """Get a new instance of a strategy by name"""
        return cls.get_strategy_class(name)(exchange, symbol, config)

    @classmethod
    def list_strategies(cls) -> List[str]:
        """Names of all registered strategies"""
        return list(cls._strategies.keys())

    @classmethod
    def items(cls):
        return cls._strategies.items()


# Import all strategy implementations to trigger registration
# Must be after StrategyRegistry class definition for decorators to work
from okxauto.strategies import grid_trading, rsi  # noqa: E402

__all__ = [
    "TradingStrategy",
    "StrategyRegistry",
    # Strategy implementations (imported for registration)
    "grid_trading",
    "rsi",
]
