"""
Tick and signal records passed between the market-data poller, strategies,
range-entry rules and the order executor.
"""

import time
from dataclasses import dataclass, field


BUY = "buy"
SELL = "sell"


@dataclass(frozen=True)
class Tick:
    """One timestamped price/volume observation for a symbol."""
    symbol: str
    price: float
    volume: float = 0.0
    timestamp: int = field(default_factory=lambda: int(time.time()))


@dataclass
class Signal:
    """Request to buy or sell `amount` of `symbol` at reference `price`."""
    symbol: str
    strategy: str
    action: str  # buy / sell
    price: float
    amount: float
    timestamp: int = field(default_factory=lambda: int(time.time()))

    @property
    def pos_side(self) -> str:
        """Position side the order opens: long for buys, short for sells."""
        return "long" if self.action == BUY else "short"
