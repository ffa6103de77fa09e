"""
ExchangeClient Abstract Base Class

This module defines the gateway interface the trading engine talks to. It is
the sole point of contact with the remote venue: strategies, monitors and the
order executor never issue HTTP requests themselves.

Design Philosophy:
- Methods return typed records (okxauto.schemas.exchange)
- Implementations own rate limiting and retries, so callers can treat every
  method as a single logical request
- Failures surface as okxauto.exceptions.ExchangeError subclasses
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from okxauto.schemas.exchange import Balance, Candle, OrderRequest, OrderResponse, Position


class ExchangeClient(ABC):
    """Abstract base class for exchange gateways."""

    # ========================================
    # ORDER METHODS
    # ========================================

    @abstractmethod
    async def place_order(self, request: OrderRequest) -> OrderResponse:
        """
        Place an order.

        Implementations fill in a client order id when the request has none.

        Returns:
            OrderResponse with the exchange-assigned order id
        """
        pass

    @abstractmethod
    async def cancel_order(self, symbol: str, order_id: str) -> None:
        """Cancel an open order."""
        pass

    # ========================================
    # ACCOUNT & POSITION METHODS
    # ========================================

    @abstractmethod
    async def get_positions(self, symbol: str) -> List[Position]:
        """
        Get live positions for an instrument.

        Positions with zero quantity are omitted.
        """
        pass

    @abstractmethod
    async def get_balances(self) -> List[Balance]:
        """Get balances for every currency with positive equity."""
        pass

    async def get_balance(self, currency: str) -> Optional[Balance]:
        """Get the balance of a single currency, or None if not held."""
        for balance in await self.get_balances():
            if balance.currency == currency:
                return balance
        return None

    @abstractmethod
    async def set_leverage(self, symbol: str, leverage: int, margin_mode: str, pos_side: str = "") -> None:
        """Set leverage for an instrument (and position side in long/short mode)."""
        pass

    @abstractmethod
    async def add_margin(self, symbol: str, pos_side: str, amount: float) -> dict:
        """Add margin to an isolated position."""
        pass

    # ========================================
    # MARKET DATA METHODS
    # ========================================

    @abstractmethod
    async def get_klines(self, symbol: str, interval: str, limit: int) -> List[Candle]:
        """
        Get candles for an instrument.

        Args:
            symbol: Instrument id (e.g., "BTC-USDT-SWAP")
            interval: Bar size (e.g., "1m")
            limit: Maximum number of candles

        Returns:
            Candles as returned by the venue (newest first for OKX)
        """
        pass
