"""
Exchange Client Abstraction Layer

The trading engine only talks to the venue through the ExchangeClient
interface. OKXClient is the production implementation; tests substitute
mocks that satisfy the same contract.

Usage:
    from okxauto.exchange_clients.factory import create_exchange_client

    exchange = create_exchange_client(settings)
"""

from okxauto.exchange_clients.base import ExchangeClient

__all__ = ["ExchangeClient"]
