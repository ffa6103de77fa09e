"""
API Routers

Control surface for the trading engine.
"""

from okxauto.routers import engine_router, trades_router

__all__ = [
    "engine_router",
    "trades_router",
]
