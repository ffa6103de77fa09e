"""Centralized Pydantic schemas for configuration, exchange records and API responses"""

from .config import EngineConfig, EntryRange, GridConfig, PositionSideConfig, RSIConfig
from .exchange import Balance, Candle, OrderRequest, OrderResponse, Position
from .trade import TradeResponse, TradeStats

__all__ = [
    # Config schemas
    "EngineConfig",
    "EntryRange",
    "GridConfig",
    "PositionSideConfig",
    "RSIConfig",
    # Exchange schemas
    "Balance",
    "Candle",
    "OrderRequest",
    "OrderResponse",
    "Position",
    # Trade schemas
    "TradeResponse",
    "TradeStats",
]
