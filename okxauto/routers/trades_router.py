"""
Trade history routes
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from okxauto.constants import DEFAULT_TRADE_HISTORY_LIMIT
from okxauto.schemas.trade import TradeResponse, TradeStats
from okxauto.services.trade_store import TradeStore

router = APIRouter(prefix="/api/trades", tags=["trades"])


# Dependency - overridden in main.py
def get_trade_store() -> TradeStore:
    """Get trade store - will be overridden in main.py"""
    raise NotImplementedError("Must override trade store dependency")


@router.get("/history", response_model=List[TradeResponse])
async def get_trade_history(
    limit: int = Query(DEFAULT_TRADE_HISTORY_LIMIT, ge=1, le=1000),
    symbol: Optional[str] = None,
    strategy: Optional[str] = None,
    store: TradeStore = Depends(get_trade_store),
):
    """Recent trades, newest first; optionally filtered by symbol or strategy"""
    if symbol:
        return await store.get_trades_by_symbol(symbol, limit)
    if strategy:
        return await store.get_trades_by_strategy(strategy, limit)
    return await store.get_trade_history(limit)


@router.get("/stats", response_model=TradeStats)
async def get_trade_stats(symbol: Optional[str] = None, store: TradeStore = Depends(get_trade_store)):
    return await store.get_trade_stats(symbol)
