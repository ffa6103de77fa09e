"""
Trade Store

Persists executed trades and answers history queries. Each call opens its
own session from the configured session maker.
"""

import logging
from typing import List, Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from okxauto.constants import DEFAULT_TRADE_HISTORY_LIMIT
from okxauto.database import async_session_maker
from okxauto.models import Trade
from okxauto.schemas.trade import TradeStats

logger = logging.getLogger(__name__)


class TradeStore:
    def __init__(self, session_maker: Optional[async_sessionmaker] = None):
        self._session_maker = session_maker or async_session_maker

    async def save_trade(self, trade: Trade) -> Trade:
        async with self._session_maker() as db:
            db.add(trade)
            await db.commit()
            await db.refresh(trade)
        logger.info(
            f"[{trade.symbol}] Trade saved: id={trade.id}, {trade.side} {trade.amount} @ {trade.price} "
            f"({trade.strategy}, order {trade.order_id})"
        )
        return trade

    async def _query(self, db: AsyncSession, limit: int, *criteria) -> List[Trade]:
        query = select(Trade)
        for criterion in criteria:
            query = query.where(criterion)
        query = query.order_by(Trade.created_at.desc(), Trade.id.desc()).limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_trade_history(self, limit: int = DEFAULT_TRADE_HISTORY_LIMIT) -> List[Trade]:
        """Most recent trades, newest first"""
        async with self._session_maker() as db:
            return await self._query(db, limit)

    async def get_trades_by_symbol(self, symbol: str, limit: int = DEFAULT_TRADE_HISTORY_LIMIT) -> List[Trade]:
        async with self._session_maker() as db:
            return await self._query(db, limit, Trade.symbol == symbol)

    async def get_trades_by_strategy(self, strategy: str, limit: int = DEFAULT_TRADE_HISTORY_LIMIT) -> List[Trade]:
        async with self._session_maker() as db:
            return await self._query(db, limit, Trade.strategy == strategy)

    async def get_trade_stats(self, symbol: Optional[str] = None) -> TradeStats:
        """
        Aggregate trade counts and volume.

        Args:
            symbol: Restrict to one instrument; None aggregates every trade
        """
        query = select(
            func.count(Trade.id),
            func.sum(case((Trade.side == "buy", 1), else_=0)),
            func.sum(case((Trade.side == "sell", 1), else_=0)),
            func.sum(Trade.amount),
            func.avg(Trade.price),
        )
        if symbol:
            query = query.where(Trade.symbol == symbol)

        async with self._session_maker() as db:
            row = (await db.execute(query)).one()

        count, buys, sells, total_amount, avg_price = row
        return TradeStats(
            symbol=symbol,
            trade_count=count or 0,
            buy_count=buys or 0,
            sell_count=sells or 0,
            total_amount=total_amount or 0.0,
            average_price=avg_price or 0.0,
        )
