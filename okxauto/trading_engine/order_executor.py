"""
Order Executor

Drains the signal queue in FIFO order and turns each signal into a market
order. Exactly one executor runs per engine, so orders are never placed
concurrently.

Per signal:
1. Futures only: log positions, pre-check balance for amount * price / leverage
2. Set leverage for the signal's position side
3. Re-check balance for the required margin
4. Place a market order for the configured order quantity
5. Persist a trade record (failure here does not undo the order)
"""

import asyncio
import logging
from typing import Optional

from okxauto.exchange_clients.base import ExchangeClient
from okxauto.models import Trade
from okxauto.schemas.config import EngineConfig
from okxauto.schemas.exchange import OrderRequest, OrderResponse
from okxauto.services.shutdown_manager import ShutdownInProgressError, ShutdownManager
from okxauto.services.trade_store import TradeStore
from okxauto.trading_engine.balance_guard import ensure_balance
from okxauto.trading_engine.signals import Signal

logger = logging.getLogger(__name__)

# How often the consumer re-checks the stop event while the queue is empty
QUEUE_POLL_TIMEOUT = 0.5


class OrderExecutor:
    def __init__(
        self,
        exchange: ExchangeClient,
        config: EngineConfig,
        trade_store: TradeStore,
        shutdown_manager: ShutdownManager,
    ):
        self.exchange = exchange
        self.config = config
        self.trade_store = trade_store
        self.shutdown_manager = shutdown_manager

    def required_margin(self, signal: Signal) -> float:
        return signal.price * signal.amount / self.config.leverage

    def build_order(self, signal: Signal) -> OrderRequest:
        request = OrderRequest(
            inst_id=signal.symbol,
            td_mode=self.config.margin_mode,
            side=signal.action,
            ord_type="market",
            sz=str(self.config.order_quantity),
        )
        if self.config.is_futures:
            request.pos_side = signal.pos_side
            request.lever = str(self.config.leverage)
        return request

    async def _log_positions(self, symbol: str):
        try:
            positions = await self.exchange.get_positions(symbol)
        except Exception as e:
            logger.warning(f"[{symbol}] Could not fetch positions before order: {e}")
            return
        if not positions:
            logger.info(f"[{symbol}] No open positions")
        for position in positions:
            logger.info(
                f"[{symbol}] Current position: {position.pos_side} {position.quantity} @ {position.avg_price}"
            )

    async def execute_signal(self, signal: Signal) -> OrderResponse:
        """
        Execute one signal end to end.

        Raises:
            InsufficientBalanceError: balance check failed (signal dropped)
            ExchangeError: leverage or order placement failed
        """
        symbol = signal.symbol
        logger.info(
            f"[{symbol}] Executing {signal.strategy} signal: {signal.action} {signal.amount} @ {signal.price}"
        )

        async with self.shutdown_manager.order_in_flight(symbol):
            if self.config.is_futures:
                await self._log_positions(symbol)
                await ensure_balance(
                    self.exchange,
                    signal.amount * signal.price / self.config.leverage,
                    self.config.reserve_balance,
                    context=symbol,
                )

            await self.exchange.set_leverage(symbol, self.config.leverage, self.config.margin_mode, signal.pos_side)
            logger.info(f"[{symbol}] Leverage set to {self.config.leverage}x ({signal.pos_side})")

            await ensure_balance(
                self.exchange, self.required_margin(signal), self.config.reserve_balance, context=symbol
            )

            response = await self.exchange.place_order(self.build_order(signal))
            logger.info(f"[{symbol}] Order placed: {response.order_id}")

            await self._record_trade(signal, response)
            return response

    async def _record_trade(self, signal: Signal, response: OrderResponse):
        trade = Trade(
            symbol=signal.symbol,
            side=signal.action,
            price=signal.price,
            amount=signal.amount,
            strategy=signal.strategy,
            status="filled",
            order_id=response.order_id,
            trade_type=self.config.trade_type,
        )
        try:
            await self.trade_store.save_trade(trade)
        except Exception as e:
            logger.error(f"[{signal.symbol}] Failed to save trade for order {response.order_id}: {e}", exc_info=True)

    async def run(self, queue: "asyncio.Queue[Signal]", stop_event: asyncio.Event):
        """Consume signals until stop_event is set."""
        logger.info("Order executor started")
        while not stop_event.is_set():
            signal: Optional[Signal] = None
            try:
                signal = await asyncio.wait_for(queue.get(), timeout=QUEUE_POLL_TIMEOUT)
            except asyncio.TimeoutError:
                continue

            try:
                await self.execute_signal(signal)
            except ShutdownInProgressError:
                logger.info(f"[{signal.symbol}] Skipping {signal.strategy} signal, engine stopping")
            except Exception as e:
                logger.error(f"[{signal.symbol}] Failed to execute {signal.strategy} {signal.action} signal: {e}")
            finally:
                queue.task_done()
        logger.info("Order executor stopped")
