"""
Tests for okxauto/trading_engine/order_executor.py

Covers:
- execute_signal: balance checks, leverage, order building, trade persistence
- run: FIFO consumption, failures isolated per signal, stop event
"""

import asyncio

import pytest
from unittest.mock import AsyncMock

from okxauto.exceptions import ExchangeError, InsufficientBalanceError
from okxauto.schemas.exchange import OrderResponse
from okxauto.services.shutdown_manager import ShutdownManager
from okxauto.trading_engine.order_executor import OrderExecutor
from okxauto.trading_engine.signals import BUY, SELL, Signal

SYMBOL = "BTC-USDT-SWAP"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_signal(**overrides):
    params = {"symbol": SYMBOL, "strategy": "Grid", "action": BUY, "price": 30000.0, "amount": 1.0}
    params.update(overrides)
    return Signal(**params)


def _make_executor(exchange, config, trade_store=None):
    return OrderExecutor(exchange, config, trade_store or AsyncMock(), ShutdownManager())


class TestExecuteSignal:
    """Tests for OrderExecutor.execute_signal()"""

    @pytest.mark.asyncio
    async def test_futures_buy(self, mock_exchange, engine_config):
        """Happy path: leverage set, order placed, trade saved."""
        trade_store = AsyncMock()
        executor = _make_executor(mock_exchange, engine_config, trade_store)

        response = await executor.execute_signal(_make_signal())

        assert response.order_id == "ord-001"
        mock_exchange.get_positions.assert_awaited_once_with(SYMBOL)
        mock_exchange.set_leverage.assert_awaited_once_with(SYMBOL, 10, "isolated", "long")

        request = mock_exchange.place_order.await_args.args[0]
        assert request.inst_id == SYMBOL
        assert request.side == "buy"
        assert request.pos_side == "long"
        assert request.lever == "10"
        assert request.sz == "200"
        assert request.ord_type == "market"
        assert request.td_mode == "isolated"

        trade = trade_store.save_trade.await_args.args[0]
        assert trade.symbol == SYMBOL
        assert trade.side == "buy"
        assert trade.price == 30000.0
        assert trade.amount == 1.0
        assert trade.strategy == "Grid"
        assert trade.status == "filled"
        assert trade.order_id == "ord-001"
        assert trade.trade_type == "futures"

    @pytest.mark.asyncio
    async def test_sell_opens_short_side(self, mock_exchange, engine_config):
        executor = _make_executor(mock_exchange, engine_config)

        await executor.execute_signal(_make_signal(action=SELL))

        mock_exchange.set_leverage.assert_awaited_once_with(SYMBOL, 10, "isolated", "short")
        assert mock_exchange.place_order.await_args.args[0].pos_side == "short"

    @pytest.mark.asyncio
    async def test_configured_order_quantity(self, mock_exchange, config_factory):
        executor = _make_executor(mock_exchange, config_factory(order_quantity=50))

        await executor.execute_signal(_make_signal())

        assert mock_exchange.place_order.await_args.args[0].sz == "50"

    @pytest.mark.asyncio
    async def test_spot_order_has_no_position_side(self, mock_exchange, config_factory):
        """Spot mode skips the pre-check and leaves pos_side/lever unset."""
        executor = _make_executor(mock_exchange, config_factory(trade_type="spot", margin_mode="cash"))

        await executor.execute_signal(_make_signal(symbol="BTC-USDT"))

        mock_exchange.get_positions.assert_not_awaited()
        mock_exchange.set_leverage.assert_awaited_once()
        request = mock_exchange.place_order.await_args.args[0]
        assert request.pos_side == ""
        assert request.lever is None
        assert request.td_mode == "cash"

    @pytest.mark.asyncio
    async def test_insufficient_balance_aborts(self, mock_exchange, engine_config, usdt_balance):
        """Failure: 30000 * 1 / 10 = 3000 required, only 100 available."""
        mock_exchange.get_balances = AsyncMock(return_value=[usdt_balance(available=100.0)])
        trade_store = AsyncMock()
        executor = _make_executor(mock_exchange, engine_config, trade_store)

        with pytest.raises(InsufficientBalanceError):
            await executor.execute_signal(_make_signal())

        mock_exchange.set_leverage.assert_not_awaited()
        mock_exchange.place_order.assert_not_awaited()
        trade_store.save_trade.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reserve_blocks_order(self, mock_exchange, config_factory, usdt_balance):
        """Edge case: 5000 available but 4000 reserved leaves less than 3000."""
        mock_exchange.get_balances = AsyncMock(return_value=[usdt_balance(available=5000.0)])
        executor = _make_executor(mock_exchange, config_factory(reserve_balance=4000.0))

        with pytest.raises(InsufficientBalanceError):
            await executor.execute_signal(_make_signal())

        mock_exchange.place_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_order_failure_not_recorded(self, mock_exchange, engine_config):
        mock_exchange.place_order = AsyncMock(side_effect=ExchangeError("Order rejected"))
        trade_store = AsyncMock()
        executor = _make_executor(mock_exchange, engine_config, trade_store)

        with pytest.raises(ExchangeError):
            await executor.execute_signal(_make_signal())

        trade_store.save_trade.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_persistence_failure_keeps_order(self, mock_exchange, engine_config):
        """Edge case: a failed save is logged, the order result still returned."""
        trade_store = AsyncMock()
        trade_store.save_trade = AsyncMock(side_effect=RuntimeError("database is locked"))
        executor = _make_executor(mock_exchange, engine_config, trade_store)

        response = await executor.execute_signal(_make_signal())

        assert response.order_id == "ord-001"

    @pytest.mark.asyncio
    async def test_position_lookup_failure_is_best_effort(self, mock_exchange, engine_config):
        mock_exchange.get_positions = AsyncMock(side_effect=ExchangeError("timeout"))
        executor = _make_executor(mock_exchange, engine_config)

        await executor.execute_signal(_make_signal())

        mock_exchange.place_order.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_in_flight_tracking(self, mock_exchange, engine_config):
        executor = _make_executor(mock_exchange, engine_config)
        seen = []

        async def place(request):
            seen.append(executor.shutdown_manager.in_flight_count)
            return OrderResponse(order_id="ord-002")

        mock_exchange.place_order = AsyncMock(side_effect=place)

        await executor.execute_signal(_make_signal())

        assert seen == [1]
        assert executor.shutdown_manager.in_flight_count == 0

    def test_required_margin(self, mock_exchange, engine_config):
        executor = _make_executor(mock_exchange, engine_config)
        assert executor.required_margin(_make_signal(price=30000.0, amount=2.0)) == 6000.0


class TestRun:
    """Tests for OrderExecutor.run()"""

    @pytest.mark.asyncio
    async def test_consumes_in_order_and_survives_failures(self, mock_exchange, engine_config):
        mock_exchange.place_order = AsyncMock(
            side_effect=[ExchangeError("Order rejected"), OrderResponse(order_id="ord-2")]
        )
        trade_store = AsyncMock()
        executor = _make_executor(mock_exchange, engine_config, trade_store)
        queue = asyncio.Queue()
        stop_event = asyncio.Event()

        await queue.put(_make_signal(price=30000.0))
        await queue.put(_make_signal(price=30001.0))

        task = asyncio.create_task(executor.run(queue, stop_event))
        await asyncio.wait_for(queue.join(), timeout=5)
        stop_event.set()
        await asyncio.wait_for(task, timeout=5)

        assert mock_exchange.place_order.await_count == 2
        trade_store.save_trade.assert_awaited_once()
        assert trade_store.save_trade.await_args.args[0].price == 30001.0

    @pytest.mark.asyncio
    async def test_stops_when_idle(self, mock_exchange, engine_config):
        executor = _make_executor(mock_exchange, engine_config)
        stop_event = asyncio.Event()
        stop_event.set()

        await asyncio.wait_for(executor.run(asyncio.Queue(), stop_event), timeout=5)

        mock_exchange.place_order.assert_not_awaited()
