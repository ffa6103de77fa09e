"""
Tests for okxauto/services/shutdown_manager.py

Covers:
- order_in_flight per-symbol bookkeeping
- prepare_shutdown: immediate, waits for in-flight orders, timeout
- new orders refused while draining, reset re-enables them
"""

import asyncio

import pytest

from okxauto.services.shutdown_manager import ShutdownInProgressError, ShutdownManager


class TestShutdownManager:
    """Tests for ShutdownManager"""

    @pytest.mark.asyncio
    async def test_in_flight_counting(self):
        manager = ShutdownManager()

        async with manager.order_in_flight("BTC-USDT-SWAP"):
            assert manager.in_flight_count == 1
            async with manager.order_in_flight("ETH-USDT-SWAP"):
                assert manager.in_flight_count == 2
                assert manager.pending_symbols() == ["BTC-USDT-SWAP", "ETH-USDT-SWAP"]

        assert manager.in_flight_count == 0
        assert manager.pending_symbols() == []

    @pytest.mark.asyncio
    async def test_count_released_on_error(self):
        manager = ShutdownManager()

        with pytest.raises(ValueError):
            async with manager.order_in_flight("BTC-USDT-SWAP"):
                raise ValueError("order failed")

        assert manager.in_flight_count == 0

    @pytest.mark.asyncio
    async def test_shutdown_ready_when_idle(self):
        """Happy path: nothing in flight."""
        result = await ShutdownManager().prepare_shutdown(timeout=1)

        assert result.drained is True
        assert result.pending == 0

    @pytest.mark.asyncio
    async def test_shutdown_waits_for_in_flight_order(self):
        manager = ShutdownManager()
        release = asyncio.Event()

        async def order():
            async with manager.order_in_flight("BTC-USDT-SWAP"):
                await release.wait()

        task = asyncio.create_task(order())
        await asyncio.sleep(0)
        assert manager.in_flight_count == 1

        shutdown = asyncio.create_task(manager.prepare_shutdown(timeout=5))
        await asyncio.sleep(0)
        assert not shutdown.done()

        release.set()
        result = await shutdown
        await task

        assert result.drained is True
        assert manager.in_flight_count == 0

    @pytest.mark.asyncio
    async def test_shutdown_timeout(self):
        """Failure: an order that never finishes reports not drained."""
        manager = ShutdownManager()
        release = asyncio.Event()

        async def order():
            async with manager.order_in_flight("ETH-USDT-SWAP"):
                await release.wait()

        task = asyncio.create_task(order())
        await asyncio.sleep(0)

        result = await manager.prepare_shutdown(timeout=0.01)

        assert result.drained is False
        assert result.pending == 1
        assert result.pending_symbols == ["ETH-USDT-SWAP"]
        release.set()
        await task

    @pytest.mark.asyncio
    async def test_new_orders_refused_after_shutdown(self):
        manager = ShutdownManager()
        await manager.prepare_shutdown(timeout=1)

        with pytest.raises(ShutdownInProgressError):
            async with manager.order_in_flight("BTC-USDT-SWAP"):
                pass

        assert manager.in_flight_count == 0
        assert manager.get_status()["shutting_down"] is True

    @pytest.mark.asyncio
    async def test_reset_accepts_orders_again(self):
        manager = ShutdownManager()
        await manager.prepare_shutdown(timeout=1)

        manager.reset()

        async with manager.order_in_flight("BTC-USDT-SWAP"):
            assert manager.in_flight_count == 1
        assert manager.is_shutting_down is False
