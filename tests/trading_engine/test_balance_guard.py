"""
Tests for okxauto/trading_engine/balance_guard.py

Covers:
- check_balance: reserve subtraction, missing currency, purity
- ensure_balance: raises InsufficientBalanceError with the numbers attached
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from okxauto.exceptions import InsufficientBalanceError
from okxauto.schemas.exchange import Balance
from okxauto.trading_engine.balance_guard import BalanceCheck, check_balance, ensure_balance


class TestCheckBalance:
    """Tests for check_balance()"""

    def test_sufficient(self, usdt_balance):
        """Happy path: available covers the requirement."""
        result = check_balance([usdt_balance(available=1000.0, total=1200.0)], required=500.0, reserve=0.0)

        assert result == BalanceCheck(total=1200.0, available=1000.0, required=500.0, sufficient=True)

    def test_reserve_is_subtracted(self, usdt_balance):
        result = check_balance([usdt_balance(available=1000.0)], required=500.0, reserve=600.0)

        assert result.available == 400.0
        assert result.sufficient is False

    def test_exact_amount_is_sufficient(self, usdt_balance):
        """Edge case: available equal to required passes."""
        assert check_balance([usdt_balance(available=500.0)], required=500.0, reserve=0.0).sufficient is True

    def test_missing_usdt_counts_as_zero(self):
        balances = [Balance(currency="BTC", balance="1", available="1")]

        result = check_balance(balances, required=10.0, reserve=0.0)

        assert result.total == 0.0
        assert result.available == 0.0
        assert result.sufficient is False

    def test_pure(self, usdt_balance):
        """Identical inputs give identical results."""
        balances = [usdt_balance(available=800.0)]
        assert check_balance(balances, 100.0, 50.0) == check_balance(balances, 100.0, 50.0)


class TestEnsureBalance:
    """Tests for ensure_balance()"""

    @pytest.mark.asyncio
    async def test_returns_check_when_sufficient(self, usdt_balance):
        exchange = MagicMock()
        exchange.get_balances = AsyncMock(return_value=[usdt_balance(available=1000.0)])

        result = await ensure_balance(exchange, 100.0, 0.0, context="BTC-USDT-SWAP")

        assert result.sufficient is True

    @pytest.mark.asyncio
    async def test_raises_when_insufficient(self, usdt_balance):
        """Failure: reserve leaves too little."""
        exchange = MagicMock()
        exchange.get_balances = AsyncMock(return_value=[usdt_balance(available=1000.0)])

        with pytest.raises(InsufficientBalanceError) as exc_info:
            await ensure_balance(exchange, 500.0, 700.0, context="BTC-USDT-SWAP")

        assert exc_info.value.required == 500.0
        assert exc_info.value.available == 300.0
        assert exc_info.value.status_code == 409
        assert "BTC-USDT-SWAP" in exc_info.value.message
