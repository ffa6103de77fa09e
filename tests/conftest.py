"""
Shared test fixtures for okxauto tests.

Provides reusable fixtures for:
- Async database sessions (in-memory SQLite)
- Mock exchange gateway
- Engine config factory
"""

import pytest
from unittest.mock import AsyncMock

from okxauto.database import create_db_engine, create_session_maker, init_db
from okxauto.models import Base
from okxauto.schemas.config import EngineConfig
from okxauto.schemas.exchange import Balance, OrderResponse


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def async_engine():
    """Create an in-memory async SQLite engine for testing."""
    engine = create_db_engine("sqlite+aiosqlite:///:memory:")
    await init_db(engine)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_maker(async_engine):
    """Session factory bound to the in-memory engine."""
    return create_session_maker(async_engine)


@pytest.fixture
async def db_session(session_maker):
    """Provide an async database session that rolls back after the test."""
    async with session_maker() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------------------------
# Exchange / config fixtures
# ---------------------------------------------------------------------------


def make_usdt_balance(available: float = 10000.0, total: float = None) -> Balance:
    total = available if total is None else total
    return Balance(currency="USDT", balance=str(total), available=str(available), frozen="0")


def make_engine_config(**overrides) -> EngineConfig:
    """EngineConfig with futures defaults; nested sections accept dicts."""
    data = {
        "mode": "simulation",
        "trade_type": "futures",
        "leverage": 10,
        "margin_mode": "isolated",
        "reserve_balance": 0.0,
        "symbols": ["BTC-USDT-SWAP"],
    }
    data.update(overrides)
    return EngineConfig.model_validate(data)


@pytest.fixture
def engine_config():
    return make_engine_config()


@pytest.fixture
def mock_exchange():
    """Mock ExchangeClient with a funded USDT account and no positions."""
    exchange = AsyncMock()
    exchange.place_order = AsyncMock(return_value=OrderResponse(order_id="ord-001", cl_ord_id="123456789012"))
    exchange.cancel_order = AsyncMock(return_value=None)
    exchange.get_positions = AsyncMock(return_value=[])
    exchange.get_balances = AsyncMock(return_value=[make_usdt_balance()])
    exchange.set_leverage = AsyncMock(return_value=None)
    exchange.add_margin = AsyncMock(return_value={"code": "0", "data": []})
    exchange.get_klines = AsyncMock(return_value=[])
    return exchange


@pytest.fixture
def config_factory():
    """Build EngineConfig objects with per-test overrides."""
    return make_engine_config


@pytest.fixture
def usdt_balance():
    """Build a USDT Balance record."""
    return make_usdt_balance
