"""
Tests for okxauto/database.py
"""

import pytest
from sqlalchemy import inspect

from okxauto.database import _sqlite_file, create_db_engine, init_db
from okxauto.models import Trade  # noqa: F401 (registers the trades table)


class TestSqliteFile:
    def test_file_database(self):
        assert str(_sqlite_file("sqlite+aiosqlite:///./data/trades.db")) == "data/trades.db"

    def test_in_memory(self):
        assert _sqlite_file("sqlite+aiosqlite:///:memory:") is None
        assert _sqlite_file("sqlite+aiosqlite://") is None

    def test_other_backend(self):
        assert _sqlite_file("postgresql+asyncpg://user:pw@localhost/trades") is None


class TestInitDb:
    @pytest.mark.asyncio
    async def test_creates_directory_and_table(self, tmp_path):
        db_path = tmp_path / "nested" / "trades.db"
        engine = create_db_engine(f"sqlite+aiosqlite:///{db_path}")
        try:
            await init_db(engine)

            async with engine.connect() as conn:
                tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        finally:
            await engine.dispose()

        assert db_path.exists()
        assert Trade.__tablename__ in tables
