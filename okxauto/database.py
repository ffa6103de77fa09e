"""
Trade database

One async engine per process, built from settings.database_url. SQLite file
databases get their parent directory created by init_db(); tests build
their own in-memory engine with create_db_engine().
"""

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from okxauto.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _is_sqlite(url) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def create_db_engine(url: str) -> AsyncEngine:
    if _is_sqlite(url):
        # aiosqlite runs the connection on its own thread
        return create_async_engine(url, connect_args={"check_same_thread": False})
    return create_async_engine(url, pool_pre_ping=True, pool_recycle=3600)


def create_session_maker(db_engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


engine = create_db_engine(settings.database_url)
async_session_maker = create_session_maker(engine)


def _sqlite_file(url) -> Optional[Path]:
    """Path of a SQLite database file, or None for in-memory and other backends."""
    parsed = make_url(url)
    if not _is_sqlite(url) or not parsed.database or parsed.database == ":memory:":
        return None
    return Path(parsed.database)


async def init_db(db_engine: Optional[AsyncEngine] = None):
    """Create the trades table (and the SQLite directory) if missing."""
    db_engine = db_engine or engine
    db_file = _sqlite_file(db_engine.url)
    if db_file is not None:
        db_file.parent.mkdir(parents=True, exist_ok=True)

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Trade database ready ({db_engine.url.get_backend_name()})")
