"""Database session management."""

from __future__ import annotations

import asyncio
import logging
import os
import time
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

from alembic import command
from alembic.config import Config as AlembicConfig
from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from linksaver.config import config

logger = logging.getLogger(__name__)

_ALEMBIC_DIR = Path(__file__).resolve().parent / "alembic"
_LOCK_TIMEOUT_SECONDS = 30.0
_LOCK_RETRY_INTERVAL = 0.1


def to_async_url(url: str) -> str:
    if url.startswith("sqlite+aiosqlite:"):
        return url
    if url.startswith("sqlite:"):
        return url.replace("sqlite:", "sqlite+aiosqlite:", 1)
    if url.startswith("postgresql+asyncpg:"):
        return url
    if url.startswith("postgresql:"):
        return url.replace("postgresql:", "postgresql+asyncpg:", 1)
    return url


def to_sync_url(url: str) -> str:
    if url.startswith("sqlite+aiosqlite:"):
        url = url.replace("sqlite+aiosqlite:", "sqlite:", 1)
    elif url.startswith("postgresql+asyncpg:"):
        url = url.replace("postgresql+asyncpg:", "postgresql:", 1)

    if url.startswith("sqlite:///") and ":memory:" not in url:
        db_path = Path(url.replace("sqlite:///", "", 1)).expanduser().resolve()
        return f"sqlite:///{db_path}"

    return url


def _unicode_lower(value: Any) -> Any:
    if isinstance(value, str):
        return value.lower()
    return value


@event.listens_for(Engine, "connect")
def _configure_sqlite_connection(
    dbapi_connection: Any, connection_record: Any
) -> None:
    """Enable foreign keys and a Unicode-aware ``lower()`` on SQLite.

    SQLite ignores ON DELETE clauses unless foreign keys are switched on,
    and its built-in ``lower()`` (used for ``ILIKE``) only folds ASCII.
    """

    module = type(dbapi_connection).__module__
    if "sqlite" not in module:
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    dbapi_connection.create_function("lower", 1, _unicode_lower)


database_url = to_async_url(config.DATABASE_URL)

engine = create_async_engine(database_url, echo=False)
AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db() -> AsyncGenerator[AsyncSession]:
    """Get database session."""
    async with AsyncSessionLocal() as session:
        yield session


def build_alembic_config(sync_url: str) -> AlembicConfig:
    """Return an Alembic config pointing at the bundled migration scripts."""

    alembic_cfg = AlembicConfig()
    alembic_cfg.set_main_option("script_location", str(_ALEMBIC_DIR))
    alembic_cfg.set_main_option("sqlalchemy.url", sync_url)
    return alembic_cfg


async def init_db() -> None:
    """Initialize the database by applying migrations."""

    def _run_upgrade() -> None:
        sync_url = to_sync_url(config.DATABASE_URL)
        alembic_cfg = build_alembic_config(sync_url)

        lock_fd = _acquire_lock(config.MIGRATION_LOCK_PATH)
        try:
            sync_engine = create_engine(sync_url)
            try:
                with sync_engine.connect() as connection:
                    inspector = inspect(connection)
                    has_version_table = inspector.has_table("alembic_version")
                    existing_tables = [
                        name
                        for name in inspector.get_table_names()
                        if name != "alembic_version"
                    ]

                if not has_version_table and existing_tables:
                    logger.info("Stamping existing database with current Alembic head")
                    command.stamp(alembic_cfg, "head")
                else:
                    logger.info("Applying database migrations")
                    command.upgrade(alembic_cfg, "head")
            finally:
                sync_engine.dispose()
        finally:
            _release_lock(lock_fd, config.MIGRATION_LOCK_PATH)

    await asyncio.to_thread(_run_upgrade)


def _acquire_lock(lock_path: Path) -> int:
    """Acquire a simple file-based lock for migration execution."""

    lock_path.parent.mkdir(parents=True, exist_ok=True)
    deadline = time.monotonic() + _LOCK_TIMEOUT_SECONDS
    while True:
        try:
            return os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_RDWR)
        except FileExistsError:
            if time.monotonic() > deadline:
                logger.error("Timed out waiting for migration lock %s", lock_path)
                raise TimeoutError("Timed out waiting for migration lock")
            time.sleep(_LOCK_RETRY_INTERVAL)


def _release_lock(fd: int, lock_path: Path) -> None:
    """Release the lock acquired with :func:`_acquire_lock`."""

    os.close(fd)
    try:
        lock_path.unlink()
    except FileNotFoundError:
        pass
