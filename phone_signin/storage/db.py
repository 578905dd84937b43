"""Async SQLAlchemy engine and session wiring for the local SQLite store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, cast

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from pathlib import Path
    from typing import Protocol

    class _DBAPICursor(Protocol):
        def execute(self, statement: str) -> object: ...

        def close(self) -> None: ...

    class _DBAPIConnection(Protocol):
        def cursor(self) -> _DBAPICursor: ...


SQLITE_PRAGMA_STATEMENTS: tuple[str, ...] = (
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA busy_timeout=5000;",
)

SessionFactory = async_sessionmaker[AsyncSession]


@dataclass(slots=True)
class StorageRuntime:
    """Engine plus read/write session factories for the session store."""

    engine: AsyncEngine
    read_session_factory: SessionFactory
    write_session_factory: SessionFactory


def build_sqlite_url(db_path: Path) -> str:
    """Build SQLAlchemy async SQLite URL for a database file."""
    return f"sqlite+aiosqlite:///{db_path.expanduser().as_posix()}"


def create_storage_runtime(db_path: Path) -> StorageRuntime:
    """Create the engine and session factories for `db_path`."""
    engine = create_async_engine(build_sqlite_url(db_path), pool_pre_ping=True)
    _install_sqlite_pragma_handler(engine)
    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return StorageRuntime(
        engine=engine,
        read_session_factory=session_factory,
        write_session_factory=session_factory,
    )


async def dispose_storage_runtime(runtime: StorageRuntime) -> None:
    """Dispose the engine on app shutdown and fixture teardown."""
    await runtime.engine.dispose()


def _install_sqlite_pragma_handler(engine: AsyncEngine) -> None:
    """Apply SQLite PRAGMAs on every new DBAPI connection."""

    def _on_connect(dbapi_connection: object, connection_record: object) -> None:
        _ = connection_record
        cursor = cast("_DBAPIConnection", dbapi_connection).cursor()
        try:
            for statement in SQLITE_PRAGMA_STATEMENTS:
                _ = cursor.execute(statement)
        finally:
            cursor.close()

    event.listen(engine.sync_engine, "connect", _on_connect)
