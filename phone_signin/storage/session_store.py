"""Key-value repository backing the client session store."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import text

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .db import SessionFactory


class SessionStoreError(RuntimeError):
    """Base exception for client session store operations."""

    @classmethod
    def empty_key(cls) -> SessionStoreError:
        """Build deterministic error for blank keys."""
        return cls("Session store keys must be non-empty strings.")

    @classmethod
    def non_text_value(cls, key: str) -> SessionStoreError:
        """Build deterministic decode error for non-text stored values."""
        return cls(f"Stored value for key '{key}' is not text.")


class ClientSessionStore:
    """Opaque string values keyed by well-known names."""

    _read_session_factory: SessionFactory
    _write_session_factory: SessionFactory

    def __init__(
        self,
        *,
        read_session_factory: SessionFactory,
        write_session_factory: SessionFactory,
    ) -> None:
        """Create store with explicit read/write session dependencies."""
        self._read_session_factory = read_session_factory
        self._write_session_factory = write_session_factory

    async def get(self, *, key: str) -> str | None:
        """Return the value stored under `key`, or None."""
        statement = text(
            """
            SELECT value_text
            FROM client_session_store
            WHERE key = :key
            """,
        )
        async with self._read_session_factory() as session:
            result = await session.execute(statement, {"key": key})
            row = result.mappings().one_or_none()
        if row is None:
            return None
        value = cast("Mapping[str, object]", row).get("value_text")
        if not isinstance(value, str):
            raise SessionStoreError.non_text_value(key)
        return value

    async def put_many(self, entries: Mapping[str, str]) -> None:
        """Write every entry in one transaction, replacing existing values."""
        for key in entries:
            _validate_key(key)
        statement = text(
            """
            INSERT INTO client_session_store (key, value_text)
            VALUES (:key, :value_text)
            ON CONFLICT (key) DO UPDATE
            SET value_text = excluded.value_text,
                updated_at = CURRENT_TIMESTAMP
            """,
        )
        params = [{"key": key, "value_text": value} for key, value in entries.items()]
        if not params:
            return
        async with self._write_session_factory() as session:
            _ = await session.execute(statement, params)
            await session.commit()

    async def create_if_absent(self, *, key: str, value: str) -> bool:
        """Insert `value` only when `key` is unset; return True if inserted."""
        _validate_key(key)
        statement = text(
            """
            INSERT INTO client_session_store (key, value_text)
            VALUES (:key, :value_text)
            ON CONFLICT (key) DO NOTHING
            RETURNING key
            """,
        )
        async with self._write_session_factory() as session:
            result = await session.execute(
                statement,
                {"key": key, "value_text": value},
            )
            row = result.mappings().one_or_none()
            await session.commit()
        return row is not None

    async def delete(self, *, key: str) -> bool:
        """Delete `key` and return True if a value was removed."""
        statement = text(
            """
            DELETE FROM client_session_store
            WHERE key = :key
            RETURNING key
            """,
        )
        async with self._write_session_factory() as session:
            result = await session.execute(statement, {"key": key})
            row = result.mappings().one_or_none()
            await session.commit()
        return row is not None


def _validate_key(key: str) -> None:
    if not key.strip():
        raise SessionStoreError.empty_key()
