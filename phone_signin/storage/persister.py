"""Durable write of the session produced by a successful sign-in."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from .session_store import SessionStoreError

if TYPE_CHECKING:
    from .session_store import ClientSessionStore
    from .token_cipher import TokenCipher

SESSION_TOKEN_KEY = "farmerToken"  # noqa: S105
PROFILE_KEY = "currentFarmer"

logger = logging.getLogger(__name__)


class SessionPersistError(RuntimeError):
    """Raised when a session record cannot be written to the store."""

    @classmethod
    def unserializable_profile(cls, *, details: str) -> SessionPersistError:
        """Build deterministic error for profiles that are not JSON."""
        return cls(f"Session profile is not JSON-serializable: {details}")

    @classmethod
    def for_write_failure(cls, *, details: str) -> SessionPersistError:
        """Build deterministic error for a failed session store write."""
        return cls(f"Failed to write session record: {details}")


@dataclass(frozen=True, slots=True)
class SessionRecord:
    """Backend session token plus the signed-in user's profile."""

    session_token: str
    profile: dict[str, Any]


class SessionPersister:
    """Write a `SessionRecord` under the well-known client storage keys."""

    _store: ClientSessionStore
    _cipher: TokenCipher | None

    def __init__(
        self,
        *,
        store: ClientSessionStore,
        cipher: TokenCipher | None = None,
    ) -> None:
        """Create persister; tokens are sealed when `cipher` is provided."""
        self._store = store
        self._cipher = cipher

    async def persist(self, record: SessionRecord) -> None:
        """Replace any stored session with `record` in one transaction."""
        try:
            profile_json = json.dumps(
                record.profile,
                separators=(",", ":"),
                allow_nan=False,
            )
        except (TypeError, ValueError) as exc:
            raise SessionPersistError.unserializable_profile(details=str(exc)) from exc

        token_value = (
            record.session_token
            if self._cipher is None
            else self._cipher.encrypt(record.session_token)
        )
        try:
            await self._store.put_many(
                {SESSION_TOKEN_KEY: token_value, PROFILE_KEY: profile_json},
            )
        except (SessionStoreError, SQLAlchemyError) as exc:
            raise SessionPersistError.for_write_failure(details=str(exc)) from exc
        logger.info(
            "Persisted session record",
            extra={"token_encrypted": self._cipher is not None},
        )
