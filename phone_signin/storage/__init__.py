"""Local persistence for the signed-in session."""

from .db import (
    StorageRuntime,
    build_sqlite_url,
    create_storage_runtime,
    dispose_storage_runtime,
)
from .persister import (
    PROFILE_KEY,
    SESSION_TOKEN_KEY,
    SessionPersister,
    SessionPersistError,
    SessionRecord,
)
from .session_store import ClientSessionStore, SessionStoreError
from .token_cipher import (
    KEK_SALT_KEY,
    TokenCipher,
    TokenCipherError,
    resolve_token_cipher,
)

__all__ = [
    "KEK_SALT_KEY",
    "PROFILE_KEY",
    "SESSION_TOKEN_KEY",
    "ClientSessionStore",
    "SessionPersistError",
    "SessionPersister",
    "SessionRecord",
    "SessionStoreError",
    "StorageRuntime",
    "TokenCipher",
    "TokenCipherError",
    "build_sqlite_url",
    "create_storage_runtime",
    "dispose_storage_runtime",
    "resolve_token_cipher",
]
