"""At-rest encryption for the persisted session token.

A passphrase read from the configured secret file is stretched with Argon2id
into an AES-256 key; each token is sealed with AES-GCM under a fresh nonce.
The Argon2id salt lives in the session store next to the data it protects.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import secrets
from typing import TYPE_CHECKING, cast

from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

if TYPE_CHECKING:
    from pathlib import Path

    from .session_store import ClientSessionStore

TOKEN_CIPHER_VERSION = 1
KEK_SALT_KEY = "signin.kek_salt"

ARGON2ID_MEMORY_COST_KIB = 64 * 1024
ARGON2ID_TIME_COST = 3
ARGON2ID_PARALLELISM = 1
ARGON2ID_SALT_BYTES = 16
TOKEN_KEY_BYTES = 32
AES_GCM_NONCE_BYTES = 12

_DECRYPTION_ERROR_MESSAGE = "unable to decrypt stored session token"


class TokenCipherError(ValueError):
    """Raised when token key material or ciphertext is unusable."""

    @classmethod
    def undecryptable(cls) -> TokenCipherError:
        """Build deterministic error without leaking ciphertext details."""
        return cls(_DECRYPTION_ERROR_MESSAGE)

    @classmethod
    def empty_secret(cls, path: Path) -> TokenCipherError:
        """Build error for a secret file with no passphrase."""
        return cls(f"Secret file {path.as_posix()} is empty.")

    @classmethod
    def unreadable_secret(cls, path: Path, *, details: str) -> TokenCipherError:
        """Build error for a secret file that cannot be read."""
        return cls(f"Secret file {path.as_posix()} could not be read: {details}")

    @classmethod
    def invalid_salt(cls) -> TokenCipherError:
        """Build error for a corrupted stored salt."""
        return cls(f"Stored value for '{KEK_SALT_KEY}' is not a valid salt.")


class TokenCipher:
    """AES-GCM sealing of session tokens under a derived key."""

    __slots__ = ("_aead",)

    def __init__(self, key: bytes) -> None:
        """Create cipher from a raw 256-bit key."""
        if len(key) != TOKEN_KEY_BYTES:
            message = f"token key must be exactly {TOKEN_KEY_BYTES} bytes."
            raise ValueError(message)
        self._aead = AESGCM(key)

    @classmethod
    def derive(cls, *, passphrase: str, salt: bytes) -> TokenCipher:
        """Derive the token key from a passphrase with Argon2id."""
        if len(salt) != ARGON2ID_SALT_BYTES:
            message = f"salt must be exactly {ARGON2ID_SALT_BYTES} bytes."
            raise ValueError(message)
        key = hash_secret_raw(
            secret=passphrase.encode("utf-8"),
            salt=salt,
            time_cost=ARGON2ID_TIME_COST,
            memory_cost=ARGON2ID_MEMORY_COST_KIB,
            parallelism=ARGON2ID_PARALLELISM,
            hash_len=TOKEN_KEY_BYTES,
            type=Type.ID,
        )
        return cls(key)

    def encrypt(self, plaintext: str) -> str:
        """Seal `plaintext` into a versioned JSON envelope string."""
        nonce = secrets.token_bytes(AES_GCM_NONCE_BYTES)
        ciphertext = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        return json.dumps(
            {
                "version": TOKEN_CIPHER_VERSION,
                "nonce": _b64(nonce),
                "ciphertext": _b64(ciphertext),
            },
            separators=(",", ":"),
            sort_keys=True,
        )

    def decrypt(self, payload: str) -> str:
        """Open an envelope produced by `encrypt`."""
        envelope = _load_envelope(payload)
        version = envelope.get("version")
        if type(version) is not int or version != TOKEN_CIPHER_VERSION:
            raise TokenCipherError.undecryptable()
        nonce = _unb64(envelope.get("nonce"))
        ciphertext = _unb64(envelope.get("ciphertext"))
        if len(nonce) != AES_GCM_NONCE_BYTES:
            raise TokenCipherError.undecryptable()
        try:
            plaintext = self._aead.decrypt(nonce, ciphertext, None)
        except InvalidTag as exc:
            raise TokenCipherError.undecryptable() from exc
        return plaintext.decode("utf-8")


async def resolve_token_cipher(
    *,
    store: ClientSessionStore,
    secret_file: Path | None,
) -> TokenCipher | None:
    """Build the cipher for the configured secret file, or None when unset."""
    if secret_file is None:
        return None
    passphrase = await asyncio.to_thread(_read_passphrase, secret_file)
    salt = await _get_or_create_salt(store=store)
    return await asyncio.to_thread(TokenCipher.derive, passphrase=passphrase, salt=salt)


def _read_passphrase(path: Path) -> str:
    try:
        passphrase = path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise TokenCipherError.unreadable_secret(path, details=str(exc)) from exc
    if not passphrase:
        raise TokenCipherError.empty_secret(path)
    return passphrase


async def _get_or_create_salt(*, store: ClientSessionStore) -> bytes:
    candidate = secrets.token_bytes(ARGON2ID_SALT_BYTES)
    if await store.create_if_absent(key=KEK_SALT_KEY, value=_b64(candidate)):
        return candidate
    stored = await store.get(key=KEK_SALT_KEY)
    try:
        salt = _unb64(stored)
    except TokenCipherError as exc:
        raise TokenCipherError.invalid_salt() from exc
    if len(salt) != ARGON2ID_SALT_BYTES:
        raise TokenCipherError.invalid_salt()
    return salt


def _b64(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def _unb64(encoded: object) -> bytes:
    if not isinstance(encoded, str):
        raise TokenCipherError.undecryptable()
    try:
        return base64.b64decode(encoded.encode("ascii"), validate=True)
    except (UnicodeEncodeError, binascii.Error) as exc:
        raise TokenCipherError.undecryptable() from exc


def _load_envelope(payload: str) -> dict[str, object]:
    try:
        decoded = cast("object", json.loads(payload))
    except json.JSONDecodeError as exc:
        raise TokenCipherError.undecryptable() from exc
    if not isinstance(decoded, dict):
        raise TokenCipherError.undecryptable()
    return cast("dict[str, object]", decoded)
