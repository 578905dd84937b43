"""Tests for the client session key-value store."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from phone_signin.storage import SessionStoreError

if TYPE_CHECKING:
    from phone_signin.storage import ClientSessionStore


@pytest.mark.asyncio
async def test_get_missing_key_returns_none(session_store: ClientSessionStore) -> None:
    """Ensure unknown keys read as absent."""
    if await session_store.get(key="farmerToken") is not None:
        raise AssertionError


@pytest.mark.asyncio
async def test_put_many_writes_and_replaces_values(
    session_store: ClientSessionStore,
) -> None:
    """Ensure later writes overwrite earlier values for the same key."""
    await session_store.put_many({"farmerToken": "T1", "currentFarmer": "{}"})
    await session_store.put_many({"farmerToken": "T2"})

    if await session_store.get(key="farmerToken") != "T2":
        raise AssertionError
    if await session_store.get(key="currentFarmer") != "{}":
        raise AssertionError


@pytest.mark.asyncio
async def test_put_many_rejects_blank_keys_before_writing(
    session_store: ClientSessionStore,
) -> None:
    """Ensure one invalid key prevents the whole batch."""
    with pytest.raises(SessionStoreError, match="non-empty"):
        await session_store.put_many({"farmerToken": "T", " ": "x"})

    if await session_store.get(key="farmerToken") is not None:
        raise AssertionError


@pytest.mark.asyncio
async def test_create_if_absent_inserts_only_once(
    session_store: ClientSessionStore,
) -> None:
    """Ensure the first writer wins for create-if-absent keys."""
    if await session_store.create_if_absent(key="salt", value="first") is not True:
        raise AssertionError
    if await session_store.create_if_absent(key="salt", value="second") is not False:
        raise AssertionError
    if await session_store.get(key="salt") != "first":
        raise AssertionError


@pytest.mark.asyncio
async def test_delete_reports_whether_key_existed(
    session_store: ClientSessionStore,
) -> None:
    """Ensure delete returns True only when something was removed."""
    await session_store.put_many({"farmerToken": "T"})

    if await session_store.delete(key="farmerToken") is not True:
        raise AssertionError
    if await session_store.delete(key="farmerToken") is not False:
        raise AssertionError
    if await session_store.get(key="farmerToken") is not None:
        raise AssertionError
