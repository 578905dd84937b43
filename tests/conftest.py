"""Shared pytest fixtures for sign-in flow, storage and API tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from phone_signin.challenge import ChallengeManager
from phone_signin.signin import CooldownTimer, OtpSignInController
from phone_signin.storage import (
    ClientSessionStore,
    create_storage_runtime,
    dispose_storage_runtime,
)
from tests.mocks.manual_sleeper import ManualSleeper
from tests.mocks.mock_application_backend import MockApplicationBackend
from tests.mocks.mock_phone_auth_provider import MockPhoneAuthProvider
from tests.mocks.recording_persister import RecordingPersister

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path


@pytest.fixture
def mock_provider() -> MockPhoneAuthProvider:
    """Provide a scripted phone-auth provider."""
    return MockPhoneAuthProvider()


@pytest.fixture
def mock_backend() -> MockApplicationBackend:
    """Provide a scripted application backend."""
    return MockApplicationBackend()


@pytest.fixture
def recording_persister() -> RecordingPersister:
    """Provide a persister that keeps records in memory."""
    return RecordingPersister()


@pytest.fixture
def cooldown_sleeper() -> ManualSleeper:
    """Provide the manual clock driving the resend cooldown."""
    return ManualSleeper()


@pytest.fixture
def challenge_sleeper() -> ManualSleeper:
    """Provide the manual clock driving challenge re-creation delays."""
    return ManualSleeper()


@pytest.fixture
async def challenges(
    mock_provider: MockPhoneAuthProvider,
    challenge_sleeper: ManualSleeper,
) -> AsyncIterator[ChallengeManager]:
    """Provide a challenge manager over the mock provider."""
    manager = ChallengeManager(provider=mock_provider, sleep=challenge_sleeper)
    try:
        yield manager
    finally:
        await manager.close()


@pytest.fixture
async def controller(
    mock_provider: MockPhoneAuthProvider,
    mock_backend: MockApplicationBackend,
    recording_persister: RecordingPersister,
    challenges: ChallengeManager,
    cooldown_sleeper: ManualSleeper,
) -> AsyncIterator[OtpSignInController]:
    """Provide a sign-in controller wired to mocks and manual clocks."""
    signin = OtpSignInController(
        provider=mock_provider,
        backend=mock_backend,
        challenges=challenges,
        persister=recording_persister,
        cooldown=CooldownTimer(sleep=cooldown_sleeper),
    )
    try:
        yield signin
    finally:
        await signin.close()


@pytest.fixture
async def session_store(tmp_path: Path) -> AsyncIterator[ClientSessionStore]:
    """Create a session store against an isolated SQLite schema."""
    runtime = create_storage_runtime(tmp_path / "session-store.sqlite3")
    async with runtime.engine.begin() as connection:
        _ = await connection.exec_driver_sql(
            """
            CREATE TABLE IF NOT EXISTS client_session_store (
                key VARCHAR(128) PRIMARY KEY,
                value_text TEXT NOT NULL,
                updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """,
        )
    try:
        yield ClientSessionStore(
            read_session_factory=runtime.read_session_factory,
            write_session_factory=runtime.write_session_factory,
        )
    finally:
        await dispose_storage_runtime(runtime)
