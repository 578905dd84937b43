"""Lifecycle owner for the bot-verification challenge of one UI container."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from phone_signin.errors import ProviderError

if TYPE_CHECKING:
    from phone_signin.provider import Challenge, PhoneAuthProvider

Sleep = Callable[[float], Awaitable[None]]

DEFAULT_CONTAINER_ID = "recaptcha-container"
RECREATE_DELAY_SECONDS = 1.0

logger = logging.getLogger(__name__)


class ChallengeStatus(StrEnum):
    """Observable readiness of the managed challenge."""

    ABSENT = "absent"
    CREATING = "creating"
    READY = "ready"
    FAILED = "failed"


class ChallengeManagerError(RuntimeError):
    """Base exception for challenge lifecycle operations."""


class ChallengeInitError(ChallengeManagerError):
    """Raised when the provider cannot create a challenge."""

    cause: str

    def __init__(self, message: str, *, cause: str) -> None:
        """Keep the human-readable cause next to the formatted message."""
        super().__init__(message)
        self.cause = cause

    @classmethod
    def for_container(cls, container_id: str, *, cause: str) -> ChallengeInitError:
        """Build deterministic init failure error with container context."""
        message = (
            f"Failed to initialize bot verification for container "
            f"'{container_id}': {cause}"
        )
        return cls(message, cause=cause)


class ChallengeStateError(ChallengeManagerError):
    """Raised when a lifecycle call would break the one-challenge invariant."""

    @classmethod
    def already_active(cls, challenge_id: str) -> ChallengeStateError:
        """Build error for creating a challenge while another is active."""
        return cls(
            f"Challenge '{challenge_id}' is still active; invalidate it before "
            "creating another.",
        )

    @classmethod
    def container_mismatch(cls, *, bound: str, requested: str) -> ChallengeStateError:
        """Build error for rebinding an active challenge to another container."""
        return cls(
            f"Active challenge is bound to container '{bound}', not '{requested}'.",
        )

    @classmethod
    def no_active_challenge(cls) -> ChallengeStateError:
        """Build error for operations that need an active challenge."""
        return cls("No active challenge; call ensure_ready() first.")


@dataclass(slots=True)
class ChallengeManager:
    """Create, reuse and invalidate the single challenge for a container."""

    provider: PhoneAuthProvider
    container_id: str = DEFAULT_CONTAINER_ID
    sleep: Sleep = asyncio.sleep
    _challenge: Challenge | None = None
    _status: ChallengeStatus = ChallengeStatus.ABSENT
    _failure: ChallengeInitError | None = None
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    _recreate_task: asyncio.Task[None] | None = None

    @property
    def status(self) -> ChallengeStatus:
        """Return the current readiness status."""
        return self._status

    @property
    def is_ready(self) -> bool:
        """Return True when an active challenge can guard an OTP send."""
        return self._challenge is not None and self._challenge.active

    @property
    def current(self) -> Challenge | None:
        """Return the active challenge handle, if any."""
        return self._challenge

    @property
    def failure(self) -> ChallengeInitError | None:
        """Return the last creation failure, cleared on invalidate/success."""
        return self._failure

    @property
    def recreate_task(self) -> asyncio.Task[None] | None:
        """Return the pending scheduled re-creation, if one is queued."""
        return self._recreate_task

    async def ensure_ready(self, container_id: str | None = None) -> Challenge:
        """Return the active challenge, creating one if none exists."""
        requested = container_id or self.container_id
        if requested != self.container_id:
            if self._challenge is not None:
                raise ChallengeStateError.container_mismatch(
                    bound=self.container_id,
                    requested=requested,
                )
            self.container_id = requested

        async with self._lock:
            if self._challenge is not None:
                return self._challenge
            self._status = ChallengeStatus.CREATING
            try:
                challenge = await self.provider.create_challenge(requested)
            except ProviderError as exc:
                self._status = ChallengeStatus.FAILED
                self._failure = ChallengeInitError.for_container(
                    requested,
                    cause=exc.message,
                )
                logger.warning(
                    "Bot verification init failed for container %s (%s)",
                    requested,
                    exc.code,
                )
                raise self._failure from exc
            self._install(challenge)
        return challenge

    async def invalidate(self) -> None:
        """Destroy the active challenge; no-op when none exists."""
        self._cancel_recreate()
        async with self._lock:
            challenge = self._challenge
            self._challenge = None
            self._status = ChallengeStatus.ABSENT
            self._failure = None
            if challenge is None:
                return
            try:
                await self.provider.destroy_challenge(challenge)
            except ProviderError:
                # The handle is already dropped locally; a failed release
                # cannot be retried against a challenge we no longer track.
                logger.warning(
                    "Failed to release challenge %s",
                    challenge.challenge_id,
                    exc_info=True,
                )
        logger.debug("Invalidated challenge %s", challenge.challenge_id)

    async def schedule_recreate(
        self,
        *,
        delay_seconds: float = RECREATE_DELAY_SECONDS,
    ) -> None:
        """Invalidate now and create a replacement challenge after a delay."""
        await self.invalidate()
        self._recreate_task = asyncio.create_task(self._recreate_after(delay_seconds))

    def record_verification(self, token: str) -> None:
        """Attach the UI-solved bot-check token to the active challenge."""
        if self._challenge is None:
            raise ChallengeStateError.no_active_challenge()
        self._challenge.verification_token = token

    async def close(self) -> None:
        """Tear down: cancel pending re-creation and release the challenge."""
        task = self._recreate_task
        await self.invalidate()
        if task is not None and task is not asyncio.current_task():
            _ = await asyncio.gather(task, return_exceptions=True)

    def _install(self, challenge: Challenge) -> None:
        if self._challenge is not None:
            raise ChallengeStateError.already_active(self._challenge.challenge_id)
        self._challenge = challenge
        self._status = ChallengeStatus.READY
        self._failure = None

    def _cancel_recreate(self) -> None:
        task = self._recreate_task
        self._recreate_task = None
        if task is None or task.done() or task is asyncio.current_task():
            return
        _ = task.cancel()

    async def _recreate_after(self, delay_seconds: float) -> None:
        await self.sleep(delay_seconds)
        try:
            _ = await self.ensure_ready()
        except ChallengeInitError:
            logger.warning("Scheduled challenge re-creation failed")
        finally:
            if self._recreate_task is asyncio.current_task():
                self._recreate_task = None
