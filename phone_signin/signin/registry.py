"""In-memory registry of live sign-in attempts keyed by opaque ids."""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from phone_signin.config.settings import DEFAULT_ATTEMPT_TTL_SECONDS

if TYPE_CHECKING:
    from .controller import OtpSignInController

ControllerFactory = Callable[[], "OtpSignInController"]
Clock = Callable[[], float]

logger = logging.getLogger(__name__)


class SignInAttemptNotFoundError(RuntimeError):
    """Raised when an attempt id is unknown."""

    @classmethod
    def for_attempt_id(cls, attempt_id: str) -> SignInAttemptNotFoundError:
        """Build deterministic missing-attempt error."""
        return cls(f"Sign-in attempt not found for attempt_id='{attempt_id}'.")


class SignInAttemptExpiredError(RuntimeError):
    """Raised when an attempt outlived its time-to-live."""

    @classmethod
    def for_attempt_id(cls, attempt_id: str) -> SignInAttemptExpiredError:
        """Build deterministic expired-attempt error."""
        return cls(f"Sign-in attempt expired for attempt_id='{attempt_id}'.")


@dataclass(frozen=True, slots=True)
class SignInAttempt:
    """Live controller plus its expiry deadline."""

    attempt_id: str
    controller: OtpSignInController
    expires_at: float


class SignInAttemptRegistry:
    """Create, look up and tear down per-attempt controllers."""

    _controller_factory: ControllerFactory
    _ttl_seconds: int
    _clock: Clock
    _attempts: dict[str, SignInAttempt]

    def __init__(
        self,
        *,
        controller_factory: ControllerFactory,
        ttl_seconds: int = DEFAULT_ATTEMPT_TTL_SECONDS,
        clock: Clock = time.monotonic,
    ) -> None:
        """Create registry; each attempt gets a controller from the factory."""
        self._controller_factory = controller_factory
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._attempts = {}

    def __len__(self) -> int:
        """Return the number of tracked attempts."""
        return len(self._attempts)

    async def create(self) -> SignInAttempt:
        """Start a new attempt and prepare its challenge."""
        await self._prune_expired()
        attempt = SignInAttempt(
            attempt_id=secrets.token_urlsafe(32),
            controller=self._controller_factory(),
            expires_at=self._clock() + self._ttl_seconds,
        )
        self._attempts[attempt.attempt_id] = attempt
        _ = await attempt.controller.start()
        logger.info("Created sign-in attempt", extra={"attempt": attempt.attempt_id})
        return attempt

    async def get(self, attempt_id: str) -> SignInAttempt:
        """Return a live attempt; expired attempts are closed and dropped."""
        attempt = self._attempts.get(attempt_id)
        if attempt is None:
            raise SignInAttemptNotFoundError.for_attempt_id(attempt_id)
        if attempt.expires_at <= self._clock():
            _ = self._attempts.pop(attempt_id, None)
            await attempt.controller.close()
            raise SignInAttemptExpiredError.for_attempt_id(attempt_id)
        return attempt

    async def discard(self, attempt_id: str) -> bool:
        """Close and forget an attempt; return True if it existed."""
        attempt = self._attempts.pop(attempt_id, None)
        if attempt is None:
            return False
        await attempt.controller.close()
        return True

    async def close(self) -> None:
        """Close every tracked attempt."""
        attempts = list(self._attempts.values())
        self._attempts.clear()
        for attempt in attempts:
            await attempt.controller.close()

    async def _prune_expired(self) -> None:
        now = self._clock()
        expired = [
            attempt_id
            for attempt_id, attempt in self._attempts.items()
            if attempt.expires_at <= now
        ]
        for attempt_id in expired:
            _ = await self.discard(attempt_id)
        if expired:
            logger.debug("Pruned %d expired sign-in attempts", len(expired))
