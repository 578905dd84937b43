"""Bot-verification challenge lifecycle."""

from .manager import (
    DEFAULT_CONTAINER_ID,
    RECREATE_DELAY_SECONDS,
    ChallengeInitError,
    ChallengeManager,
    ChallengeManagerError,
    ChallengeStateError,
    ChallengeStatus,
)

__all__ = [
    "DEFAULT_CONTAINER_ID",
    "RECREATE_DELAY_SECONDS",
    "ChallengeInitError",
    "ChallengeManager",
    "ChallengeManagerError",
    "ChallengeStateError",
    "ChallengeStatus",
]
