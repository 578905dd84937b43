"""Phone-auth provider contract consumed by the sign-in flow."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(slots=True)
class Challenge:
    """Bot-verification challenge bound to one UI container."""

    challenge_id: str
    container_id: str
    site_key: str | None = None
    verification_token: str | None = None
    active: bool = True


@dataclass(frozen=True, slots=True)
class PendingConfirmation:
    """Handle for one OTP dispatch; binds later confirm calls to that send."""

    verification_id: str
    phone_number: str


@dataclass(frozen=True, slots=True)
class Credential:
    """Identity credential yielded by a confirmed OTP."""

    uid: str
    phone_number: str
    id_token: str
    refresh_token: str | None = None


@runtime_checkable
class PhoneAuthProvider(Protocol):
    """Minimum provider surface for SMS-OTP sign-in."""

    async def create_challenge(self, container_id: str) -> Challenge:
        """Create a bot-verification challenge for `container_id`."""
        ...

    async def destroy_challenge(self, challenge: Challenge) -> None:
        """Release provider resources held by `challenge`."""
        ...

    async def send_otp(
        self,
        phone_number: str,
        challenge: Challenge,
    ) -> PendingConfirmation:
        """Dispatch an OTP to an international-form phone number."""
        ...

    async def confirm(
        self,
        confirmation: PendingConfirmation,
        code: str,
    ) -> Credential:
        """Confirm `code` against a pending dispatch."""
        ...

    async def get_id_token(self, credential: Credential) -> str:
        """Return a bearer identity token for `credential`."""
        ...
