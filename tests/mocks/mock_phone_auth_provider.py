"""Scripted phone-auth provider for tests without network access."""

from __future__ import annotations

import asyncio
from typing import Final, Literal

from phone_signin.provider import Challenge, Credential, PendingConfirmation

_UNSET_RESPONSE: Final[object] = object()
ResponseKey = Literal[
    "create_challenge",
    "destroy_challenge",
    "send_otp",
    "confirm",
    "get_id_token",
]


class MockPhoneAuthProvider:
    """In-memory provider whose responses and failures are scripted per call."""

    def __init__(self) -> None:
        """Initialize with default successful behavior for every call."""
        self.responses: dict[ResponseKey, object] = {
            "create_challenge": _UNSET_RESPONSE,
            "destroy_challenge": _UNSET_RESPONSE,
            "send_otp": _UNSET_RESPONSE,
            "confirm": _UNSET_RESPONSE,
            "get_id_token": _UNSET_RESPONSE,
        }
        # Calls wait on these events when present; used to hold a call in flight.
        self.gates: dict[ResponseKey, asyncio.Event] = {}
        self.call_counts: dict[str, int] = {}
        self.sent_to: list[str] = []
        self.sent_with: list[Challenge] = []
        self.confirmed: list[tuple[PendingConfirmation, str]] = []
        self.destroyed: list[str] = []

    async def create_challenge(self, container_id: str) -> Challenge:
        """Return a fresh challenge numbered by call order."""
        count = self._mark_call("create_challenge")
        await self._wait_gate("create_challenge")
        res = self._scripted_response("create_challenge")
        if res is not _UNSET_RESPONSE:
            return _as_challenge(res)
        return Challenge(
            challenge_id=f"challenge-{count}",
            container_id=container_id,
            site_key="site-key",
        )

    async def destroy_challenge(self, challenge: Challenge) -> None:
        """Deactivate the challenge and record its id."""
        _ = self._mark_call("destroy_challenge")
        challenge.active = False
        self.destroyed.append(challenge.challenge_id)
        _ = self._scripted_response("destroy_challenge")

    async def send_otp(
        self,
        phone_number: str,
        challenge: Challenge,
    ) -> PendingConfirmation:
        """Record the dispatch and return a numbered confirmation."""
        count = self._mark_call("send_otp")
        self.sent_to.append(phone_number)
        self.sent_with.append(challenge)
        await self._wait_gate("send_otp")
        res = self._scripted_response("send_otp")
        if isinstance(res, PendingConfirmation):
            return res
        return PendingConfirmation(
            verification_id=f"verification-{count}",
            phone_number=phone_number,
        )

    async def confirm(
        self,
        confirmation: PendingConfirmation,
        code: str,
    ) -> Credential:
        """Record the confirmation attempt and return a credential."""
        _ = self._mark_call("confirm")
        self.confirmed.append((confirmation, code))
        await self._wait_gate("confirm")
        res = self._scripted_response("confirm")
        if isinstance(res, Credential):
            return res
        return Credential(
            uid="uid-1",
            phone_number=confirmation.phone_number,
            id_token="id-token-1",
        )

    async def get_id_token(self, credential: Credential) -> str:
        """Return the credential token unless scripted otherwise."""
        _ = self._mark_call("get_id_token")
        res = self._scripted_response("get_id_token")
        if isinstance(res, str):
            return res
        return credential.id_token

    def reset_response(self, key: ResponseKey) -> None:
        """Restore the default successful answer for `key`."""
        self.responses[key] = _UNSET_RESPONSE

    def _mark_call(self, name: str) -> int:
        self.call_counts[name] = self.call_counts.get(name, 0) + 1
        return self.call_counts[name]

    async def _wait_gate(self, key: ResponseKey) -> None:
        gate = self.gates.get(key)
        if gate is not None:
            _ = await gate.wait()

    def _scripted_response(self, key: ResponseKey) -> object:
        res = self.responses[key]
        if isinstance(res, BaseException):
            raise res
        return res


def _as_challenge(value: object) -> Challenge:
    if not isinstance(value, Challenge):
        raise TypeError
    return value
