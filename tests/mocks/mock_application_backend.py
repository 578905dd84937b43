"""Scripted application backend for controller and API tests."""

from __future__ import annotations

import asyncio
from typing import Any, Final, Literal

from phone_signin.backend import VerifyOtpData

_UNSET_RESPONSE: Final[object] = object()
ResponseKey = Literal["check_phone", "verify_otp"]

DEFAULT_PROFILE: Final[dict[str, Any]] = {
    "id": "farmer-1",
    "name": "Asha",
    "phone": "9876543210",
}
DEFAULT_SESSION_TOKEN: Final[str] = "T"


class MockApplicationBackend:
    """Backend double returning a known farmer unless scripted otherwise."""

    def __init__(self) -> None:
        """Initialize with successful check-phone and verify-otp answers."""
        self.responses: dict[ResponseKey, object] = {
            "check_phone": _UNSET_RESPONSE,
            "verify_otp": _UNSET_RESPONSE,
        }
        self.gates: dict[ResponseKey, asyncio.Event] = {}
        self.call_counts: dict[str, int] = {}
        self.checked: list[str] = []
        self.verified: list[tuple[str, str]] = []

    async def check_phone(self, phone: str) -> dict[str, Any] | None:
        """Record the phone and return the scripted profile."""
        self._mark_call("check_phone")
        self.checked.append(phone)
        await self._wait_gate("check_phone")
        res = self._scripted_response("check_phone")
        if res is _UNSET_RESPONSE:
            return dict(DEFAULT_PROFILE)
        if res is None or isinstance(res, dict):
            return res
        raise TypeError

    async def verify_otp(self, phone: str, id_token: str) -> VerifyOtpData:
        """Record the exchange and return the scripted session."""
        self._mark_call("verify_otp")
        self.verified.append((phone, id_token))
        await self._wait_gate("verify_otp")
        res = self._scripted_response("verify_otp")
        if isinstance(res, VerifyOtpData):
            return res
        return VerifyOtpData(token=DEFAULT_SESSION_TOKEN, farmer=dict(DEFAULT_PROFILE))

    def reset_response(self, key: ResponseKey) -> None:
        """Restore the default successful answer for `key`."""
        self.responses[key] = _UNSET_RESPONSE

    def _mark_call(self, name: str) -> None:
        self.call_counts[name] = self.call_counts.get(name, 0) + 1

    async def _wait_gate(self, key: ResponseKey) -> None:
        gate = self.gates.get(key)
        if gate is not None:
            _ = await gate.wait()

    def _scripted_response(self, key: ResponseKey) -> object:
        res = self.responses[key]
        if isinstance(res, BaseException):
            raise res
        return res
