"""HTTP client for the application backend login endpoints."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from phone_signin.config.logging import mask_phone
from phone_signin.errors import BackendConnectionError, BackendError

from .models import (
    CheckPhoneRequest,
    CheckPhoneResponse,
    Profile,
    VerifyOtpData,
    VerifyOtpRequest,
    VerifyOtpResponse,
)

if TYPE_CHECKING:
    from phone_signin.config.settings import AppSettings

CHECK_PHONE_PATH = "/api/farmer/login/check-phone"
VERIFY_OTP_PATH = "/api/farmer/login/verify-otp"

_CHECK_PHONE_REJECTED_FALLBACK = "This phone number is not registered."
_VERIFY_OTP_REJECTED_FALLBACK = "Login failed. Please try again."

ResponseModelT = TypeVar("ResponseModelT", bound=BaseModel)

logger = logging.getLogger(__name__)


class ApplicationBackend(Protocol):
    """Backend surface used by the sign-in flow."""

    async def check_phone(self, phone: str) -> Profile | None:
        """Confirm the phone may sign in; return the cached profile if sent."""
        ...

    async def verify_otp(self, phone: str, id_token: str) -> VerifyOtpData:
        """Exchange an identity token for a session token and profile."""
        ...


class ApplicationBackendClient:
    """JSON client for `check-phone` and `verify-otp`."""

    _http: httpx.AsyncClient
    _owns_http: bool

    def __init__(
        self,
        *,
        base_url: str,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        """Create client bound to the backend base URL."""
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            base_url=base_url,
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(connect=10.0, read=30.0, write=10.0, pool=10.0),
        )

    @classmethod
    def from_settings(cls, settings: AppSettings) -> ApplicationBackendClient:
        """Build client from static app settings."""
        return cls(base_url=settings.api_url)

    async def aclose(self) -> None:
        """Close the underlying HTTP client when this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    async def check_phone(self, phone: str) -> Profile | None:
        """Ask the backend whether `phone` belongs to a known account."""
        payload = CheckPhoneRequest(phone=phone)
        result = await self._post(CHECK_PHONE_PATH, payload, CheckPhoneResponse)
        if not result.success:
            logger.info("Backend rejected phone %s", mask_phone(phone))
            raise BackendError.rejected(
                result.message,
                fallback=_CHECK_PHONE_REJECTED_FALLBACK,
            )
        return result.data

    async def verify_otp(self, phone: str, id_token: str) -> VerifyOtpData:
        """Exchange the provider identity token for a backend session."""
        payload = VerifyOtpRequest(phone=phone, id_token=id_token)
        result = await self._post(VERIFY_OTP_PATH, payload, VerifyOtpResponse)
        if not result.success:
            logger.info("Backend rejected login for %s", mask_phone(phone))
            raise BackendError.rejected(
                result.message,
                fallback=_VERIFY_OTP_REJECTED_FALLBACK,
            )
        if result.data is None:
            raise BackendConnectionError.unreachable(
                VERIFY_OTP_PATH,
                details="success response carried no session data",
            )
        return result.data

    async def _post(
        self,
        path: str,
        payload: BaseModel,
        response_model: type[ResponseModelT],
    ) -> ResponseModelT:
        try:
            response = await self._http.post(
                path,
                json=payload.model_dump(by_alias=True),
            )
        except httpx.HTTPError as exc:
            raise BackendConnectionError.unreachable(
                path,
                details=type(exc).__name__,
            ) from exc

        # The backend reports rejections as JSON bodies on non-2xx statuses too.
        try:
            return response_model.model_validate_json(response.content)
        except ValidationError as exc:
            raise BackendConnectionError.unreadable(
                path,
                status_code=response.status_code,
            ) from exc
