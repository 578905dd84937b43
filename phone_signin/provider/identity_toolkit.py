"""Phone-auth provider backed by the Identity Toolkit REST API."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, cast
from uuid import uuid4

import httpx

from phone_signin.config.logging import mask_phone
from phone_signin.errors import ProviderError

from .codes import ProviderErrorCode
from .contracts import Challenge, Credential, PendingConfirmation

if TYPE_CHECKING:
    from collections.abc import Mapping

    from phone_signin.config.settings import AppSettings

logger = logging.getLogger(__name__)

RECAPTCHA_PARAMS_PATH = "/v1/recaptchaParams"
SEND_VERIFICATION_CODE_PATH = "/v1/accounts:sendVerificationCode"
SIGN_IN_WITH_PHONE_NUMBER_PATH = "/v1/accounts:signInWithPhoneNumber"

_SERVER_ERROR_CODES: dict[str, ProviderErrorCode] = {
    "INVALID_PHONE_NUMBER": ProviderErrorCode.INVALID_PHONE_NUMBER,
    "MISSING_PHONE_NUMBER": ProviderErrorCode.INVALID_PHONE_NUMBER,
    "TOO_MANY_ATTEMPTS_TRY_LATER": ProviderErrorCode.TOO_MANY_REQUESTS,
    "QUOTA_EXCEEDED": ProviderErrorCode.QUOTA_EXCEEDED,
    "CAPTCHA_CHECK_FAILED": ProviderErrorCode.CAPTCHA_CHECK_FAILED,
    "INVALID_RECAPTCHA_TOKEN": ProviderErrorCode.CAPTCHA_CHECK_FAILED,
    "MISSING_RECAPTCHA_TOKEN": ProviderErrorCode.CAPTCHA_CHECK_FAILED,
    "OPERATION_NOT_ALLOWED": ProviderErrorCode.OPERATION_NOT_ALLOWED,
    "INVALID_CODE": ProviderErrorCode.INVALID_VERIFICATION_CODE,
    "MISSING_CODE": ProviderErrorCode.INVALID_VERIFICATION_CODE,
    "INVALID_SESSION_INFO": ProviderErrorCode.INVALID_VERIFICATION_ID,
    "MISSING_SESSION_INFO": ProviderErrorCode.INVALID_VERIFICATION_ID,
    "SESSION_EXPIRED": ProviderErrorCode.CODE_EXPIRED,
    "CODE_EXPIRED": ProviderErrorCode.CODE_EXPIRED,
    "CREDENTIAL_ALREADY_IN_USE": ProviderErrorCode.CREDENTIAL_ALREADY_IN_USE,
    "INTERNAL_ERROR": ProviderErrorCode.INTERNAL_ERROR,
}


class IdentityToolkitPhoneAuthProvider:
    """SMS-OTP provider speaking the Identity Toolkit v1 JSON API."""

    _http: httpx.AsyncClient
    _api_key: str | None
    _owns_http: bool

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str | None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        """Create provider bound to an Identity Toolkit endpoint."""
        self._api_key = api_key
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(connect=10.0, read=30.0, write=10.0, pool=10.0),
        )

    @classmethod
    def from_settings(cls, settings: AppSettings) -> IdentityToolkitPhoneAuthProvider:
        """Build provider from static app settings."""
        return cls(
            base_url=settings.provider_base_url,
            api_key=settings.provider_api_key,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client when this provider created it."""
        if self._owns_http:
            await self._http.aclose()

    async def create_challenge(self, container_id: str) -> Challenge:
        """Fetch the bot-check site key and bind a fresh challenge to a container."""
        body = await self._request("GET", RECAPTCHA_PARAMS_PATH)
        site_key = body.get("recaptchaSiteKey")
        challenge = Challenge(
            challenge_id=uuid4().hex,
            container_id=container_id,
            site_key=site_key if isinstance(site_key, str) else None,
        )
        logger.debug(
            "Created bot-verification challenge %s for container %s",
            challenge.challenge_id,
            container_id,
        )
        return challenge

    async def destroy_challenge(self, challenge: Challenge) -> None:
        """Mark the challenge unusable; the REST API holds no server state for it."""
        challenge.active = False
        challenge.verification_token = None

    async def send_otp(
        self,
        phone_number: str,
        challenge: Challenge,
    ) -> PendingConfirmation:
        """Request an SMS code for `phone_number` guarded by `challenge`."""
        if not challenge.active:
            raise ProviderError.for_code(
                ProviderErrorCode.CAPTCHA_CHECK_FAILED,
                detail="challenge was destroyed",
            )
        payload: dict[str, object] = {"phoneNumber": phone_number}
        if challenge.verification_token is not None:
            payload["recaptchaToken"] = challenge.verification_token
        body = await self._request("POST", SEND_VERIFICATION_CODE_PATH, json=payload)
        session_info = body.get("sessionInfo")
        if not isinstance(session_info, str) or not session_info:
            raise ProviderError.for_code(
                ProviderErrorCode.INTERNAL_ERROR,
                detail="response missing sessionInfo",
            )
        logger.info("Verification code dispatched to %s", mask_phone(phone_number))
        return PendingConfirmation(
            verification_id=session_info,
            phone_number=phone_number,
        )

    async def confirm(
        self,
        confirmation: PendingConfirmation,
        code: str,
    ) -> Credential:
        """Exchange an SMS code for an identity credential."""
        body = await self._request(
            "POST",
            SIGN_IN_WITH_PHONE_NUMBER_PATH,
            json={"sessionInfo": confirmation.verification_id, "code": code},
        )
        id_token = body.get("idToken")
        uid = body.get("localId")
        if not isinstance(id_token, str) or not isinstance(uid, str):
            raise ProviderError.for_code(
                ProviderErrorCode.INTERNAL_ERROR,
                detail="response missing idToken or localId",
            )
        phone_number = body.get("phoneNumber")
        refresh_token = body.get("refreshToken")
        return Credential(
            uid=uid,
            phone_number=(
                phone_number
                if isinstance(phone_number, str)
                else confirmation.phone_number
            ),
            id_token=id_token,
            refresh_token=refresh_token if isinstance(refresh_token, str) else None,
        )

    async def get_id_token(self, credential: Credential) -> str:
        """Return the identity token issued with the credential."""
        if not credential.id_token:
            raise ProviderError.for_code(
                ProviderErrorCode.INTERNAL_ERROR,
                detail="credential has no identity token",
            )
        return credential.id_token

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Mapping[str, object] | None = None,
    ) -> dict[str, object]:
        params = {"key": self._api_key} if self._api_key else None
        try:
            response = await self._http.request(method, path, params=params, json=json)
        except httpx.RequestError as exc:
            raise ProviderError.for_code(
                ProviderErrorCode.NETWORK_REQUEST_FAILED,
                detail=type(exc).__name__,
            ) from exc
        return _decode_response(response)


def _decode_response(response: httpx.Response) -> dict[str, object]:
    """Return the JSON body, raising `ProviderError` for error payloads."""
    try:
        body_obj = cast("object", response.json())
    except ValueError:
        body_obj = None
    body = cast("dict[str, object]", body_obj) if isinstance(body_obj, dict) else {}

    if response.is_success and body_obj is not None:
        return body

    server_code = _extract_server_code(body)
    fallback = (
        ProviderErrorCode.ARGUMENT_ERROR
        if response.is_client_error
        else ProviderErrorCode.INTERNAL_ERROR
    )
    code = _SERVER_ERROR_CODES.get(server_code or "", fallback)
    raise ProviderError.for_code(
        code,
        detail=f"HTTP {response.status_code} {server_code or 'no error code'}",
    )


def _extract_server_code(body: Mapping[str, object]) -> str | None:
    """Pull the leading token from `error.message` (e.g. `INVALID_CODE : ...`)."""
    error_obj = body.get("error")
    if not isinstance(error_obj, dict):
        return None
    message = cast("dict[str, object]", error_obj).get("message")
    if not isinstance(message, str) or not message:
        return None
    return message.split(":", 1)[0].strip()
