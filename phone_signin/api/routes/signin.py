"""Sign-in attempt endpoints driving the OTP state machine."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any, cast

from fastapi import APIRouter, HTTPException, Path, Request, Response, status
from pydantic import BaseModel, Field

from phone_signin.config.logging import attempt_id as attempt_id_context
from phone_signin.errors import SignInBusyError, SignInClosedError, SignInStepError
from phone_signin.signin import (
    OTP_LENGTH,
    OtpSignInController,
    SignInAttempt,
    SignInAttemptExpiredError,
    SignInAttemptNotFoundError,
    SignInAttemptRegistry,
)

router = APIRouter()

logger = logging.getLogger(__name__)

_GUARD_ERRORS = (SignInBusyError, SignInClosedError, SignInStepError)
_INVALID_OTP_DIGIT_DETAIL = "OTP cells accept a single digit or an empty value."
_INVALID_OTP_PASTE_DETAIL = "Pasted OTP must be exactly 6 digits."

OtpIndex = Annotated[int, Path(ge=0, lt=OTP_LENGTH)]


class PhoneSubmitRequest(BaseModel):
    """Payload for submitting the phone number."""

    phone: str
    recaptcha_token: str | None = Field(default=None, min_length=1)


class OtpDigitRequest(BaseModel):
    """Payload for writing one OTP cell."""

    value: str = Field(max_length=1)


class OtpPasteRequest(BaseModel):
    """Payload for pasting a whole OTP."""

    text: str


class SignInAttemptResponse(BaseModel):
    """Renderable state of one sign-in attempt."""

    attempt_id: str
    step: str
    busy: bool
    phone: str
    otp: list[str]
    countdown: int
    errors: dict[str, str]
    notice: str | None
    profile: dict[str, Any] | None
    challenge_status: str
    challenge_container: str
    challenge_site_key: str | None
    authenticated: bool
    redirect_to: str | None = None


@router.post(
    "/signin",
    tags=["signin"],
    response_model=SignInAttemptResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_signin_attempt(request: Request) -> SignInAttemptResponse:
    """Start a sign-in attempt and prepare its bot-verification challenge."""
    registry = _resolve_registry(request)
    attempt = await registry.create()
    _ = attempt_id_context.set(attempt.attempt_id)
    return _to_response(attempt)


@router.get(
    "/signin/{attempt_id}",
    tags=["signin"],
    response_model=SignInAttemptResponse,
)
async def get_signin_attempt(
    attempt_id: str,
    request: Request,
) -> SignInAttemptResponse:
    """Return the current state of a sign-in attempt."""
    attempt = await _load_attempt(request, attempt_id)
    return _to_response(attempt)


@router.post(
    "/signin/{attempt_id}/phone",
    tags=["signin"],
    response_model=SignInAttemptResponse,
)
async def submit_phone(
    attempt_id: str,
    payload: PhoneSubmitRequest,
    request: Request,
) -> SignInAttemptResponse:
    """Submit the phone number and dispatch an OTP."""
    attempt = await _load_attempt(request, attempt_id)
    controller = attempt.controller
    _require_idle(controller)
    if payload.recaptcha_token is not None:
        _ = controller.attach_verification(payload.recaptcha_token)
    previous_error = controller.last_error
    _ = await controller.submit_phone(payload.phone)
    _raise_for_guard_rejection(controller, previous_error)
    return _to_response(attempt)


@router.put(
    "/signin/{attempt_id}/otp/{index}",
    tags=["signin"],
    response_model=SignInAttemptResponse,
)
async def edit_otp_digit(
    attempt_id: str,
    index: OtpIndex,
    payload: OtpDigitRequest,
    request: Request,
) -> SignInAttemptResponse:
    """Write one OTP digit."""
    attempt = await _load_attempt(request, attempt_id)
    _require_open(attempt.controller)
    if not attempt.controller.edit_otp_digit(index, payload.value):
        raise _unprocessable_error(_INVALID_OTP_DIGIT_DETAIL)
    return _to_response(attempt)


@router.post(
    "/signin/{attempt_id}/otp/paste",
    tags=["signin"],
    response_model=SignInAttemptResponse,
)
async def paste_otp(
    attempt_id: str,
    payload: OtpPasteRequest,
    request: Request,
) -> SignInAttemptResponse:
    """Replace the whole OTP from pasted text."""
    attempt = await _load_attempt(request, attempt_id)
    _require_open(attempt.controller)
    if not attempt.controller.paste_otp(payload.text):
        raise _unprocessable_error(_INVALID_OTP_PASTE_DETAIL)
    return _to_response(attempt)


@router.post(
    "/signin/{attempt_id}/resend",
    tags=["signin"],
    response_model=SignInAttemptResponse,
)
async def resend_otp(
    attempt_id: str,
    request: Request,
) -> SignInAttemptResponse:
    """Resend the OTP; a no-op while the cooldown is running."""
    attempt = await _load_attempt(request, attempt_id)
    controller = attempt.controller
    _require_idle(controller)
    previous_error = controller.last_error
    _ = await controller.resend_otp()
    _raise_for_guard_rejection(controller, previous_error)
    return _to_response(attempt)


@router.post(
    "/signin/{attempt_id}/verify",
    tags=["signin"],
    response_model=SignInAttemptResponse,
)
async def verify_otp(
    attempt_id: str,
    request: Request,
) -> SignInAttemptResponse:
    """Verify the entered OTP and finish sign-in on success."""
    attempt = await _load_attempt(request, attempt_id)
    controller = attempt.controller
    _require_idle(controller)
    previous_error = controller.last_error
    authenticated = await controller.verify_otp()
    if authenticated is None:
        _raise_for_guard_rejection(controller, previous_error)
        return _to_response(attempt)

    registry = _resolve_registry(request)
    _ = await registry.discard(attempt.attempt_id)
    logger.info("Sign-in attempt authenticated")
    return _to_response(attempt, redirect_to=authenticated.redirect_to)


@router.post(
    "/signin/{attempt_id}/restart",
    tags=["signin"],
    response_model=SignInAttemptResponse,
)
async def restart_signin(
    attempt_id: str,
    request: Request,
) -> SignInAttemptResponse:
    """Go back to phone entry, abandoning any in-flight request."""
    attempt = await _load_attempt(request, attempt_id)
    _require_open(attempt.controller)
    _ = await attempt.controller.restart()
    return _to_response(attempt)


@router.delete(
    "/signin/{attempt_id}",
    tags=["signin"],
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_signin_attempt(
    attempt_id: str,
    request: Request,
) -> Response:
    """Close the attempt and release its challenge."""
    _ = attempt_id_context.set(attempt_id)
    registry = _resolve_registry(request)
    if not await registry.discard(attempt_id):
        raise _attempt_not_found_error(attempt_id=attempt_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _resolve_registry(request: Request) -> SignInAttemptRegistry:
    """Resolve the attempt registry published by the app lifespan."""
    state_obj = cast("object", request.app.state)
    registry = getattr(state_obj, "signin_registry", None)
    if not isinstance(registry, SignInAttemptRegistry):
        message = "Missing sign-in registry: app.state.signin_registry."
        raise TypeError(message)
    return registry


async def _load_attempt(request: Request, attempt_id: str) -> SignInAttempt:
    """Load a live attempt and tag subsequent log records with its id."""
    _ = attempt_id_context.set(attempt_id)
    registry = _resolve_registry(request)
    try:
        return await registry.get(attempt_id)
    except SignInAttemptNotFoundError as exc:
        raise _attempt_not_found_error(attempt_id=attempt_id) from exc
    except SignInAttemptExpiredError as exc:
        raise _attempt_expired_error(attempt_id=attempt_id) from exc


def _require_open(controller: OtpSignInController) -> None:
    if controller.is_closed:
        raise _conflict_error(SignInClosedError.default().message)


def _require_idle(controller: OtpSignInController) -> None:
    _require_open(controller)
    if controller.is_busy:
        raise _conflict_error(SignInBusyError.for_step(controller.step).message)


def _raise_for_guard_rejection(
    controller: OtpSignInController,
    previous_error: Exception | None,
) -> None:
    """Map a transition refused by its step guard to 409."""
    error = controller.last_error
    if error is previous_error or not isinstance(error, _GUARD_ERRORS):
        return
    raise _conflict_error(error.message)


def _to_response(
    attempt: SignInAttempt,
    *,
    redirect_to: str | None = None,
) -> SignInAttemptResponse:
    view = attempt.controller.view()
    challenge = attempt.controller.challenges.current
    return SignInAttemptResponse(
        attempt_id=attempt.attempt_id,
        step=str(view.step),
        busy=view.busy,
        phone=view.phone,
        otp=list(view.otp),
        countdown=view.countdown,
        errors=view.errors,
        notice=view.notice,
        profile=view.profile,
        challenge_status=str(view.challenge_status),
        challenge_container=attempt.controller.challenges.container_id,
        challenge_site_key=challenge.site_key if challenge is not None else None,
        authenticated=view.authenticated,
        redirect_to=redirect_to,
    )


def _attempt_not_found_error(*, attempt_id: str) -> HTTPException:
    """Build deterministic error for unknown attempts."""
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Sign-in attempt not found for attempt_id='{attempt_id}'.",
    )


def _attempt_expired_error(*, attempt_id: str) -> HTTPException:
    """Build deterministic error for expired attempts."""
    return HTTPException(
        status_code=status.HTTP_410_GONE,
        detail=f"Sign-in attempt expired for attempt_id='{attempt_id}'.",
    )


def _conflict_error(detail: str) -> HTTPException:
    """Build deterministic error for transitions refused in the current state."""
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


def _unprocessable_error(detail: str) -> HTTPException:
    """Build deterministic error for rejected OTP input."""
    return HTTPException(
        status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
        detail=detail,
    )
