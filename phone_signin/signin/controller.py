"""OTP sign-in state machine.

The controller sequences one sign-in attempt: validate the phone number,
check the bot-verification challenge, ask the backend whether the number may
sign in, dispatch the OTP, collect the digits, confirm them with the provider
and exchange the identity token for a backend session.

Every transition catches the sign-in failure taxonomy at its boundary and
turns it into a displayable message in ``errors``; busy steps are always
restored on exit. ``restart()`` and ``close()`` bump an epoch so that a
network call already in flight cannot write its result into a newer attempt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

from phone_signin.challenge import ChallengeInitError, ChallengeStatus
from phone_signin.config.logging import mask_phone
from phone_signin.errors import (
    BackendConnectionError,
    ChallengeNotReadyError,
    ProviderError,
    SessionExpiredError,
    SignInBusyError,
    SignInClosedError,
    SignInError,
    SignInStepError,
    ValidationError,
)
from phone_signin.provider import (
    SEND_FAILED_MESSAGE,
    VERIFY_FAILED_MESSAGE,
    ProviderErrorCode,
    poisons_challenge,
    send_error_message,
    verify_error_message,
)
from phone_signin.storage.persister import SessionPersistError, SessionRecord

from .cooldown import CooldownTimer
from .otp_buffer import OtpBuffer
from .phone_number import (
    DEFAULT_COUNTRY_CODE,
    sanitize_phone_input,
    to_international,
    validate_phone_number,
)

if TYPE_CHECKING:
    from phone_signin.backend import ApplicationBackend
    from phone_signin.challenge import ChallengeManager
    from phone_signin.provider import PendingConfirmation, PhoneAuthProvider

DASHBOARD_PATH = "/dashboard"
OTP_RESENT_NOTICE = "OTP resent successfully!"

logger = logging.getLogger(__name__)


class SignInStep(StrEnum):
    """Visible step of a sign-in attempt."""

    COLLECTING_PHONE = "collecting-phone"
    SENDING_OTP = "sending-otp"
    COLLECTING_OTP = "collecting-otp"
    VERIFYING_OTP = "verifying-otp"


BUSY_STEPS: frozenset[SignInStep] = frozenset(
    {SignInStep.SENDING_OTP, SignInStep.VERIFYING_OTP},
)


class SessionPersisterProtocol(Protocol):
    """Sink for the session produced by a successful sign-in."""

    async def persist(self, record: SessionRecord) -> None:
        """Durably store `record`, replacing any earlier session."""
        ...


@dataclass(frozen=True, slots=True)
class Authenticated:
    """Exit event emitted once the session has been persisted."""

    record: SessionRecord
    redirect_to: str = DASHBOARD_PATH


@dataclass(frozen=True, slots=True)
class SignInView:
    """Immutable snapshot of controller state for rendering."""

    step: SignInStep
    busy: bool
    phone: str
    otp: tuple[str, ...]
    countdown: int
    errors: dict[str, str] = field(default_factory=dict)
    notice: str | None = None
    profile: dict[str, Any] | None = None
    challenge_status: ChallengeStatus = ChallengeStatus.ABSENT
    authenticated: bool = False
    closed: bool = False


class OtpSignInController:
    """Drive one phone-number sign-in attempt from number entry to session."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        provider: PhoneAuthProvider,
        backend: ApplicationBackend,
        challenges: ChallengeManager,
        persister: SessionPersisterProtocol,
        country_code: str = DEFAULT_COUNTRY_CODE,
        cooldown: CooldownTimer | None = None,
    ) -> None:
        """Create controller; `challenges` is owned by this attempt."""
        self._provider = provider
        self._backend = backend
        self._challenges = challenges
        self._persister = persister
        self._country_code = country_code
        self._cooldown = cooldown or CooldownTimer()

        self._step = SignInStep.COLLECTING_PHONE
        self._phone = ""
        self._otp = OtpBuffer()
        self._confirmation: PendingConfirmation | None = None
        self._profile: dict[str, Any] | None = None
        self._errors: dict[str, str] = {}
        self._notice: str | None = None
        self._last_error: Exception | None = None
        self._epoch = 0
        self._authenticated = False
        self._closed = False

    @property
    def step(self) -> SignInStep:
        """Return the current step."""
        return self._step

    @property
    def is_busy(self) -> bool:
        """Return True while a send or verify call is in flight."""
        return self._step in BUSY_STEPS

    @property
    def is_closed(self) -> bool:
        """Return True once the attempt has ended."""
        return self._closed

    @property
    def phone(self) -> str:
        """Return the stored national phone number."""
        return self._phone

    @property
    def otp(self) -> tuple[str, ...]:
        """Return the OTP cells."""
        return self._otp.cells

    @property
    def countdown(self) -> int:
        """Return seconds until resend is allowed."""
        return self._cooldown.remaining

    @property
    def confirmation(self) -> PendingConfirmation | None:
        """Return the pending OTP dispatch handle, if any."""
        return self._confirmation

    @property
    def errors(self) -> dict[str, str]:
        """Return displayable messages keyed by `phone`, `otp` or `submit`."""
        return dict(self._errors)

    @property
    def notice(self) -> str | None:
        """Return the non-error status message, if any."""
        return self._notice

    @property
    def last_error(self) -> Exception | None:
        """Return the typed failure behind the latest rejected transition."""
        return self._last_error

    @property
    def challenges(self) -> ChallengeManager:
        """Return the challenge manager bound to this attempt."""
        return self._challenges

    def view(self) -> SignInView:
        """Return an immutable snapshot for the UI."""
        return SignInView(
            step=self._step,
            busy=self.is_busy,
            phone=self._phone,
            otp=self._otp.cells,
            countdown=self._cooldown.remaining,
            errors=dict(self._errors),
            notice=self._notice,
            profile=self._profile,
            challenge_status=self._challenges.status,
            authenticated=self._authenticated,
            closed=self._closed,
        )

    async def start(self) -> bool:
        """Prepare the bot-verification challenge as the form mounts."""
        if self._closed:
            self._reject(SignInClosedError.default())
            return False
        return await self._prepare_challenge()

    def enter_phone(self, raw: str) -> bool:
        """Store typed input as digits only and clear stale messages."""
        try:
            self._guard("edit the phone number", SignInStep.COLLECTING_PHONE)
        except SignInError as exc:
            self._reject(exc)
            return False
        self._phone = sanitize_phone_input(raw)
        _ = self._errors.pop("phone", None)
        _ = self._errors.pop("submit", None)
        return True

    def attach_verification(self, token: str) -> bool:
        """Hand the UI-solved bot-check token to the active challenge."""
        if self._closed or not self._challenges.is_ready:
            return False
        self._challenges.record_verification(token)
        return True

    async def submit_phone(self, number: str | None = None) -> bool:
        """Validate the number and dispatch an OTP; True on `collecting-otp`."""
        try:
            self._guard("submit a phone number", SignInStep.COLLECTING_PHONE)
        except SignInError as exc:
            self._reject(exc)
            return False
        if number is not None:
            self._phone = number.strip()
        self._clear_messages()
        return await self._send(origin=SignInStep.COLLECTING_PHONE)

    def edit_otp_digit(self, index: int, value: str) -> bool:
        """Write one OTP cell; non-digit input leaves the buffer unchanged."""
        if self._closed:
            self._reject(SignInClosedError.default())
            return False
        return self._otp.set_digit(index, value)

    def paste_otp(self, text: str) -> bool:
        """Replace the whole OTP from exactly six pasted digits."""
        if self._closed:
            self._reject(SignInClosedError.default())
            return False
        return self._otp.paste(text)

    async def resend_otp(self) -> bool:
        """Re-dispatch the OTP to the stored number once the cooldown is over."""
        if self._closed:
            self._reject(SignInClosedError.default())
            return False
        if self.is_busy or self._cooldown.remaining > 0:
            return False
        try:
            self._guard("resend the code", SignInStep.COLLECTING_OTP)
        except SignInError as exc:
            self._reject(exc)
            return False
        self._clear_messages()
        sent = await self._send(origin=SignInStep.COLLECTING_OTP, resend=True)
        if sent:
            self._notice = OTP_RESENT_NOTICE
        return sent

    async def verify_otp(self) -> Authenticated | None:
        """Confirm the entered code and exchange it for a backend session."""
        try:
            self._guard("verify a code", SignInStep.COLLECTING_OTP)
        except SignInError as exc:
            self._reject(exc)
            return None
        self._clear_messages()
        try:
            code = self._otp.code()
        except ValidationError as exc:
            self._fail(exc)
            return None
        confirmation = self._confirmation
        if confirmation is None:
            self._expire()
            return None

        epoch = self._epoch
        self._step = SignInStep.VERIFYING_OTP
        try:
            credential = await self._provider.confirm(confirmation, code)
            if self._is_stale(epoch):
                return None
            id_token = await self._provider.get_id_token(credential)
            if self._is_stale(epoch):
                return None
            session = await self._backend.verify_otp(self._phone, id_token)
            if self._is_stale(epoch):
                return None
            record = SessionRecord(
                session_token=session.token,
                profile=session.farmer,
            )
            await self._persister.persist(record)
            if self._is_stale(epoch):
                return None
        except ProviderError as exc:
            if self._is_stale(epoch):
                return None
            if exc.code == ProviderErrorCode.INVALID_VERIFICATION_ID:
                self._expire(cause=exc)
                return None
            self._fail(exc, message=verify_error_message(exc.code))
            logger.info("OTP confirmation rejected (%s)", exc.code)
            return None
        except BackendConnectionError as exc:
            if self._is_stale(epoch):
                return None
            self._fail(exc, message=VERIFY_FAILED_MESSAGE)
            logger.warning("Backend unavailable during verify-otp: %s", exc.message)
            return None
        except SignInError as exc:
            if self._is_stale(epoch):
                return None
            self._fail(exc)
            logger.info("Backend rejected sign-in for %s", mask_phone(self._phone))
            return None
        except SessionPersistError as exc:
            if self._is_stale(epoch):
                return None
            self._fail(exc, message=VERIFY_FAILED_MESSAGE)
            logger.exception("Failed to persist session record")
            return None
        finally:
            if not self._is_stale(epoch) and self._step is SignInStep.VERIFYING_OTP:
                self._step = SignInStep.COLLECTING_OTP

        self._authenticated = True
        self._confirmation = None
        self._cooldown.reset()
        logger.info("Sign-in completed for %s", mask_phone(self._phone))
        await self.close()
        return Authenticated(record=record)

    async def restart(self) -> bool:
        """Abandon the current attempt and return to phone entry."""
        if self._closed:
            self._reject(SignInClosedError.default())
            return False
        self._epoch += 1
        self._step = SignInStep.COLLECTING_PHONE
        self._otp.clear()
        self._confirmation = None
        self._clear_messages()
        self._last_error = None
        self._cooldown.reset()
        await self._challenges.invalidate()
        logger.info("Sign-in restarted; challenge invalidated")
        return await self._prepare_challenge()

    async def close(self) -> None:
        """End the attempt: ignore in-flight results, stop timers, drop challenge."""
        if self._closed:
            return
        self._closed = True
        self._epoch += 1
        self._cooldown.reset()
        self._confirmation = None
        await self._challenges.close()

    async def _send(self, *, origin: SignInStep, resend: bool = False) -> bool:
        try:
            phone = validate_phone_number(self._phone)
        except ValidationError as exc:
            self._fail(exc)
            return False
        challenge = self._challenges.current
        if challenge is None or not self._challenges.is_ready:
            self._fail(ChallengeNotReadyError.default())
            return False

        epoch = self._epoch
        self._step = SignInStep.SENDING_OTP
        if resend:
            self._confirmation = None
        try:
            profile = await self._backend.check_phone(phone)
            if self._is_stale(epoch):
                return False
            confirmation = await self._provider.send_otp(
                to_international(phone, self._country_code),
                challenge,
            )
            if self._is_stale(epoch):
                return False
        except ProviderError as exc:
            if self._is_stale(epoch):
                return False
            self._fail(exc, message=send_error_message(exc.code))
            logger.info("OTP dispatch failed (%s)", exc.code)
            if poisons_challenge(exc.code):
                await self._challenges.schedule_recreate()
            return False
        except BackendConnectionError as exc:
            if self._is_stale(epoch):
                return False
            self._fail(exc, message=SEND_FAILED_MESSAGE)
            logger.warning("Backend unavailable during check-phone: %s", exc.message)
            return False
        except SignInError as exc:
            if self._is_stale(epoch):
                return False
            self._fail(exc)
            logger.info("Backend refused phone %s", mask_phone(phone))
            return False
        finally:
            if not self._is_stale(epoch) and self._step is SignInStep.SENDING_OTP:
                self._step = origin

        self._confirmation = confirmation
        if profile is not None:
            self._profile = profile
        self._step = SignInStep.COLLECTING_OTP
        self._cooldown.restart()
        logger.info("OTP sent to %s", mask_phone(phone))
        return True

    async def _prepare_challenge(self) -> bool:
        epoch = self._epoch
        try:
            _ = await self._challenges.ensure_ready()
        except ChallengeInitError as exc:
            if not self._is_stale(epoch):
                failure = ChallengeNotReadyError.failed_to_load()
                self._errors = {"submit": failure.message}
                self._last_error = exc
            return False
        return True

    def _guard(self, transition: str, expected: SignInStep) -> None:
        if self._closed:
            raise SignInClosedError.default()
        if self.is_busy:
            raise SignInBusyError.for_step(self._step)
        if self._step is not expected:
            raise SignInStepError.for_transition(transition, self._step)

    def _expire(self, *, cause: Exception | None = None) -> None:
        error = SessionExpiredError.default()
        if cause is not None:
            error.__cause__ = cause
        self._fail(error)
        self._step = SignInStep.COLLECTING_PHONE
        self._confirmation = None
        self._otp.clear()
        self._cooldown.reset()
        logger.info("OTP session expired; returned to phone entry")

    def _fail(self, error: Exception, *, message: str | None = None) -> None:
        field_name = error.field if isinstance(error, ValidationError) else "submit"
        if message is None:
            message = error.message if isinstance(error, SignInError) else str(error)
        self._errors = {field_name: message}
        self._last_error = error

    def _reject(self, error: SignInError) -> None:
        self._last_error = error

    def _clear_messages(self) -> None:
        self._errors = {}
        self._notice = None

    def _is_stale(self, epoch: int) -> bool:
        return epoch != self._epoch
