"""OTP sign-in state machine and its building blocks."""

from .controller import (
    BUSY_STEPS,
    DASHBOARD_PATH,
    OTP_RESENT_NOTICE,
    Authenticated,
    OtpSignInController,
    SessionPersisterProtocol,
    SignInStep,
    SignInView,
)
from .cooldown import RESEND_COOLDOWN_SECONDS, CooldownTimer
from .otp_buffer import OTP_LENGTH, OtpBuffer
from .phone_number import (
    DEFAULT_COUNTRY_CODE,
    sanitize_phone_input,
    to_international,
    validate_phone_number,
)
from .registry import (
    DEFAULT_ATTEMPT_TTL_SECONDS,
    SignInAttempt,
    SignInAttemptExpiredError,
    SignInAttemptNotFoundError,
    SignInAttemptRegistry,
)

__all__ = [
    "BUSY_STEPS",
    "DASHBOARD_PATH",
    "DEFAULT_ATTEMPT_TTL_SECONDS",
    "DEFAULT_COUNTRY_CODE",
    "OTP_LENGTH",
    "OTP_RESENT_NOTICE",
    "RESEND_COOLDOWN_SECONDS",
    "Authenticated",
    "CooldownTimer",
    "OtpBuffer",
    "OtpSignInController",
    "SessionPersisterProtocol",
    "SignInAttempt",
    "SignInAttemptExpiredError",
    "SignInAttemptNotFoundError",
    "SignInAttemptRegistry",
    "SignInStep",
    "SignInView",
    "sanitize_phone_input",
    "to_international",
    "validate_phone_number",
]
