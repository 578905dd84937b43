"""Failures surfaced to the sign-in UI as displayable messages.

Every class here carries a user-facing ``message``. The state machine catches
these at its transition boundary and never lets them escape to the caller.
"""

from __future__ import annotations


class SignInError(Exception):
    """Base error for sign-in failures with a user-facing message."""

    message: str

    def __init__(self, message: str) -> None:
        """Store the displayable message alongside the exception text."""
        super().__init__(message)
        self.message = message


class ValidationError(SignInError):
    """Local, field-scoped input error raised before any network call."""

    field: str = "submit"


class PhoneValidationError(ValidationError):
    """Raised when the phone number is missing or malformed."""

    field = "phone"

    @classmethod
    def required(cls) -> PhoneValidationError:
        """Build error for an empty phone number field."""
        return cls("Phone number is required")

    @classmethod
    def invalid_format(cls) -> PhoneValidationError:
        """Build error for a phone number outside the national pattern."""
        return cls("Please enter a valid 10-digit phone number")


class OtpValidationError(ValidationError):
    """Raised when the OTP buffer is not fully populated."""

    field = "otp"

    @classmethod
    def incomplete(cls) -> OtpValidationError:
        """Build error for a partially entered verification code."""
        return cls("Please enter all 6 digits of the verification code")


class ReadinessError(SignInError):
    """Raised when a prerequisite resource is not ready for use."""


class ChallengeNotReadyError(ReadinessError):
    """Raised when an OTP send is attempted without a ready challenge."""

    @classmethod
    def default(cls) -> ChallengeNotReadyError:
        """Build the standard not-ready message."""
        return cls("Security verification is not ready. Please refresh the page.")

    @classmethod
    def failed_to_load(cls) -> ChallengeNotReadyError:
        """Build the message shown when challenge creation itself failed."""
        return cls("Security verification failed to load. Please refresh.")


class ProviderError(SignInError):
    """Raised by the phone-auth provider with a stable `auth/*` error code."""

    code: str

    def __init__(self, code: str, message: str) -> None:
        """Store provider error code and detail text."""
        super().__init__(message)
        self.code = code

    @classmethod
    def for_code(cls, code: str, *, detail: str | None = None) -> ProviderError:
        """Build deterministic provider error for a code."""
        message = f"Phone-auth provider error {code}"
        if detail:
            message = f"{message}: {detail}"
        return cls(code, message)


class BackendError(SignInError):
    """Raised when the application backend reports a non-success result."""

    @classmethod
    def rejected(cls, message: str | None, *, fallback: str) -> BackendError:
        """Pass the backend message through, or `fallback` when it sent none."""
        return cls(message or fallback)


class BackendConnectionError(BackendError):
    """Raised when the backend cannot be reached or returns unreadable data."""

    @classmethod
    def unreachable(cls, path: str, *, details: str) -> BackendConnectionError:
        """Build deterministic transport failure error."""
        return cls(f"Backend request to {path} failed: {details}")

    @classmethod
    def unreadable(cls, path: str, *, status_code: int) -> BackendConnectionError:
        """Build deterministic error for responses without a JSON body."""
        return cls(f"Backend response from {path} was not valid JSON (HTTP {status_code}).")


class SessionExpiredError(SignInError):
    """Raised when an OTP is verified without a live pending confirmation."""

    @classmethod
    def default(cls) -> SessionExpiredError:
        """Build the standard expired-session message."""
        return cls("OTP session expired. Please request a new code.")


class SignInBusyError(SignInError):
    """Raised when a transition is attempted while another is in flight."""

    @classmethod
    def for_step(cls, step: str) -> SignInBusyError:
        """Build deterministic busy error naming the in-flight step."""
        return cls(f"Sign-in is busy ({step}); wait for the current request.")


class SignInStepError(SignInError):
    """Raised when a transition is not valid in the current step."""

    @classmethod
    def for_transition(cls, transition: str, step: str) -> SignInStepError:
        """Build deterministic error for an out-of-order transition."""
        return cls(f"Cannot {transition} while sign-in is in step '{step}'.")


class SignInClosedError(SignInError):
    """Raised when a transition is attempted on a finished controller."""

    @classmethod
    def default(cls) -> SignInClosedError:
        """Build deterministic closed-controller error."""
        return cls("This sign-in attempt has ended. Please start again.")
