"""Provider error codes and the user-facing messages they map to."""

from __future__ import annotations

from enum import StrEnum


class ProviderErrorCode(StrEnum):
    """Client-visible `auth/*` codes raised by the phone-auth provider."""

    INVALID_PHONE_NUMBER = "auth/invalid-phone-number"
    TOO_MANY_REQUESTS = "auth/too-many-requests"
    QUOTA_EXCEEDED = "auth/quota-exceeded"
    CAPTCHA_CHECK_FAILED = "auth/captcha-check-failed"
    OPERATION_NOT_ALLOWED = "auth/operation-not-allowed"
    NETWORK_REQUEST_FAILED = "auth/network-request-failed"
    INTERNAL_ERROR = "auth/internal-error"
    INVALID_VERIFICATION_CODE = "auth/invalid-verification-code"
    INVALID_VERIFICATION_ID = "auth/invalid-verification-id"
    CODE_EXPIRED = "auth/code-expired"
    CREDENTIAL_ALREADY_IN_USE = "auth/credential-already-in-use"
    ARGUMENT_ERROR = "auth/argument-error"


# Errors after which the challenge instance can no longer be reused.
CHALLENGE_POISONING_CODES: frozenset[str] = frozenset(
    {
        ProviderErrorCode.CAPTCHA_CHECK_FAILED,
        ProviderErrorCode.INTERNAL_ERROR,
    },
)

SEND_FAILED_MESSAGE = "Failed to send OTP. Please try again."
VERIFY_FAILED_MESSAGE = "OTP verification failed. Please try again."

_SEND_MESSAGES: dict[str, str] = {
    ProviderErrorCode.INVALID_PHONE_NUMBER: (
        "Invalid phone number format. Please check and try again."
    ),
    ProviderErrorCode.TOO_MANY_REQUESTS: "Too many attempts. Please try again later.",
    ProviderErrorCode.QUOTA_EXCEEDED: (
        "We're experiencing high demand. Please try again in a few minutes."
    ),
    ProviderErrorCode.CAPTCHA_CHECK_FAILED: "Security check failed. Please try again.",
    ProviderErrorCode.OPERATION_NOT_ALLOWED: (
        "Phone sign-in is not enabled. Please contact support."
    ),
    ProviderErrorCode.NETWORK_REQUEST_FAILED: (
        "Network error. Please check your connection and try again."
    ),
    ProviderErrorCode.INTERNAL_ERROR: (
        "Authentication service error. Please refresh the page and try again."
    ),
}

_VERIFY_MESSAGES: dict[str, str] = {
    ProviderErrorCode.INVALID_VERIFICATION_CODE: (
        "Invalid verification code. Please check and try again."
    ),
    ProviderErrorCode.CODE_EXPIRED: (
        "Verification code has expired. Please request a new one."
    ),
    ProviderErrorCode.CREDENTIAL_ALREADY_IN_USE: (
        "This phone number is already associated with another account."
    ),
    ProviderErrorCode.NETWORK_REQUEST_FAILED: (
        "Network error. Please check your connection and try again."
    ),
    ProviderErrorCode.INTERNAL_ERROR: "Verification service error. Please try again.",
}


def send_error_message(code: str) -> str:
    """Return the message shown when an OTP send fails with `code`."""
    return _SEND_MESSAGES.get(code, SEND_FAILED_MESSAGE)


def verify_error_message(code: str) -> str:
    """Return the message shown when OTP confirmation fails with `code`."""
    return _VERIFY_MESSAGES.get(code, VERIFY_FAILED_MESSAGE)


def poisons_challenge(code: str) -> bool:
    """Return True when `code` means the current challenge must be recreated."""
    return code in CHALLENGE_POISONING_CODES
