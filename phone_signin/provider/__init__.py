"""Phone-auth provider contract and implementations."""

from .codes import (
    CHALLENGE_POISONING_CODES,
    SEND_FAILED_MESSAGE,
    VERIFY_FAILED_MESSAGE,
    ProviderErrorCode,
    poisons_challenge,
    send_error_message,
    verify_error_message,
)
from .contracts import Challenge, Credential, PendingConfirmation, PhoneAuthProvider
from .identity_toolkit import IdentityToolkitPhoneAuthProvider

__all__ = [
    "CHALLENGE_POISONING_CODES",
    "SEND_FAILED_MESSAGE",
    "VERIFY_FAILED_MESSAGE",
    "Challenge",
    "Credential",
    "IdentityToolkitPhoneAuthProvider",
    "PendingConfirmation",
    "PhoneAuthProvider",
    "ProviderErrorCode",
    "poisons_challenge",
    "send_error_message",
    "verify_error_message",
]
