"""Tests for provider error-code message mapping."""

from __future__ import annotations

import pytest

from phone_signin.provider import (
    SEND_FAILED_MESSAGE,
    VERIFY_FAILED_MESSAGE,
    ProviderErrorCode,
    poisons_challenge,
    send_error_message,
    verify_error_message,
)


@pytest.mark.parametrize(
    ("code", "message"),
    [
        (
            ProviderErrorCode.INVALID_PHONE_NUMBER,
            "Invalid phone number format. Please check and try again.",
        ),
        (ProviderErrorCode.TOO_MANY_REQUESTS, "Too many attempts. Please try again later."),
        (
            ProviderErrorCode.QUOTA_EXCEEDED,
            "We're experiencing high demand. Please try again in a few minutes.",
        ),
        (ProviderErrorCode.CAPTCHA_CHECK_FAILED, "Security check failed. Please try again."),
        (
            ProviderErrorCode.OPERATION_NOT_ALLOWED,
            "Phone sign-in is not enabled. Please contact support.",
        ),
        (
            ProviderErrorCode.NETWORK_REQUEST_FAILED,
            "Network error. Please check your connection and try again.",
        ),
        (
            ProviderErrorCode.INTERNAL_ERROR,
            "Authentication service error. Please refresh the page and try again.",
        ),
    ],
)
def test_send_error_messages(code: ProviderErrorCode, message: str) -> None:
    """Ensure each send-side code has its user-facing message."""
    if send_error_message(code) != message:
        raise AssertionError


@pytest.mark.parametrize(
    ("code", "message"),
    [
        (
            ProviderErrorCode.INVALID_VERIFICATION_CODE,
            "Invalid verification code. Please check and try again.",
        ),
        (
            ProviderErrorCode.CODE_EXPIRED,
            "Verification code has expired. Please request a new one.",
        ),
        (
            ProviderErrorCode.CREDENTIAL_ALREADY_IN_USE,
            "This phone number is already associated with another account.",
        ),
        (ProviderErrorCode.INTERNAL_ERROR, "Verification service error. Please try again."),
    ],
)
def test_verify_error_messages(code: ProviderErrorCode, message: str) -> None:
    """Ensure each verify-side code has its user-facing message."""
    if verify_error_message(code) != message:
        raise AssertionError


def test_unknown_codes_fall_back_to_generic_messages() -> None:
    """Ensure unmapped codes still produce a displayable message."""
    if send_error_message("auth/unknown") != SEND_FAILED_MESSAGE:
        raise AssertionError
    if verify_error_message("auth/unknown") != VERIFY_FAILED_MESSAGE:
        raise AssertionError


def test_only_captcha_and_internal_errors_poison_challenge() -> None:
    """Ensure re-creation is limited to errors that break the challenge."""
    poisoning = {code for code in ProviderErrorCode if poisons_challenge(code)}

    if poisoning != {
        ProviderErrorCode.CAPTCHA_CHECK_FAILED,
        ProviderErrorCode.INTERNAL_ERROR,
    }:
        raise AssertionError
