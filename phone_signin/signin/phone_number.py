"""National phone number validation and international formatting."""

from __future__ import annotations

import re

from phone_signin.config.settings import DEFAULT_COUNTRY_CODE
from phone_signin.errors import PhoneValidationError

NATIONAL_NUMBER_LENGTH = 10
NATIONAL_NUMBER_PATTERN = re.compile(r"[6-9][0-9]{9}")

_NON_DIGITS = re.compile(r"[^0-9]")
_NON_DIALABLE = re.compile(r"[^0-9+]")


def sanitize_phone_input(raw: str) -> str:
    """Keep only digits, truncated to the national number length."""
    return _NON_DIGITS.sub("", raw)[:NATIONAL_NUMBER_LENGTH]


def validate_phone_number(value: str) -> str:
    """Return `value` when it is a valid national number, else raise."""
    if not value:
        raise PhoneValidationError.required()
    if NATIONAL_NUMBER_PATTERN.fullmatch(value) is None:
        raise PhoneValidationError.invalid_format()
    return value


def to_international(phone: str, country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """Format `phone` for the provider; numbers already starting with `+` pass."""
    formatted = _NON_DIALABLE.sub("", phone.strip())
    if formatted.startswith("+"):
        return formatted
    return f"{country_code}{formatted}"
