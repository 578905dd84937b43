"""Tests for the six-cell OTP buffer."""

from __future__ import annotations

import pytest

from phone_signin.errors import OtpValidationError
from phone_signin.signin import OTP_LENGTH, OtpBuffer


def test_new_buffer_is_empty_and_incomplete() -> None:
    """Ensure a fresh buffer has six empty cells."""
    buffer = OtpBuffer()

    if buffer.cells != ("",) * OTP_LENGTH:
        raise AssertionError
    if buffer.is_complete:
        raise AssertionError


@pytest.mark.parametrize(
    ("index", "value"),
    [(0, "a"), (0, "12"), (0, " "), (-1, "1"), (OTP_LENGTH, "1")],
)
def test_set_digit_rejects_invalid_input(index: int, value: str) -> None:
    """Ensure non-digits and out-of-range indexes leave cells unchanged."""
    buffer = OtpBuffer()

    if buffer.set_digit(index, value):
        raise AssertionError
    if buffer.cells != ("",) * OTP_LENGTH:
        raise AssertionError


def test_set_digit_writes_and_clears_cell() -> None:
    """Ensure one digit or an empty string is accepted."""
    buffer = OtpBuffer()

    if not buffer.set_digit(3, "4"):
        raise AssertionError
    if buffer.cells[3] != "4":
        raise AssertionError
    if not buffer.set_digit(3, ""):
        raise AssertionError
    if buffer.cells[3] != "":
        raise AssertionError


def test_code_requires_every_cell() -> None:
    """Ensure a partial code raises the otp field error."""
    buffer = OtpBuffer()
    for index, digit in enumerate("12345"):
        _ = buffer.set_digit(index, digit)

    with pytest.raises(OtpValidationError) as exc_info:
        _ = buffer.code()

    if exc_info.value.field != "otp":
        raise AssertionError


def test_paste_fills_buffer_and_clear_empties_it() -> None:
    """Ensure a valid paste produces the joined code."""
    buffer = OtpBuffer()

    if not buffer.paste("\t987654 "):
        raise AssertionError
    if not buffer.is_complete or buffer.code() != "987654":
        raise AssertionError

    buffer.clear()
    if buffer.cells != ("",) * OTP_LENGTH:
        raise AssertionError


@pytest.mark.parametrize("text", ["98765", "9876543", "98a654", "98 7654", ""])
def test_paste_rejects_anything_but_six_digits(text: str) -> None:
    """Ensure malformed pastes leave the previous cells in place."""
    buffer = OtpBuffer()
    _ = buffer.set_digit(0, "1")

    if buffer.paste(text):
        raise AssertionError
    if buffer.cells != ("1", "", "", "", "", ""):
        raise AssertionError
