"""Fixed-length buffer for the digits of a one-time passcode."""

from __future__ import annotations

import re

from phone_signin.errors import OtpValidationError

OTP_LENGTH = 6

_CELL_PATTERN = re.compile(r"[0-9]?")
_CODE_PATTERN = re.compile(rf"[0-9]{{{OTP_LENGTH}}}")


class OtpBuffer:
    """Six cells, each holding one decimal digit or nothing."""

    __slots__ = ("_cells",)

    _cells: list[str]

    def __init__(self) -> None:
        """Create an empty buffer."""
        self._cells = [""] * OTP_LENGTH

    @property
    def cells(self) -> tuple[str, ...]:
        """Return a snapshot of all cells."""
        return tuple(self._cells)

    @property
    def is_complete(self) -> bool:
        """Return True when every cell holds a digit."""
        return all(self._cells)

    def set_digit(self, index: int, value: str) -> bool:
        """Write one digit (or clear with "") at `index`; reject anything else."""
        if not 0 <= index < OTP_LENGTH:
            return False
        if _CELL_PATTERN.fullmatch(value) is None:
            return False
        self._cells[index] = value
        return True

    def paste(self, text: str) -> bool:
        """Replace every cell from exactly six pasted digits."""
        candidate = text.strip()
        if _CODE_PATTERN.fullmatch(candidate) is None:
            return False
        self._cells = list(candidate)
        return True

    def clear(self) -> None:
        """Empty every cell."""
        self._cells = [""] * OTP_LENGTH

    def code(self) -> str:
        """Return the joined code, raising when any cell is empty."""
        if not self.is_complete:
            raise OtpValidationError.incomplete()
        return "".join(self._cells)
