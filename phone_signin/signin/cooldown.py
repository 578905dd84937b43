"""Resend countdown ticking once per second."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from phone_signin.challenge.manager import Sleep

RESEND_COOLDOWN_SECONDS = 60
TICK_SECONDS = 1.0


@dataclass(slots=True)
class CooldownTimer:
    """Seconds remaining before a resend is permitted; floors at zero."""

    duration_seconds: int = RESEND_COOLDOWN_SECONDS
    sleep: Sleep = asyncio.sleep
    _remaining: int = 0
    _task: asyncio.Task[None] | None = None

    @property
    def remaining(self) -> int:
        """Return whole seconds left on the countdown."""
        return self._remaining

    @property
    def running(self) -> bool:
        """Return True while the ticking task is alive."""
        return self._task is not None and not self._task.done()

    def restart(self) -> None:
        """Start over from the full duration, replacing any running countdown."""
        self.cancel()
        self._remaining = self.duration_seconds
        self._task = asyncio.create_task(self._run())

    def cancel(self) -> None:
        """Stop ticking and keep the current remaining value."""
        task = self._task
        self._task = None
        if task is not None and not task.done():
            _ = task.cancel()

    def reset(self) -> None:
        """Stop ticking and clear the countdown to zero."""
        self.cancel()
        self._remaining = 0

    async def _run(self) -> None:
        try:
            while self._remaining > 0:
                await self.sleep(TICK_SECONDS)
                self._remaining = max(0, self._remaining - 1)
        finally:
            if self._task is asyncio.current_task():
                self._task = None
