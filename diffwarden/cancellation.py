"""External abort signal for a review run."""
from __future__ import annotations

import asyncio

from .errors import RunCancelledError


class CancellationToken:
    """Token to signal cancellation of an operation."""

    def __init__(self) -> None:
        self._cancelled = False
        self._event = asyncio.Event()

    def cancel(self) -> None:
        """Signal cancellation."""
        self._cancelled = True
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    async def wait(self) -> None:
        """Wait until cancellation is signalled."""
        await self._event.wait()

    def check(self) -> None:
        """Raise RunCancelledError if cancelled."""
        if self._cancelled:
            raise RunCancelledError("Run cancelled")
