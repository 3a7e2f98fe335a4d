"""Cooperative cancellation for generation runs."""

from __future__ import annotations

import asyncio

from cognigen.pipeline.errors import GenerationCancelledError


class CancellationToken:
    """Flag checked by the pipeline at stage boundaries and before each call.

    Cancellation is cooperative: work already in flight finishes, and the run
    stops at the next checkpoint.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    def cancel(self, reason: str = "cancelled by caller") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self, checkpoint: str) -> None:
        """Raise GenerationCancelledError if the token was cancelled.

        Args:
            checkpoint: Name of the point reached, reported in error details
        """
        if self._event.is_set():
            raise GenerationCancelledError(
                self.reason or "cancelled", {"checkpoint": checkpoint}
            )
