"""Cooperative cancellation for long-running generation."""

from __future__ import annotations

import threading

from ddl2data.exceptions import GenerationCancelled


class CancellationToken:
    """Flag observed at suspension points of a running job.

    Setting it never interrupts an in-flight call; the owner checks it once
    the call settles.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise GenerationCancelled once cancellation was requested."""
        if self._event.is_set():
            raise GenerationCancelled("Generation cancelled")

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
