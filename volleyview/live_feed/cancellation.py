"""
Cooperative cancellation for poll cycles.

Each cycle owns one token. Starting the next cycle cancels the previous
token; in-flight work checks it before publishing anything.
"""
import threading

from .errors import FetchCancelled


class CancellationToken:
    """One-shot cancellation signal shared between a cycle and its fetch."""

    def __init__(self, label: str = ""):
        self.label = label
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise FetchCancelled(f"Cycle {self.label or '?'} was cancelled")

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"CancellationToken({self.label!r}, {state})"
