"""
Operation context: deadline and cancellation carried into every call.

The context is checked by the live backend before each operation starts.
Nothing here enforces a timeout on a statement that is already running.
"""

from __future__ import annotations

import threading
from time import monotonic
from typing import Optional

from repowrap.core.exceptions import (
    ContextError,
    DeadlineExceededError,
    OperationCancelledError,
)


class OperationContext:
    """
    Deadline plus cancellation flag.

    Usage:
        ctx = OperationContext.with_timeout(2.5)
        repo.find(ctx, Widget.name == "x")

        # from another thread
        ctx.cancel()
    """

    def __init__(self, deadline: Optional[float] = None):
        self.deadline = deadline
        self._cancelled = threading.Event()

    @classmethod
    def background(cls) -> OperationContext:
        """A context that never expires and is never cancelled."""
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float) -> OperationContext:
        return cls(deadline=monotonic() + seconds)

    @classmethod
    def with_deadline(cls, deadline: float) -> OperationContext:
        """Build a context from an absolute ``time.monotonic()`` value."""
        return cls(deadline=deadline)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when unbounded."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - monotonic())

    def err(self) -> Optional[ContextError]:
        """Return why the context is done, or None while it is still usable."""
        if self._cancelled.is_set():
            return OperationCancelledError()
        if self.deadline is not None and monotonic() >= self.deadline:
            return DeadlineExceededError()
        return None

    def __repr__(self) -> str:
        return f"<OperationContext(deadline={self.deadline}, cancelled={self.cancelled})>"
