"""OperationContext deadline and cancellation."""

import threading
from time import monotonic

from repowrap.core.context import OperationContext
from repowrap.core.exceptions import (
    ContextError,
    DeadlineExceededError,
    OperationCancelledError,
)


def test_background_context_never_expires():
    ctx = OperationContext.background()

    assert ctx.err() is None
    assert ctx.remaining() is None
    assert not ctx.cancelled


def test_timeout_reports_remaining_time():
    ctx = OperationContext.with_timeout(60)

    assert ctx.err() is None
    assert 0 < ctx.remaining() <= 60


def test_past_deadline_is_exceeded():
    ctx = OperationContext.with_deadline(monotonic() - 0.5)

    assert isinstance(ctx.err(), DeadlineExceededError)
    assert ctx.remaining() == 0.0


def test_cancel_from_another_thread():
    ctx = OperationContext.with_timeout(60)
    worker = threading.Thread(target=ctx.cancel)
    worker.start()
    worker.join()

    error = ctx.err()
    assert isinstance(error, OperationCancelledError)
    assert isinstance(error, ContextError)
    assert ctx.cancelled
