"""
Database Session Wrapper
========================

One wrapper contract, two execution modes:

- ``LiveSession`` forwards every call to a backend handle and keeps the
  handle the backend returned.
- ``RecordingSession`` records every call on a call recorder (a
  ``unittest.mock.Mock``) and returns whatever was programmed, without I/O.

Calling code is written once against ``DBSession`` and never checks which
mode it is in. Every operation returns the wrapper itself so calls chain:

    error = db.with_context(ctx).create(widget).get_backend().error

The wrapper never raises for a backend failure. Read
``get_backend().error`` after each logical operation, or use a repository,
which does that for you.

A wrapper is not safe to share between concurrent callers: each call
replaces its stored handle in place.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Generator, Optional, TypeVar
from unittest.mock import Mock

from repowrap.core.constants import Operation, TERMINAL_STATES, TransactionState
from repowrap.core.context import OperationContext
from repowrap.core.exceptions import TransactionStateError
from repowrap.core.logging import get_logger
from repowrap.database.backend import BackendHandle
from repowrap.database.results import Row, Rows

logger = get_logger(__name__)

R = TypeVar("R")


class DBSession(ABC):
    """Contract shared by the live and recording session wrappers."""

    @abstractmethod
    def create(self, value: Any) -> DBSession:
        pass

    @abstractmethod
    def find(self, rows: Rows, *conditions: Any) -> DBSession:
        pass

    @abstractmethod
    def first(self, row: Row, *conditions: Any) -> DBSession:
        pass

    @abstractmethod
    def save(self, value: Any) -> DBSession:
        pass

    @abstractmethod
    def delete(self, value: Any, *conditions: Any) -> DBSession:
        pass

    @abstractmethod
    def with_context(self, ctx: Optional[OperationContext]) -> DBSession:
        pass

    @abstractmethod
    def begin(self) -> DBSession:
        """Open a transaction and return the wrapper scoped to it."""
        pass

    @abstractmethod
    def commit(self) -> DBSession:
        pass

    @abstractmethod
    def rollback(self) -> DBSession:
        pass

    @abstractmethod
    def get_backend(self) -> BackendHandle:
        """Return the current handle; its ``error`` is the last call's outcome."""
        pass

    def transaction(self, fn: Callable[[DBSession], R]) -> R:
        """
        Run ``fn`` inside a transaction.

        Commits when ``fn`` returns, rolls back when it raises. Exactly one
        of the two is issued per run. ``fn``'s exception is re-raised as the
        same object; a failing rollback is logged and attached to it as a
        note. A failing begin or commit raises the backend's error.

        Args:
            fn: Receives the transaction-scoped wrapper.

        Returns:
            Whatever ``fn`` returned.

        Example:
            def transfer(tx):
                repo = new_repository(Account, tx)
                repo.save(ctx, debit)
                repo.save(ctx, credit)

            db.transaction(transfer)
        """
        return TransactionController(self).run(fn)

    @contextmanager
    def transaction_scope(self) -> Generator[DBSession, None, None]:
        """
        Context manager form of ``transaction``.

        Usage:
            with db.transaction_scope() as tx:
                new_repository(Widget, tx).create(ctx, widget)
        """
        with TransactionController(self).scope() as tx:
            yield tx


class LiveSession(DBSession):
    """Wrapper that forwards every call to a backend handle."""

    def __init__(self, backend: BackendHandle):
        self.backend = backend

    def create(self, value: Any) -> LiveSession:
        self.backend = self.backend.create(value)
        return self

    def find(self, rows: Rows, *conditions: Any) -> LiveSession:
        self.backend = self.backend.find(rows, *conditions)
        return self

    def first(self, row: Row, *conditions: Any) -> LiveSession:
        self.backend = self.backend.first(row, *conditions)
        return self

    def save(self, value: Any) -> LiveSession:
        self.backend = self.backend.save(value)
        return self

    def delete(self, value: Any, *conditions: Any) -> LiveSession:
        self.backend = self.backend.delete(value, *conditions)
        return self

    def with_context(self, ctx: Optional[OperationContext]) -> LiveSession:
        self.backend = self.backend.with_context(ctx)
        return self

    def begin(self) -> LiveSession:
        # The parent keeps its own handle; the transaction gets a new wrapper.
        return LiveSession(self.backend.begin())

    def commit(self) -> LiveSession:
        self.backend = self.backend.commit()
        return self

    def rollback(self) -> LiveSession:
        self.backend = self.backend.rollback()
        return self

    def get_backend(self) -> BackendHandle:
        return self.backend

    def __repr__(self) -> str:
        return f"<LiveSession(backend={self.backend!r})>"


class RecordingSession(DBSession):
    """
    Test double wrapper: records calls, performs no I/O.

    Each operation calls the same-named attribute of ``recorder`` with the
    call's arguments. Conditions are recorded as a single tuple argument.
    A ``BackendHandle`` returned by the recorder replaces the stored
    handle; any other return value is ignored. ``side_effect`` functions may
    also set ``session.backend.error`` directly.

    begin() returns the same wrapper, so calls made inside a transaction
    land on the same recorder.

    Example:
        db = RecordingSession()
        db.fail(Operation.CREATE, IOError("disk full"))

        repo = new_repository(Widget, db)
        with pytest.raises(IOError):
            repo.create(ctx, Widget(name="bolt"))
        db.recorder.create.assert_called_once()
    """

    def __init__(
        self,
        recorder: Optional[Mock] = None,
        backend: Optional[BackendHandle] = None,
    ):
        self.recorder = recorder if recorder is not None else Mock()
        self.backend = backend if backend is not None else BackendHandle()

    def _record(self, operation: Operation, *args: Any) -> RecordingSession:
        outcome = getattr(self.recorder, operation.value)(*args)
        if isinstance(outcome, BackendHandle):
            self.backend = outcome
        return self

    def create(self, value: Any) -> RecordingSession:
        return self._record(Operation.CREATE, value)

    def find(self, rows: Rows, *conditions: Any) -> RecordingSession:
        return self._record(Operation.FIND, rows, conditions)

    def first(self, row: Row, *conditions: Any) -> RecordingSession:
        return self._record(Operation.FIRST, row, conditions)

    def save(self, value: Any) -> RecordingSession:
        return self._record(Operation.SAVE, value)

    def delete(self, value: Any, *conditions: Any) -> RecordingSession:
        return self._record(Operation.DELETE, value, conditions)

    def with_context(self, ctx: Optional[OperationContext]) -> RecordingSession:
        return self._record(Operation.WITH_CONTEXT, ctx)

    def begin(self) -> RecordingSession:
        return self._record(Operation.BEGIN)

    def commit(self) -> RecordingSession:
        return self._record(Operation.COMMIT)

    def rollback(self) -> RecordingSession:
        return self._record(Operation.ROLLBACK)

    def get_backend(self) -> BackendHandle:
        return self.backend

    def fail(self, operation: Operation, error: BaseException) -> None:
        """Program ``operation`` to put ``error`` in the error slot when called."""

        def set_error(*args: Any) -> None:
            self.backend.error = error

        getattr(self.recorder, Operation(operation).value).side_effect = set_error

    def reset(self) -> None:
        """Drop all recorded calls and programming, clear the error slot."""
        self.recorder = Mock()
        self.backend = BackendHandle()

    def __repr__(self) -> str:
        return f"<RecordingSession(backend={self.backend!r})>"


class TransactionController:
    """
    Drives one begin -> commit | rollback cycle on a wrapper.

    States: IDLE -> ACTIVE -> COMMITTED | ROLLED_BACK. A controller is
    single use; create a new one per transaction.

    Attributes:
        db: Wrapper the transaction is opened on
        state: Current TransactionState
        handle: Transaction-scoped wrapper (None until begin succeeds)
    """

    def __init__(self, db: DBSession):
        self.db = db
        self.state = TransactionState.IDLE
        self.handle: Optional[DBSession] = None

    def begin(self) -> DBSession:
        """Open the transaction. Raises the backend error if it cannot be opened."""
        if self.state is not TransactionState.IDLE:
            raise TransactionStateError(f"cannot begin from state '{self.state.value}'")

        handle = self.db.begin()
        error = handle.get_backend().error
        if error is not None:
            logger.debug("transaction not opened: %s", error)
            raise error

        self.handle = handle
        self.state = TransactionState.ACTIVE
        logger.debug("transaction opened")
        return handle

    def commit(self) -> None:
        """Commit. Raises the backend error if the commit failed."""
        handle = self._finish(TransactionState.COMMITTED)
        error = self._outcome(handle, handle.commit)
        if error is not None:
            logger.debug("commit failed: %s", error)
            raise error
        logger.debug("transaction committed")

    def rollback(self) -> Optional[BaseException]:
        """Roll back. Returns the rollback's own error instead of raising it."""
        handle = self._finish(TransactionState.ROLLED_BACK)
        error = self._outcome(handle, handle.rollback)
        logger.debug("transaction rolled back")
        return error

    @staticmethod
    def _outcome(handle: DBSession, call: Callable[[], DBSession]) -> Optional[BaseException]:
        # An error already in the slot belongs to an earlier operation.
        stale = handle.get_backend().error
        error = call().get_backend().error
        if error is stale:
            return None
        return error

    def _finish(self, state: TransactionState) -> DBSession:
        if self.state is not TransactionState.ACTIVE or self.handle is None:
            raise TransactionStateError(
                f"cannot move to '{state.value}' from state '{self.state.value}'"
            )
        self.state = state
        return self.handle

    def _abort(self, exc: BaseException) -> None:
        rollback_error = self.rollback()
        if rollback_error is not None:
            logger.error("rollback failed after %r: %s", exc, rollback_error)
            exc.add_note(f"rollback also failed: {rollback_error!r}")

    def run(self, fn: Callable[[DBSession], R]) -> R:
        tx = self.begin()
        try:
            result = fn(tx)
        except BaseException as exc:
            self._abort(exc)
            raise
        self.commit()
        return result

    @contextmanager
    def scope(self) -> Generator[DBSession, None, None]:
        tx = self.begin()
        try:
            yield tx
        except BaseException as exc:
            self._abort(exc)
            raise
        self.commit()

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def __repr__(self) -> str:
        return f"<TransactionController(state={self.state.value})>"
