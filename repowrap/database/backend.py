"""
Backend handles
===============

A backend handle is the object the session wrapper delegates to. Every
operation returns a new handle whose ``error`` slot carries the outcome of
that operation and nothing else; failures are never raised from here.

Two shapes are provided:

- ``BackendHandle``: the bare error-bearing shape. Performs no I/O, every
  operation succeeds. Recording sessions hold one of these so tests can
  program the slot.
- ``SessionBackend``: the SQLAlchemy implementation over an ORM ``Session``.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence, Tuple

from sqlalchemy import delete as sa_delete
from sqlalchemy import inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, SessionTransaction
from sqlalchemy.sql.elements import ClauseElement

from repowrap.core.constants import Operation
from repowrap.core.context import OperationContext
from repowrap.core.exceptions import (
    InvalidConditionError,
    MissingConditionsError,
    RecordNotFoundError,
    RepositoryError,
    TransactionStateError,
)
from repowrap.core.logging import get_logger
from repowrap.database.results import Row, Rows
from repowrap.models.base import identity_of, primary_key_columns

logger = get_logger(__name__)


class BackendHandle:
    """
    Error-bearing backend handle with no storage behind it.

    Attributes:
        error: Outcome of the operation that produced this handle
            (None on success). Read it immediately after the call.
    """

    def __init__(self, error: Optional[BaseException] = None):
        self.error = error

    def create(self, value: Any) -> BackendHandle:
        return BackendHandle()

    def find(self, rows: Rows, *conditions: Any) -> BackendHandle:
        return BackendHandle()

    def first(self, row: Row, *conditions: Any) -> BackendHandle:
        return BackendHandle()

    def save(self, value: Any) -> BackendHandle:
        return BackendHandle()

    def delete(self, value: Any, *conditions: Any) -> BackendHandle:
        return BackendHandle()

    def with_context(self, ctx: Optional[OperationContext]) -> BackendHandle:
        return BackendHandle()

    def begin(self) -> BackendHandle:
        return BackendHandle()

    def commit(self) -> BackendHandle:
        return BackendHandle()

    def rollback(self) -> BackendHandle:
        return BackendHandle()

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(error={self.error!r})>"


class SessionBackend(BackendHandle):
    """
    Backend handle over a SQLAlchemy ORM session.

    Outside an explicit transaction every operation is its own unit of work
    and is committed (or rolled back) before the handle is returned. Inside
    a transaction operations only flush; the transaction decides.

    Nested begin() calls open SAVEPOINTs. The open transactions are kept as
    a stack on the handle; commit() and rollback() close the innermost one.

    Example:
        backend = SessionBackend(session)
        result = backend.create(Widget(name="bolt"))
        if result.error is not None:
            ...
    """

    def __init__(
        self,
        session: Session,
        context: Optional[OperationContext] = None,
        transactions: Sequence[SessionTransaction] = (),
        error: Optional[BaseException] = None,
    ):
        super().__init__(error)
        self.session = session
        self.context = context
        self.transactions: Tuple[SessionTransaction, ...] = tuple(transactions)

    @property
    def in_transaction(self) -> bool:
        return bool(self.transactions)

    def _derive(
        self,
        error: Optional[BaseException] = None,
        transactions: Optional[Sequence[SessionTransaction]] = None,
    ) -> SessionBackend:
        if transactions is None:
            transactions = self.transactions
        return SessionBackend(self.session, self.context, transactions, error)

    def _context_error(self) -> Optional[BaseException]:
        if self.context is None:
            return None
        return self.context.err()

    def _run(self, operation: Operation, action: Callable[[], None]) -> SessionBackend:
        error = self._context_error()
        if error is not None:
            logger.debug("%s not started: %s", operation.value, error)
            return self._derive(error)

        try:
            action()
            if not self.in_transaction:
                self.session.commit()
        except (SQLAlchemyError, RepositoryError) as exc:
            if not self.in_transaction:
                self.session.rollback()
            logger.debug("%s failed: %s", operation.value, exc)
            return self._derive(exc)
        return self._derive()

    # ========================================
    # Conditions
    # ========================================

    def _where(self, model: type, conditions: Sequence[Any]) -> List[ClauseElement]:
        """
        Turn conditions into WHERE clauses for ``model``.

        Accepted forms:
            Widget.name == "bolt"     SQL expression, used as-is
            {"name": "bolt"}          column equality by attribute name
            7                         primary key value
            [1, 2, 3]                 primary key IN (...)

        Raw SQL strings are rejected; wrap them in ``text()``. A string
        primary key goes in a dict condition.
        """
        mapper = inspect(model)
        clauses: List[ClauseElement] = []
        for condition in conditions:
            if isinstance(condition, ClauseElement):
                clauses.append(condition)
            elif isinstance(condition, dict):
                for key, value in condition.items():
                    column = mapper.columns.get(key)
                    if column is None:
                        raise InvalidConditionError(
                            f"{model.__name__} has no column '{key}'"
                        )
                    clauses.append(column == value)
            elif isinstance(condition, (str, bytes)):
                raise InvalidConditionError(
                    f"string condition {condition!r} for {model.__name__}; "
                    "use text(), an expression or a dict condition"
                )
            else:
                pk = primary_key_columns(model)
                if len(pk) != 1:
                    raise InvalidConditionError(
                        f"{model.__name__} has a composite primary key; "
                        "use an expression or a dict condition"
                    )
                if isinstance(condition, (list, tuple, set, frozenset)):
                    clauses.append(pk[0].in_(list(condition)))
                else:
                    clauses.append(pk[0] == condition)
        return clauses

    # ========================================
    # Record Operations
    # ========================================

    def create(self, value: Any) -> SessionBackend:
        def action() -> None:
            self.session.add(value)
            self.session.flush()

        return self._run(Operation.CREATE, action)

    def find(self, rows: Rows, *conditions: Any) -> SessionBackend:
        def action() -> None:
            stmt = select(rows.model).where(*self._where(rows.model, conditions))
            rows.extend(self.session.scalars(stmt).all())

        return self._run(Operation.FIND, action)

    def first(self, row: Row, *conditions: Any) -> SessionBackend:
        def action() -> None:
            stmt = (
                select(row.model)
                .where(*self._where(row.model, conditions))
                .order_by(*primary_key_columns(row.model))
                .limit(1)
            )
            value = self.session.scalars(stmt).first()
            if value is None:
                raise RecordNotFoundError(row.model, tuple(conditions))
            row.value = value

        return self._run(Operation.FIRST, action)

    def save(self, value: Any) -> SessionBackend:
        def action() -> None:
            if identity_of(value) is None:
                self.session.add(value)
            else:
                self.session.merge(value)
            self.session.flush()

        return self._run(Operation.SAVE, action)

    def delete(self, value: Any, *conditions: Any) -> SessionBackend:
        def action() -> None:
            model = type(value)
            clauses = self._where(model, conditions)
            identity = identity_of(value)
            if identity is not None:
                clauses.extend(
                    column == key
                    for column, key in zip(primary_key_columns(model), identity)
                )
            if not clauses:
                raise MissingConditionsError(model)
            self.session.execute(sa_delete(model).where(*clauses))

        return self._run(Operation.DELETE, action)

    def with_context(self, ctx: Optional[OperationContext]) -> SessionBackend:
        return SessionBackend(self.session, ctx, self.transactions)

    # ========================================
    # Transactions
    # ========================================

    def begin(self) -> SessionBackend:
        error = self._context_error()
        if error is not None:
            return self._derive(error)

        try:
            if self.in_transaction:
                transaction = self.session.begin_nested()
            else:
                transaction = self.session.begin()
        except SQLAlchemyError as exc:
            logger.debug("begin failed: %s", exc)
            return self._derive(exc)
        return self._derive(transactions=self.transactions + (transaction,))

    def commit(self) -> SessionBackend:
        if not self.in_transaction:
            return self._derive(TransactionStateError("commit called outside a transaction"))

        transaction, remaining = self.transactions[-1], self.transactions[:-1]
        try:
            transaction.commit()
        except SQLAlchemyError as exc:
            logger.debug("commit failed: %s", exc)
            # A failed commit must not leave the transaction open.
            try:
                transaction.rollback()
            except SQLAlchemyError as rollback_exc:
                logger.error("rollback after failed commit also failed: %s", rollback_exc)
            return self._derive(exc, transactions=remaining)
        return self._derive(transactions=remaining)

    def rollback(self) -> SessionBackend:
        if not self.in_transaction:
            return self._derive(TransactionStateError("rollback called outside a transaction"))

        transaction, remaining = self.transactions[-1], self.transactions[:-1]
        try:
            transaction.rollback()
        except SQLAlchemyError as exc:
            logger.debug("rollback failed: %s", exc)
            return self._derive(exc, transactions=remaining)
        return self._derive(transactions=remaining)

    def __repr__(self) -> str:
        return (
            f"<SessionBackend(depth={len(self.transactions)}, "
            f"error={self.error!r})>"
        )
