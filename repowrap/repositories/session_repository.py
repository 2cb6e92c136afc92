"""
Session-backed repository.

Binds one mapped entity class to a session wrapper. Works the same over a
LiveSession and a RecordingSession; the repository never knows which.
"""

from typing import Any, List, Optional, Type

from repowrap.core.context import OperationContext
from repowrap.database.results import Row, Rows
from repowrap.database.wrapper import DBSession
from repowrap.repositories.base import Repository, T


class SessionRepository(Repository[T]):
    """
    Repository for one entity class over a session wrapper.

    Each operation is one round trip: apply the context, forward, then
    raise the error slot if it is set. The raised object is the slot's own
    object, never a wrapper around it.

    Attributes:
        model: Mapped entity class
        db: Session wrapper calls are forwarded to

    Example:
        repo = SessionRepository(Widget, db)
        repo.create(ctx, Widget(name="bolt"))
        bolts = repo.find(ctx, Widget.name == "bolt")
    """

    def __init__(self, model: Type[T], db: DBSession):
        self.model = model
        self.db = db

    def _scoped(self, ctx: Optional[OperationContext]) -> DBSession:
        if ctx is None:
            ctx = OperationContext.background()
        return self.db.with_context(ctx)

    def _raise_for_error(self, db: DBSession) -> None:
        error = db.get_backend().error
        if error is not None:
            raise error

    def create(self, ctx: Optional[OperationContext], obj: T) -> None:
        self._raise_for_error(self._scoped(ctx).create(obj))

    def find(self, ctx: Optional[OperationContext], *conditions: Any) -> List[T]:
        rows: Rows[T] = Rows(self.model)
        self._raise_for_error(self._scoped(ctx).find(rows, *conditions))
        return list(rows)

    def first(self, ctx: Optional[OperationContext], *conditions: Any) -> T:
        row: Row[T] = Row(self.model)
        self._raise_for_error(self._scoped(ctx).first(row, *conditions))
        return row.value

    def save(self, ctx: Optional[OperationContext], obj: T) -> None:
        self._raise_for_error(self._scoped(ctx).save(obj))

    def delete(self, ctx: Optional[OperationContext], obj: T) -> None:
        self._raise_for_error(self._scoped(ctx).delete(obj))

    def __repr__(self) -> str:
        return f"<SessionRepository(model={self.model.__name__}, db={self.db!r})>"


def new_repository(model: Type[T], db: DBSession) -> SessionRepository[T]:
    """Create a repository for ``model`` over ``db``."""
    return SessionRepository(model, db)
