"""
Errors raised by repowrap itself.

Driver errors (``sqlalchemy.exc.SQLAlchemyError``) are never wrapped: they
travel through the backend error slot and out of the repository unchanged.
Everything below covers the conditions this package detects on its own.
"""


class RepositoryError(RuntimeError):
    """Base class for errors originating in repowrap."""


class RecordNotFoundError(RepositoryError):
    """first() matched no row."""

    def __init__(self, model: type, conditions: tuple = ()):
        self.model = model
        self.conditions = conditions
        super().__init__(f"record not found: {model.__name__}")


class MissingConditionsError(RepositoryError):
    """A delete had neither a primary key nor conditions to scope it."""

    def __init__(self, model: type):
        self.model = model
        super().__init__(
            f"refusing to delete from {model.__name__} without a primary key or conditions"
        )


class InvalidConditionError(RepositoryError):
    """A condition could not be turned into a WHERE clause."""


class TransactionStateError(RepositoryError):
    """commit/rollback issued in a state that does not allow it."""


class ContextError(RepositoryError):
    """Base for errors reported by an operation context."""


class DeadlineExceededError(ContextError):
    """The context deadline passed before the operation started."""

    def __init__(self, message: str = "context deadline exceeded"):
        super().__init__(message)


class OperationCancelledError(ContextError):
    """The context was cancelled before the operation started."""

    def __init__(self, message: str = "context cancelled"):
        super().__init__(message)
