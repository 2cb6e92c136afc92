"""
Package-wide constants.

Operation names and transaction states are enums so that recorder
programming and state checks are spelled the same everywhere.
"""

from enum import Enum


# ========================================
# Wrapper Operations
# ========================================

class Operation(str, Enum):
    """
    Operations exposed by a database session wrapper.

    The value is also the method name on the wrapper, on the backend
    handle, and on the call recorder of a recording session.

    Usage:
        session.fail(Operation.CREATE, error)
        session.recorder.create.assert_called_once()
    """

    CREATE = "create"
    FIND = "find"
    FIRST = "first"
    SAVE = "save"
    DELETE = "delete"
    WITH_CONTEXT = "with_context"
    BEGIN = "begin"
    COMMIT = "commit"
    ROLLBACK = "rollback"


# ========================================
# Transaction States
# ========================================

class TransactionState(str, Enum):
    """States of a transaction controller."""

    IDLE = "idle"
    """Nothing has been opened yet (or opening failed)."""

    ACTIVE = "active"
    """begin() succeeded; the transactional function may run."""

    COMMITTED = "committed"
    """commit() was issued. Terminal."""

    ROLLED_BACK = "rolled_back"
    """rollback() was issued. Terminal."""


TERMINAL_STATES = frozenset({
    TransactionState.COMMITTED,
    TransactionState.ROLLED_BACK,
})
