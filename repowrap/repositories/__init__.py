"""
Data access layer (Repository pattern).

Repositories translate entity-level operations into session wrapper
calls, isolating callers from the session and its error slot.
"""

from repowrap.repositories.base import Repository
from repowrap.repositories.session_repository import SessionRepository, new_repository

__all__ = [
    "Repository",
    "SessionRepository",
    "new_repository",
]
