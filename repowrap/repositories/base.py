"""Base repository interface."""

from abc import ABC, abstractmethod
from typing import Any, Generic, List, Optional, TypeVar

from repowrap.core.context import OperationContext

T = TypeVar('T')


class Repository(ABC, Generic[T]):
    """
    Base repository interface.

    Entity-level data access for one entity type. Every operation takes the
    operation context first and raises the backend's error unchanged.
    """

    @abstractmethod
    def create(self, ctx: Optional[OperationContext], obj: T) -> None:
        """Insert a new entity."""
        pass

    @abstractmethod
    def find(self, ctx: Optional[OperationContext], *conditions: Any) -> List[T]:
        """List entities matching all conditions (empty list when none match)."""
        pass

    @abstractmethod
    def first(self, ctx: Optional[OperationContext], *conditions: Any) -> T:
        """Return the first match by primary key. Raises RecordNotFoundError."""
        pass

    @abstractmethod
    def save(self, ctx: Optional[OperationContext], obj: T) -> None:
        """Insert or update the entity by primary key."""
        pass

    @abstractmethod
    def delete(self, ctx: Optional[OperationContext], obj: T) -> None:
        """Delete the entity by primary key."""
        pass
