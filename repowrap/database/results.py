"""
Result containers filled in place by find() and first().

Both are bound to an entity class at construction, so the backend knows
what to select without inspecting the caller.
"""

from typing import Generic, Optional, Type, TypeVar

T = TypeVar("T")


class Rows(list, Generic[T]):
    """A list of entities of one mapped class, filled by find()."""

    def __init__(self, model: Type[T]):
        super().__init__()
        self.model = model

    def __repr__(self) -> str:
        return f"<Rows({self.model.__name__}, n={len(self)})>"


class Row(Generic[T]):
    """A single entity slot filled by first(). ``value`` stays None until then."""

    def __init__(self, model: Type[T]):
        self.model = model
        self.value: Optional[T] = None

    def __repr__(self) -> str:
        return f"<Row({self.model.__name__}, value={self.value!r})>"
