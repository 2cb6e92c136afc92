"""
Base Model
==========

Declarative base for entities handled by repowrap, plus the primary key
helpers the backend uses to scope first/save/delete.
"""

from typing import Any, Optional, Tuple

from sqlalchemy import Column, inspect
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""
    pass


def primary_key_columns(model: type) -> Tuple[Column, ...]:
    """Return the primary key columns of a mapped class."""
    return tuple(inspect(model).primary_key)


def identity_of(obj: Any) -> Optional[Tuple[Any, ...]]:
    """
    Return the primary key values of a mapped instance.

    Returns None when any primary key attribute is unset, i.e. the instance
    has not been assigned an identity yet and a save must insert it.
    """
    mapper = inspect(type(obj))
    values = tuple(
        getattr(obj, mapper.get_property_by_column(column).key)
        for column in mapper.primary_key
    )
    if any(value is None for value in values):
        return None
    return values
