"""
Model helpers.

Entities themselves belong to the caller; this package only provides the
declarative base and primary key inspection.
"""

from repowrap.models.base import Base, primary_key_columns, identity_of

__all__ = [
    "Base",
    "primary_key_columns",
    "identity_of",
]
