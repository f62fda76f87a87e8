"""
Database infrastructure: declarative base, mixins and the async DatabaseService.
"""

from questline.core.database.base import Base, IdMixin, TimestampMixin, utcnow
from questline.core.database.service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
)

__all__ = [
    "Base",
    "IdMixin",
    "TimestampMixin",
    "utcnow",
    "DatabaseService",
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
]
