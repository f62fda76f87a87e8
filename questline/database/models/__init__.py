"""
Database Models Package
========================

SQLAlchemy ORM models for Questline, organized by domain.

All models:
- Are schema-only, no business logic
- Use Mapped[] syntax with mapped_column()
- Inherit from the shared mixins (IdMixin, TimestampMixin)
"""

from questline.core.database.base import Base

from .enums import QuestDifficulty, QuestStatus, QuestType
from .progression import DailyQuest

__all__ = [
    "Base",
    "DailyQuest",
    "QuestDifficulty",
    "QuestStatus",
    "QuestType",
]
