"""
Database Model Enums
====================

Type-safe constants for the categorical columns of quest models. Values are
stored as plain strings so the schema stays portable between PostgreSQL and
SQLite; these enums are the single source of valid values.
"""

from __future__ import annotations

import enum


class QuestType(str, enum.Enum):
    """Gameplay activity a daily quest counts."""

    FEED_MONSTER = "feed_monster"
    PLAY_WITH_MONSTER = "play_with_monster"
    LEVEL_UP_MONSTER = "level_up_monster"
    BUY_ACCESSORY = "buy_accessory"
    EQUIP_ACCESSORY = "equip_accessory"
    VISIT_GALLERY = "visit_gallery"
    EARN_COINS = "earn_coins"


class QuestDifficulty(str, enum.Enum):
    """Difficulty tier; selects the reward multiplier."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuestStatus(str, enum.Enum):
    """
    Lifecycle status of a daily quest.

    Transitions: active -> completed -> claimed, or active -> expired.
    `claimed` and `expired` are terminal.
    """

    ACTIVE = "active"
    COMPLETED = "completed"
    CLAIMED = "claimed"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in (QuestStatus.CLAIMED, QuestStatus.EXPIRED)


# Statuses that make up the owner's current set; expired rows are history.
VISIBLE_QUEST_STATUSES = (
    QuestStatus.ACTIVE,
    QuestStatus.COMPLETED,
    QuestStatus.CLAIMED,
)
