"""
DailyQuest: one generated quest in an owner's daily batch.
Schema only.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    SmallInteger,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from questline.core.database.base import Base, IdMixin, TimestampMixin
from questline.database.models.enums import QuestStatus


class DailyQuest(Base, IdMixin, TimestampMixin):
    """
    Daily quest row.

    A batch is the set of rows sharing (owner_id, expires_at); `batch_slot`
    numbers the quests inside it. The unique constraint over the three makes
    concurrent generation for the same owner and boundary insert exactly one
    batch. Terminal rows are kept as history.
    """

    __tablename__ = "daily_quests"
    __table_args__ = (
        UniqueConstraint(
            "owner_id", "expires_at", "batch_slot",
            name="uq_daily_quests_owner_batch_slot",
        ),
        Index("ix_daily_quests_owner_status_expires", "owner_id", "status", "expires_at"),
        Index("ix_daily_quests_status_expires", "status", "expires_at"),
        CheckConstraint("target_count > 0", name="ck_daily_quests_target_positive"),
        CheckConstraint(
            "current_progress >= 0 AND current_progress <= target_count",
            name="ck_daily_quests_progress_bounds",
        ),
        CheckConstraint(
            "coin_reward >= 0 AND xp_reward >= 0",
            name="ck_daily_quests_rewards_non_negative",
        ),
    )

    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    type: Mapped[str] = mapped_column(String(32), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False)

    target_count: Mapped[int] = mapped_column(Integer, nullable=False)
    current_progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    coin_reward: Mapped[int] = mapped_column(Integer, nullable=False)
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=QuestStatus.ACTIVE.value,
    )

    expires_at: Mapped[datetime] = mapped_column(DateTime(), nullable=False)
    batch_slot: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<DailyQuest id={self.id} owner={self.owner_id} type={self.type} "
            f"{self.current_progress}/{self.target_count} status={self.status}>"
        )
