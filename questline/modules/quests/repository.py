"""
Daily quest data access.

All statements run inside a session supplied by the service, so several of
them compose into one transaction. Writes that must be race-free are single
conditional statements:

- progress: `UPDATE ... SET current_progress = CASE ..., status = CASE ...
  WHERE owner/active/unexpired RETURNING *`; the clamp and the completion flip
  happen in the database, so concurrent increments never lose updates and
  never overshoot the target.
- status transitions: compare-and-swap on the expected current status.
- expiration: bulk `active -> expired` for rows past their boundary.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional, Sequence

from sqlalchemy import case, update

from questline.database.models.enums import VISIBLE_QUEST_STATUSES, QuestStatus, QuestType
from questline.database.models.progression.daily_quest import DailyQuest
from questline.modules.shared.base_repository import BaseRepository

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from questline.modules.quests.catalog import QuestTemplate


class DailyQuestRepository(BaseRepository[DailyQuest]):
    def __init__(self, logger: Logger) -> None:
        super().__init__(DailyQuest, logger)

    # =========================================================================
    # READS
    # =========================================================================

    async def find_current(
        self, session: AsyncSession, owner_id: str, now: datetime
    ) -> List[DailyQuest]:
        """Owner's unexpired quests in active/completed/claimed, batch order."""
        return await self.find_many_where(
            session,
            DailyQuest.owner_id == owner_id,
            DailyQuest.status.in_([s.value for s in VISIBLE_QUEST_STATUSES]),
            DailyQuest.expires_at > now,
            order_by=(DailyQuest.batch_slot, DailyQuest.created_at, DailyQuest.id),
        )

    async def find_for_update(
        self, session: AsyncSession, quest_id: int
    ) -> Optional[DailyQuest]:
        return await self.find_one_where(
            session, DailyQuest.id == quest_id, for_update=True
        )

    # =========================================================================
    # WRITES
    # =========================================================================

    def add_batch(
        self,
        session: AsyncSession,
        owner_id: str,
        templates: Sequence[QuestTemplate],
        expires_at: datetime,
        now: datetime,
    ) -> List[DailyQuest]:
        quests = [
            DailyQuest(
                owner_id=owner_id,
                type=template.type.value,
                difficulty=template.difficulty.value,
                title=template.title,
                description=template.description,
                target_count=template.target_count,
                current_progress=0,
                coin_reward=template.coin_reward,
                xp_reward=template.xp_reward,
                status=QuestStatus.ACTIVE.value,
                expires_at=expires_at,
                batch_slot=slot,
                created_at=now,
                updated_at=now,
            )
            for slot, template in enumerate(templates)
        ]
        return self.add_many(session, quests)

    async def apply_progress(
        self,
        session: AsyncSession,
        owner_id: str,
        increment_by: int,
        now: datetime,
        *,
        quest_id: Optional[int] = None,
        quest_type: Optional[QuestType] = None,
    ) -> List[DailyQuest]:
        """
        Add `increment_by` to every matching active, unexpired quest.

        Progress is clamped at the target and reaching it flips the status to
        completed in the same statement. Returns the updated rows; an empty
        list means nothing matched and nothing changed.
        """
        conditions = [
            DailyQuest.owner_id == owner_id,
            DailyQuest.status == QuestStatus.ACTIVE.value,
            DailyQuest.expires_at > now,
        ]
        if quest_id is not None:
            conditions.append(DailyQuest.id == quest_id)
        if quest_type is not None:
            conditions.append(DailyQuest.type == quest_type.value)

        new_progress = DailyQuest.current_progress + increment_by
        reached = new_progress >= DailyQuest.target_count

        stmt = (
            update(DailyQuest)
            .where(*conditions)
            .values(
                current_progress=case(
                    (reached, DailyQuest.target_count), else_=new_progress
                ),
                status=case(
                    (reached, QuestStatus.COMPLETED.value), else_=DailyQuest.status
                ),
                updated_at=now,
            )
            .returning(DailyQuest)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        result = await session.execute(stmt)
        quests = list(result.scalars().all())

        self.log.debug(
            "Repository.apply_progress: DailyQuest",
            extra={
                "owner_id": owner_id,
                "quest_id": quest_id,
                "quest_type": quest_type.value if quest_type else None,
                "increment_by": increment_by,
                "matched": len(quests),
            },
        )
        return quests

    async def transition_status(
        self,
        session: AsyncSession,
        quest_id: int,
        expected: QuestStatus,
        new: QuestStatus,
        now: datetime,
    ) -> bool:
        """Compare-and-swap the status; False if the row was not in `expected`."""
        stmt = (
            update(DailyQuest)
            .where(DailyQuest.id == quest_id, DailyQuest.status == expected.value)
            .values(status=new.value, updated_at=now)
        )
        result = await session.execute(stmt)
        changed = result.rowcount == 1

        self.log.debug(
            "Repository.transition_status: DailyQuest",
            extra={
                "quest_id": quest_id,
                "from_status": expected.value,
                "to_status": new.value,
                "changed": changed,
            },
        )
        return changed

    async def expire_overdue(
        self,
        session: AsyncSession,
        now: datetime,
        owner_id: Optional[str] = None,
    ) -> int:
        """Move active quests with expires_at <= now to expired; returns count."""
        conditions = [
            DailyQuest.status == QuestStatus.ACTIVE.value,
            DailyQuest.expires_at <= now,
        ]
        if owner_id is not None:
            conditions.append(DailyQuest.owner_id == owner_id)

        stmt = (
            update(DailyQuest)
            .where(*conditions)
            .values(status=QuestStatus.EXPIRED.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        expired = result.rowcount or 0

        self.log.debug(
            "Repository.expire_overdue: DailyQuest",
            extra={"owner_id": owner_id, "expired": expired},
        )
        return expired
