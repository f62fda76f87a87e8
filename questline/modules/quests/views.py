"""
Read model for daily quests.

`QuestView` is what the service hands out instead of ORM rows: detached,
immutable and validated. Conversion fails loudly on rows that violate the
quest invariants so callers can skip them.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from questline.database.models.enums import QuestDifficulty, QuestStatus, QuestType
from questline.database.models.progression.daily_quest import DailyQuest
from questline.modules.quests.formulas import calculate_progress_percentage


@dataclass(frozen=True)
class QuestView:
    id: int
    owner_id: str
    type: QuestType
    difficulty: QuestDifficulty
    title: str
    description: str
    target_count: int
    current_progress: int
    coin_reward: int
    xp_reward: int
    status: QuestStatus
    expires_at: datetime
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, quest: DailyQuest) -> "QuestView":
        """
        Raises:
            ValueError: Unknown enum value, or progress outside
                [0, target_count].
        """
        view = cls(
            id=quest.id,
            owner_id=quest.owner_id,
            type=QuestType(quest.type),
            difficulty=QuestDifficulty(quest.difficulty),
            title=quest.title,
            description=quest.description,
            target_count=quest.target_count,
            current_progress=quest.current_progress,
            coin_reward=quest.coin_reward,
            xp_reward=quest.xp_reward,
            status=QuestStatus(quest.status),
            expires_at=quest.expires_at,
            created_at=quest.created_at,
            updated_at=quest.updated_at,
        )
        if view.target_count <= 0:
            raise ValueError(f"quest {view.id} has non-positive target_count")
        if not 0 <= view.current_progress <= view.target_count:
            raise ValueError(
                f"quest {view.id} progress {view.current_progress} "
                f"outside [0, {view.target_count}]"
            )
        return view

    @property
    def is_complete(self) -> bool:
        return self.current_progress >= self.target_count

    @property
    def is_claimable(self) -> bool:
        return self.status is QuestStatus.COMPLETED

    @property
    def remaining(self) -> int:
        return self.target_count - self.current_progress

    @property
    def progress_percentage(self) -> int:
        return calculate_progress_percentage(self.current_progress, self.target_count)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        data["difficulty"] = self.difficulty.value
        data["status"] = self.status.value
        for key in ("expires_at", "created_at", "updated_at"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        data["progress_percentage"] = self.progress_percentage
        return data
