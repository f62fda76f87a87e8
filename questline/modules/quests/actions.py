"""
Authenticated quest actions.

Thin facade used by presentation layers: resolves the current owner, then
delegates to `DailyQuestService`. Every method returns a `QuestResult`; a
request without an authenticated owner fails with `UNAUTHENTICATED` before
the service is touched.
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional, Union

from questline.modules.quests.result import QuestResult
from questline.modules.shared.exceptions import QuestDomainException, UnauthenticatedError

if TYPE_CHECKING:
    from questline.database.models.enums import QuestType
    from questline.modules.quests.service import DailyQuestService
    from questline.modules.quests.views import QuestView


CurrentUserResolver = Callable[[], Union[Optional[str], Awaitable[Optional[str]]]]


class QuestActions:
    def __init__(
        self,
        service: DailyQuestService,
        resolve_current_user: CurrentUserResolver,
    ) -> None:
        self._service = service
        self._resolve_current_user = resolve_current_user

    async def _current_owner(self) -> Optional[str]:
        owner = self._resolve_current_user()
        if inspect.isawaitable(owner):
            owner = await owner
        return owner or None

    @staticmethod
    def _unauthenticated(action: str) -> QuestResult:
        return QuestResult.from_exception(UnauthenticatedError(action))

    async def get_daily_quests(self) -> QuestResult[List[QuestView]]:
        owner_id = await self._current_owner()
        if owner_id is None:
            return self._unauthenticated("get_daily_quests")
        try:
            quests = await self._service.get_active_quest_set(owner_id)
        except QuestDomainException as exc:
            self._service.log_domain_error("get_daily_quests", exc, owner_id=owner_id)
            return QuestResult.from_exception(exc)
        return QuestResult.success(quests)

    async def update_progress(
        self, quest_id: int, increment_by: int = 1
    ) -> QuestResult[QuestView]:
        owner_id = await self._current_owner()
        if owner_id is None:
            return self._unauthenticated("update_progress")
        return await self._service.update_progress(quest_id, owner_id, increment_by)

    async def track_progress(
        self, quest_type: Union[QuestType, str], increment_by: int = 1
    ) -> QuestResult[List[QuestView]]:
        owner_id = await self._current_owner()
        if owner_id is None:
            return self._unauthenticated("track_progress")
        return await self._service.track_by_type(owner_id, quest_type, increment_by)

    async def complete_quest(self, quest_id: int) -> QuestResult[QuestView]:
        owner_id = await self._current_owner()
        if owner_id is None:
            return self._unauthenticated("complete_quest")
        return await self._service.complete_quest(quest_id, owner_id)

    async def claim_reward(self, quest_id: int) -> QuestResult[QuestView]:
        owner_id = await self._current_owner()
        if owner_id is None:
            return self._unauthenticated("claim_reward")
        return await self._service.claim_reward(quest_id, owner_id)
