"""
Gameplay action tracking.

Purpose
-------
Turns gameplay actions (feeding, playing, buying an accessory, ...) into quest
progress. Gameplay features either call `QuestTracker.track_action` directly
or publish a `gameplay.action` event that the tracker listens to.

Responsibilities
----------------
- Map action tags to quest types using `QuestSettings.tracking_actions`
- Advance every matching active quest through `track_by_type`
- Keep quest failures out of the gameplay flow: errors are logged, never raised

Event payload
-------------
    {"owner_id": "user-1", "action": "feed", "amount": 1}
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Optional

from questline.core.event.types import ListenerPriority
from questline.core.logging.logger import LogContext, get_logger
from questline.core.validation.input_validator import InputValidator
from questline.modules.shared.exceptions import ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from questline.core.event.bus import EventBus
    from questline.modules.quests.service import DailyQuestService
    from questline.modules.quests.settings import QuestSettings
    from questline.modules.quests.views import QuestView


GAMEPLAY_ACTION_EVENT = "gameplay.action"


class QuestTracker:
    """Bridges gameplay actions to daily quest progress."""

    LISTENER_ID = f"quest_tracker@{GAMEPLAY_ACTION_EVENT}"

    def __init__(
        self,
        service: DailyQuestService,
        settings: QuestSettings,
        logger: Optional[Logger] = None,
    ) -> None:
        self._service = service
        self._settings = settings
        self.log = logger or get_logger(__name__)

    async def track_action(
        self, owner_id: str, action_tag: str, amount: int = 1
    ) -> List[QuestView]:
        """
        Record a gameplay action against the owner's quests.

        Returns the quests that advanced. Unknown tags, invalid input and
        storage failures all yield an empty list.
        """
        try:
            tag = InputValidator.validate_action_tag(action_tag)
        except ValidationError:
            self.log.warning(
                "Ignoring gameplay action with invalid tag",
                extra={"owner_id": owner_id, "action": action_tag},
            )
            return []

        quest_type = self._settings.quest_type_for_action(tag)
        if quest_type is None:
            self.log.debug(
                "Gameplay action does not track any quest type",
                extra={"owner_id": owner_id, "action": tag},
            )
            return []

        async with LogContext(owner_id=owner_id, operation="track_action"):
            try:
                result = await self._service.track_by_type(owner_id, quest_type, amount)
            except Exception as exc:
                self.log.error(
                    "Quest tracking failed; gameplay action unaffected",
                    extra={
                        "action": tag,
                        "quest_type": quest_type.value,
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )
                return []

            if not result.ok:
                return []

            updated = result.value or []
            if updated:
                self.log.info(
                    "Gameplay action advanced daily quests",
                    extra={
                        "action": tag,
                        "quest_type": quest_type.value,
                        "quest_ids": [view.id for view in updated],
                    },
                )
            return updated

    async def handle_gameplay_action(self, payload: Any) -> None:
        """EventBus listener for `gameplay.action`."""
        if not isinstance(payload, dict):
            self.log.warning(
                "Ignoring malformed gameplay.action payload",
                extra={"payload_type": type(payload).__name__},
            )
            return

        owner_id = payload.get("owner_id")
        action = payload.get("action")
        if owner_id is None or action is None:
            self.log.warning(
                "Ignoring gameplay.action payload without owner_id or action",
                extra={"payload_keys": sorted(payload.keys())},
            )
            return

        await self.track_action(owner_id, action, payload.get("amount", 1))

    def register(
        self,
        event_bus: EventBus,
        priority: ListenerPriority = ListenerPriority.NORMAL,
    ) -> str:
        """Subscribe to `gameplay.action`; returns the listener id."""
        return event_bus.subscribe(
            GAMEPLAY_ACTION_EVENT,
            self.handle_gameplay_action,
            priority=priority,
            identifier=self.LISTENER_ID,
        )
