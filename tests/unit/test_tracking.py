"""
Tests for QuestTracker: gameplay actions feeding quest progress.
"""

import pytest

from questline.database.models.enums import QuestDifficulty, QuestStatus, QuestType
from questline.modules.quests import (
    GAMEPLAY_ACTION_EVENT,
    QuestCatalog,
    QuestResult,
    QuestSettings,
    QuestTemplate,
    QuestTracker,
)
from questline.modules.shared.exceptions import ValidationError


@pytest.fixture
def tracked_service(database, make_service):
    catalog = QuestCatalog(
        [
            QuestTemplate(QuestType.FEED_MONSTER, QuestDifficulty.EASY, "Breakfast Time",
                          "Feed your monster 3 times", 3, 50, 10),
            QuestTemplate(QuestType.PLAY_WITH_MONSTER, QuestDifficulty.EASY, "Playtime",
                          "Play with your monster 3 times", 3, 50, 10),
        ]
    )
    return make_service(
        settings=QuestSettings(quests_per_day=2, reset_timezone="UTC"),
        catalog=catalog,
    )


@pytest.fixture
def tracker(tracked_service):
    return QuestTracker(tracked_service, tracked_service.settings)


class TestTrackAction:
    async def test_feed_action_advances_feed_quest(self, tracked_service, tracker):
        await tracked_service.get_active_quest_set("user-1")

        updated = await tracker.track_action("user-1", "feed")

        assert [view.type for view in updated] == [QuestType.FEED_MONSTER]
        assert updated[0].current_progress == 1

    async def test_aliases_map_to_same_quest_type(self, tracked_service, tracker):
        await tracked_service.get_active_quest_set("user-1")

        await tracker.track_action("user-1", "hug")
        await tracker.track_action("user-1", "WAKE")
        updated = await tracker.track_action("user-1", " comfort ")

        assert updated[0].type is QuestType.PLAY_WITH_MONSTER
        assert updated[0].status is QuestStatus.COMPLETED

    async def test_unknown_action_ignored(self, tracked_service, tracker):
        await tracked_service.get_active_quest_set("user-1")
        assert await tracker.track_action("user-1", "dance") == []

    async def test_invalid_tag_ignored(self, tracker):
        assert await tracker.track_action("user-1", "") == []
        assert await tracker.track_action("user-1", None) == []

    async def test_invalid_amount_does_not_raise(self, tracked_service, tracker):
        await tracked_service.get_active_quest_set("user-1")
        assert await tracker.track_action("user-1", "feed", amount=0) == []

    async def test_storage_failure_does_not_reach_gameplay(self, mocker, settings):
        service = mocker.MagicMock()
        service.track_by_type = mocker.AsyncMock(side_effect=RuntimeError("db down"))

        tracker = QuestTracker(service, settings)

        assert await tracker.track_action("user-1", "feed") == []
        service.track_by_type.assert_awaited_once_with("user-1", QuestType.FEED_MONSTER, 1)

    async def test_failure_result_yields_empty(self, mocker, settings):
        service = mocker.MagicMock()
        service.track_by_type = mocker.AsyncMock(
            return_value=QuestResult.from_exception(ValidationError("owner_id", "bad"))
        )

        assert await QuestTracker(service, settings).track_action("  ", "feed") == []


class TestEventSubscription:
    async def test_gameplay_event_tracks_progress(self, tracked_service, tracker, event_bus):
        await tracked_service.get_active_quest_set("user-1")
        tracker.register(event_bus)

        await event_bus.publish(
            GAMEPLAY_ACTION_EVENT, {"owner_id": "user-1", "action": "feed", "amount": 3}
        )

        views = await tracked_service.get_active_quest_set("user-1")
        feed = next(view for view in views if view.type is QuestType.FEED_MONSTER)
        assert feed.status is QuestStatus.COMPLETED

    def test_register_is_idempotent(self, tracker, event_bus):
        first = tracker.register(event_bus)
        second = tracker.register(event_bus)

        assert first == second == QuestTracker.LISTENER_ID
        assert event_bus.get_listener_count(GAMEPLAY_ACTION_EVENT) == 1

    async def test_malformed_payload_ignored(self, mocker, settings):
        service = mocker.MagicMock()
        service.track_by_type = mocker.AsyncMock()
        tracker = QuestTracker(service, settings)

        await tracker.handle_gameplay_action({"action": "feed"})
        await tracker.handle_gameplay_action("feed")

        service.track_by_type.assert_not_awaited()
