"""
Tests for QuestActions, the authenticated facade over DailyQuestService.
"""

import pytest

from questline.database.models.enums import QuestStatus, QuestType
from questline.modules.quests import QuestActions, QuestResult
from questline.modules.shared.exceptions import GenerationConfigError, QuestErrorKind


class TestUnauthenticated:
    @pytest.mark.parametrize(
        "call",
        [
            lambda actions: actions.get_daily_quests(),
            lambda actions: actions.update_progress(1),
            lambda actions: actions.track_progress(QuestType.FEED_MONSTER),
            lambda actions: actions.complete_quest(1),
            lambda actions: actions.claim_reward(1),
        ],
    )
    async def test_no_owner_is_rejected_before_service(self, mocker, call):
        service = mocker.MagicMock()
        actions = QuestActions(service, lambda: None)

        result = await call(actions)

        assert result.error is QuestErrorKind.UNAUTHENTICATED
        assert service.method_calls == []

    async def test_empty_owner_counts_as_unauthenticated(self, mocker):
        actions = QuestActions(mocker.MagicMock(), lambda: "")
        result = await actions.claim_reward(1)
        assert result.error is QuestErrorKind.UNAUTHENTICATED


class TestDelegation:
    async def test_async_resolver(self, mocker):
        service = mocker.MagicMock()
        service.claim_reward = mocker.AsyncMock(return_value=QuestResult.success("ok"))

        async def current_user():
            return "user-7"

        result = await QuestActions(service, current_user).claim_reward(12)

        assert result.value == "ok"
        service.claim_reward.assert_awaited_once_with(12, "user-7")

    async def test_config_error_returned_as_result(self, mocker):
        service = mocker.MagicMock()
        service.get_active_quest_set = mocker.AsyncMock(
            side_effect=GenerationConfigError("catalog too small")
        )

        result = await QuestActions(service, lambda: "user-1").get_daily_quests()

        assert result.error is QuestErrorKind.GENERATION_CONFIG_ERROR
        service.log_domain_error.assert_called_once()


class TestEndToEnd:
    async def test_daily_flow(self, service):
        actions = QuestActions(service, lambda: "user-1")

        listed = await actions.get_daily_quests()
        assert listed.ok and len(listed.value) == 5

        quest = listed.value[0]
        progressed = await actions.update_progress(quest.id, quest.target_count)
        assert progressed.value.status is QuestStatus.COMPLETED

        claimed = await actions.claim_reward(quest.id)
        assert claimed.value.status is QuestStatus.CLAIMED

        again = await actions.claim_reward(quest.id)
        assert again.error is QuestErrorKind.ALREADY_CLAIMED

    async def test_track_progress_by_type_name(self, service):
        actions = QuestActions(service, lambda: "user-1")
        listed = await actions.get_daily_quests()

        quest_type = listed.value[0].type
        result = await actions.track_progress(quest_type.value)

        assert result.ok
        assert listed.value[0].id in {view.id for view in result.value}
