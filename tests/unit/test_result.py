"""
Unit tests for QuestResult and the returns_result boundary decorator.
"""

import pytest

from questline.core.logging import get_log_context
from questline.modules.quests.result import QuestResult, returns_result
from questline.modules.shared.exceptions import (
    AlreadyClaimedError,
    NotFoundError,
    QuestErrorKind,
)


class _Service:
    """Minimal stand-in exposing the hook returns_result relies on."""

    def __init__(self):
        self.logged = []
        self.seen_context = None

    def log_domain_error(self, operation, error, **context):
        self.logged.append((operation, error.kind))

    @returns_result("lookup")
    async def lookup(self, quest_id, owner_id):
        self.seen_context = get_log_context()
        if quest_id == 404:
            raise NotFoundError("DailyQuest", quest_id)
        return {"id": quest_id, "owner_id": owner_id}

    @returns_result("explode")
    async def explode(self, owner_id):
        raise RuntimeError("database down")


class TestQuestResult:
    def test_success(self):
        result = QuestResult.success(5)
        assert result.ok and result.value == 5 and result.error is None
        assert result.unwrap() == 5

    def test_failure_from_exception(self):
        result = QuestResult.from_exception(AlreadyClaimedError(7))
        assert not result.ok
        assert result.error is QuestErrorKind.ALREADY_CLAIMED
        assert result.details["quest_id"] == 7

    def test_unwrap_failure_raises(self):
        with pytest.raises(RuntimeError):
            QuestResult.from_exception(NotFoundError("DailyQuest", 1)).unwrap()

    def test_to_dict(self):
        failure = QuestResult.from_exception(NotFoundError("DailyQuest", 1)).to_dict()
        assert failure["ok"] is False
        assert failure["error"] == "not_found"
        assert QuestResult.success([1, 2]).to_dict() == {"ok": True, "value": [1, 2]}


class TestReturnsResult:
    async def test_success_wrapped(self):
        service = _Service()
        result = await service.lookup(1, "user-1")
        assert result.ok
        assert result.value == {"id": 1, "owner_id": "user-1"}

    async def test_domain_error_becomes_failure(self):
        service = _Service()
        result = await service.lookup(404, owner_id="user-1")
        assert not result.ok
        assert result.error is QuestErrorKind.NOT_FOUND
        assert service.logged == [("lookup", QuestErrorKind.NOT_FOUND)]

    async def test_log_context_carries_owner_and_operation(self):
        service = _Service()
        await service.lookup(1, owner_id="user-9")
        assert service.seen_context["owner_id"] == "user-9"
        assert service.seen_context["operation"] == "lookup"
        assert "owner_id" not in get_log_context()

    async def test_infrastructure_errors_propagate(self):
        with pytest.raises(RuntimeError, match="database down"):
            await _Service().explode("user-1")
