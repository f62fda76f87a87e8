"""
Daily quests module.

Usage
-----
    from questline.modules.quests import (
        DailyQuestService,
        QuestSettings,
        build_catalog,
    )

    settings = QuestSettings.from_config()
    service = DailyQuestService(
        settings, build_catalog(settings), coin_ledger, event_bus, logger
    )
    quests = await service.get_active_quest_set("user-1")
"""

from __future__ import annotations

from .actions import QuestActions
from .catalog import DEFAULT_TEMPLATE_SPECS, QuestCatalog, QuestTemplate, build_catalog
from .formulas import (
    DEFAULT_DIFFICULTY_MULTIPLIERS,
    calculate_progress_percentage,
    calculate_reward,
    coin_reward_for,
    xp_reward_for,
)
from .repository import DailyQuestRepository
from .result import QuestResult, returns_result
from .schedule import format_time_until_reset, next_daily_boundary, time_until_reset
from .service import (
    CoinLedger,
    DailyQuestService,
    QuestEvents,
    RenewalSummary,
    XpLedger,
)
from .settings import QuestSettings
from .tracking import GAMEPLAY_ACTION_EVENT, QuestTracker
from .views import QuestView

__all__ = [
    "CoinLedger",
    "DEFAULT_DIFFICULTY_MULTIPLIERS",
    "DEFAULT_TEMPLATE_SPECS",
    "DailyQuestRepository",
    "DailyQuestService",
    "GAMEPLAY_ACTION_EVENT",
    "QuestActions",
    "QuestCatalog",
    "QuestEvents",
    "QuestResult",
    "QuestSettings",
    "QuestTemplate",
    "QuestTracker",
    "QuestView",
    "RenewalSummary",
    "XpLedger",
    "build_catalog",
    "calculate_progress_percentage",
    "calculate_reward",
    "coin_reward_for",
    "format_time_until_reset",
    "next_daily_boundary",
    "returns_result",
    "time_until_reset",
    "xp_reward_for",
]
