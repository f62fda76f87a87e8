"""
Quest engine settings.

`QuestSettings` is the immutable configuration object injected into the quest
service. It is built once from the `daily_quests.*` section of the YAML
configuration (see `config/quests.yaml`) and validated on construction, so a
bad value fails at startup instead of in the middle of a generation run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Set, Type
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from questline.core.config.manager import ConfigManager
from questline.database.models.enums import QuestDifficulty, QuestType
from questline.modules.quests.formulas import DEFAULT_DIFFICULTY_MULTIPLIERS
from questline.modules.shared.exceptions import GenerationConfigError

DEFAULT_TYPE_WEIGHTS: Mapping[QuestType, float] = {
    QuestType.FEED_MONSTER: 1.0,
    QuestType.PLAY_WITH_MONSTER: 1.0,
    QuestType.LEVEL_UP_MONSTER: 0.5,
    QuestType.BUY_ACCESSORY: 0.8,
    QuestType.EQUIP_ACCESSORY: 0.8,
    QuestType.VISIT_GALLERY: 0.6,
    QuestType.EARN_COINS: 0.7,
}

DEFAULT_TRACKING_ACTIONS: Mapping[str, QuestType] = {
    "feed": QuestType.FEED_MONSTER,
    "hug": QuestType.PLAY_WITH_MONSTER,
    "wake": QuestType.PLAY_WITH_MONSTER,
    "comfort": QuestType.PLAY_WITH_MONSTER,
    "level_up": QuestType.LEVEL_UP_MONSTER,
    "buy_accessory": QuestType.BUY_ACCESSORY,
    "equip_accessory": QuestType.EQUIP_ACCESSORY,
    "visit_gallery": QuestType.VISIT_GALLERY,
    "earn_coins": QuestType.EARN_COINS,
}


@dataclass(frozen=True)
class QuestSettings:
    """
    Immutable quest configuration.

    Attributes:
        quests_per_day: Quests generated per owner per daily boundary
        reset_hour / reset_minute: Wall-clock reset time
        reset_timezone: IANA zone name; None means server local time
        base_coin_reward / base_xp_reward: Rewards before the multiplier
        difficulty_multipliers: Reward multiplier per difficulty
        allow_early_claim: Whether completed quests can be claimed before
            they expire
        reward_grant_timeout_seconds: Upper bound on each ledger call
        type_weights: Relative selection weight per enabled quest type
        enabled_types: Quest types that may be generated
        tracking_actions: Gameplay action tag -> quest type it advances
        weekly_quests_enabled / streaks_enabled: Reserved feature flags
    """

    quests_per_day: int = 5
    reset_hour: int = 0
    reset_minute: int = 0
    reset_timezone: Optional[str] = None
    base_coin_reward: int = 50
    base_xp_reward: int = 10
    difficulty_multipliers: Mapping[QuestDifficulty, float] = field(
        default_factory=lambda: dict(DEFAULT_DIFFICULTY_MULTIPLIERS)
    )
    allow_early_claim: bool = True
    reward_grant_timeout_seconds: float = 10.0
    type_weights: Mapping[QuestType, float] = field(
        default_factory=lambda: dict(DEFAULT_TYPE_WEIGHTS)
    )
    enabled_types: FrozenSet[QuestType] = frozenset(QuestType)
    tracking_actions: Mapping[str, QuestType] = field(
        default_factory=lambda: dict(DEFAULT_TRACKING_ACTIONS)
    )
    weekly_quests_enabled: bool = False
    streaks_enabled: bool = False

    def __post_init__(self) -> None:
        for name in ("difficulty_multipliers", "type_weights", "tracking_actions"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

        if self.quests_per_day < 1:
            raise GenerationConfigError(
                "quests_per_day must be at least 1",
                details={"quests_per_day": self.quests_per_day},
            )
        if not 0 <= self.reset_hour <= 23:
            raise GenerationConfigError(
                "reset_hour must be between 0 and 23",
                details={"reset_hour": self.reset_hour},
            )
        if not 0 <= self.reset_minute <= 59:
            raise GenerationConfigError(
                "reset_minute must be between 0 and 59",
                details={"reset_minute": self.reset_minute},
            )
        if self.base_coin_reward < 0 or self.base_xp_reward < 0:
            raise GenerationConfigError(
                "base rewards must be non-negative",
                details={
                    "base_coin_reward": self.base_coin_reward,
                    "base_xp_reward": self.base_xp_reward,
                },
            )
        missing = [d.value for d in QuestDifficulty if d not in self.difficulty_multipliers]
        if missing:
            raise GenerationConfigError(
                "difficulty multipliers missing",
                details={"missing": missing},
            )
        if any(m < 0 for m in self.difficulty_multipliers.values()):
            raise GenerationConfigError("difficulty multipliers must be non-negative")
        if self.reward_grant_timeout_seconds <= 0:
            raise GenerationConfigError(
                "reward_grant_timeout_seconds must be positive",
                details={"timeout": self.reward_grant_timeout_seconds},
            )
        if any(w < 0 for w in self.type_weights.values()):
            raise GenerationConfigError("quest type weights must be non-negative")
        if self.reset_timezone is not None:
            try:
                ZoneInfo(self.reset_timezone)
            except (ZoneInfoNotFoundError, ValueError):
                raise GenerationConfigError(
                    f"unknown reset timezone '{self.reset_timezone}'",
                    details={"reset_timezone": self.reset_timezone},
                ) from None

    def weight_for(self, quest_type: QuestType) -> float:
        """Selection weight; 0 for disabled types."""
        if quest_type not in self.enabled_types:
            return 0.0
        return float(self.type_weights.get(quest_type, 1.0))

    def quest_type_for_action(self, action_tag: str) -> Optional[QuestType]:
        return self.tracking_actions.get(action_tag)

    # =========================================================================
    # CONSTRUCTION FROM CONFIG
    # =========================================================================

    @classmethod
    def from_config(
        cls,
        config_manager: Type[ConfigManager] = ConfigManager,
        prefix: str = "daily_quests",
    ) -> "QuestSettings":
        """
        Build settings from the `daily_quests` configuration section.

        Missing keys fall back to the dataclass defaults.

        Raises:
            GenerationConfigError: On unknown enum names or invalid values.
        """

        def get(key: str, default: Any) -> Any:
            return config_manager.get(f"{prefix}.{key}", default)

        multipliers_raw: Dict[str, Any] = get(
            "difficulty_multipliers",
            {d.value: m for d, m in DEFAULT_DIFFICULTY_MULTIPLIERS.items()},
        )
        multipliers = {
            _parse_enum(QuestDifficulty, name, "difficulty_multipliers"): float(value)
            for name, value in multipliers_raw.items()
        }

        type_weights: Dict[QuestType, float] = dict(DEFAULT_TYPE_WEIGHTS)
        enabled_types = set(QuestType)
        tracking_actions: Dict[str, QuestType] = {}
        configured_types: Set[QuestType] = set()
        types_raw: Mapping[str, Any] = get("quest_types", {}) or {}

        for name, options in types_raw.items():
            quest_type = _parse_enum(QuestType, name, "quest_types")
            options = options or {}
            if "weight" in options:
                type_weights[quest_type] = float(options["weight"])
            if not _parse_bool(options.get("enabled", True), f"quest_types.{name}.enabled"):
                enabled_types.discard(quest_type)
            if "tracking_actions" in options:
                configured_types.add(quest_type)
                for tag in options["tracking_actions"] or []:
                    tracking_actions[str(tag).strip().lower()] = quest_type

        # Types without a tracking_actions key keep the built-in tags.
        for tag, quest_type in DEFAULT_TRACKING_ACTIONS.items():
            if quest_type not in configured_types:
                tracking_actions.setdefault(tag, quest_type)

        timezone_name = get("reset_timezone", None)

        return cls(
            quests_per_day=int(get("quests_per_day", 5)),
            reset_hour=int(get("reset_hour", 0)),
            reset_minute=int(get("reset_minute", 0)),
            reset_timezone=str(timezone_name) if timezone_name else None,
            base_coin_reward=int(get("base_rewards.coins", 50)),
            base_xp_reward=int(get("base_rewards.xp", 10)),
            difficulty_multipliers=multipliers,
            allow_early_claim=_parse_bool(get("allow_early_claim", True), "allow_early_claim"),
            reward_grant_timeout_seconds=float(get("reward_grant_timeout_seconds", 10)),
            type_weights=type_weights,
            enabled_types=frozenset(enabled_types),
            tracking_actions=tracking_actions,
            weekly_quests_enabled=_parse_bool(
                get("features.weekly_quests", False), "features.weekly_quests"
            ),
            streaks_enabled=_parse_bool(get("features.streaks", False), "features.streaks"),
        )


_TRUE_VALUES = {"true", "yes", "1", "on"}
_FALSE_VALUES = {"false", "no", "0", "off"}


def _parse_bool(value: Any, key: str) -> bool:
    """Accepts bools, 0/1 and true/false, yes/no, on/off strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_VALUES:
            return True
        if normalized in _FALSE_VALUES:
            return False
    raise GenerationConfigError(
        f"invalid boolean for {key}: {value!r}",
        details={"key": key, "value": repr(value)},
    )

def _parse_enum(enum_cls: Any, name: Any, section: str) -> Any:
    try:
        return enum_cls(str(name))
    except ValueError:
        raise GenerationConfigError(
            f"unknown {enum_cls.__name__} '{name}' in {section}",
            details={"section": section, "value": name},
        ) from None
