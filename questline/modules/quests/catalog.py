"""
Quest Template Catalog

Purpose
-------
Holds the fixed set of quest templates daily batches are drawn from and
draws distinct templates for a new batch.

Key Design Decisions
--------------------
- Templates are unique per (type, difficulty); a duplicate is a configuration
  error raised at construction.
- Sampling is a weighted shuffle of the whole catalog followed by taking a
  prefix. Each template gets the key `u ** (1 / weight)` with `u` uniform in
  [0, 1) and the highest keys win (Efraimidis-Spirakis). A prefix of a
  permutation never repeats a template, so a batch never holds two quests with
  the same (type, difficulty). Weight 0 removes a template from sampling.
- Rewards are computed once from the reward formulas when the catalog is
  built, so a quest keeps the reward it was generated with.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from questline.database.models.enums import QuestDifficulty, QuestType
from questline.modules.quests.formulas import coin_reward_for, xp_reward_for
from questline.modules.quests.settings import QuestSettings
from questline.modules.shared.exceptions import GenerationConfigError


@dataclass(frozen=True)
class QuestTemplate:
    """Blueprint for one generated quest."""

    type: QuestType
    difficulty: QuestDifficulty
    title: str
    description: str
    target_count: int
    coin_reward: int
    xp_reward: int

    def __post_init__(self) -> None:
        if self.target_count <= 0:
            raise GenerationConfigError(
                f"template {self.key_label} has non-positive target_count",
                details={"target_count": self.target_count},
            )
        if self.coin_reward < 0 or self.xp_reward < 0:
            raise GenerationConfigError(
                f"template {self.key_label} has a negative reward",
                details={"coin_reward": self.coin_reward, "xp_reward": self.xp_reward},
            )

    @property
    def key(self) -> Tuple[QuestType, QuestDifficulty]:
        return (self.type, self.difficulty)

    @property
    def key_label(self) -> str:
        return f"{self.type.value}/{self.difficulty.value}"


# (type, difficulty, title, description, target_count)
DEFAULT_TEMPLATE_SPECS: Sequence[Tuple[QuestType, QuestDifficulty, str, str, int]] = (
    (QuestType.FEED_MONSTER, QuestDifficulty.EASY,
     "Breakfast Time", "Feed your monster 3 times", 3),
    (QuestType.FEED_MONSTER, QuestDifficulty.MEDIUM,
     "Head Chef", "Feed your monster 5 times", 5),
    (QuestType.FEED_MONSTER, QuestDifficulty.HARD,
     "Royal Feast", "Feed your monster 10 times", 10),
    (QuestType.PLAY_WITH_MONSTER, QuestDifficulty.EASY,
     "Playtime", "Play with your monster 3 times", 3),
    (QuestType.PLAY_WITH_MONSTER, QuestDifficulty.MEDIUM,
     "Playmate", "Play with your monster 5 times", 5),
    (QuestType.PLAY_WITH_MONSTER, QuestDifficulty.HARD,
     "Play Marathon", "Play with your monster 10 times", 10),
    (QuestType.LEVEL_UP_MONSTER, QuestDifficulty.EASY,
     "First Evolution", "Level up your monster once", 1),
    (QuestType.BUY_ACCESSORY, QuestDifficulty.EASY,
     "Beginner Shopper", "Buy 1 accessory", 1),
    (QuestType.BUY_ACCESSORY, QuestDifficulty.MEDIUM,
     "Collector", "Buy 3 accessories", 3),
    (QuestType.EQUIP_ACCESSORY, QuestDifficulty.EASY,
     "Fashionista", "Equip 1 accessory on your monster", 1),
    (QuestType.EQUIP_ACCESSORY, QuestDifficulty.MEDIUM,
     "Expert Stylist", "Equip 3 accessories", 3),
    (QuestType.VISIT_GALLERY, QuestDifficulty.EASY,
     "Explorer", "Visit the monster gallery", 1),
    (QuestType.EARN_COINS, QuestDifficulty.MEDIUM,
     "Coin Collector", "Earn 100 coins", 100),
    (QuestType.EARN_COINS, QuestDifficulty.HARD,
     "Treasurer", "Earn 250 coins", 250),
)


class QuestCatalog:
    """
    Immutable collection of quest templates with weighted distinct sampling.

    Args:
        templates: Templates; (type, difficulty) must be unique
        type_weights: Selection weight per quest type (default 1.0)

    Raises:
        GenerationConfigError: Duplicate (type, difficulty) pair.
    """

    def __init__(
        self,
        templates: Iterable[QuestTemplate],
        type_weights: Optional[Mapping[QuestType, float]] = None,
    ) -> None:
        by_key: Dict[Tuple[QuestType, QuestDifficulty], QuestTemplate] = {}
        for template in templates:
            if template.key in by_key:
                raise GenerationConfigError(
                    f"duplicate quest template {template.key_label}",
                    details={
                        "type": template.type.value,
                        "difficulty": template.difficulty.value,
                    },
                )
            by_key[template.key] = template

        self._templates: Tuple[QuestTemplate, ...] = tuple(by_key.values())
        self._by_key = by_key
        self._weights: Dict[QuestType, float] = dict(type_weights or {})

    def __len__(self) -> int:
        return len(self._templates)

    def all_templates(self) -> Tuple[QuestTemplate, ...]:
        return self._templates

    def template_for(
        self, quest_type: QuestType, difficulty: QuestDifficulty
    ) -> Optional[QuestTemplate]:
        return self._by_key.get((quest_type, difficulty))

    def weight_for(self, quest_type: QuestType) -> float:
        return self._weights.get(quest_type, 1.0)

    @property
    def sample_capacity(self) -> int:
        """Largest batch `sample_distinct` can produce."""
        return sum(1 for t in self._templates if self.weight_for(t.type) > 0)

    def sample_distinct(self, count: int, rng: random.Random) -> List[QuestTemplate]:
        """
        Draw up to `count` pairwise-distinct templates.

        Returns fewer than `count` when the catalog cannot supply that many.
        The draw is fully determined by `rng`.
        """
        if count <= 0:
            return []

        keyed = []
        for template in self._templates:
            weight = self.weight_for(template.type)
            if weight <= 0:
                continue
            keyed.append((rng.random() ** (1.0 / weight), template))

        keyed.sort(key=lambda pair: pair[0], reverse=True)
        return [template for _, template in keyed[:count]]


def build_catalog(
    settings: QuestSettings,
    specs: Sequence[Tuple[QuestType, QuestDifficulty, str, str, int]] = DEFAULT_TEMPLATE_SPECS,
) -> QuestCatalog:
    """
    Build the catalog for `settings`: rewards from the reward formulas,
    disabled quest types left out.
    """
    templates = [
        QuestTemplate(
            type=quest_type,
            difficulty=difficulty,
            title=title,
            description=description,
            target_count=target_count,
            coin_reward=coin_reward_for(settings, difficulty),
            xp_reward=xp_reward_for(settings, difficulty),
        )
        for quest_type, difficulty, title, description, target_count in specs
        if quest_type in settings.enabled_types
    ]
    weights = {quest_type: settings.weight_for(quest_type) for quest_type in QuestType}
    return QuestCatalog(templates, weights)
