"""
Unit tests for the quest template catalog and weighted distinct sampling.
"""

import random

import pytest

from questline.database.models.enums import QuestDifficulty, QuestType
from questline.modules.quests.catalog import (
    DEFAULT_TEMPLATE_SPECS,
    QuestCatalog,
    QuestTemplate,
    build_catalog,
)
from questline.modules.quests.settings import QuestSettings
from questline.modules.shared.exceptions import GenerationConfigError


def _template(quest_type=QuestType.FEED_MONSTER, difficulty=QuestDifficulty.EASY, target=3):
    return QuestTemplate(
        type=quest_type,
        difficulty=difficulty,
        title="Test",
        description="Test quest",
        target_count=target,
        coin_reward=50,
        xp_reward=10,
    )


class TestQuestTemplate:
    def test_non_positive_target_rejected(self):
        with pytest.raises(GenerationConfigError):
            _template(target=0)

    def test_negative_reward_rejected(self):
        with pytest.raises(GenerationConfigError):
            QuestTemplate(
                type=QuestType.FEED_MONSTER,
                difficulty=QuestDifficulty.EASY,
                title="Bad",
                description="Bad",
                target_count=1,
                coin_reward=-1,
                xp_reward=0,
            )


class TestQuestCatalog:
    def test_duplicate_pair_rejected(self):
        with pytest.raises(GenerationConfigError):
            QuestCatalog([_template(), _template(target=5)])

    def test_template_lookup(self):
        feed = _template()
        catalog = QuestCatalog([feed])
        assert catalog.template_for(QuestType.FEED_MONSTER, QuestDifficulty.EASY) is feed
        assert catalog.template_for(QuestType.FEED_MONSTER, QuestDifficulty.HARD) is None

    def test_sample_returns_distinct_pairs(self):
        catalog = build_catalog(QuestSettings())
        for seed in range(200):
            batch = catalog.sample_distinct(5, random.Random(seed))
            keys = [template.key for template in batch]
            assert len(batch) == 5
            assert len(set(keys)) == 5

    def test_sample_is_reproducible_with_seed(self):
        catalog = build_catalog(QuestSettings())
        first = catalog.sample_distinct(5, random.Random(42))
        second = catalog.sample_distinct(5, random.Random(42))
        assert first == second

    def test_sample_shorter_when_catalog_small(self):
        catalog = QuestCatalog(
            [_template(), _template(QuestType.VISIT_GALLERY, QuestDifficulty.EASY, 1)]
        )
        assert len(catalog.sample_distinct(5, random.Random(1))) == 2

    def test_zero_weight_type_never_sampled(self):
        catalog = build_catalog(QuestSettings())
        weights = {quest_type: 1.0 for quest_type in QuestType}
        weights[QuestType.FEED_MONSTER] = 0.0
        weighted = QuestCatalog(catalog.all_templates(), weights)

        for seed in range(50):
            batch = weighted.sample_distinct(5, random.Random(seed))
            assert all(t.type is not QuestType.FEED_MONSTER for t in batch)
        assert weighted.sample_capacity == len(catalog) - 3

    def test_heavier_types_drawn_more_often(self):
        catalog = QuestCatalog(
            [
                _template(QuestType.FEED_MONSTER, QuestDifficulty.EASY),
                _template(QuestType.VISIT_GALLERY, QuestDifficulty.EASY),
            ],
            {QuestType.FEED_MONSTER: 4.0, QuestType.VISIT_GALLERY: 1.0},
        )
        rng = random.Random(7)
        feed_first = sum(
            catalog.sample_distinct(1, rng)[0].type is QuestType.FEED_MONSTER
            for _ in range(2000)
        )
        # P(feed first) = 4 / 5 for two weighted keys.
        assert 1450 < feed_first < 1750

    def test_zero_count(self):
        assert build_catalog(QuestSettings()).sample_distinct(0, random.Random(1)) == []


class TestBuildCatalog:
    def test_default_catalog_has_fourteen_templates(self):
        assert len(build_catalog(QuestSettings())) == len(DEFAULT_TEMPLATE_SPECS) == 14

    def test_rewards_from_formulas(self):
        catalog = build_catalog(QuestSettings())
        hard = catalog.template_for(QuestType.FEED_MONSTER, QuestDifficulty.HARD)
        medium = catalog.template_for(QuestType.PLAY_WITH_MONSTER, QuestDifficulty.MEDIUM)
        assert hard.coin_reward == 100 and hard.xp_reward == 20
        assert medium.coin_reward == 75 and medium.xp_reward == 15

    def test_disabled_types_left_out(self):
        settings = QuestSettings(
            enabled_types=frozenset(QuestType) - {QuestType.EARN_COINS}
        )
        catalog = build_catalog(settings)
        assert len(catalog) == 12
        assert all(t.type is not QuestType.EARN_COINS for t in catalog.all_templates())
