"""
Quest Reward Formulas

Pure calculation functions for quest rewards. No infrastructure, database or
config access: every parameter is passed in.

Usage
-----
    from questline.modules.quests.formulas import calculate_reward

    coins = calculate_reward(50, QuestDifficulty.MEDIUM, {QuestDifficulty.MEDIUM: 1.5})
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Mapping

from questline.database.models.enums import QuestDifficulty
from questline.modules.shared.exceptions import GenerationConfigError

if TYPE_CHECKING:
    from questline.modules.quests.settings import QuestSettings


DEFAULT_DIFFICULTY_MULTIPLIERS: Mapping[QuestDifficulty, float] = {
    QuestDifficulty.EASY: 1.0,
    QuestDifficulty.MEDIUM: 1.5,
    QuestDifficulty.HARD: 2.0,
}


def calculate_reward(
    base_amount: int,
    difficulty: QuestDifficulty,
    multipliers: Mapping[QuestDifficulty, float] = DEFAULT_DIFFICULTY_MULTIPLIERS,
) -> int:
    """
    Apply the difficulty multiplier to a base reward, rounding down.

    Args:
        base_amount: Base reward before the multiplier
        difficulty: Quest difficulty
        multipliers: Multiplier per difficulty

    Returns:
        floor(base_amount * multiplier)

    Raises:
        GenerationConfigError: If no multiplier is configured for `difficulty`

    Example:
        >>> calculate_reward(50, QuestDifficulty.MEDIUM)
        75
        >>> calculate_reward(10, QuestDifficulty.HARD)
        20
    """
    try:
        multiplier = multipliers[difficulty]
    except KeyError:
        raise GenerationConfigError(
            f"no reward multiplier configured for difficulty '{difficulty.value}'",
            details={"difficulty": difficulty.value},
        ) from None

    return math.floor(base_amount * multiplier)


def coin_reward_for(settings: QuestSettings, difficulty: QuestDifficulty) -> int:
    """Coin reward for a difficulty under the given settings."""
    return calculate_reward(
        settings.base_coin_reward, difficulty, settings.difficulty_multipliers
    )


def xp_reward_for(settings: QuestSettings, difficulty: QuestDifficulty) -> int:
    """XP reward for a difficulty under the given settings."""
    return calculate_reward(
        settings.base_xp_reward, difficulty, settings.difficulty_multipliers
    )


def calculate_progress_percentage(current_progress: int, target_count: int) -> int:
    """
    Whole-number completion percentage, capped at 100.

    Example:
        >>> calculate_progress_percentage(2, 3)
        66
    """
    if target_count <= 0:
        return 0
    return min(100, (max(0, current_progress) * 100) // target_count)
