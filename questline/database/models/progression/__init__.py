"""Progression models."""

from .daily_quest import DailyQuest

__all__ = ["DailyQuest"]
