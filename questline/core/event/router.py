"""
Wildcard routing for EventBus subscriptions.

A `*` in a pattern matches any run of characters, dots included:
`"daily_quest.*"`, `"*.claimed"`, `"*"`. Patterns without `*` match exactly.
"""

from __future__ import annotations

import re
from typing import Dict, Pattern


class EventRouter:
    def __init__(self) -> None:
        self._compiled: Dict[str, Pattern[str]] = {}

    def matches(self, event_name: str, pattern: str) -> bool:
        """
        >>> router = EventRouter()
        >>> router.matches("daily_quest.claimed", "daily_quest.*")
        True
        >>> router.matches("daily_quest.claimed", "*.claimed")
        True
        >>> router.matches("daily_quest.claimed", "gameplay.*")
        False
        """
        if "*" not in pattern:
            return event_name == pattern
        return self._compile(pattern).fullmatch(event_name) is not None

    def _compile(self, pattern: str) -> Pattern[str]:
        regex = self._compiled.get(pattern)
        if regex is None:
            pieces = (re.escape(piece) for piece in pattern.split("*"))
            regex = re.compile(".*".join(pieces))
            self._compiled[pattern] = regex
        return regex
