"""
Value types shared by the EventBus and its subscribers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

EventPayload = dict[str, Any]

CallbackType = Union[
    Callable[[EventPayload], Any],
    Callable[[EventPayload], Awaitable[Any]],
]


class ListenerPriority(Enum):
    """
    Lower values run first.

    CRITICAL and HIGH listeners run one at a time under a timeout, NORMAL
    listeners run together, LOW listeners run in the background.
    """

    CRITICAL = 0
    HIGH = 10
    NORMAL = 50
    LOW = 100


@dataclass(slots=True, frozen=True)
class EventListener:
    callback: CallbackType
    priority: ListenerPriority
    identifier: str
    once: bool = False

    @classmethod
    def from_callback(
        cls,
        event_name: str,
        callback: CallbackType,
        priority: ListenerPriority,
        identifier: Optional[str],
        once: bool,
    ) -> EventListener:
        """Build a listener; the identifier defaults to `<qualified name>@<event>`."""
        if identifier is None:
            name = getattr(callback, "__qualname__", None) or getattr(
                callback, "__name__", type(callback).__name__
            )
            identifier = f"{getattr(callback, '__module__', 'unknown')}.{name}@{event_name}"
        return cls(callback, priority, identifier, once)
