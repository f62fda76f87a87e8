"""
In-process event system: EventBus, listener priorities and wildcard routing.
"""

from questline.core.event.bus import EventBus
from questline.core.event.router import EventRouter
from questline.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)

__all__ = [
    "EventBus",
    "EventRouter",
    "EventListener",
    "EventPayload",
    "CallbackType",
    "ListenerPriority",
]
