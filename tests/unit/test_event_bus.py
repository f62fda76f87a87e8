"""
Unit tests for the in-process EventBus.
"""

import asyncio

import pytest

from questline.core.event import EventBus, EventRouter, ListenerPriority


@pytest.fixture
def bus():
    return EventBus(critical_timeout_seconds=0.2, high_timeout_seconds=0.2)


class TestSubscription:
    async def test_publish_reaches_listener(self, bus):
        received = []

        async def on_claim(payload):
            received.append(payload["quest_id"])

        bus.subscribe("daily_quest.claimed", on_claim)
        await bus.publish("daily_quest.claimed", {"quest_id": 3})

        assert received == [3]

    async def test_wildcard_subscription(self, bus):
        received = []

        async def on_any(payload):
            received.append(payload["n"])

        bus.subscribe("daily_quest.*", on_any)
        await bus.publish("daily_quest.generated", {"n": 1})
        await bus.publish("daily_quest.expired", {"n": 2})
        await bus.publish("gameplay.action", {"n": 3})

        assert received == [1, 2]

    def test_callback_must_take_one_argument(self, bus):
        async def bad(payload, extra):
            pass

        with pytest.raises(ValueError):
            bus.subscribe("daily_quest.claimed", bad)

    def test_duplicate_identifier_prevented(self, bus):
        async def listener(payload):
            pass

        bus.subscribe("x.y", listener, identifier="one")
        bus.subscribe("x.y", listener, identifier="one")
        assert bus.get_listener_count("x.y") == 1

    async def test_once_listener_runs_once(self, bus):
        calls = []

        async def listener(payload):
            calls.append(payload)

        bus.subscribe("x.y", listener, once=True)
        await bus.publish("x.y", {})
        await bus.publish("x.y", {})
        assert len(calls) == 1

    async def test_unsubscribe(self, bus):
        calls = []

        async def listener(payload):
            calls.append(payload)

        listener_id = bus.subscribe("x.y", listener)
        assert bus.unsubscribe("x.y", listener_id) is True
        await bus.publish("x.y", {})
        assert calls == []


class TestIsolation:
    async def test_failing_listener_does_not_break_others(self, bus):
        received = []

        async def broken(payload):
            raise RuntimeError("boom")

        async def healthy(payload):
            received.append(payload)

        bus.subscribe("x.y", broken, identifier="broken")
        bus.subscribe("x.y", healthy, identifier="healthy")
        await bus.publish("x.y", {"ok": True})

        assert received == [{"ok": True}]

    async def test_critical_listener_timeout(self, bus):
        async def slow(payload):
            await asyncio.sleep(5)

        bus.subscribe("x.y", slow, priority=ListenerPriority.CRITICAL)
        results = await bus.publish("x.y", {})
        assert results == [None]

    async def test_priority_order(self, bus):
        order = []

        def make(name):
            async def listener(payload):
                order.append(name)

            return listener

        bus.subscribe("x.y", make("normal"), identifier="n", priority=ListenerPriority.NORMAL)
        bus.subscribe("x.y", make("critical"), identifier="c", priority=ListenerPriority.CRITICAL)
        bus.subscribe("x.y", make("high"), identifier="h", priority=ListenerPriority.HIGH)
        await bus.publish("x.y", {})

        assert order == ["critical", "high", "normal"]


class TestRouter:
    @pytest.mark.parametrize(
        "event,pattern,expected",
        [
            ("daily_quest.claimed", "daily_quest.claimed", True),
            ("daily_quest.claimed", "daily_quest.*", True),
            ("daily_quest.claimed", "*.claimed", True),
            ("daily_quest.claimed", "*", True),
            ("gameplay.action", "daily_quest.*", False),
            ("daily_quest.claimed", "daily_*.claimed", True),
            ("daily_quest.claimed", "daily_quest.claimed.*", False),
            ("quest+bonus.claimed", "quest+bonus.*", True),
            ("questxbonus.claimed", "quest.bonus.*", False),
        ],
    )
    def test_matches(self, event, pattern, expected):
        assert EventRouter().matches(event, pattern) is expected
