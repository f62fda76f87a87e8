"""
Pytest configuration and fixtures for the Questline test suite.

Purpose
-------
Centralized fixtures for database, settings, ledgers, clock and event bus.

Architecture Notes
------------------
- Unit tests for pure helpers need no fixtures at all
- Service tests run against a throwaway SQLite file through the real
  DatabaseService (fast, no Docker)
- Integration tests use testcontainers PostgreSQL for row locks and
  concurrent transactions
"""

from __future__ import annotations

import asyncio
import os
import random
from datetime import datetime, timedelta
from typing import AsyncGenerator, Generator, List, Optional, Tuple

# Environment must be in place before questline reads it on import.
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from sqlalchemy import text
from testcontainers.postgres import PostgresContainer

from questline.core.config import ConfigManager
from questline.core.database import DatabaseService
from questline.core.event import EventBus, ListenerPriority
from questline.core.logging import get_logger
from questline.modules.quests import (
    DailyQuestService,
    QuestSettings,
    build_catalog,
)

logger = get_logger(__name__)


# ============================================================================
# TEST DOUBLES
# ============================================================================


class FrozenClock:
    """Injectable clock returning naive UTC; tests move it explicitly."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeLedger:
    """
    Records grants. Can refuse, raise or stall to exercise failure paths.

    Every accepted call pays out; there is no deduplication on `reference`.
    """

    def __init__(
        self,
        result: bool = True,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ) -> None:
        self.result = result
        self.error = error
        self.delay = delay
        self.calls: List[Tuple[str, int, str]] = []
        self.granted: List[Tuple[str, int, str]] = []

    async def _grant(self, owner_id: str, amount: int, reference: str) -> bool:
        self.calls.append((owner_id, amount, reference))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.result:
            self.granted.append((owner_id, amount, reference))
        return self.result

    async def grant_coins(self, owner_id: str, amount: int, *, reference: str) -> bool:
        return await self._grant(owner_id, amount, reference)

    async def grant_xp(self, owner_id: str, amount: int, *, reference: str) -> bool:
        return await self._grant(owner_id, amount, reference)

    @property
    def total_granted(self) -> int:
        return sum(amount for _, amount, _ in self.granted)


class EventRecorder:
    """Captures published quest events in order."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, dict]] = []

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def payloads(self, name: str) -> List[dict]:
        return [payload for event_name, payload in self.events if event_name == name]

    def listener_for(self, event_name: str):
        async def _listener(payload: dict) -> None:
            self.events.append((event_name, dict(payload)))

        return _listener


# ============================================================================
# CORE FIXTURES
# ============================================================================


FIXED_NOW = datetime(2025, 1, 15, 12, 0, 0)


@pytest.fixture(autouse=True)
def reset_config_manager() -> Generator[None, None, None]:
    ConfigManager.clear_cache()
    yield
    ConfigManager.clear_cache()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(FIXED_NOW)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def settings() -> QuestSettings:
    return QuestSettings(reset_timezone="UTC")


@pytest.fixture
def coin_ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus(critical_timeout_seconds=1.0, high_timeout_seconds=1.0)


QUEST_EVENTS = (
    "daily_quest.generated",
    "daily_quest.progressed",
    "daily_quest.completed",
    "daily_quest.claimed",
    "daily_quest.expired",
    "daily_quest.xp_grant_deferred",
)


@pytest.fixture
def recorder(event_bus: EventBus) -> EventRecorder:
    recorder = EventRecorder()
    for name in QUEST_EVENTS:
        event_bus.subscribe(
            name,
            recorder.listener_for(name),
            priority=ListenerPriority.HIGH,
            identifier=f"recorder@{name}",
        )
    return recorder



# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[type, None]:
    """
    Fresh SQLite database per test, wired through DatabaseService.

    Scope: function (clean slate for every test)
    """
    await DatabaseService.shutdown()
    await DatabaseService.initialize(f"sqlite+aiosqlite:///{tmp_path / 'questline.db'}")
    await DatabaseService.create_all()
    yield DatabaseService
    await DatabaseService.shutdown()


@pytest.fixture
def make_service(settings, coin_ledger, event_bus, rng, clock):
    """Factory so tests can swap settings or ledgers per case."""

    def _make(**overrides) -> DailyQuestService:
        quest_settings = overrides.pop("settings", settings)
        return DailyQuestService(
            quest_settings,
            overrides.pop("catalog", build_catalog(quest_settings)),
            overrides.pop("coin_ledger", coin_ledger),
            overrides.pop("event_bus", event_bus),
            overrides.pop("logger", get_logger("tests.quests")),
            rng=overrides.pop("rng", rng),
            clock=overrides.pop("clock", clock),
            **overrides,
        )

    return _make


@pytest.fixture
def service(database, make_service) -> DailyQuestService:
    return make_service()


# ============================================================================
# TESTCONTAINERS FIXTURES (Integration Tests)
# ============================================================================


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start a PostgreSQL testcontainer for integration tests.

    Scope: session (container persists across all tests)
    """
    logger.info("Starting PostgreSQL testcontainer...")
    container = PostgresContainer(image="postgres:17-alpine", driver="asyncpg")
    container.start()
    logger.info("PostgreSQL testcontainer started: %s", container.get_connection_url())

    yield container

    logger.info("Stopping PostgreSQL testcontainer...")
    container.stop()


@pytest_asyncio.fixture
async def postgres_database(
    postgres_container: PostgresContainer,
) -> AsyncGenerator[type, None]:
    """DatabaseService bound to the container; table emptied after each test."""
    await DatabaseService.shutdown()
    await DatabaseService.initialize(postgres_container.get_connection_url())
    await DatabaseService.create_all()

    yield DatabaseService

    async with DatabaseService.get_transaction() as session:
        await session.execute(text("DELETE FROM daily_quests"))
    await DatabaseService.shutdown()
