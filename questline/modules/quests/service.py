"""
Daily Quest Service

Purpose
-------
Owns the lifecycle of daily quests: lazy generation of an owner's daily batch,
progress tracking from gameplay actions, completion, exactly-once reward
claims and the expiration sweep.

Responsibilities
----------------
- Generate `quests_per_day` distinct quests per owner per daily boundary
- Apply progress atomically, clamped at the target, auto-completing quests
- Complete and claim quests under a row lock with compare-and-swap writes
- Call the coin (and optional XP) ledger before a claim is finalized
- Expire overdue active quests, lazily per owner and in bulk
- Publish `daily_quest.*` domain events after each committed change

Concurrency Model
-----------------
- Generation: the unique constraint on (owner_id, expires_at, batch_slot)
  lets exactly one concurrent generation commit; the loser rolls back and
  reads the winner's batch.
- Progress: one conditional UPDATE ... RETURNING per call.
- Claim: SELECT ... FOR UPDATE, ledger call, then a CAS completed -> claimed.
  A ledger failure or timeout raises inside the transaction, so nothing is
  written and the quest stays completed.
- XP is granted after coins. If XP fails once coins are paid, the claim
  still commits and `daily_quest.xp_grant_deferred` carries the XP owed.
- The ledger receives the stable reference `daily_quest:<id>` for every
  attempt of the same claim and is expected to deduplicate on it.

Error Handling
--------------
Business failures are raised as `QuestDomainException` subclasses inside the
transaction (rolling it back) and returned as `QuestResult` failures by the
public methods. Database errors propagate.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import (
    TYPE_CHECKING,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
)

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from questline.core.database.base import utcnow
from questline.core.database.service import DatabaseService
from questline.core.validation.input_validator import InputValidator
from questline.database.models.enums import QuestStatus, QuestType
from questline.modules.quests.repository import DailyQuestRepository
from questline.modules.quests.result import QuestResult, returns_result
from questline.modules.quests.schedule import (
    format_time_until_reset,
    next_daily_boundary,
)
from questline.modules.quests.views import QuestView
from questline.modules.shared.base_service import BaseService
from questline.modules.shared.exceptions import (
    AlreadyClaimedError,
    GenerationConfigError,
    InvalidStateError,
    NotFoundError,
    QuestDomainException,
    RewardGrantError,
    TargetNotReachedError,
    ValidationError,
)

if TYPE_CHECKING:
    from logging import Logger

    from questline.core.event.bus import EventBus
    from questline.database.models.progression.daily_quest import DailyQuest
    from questline.modules.quests.catalog import QuestCatalog
    from questline.modules.quests.settings import QuestSettings


Clock = Callable[[], datetime]


class CoinLedger(Protocol):
    async def grant_coins(self, owner_id: str, amount: int, *, reference: str) -> bool:
        ...


class XpLedger(Protocol):
    async def grant_xp(self, owner_id: str, amount: int, *, reference: str) -> bool:
        ...


class QuestEvents:
    GENERATED = "daily_quest.generated"
    PROGRESSED = "daily_quest.progressed"
    COMPLETED = "daily_quest.completed"
    CLAIMED = "daily_quest.claimed"
    EXPIRED = "daily_quest.expired"
    XP_GRANT_DEFERRED = "daily_quest.xp_grant_deferred"


@dataclass(frozen=True)
class RenewalSummary:
    """Outcome of a renewal run over many owners."""

    users_processed: int = 0
    quests_expired: int = 0
    quests_created: int = 0
    errors: Tuple[Dict[str, str], ...] = field(default_factory=tuple)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, object]:
        return {
            "users_processed": self.users_processed,
            "quests_expired": self.quests_expired,
            "quests_created": self.quests_created,
            "errors": [dict(error) for error in self.errors],
        }


class DailyQuestService(BaseService):
    """
    Daily quest lifecycle engine.

    Args:
        settings: Immutable quest settings
        catalog: Template catalog batches are drawn from
        coin_ledger: Receives coin rewards on claim
        event_bus: Destination for `daily_quest.*` events
        logger: Structured logger
        xp_ledger: Optional receiver for XP rewards
        repository: Data access (defaults to `DailyQuestRepository`)
        rng: Random source for generation (seed it for reproducible batches)
        clock: Returns the current time as naive UTC

    Raises:
        GenerationConfigError: If the catalog cannot supply `quests_per_day`
            distinct templates.
    """

    def __init__(
        self,
        settings: QuestSettings,
        catalog: QuestCatalog,
        coin_ledger: CoinLedger,
        event_bus: EventBus,
        logger: Logger,
        *,
        xp_ledger: Optional[XpLedger] = None,
        repository: Optional[DailyQuestRepository] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(event_bus, logger)

        if settings.quests_per_day > catalog.sample_capacity:
            raise GenerationConfigError(
                "quests_per_day exceeds the number of selectable templates",
                details={
                    "quests_per_day": settings.quests_per_day,
                    "catalog_capacity": catalog.sample_capacity,
                },
            )

        self._settings = settings
        self._catalog = catalog
        self._coin_ledger = coin_ledger
        self._xp_ledger = xp_ledger
        self._repo = repository or DailyQuestRepository(logger)
        self._rng = rng or random.Random()
        self._clock: Clock = clock or utcnow

    @property
    def settings(self) -> QuestSettings:
        return self._settings

    # =========================================================================
    # SCHEDULE
    # =========================================================================

    def next_reset_at(self, now: Optional[datetime] = None) -> datetime:
        """Next daily boundary after `now` (naive UTC)."""
        return next_daily_boundary(
            now or self._clock(),
            self._settings.reset_hour,
            self._settings.reset_minute,
            self._settings.reset_timezone,
        )

    def time_until_reset(self, now: Optional[datetime] = None) -> timedelta:
        now = now or self._clock()
        return self.next_reset_at(now) - now

    def format_time_until_reset(self, now: Optional[datetime] = None) -> str:
        return format_time_until_reset(self.time_until_reset(now))

    # =========================================================================
    # GENERATION
    # =========================================================================

    async def get_active_quest_set(self, owner_id: str) -> List[QuestView]:
        """
        Return the owner's quests for the current day, generating them first
        if the owner has none.

        Rows that fail validation are logged and left out; they still count
        as an existing batch, so they never cause a second generation.

        Raises:
            ValidationError: Invalid owner id.
            GenerationConfigError: The catalog could not supply a full batch.
        """
        views, _ = await self._ensure_batch(InputValidator.validate_owner_id(owner_id))
        return views

    async def _ensure_batch(self, owner_id: str) -> Tuple[List[QuestView], int]:
        """Current views plus the number of quests created by this call."""
        now = self._clock()

        async with DatabaseService.get_session() as session:
            existing = await self._repo.find_current(session, owner_id, now)

        if existing:
            return self._to_views(existing), 0

        try:
            quests, expired = await self._generate_batch(owner_id, now)
        except IntegrityError as exc:
            # Another request committed this boundary's batch first.
            async with DatabaseService.get_session() as session:
                winner = await self._repo.find_current(session, owner_id, now)
            if not winner:
                raise
            self.log.info(
                "Concurrent generation detected; using committed batch",
                extra={
                    "owner_id": owner_id,
                    "quest_count": len(winner),
                    "error_type": type(exc).__name__,
                },
            )
            return self._to_views(winner), 0

        views = [QuestView.from_model(quest) for quest in quests]
        self.log_operation(
            "generate_daily_quests",
            owner_id=owner_id,
            quest_count=len(views),
            expires_at=views[0].expires_at.isoformat() if views else None,
            quests_expired=expired,
        )

        if expired:
            await self.emit_event(
                QuestEvents.EXPIRED,
                {"owner_id": owner_id, "count": expired, "swept_at": now.isoformat()},
            )
        await self.emit_event(
            QuestEvents.GENERATED,
            {
                "owner_id": owner_id,
                "quest_ids": [view.id for view in views],
                "quest_types": [view.type.value for view in views],
                "expires_at": views[0].expires_at.isoformat() if views else None,
            },
        )
        return views, len(views)

    async def _generate_batch(
        self, owner_id: str, now: datetime
    ) -> Tuple[List[DailyQuest], int]:
        count = self._settings.quests_per_day
        templates = self._catalog.sample_distinct(count, self._rng)
        if len(templates) < count:
            raise GenerationConfigError(
                "catalog returned fewer templates than quests_per_day",
                details={"requested": count, "returned": len(templates)},
            )

        expires_at = self.next_reset_at(now)

        async with DatabaseService.get_transaction() as session:
            expired = await self._repo.expire_overdue(session, now, owner_id=owner_id)
            quests = self._repo.add_batch(session, owner_id, templates, expires_at, now)
            await self._repo.flush(session)

        return quests, expired

    def _to_views(self, quests: Iterable[DailyQuest]) -> List[QuestView]:
        views: List[QuestView] = []
        for quest in quests:
            try:
                views.append(QuestView.from_model(quest))
            except ValueError as exc:
                self.log.warning(
                    "Skipping invalid daily quest row",
                    extra={
                        "quest_id": quest.id,
                        "owner_id": quest.owner_id,
                        "error": str(exc),
                    },
                )
        return views

    # =========================================================================
    # PROGRESS
    # =========================================================================

    @returns_result("update_progress")
    async def update_progress(
        self, quest_id: int, owner_id: str, increment_by: int = 1
    ) -> QuestView:
        """
        Add progress to one quest.

        Failures: NOT_FOUND (missing or not the owner's), INVALID_STATE (not
        active, or expired), INVALID_INPUT (bad increment).
        """
        owner_id = InputValidator.validate_owner_id(owner_id)
        quest_id = InputValidator.validate_quest_id(quest_id)
        increment_by = InputValidator.validate_positive_integer(
            increment_by, "increment_by"
        )
        now = self._clock()

        async with DatabaseService.get_transaction() as session:
            updated = await self._repo.apply_progress(
                session, owner_id, increment_by, now, quest_id=quest_id
            )
            if not updated:
                quest = await self._repo.get(session, quest_id)
                raise self._explain_miss("update_progress", quest, quest_id, owner_id, now)
            view = QuestView.from_model(updated[0])

        await self._publish_progress([view], increment_by)
        return view

    @returns_result("track_by_type")
    async def track_by_type(
        self,
        owner_id: str,
        quest_type: Union[QuestType, str],
        increment_by: int = 1,
    ) -> List[QuestView]:
        """
        Add progress to every active, unexpired quest of `quest_type`.

        Returns the updated quests; an empty list when none matched.
        """
        owner_id = InputValidator.validate_owner_id(owner_id)
        quest_type = self._parse_quest_type(quest_type)
        increment_by = InputValidator.validate_positive_integer(
            increment_by, "increment_by"
        )
        now = self._clock()

        async with DatabaseService.get_transaction() as session:
            updated = await self._repo.apply_progress(
                session, owner_id, increment_by, now, quest_type=quest_type
            )
            views = [QuestView.from_model(quest) for quest in updated]

        if views:
            await self._publish_progress(views, increment_by)
        return views

    async def _publish_progress(self, views: Sequence[QuestView], increment_by: int) -> None:
        for view in views:
            await self.emit_event(
                QuestEvents.PROGRESSED,
                {
                    "quest_id": view.id,
                    "owner_id": view.owner_id,
                    "quest_type": view.type.value,
                    "increment_by": increment_by,
                    "current_progress": view.current_progress,
                    "target_count": view.target_count,
                },
            )
            # Rows come back completed only if this update completed them.
            if view.status is QuestStatus.COMPLETED:
                await self._publish_completed(view)

    async def _publish_completed(self, view: QuestView) -> None:
        self.log_operation(
            "quest_completed",
            quest_id=view.id,
            owner_id=view.owner_id,
            quest_type=view.type.value,
        )
        await self.emit_event(
            QuestEvents.COMPLETED,
            {
                "quest_id": view.id,
                "owner_id": view.owner_id,
                "quest_type": view.type.value,
                "coin_reward": view.coin_reward,
                "xp_reward": view.xp_reward,
            },
        )

    # =========================================================================
    # COMPLETION & CLAIM
    # =========================================================================

    @returns_result("complete_quest")
    async def complete_quest(self, quest_id: int, owner_id: str) -> QuestView:
        """
        Explicitly complete an active quest whose progress reached the target.

        Failures: NOT_FOUND, INVALID_STATE (not active or expired),
        TARGET_NOT_REACHED.
        """
        owner_id = InputValidator.validate_owner_id(owner_id)
        quest_id = InputValidator.validate_quest_id(quest_id)
        now = self._clock()

        async with DatabaseService.get_transaction() as session:
            quest = await self._load_owned_for_update(session, quest_id, owner_id)

            if quest.status != QuestStatus.ACTIVE.value:
                raise InvalidStateError(
                    "complete_quest", f"quest is {quest.status}", quest.status
                )
            if quest.expires_at <= now:
                raise InvalidStateError("complete_quest", "quest has expired", quest.status)
            if quest.current_progress < quest.target_count:
                raise TargetNotReachedError(
                    quest_id, quest.current_progress, quest.target_count
                )

            changed = await self._repo.transition_status(
                session, quest_id, QuestStatus.ACTIVE, QuestStatus.COMPLETED, now
            )
            if not changed:
                raise InvalidStateError(
                    "complete_quest", "quest status changed concurrently", quest.status
                )
            view = QuestView.from_model(quest)

        await self._publish_completed(view)
        return view

    @returns_result("claim_reward")
    async def claim_reward(self, quest_id: int, owner_id: str) -> QuestView:
        """
        Grant a completed quest's rewards and mark it claimed, exactly once.

        Failures: NOT_FOUND, ALREADY_CLAIMED, INVALID_STATE (not completed, or
        claimed before expiry while early claims are disabled),
        REWARD_GRANT_FAILED (ledger refused, raised or timed out; the quest
        stays completed and the claim can be retried).

        An XP grant failure after the coins were paid does not fail the claim;
        it is published as `daily_quest.xp_grant_deferred`.
        """
        owner_id = InputValidator.validate_owner_id(owner_id)
        quest_id = InputValidator.validate_quest_id(quest_id)
        now = self._clock()

        async with DatabaseService.get_transaction() as session:
            quest = await self._load_owned_for_update(session, quest_id, owner_id)

            if quest.status == QuestStatus.CLAIMED.value:
                raise AlreadyClaimedError(quest_id)
            if quest.status != QuestStatus.COMPLETED.value:
                raise InvalidStateError(
                    "claim_reward", f"quest is {quest.status}", quest.status
                )
            if not self._settings.allow_early_claim and now < quest.expires_at:
                raise InvalidStateError(
                    "claim_reward",
                    "rewards can only be claimed after the quest period ends",
                    quest.status,
                    details={"claimable_at": quest.expires_at.isoformat()},
                )

            xp_failure = await self._grant_rewards(quest)

            changed = await self._repo.transition_status(
                session, quest_id, QuestStatus.COMPLETED, QuestStatus.CLAIMED, now
            )
            if not changed:
                raise AlreadyClaimedError(quest_id)
            view = QuestView.from_model(quest)

        self.log_operation(
            "claim_reward",
            quest_id=view.id,
            owner_id=owner_id,
            coin_reward=view.coin_reward,
            xp_reward=view.xp_reward,
        )
        await self.emit_event(
            QuestEvents.CLAIMED,
            {
                "quest_id": view.id,
                "owner_id": owner_id,
                "coin_reward": view.coin_reward,
                "xp_reward": view.xp_reward,
                "reference": self.reward_reference(view.id),
                "xp_granted": self._xp_ledger is not None and xp_failure is None,
            },
        )
        if xp_failure is not None:
            await self.emit_event(
                QuestEvents.XP_GRANT_DEFERRED,
                {
                    "quest_id": view.id,
                    "owner_id": owner_id,
                    "xp_reward": view.xp_reward,
                    "reference": self.reward_reference(view.id),
                    "reason": xp_failure.reason,
                },
            )
        return view

    @staticmethod
    def reward_reference(quest_id: int) -> str:
        return f"daily_quest:{quest_id}"

    async def _grant_rewards(self, quest: DailyQuest) -> Optional[RewardGrantError]:
        """
        Grant coins, then XP.

        A coin failure raises and nothing is claimed. An XP failure raises
        only when no coins were paid in this attempt; after a coin payment it
        is returned instead, the claim still commits and the XP is left for a
        later retry keyed on the same reference.
        """
        reference = self.reward_reference(quest.id)
        coins_paid = False

        if quest.coin_reward > 0:
            await self._call_ledger(
                "coins",
                quest,
                lambda: self._coin_ledger.grant_coins(
                    quest.owner_id, quest.coin_reward, reference=reference
                ),
            )
            coins_paid = True

        if self._xp_ledger is None or quest.xp_reward <= 0:
            return None

        xp_ledger = self._xp_ledger
        try:
            await self._call_ledger(
                "xp",
                quest,
                lambda: xp_ledger.grant_xp(
                    quest.owner_id, quest.xp_reward, reference=reference
                ),
            )
        except RewardGrantError as exc:
            if not coins_paid:
                raise
            self.log.warning(
                "XP grant failed after coins were paid; claim continues",
                extra={
                    "quest_id": quest.id,
                    "owner_id": quest.owner_id,
                    "xp_reward": quest.xp_reward,
                    "reason": exc.reason,
                },
            )
            return exc
        return None

    async def _call_ledger(self, ledger: str, quest: DailyQuest, grant) -> None:
        timeout = self._settings.reward_grant_timeout_seconds
        try:
            granted = await asyncio.wait_for(grant(), timeout=timeout)
        except asyncio.TimeoutError:
            raise RewardGrantError(
                quest.id, f"{ledger} ledger timed out after {timeout}s", ledger
            ) from None
        except QuestDomainException:
            raise
        except Exception as exc:
            self.log_error(
                "claim_reward", exc, quest_id=quest.id, owner_id=quest.owner_id, ledger=ledger
            )
            raise RewardGrantError(
                quest.id, f"{ledger} ledger error: {exc}", ledger
            ) from exc

        if not granted:
            raise RewardGrantError(quest.id, f"{ledger} ledger refused the grant", ledger)

    # =========================================================================
    # EXPIRATION
    # =========================================================================

    async def expire_overdue(
        self, now: Optional[datetime] = None, owner_id: Optional[str] = None
    ) -> int:
        """
        Expire active quests whose boundary has passed.

        Completed and claimed quests are never touched. Idempotent.

        Returns:
            Number of quests moved to expired.
        """
        now = now or self._clock()
        if owner_id is not None:
            owner_id = InputValidator.validate_owner_id(owner_id)

        async with DatabaseService.get_transaction() as session:
            expired = await self._repo.expire_overdue(session, now, owner_id=owner_id)

        if expired:
            self.log_operation(
                "expire_overdue", owner_id=owner_id, quests_expired=expired
            )
            await self.emit_event(
                QuestEvents.EXPIRED,
                {"owner_id": owner_id, "count": expired, "swept_at": now.isoformat()},
            )
        return expired

    # =========================================================================
    # RENEWAL
    # =========================================================================

    async def renew_quests(self, owner_ids: Iterable[str]) -> RenewalSummary:
        """
        Sweep overdue quests, then make sure every owner has today's batch.

        Failures for one owner are recorded in the summary and do not stop
        the run.
        """
        quests_expired = await self.expire_overdue()
        users_processed = 0
        quests_created = 0
        errors: List[Dict[str, str]] = []

        for owner_id in dict.fromkeys(owner_ids):
            try:
                valid_owner = InputValidator.validate_owner_id(owner_id)
                _, created = await self._ensure_batch(valid_owner)
            except (QuestDomainException, SQLAlchemyError) as exc:
                self.log_error("renew_quests", exc, owner_id=owner_id)
                errors.append({"owner_id": str(owner_id), "error": str(exc)})
                continue
            users_processed += 1
            quests_created += created

        summary = RenewalSummary(
            users_processed=users_processed,
            quests_expired=quests_expired,
            quests_created=quests_created,
            errors=tuple(errors),
        )
        self.log_operation("renew_quests", **summary.to_dict())
        return summary

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _load_owned_for_update(self, session, quest_id: int, owner_id: str) -> DailyQuest:
        quest = await self._repo.find_for_update(session, quest_id)
        if quest is None or quest.owner_id != owner_id:
            raise NotFoundError("DailyQuest", quest_id)
        return quest

    def _explain_miss(
        self,
        action: str,
        quest: Optional[DailyQuest],
        quest_id: int,
        owner_id: str,
        now: datetime,
    ) -> QuestDomainException:
        """Classify why a conditional update matched nothing."""
        if quest is None or quest.owner_id != owner_id:
            return NotFoundError("DailyQuest", quest_id)
        if quest.status != QuestStatus.ACTIVE.value:
            return InvalidStateError(action, f"quest is {quest.status}", quest.status)
        if quest.expires_at <= now:
            return InvalidStateError(action, "quest has expired", quest.status)
        return InvalidStateError(action, "quest changed concurrently", quest.status)

    @staticmethod
    def _parse_quest_type(value: Union[QuestType, str]) -> QuestType:
        if isinstance(value, QuestType):
            return value
        try:
            return QuestType(str(value).strip().lower())
        except ValueError:
            raise ValidationError("quest_type", f"unknown quest type '{value}'") from None
