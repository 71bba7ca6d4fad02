"""Brief pipeline: one user end-to-end, and scheduler-driven batches.

  user → subscriptions → aggregate → global events → compose → send → log

Batches run users concurrently; one user's failure never touches another.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import date, datetime, timezone
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .aggregator import NewsAggregator
from .composer import BriefComposer
from .config import AppConfig
from .errors import NewsBriefError, NoSubscriptionsError, NotFoundError
from .models import BatchError, BatchResult, BriefData, User
from .output import render_text
from .stores import BriefLog, GlobalEventStore, SubscriptionStore, UserStore

logger = logging.getLogger(__name__)


class BriefSender(Protocol):
    """Outbound email: ``send(to, subject, html, text) -> message id``."""

    async def send(self, to: str, subject: str, html: str, text: str) -> str: ...


def _local_now(user: User, now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(ZoneInfo(user.preference.timezone))


class BriefPipeline:
    def __init__(
        self,
        users: UserStore,
        subscriptions: SubscriptionStore,
        events: GlobalEventStore,
        briefs: BriefLog,
        aggregator: NewsAggregator,
        composer: BriefComposer,
        sender: BriefSender | None = None,
        config: AppConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.users = users
        self.subscriptions = subscriptions
        self.events = events
        self.briefs = briefs
        self.aggregator = aggregator
        self.composer = composer
        self.sender = sender
        self.config = config or AppConfig()
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Single user
    # ------------------------------------------------------------------

    async def _require_user(self, user_id: str) -> User:
        user = await self.users.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    async def generate_brief_for_user(self, user_id: str, now: datetime | None = None) -> BriefData:
        """Aggregate and compose one user's brief.

        Raises NotFoundError for unknown users and NoSubscriptionsError when
        there is nothing to brief. Everything downstream degrades instead of
        raising.
        """
        user = await self._require_user(user_id)
        if not await self.subscriptions.list_subscriptions(user_id):
            raise NoSubscriptionsError(user_id)

        today: date = _local_now(user, now).date()
        preferences = user.preference

        topic_news = await self.aggregator.aggregate_for_user(user_id)
        global_events = (
            await self.events.list_active_events_for_date(today)
            if preferences.include_global
            else []
        )

        return await self.composer.compose(
            user=user,
            topic_news=topic_news,
            global_events=global_events,
            preferences=preferences,
            today=today,
        )

    async def deliver_brief(self, user_id: str, now: datetime | None = None) -> str:
        """Generate, send and record a brief. Returns the sender's message id."""
        if self.sender is None:
            raise NewsBriefError("No sender configured")

        user = await self._require_user(user_id)
        if not user.email:
            raise NewsBriefError(f"User {user_id} has no email address")

        brief = await self.generate_brief_for_user(user_id, now)
        text = render_text(brief)

        try:
            message_id = await self.sender.send(
                to=user.email, subject=brief.subject, html="", text=text
            )
        except Exception:
            await self.briefs.record(user_id, brief.subject, "FAILED", now)
            raise

        await self.briefs.record(user_id, brief.subject, "SENT", now)
        logger.info("Brief sent to %s (%s)", user.email, message_id)
        return message_id

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    async def users_due_now(self, now: datetime | None = None) -> list[User]:
        """Users with subscriptions whose local hour is their delivery hour."""
        now = now or datetime.now(timezone.utc)
        due: list[User] = []
        for user in await self.users.list_users():
            if not await self.subscriptions.list_subscriptions(user.id):
                continue
            try:
                local = _local_now(user, now)
            except (ZoneInfoNotFoundError, ValueError) as e:
                logger.warning(
                    "User %s has invalid timezone %r, skipping: %s",
                    user.id, user.preference.timezone, e,
                )
                continue
            if local.hour == user.preference.delivery_hour:
                due.append(user)
        return due

    async def _process_user(self, user_id: str, result: BatchResult, now: datetime | None) -> None:
        try:
            user = await self.users.get_user(user_id)
            if user is None:
                result.skipped += 1
                return

            if await self.briefs.has_received_brief_today(user_id, user.preference.timezone, now):
                logger.info("User %s already received a brief today, skipping", user_id)
                result.skipped += 1
                return

            if not await self.subscriptions.list_subscriptions(user_id):
                logger.info("User %s has no subscriptions, skipping", user_id)
                result.skipped += 1
                return

            await self.deliver_brief(user_id, now)
            result.succeeded += 1
        except Exception as e:
            result.failed += 1
            result.errors.append(BatchError(user_id=user_id, error=str(e) or type(e).__name__))
            logger.exception("Failed to process brief for user %s", user_id)

    async def process_brief_batch(
        self,
        user_ids: list[str],
        batch_size: int | None = None,
        delay: float | None = None,
        now: datetime | None = None,
    ) -> BatchResult:
        """Generate and send briefs in fixed-size concurrent batches.

        A short pause between batches keeps external rate limits happy.
        """
        batch_size = batch_size or self.config.batch.size
        delay = self.config.batch.delay if delay is None else delay
        result = BatchResult(total=len(user_ids))

        for start in range(0, len(user_ids), batch_size):
            batch = user_ids[start : start + batch_size]
            await asyncio.gather(*(self._process_user(uid, result, now) for uid in batch))

            if start + batch_size < len(user_ids):
                await self._sleep(delay)

        logger.info(
            "Batch done: %d total, %d succeeded, %d failed, %d skipped",
            result.total, result.succeeded, result.failed, result.skipped,
        )
        return result
