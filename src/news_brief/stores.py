"""Read/write contracts for stored entities, plus in-memory adapters.

The pipeline only talks to the abstract stores below. The in-memory
implementations back the CLI (seeded from YAML) and the tests; a database
adapter would implement the same methods.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

import yaml

from .errors import NotFoundError
from .models import GlobalEvent, Subscription, Topic, User, UserPreference

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------

class TopicStore(ABC):
    @abstractmethod
    async def get_topic(self, topic_id: str) -> Topic:
        """Return the topic or raise NotFoundError."""
        ...

    @abstractmethod
    async def list_topics(self, category: str | None = None) -> list[Topic]:
        ...


class SubscriptionStore(ABC):
    @abstractmethod
    async def list_subscriptions(self, user_id: str) -> list[Subscription]:
        """Subscriptions for ``user_id``, highest priority first."""
        ...

    @abstractmethod
    async def upsert(self, user_id: str, topic_id: str, priority: int = 5) -> Subscription:
        """Create the link, or update its priority if it already exists."""
        ...

    @abstractmethod
    async def delete(self, user_id: str, topic_id: str) -> bool:
        """Remove the link (never the topic). Returns whether it existed."""
        ...


class GlobalEventStore(ABC):
    @abstractmethod
    async def list_active_events_for_date(self, day: date) -> list[GlobalEvent]:
        ...


class UserStore(ABC):
    @abstractmethod
    async def get_user(self, user_id: str) -> User | None:
        ...

    @abstractmethod
    async def list_users(self) -> list[User]:
        ...


class BriefLog(ABC):
    """Delivery history used to skip users already briefed today."""

    @abstractmethod
    async def record(self, user_id: str, subject: str, status: str, at: datetime | None = None) -> None:
        ...

    @abstractmethod
    async def has_received_brief_today(
        self, user_id: str, tz: str = "America/New_York", now: datetime | None = None
    ) -> bool:
        ...


# ---------------------------------------------------------------------------
# In-memory adapters
# ---------------------------------------------------------------------------

class InMemoryTopicStore(TopicStore):
    def __init__(self, topics: list[Topic] | None = None) -> None:
        self._topics: dict[str, Topic] = {t.id: t for t in topics or []}

    def add(self, topic: Topic) -> None:
        self._topics[topic.id] = topic

    async def get_topic(self, topic_id: str) -> Topic:
        topic = self._topics.get(topic_id)
        if topic is None:
            raise NotFoundError(f"Topic {topic_id} not found")
        return topic

    async def list_topics(self, category: str | None = None) -> list[Topic]:
        topics = list(self._topics.values())
        if category:
            topics = [t for t in topics if t.category == category]
        return topics


class InMemoryUserStore(UserStore):
    def __init__(self, users: list[User] | None = None) -> None:
        self._users: dict[str, User] = {u.id: u for u in users or []}

    def add(self, user: User) -> None:
        self._users[user.id] = user

    async def get_user(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    async def list_users(self) -> list[User]:
        return list(self._users.values())


class InMemorySubscriptionStore(SubscriptionStore):
    def __init__(self, topics: InMemoryTopicStore, users: InMemoryUserStore | None = None) -> None:
        self._topics = topics
        self._users = users
        # (user_id, topic_id) → priority, insertion-ordered
        self._links: dict[tuple[str, str], int] = {}

    async def list_subscriptions(self, user_id: str) -> list[Subscription]:
        subs = [
            Subscription(
                user_id=uid,
                topic=await self._topics.get_topic(tid),
                priority=priority,
            )
            for (uid, tid), priority in self._links.items()
            if uid == user_id
        ]
        subs.sort(key=lambda s: s.priority, reverse=True)
        return subs

    async def upsert(self, user_id: str, topic_id: str, priority: int = 5) -> Subscription:
        if not 1 <= priority <= 10:
            raise ValueError(f"Priority must be between 1 and 10, got {priority}")
        if self._users is not None and await self._users.get_user(user_id) is None:
            raise NotFoundError(f"User {user_id} not found")
        topic = await self._topics.get_topic(topic_id)

        self._links[(user_id, topic_id)] = priority
        return Subscription(user_id=user_id, topic=topic, priority=priority)

    async def delete(self, user_id: str, topic_id: str) -> bool:
        return self._links.pop((user_id, topic_id), None) is not None


class InMemoryGlobalEventStore(GlobalEventStore):
    def __init__(self, events: list[GlobalEvent] | None = None) -> None:
        self._events = list(events or [])

    def add(self, event: GlobalEvent) -> None:
        self._events.append(event)

    async def list_active_events_for_date(self, day: date) -> list[GlobalEvent]:
        events = [e for e in self._events if e.is_active and e.date.date() == day]
        return sorted(events, key=lambda e: e.date)


@dataclass
class BriefRecord:
    user_id: str
    subject: str
    status: str  # READY / SENT / FAILED
    created_at: datetime


class InMemoryBriefLog(BriefLog):
    def __init__(self) -> None:
        self.records: list[BriefRecord] = []

    async def record(self, user_id: str, subject: str, status: str, at: datetime | None = None) -> None:
        self.records.append(
            BriefRecord(user_id, subject, status, at or datetime.now(timezone.utc))
        )

    async def has_received_brief_today(
        self, user_id: str, tz: str = "America/New_York", now: datetime | None = None
    ) -> bool:
        zone = ZoneInfo(tz)
        today = (now or datetime.now(timezone.utc)).astimezone(zone).date()
        return any(
            r.user_id == user_id
            and r.status in ("SENT", "READY")
            and r.created_at.astimezone(zone).date() == today
            for r in self.records
        )


# ---------------------------------------------------------------------------
# Seed loading
# ---------------------------------------------------------------------------

@dataclass
class Stores:
    topics: InMemoryTopicStore = field(default_factory=InMemoryTopicStore)
    users: InMemoryUserStore = field(default_factory=InMemoryUserStore)
    subscriptions: InMemorySubscriptionStore | None = None
    events: InMemoryGlobalEventStore = field(default_factory=InMemoryGlobalEventStore)
    briefs: InMemoryBriefLog = field(default_factory=InMemoryBriefLog)

    def __post_init__(self) -> None:
        if self.subscriptions is None:
            self.subscriptions = InMemorySubscriptionStore(self.topics, self.users)


async def load_seed(seed_path: str | Path) -> Stores:
    """Build in-memory stores from a YAML seed file.

    Layout: ``topics`` (list of Topic), ``users`` (User fields plus a
    ``subscriptions`` list of ``{topic, priority}``), ``events``.
    """
    stores = Stores()
    path = Path(seed_path)
    if not path.exists():
        logger.warning("Seed file %s not found, starting with empty stores", path)
        return stores

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    for raw in data.get("topics", []):
        stores.topics.add(Topic(**raw))

    for raw in data.get("events", []):
        stores.events.add(GlobalEvent(**raw))

    for raw in data.get("users", []):
        raw = dict(raw)
        subs = raw.pop("subscriptions", [])
        pref = raw.pop("preference", None) or {}
        stores.users.add(User(**raw, preference=UserPreference(**pref)))
        for sub in subs:
            await stores.subscriptions.upsert(raw["id"], sub["topic"], sub.get("priority", 5))

    logger.info(
        "Seed loaded: %d topics, %d users, %d events",
        len(await stores.topics.list_topics()),
        len(await stores.users.list_users()),
        len(data.get("events", [])),
    )
    return stores
