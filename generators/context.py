"""
Run-scoped state shared by every generation stage.

A ``GenerationContext`` owns everything that outlives a single period:
the seeded random source, the entity pool, the geo cache and the global
event list. Nothing is kept at module level, so two contexts built from
the same seed produce identical runs.
"""

import bisect
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterator, Optional

import numpy as np
from faker import Faker

from generators.geo import GeoDedupCache
from generators.models import Event, EventKind, PeriodSummary, User
from generators.sampling import random_uuid
from observability.alerts import AlertManager


class EntityPool:
    """Append-only store of users, queryable by signup time."""

    def __init__(self):
        self._users: list[User] = []
        self._by_id: dict[str, User] = {}
        # creation times in sorted order, with matching users
        self._created: list[datetime] = []
        self._sorted: list[User] = []

    def add(self, user: User) -> None:
        if user.user_id in self._by_id:
            raise ValueError(f"Duplicate user id: {user.user_id}")
        self._users.append(user)
        self._by_id[user.user_id] = user
        index = bisect.bisect_right(self._created, user.created_at)
        self._created.insert(index, user.created_at)
        self._sorted.insert(index, user)

    def eligible(self, as_of: datetime) -> list[User]:
        """Users whose signup is at or before ``as_of``, oldest first."""
        return self._sorted[: bisect.bisect_right(self._created, as_of)]

    def get(self, user_id: str) -> Optional[User]:
        return self._by_id.get(user_id)

    def __len__(self) -> int:
        return len(self._users)

    def __iter__(self) -> Iterator[User]:
        return iter(self._users)


@dataclass
class GenerationContext:
    rng: np.random.Generator
    faker: Faker
    geo: GeoDedupCache
    seed: Optional[int] = None
    pool: EntityPool = field(default_factory=EntityPool)
    events: list[Event] = field(default_factory=list)
    summaries: list[PeriodSummary] = field(default_factory=list)
    alerts: AlertManager = field(default_factory=AlertManager)

    @classmethod
    def create(cls, seed: Optional[int] = None, geo_max_attempts: int = 10_000) -> "GenerationContext":
        rng = np.random.default_rng(seed)
        faker = Faker()
        faker.seed_instance(int(rng.integers(0, 2**31 - 1)))
        return cls(
            rng=rng,
            faker=faker,
            geo=GeoDedupCache(rng, max_attempts=geo_max_attempts),
            seed=seed,
        )

    def new_event(
        self,
        kind: EventKind,
        timestamp: datetime,
        user: Optional[User] = None,
        properties: Optional[dict[str, Any]] = None,
    ) -> Event:
        return Event(
            kind=kind,
            timestamp=timestamp,
            event_id=random_uuid(self.rng),
            user_id=user.user_id if user else None,
            email=user.email if user else None,
            properties=properties or {},
        )

    def emit(self, events: list[Event]) -> None:
        self.events.extend(events)

    def sorted_events(self) -> list[Event]:
        return sorted(self.events, key=lambda e: e.timestamp)
