"""
Entities and events produced by the generators.

Users are immutable once created. Events are frozen too, except for
their ``properties`` bag: the reconciler amends magnitude entries
(file size, word count) in place, but never the timestamp, kind or owner.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class EventKind(str, Enum):
    SIGNUP = "user-signed-up"
    LOGIN = "user-logged-in"
    ACTIVE = "user-active"
    DATA_GENERATED = "data_generated"
    JOB_FAILED = "job_failed"
    DATA_DOWNLOADED = "data_downloaded"
    TICKET_RAISED = "ticket-raised"
    TICKET_RESOLVED = "ticket-resolved"


# Events whose owner is a person profile (carried as $set on upload)
USER_SCOPED_KINDS = frozenset({EventKind.SIGNUP, EventKind.LOGIN, EventKind.ACTIVE})


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class User:
    """A synthetic user. Owned by the EntityPool once created."""

    user_id: str
    email: str
    username: str
    created_at: datetime
    signup_period: str
    region: str
    country: str
    country_code: str
    city: str
    acquisition_source: str
    subscription_type: str
    is_paying: bool
    os_name: str
    browser: str
    device_type: str = "Desktop"
    geo: Optional[GeoPoint] = None
    properties: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def profile(self) -> dict[str, Any]:
        """Person properties attached to every user-scoped event."""
        return {
            "email": self.email,
            "username": self.username,
            "region": self.region,
            "country": self.country,
            "acquisition_source": self.acquisition_source,
            "isPaying": self.is_paying,
            "subscriptionType": self.subscription_type,
        }


@dataclass(frozen=True)
class Event:
    kind: EventKind
    timestamp: datetime
    event_id: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    properties: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def period(self) -> str:
        return self.timestamp.strftime("%Y-%m")

    def to_record(self) -> dict[str, Any]:
        return {
            "event": self.kind.value,
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(timespec="microseconds"),
            "user_id": self.user_id,
            "email": self.email,
            "properties": dict(self.properties),
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Event":
        """Rebuild an event from its persisted form; optional fields may be absent."""
        timestamp = datetime.fromisoformat(record["timestamp"].replace("Z", "+00:00"))
        return cls(
            kind=EventKind(record["event"]),
            timestamp=timestamp,
            event_id=record.get("event_id") or "",
            user_id=record.get("user_id"),
            email=record.get("email"),
            properties=dict(record.get("properties") or {}),
        )


@dataclass(frozen=True)
class PeriodSummary:
    """Read-only statistics of one generated period."""

    period: str
    signups: int
    region_counts: dict[str, int]
    monthly_active_users: int
    daily_active_counts: dict[str, int]
    logins: int
    data_events: int
    volume_mb: float
    tickets_raised: int
    tickets_resolved: int
    event_count: int


@dataclass
class PeriodAccumulator:
    """Running totals for the period being generated; frozen when it completes."""

    period: str
    signups: int = 0
    region_counts: dict[str, int] = field(default_factory=dict)
    active_user_ids: set[str] = field(default_factory=set)
    daily_active_counts: dict[str, int] = field(default_factory=dict)
    logins: int = 0
    data_events: int = 0
    volume_mb: float = 0.0
    tickets_raised: int = 0
    tickets_resolved: int = 0
    event_count: int = 0

    def freeze(self) -> PeriodSummary:
        return PeriodSummary(
            period=self.period,
            signups=self.signups,
            region_counts=dict(self.region_counts),
            monthly_active_users=len(self.active_user_ids),
            daily_active_counts=dict(self.daily_active_counts),
            logins=self.logins,
            data_events=self.data_events,
            volume_mb=self.volume_mb,
            tickets_raised=self.tickets_raised,
            tickets_resolved=self.tickets_resolved,
            event_count=self.event_count,
        )
