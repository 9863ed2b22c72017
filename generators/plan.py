"""
Monthly target plans.

A plan is an ordered table of calendar months, each with the aggregate
targets the generators must hit (signups, daily/monthly actives, data
volume, tickets) and the weights used to distribute attributes.

Plans are injectable: load one from JSON with ``load_plan`` or pick a
built-in preset with ``get_preset``.
"""

import calendar
import json
import math
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from generators.catalog import normalize_region

GB = 1024 * 1024 * 1024

# Lower bound of the daily active band when only the nominal target is given
DAILY_ACTIVE_FLOOR_RATIO = 0.6


class PlanError(ValueError):
    """Raised for plans that cannot be used to drive generation."""


class MonthlyTarget(BaseModel):
    """Targets for one calendar month. Immutable once validated."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    period: str
    signup_count: int
    daily_active_range: tuple[int, int] = (0, 0)
    monthly_active_target: int = 0
    volume_target_bytes: float = 0.0
    region_weights: dict[str, float]
    channel_weights: dict[str, float]

    logins: int = 0
    tickets_raised: int = 0
    tickets_resolved: int = 0
    activity_rate: float = 0.8
    events_per_user_per_day: tuple[float, float] = (0.3, 0.5)
    paying_rate: float = 0.1

    @field_validator("period")
    @classmethod
    def parse_period(cls, v: str) -> str:
        try:
            parsed = datetime.strptime(v, "%Y-%m")
        except ValueError:
            raise ValueError(f"period must look like YYYY-MM, got {v!r}")
        return parsed.strftime("%Y-%m")

    @field_validator("daily_active_range", mode="before")
    @classmethod
    def expand_daily_target(cls, v):
        # A bare number is the nominal daily target; the band sits below it
        if isinstance(v, (int, float)):
            target = int(v)
            return (math.floor(target * DAILY_ACTIVE_FLOOR_RATIO), target)
        return v

    @field_validator(
        "signup_count",
        "monthly_active_target",
        "logins",
        "tickets_raised",
        "tickets_resolved",
        "volume_target_bytes",
    )
    @classmethod
    def non_negative(cls, v):
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_validator("region_weights", "channel_weights")
    @classmethod
    def usable_weights(cls, v: dict[str, float]) -> dict[str, float]:
        if not v:
            raise ValueError("weights must not be empty")
        if any(w < 0 for w in v.values()):
            raise ValueError("weights must not be negative")
        if sum(v.values()) <= 0:
            raise ValueError("weights must have a positive sum")
        return v

    @field_validator("region_weights")
    @classmethod
    def known_regions(cls, v: dict[str, float]) -> dict[str, float]:
        for label in v:
            try:
                normalize_region(label)
            except KeyError as e:
                raise ValueError(e.args[0]) from None
        return v

    @field_validator("activity_rate", "paying_rate")
    @classmethod
    def probability(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("must be between 0 and 1")
        return v

    @model_validator(mode="after")
    def ordered_ranges(self) -> "MonthlyTarget":
        lo, hi = self.daily_active_range
        if lo < 0 or lo > hi:
            raise ValueError(f"dailyActiveRange must satisfy 0 <= lo <= hi, got {lo}..{hi}")
        lo_rate, hi_rate = self.events_per_user_per_day
        if lo_rate < 0 or lo_rate > hi_rate:
            raise ValueError("eventsPerUserPerDay must be an ordered non-negative pair")
        return self

    @property
    def bounds(self) -> tuple[datetime, datetime]:
        return period_bounds(self.period)

    @property
    def days(self) -> list[datetime]:
        return period_days(self.period)

    @property
    def volume_target_mb(self) -> float:
        return self.volume_target_bytes / (1024 * 1024)


class Plan(BaseModel):
    periods: list[MonthlyTarget]

    @field_validator("periods")
    @classmethod
    def sorted_unique(cls, v: list[MonthlyTarget]) -> list[MonthlyTarget]:
        seen = [p.period for p in v]
        duplicates = sorted({p for p in seen if seen.count(p) > 1})
        if duplicates:
            raise ValueError(f"duplicate periods: {duplicates}")
        return sorted(v, key=lambda p: p.period)

    @property
    def total_signups(self) -> int:
        return sum(p.signup_count for p in self.periods)


def period_bounds(period: str) -> tuple[datetime, datetime]:
    """Return the first and last instant (UTC) of a ``YYYY-MM`` period."""
    year, month = (int(part) for part in period.split("-"))
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    last_day = calendar.monthrange(year, month)[1]
    end = datetime(year, month, last_day, 23, 59, 59, 999_999, tzinfo=timezone.utc)
    return start, end


def period_days(period: str) -> list[datetime]:
    """UTC midnight of every calendar day in ``period``."""
    start, end = period_bounds(period)
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def build_plan(periods: list[Union[dict, MonthlyTarget]]) -> Plan:
    try:
        return Plan(periods=periods)
    except ValidationError as e:
        raise PlanError(str(e)) from e


def load_plan(path: Union[str, Path]) -> Plan:
    """Load a plan from JSON: either ``{"periods": [...]}`` or a bare list."""
    path = Path(path)
    if not path.exists():
        raise PlanError(f"Plan file not found: {path}")

    with open(path) as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as e:
            raise PlanError(f"Plan file is not valid JSON: {e}") from e

    periods = raw.get("periods") if isinstance(raw, dict) else raw
    if not isinstance(periods, list):
        raise PlanError("Plan must be a list of periods or an object with a 'periods' list")
    return build_plan(periods)


# ── Presets ──────────────────────────────────────────────────

ACQUISITION_CHANNELS = {
    "hugging_face": 4.5,
    "github": 7.0,
    "linkedin": 4.5,
    "twitter": 9.5,
    "google_seo": 4.5,
    "google_ads": 4.5,
    "direct": 4.5,
    "referral": 7.0,
}

_GROWTH_ROWS = [
    # period, signups, logins, (IN, US, EU, AE), data GB, raised, resolved, activity
    ("2025-01", 45, 610, (11, 27, 5, 2), 4.5, 1, 1, 0.85),
    ("2025-02", 58, 780, (15, 35, 6, 2), 7.2, 1, 1, 0.82),
    ("2025-03", 74, 1000, (18, 44, 7, 4), 13.3, 2, 2, 0.78),
    ("2025-04", 94, 1270, (24, 56, 9, 5), 18.6, 2, 2, 0.75),
    ("2025-05", 120, 1620, (30, 72, 12, 6), 21.6, 2, 2, 0.72),
]

_GROWTH_EVENT_RATES = [(0.3, 0.5), (0.4, 0.6), (0.5, 0.7), (0.6, 0.8), (0.7, 1.0)]

_LAUNCH_ROWS = [
    # period, signups, mau, dau
    ("2025-01", 50, 43, 19),
    ("2025-02", 73, 105, 47),
    ("2025-03", 106, 195, 88),
    ("2025-04", 154, 325, 146),
    ("2025-05", 223, 515, 232),
]


def _growth_plan() -> Plan:
    periods = []
    for (period, signups, logins, regions, gb, raised, resolved, activity), rates in zip(
        _GROWTH_ROWS, _GROWTH_EVENT_RATES
    ):
        periods.append(
            {
                "period": period,
                "signupCount": signups,
                "logins": logins,
                "dailyActiveRange": max(1, signups // 3),
                "monthlyActiveTarget": signups,
                "volumeTargetBytes": gb * GB,
                "regionWeights": dict(zip(("IN", "US", "EU", "AE"), regions)),
                "channelWeights": ACQUISITION_CHANNELS,
                "ticketsRaised": raised,
                "ticketsResolved": resolved,
                "activityRate": activity,
                "eventsPerUserPerDay": rates,
            }
        )
    return build_plan(periods)


def _launch_plan() -> Plan:
    return build_plan(
        [
            {
                "period": period,
                "signupCount": signups,
                "dailyActiveRange": dau,
                "monthlyActiveTarget": mau,
                "regionWeights": {"IN": 0.6, "US": 0.3, "EU": 0.1},
                "channelWeights": ACQUISITION_CHANNELS,
            }
            for period, signups, mau, dau in _LAUNCH_ROWS
        ]
    )


def _smoke_plan() -> Plan:
    return build_plan(
        [
            {
                "period": "2025-01",
                "signupCount": 1,
                "dailyActiveRange": 1,
                "monthlyActiveTarget": 1,
                "volumeTargetBytes": 0.01 * GB,
                "regionWeights": {"IN": 0.6, "US": 0.3, "EU": 0.1},
                "channelWeights": ACQUISITION_CHANNELS,
                "ticketsRaised": 1,
                "ticketsResolved": 1,
            }
        ]
    )


PRESETS = {
    "growth": _growth_plan,
    "launch": _launch_plan,
    "smoke": _smoke_plan,
}


def get_preset(name: str) -> Plan:
    if name not in PRESETS:
        raise PlanError(f"Unknown preset: {name}. Use one of: {list(PRESETS.keys())}")
    return PRESETS[name]()


def resolve_plan(plan_path: Optional[str] = None, preset: Optional[str] = None) -> Plan:
    if plan_path:
        return load_plan(plan_path)
    return get_preset(preset or "growth")
