"""
User signup and activity generation.

For each period, signups are created first and appended to the entity pool;
only then are daily actives, the monthly-active top-up and logins sampled
from the users eligible at each point in time.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

import numpy as np
import structlog

from generators.catalog import (
    BROWSER_CHOICES,
    FREE_TIER,
    INITIAL_PATHS,
    OS_CHOICES,
    REGIONS,
    SOURCE_ENGAGEMENT,
    SUBSCRIPTION_TIERS,
    City,
    Country,
    normalize_region,
    user_agent,
)
from generators.context import GenerationContext
from generators.models import Event, EventKind, PeriodAccumulator, User
from generators.plan import MonthlyTarget
from generators.sampling import (
    RegionQuota,
    random_instant,
    random_uuid,
    sample_without_replacement,
    uniform,
    uniform_choice,
    weighted_choice,
    weighted_key,
)
from observability.alerts import AlertType

logger = structlog.get_logger("users")

ONE_DAY = timedelta(days=1)
ONE_MICROSECOND = timedelta(microseconds=1)
AVERAGE_MONTH = timedelta(days=30)


@dataclass
class PeriodResult:
    period: str
    new_users: list[User] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)


class UserEventGenerator:
    """
    Generates signups, daily/monthly actives and logins for one period at a time.

    Features:
    - Exact regional signup quotas (see RegionQuota)
    - Geo points de-duplicated through the run's GeoDedupCache
    - Daily actives drawn from a band at or below the nominal daily target
    - Monthly-active top-up from users not yet active this period
    - Logins weighted by recency of signup and acquisition source
    """

    BUSINESS_HOURS = (8, 18)
    BUSINESS_HOURS_SHARE = 0.7

    def __init__(self, context: GenerationContext):
        self.ctx = context
        self.rng: np.random.Generator = context.rng

    def generate_period(
        self, target: MonthlyTarget, accumulator: Optional[PeriodAccumulator] = None
    ) -> PeriodResult:
        acc = accumulator or PeriodAccumulator(period=target.period)
        result = PeriodResult(period=target.period)

        # Signups must land in the pool before any activity is sampled
        new_users, signup_events = self.generate_signups(target, acc)
        result.new_users.extend(new_users)
        result.events.extend(signup_events)

        result.events.extend(self.generate_daily_actives(target, acc))
        result.events.extend(self.top_up_monthly_actives(target, acc))
        result.events.extend(self.generate_logins(target, acc))

        logger.info(
            "user_period_generated",
            period=target.period,
            signups=acc.signups,
            monthly_active=len(acc.active_user_ids),
            logins=acc.logins,
            pool_size=len(self.ctx.pool),
        )
        return result

    # ── Signups ──────────────────────────────────────────────

    def generate_signups(
        self, target: MonthlyTarget, acc: PeriodAccumulator
    ) -> tuple[list[User], list[Event]]:
        start, end = target.bounds
        quota = RegionQuota.from_weights(target.region_weights, target.signup_count)

        users: list[User] = []
        events: list[Event] = []
        for _ in range(target.signup_count):
            region = normalize_region(quota.pick(self.rng))
            created_at = random_instant(self.rng, start, end)
            user = self.create_user(target, region, created_at)

            self.ctx.pool.add(user)
            users.append(user)
            acc.signups += 1
            acc.region_counts[region] = acc.region_counts.get(region, 0) + 1

            events.append(
                self.ctx.new_event(
                    EventKind.SIGNUP,
                    created_at,
                    user,
                    {**user.profile(), **user.properties},
                )
            )
        return users, events

    def create_user(self, target: MonthlyTarget, region: str, created_at: datetime) -> User:
        profile = REGIONS[region]
        country: Country = weighted_choice(self.rng, profile.countries, profile.country_weights)
        city: City = uniform_choice(self.rng, country.cities)
        geo = self.ctx.geo.assign(city.latitude, city.longitude)

        is_paying = bool(self.rng.random() < target.paying_rate)
        subscription = uniform_choice(self.rng, SUBSCRIPTION_TIERS) if is_paying else FREE_TIER
        os_name, os_version = uniform_choice(self.rng, OS_CHOICES)
        browser, browser_version = uniform_choice(self.rng, BROWSER_CHOICES)

        fake = self.ctx.faker
        properties = {
            "$os": os_name,
            "$os_version": os_version,
            "$browser": browser,
            "$browser_version": browser_version,
            "$device_type": "Desktop",
            "$raw_user_agent": user_agent(os_name, os_version, browser, browser_version),
            "$screen_height": 1080,
            "$screen_width": 1920,
            "$viewport_height": int(self.rng.integers(800, 951)),
            "$viewport_width": 1920,
            "$initial_pathname": uniform_choice(self.rng, INITIAL_PATHS),
            "$geoip_city_name": city.name,
            "$geoip_latitude": geo.latitude,
            "$geoip_longitude": geo.longitude,
            "$geoip_postal_code": city.postal_code,
            "$geoip_country_code": country.code,
            "$geoip_country_name": country.name,
            "$geoip_continent_code": country.continent_code,
            "$geoip_continent_name": country.continent_name,
            "$geoip_subdivision_1_code": city.subdivision_code,
            "$geoip_subdivision_1_name": city.subdivision_name,
            "$geoip_time_zone": country.timezone,
            "auth_method": "email",
        }

        return User(
            user_id=random_uuid(self.rng),
            email=fake.email().lower(),
            username=fake.user_name().lower(),
            created_at=created_at,
            signup_period=target.period,
            region=region,
            country=country.name,
            country_code=country.code,
            city=city.name,
            acquisition_source=weighted_key(self.rng, target.channel_weights),
            subscription_type=subscription,
            is_paying=is_paying,
            os_name=os_name,
            browser=browser,
            geo=geo,
            properties=properties,
        )

    # ── Activity ─────────────────────────────────────────────

    def generate_daily_actives(self, target: MonthlyTarget, acc: PeriodAccumulator) -> list[Event]:
        low, high = target.daily_active_range
        if high <= 0:
            return []

        events: list[Event] = []
        for day in target.days:
            eligible = self.ctx.pool.eligible(day)
            drawn = int(self.rng.integers(low, high, endpoint=True))
            chosen = sample_without_replacement(self.rng, eligible, drawn)
            day_end = day + ONE_DAY - ONE_MICROSECOND

            for user in chosen:
                timestamp = random_instant(self.rng, day, day_end)
                events.append(self._activity_event(user, timestamp))
                acc.active_user_ids.add(user.user_id)

            acc.daily_active_counts[day.date().isoformat()] = len(chosen)
        return events

    def top_up_monthly_actives(self, target: MonthlyTarget, acc: PeriodAccumulator) -> list[Event]:
        deficit = target.monthly_active_target - len(acc.active_user_ids)
        if deficit <= 0:
            return []

        start, end = target.bounds
        candidates = [
            u for u in self.ctx.pool.eligible(end) if u.user_id not in acc.active_user_ids
        ]
        chosen = sample_without_replacement(self.rng, candidates, deficit)

        events = []
        for user in chosen:
            timestamp = random_instant(self.rng, max(start, user.created_at), end)
            events.append(self._activity_event(user, timestamp))
            acc.active_user_ids.add(user.user_id)

        if len(chosen) < deficit:
            self.ctx.alerts.warn(
                AlertType.ACTIVE_TARGET_SHORTFALL,
                "users",
                f"Monthly active target not reachable for {target.period}",
                period=target.period,
                target=target.monthly_active_target,
                achieved=len(acc.active_user_ids),
                eligible=len(self.ctx.pool.eligible(end)),
            )
        return events

    def _activity_event(self, user: User, timestamp: datetime) -> Event:
        return self.ctx.new_event(EventKind.ACTIVE, timestamp, user, user.profile())

    # ── Logins ───────────────────────────────────────────────

    def generate_logins(self, target: MonthlyTarget, acc: PeriodAccumulator) -> list[Event]:
        if target.logins <= 0:
            return []

        start, end = target.bounds
        eligible = self.ctx.pool.eligible(end)
        if not eligible:
            self.ctx.alerts.warn(
                AlertType.ACTIVE_TARGET_SHORTFALL,
                "users",
                f"No eligible users for logins in {target.period}",
                period=target.period,
                target=target.logins,
            )
            return []

        weights = np.array([self.login_weight(user, end) for user in eligible])
        picks = self.rng.choice(len(eligible), size=target.logins, p=weights / weights.sum())

        events = []
        for index in picks:
            user = eligible[int(index)]
            window_start = max(start, user.created_at)
            timestamp = self._login_time(window_start, end)
            events.append(self.ctx.new_event(EventKind.LOGIN, timestamp, user, user.profile()))

        acc.logins += len(events)
        return events

    def login_weight(self, user: User, as_of: datetime) -> float:
        months_since_signup = (as_of - user.created_at) / AVERAGE_MONTH
        recency = max(0.1, 1 - months_since_signup * 0.1)
        engagement = SOURCE_ENGAGEMENT.get(user.acquisition_source, 1.0)
        return recency * uniform(self.rng, 0.3, 1.7) * engagement

    def _login_time(self, window_start: datetime, window_end: datetime) -> datetime:
        timestamp = random_instant(self.rng, window_start, window_end)
        if self.rng.random() < self.BUSINESS_HOURS_SHARE:
            first_hour, last_hour = self.BUSINESS_HOURS
            candidate = timestamp.replace(
                hour=int(self.rng.integers(first_hour, last_hour + 1)),
                minute=int(self.rng.integers(0, 60)),
                second=int(self.rng.integers(0, 60)),
                microsecond=0,
            )
            if window_start <= candidate <= window_end:
                timestamp = candidate
        return timestamp
