"""
Synthetic product telemetry generator.

Generates a month-by-month event stream for an analytics tool with:
- Exact regional signup quotas per period
- Daily and monthly actives drawn only from users who already exist
- Data generation jobs reconciled into a per-month volume band
- Support tickets that resolve once, never before they were raised
- Reproducible results via seed
"""

import time
from dataclasses import dataclass, field
from typing import Iterable, Optional

from app.config import Settings, get_settings
from generators.context import GenerationContext
from generators.data_volume import DataVolumeGenerator
from generators.geo import GeoExhaustedError
from generators.models import Event, PeriodAccumulator, PeriodSummary, User
from generators.plan import MonthlyTarget, Plan
from generators.tickets import TicketDesk
from generators.users import UserEventGenerator
from observability.alerts import Alert, AlertType

STAGES = ("users", "data", "tickets")


@dataclass
class GenerationResult:
    users: list[User] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)
    summaries: list[PeriodSummary] = field(default_factory=list)
    warnings: list[Alert] = field(default_factory=list)

    def summary_for(self, period: str) -> Optional[PeriodSummary]:
        return next((s for s in self.summaries if s.period == period), None)


class SyntheticDataGenerator:
    """
    Runs every stage of every period of a plan against one GenerationContext.

    Users are always generated, since data jobs and tickets are owned by
    them; ``include`` only selects which stages contribute events to the
    result.
    """

    def __init__(
        self,
        plan: Plan,
        seed: Optional[int] = None,
        settings: Optional[Settings] = None,
    ):
        self.plan = plan
        self.settings = settings or get_settings()
        self.seed = seed if seed is not None else self.settings.GENERATION_SEED
        self.context = GenerationContext.create(
            seed=self.seed, geo_max_attempts=self.settings.GEO_MAX_ATTEMPTS
        )
        self.users = UserEventGenerator(self.context)
        self.data = DataVolumeGenerator(
            self.context,
            bytes_per_word=self.settings.BYTES_PER_WORD,
            failure_rate=self.settings.JOB_FAILURE_RATE,
        )
        self.tickets = TicketDesk(self.context)

    def generate_period(
        self, target: MonthlyTarget, include: Iterable[str] = STAGES
    ) -> PeriodSummary:
        include = set(include)
        acc = PeriodAccumulator(period=target.period)
        print(f"Generating {target.period}...")

        events: list[Event] = []
        user_result = self.users.generate_period(target, acc)
        if "users" in include:
            events.extend(user_result.events)

        if "data" in include:
            events.extend(self.data.generate_period(target, acc))

        if "tickets" in include:
            events.extend(self.tickets.generate_period(target, acc))

        self.context.emit(events)
        acc.event_count = len(events)
        summary = acc.freeze()
        self.context.summaries.append(summary)
        print(
            f"  {summary.signups:,} signups, {summary.monthly_active_users:,} monthly actives, "
            f"{summary.data_events:,} data jobs ({summary.volume_mb / 1024:.2f} GB), "
            f"{summary.tickets_raised} tickets raised / {summary.tickets_resolved} resolved"
        )
        return summary

    def generate_all(self, include: Iterable[str] = STAGES) -> GenerationResult:
        """
        Generate every period of the plan in order.

        Args:
            include: Stages whose events are kept ("users", "data", "tickets")

        Returns:
            GenerationResult with the timestamp-sorted event list
        """
        include = list(include)
        unknown = set(include) - set(STAGES)
        if unknown:
            raise ValueError(f"Unknown stages: {sorted(unknown)}. Use any of: {list(STAGES)}")

        alerts = self.context.alerts
        alerts.emit_run_started("generate", periods=len(self.plan.periods), seed=self.seed)
        print(f"\n{'='*60}")
        print(f"Generating {len(self.plan.periods)} periods (seed={self.seed})")
        print(f"{'='*60}\n")

        start_time = time.time()
        try:
            for target in self.plan.periods:
                self.generate_period(target, include)
        except GeoExhaustedError as e:
            alerts.emit_failure(AlertType.GEO_EXHAUSTED, "generate", str(e))
            raise

        result = GenerationResult(
            users=list(self.context.pool),
            events=self.context.sorted_events(),
            summaries=list(self.context.summaries),
            warnings=list(alerts.warnings),
        )
        alerts.emit_run_completed(
            "generate",
            duration_seconds=time.time() - start_time,
            events_generated=len(result.events),
            users=len(result.users),
            warnings=len(result.warnings),
        )

        print(f"\n{'='*60}")
        print("Generation complete!")
        print(f"{'='*60}")
        print(f"  users: {len(result.users):,}")
        print(f"  events: {len(result.events):,}")
        if result.warnings:
            print(f"  warnings: {len(result.warnings)}")
        return result
