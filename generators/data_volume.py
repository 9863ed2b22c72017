"""
Data generation job events.

Phase 1 spreads a rough number of ``data_generated`` events over the
period's days with deliberately wide size variation. Phase 2 hands the
events to the Reconciler so the month's total size lands in band. Only
then are the follow-up ``job_failed``/``data_downloaded`` events derived,
so every download reports the final file size.
"""

import math
from datetime import timedelta
from typing import Optional

import numpy as np
import structlog

from generators.catalog import JOB_ERRORS
from generators.context import GenerationContext
from generators.models import Event, EventKind, PeriodAccumulator, User
from generators.plan import MonthlyTarget
from generators.reconciler import ReconcileOutcome, Reconciler
from generators.sampling import random_instant, random_uuid, uniform, uniform_choice
from observability.alerts import AlertType

logger = structlog.get_logger("data_volume")

BYTES_PER_MB = 1024 * 1024
ONE_DAY = timedelta(days=1)
ONE_HOUR = timedelta(hours=1)

MIN_FILE_SIZE_MB = 1.0
# Reconciled sizes may shrink below the Phase 1 minimum but never to zero
RECONCILE_FLOOR_MB = 0.1
SIZE_SPREAD = (2.0, 8.0)
MAX_EVENTS_PER_USER_PER_DAY = 2


def words_for_size(size_mb: float, bytes_per_word: float) -> int:
    return round(size_mb * BYTES_PER_MB / bytes_per_word)


class DataVolumeGenerator:
    def __init__(
        self,
        context: GenerationContext,
        bytes_per_word: float = 8.6,
        failure_rate: float = 0.03,
        reconciler: Optional[Reconciler] = None,
    ):
        self.ctx = context
        self.rng: np.random.Generator = context.rng
        self.bytes_per_word = bytes_per_word
        self.failure_rate = failure_rate
        self.reconciler = reconciler or Reconciler(context.rng, floor=RECONCILE_FLOOR_MB)
        self.last_outcome: Optional[ReconcileOutcome] = None

    def generate_period(
        self, target: MonthlyTarget, accumulator: Optional[PeriodAccumulator] = None
    ) -> list[Event]:
        acc = accumulator or PeriodAccumulator(period=target.period)
        target_mb = target.volume_target_mb
        if target_mb <= 0:
            return []

        primaries = self.generate_primary_events(target)
        outcome = self.reconcile(primaries, target_mb, target.period)

        events = list(primaries)
        for primary in primaries:
            events.append(self.follow_up(primary))

        acc.data_events += len(primaries)
        acc.volume_mb += outcome.after
        logger.info(
            "data_period_generated",
            period=target.period,
            data_events=len(primaries),
            target_mb=round(target_mb, 2),
            volume_mb=round(outcome.after, 2),
            action=outcome.action,
        )
        return events

    # ── Phase 1 ──────────────────────────────────────────────

    def active_generators(self, target: MonthlyTarget) -> list[User]:
        _, end = target.bounds
        return [u for u in self.ctx.pool.eligible(end) if self.rng.random() < target.activity_rate]

    def generate_primary_events(self, target: MonthlyTarget) -> list[Event]:
        active = self.active_generators(target)
        days = target.days
        rate = uniform(self.rng, *target.events_per_user_per_day)
        estimated = round(len(active) * rate * len(days))
        if estimated <= 0:
            return []
        # estimated * MIN_FILE_SIZE_MB must stay within the target
        estimated = min(estimated, max(1, math.floor(target.volume_target_mb / MIN_FILE_SIZE_MB)))

        avg_mb = target.volume_target_mb / estimated
        remaining = estimated
        events: list[Event] = []

        for index, day in enumerate(days):
            if remaining <= 0:
                break
            eligible = [u for u in active if u.created_at <= day]
            if not eligible:
                continue

            remaining_days = len(days) - index
            count = min(
                math.ceil(remaining / remaining_days),
                MAX_EVENTS_PER_USER_PER_DAY * len(eligible),
            )
            day_end = day + ONE_DAY - timedelta(microseconds=1)
            for _ in range(count):
                user = uniform_choice(self.rng, eligible)
                timestamp = random_instant(self.rng, day, day_end)
                size_mb = max(avg_mb * uniform(self.rng, *SIZE_SPREAD), MIN_FILE_SIZE_MB)
                events.append(
                    self.ctx.new_event(
                        EventKind.DATA_GENERATED,
                        timestamp,
                        user,
                        {
                            "projectId": random_uuid(self.rng),
                            "file_size": size_mb,
                            "words": words_for_size(size_mb, self.bytes_per_word),
                            "data_type": "jsonl",
                        },
                    )
                )
            remaining -= count

        return events

    # ── Phase 2 ──────────────────────────────────────────────

    def reconcile(self, events: list[Event], target_mb: float, period: str) -> ReconcileOutcome:
        def get_size(event: Event) -> float:
            return event.properties["file_size"]

        def set_size(event: Event, size_mb: float) -> None:
            event.properties["file_size"] = size_mb
            event.properties["words"] = words_for_size(size_mb, self.bytes_per_word)

        outcome = self.reconciler.reconcile(events, target_mb, get_size, set_size)
        self.last_outcome = outcome

        if outcome.action == "shortfall":
            self.ctx.alerts.warn(
                AlertType.RECONCILIATION_SHORTFALL,
                "data_volume",
                f"No data events to carry the {period} volume target",
                period=period,
                target_mb=target_mb,
            )
        elif not outcome.in_band:
            self.ctx.alerts.warn(
                AlertType.RECONCILIATION_OVERSHOOT,
                "data_volume",
                f"Data volume for {period} is outside the target band",
                period=period,
                target_mb=target_mb,
                volume_mb=outcome.after,
                ratio=round(outcome.ratio, 4),
            )
        return outcome

    # ── Secondary events ─────────────────────────────────────

    def follow_up(self, primary: Event) -> Event:
        """Exactly one of job_failed or data_downloaded per generated project."""
        project_id = primary.properties["projectId"]
        owner = self.ctx.pool.get(primary.user_id)

        if self.rng.random() < self.failure_rate:
            code, message = uniform_choice(self.rng, JOB_ERRORS)
            timestamp = primary.timestamp + ONE_HOUR * float(self.rng.random())
            return self.ctx.new_event(
                EventKind.JOB_FAILED,
                timestamp,
                owner,
                {"projectId": project_id, "error_code": code, "error_message": message},
            )

        timestamp = primary.timestamp + ONE_DAY * float(self.rng.random())
        return self.ctx.new_event(
            EventKind.DATA_DOWNLOADED,
            timestamp,
            owner,
            {
                "projectId": project_id,
                "file_size": primary.properties["file_size"],
                "words": primary.properties["words"],
            },
        )
