from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

import pandas as pd

from data_quality.expectations import get_expectation_suite
from generators.models import EventKind
from generators.plan import Plan

KNOWN_KINDS = {kind.value for kind in EventKind}

# Relative slack for float sums read back from JSON
_BAND_TOLERANCE = 1e-6


@dataclass
class ValidationResult:
    success: bool
    suite_name: str
    total_expectations: int
    successful_expectations: int
    failed_expectations: int
    failures: list = field(default_factory=list)
    statistics: dict = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        if self.total_expectations == 0:
            return 0.0
        return self.successful_expectations / self.total_expectations


class DataValidationError(Exception):
    def __init__(self, message: str, failures: list):
        super().__init__(message)
        self.failures = failures


class EventValidator:
    """
    Checks the invariants of a persisted event artifact.

    The artifact is read as plain records, so the validator works on files
    produced by older runs or edited by hand. Missing optional fields are
    skipped, never treated as failures.
    """

    def __init__(self, records: Iterable[dict[str, Any]], plan: Optional[Plan] = None):
        self.plan = plan
        rows = []
        for position, record in enumerate(records):
            properties = record.get("properties") or {}
            rows.append(
                {
                    "position": position,
                    "event": record.get("event"),
                    "event_id": record.get("event_id"),
                    "timestamp": record.get("timestamp"),
                    "user_id": record.get("user_id") or None,
                    "ticket_id": properties.get("ticketId"),
                    "latitude": properties.get("$geoip_latitude"),
                    "longitude": properties.get("$geoip_longitude"),
                    "file_size": properties.get("file_size"),
                }
            )
        df = pd.DataFrame(
            rows,
            columns=[
                "position",
                "event",
                "event_id",
                "timestamp",
                "user_id",
                "ticket_id",
                "latitude",
                "longitude",
                "file_size",
            ],
        )
        df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True, errors="coerce", format="ISO8601")
        df["file_size"] = pd.to_numeric(df["file_size"], errors="coerce")
        # Stable sort keeps emission order for equal timestamps
        self.df = df.sort_values(["timestamp", "position"], kind="stable").reset_index(drop=True)

    def validate(self, raise_on_failure: bool = False) -> ValidationResult:
        suites = ["events"] + (["plan"] if self.plan is not None else [])

        total = 0
        passed = 0
        failures: list[dict[str, Any]] = []
        for suite_name in suites:
            suite = get_expectation_suite(suite_name)
            for expectation in suite["expectations"]:
                exp_type = expectation["expectation_type"]
                kwargs = expectation.get("kwargs", {})
                check = getattr(self, f"_{exp_type}")
                problems = check(**kwargs)

                total += 1
                if problems:
                    failures.append(
                        {
                            "expectation": exp_type,
                            "count": len(problems),
                            "examples": problems[:5],
                        }
                    )
                else:
                    passed += 1

        result = ValidationResult(
            success=not failures,
            suite_name="+".join(f"{name}_suite" for name in suites),
            total_expectations=total,
            successful_expectations=passed,
            failed_expectations=len(failures),
            failures=failures,
            statistics={
                "events": len(self.df),
                "users": int(self._signups()["user_id"].nunique()),
                "event_kinds": dict(Counter(self.df["event"].dropna())),
            },
        )

        if raise_on_failure and not result.success:
            raise DataValidationError(f"Validation failed for {result.suite_name}", failures)

        return result

    def _signups(self) -> pd.DataFrame:
        return self.df[self.df["event"] == EventKind.SIGNUP.value]

    # ── Expectations ─────────────────────────────────────────

    def _expect_event_kinds_to_be_known(self) -> list:
        unknown = self.df[~self.df["event"].isin(KNOWN_KINDS)]
        return [{"position": int(row.position), "event": row.event} for row in unknown.itertuples()]

    def _expect_event_ids_to_be_unique(self) -> list:
        ids = self.df["event_id"].dropna()
        duplicated = ids[ids.duplicated()]
        return [{"event_id": event_id} for event_id in duplicated.unique()]

    def _expect_events_after_owner_signup(self) -> list:
        signed_up = self._signups().dropna(subset=["user_id"]).groupby("user_id")["timestamp"].min()
        owned = self.df.dropna(subset=["user_id", "timestamp"])
        owned = owned[owned["user_id"].isin(signed_up.index)]
        signup_times = owned["user_id"].map(signed_up)
        early = owned[owned["timestamp"] < signup_times]
        return [
            {"user_id": row.user_id, "event": row.event, "timestamp": row.timestamp.isoformat()}
            for row in early.itertuples()
        ]

    def _expect_tickets_to_resolve_once_after_raise(self) -> list:
        raised: dict[str, pd.Timestamp] = {}
        resolved: set[str] = set()
        problems = []

        for row in self.df.itertuples():
            if row.event == EventKind.TICKET_RAISED.value:
                if row.ticket_id in raised:
                    problems.append({"ticket_id": row.ticket_id, "problem": "raised twice"})
                raised[row.ticket_id] = row.timestamp
            elif row.event == EventKind.TICKET_RESOLVED.value:
                if row.ticket_id not in raised:
                    problems.append({"ticket_id": row.ticket_id, "problem": "resolved before raise"})
                elif row.ticket_id in resolved:
                    problems.append({"ticket_id": row.ticket_id, "problem": "resolved twice"})
                elif row.timestamp < raised[row.ticket_id]:
                    problems.append(
                        {"ticket_id": row.ticket_id, "problem": "resolved earlier than raised"}
                    )
                resolved.add(row.ticket_id)
        return problems

    def _expect_resolved_tickets_to_not_exceed_raised(self) -> list:
        raised = 0
        resolved = 0
        for row in self.df.itertuples():
            if row.event == EventKind.TICKET_RAISED.value:
                raised += 1
            elif row.event == EventKind.TICKET_RESOLVED.value:
                resolved += 1
                if resolved > raised:
                    return [{"position": int(row.position), "raised": raised, "resolved": resolved}]
        return []

    def _expect_geo_point_usage_to_be_at_most(self, max_value: int) -> list:
        points = self._signups().dropna(subset=["latitude", "longitude"])
        usage = points.groupby(["latitude", "longitude"]).size()
        overused = usage[usage > max_value]
        return [
            {"latitude": float(lat), "longitude": float(lon), "users": int(count)}
            for (lat, lon), count in overused.items()
        ]

    def _expect_signups_to_match_plan(self) -> list:
        signups = self._signups().dropna(subset=["timestamp"])
        counts = signups["timestamp"].dt.strftime("%Y-%m").value_counts()
        problems = []
        for target in self.plan.periods:
            actual = int(counts.get(target.period, 0))
            if actual != target.signup_count:
                problems.append(
                    {"period": target.period, "expected": target.signup_count, "actual": actual}
                )
        return problems

    def _expect_monthly_volume_to_be_in_band(self, min_ratio: float, max_ratio: float) -> list:
        data = self.df[self.df["event"] == EventKind.DATA_GENERATED.value].dropna(
            subset=["timestamp"]
        )
        volume = data.groupby(data["timestamp"].dt.strftime("%Y-%m"))["file_size"].sum()
        problems = []
        for target in self.plan.periods:
            target_mb = target.volume_target_mb
            if target_mb <= 0:
                continue
            actual = float(volume.get(target.period, 0.0))
            ratio = actual / target_mb
            if not min_ratio - _BAND_TOLERANCE <= ratio <= max_ratio + _BAND_TOLERANCE:
                problems.append(
                    {"period": target.period, "target_mb": target_mb, "actual_mb": actual, "ratio": ratio}
                )
        return problems
