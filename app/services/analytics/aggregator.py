from typing import Any, Iterable

import pandas as pd

from app.models.schemas import MonthlyStats, TopCount
from generators.models import EventKind

COLUMNS = ["event", "timestamp", "user_id", "country", "acquisition_source", "file_size", "words"]
TOP_COUNT_FIELDS = ("country", "acquisition_source")


class EventAggregator:
    """
    Read-only statistics over a persisted event artifact.

    Records may omit optional fields (user_id, email, properties or any
    property); those rows are simply left out of the metrics that need them.
    """

    def __init__(self, records: Iterable[dict[str, Any]]):
        rows = []
        for record in records:
            properties = record.get("properties") or {}
            rows.append(
                {
                    "event": record.get("event"),
                    "timestamp": record.get("timestamp"),
                    "user_id": record.get("user_id") or None,
                    "country": properties.get("country") or properties.get("$geoip_country_name"),
                    "acquisition_source": properties.get("acquisition_source"),
                    "file_size": properties.get("file_size"),
                    "words": properties.get("words"),
                }
            )

        df = pd.DataFrame(rows, columns=COLUMNS)
        df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True, errors="coerce", format="ISO8601")
        df = df.dropna(subset=["timestamp"])
        df["period"] = df["timestamp"].dt.strftime("%Y-%m")
        df["day"] = df["timestamp"].dt.strftime("%Y-%m-%d")
        df["file_size"] = pd.to_numeric(df["file_size"], errors="coerce")
        df["words"] = pd.to_numeric(df["words"], errors="coerce")
        self.df = df

    def __len__(self) -> int:
        return len(self.df)

    @property
    def periods(self) -> list[str]:
        return sorted(self.df["period"].unique().tolist())

    def monthly_summary(self) -> list[MonthlyStats]:
        stats: list[MonthlyStats] = []
        previous_signups = 0
        for period, group in self.df.groupby("period", sort=True):
            kinds = group["event"]
            active = group[kinds == EventKind.ACTIVE.value].dropna(subset=["user_id"])
            data = group[kinds == EventKind.DATA_GENERATED.value]
            signups = group[kinds == EventKind.SIGNUP.value]
            growth = (
                round((len(signups) - previous_signups) / previous_signups * 100, 1)
                if previous_signups
                else None
            )
            previous_signups = len(signups)

            daily_active = active.groupby("day")["user_id"].nunique()

            stats.append(
                MonthlyStats(
                    period=period,
                    signups=int(len(signups)),
                    signup_growth_pct=growth,
                    logins=int((kinds == EventKind.LOGIN.value).sum()),
                    active_events=int(len(active)),
                    monthly_active_users=int(active["user_id"].nunique()),
                    avg_daily_active_users=round(float(daily_active.mean()), 2)
                    if len(daily_active)
                    else 0.0,
                    data_generated=int(len(data)),
                    total_gb=round(float(data["file_size"].sum()) / 1024, 4),
                    words=int(data["words"].sum()),
                    downloads=int((kinds == EventKind.DATA_DOWNLOADED.value).sum()),
                    job_failures=int((kinds == EventKind.JOB_FAILED.value).sum()),
                    tickets_raised=int((kinds == EventKind.TICKET_RAISED.value).sum()),
                    tickets_resolved=int((kinds == EventKind.TICKET_RESOLVED.value).sum()),
                    unique_countries=int(signups["country"].dropna().nunique()),
                )
            )
        return stats

    def top_counts(self, field: str = "country", limit: int = 5) -> list[TopCount]:
        """Most common values of ``field`` across signups."""
        if field not in TOP_COUNT_FIELDS:
            raise ValueError(f"Unknown field: {field}. Use one of: {list(TOP_COUNT_FIELDS)}")

        signups = self.df[self.df["event"] == EventKind.SIGNUP.value]
        counts = signups[field].dropna().value_counts().head(limit)
        return [TopCount(value=str(value), count=int(count)) for value, count in counts.items()]

    def average_monthly_signups(self) -> float:
        stats = self.monthly_summary()
        if not stats:
            return 0.0
        return round(sum(s.signups for s in stats) / len(stats), 2)

    def totals(self) -> dict[str, int]:
        return {kind: int(count) for kind, count in self.df["event"].value_counts().items()}
