import pytest

from app.services.analytics.aggregator import EventAggregator


def record(event, timestamp, user_id=None, **properties):
    row = {"event": event, "timestamp": timestamp, "properties": properties}
    if user_id:
        row["user_id"] = user_id
    return row


@pytest.fixture
def records():
    return [
        record("user-signed-up", "2025-01-02T09:00:00Z", "u1", country="India", acquisition_source="github"),
        record("user-signed-up", "2025-01-05T09:00:00Z", "u2", country="India", acquisition_source="twitter"),
        record("user-signed-up", "2025-02-01T09:00:00Z", "u3", country="United States", acquisition_source="github"),
        record("user-active", "2025-01-05T10:00:00Z", "u1"),
        record("user-active", "2025-01-05T11:00:00Z", "u2"),
        record("user-active", "2025-01-06T10:00:00Z", "u1"),
        record("user-logged-in", "2025-01-06T10:00:00Z", "u1"),
        record("data_generated", "2025-01-07T10:00:00Z", "u1", file_size=512.0, words=62424),
        record("data_generated", "2025-01-08T10:00:00Z", "u2", file_size=512.0, words=62424),
        record("data_downloaded", "2025-01-08T12:00:00Z", "u1"),
        record("job_failed", "2025-01-08T10:30:00Z", "u2"),
        record("ticket-raised", "2025-02-03T10:00:00Z", "u3"),
        record("ticket-resolved", "2025-02-04T10:00:00Z", "u3"),
    ]


class TestEventAggregator:
    def test_periods(self, records):
        assert EventAggregator(records).periods == ["2025-01", "2025-02"]

    def test_monthly_summary(self, records):
        january, february = EventAggregator(records).monthly_summary()

        assert january.period == "2025-01"
        assert january.signups == 2
        assert january.logins == 1
        assert january.monthly_active_users == 2
        assert january.avg_daily_active_users == 1.5
        assert january.data_generated == 2
        assert january.total_gb == 1.0
        assert january.words == 124848
        assert january.downloads == 1
        assert january.job_failures == 1
        assert january.unique_countries == 1

        assert february.signups == 1
        assert february.tickets_raised == 1
        assert february.tickets_resolved == 1
        assert february.data_generated == 0

    def test_signup_growth(self, records):
        january, february = EventAggregator(records).monthly_summary()
        assert january.signup_growth_pct is None
        assert february.signup_growth_pct == -50.0

    def test_average_monthly_signups(self, records):
        assert EventAggregator(records).average_monthly_signups() == 1.5
        assert EventAggregator([]).average_monthly_signups() == 0.0

    def test_top_counts(self, records):
        top = EventAggregator(records).top_counts("acquisition_source", limit=1)
        assert len(top) == 1
        assert (top[0].value, top[0].count) == ("github", 2)

    def test_unknown_top_count_field(self, records):
        with pytest.raises(ValueError):
            EventAggregator(records).top_counts("email")

    def test_totals(self, records):
        totals = EventAggregator(records).totals()
        assert totals["user-signed-up"] == 3
        assert totals["user-active"] == 3

    def test_missing_optional_fields(self):
        aggregator = EventAggregator(
            [
                {"event": "user-active", "timestamp": "2025-03-01T00:00:00Z"},
                {"event": "data_generated", "timestamp": "2025-03-02T00:00:00Z"},
                {"event": "user-signed-up", "timestamp": "2025-03-03T00:00:00Z", "properties": None},
            ]
        )
        (march,) = aggregator.monthly_summary()
        assert march.signups == 1
        assert march.monthly_active_users == 0
        assert march.avg_daily_active_users == 0.0
        assert march.total_gb == 0.0
        assert march.words == 0
        assert aggregator.top_counts() == []

    def test_unparseable_timestamps_are_dropped(self):
        aggregator = EventAggregator([{"event": "user-active", "timestamp": "not a date"}])
        assert len(aggregator) == 0
        assert aggregator.monthly_summary() == []
