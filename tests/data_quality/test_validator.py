import pytest

from data_quality.expectations import get_expectation_suite, list_suites
from data_quality.validator import DataValidationError, EventValidator
from generators.plan import GB, build_plan


def record(event, timestamp, event_id, user_id=None, **properties):
    return {
        "event": event,
        "event_id": event_id,
        "timestamp": timestamp,
        "user_id": user_id,
        "properties": properties,
    }


def signup(event_id, user_id, timestamp, lat=19.07, lon=72.87):
    return record(
        "user-signed-up",
        timestamp,
        event_id,
        user_id,
        **{"$geoip_latitude": lat, "$geoip_longitude": lon},
    )


@pytest.fixture
def valid_records():
    return [
        signup("e1", "u1", "2025-01-02T09:00:00+00:00"),
        signup("e2", "u2", "2025-01-03T09:00:00+00:00", lat=40.71, lon=-74.0),
        record("user-active", "2025-01-04T09:00:00+00:00", "e3", "u1"),
        record("data_generated", "2025-01-05T09:00:00+00:00", "e4", "u1", file_size=1100.0),
        record("ticket-raised", "2025-01-06T09:00:00+00:00", "e5", "u2", ticketId="TKT-AAAAAAAA"),
        record("ticket-resolved", "2025-01-07T09:00:00+00:00", "e6", "u2", ticketId="TKT-AAAAAAAA"),
    ]


def failed(result):
    return {f["expectation"] for f in result.failures}


class TestEventValidator:
    def test_valid_artifact(self, valid_records):
        result = EventValidator(valid_records).validate()

        assert result.success
        assert result.suite_name == "events_suite"
        assert result.success_rate == 1.0
        assert result.statistics["users"] == 2
        assert result.statistics["event_kinds"]["user-signed-up"] == 2

    def test_unknown_kind(self, valid_records):
        valid_records.append(record("page-viewed", "2025-01-08T00:00:00+00:00", "e7"))
        result = EventValidator(valid_records).validate()
        assert failed(result) == {"expect_event_kinds_to_be_known"}

    def test_duplicate_event_ids(self, valid_records):
        valid_records.append(record("user-active", "2025-01-08T00:00:00+00:00", "e3", "u1"))
        assert failed(EventValidator(valid_records).validate()) == {"expect_event_ids_to_be_unique"}

    def test_event_before_owner_signup(self, valid_records):
        valid_records.append(record("user-logged-in", "2025-01-01T00:00:00+00:00", "e7", "u2"))
        result = EventValidator(valid_records).validate()
        assert failed(result) == {"expect_events_after_owner_signup"}
        assert result.failures[0]["examples"][0]["user_id"] == "u2"

    def test_ticket_resolved_twice(self, valid_records):
        valid_records.append(
            record("ticket-resolved", "2025-01-09T09:00:00+00:00", "e7", "u2", ticketId="TKT-AAAAAAAA")
        )
        assert "expect_tickets_to_resolve_once_after_raise" in failed(EventValidator(valid_records).validate())

    def test_resolution_before_raise(self):
        records = [
            record("ticket-resolved", "2025-01-01T00:00:00+00:00", "e1", ticketId="TKT-BBBBBBBB"),
            record("ticket-raised", "2025-01-02T00:00:00+00:00", "e2", ticketId="TKT-BBBBBBBB"),
        ]
        assert failed(EventValidator(records).validate()) == {
            "expect_tickets_to_resolve_once_after_raise",
            "expect_resolved_tickets_to_not_exceed_raised",
        }

    def test_geo_point_overuse(self, valid_records):
        for n in range(3):
            valid_records.append(signup(f"s{n}", f"x{n}", "2025-01-10T00:00:00+00:00"))
        result = EventValidator(valid_records).validate()
        assert failed(result) == {"expect_geo_point_usage_to_be_at_most"}
        assert result.failures[0]["examples"][0]["users"] == 4

    def test_missing_optional_fields_are_ignored(self):
        records = [
            {"event": "user-active", "timestamp": "2025-01-01T00:00:00Z"},
            {"event": "ticket-raised", "timestamp": "2025-01-01T00:00:00Z", "properties": None},
        ]
        assert EventValidator(records).validate().success

    def test_raise_on_failure(self, valid_records):
        valid_records.append(record("page-viewed", "2025-01-08T00:00:00+00:00", "e7"))
        with pytest.raises(DataValidationError) as exc_info:
            EventValidator(valid_records).validate(raise_on_failure=True)
        assert exc_info.value.failures


class TestPlanExpectations:
    @pytest.fixture
    def plan(self, make_target):
        return build_plan([make_target(signup_count=2, volume_target_bytes=1 * GB)])

    def test_matches_plan(self, valid_records, plan):
        result = EventValidator(valid_records, plan=plan).validate()
        assert result.success, result.failures
        assert result.suite_name == "events_suite+plan_suite"

    def test_signup_count_mismatch(self, valid_records, plan):
        valid_records.append(signup("e9", "u9", "2025-01-20T00:00:00+00:00", lat=1.0, lon=1.0))
        result = EventValidator(valid_records, plan=plan).validate()
        assert failed(result) == {"expect_signups_to_match_plan"}
        assert result.failures[0]["examples"][0] == {"period": "2025-01", "expected": 2, "actual": 3}

    def test_volume_out_of_band(self, valid_records, plan):
        valid_records.append(
            record("data_generated", "2025-01-21T00:00:00+00:00", "e9", "u1", file_size=500.0)
        )
        result = EventValidator(valid_records, plan=plan).validate()
        assert failed(result) == {"expect_monthly_volume_to_be_in_band"}


class TestExpectationSuites:
    def test_lookup_accepts_suffix(self):
        assert get_expectation_suite("events_suite") == get_expectation_suite("events")

    def test_unknown_suite(self):
        assert get_expectation_suite("orders") is None

    def test_list_suites(self):
        assert list_suites() == ["events_suite", "plan_suite"]
