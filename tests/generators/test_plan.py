import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from generators.plan import (
    GB,
    PlanError,
    build_plan,
    get_preset,
    load_plan,
    period_bounds,
    period_days,
    resolve_plan,
)

BASE = {
    "period": "2025-01",
    "signupCount": 45,
    "regionWeights": {"IN": 0.6, "US": 0.3, "EU": 0.1},
    "channelWeights": {"direct": 1.0},
}


def period(**overrides) -> dict:
    return {**BASE, **overrides}


class TestMonthlyTarget:
    def test_camel_case_fields(self):
        plan = build_plan([period(monthlyActiveTarget=30, volumeTargetBytes=2 * GB)])
        target = plan.periods[0]
        assert target.signup_count == 45
        assert target.monthly_active_target == 30
        assert target.volume_target_mb == 2048

    def test_nominal_daily_target_expands_to_band(self):
        target = build_plan([period(dailyActiveRange=100)]).periods[0]
        assert target.daily_active_range == (60, 100)

    def test_explicit_daily_range(self):
        target = build_plan([period(dailyActiveRange=[3, 8])]).periods[0]
        assert target.daily_active_range == (3, 8)

    def test_defaults(self):
        target = build_plan([period()]).periods[0]
        assert target.daily_active_range == (0, 0)
        assert target.tickets_raised == 0
        assert target.activity_rate == 0.8
        assert target.events_per_user_per_day == (0.3, 0.5)

    def test_targets_are_immutable(self):
        target = build_plan([period()]).periods[0]
        with pytest.raises(ValidationError):
            target.signup_count = 10

    @pytest.mark.parametrize(
        "overrides",
        [
            {"period": "2025-13"},
            {"period": "January"},
            {"signupCount": -1},
            {"dailyActiveRange": [10, 5]},
            {"regionWeights": {}},
            {"regionWeights": {"IN": 0, "US": 0}},
            {"regionWeights": {"IN": 0.5, "BR": 0.5}},
            {"channelWeights": {"direct": -1}},
            {"payingRate": 1.5},
            {"eventsPerUserPerDay": [0.9, 0.1]},
        ],
    )
    def test_invalid_targets_rejected(self, overrides):
        with pytest.raises(PlanError):
            build_plan([period(**overrides)])

    def test_region_aliases_accepted(self):
        plan = build_plan([period(regionWeights={"India": 2, "usa": 1, "Europe": 1})])
        assert plan.periods[0].region_weights == {"India": 2, "usa": 1, "Europe": 1}

    def test_unknown_region_names_the_label(self):
        with pytest.raises(PlanError, match="Unknown region: BR"):
            build_plan([period(), period(period="2025-02", regionWeights={"BR": 1})])


class TestPlan:
    def test_periods_sorted(self):
        plan = build_plan([period(period="2025-03"), period(period="2025-01")])
        assert [t.period for t in plan.periods] == ["2025-01", "2025-03"]

    def test_duplicate_periods_rejected(self):
        with pytest.raises(PlanError, match="duplicate"):
            build_plan([period(), period()])

    def test_total_signups(self):
        plan = build_plan([period(), period(period="2025-02", signupCount=5)])
        assert plan.total_signups == 50


class TestPeriodBounds:
    def test_bounds_cover_whole_month(self):
        start, end = period_bounds("2024-02")
        assert start == datetime(2024, 2, 1, tzinfo=timezone.utc)
        assert end == datetime(2024, 2, 29, 23, 59, 59, 999_999, tzinfo=timezone.utc)

    def test_days_are_utc_midnights(self):
        days = period_days("2025-01")
        assert len(days) == 31
        assert days[0] == datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert days[-1] == datetime(2025, 1, 31, tzinfo=timezone.utc)


class TestLoadPlan:
    def test_object_form(self, tmp_path):
        path = tmp_path / "plan.json"
        path.write_text(json.dumps({"periods": [period()]}))
        assert len(load_plan(path).periods) == 1

    def test_bare_list_form(self, tmp_path):
        path = tmp_path / "plan.json"
        path.write_text(json.dumps([period(), period(period="2025-02")]))
        assert len(load_plan(path).periods) == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(PlanError, match="not found"):
            load_plan(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "plan.json"
        path.write_text("{not json")
        with pytest.raises(PlanError, match="valid JSON"):
            load_plan(path)

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "plan.json"
        path.write_text(json.dumps({"months": []}))
        with pytest.raises(PlanError):
            load_plan(path)


class TestPresets:
    def test_growth(self):
        plan = get_preset("growth")
        assert [t.signup_count for t in plan.periods] == [45, 58, 74, 94, 120]
        assert [t.tickets_raised for t in plan.periods] == [1, 1, 2, 2, 2]
        assert plan.periods[0].volume_target_bytes == 4.5 * GB

    def test_launch(self):
        plan = get_preset("launch")
        assert [t.signup_count for t in plan.periods] == [50, 73, 106, 154, 223]
        assert plan.periods[0].daily_active_range == (11, 19)
        assert plan.periods[-1].monthly_active_target == 515

    def test_smoke(self):
        plan = get_preset("smoke")
        assert plan.total_signups == 1

    def test_unknown_preset(self):
        with pytest.raises(PlanError, match="Unknown preset"):
            get_preset("huge")

    def test_resolve_defaults_to_growth(self):
        assert resolve_plan().total_signups == get_preset("growth").total_signups

    def test_resolve_prefers_plan_file(self, tmp_path):
        path = tmp_path / "plan.json"
        path.write_text(json.dumps([period(signupCount=3)]))
        assert resolve_plan(str(path), "growth").total_signups == 3
