from typing import Optional

# Checks every artifact must pass
EVENT_EXPECTATIONS = [
    {"expectation_type": "expect_event_kinds_to_be_known"},
    {"expectation_type": "expect_event_ids_to_be_unique"},
    {"expectation_type": "expect_events_after_owner_signup"},
    {"expectation_type": "expect_tickets_to_resolve_once_after_raise"},
    {"expectation_type": "expect_resolved_tickets_to_not_exceed_raised"},
    {"expectation_type": "expect_geo_point_usage_to_be_at_most", "kwargs": {"max_value": 3}},
]

# Checks that compare an artifact against the plan that produced it
PLAN_EXPECTATIONS = [
    {"expectation_type": "expect_signups_to_match_plan"},
    {
        "expectation_type": "expect_monthly_volume_to_be_in_band",
        "kwargs": {"min_ratio": 1.0, "max_ratio": 1.2},
    },
]

SUITES = {
    "events": EVENT_EXPECTATIONS,
    "plan": PLAN_EXPECTATIONS,
}


def get_expectation_suite(name: str) -> Optional[dict]:
    name = name.removesuffix("_suite")
    if name not in SUITES:
        return None
    return {"expectation_suite_name": f"{name}_suite", "expectations": SUITES[name]}


def list_suites() -> list[str]:
    return [f"{name}_suite" for name in SUITES]
