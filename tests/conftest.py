from datetime import datetime

import pytest

from app.config import Settings
from generators.context import GenerationContext
from generators.models import User
from generators.plan import ACQUISITION_CHANNELS, MonthlyTarget


@pytest.fixture
def settings():
    return Settings(_env_file=None, POSTHOG_API_KEY="phc_test", POSTHOG_HOST="https://posthog.test")


@pytest.fixture
def context():
    return GenerationContext.create(seed=42)


@pytest.fixture
def make_target():
    def _make(**overrides) -> MonthlyTarget:
        fields = {
            "period": "2025-01",
            "signup_count": 45,
            "daily_active_range": 10,
            "monthly_active_target": 30,
            "region_weights": {"IN": 0.6, "US": 0.3, "EU": 0.1},
            "channel_weights": ACQUISITION_CHANNELS,
        }
        fields.update(overrides)
        return MonthlyTarget(**fields)

    return _make


@pytest.fixture
def make_user():
    counter = {"n": 0}

    def _make(created_at: datetime, **overrides) -> User:
        counter["n"] += 1
        fields = {
            "user_id": f"user-{counter['n']}",
            "email": f"user{counter['n']}@example.com",
            "username": f"user{counter['n']}",
            "created_at": created_at,
            "signup_period": created_at.strftime("%Y-%m"),
            "region": "US",
            "country": "United States",
            "country_code": "US",
            "city": "New York",
            "acquisition_source": "direct",
            "subscription_type": "Free",
            "is_paying": False,
            "os_name": "Windows",
            "browser": "Chrome",
        }
        fields.update(overrides)
        return User(**fields)

    return _make
