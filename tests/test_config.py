import pytest
from pydantic import ValidationError

from app.config import ConfigurationError, Settings


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.BYTES_PER_WORD == 8.6
        assert settings.JOB_FAILURE_RATE == 0.03
        assert settings.GEO_MAX_ATTEMPTS == 10_000
        assert settings.UPLOAD_BATCH_SIZE == 100

    def test_host_trailing_slash_is_stripped(self):
        assert Settings(_env_file=None, POSTHOG_HOST="https://eu.posthog.com/").POSTHOG_HOST == (
            "https://eu.posthog.com"
        )

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("GENERATION_SEED", "42")
        monkeypatch.setenv("LOG_JSON", "true")
        settings = Settings(_env_file=None)
        assert settings.GENERATION_SEED == 42
        assert settings.LOG_JSON is True

    def test_batch_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, UPLOAD_BATCH_SIZE=0)


class TestRequireApiKey:
    def test_returns_stripped_key(self, settings):
        assert settings.require_api_key() == "phc_test"

    @pytest.mark.parametrize("value", ["", "   "])
    def test_missing_key(self, value):
        with pytest.raises(ConfigurationError):
            Settings(_env_file=None, POSTHOG_API_KEY=value).require_api_key()
