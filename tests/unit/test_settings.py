# Assumptions:
# - Using pytest for testing framework
# - Testing defaults, environment loading and validation of BackoffSettings

import pytest
from pydantic import ValidationError

from backoff_http.config.settings import BackoffSettings, get_settings


class TestBackoffSettings:
    """Test cases for BackoffSettings"""

    def test_defaults(self, monkeypatch):
        """Test documented defaults"""
        settings = BackoffSettings(_env_file=None)

        assert settings.service == "http-client"
        assert settings.max_retry == 0
        assert settings.initial_interval == 0.1
        assert settings.max_interval == 5.0
        assert settings.multiplier == 1.5
        assert settings.max_elapsed_time == 1800.0
        assert settings.timeout is None
        assert settings.jitter == 0.2

    def test_environment_overrides(self, monkeypatch):
        """Test values are read from HTTP_BACKOFF_ variables"""
        monkeypatch.setenv("HTTP_BACKOFF_SERVICE", "billing")
        monkeypatch.setenv("HTTP_BACKOFF_MAX_RETRY", "3")
        monkeypatch.setenv("HTTP_BACKOFF_TIMEOUT", "2.5")

        settings = BackoffSettings(_env_file=None)

        assert settings.service == "billing"
        assert settings.max_retry == 3
        assert settings.timeout == 2.5

    def test_zero_max_elapsed_time_disables_bound(self):
        """Test 0 is normalized to no elapsed bound"""
        assert BackoffSettings(max_elapsed_time=0).max_elapsed_time is None

    @pytest.mark.parametrize(
        "overrides",
        [
            {"max_retry": -1},
            {"initial_interval": 0},
            {"max_interval": -1.0},
            {"multiplier": 0.5},
            {"timeout": 0},
            {"max_elapsed_time": -5},
            {"jitter": 1.0},
            {"jitter": -0.1},
            {"initial_interval": 2.0, "max_interval": 1.0},
        ],
    )
    def test_invalid_values(self, overrides):
        """Test invalid settings are rejected"""
        with pytest.raises(ValidationError):
            BackoffSettings(**overrides)

    def test_get_settings_is_cached(self):
        """Test the settings singleton"""
        get_settings.cache_clear()

        assert get_settings() is get_settings()
