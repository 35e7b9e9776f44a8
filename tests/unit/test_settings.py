"""Unit tests for FleetSettings and runtime preferences."""

import pytest
from pydantic import ValidationError

from proxyfleet.config.preferences import FleetPreferences, PreferencesUpdate
from proxyfleet.config.settings import FleetSettings


# ---------------------------------------------------------------------------
# FleetSettings
# ---------------------------------------------------------------------------


class TestFleetSettings:
    def test_defaults_are_correct(self):
        settings = FleetSettings()

        assert settings.port == 8002
        assert settings.log_level == "INFO"
        assert settings.controller_url == "http://127.0.0.1:9090"
        assert settings.controller_secret is None
        assert settings.request_timeout_seconds == 30.0
        assert settings.latency_test_url == "https://www.gstatic.com/generate_204"
        assert settings.latency_test_timeout_ms == 5000
        assert settings.auto_close_connections is False
        assert settings.latency_medium_ms == 200
        assert settings.latency_high_ms == 500
        assert settings.refresh_interval_seconds == 0

    def test_loads_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("FLEET_CONTROLLER_URL", "http://10.0.0.2:9090")
        monkeypatch.setenv("FLEET_CONTROLLER_SECRET", "s3cret")
        monkeypatch.setenv("FLEET_AUTO_CLOSE_CONNECTIONS", "true")
        monkeypatch.setenv("FLEET_REFRESH_INTERVAL_SECONDS", "15")

        settings = FleetSettings()

        assert settings.controller_url == "http://10.0.0.2:9090"
        assert settings.controller_secret == "s3cret"
        assert settings.auto_close_connections is True
        assert settings.refresh_interval_seconds == 15

    def test_rejects_tiny_test_timeout(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("FLEET_LATENCY_TEST_TIMEOUT_MS", "10")
        with pytest.raises(ValidationError):
            FleetSettings()

    def test_rejects_negative_refresh_interval(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("FLEET_REFRESH_INTERVAL_SECONDS", "-1")
        with pytest.raises(ValidationError):
            FleetSettings()


# ---------------------------------------------------------------------------
# FleetPreferences
# ---------------------------------------------------------------------------


class TestFleetPreferences:
    def test_seeded_from_settings(self):
        settings = FleetSettings(
            latency_test_url="https://cp.cloudflare.com/generate_204",
            latency_test_timeout_ms=3000,
            auto_close_connections=True,
        )
        preferences = FleetPreferences.from_settings(settings)

        assert preferences.latency_test_url == "https://cp.cloudflare.com/generate_204"
        assert preferences.latency_test_timeout_ms == 3000
        assert preferences.auto_close_connections is True

    def test_assignment_is_validated(self, preferences: FleetPreferences):
        with pytest.raises(ValidationError):
            preferences.latency_test_timeout_ms = 5

    def test_update_fields_optional(self):
        assert PreferencesUpdate().model_dump(exclude_none=True) == {}

    def test_update_rejects_empty_url(self):
        with pytest.raises(ValidationError):
            PreferencesUpdate(latency_test_url="")
