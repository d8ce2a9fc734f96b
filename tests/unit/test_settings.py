"""Unit tests for application settings."""

from datetime import timedelta

import pytest
from pydantic import SecretStr, ValidationError

from certflow.config.settings import (
    FraudDetectionConfig,
    RateLimitConfig,
    Settings,
    SmartSearchConfig,
    get_settings,
)
from certflow.fraud import AnalyzerConfig


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        monkeypatch.delenv("DATABASE_URL", raising=False)

        settings = Settings(_env_file=None)

        assert settings.ENVIRONMENT == "development"
        assert settings.DATABASE_URL.startswith("sqlite+aiosqlite")
        assert settings.fraud_detection == FraudDetectionConfig()
        assert settings.smart_search == SmartSearchConfig()

    def test_fraud_detection_defaults(self):
        config = FraudDetectionConfig()

        assert config.burst_window_minutes == 5
        assert (
            config.burst_low_threshold,
            config.burst_medium_threshold,
            config.burst_high_threshold,
        ) == (3, 5, 15)
        assert config.diversity_window_hours == 1
        assert (config.diversity_medium_threshold, config.diversity_high_threshold) == (3, 5)
        assert config.alert_cooldown_minutes == 5
        assert config.enabled is True

    def test_nested_section_from_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("FRAUD_DETECTION", '{"burst_high_threshold": 20, "enabled": false}')

        settings = Settings(_env_file=None)

        assert settings.fraud_detection.burst_high_threshold == 20
        assert settings.fraud_detection.enabled is False
        assert settings.fraud_detection.burst_low_threshold == 3

    def test_invalid_threshold_rejected(self):
        with pytest.raises(ValidationError):
            FraudDetectionConfig(burst_window_minutes=0)

    def test_rate_limit_defaults(self):
        config = RateLimitConfig()

        assert (config.requests_per_window, config.window_seconds) == (10, 60)
        assert config.enabled is True

    def test_trusted_proxies_from_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("TRUSTED_PROXIES", '["127.0.0.1", "10.0.0.0/8"]')

        settings = Settings(_env_file=None)

        assert [str(n) for n in settings.TRUSTED_PROXIES] == ["127.0.0.1/32", "10.0.0.0/8"]

    def test_trusted_proxy_must_be_a_network(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, TRUSTED_PROXIES=["proxy.internal"])


    def test_reviewer_tokens(self):
        settings = Settings(
            _env_file=None,
            API_SECRET_KEY=SecretStr("admin"),
            REVIEWER_API_KEYS=[SecretStr("alice"), SecretStr("bob")],
        )

        assert settings.reviewer_tokens() == {"admin", "alice", "bob"}

    def test_no_reviewer_tokens(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("API_SECRET_KEY", raising=False)
        monkeypatch.delenv("REVIEWER_API_KEYS", raising=False)

        assert Settings(_env_file=None).reviewer_tokens() == set()

    def test_get_settings_cached(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()


class TestAnalyzerConfig:
    """Tests for building the analyzer configuration from settings."""

    def test_from_settings(self):
        config = AnalyzerConfig.from_settings(
            FraudDetectionConfig(burst_window_minutes=10, diversity_high_threshold=8)
        )

        assert config.burst_window == timedelta(minutes=10)
        assert config.diversity_window == timedelta(hours=1)
        assert config.diversity_high_threshold == 8
