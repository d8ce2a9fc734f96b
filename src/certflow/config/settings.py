"""Application settings loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, IPvAnyNetwork, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class FraudDetectionConfig(BaseModel):
    """Configuration for verification fraud detection.

    Controls the burst-rate and source-diversity windows and thresholds,
    and the cooldown that throttles alert creation per credential.
    """

    enabled: bool = True
    """Run anomaly analysis after each verification."""

    # Burst-rate signal
    burst_window_minutes: int = Field(default=5, ge=1)
    """Trailing window for counting verification attempts."""

    burst_low_threshold: int = Field(default=3, ge=1)
    """Attempts in the window that mark low risk."""

    burst_medium_threshold: int = Field(default=5, ge=1)
    """Attempts in the window that mark medium risk."""

    burst_high_threshold: int = Field(default=15, ge=1)
    """Attempts in the window that mark high risk."""

    # Source-diversity signal
    diversity_window_hours: int = Field(default=1, ge=1)
    """Trailing window for collecting distinct source addresses."""

    diversity_medium_threshold: int = Field(default=3, ge=1)
    """Distinct sources in the window that mark medium risk."""

    diversity_high_threshold: int = Field(default=5, ge=1)
    """Distinct sources in the window that mark high risk."""

    # Alerting
    alert_cooldown_minutes: int = Field(default=5, ge=0)
    """Minimum time between alerts for the same credential."""


class SmartSearchConfig(BaseModel):
    """Configuration for administrator smart search.

    Search runs in two stages: a narrow candidate set pulled with a loose
    filter, then a broad scan when the narrow stage yields nothing.
    """

    min_query_length: int = 2
    default_limit: int = 10
    max_limit: int = 50

    narrow_candidate_limit: int = 50
    narrow_min_similarity: float = 40.0

    broad_candidate_limit: int = 500
    broad_min_similarity: float = 50.0

    correction_id_limit: int = 1000
    correction_threshold: float = 60.0
    correction_trigger_similarity: float = 80.0
    """Offer a correction when the best suggestion scores below this."""


class InsightsConfig(BaseModel):
    """Thresholds for the verification insights report.

    Popularity is measured over days of valid verifications; unusual
    sources, spikes and invalid attempts over the recent activity window.
    """

    popularity_window_days: int = Field(default=7, ge=1)
    popularity_limit: int = Field(default=5, ge=1)
    most_verified_min_count: int = Field(default=6, ge=1)
    high_demand_min_count: int = Field(default=10, ge=1)
    """Valid verifications that put a credential in high demand."""

    activity_window_hours: int = Field(default=24, ge=2)
    source_min_requests: int = Field(default=20, ge=1)
    """Attempts from one address inside the window that make it unusual."""

    source_limit: int = Field(default=5, ge=1)
    spike_factor: float = Field(default=3.0, gt=1.0)
    """Last-hour attempts above this multiple of the hourly average are a spike."""

    spike_min_count: int = Field(default=11, ge=1)
    invalid_min_count: int = Field(default=11, ge=1)
    max_insights: int = Field(default=6, ge=1)


class RateLimitConfig(BaseModel):

    """Per-client limit on public certificate verification.

    Counters are sliding windows kept in process memory, one per client
    address, so the limit holds per application instance.
    """

    enabled: bool = True

    requests_per_window: int = Field(default=10, ge=1)
    """Verification requests allowed per client inside one window."""

    window_seconds: int = Field(default=60, ge=1)

    cleanup_interval_seconds: int = Field(default=300, ge=1)
    """How often counters of idle clients are dropped."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Runtime
    ENVIRONMENT: Literal["development", "test", "staging", "production"] = "development"
    DEBUG: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./certflow.db"
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10

    # API
    API_SECRET_KEY: SecretStr | None = None
    REVIEWER_API_KEYS: list[SecretStr] = Field(default_factory=list)
    CORS_ORIGINS: list[str] = Field(default_factory=list)

    # Client addresses: forwarding headers are believed only from these peers
    TRUSTED_PROXIES: list[IPvAnyNetwork] = Field(default_factory=list)
    rate_limit: RateLimitConfig = RateLimitConfig()

    # Fraud detection, search and insights
    fraud_detection: FraudDetectionConfig = FraudDetectionConfig()
    smart_search: SmartSearchConfig = SmartSearchConfig()
    insights: InsightsConfig = InsightsConfig()

    def reviewer_tokens(self) -> set[str]:
        """Get every bearer token that carries reviewer authority."""
        tokens = {key.get_secret_value() for key in self.REVIEWER_API_KEYS}
        if self.API_SECRET_KEY is not None:
            tokens.add(self.API_SECRET_KEY.get_secret_value())
        return tokens


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
