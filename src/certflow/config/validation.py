"""Configuration validation for startup checks.

Validates that required configuration is present and consistent before the
application starts accepting requests.

Usage:
    from certflow.config.validation import validate_or_raise

    # During startup
    validate_or_raise(settings)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from certflow.config.settings import Settings, get_settings
from certflow.core.logging import get_logger
from certflow.utils.exceptions import ConfigurationError

logger = get_logger("certflow.config")


class ValidationSeverity(str, Enum):
    """Severity of configuration validation issues."""

    ERROR = "error"  # Must be fixed, app cannot start
    WARNING = "warning"  # Should be fixed, app can start but may have issues


@dataclass
class ValidationResult:
    """Result of a configuration validation check."""

    field: str
    severity: ValidationSeverity
    message: str
    suggestion: str | None = None

    def __str__(self) -> str:
        prefix = "ERROR" if self.severity == ValidationSeverity.ERROR else "WARNING"
        result = f"[{prefix}] {self.field}: {self.message}"
        if self.suggestion:
            result += f"\n  Suggestion: {self.suggestion}"
        return result


def validate_configuration(settings: Settings | None = None) -> list[ValidationResult]:
    """Validate application configuration.

    Args:
        settings: Settings to validate (default: global settings)

    Returns:
        List of validation results (empty if all checks pass)
    """
    if settings is None:
        settings = get_settings()

    results: list[ValidationResult] = []
    results.extend(_validate_database(settings))
    results.extend(_validate_security(settings))
    results.extend(_validate_api(settings))
    results.extend(_validate_fraud_detection(settings))
    results.extend(_validate_environment(settings))
    return results


def validate_or_raise(settings: Settings | None = None) -> None:
    """Validate configuration and raise if errors found.

    Warnings are logged and do not stop startup.

    Raises:
        ConfigurationError: If any validation errors are found
    """
    results = validate_configuration(settings)
    errors = [r for r in results if r.severity == ValidationSeverity.ERROR]

    if errors:
        error_messages = "\n".join(str(e) for e in errors)
        raise ConfigurationError(f"Configuration validation failed:\n{error_messages}")

    for warning in results:
        logger.warning(
            "configuration_warning",
            field=warning.field,
            message=warning.message,
            suggestion=warning.suggestion,
        )


# =============================================================================
# Validators
# =============================================================================


def _validate_database(settings: Settings) -> list[ValidationResult]:
    """Validate database configuration."""
    results: list[ValidationResult] = []

    if not settings.DATABASE_URL.startswith(("postgresql", "sqlite")):
        results.append(
            ValidationResult(
                field="DATABASE_URL",
                severity=ValidationSeverity.WARNING,
                message=f"Unexpected database type in URL: {settings.DATABASE_URL[:20]}...",
                suggestion="Certflow is designed for PostgreSQL or SQLite",
            )
        )
    elif settings.ENVIRONMENT == "production" and settings.DATABASE_URL.startswith("sqlite"):
        results.append(
            ValidationResult(
                field="DATABASE_URL",
                severity=ValidationSeverity.WARNING,
                message="SQLite in production serializes all writes",
                suggestion="Use postgresql+asyncpg for concurrent verification traffic",
            )
        )

    if settings.DATABASE_POOL_SIZE < 1:
        results.append(
            ValidationResult(
                field="DATABASE_POOL_SIZE",
                severity=ValidationSeverity.ERROR,
                message=f"Pool size {settings.DATABASE_POOL_SIZE} must be at least 1",
            )
        )

    return results


def _validate_security(settings: Settings) -> list[ValidationResult]:
    """Validate reviewer credentials."""
    results: list[ValidationResult] = []

    if settings.ENVIRONMENT == "production" and not settings.reviewer_tokens():
        results.append(
            ValidationResult(
                field="REVIEWER_API_KEYS",
                severity=ValidationSeverity.ERROR,
                message="No reviewer tokens configured in production",
                suggestion="Set API_SECRET_KEY or REVIEWER_API_KEYS",
            )
        )

    short = [token for token in settings.reviewer_tokens() if len(token) < 32]
    if short and settings.ENVIRONMENT in ("staging", "production"):
        results.append(
            ValidationResult(
                field="REVIEWER_API_KEYS",
                severity=ValidationSeverity.WARNING,
                message=f"{len(short)} reviewer token(s) are short and may be weak",
                suggestion="Use at least 32 characters for reviewer tokens",
            )
        )

    return results


def _validate_api(settings: Settings) -> list[ValidationResult]:
    """Validate API configuration."""
    results: list[ValidationResult] = []

    if settings.ENVIRONMENT == "production" and "*" in settings.CORS_ORIGINS:
        results.append(
            ValidationResult(
                field="CORS_ORIGINS",
                severity=ValidationSeverity.ERROR,
                message="Wildcard CORS origin not allowed in production",
                suggestion="Specify exact allowed origins",
            )
        )

    if any(network.prefixlen == 0 for network in settings.TRUSTED_PROXIES):
        results.append(
            ValidationResult(
                field="TRUSTED_PROXIES",
                severity=ValidationSeverity.ERROR,
                message="A catch-all network lets any caller choose its source address",
                suggestion="List only the addresses of your reverse proxies",
            )
        )

    if settings.ENVIRONMENT == "production" and not settings.rate_limit.enabled:
        results.append(
            ValidationResult(
                field="rate_limit.enabled",
                severity=ValidationSeverity.WARNING,
                message="Public verification is not rate limited",
            )
        )

    return results


def _validate_fraud_detection(
settings: Settings) -> list[ValidationResult]:
    """Validate that risk thresholds escalate in order."""
    results: list[ValidationResult] = []
    config = settings.fraud_detection

    if not (
        config.burst_low_threshold
        <= config.burst_medium_threshold
        <= config.burst_high_threshold
    ):
        results.append(
            ValidationResult(
                field="fraud_detection.burst_*_threshold",
                severity=ValidationSeverity.ERROR,
                message=(
                    f"Burst thresholds must satisfy low <= medium <= high, got "
                    f"{config.burst_low_threshold}/{config.burst_medium_threshold}/"
                    f"{config.burst_high_threshold}"
                ),
            )
        )

    if config.diversity_medium_threshold > config.diversity_high_threshold:
        results.append(
            ValidationResult(
                field="fraud_detection.diversity_*_threshold",
                severity=ValidationSeverity.ERROR,
                message=(
                    f"Diversity thresholds must satisfy medium <= high, got "
                    f"{config.diversity_medium_threshold}/{config.diversity_high_threshold}"
                ),
            )
        )

    if not config.enabled:
        results.append(
            ValidationResult(
                field="fraud_detection.enabled",
                severity=ValidationSeverity.WARNING,
                message="Fraud analysis is disabled; attempts are recorded but not analyzed",
            )
        )

    return results


def _validate_environment(settings: Settings) -> list[ValidationResult]:
    """Validate environment-specific settings."""
    results: list[ValidationResult] = []

    if settings.ENVIRONMENT == "production" and settings.DEBUG:
        results.append(
            ValidationResult(
                field="DEBUG",
                severity=ValidationSeverity.ERROR,
                message="Debug mode must be disabled in production",
                suggestion="Set DEBUG=false for production",
            )
        )

    if settings.ENVIRONMENT == "production" and settings.log_level == "DEBUG":
        results.append(
            ValidationResult(
                field="log_level",
                severity=ValidationSeverity.WARNING,
                message="DEBUG log level in production may expose holder data",
                suggestion="Use INFO or WARNING for production",
            )
        )

    return results


def get_configuration_summary(settings: Settings | None = None) -> dict[str, Any]:
    """Get a summary of current configuration (safe for logging).

    Excludes tokens and connection strings.
    """
    if settings is None:
        settings = get_settings()

    return {
        "environment": settings.ENVIRONMENT,
        "debug": settings.DEBUG,
        "log_level": settings.log_level,
        "database_backend": settings.DATABASE_URL.split(":", 1)[0],
        "database_pool_size": settings.DATABASE_POOL_SIZE,
        "reviewer_token_count": len(settings.reviewer_tokens()),
        "cors_origins_count": len(settings.CORS_ORIGINS),
        "trusted_proxy_count": len(settings.TRUSTED_PROXIES),
        "rate_limit_enabled": settings.rate_limit.enabled,
        "fraud_detection_enabled": settings.fraud_detection.enabled,
    }
