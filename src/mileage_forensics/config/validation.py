"""Configuration validation for startup checks.

Validates the forensics thresholds and the usage-rules table before the
engine is put to work.

Usage:
    from mileage_forensics.config.validation import validate_configuration

    errors = validate_configuration()
    for error in errors:
        logger.error(f"Configuration error: {error}")
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from mileage_forensics.config.settings import Settings, get_settings
from mileage_forensics.forensics.types import UsageCategory
from mileage_forensics.forensics.usage_rules import load_usage_rules
from mileage_forensics.utils.exceptions import ConfigurationError

logger = logging.getLogger("mileage_forensics.config")


class ValidationSeverity(str, Enum):
    """Severity of configuration validation issues."""

    ERROR = "error"  # Must be fixed, the engine cannot run
    WARNING = "warning"  # Should be fixed, results may be misleading


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
    results.extend(_validate_usage_rules(settings))
    results.extend(_validate_detection(settings))
    results.extend(_validate_thresholds(settings))
    results.extend(_validate_environment(settings))
    return results


def validate_or_raise(settings: Settings | None = None) -> None:
    """Validate configuration and raise if errors found.

    Args:
        settings: Settings to validate

    Raises:
        ConfigurationError: If any validation errors are found
    """
    results = validate_configuration(settings)
    errors = [r for r in results if r.severity == ValidationSeverity.ERROR]

    if errors:
        error_messages = "\n".join(str(e) for e in errors)
        raise ConfigurationError(f"Configuration validation failed:\n{error_messages}")

    for warning in (r for r in results if r.severity == ValidationSeverity.WARNING):
        logger.warning(str(warning))


# =============================================================================
# Validators
# =============================================================================


def _validate_usage_rules(settings: Settings) -> list[ValidationResult]:
    """Validate the usage-rules table loads and is sensible."""
    results: list[ValidationResult] = []

    try:
        table = load_usage_rules(settings.forensics.usage_rules_path)
    except ConfigurationError as e:
        results.append(
            ValidationResult(
                field="forensics.usage_rules_path",
                severity=ValidationSeverity.ERROR,
                message=str(e),
                suggestion="Point usage_rules_path at a JSON object keyed by usage category",
            )
        )
        return results

    rental = table.get_rule(UsageCategory.RENTAL)
    for category in (UsageCategory.PERSONAL, UsageCategory.BUSINESS):
        rule = table.get_rule(category)
        if rule.normal_max < rental.normal_max:
            results.append(
                ValidationResult(
                    field=f"usage_rules.{category.value}",
                    severity=ValidationSeverity.WARNING,
                    message=(
                        f"{category.value} tolerates fewer gap miles ({rule.normal_max:g}) "
                        f"than rental-only use ({rental.normal_max:g})"
                    ),
                    suggestion="Rental-only should be the strictest declaration",
                )
            )

    return results


def _validate_detection(settings: Settings) -> list[ValidationResult]:
    """Validate anomaly detection thresholds."""
    results: list[ValidationResult] = []
    forensics = settings.forensics

    if forensics.max_plausible_miles_per_day <= 0:
        results.append(
            ValidationResult(
                field="forensics.max_plausible_miles_per_day",
                severity=ValidationSeverity.ERROR,
                message=(
                    "Speed threshold must be positive, "
                    f"got {forensics.max_plausible_miles_per_day}"
                ),
            )
        )
    elif forensics.max_plausible_miles_per_day > 1500:
        results.append(
            ValidationResult(
                field="forensics.max_plausible_miles_per_day",
                severity=ValidationSeverity.WARNING,
                message="Speed threshold is high enough to miss implausible gaps",
                suggestion="The usual value is 600 miles per day",
            )
        )

    if forensics.pattern_shift_ratio <= 1:
        results.append(
            ValidationResult(
                field="forensics.pattern_shift_ratio",
                severity=ValidationSeverity.ERROR,
                message="Pattern shift ratio must be greater than 1",
            )
        )

    if forensics.min_historical_samples < 1 or forensics.min_recent_samples < 1:
        results.append(
            ValidationResult(
                field="forensics.min_historical_samples",
                severity=ValidationSeverity.ERROR,
                message="Pattern shift sample floors must be at least 1",
            )
        )

    if forensics.rental_average_gap_threshold < 0:
        results.append(
            ValidationResult(
                field="forensics.rental_average_gap_threshold",
                severity=ValidationSeverity.ERROR,
                message="Rental average gap threshold cannot be negative",
            )
        )

    if not forensics.escalate_negative_gaps:
        results.append(
            ValidationResult(
                field="forensics.escalate_negative_gaps",
                severity=ValidationSeverity.WARNING,
                message="Odometer decreases between trips are classified by the usage rules only",
                suggestion="Enable escalate_negative_gaps unless the rules table handles them",
            )
        )

    return results


def _validate_thresholds(settings: Settings) -> list[ValidationResult]:
    """Validate risk aggregation and recommendation thresholds."""
    results: list[ValidationResult] = []
    forensics = settings.forensics

    for name in ("critical_gap_limit", "warning_gap_limit", "flagged_gap_threshold"):
        value = getattr(forensics, name)
        if value < 0:
            results.append(
                ValidationResult(
                    field=f"forensics.{name}",
                    severity=ValidationSeverity.ERROR,
                    message=f"Gap count threshold cannot be negative, got {value}",
                )
            )

    if not 0 <= forensics.compliance_floor <= 100:
        results.append(
            ValidationResult(
                field="forensics.compliance_floor",
                severity=ValidationSeverity.ERROR,
                message=f"Compliance floor must be a percentage, got {forensics.compliance_floor}",
                suggestion="The usual value is 80",
            )
        )

    return results


def _validate_environment(settings: Settings) -> list[ValidationResult]:
    """Validate environment-specific settings."""
    results: list[ValidationResult] = []

    if settings.ENVIRONMENT == "production" and settings.log_level == "DEBUG":
        results.append(
            ValidationResult(
                field="log_level",
                severity=ValidationSeverity.WARNING,
                message="DEBUG log level in production logs every booking analyzed",
                suggestion="Use INFO or WARNING for production",
            )
        )

    return results


def get_configuration_summary(settings: Settings | None = None) -> dict[str, Any]:
    """Get a summary of current configuration (safe for logging).

    Args:
        settings: Settings to summarize

    Returns:
        Dictionary with configuration summary
    """
    if settings is None:
        settings = get_settings()

    forensics = settings.forensics
    return {
        "environment": settings.ENVIRONMENT,
        "log_level": settings.log_level,
        "max_plausible_miles_per_day": forensics.max_plausible_miles_per_day,
        "pattern_shift_ratio": forensics.pattern_shift_ratio,
        "critical_gap_limit": forensics.critical_gap_limit,
        "warning_gap_limit": forensics.warning_gap_limit,
        "rental_average_gap_threshold": forensics.rental_average_gap_threshold,
        "flagged_gap_threshold": forensics.flagged_gap_threshold,
        "compliance_floor": forensics.compliance_floor,
        "escalate_negative_gaps": forensics.escalate_negative_gaps,
        "flag_excessive_gaps": forensics.flag_excessive_gaps,
        "detect_pattern_shift": forensics.detect_pattern_shift,
        "custom_usage_rules": forensics.usage_rules_path is not None,
    }
