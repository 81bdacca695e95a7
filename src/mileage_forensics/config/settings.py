"""Application settings loaded from environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class ForensicsSettings(BaseModel):
    """Tunable thresholds for the mileage forensics engine.

    Severity thresholds per usage category are not defined here; they live in
    the usage-rules table, optionally loaded from ``usage_rules_path``.
    """

    # Anomaly detection
    max_plausible_miles_per_day: float = 600.0
    """Average daily mileage above which a gap is physically implausible."""

    pattern_shift_ratio: float = 3.0
    """Recent/historical mean gap ratio that signals a usage-pattern shift."""

    min_historical_samples: int = 5
    """Historical gap observations required before checking for a shift."""

    min_recent_samples: int = 3
    """Recent gap observations required before checking for a shift."""

    escalate_negative_gaps: bool = True
    """Force gaps where the odometer went backwards to VIOLATION."""

    flag_excessive_gaps: bool = False
    """Emit an EXCESSIVE_GAP anomaly for every VIOLATION gap."""

    detect_pattern_shift: bool = False
    """Run the usage-pattern shift check over the extracted gaps."""

    # Risk aggregation
    critical_gap_limit: int = 2
    """CRITICAL gaps tolerated before the risk level rises to HIGH."""

    warning_gap_limit: int = 5
    """WARNING gaps tolerated before the risk level rises to MEDIUM."""

    # Recommendations
    rental_average_gap_threshold: float = 30.0
    """Average gap (miles) above which rental-only hosts are advised to redeclare."""

    flagged_gap_threshold: int = 3
    """Flagged gaps above which hosts must document every gap's cause."""

    compliance_floor: float = 80.0
    """Compliance rate (percent) below which hosts are told to improve trip logging."""

    # External rules table
    usage_rules_path: Path | None = None
    """JSON file overriding the default usage-rules table."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Configuration
    ENVIRONMENT: Literal["development", "test", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Forensics Configuration
    forensics: ForensicsSettings = ForensicsSettings()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
