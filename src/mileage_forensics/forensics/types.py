"""Core types and models for the forensics module.

This module defines the enums, the booking input record, and the derived
gap, anomaly and analysis structures produced by the engine.

The string values of ``GapSeverity`` and ``RiskLevel`` are keyed off by
claims, underwriting and the host compliance UI; they must not change.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mileage_forensics.utils.exceptions import InvalidInputError

COMPLETED_STATUS = "completed"


# =============================================================================
# Enums
# =============================================================================


class UsageCategory(str, Enum):
    """Declared primary use of a vehicle outside of rentals."""

    RENTAL = "Rental"  # Rental only
    PERSONAL = "Personal"  # Personal & rental
    BUSINESS = "Business"  # Business use

    @classmethod
    def parse(cls, value: "UsageCategory | str | None") -> "UsageCategory":
        """Coerce a declared use into a category.

        An undeclared vehicle (``None`` or empty string) is treated as
        rental-only.

        Raises:
            InvalidInputError: If the value names no known category.
        """
        if isinstance(value, cls):
            return value
        if not value:
            return cls.RENTAL
        normalized = str(value).strip().lower()
        for category in cls:
            if category.value.lower() == normalized or category.name.lower() == normalized:
                return category
        raise InvalidInputError(f"Unknown primary use: {value!r}")


class GapSeverity(str, Enum):
    """Severity tier assigned to a mileage gap by the usage rules."""

    NORMAL = "NORMAL"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
    VIOLATION = "VIOLATION"


class AnomalyType(str, Enum):
    """Types of mileage anomalies."""

    REVERSE = "REVERSE"  # Odometer went backwards during a trip
    EXCESSIVE_GAP = "EXCESSIVE_GAP"  # Gap beyond the violation threshold
    IMPOSSIBLE_SPEED = "IMPOSSIBLE_SPEED"  # Gap implies implausible daily driving
    PATTERN_CHANGE = "PATTERN_CHANGE"  # Recent gaps far larger than history


class AnomalySeverity(str, Enum):
    """Severity of a mileage anomaly, independent of gap tiers."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class RiskLevel(str, Enum):
    """Overall mileage risk level for insurance coverage."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# =============================================================================
# Input Record
# =============================================================================


class BookingMileageRecord(BaseModel):
    """Odometer readings reported for one booking.

    Owned by the booking subsystem; the engine only reads it.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        allow_inf_nan=False,
        coerce_numbers_to_str=True,
    )

    booking_id: str = Field(alias="id", description="Booking identifier")
    booking_code: str = Field(
        default="", alias="bookingCode", description="Human-readable booking code"
    )
    start_date: datetime = Field(alias="startDate", description="Trip start timestamp")
    end_date: datetime = Field(alias="endDate", description="Trip end timestamp")
    start_odometer: float | None = Field(
        default=None, alias="startMileage", description="Odometer at pickup"
    )
    end_odometer: float | None = Field(
        default=None, alias="endMileage", description="Odometer at return"
    )
    status: str = Field(default=COMPLETED_STATUS, description="Booking lifecycle status")

    @field_validator("booking_code", mode="before")
    @classmethod
    def _blank_booking_code(cls, v: object) -> object:
        return "" if v is None else v

    @property
    def is_completed(self) -> bool:
        """Whether the booking finished its lifecycle."""
        return self.status.strip().lower() == COMPLETED_STATUS

    @property
    def rental_miles(self) -> float | None:
        """Miles driven during the trip, or None without both readings."""
        if self.start_odometer is None or self.end_odometer is None:
            return None
        return self.end_odometer - self.start_odometer


# =============================================================================
# Derived Models
# =============================================================================


@dataclass
class MileageGap:
    """Mileage accrued between the end of one booking and the next reading.

    Attributes:
        booking_id: Booking that precedes the gap.
        booking_code: Code of the preceding booking.
        last_odometer: Odometer when the preceding booking ended.
        last_date: When the preceding booking ended.
        next_odometer: Odometer at the start of the following booking (or live reading).
        next_date: Start of the following booking (or the analysis instant).
        gap_miles: ``next_odometer - last_odometer``.
        gap_days: Whole days elapsed, rounded up.
        severity: Tier assigned by the usage rules.
        flagged: ``severity != NORMAL``.
        next_booking_id: Booking that follows the gap (None for the trailing gap).
        explanation: Free-text note; set on the trailing gap.
    """

    booking_id: str
    booking_code: str
    last_odometer: float
    last_date: datetime
    next_odometer: float
    next_date: datetime
    gap_miles: float
    gap_days: int
    severity: GapSeverity = GapSeverity.NORMAL
    flagged: bool = False
    next_booking_id: str | None = None
    explanation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "booking_id": self.booking_id,
            "booking_code": self.booking_code,
            "last_odometer": self.last_odometer,
            "last_date": self.last_date.isoformat(),
            "next_odometer": self.next_odometer,
            "next_date": self.next_date.isoformat(),
            "gap_miles": self.gap_miles,
            "gap_days": self.gap_days,
            "severity": self.severity.value,
            "flagged": self.flagged,
            "next_booking_id": self.next_booking_id,
            "explanation": self.explanation,
        }


@dataclass
class MileageAnomaly:
    """A structural or statistical impossibility in reported mileage."""

    anomaly_type: AnomalyType
    severity: AnomalySeverity
    description: str
    reported_mileage: float
    expected_mileage: float
    booking_id: str | None = None
    booking_code: str | None = None
    requires_investigation: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "anomaly_type": self.anomaly_type.value,
            "severity": self.severity.value,
            "description": self.description,
            "reported_mileage": self.reported_mileage,
            "expected_mileage": self.expected_mileage,
            "booking_id": self.booking_id,
            "booking_code": self.booking_code,
            "requires_investigation": self.requires_investigation,
        }


@dataclass
class ForensicAnalysis:
    """Complete mileage forensic assessment for one vehicle.

    This is the sole output of the engine. It is rebuilt on every call and
    never persisted by the engine.
    """

    primary_use: UsageCategory = UsageCategory.RENTAL
    gaps: list[MileageGap] = field(default_factory=list)
    anomalies: list[MileageAnomaly] = field(default_factory=list)

    # Mileage totals
    total_mileage: float = 0.0  # Current odometer reading
    rental_mileage: float = 0.0  # Miles driven inside tracked trips
    unaccounted_mileage: float = 0.0  # Sum of gap miles

    # Gap statistics
    average_gap_size: float = 0.0
    max_gap: float = 0.0
    compliance_rate: float = 100.0  # Percentage of non-flagged gaps

    # Assessment
    risk_level: RiskLevel = RiskLevel.LOW
    insurance_impact: str = ""
    recommendations: list[str] = field(default_factory=list)

    @property
    def total_gaps(self) -> int:
        """Number of gaps in the analysis."""
        return len(self.gaps)

    @property
    def flagged_gaps(self) -> int:
        """Number of gaps outside tolerance."""
        return sum(1 for g in self.gaps if g.flagged)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "primary_use": self.primary_use.value,
            "gaps": [g.to_dict() for g in self.gaps],
            "anomalies": [a.to_dict() for a in self.anomalies],
            "total_mileage": self.total_mileage,
            "rental_mileage": self.rental_mileage,
            "unaccounted_mileage": self.unaccounted_mileage,
            "average_gap_size": self.average_gap_size,
            "max_gap": self.max_gap,
            "total_gaps": self.total_gaps,
            "flagged_gaps": self.flagged_gaps,
            "compliance_rate": self.compliance_rate,
            "risk_level": self.risk_level.value,
            "insurance_impact": self.insurance_impact,
            "recommendations": list(self.recommendations),
        }
