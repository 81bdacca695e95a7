"""Unit tests for forensics types."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from mileage_forensics.forensics.types import (
    AnomalySeverity,
    AnomalyType,
    BookingMileageRecord,
    ForensicAnalysis,
    GapSeverity,
    MileageAnomaly,
    MileageGap,
    RiskLevel,
    UsageCategory,
)


class TestBookingMileageRecord:
    """Tests for the booking input record."""

    def test_from_camel_case(self):
        """Test records validate from the booking subsystem's field names."""
        record = BookingMileageRecord.model_validate(
            {
                "id": "bk_1",
                "bookingCode": "RENT-0001",
                "startDate": "2025-03-01T10:00:00Z",
                "endDate": "2025-03-02T10:00:00Z",
                "startMileage": 1000,
                "endMileage": 1150,
            }
        )
        assert record.booking_id == "bk_1"
        assert record.start_odometer == 1000.0
        assert record.rental_miles == 150
        assert record.is_completed is True

    def test_rental_miles_needs_both_readings(self):
        """Test rental miles are unknown without a pickup reading."""
        record = BookingMileageRecord(
            booking_id="bk_1",
            start_date=datetime(2025, 3, 1, tzinfo=UTC),
            end_date=datetime(2025, 3, 2, tzinfo=UTC),
            end_odometer=1150,
        )
        assert record.rental_miles is None

    @pytest.mark.parametrize(
        ("status", "expected"),
        [("completed", True), ("Completed", True), ("cancelled", False), ("active", False)],
    )
    def test_is_completed(self, status, expected):
        """Test the completed status is matched case-insensitively."""
        record = BookingMileageRecord(
            booking_id="bk_1",
            start_date=datetime(2025, 3, 1, tzinfo=UTC),
            end_date=datetime(2025, 3, 2, tzinfo=UTC),
            status=status,
        )
        assert record.is_completed is expected

    def test_rejects_non_finite_odometer(self):
        """Test NaN readings are rejected."""
        with pytest.raises(ValidationError):
            BookingMileageRecord(
                booking_id="bk_1",
                start_date=datetime(2025, 3, 1, tzinfo=UTC),
                end_date=datetime(2025, 3, 2, tzinfo=UTC),
                end_odometer=float("nan"),
            )

    def test_frozen(self):
        """Test records are read-only."""
        record = BookingMileageRecord(
            booking_id="bk_1",
            start_date=datetime(2025, 3, 1, tzinfo=UTC),
            end_date=datetime(2025, 3, 2, tzinfo=UTC),
        )
        with pytest.raises(ValidationError):
            record.status = "cancelled"


class TestEnumValues:
    """Tests for the externally visible enum values."""

    def test_gap_severity_values(self):
        """Test gap tiers keep their wire values."""
        assert [s.value for s in GapSeverity] == ["NORMAL", "WARNING", "CRITICAL", "VIOLATION"]

    def test_risk_level_values(self):
        """Test risk levels keep their wire values."""
        assert [r.value for r in RiskLevel] == ["LOW", "MEDIUM", "HIGH", "CRITICAL"]

    def test_usage_category_values(self):
        """Test declarations keep their wire values."""
        assert [c.value for c in UsageCategory] == ["Rental", "Personal", "Business"]


class TestToDict:
    """Tests for dictionary conversion of results."""

    def test_analysis_to_dict(self):
        """Test the analysis serializes with nested gaps and anomalies."""
        when = datetime(2025, 3, 1, tzinfo=UTC)
        analysis = ForensicAnalysis(
            gaps=[
                MileageGap(
                    booking_id="bk_1",
                    booking_code="RENT-0001",
                    last_odometer=1_100,
                    last_date=when,
                    next_odometer=1_400,
                    next_date=when,
                    gap_miles=300,
                    gap_days=0,
                    severity=GapSeverity.VIOLATION,
                    flagged=True,
                )
            ],
            anomalies=[
                MileageAnomaly(
                    anomaly_type=AnomalyType.REVERSE,
                    severity=AnomalySeverity.CRITICAL,
                    description="reversed",
                    reported_mileage=1_000,
                    expected_mileage=1_200,
                )
            ],
            risk_level=RiskLevel.CRITICAL,
        )

        data = analysis.to_dict()

        assert data["primary_use"] == "Rental"
        assert data["risk_level"] == "CRITICAL"
        assert data["total_gaps"] == 1
        assert data["flagged_gaps"] == 1
        assert data["gaps"][0]["severity"] == "VIOLATION"
        assert data["gaps"][0]["last_date"] == "2025-03-01T00:00:00+00:00"
        assert data["anomalies"][0]["anomaly_type"] == "REVERSE"
