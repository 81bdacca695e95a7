"""Unit tests for the MileageAnomalyDetector."""

from datetime import UTC, datetime, timedelta

import pytest

from mileage_forensics.forensics.anomaly_detector import (
    ANOMALY_TYPE_SEVERITY,
    DetectorConfig,
    MileageAnomalyDetector,
    create_anomaly_detector,
)
from mileage_forensics.forensics.types import (
    AnomalySeverity,
    AnomalyType,
    GapSeverity,
    MileageGap,
)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def detector() -> MileageAnomalyDetector:
    """Create a default anomaly detector."""
    return MileageAnomalyDetector()


def create_gap(
    gap_miles: float,
    gap_days: int,
    severity: GapSeverity = GapSeverity.NORMAL,
    next_booking_id: str | None = "bk_2",
    explanation: str | None = None,
) -> MileageGap:
    """Helper to create test gaps."""
    last_date = datetime(2025, 1, 1, tzinfo=UTC)
    return MileageGap(
        booking_id="bk_1",
        booking_code="RENT-0001",
        last_odometer=10_000,
        last_date=last_date,
        next_odometer=10_000 + gap_miles,
        next_date=last_date + timedelta(days=gap_days),
        gap_miles=gap_miles,
        gap_days=gap_days,
        severity=severity,
        flagged=severity != GapSeverity.NORMAL,
        next_booking_id=next_booking_id,
        explanation=explanation,
    )


# =============================================================================
# Initialization Tests
# =============================================================================


class TestDetectorInit:
    """Tests for MileageAnomalyDetector initialization."""

    def test_init_default_config(self) -> None:
        """Test initialization with default config."""
        detector = MileageAnomalyDetector()
        assert detector.config.max_plausible_miles_per_day == 600
        assert detector.config.min_historical_samples == 5
        assert detector.config.min_recent_samples == 3
        assert detector.config.flag_excessive_gaps is False

    def test_factory_with_config(self) -> None:
        """Test factory with custom config."""
        detector = create_anomaly_detector(DetectorConfig(max_plausible_miles_per_day=400))
        assert detector.config.max_plausible_miles_per_day == 400

    def test_config_rejects_non_positive_speed(self) -> None:
        """Test the speed threshold must be positive."""
        with pytest.raises(ValueError):
            DetectorConfig(max_plausible_miles_per_day=0)

    def test_type_severity_mapping(self) -> None:
        """Test each anomaly type has its fixed severity."""
        assert ANOMALY_TYPE_SEVERITY[AnomalyType.REVERSE] == AnomalySeverity.CRITICAL
        assert ANOMALY_TYPE_SEVERITY[AnomalyType.IMPOSSIBLE_SPEED] == AnomalySeverity.HIGH
        assert ANOMALY_TYPE_SEVERITY[AnomalyType.PATTERN_CHANGE] == AnomalySeverity.MEDIUM


# =============================================================================
# Reversed Odometer Tests
# =============================================================================


class TestReversedOdometer:
    """Tests for trips whose odometer went backwards."""

    def test_reversed_booking_flagged(self, detector: MileageAnomalyDetector, make_booking) -> None:
        """Test a trip ending below its start reading is critical."""
        booking = make_booking(1200, 1000)

        anomaly = detector.detect_reversed_odometer(booking)

        assert anomaly is not None
        assert anomaly.anomaly_type == AnomalyType.REVERSE
        assert anomaly.severity == AnomalySeverity.CRITICAL
        assert anomaly.requires_investigation is True
        assert anomaly.reported_mileage == 1000
        assert anomaly.expected_mileage == 1200
        assert anomaly.booking_id == booking.booking_id

    def test_normal_booking_not_flagged(
        self, detector: MileageAnomalyDetector, make_booking
    ) -> None:
        """Test an ordinary trip produces no anomaly."""
        assert detector.detect_reversed_odometer(make_booking(1000, 1200)) is None

    def test_zero_mile_booking_not_flagged(
        self, detector: MileageAnomalyDetector, make_booking
    ) -> None:
        """Test a trip with no distance is not a reversal."""
        assert detector.detect_reversed_odometer(make_booking(1000, 1000)) is None

    def test_missing_start_not_flagged(
        self, detector: MileageAnomalyDetector, make_booking
    ) -> None:
        """Test a trip without a pickup reading cannot be judged."""
        assert detector.detect_reversed_odometer(make_booking(None, 1000)) is None


# =============================================================================
# Impossible Speed Tests
# =============================================================================


class TestImpossibleSpeed:
    """Tests for gaps too large for the elapsed time."""

    def test_3000_miles_in_one_day(self, detector: MileageAnomalyDetector) -> None:
        """Test an implausible daily distance is flagged HIGH."""
        anomaly = detector.detect_impossible_speed(create_gap(3000, 1))

        assert anomaly is not None
        assert anomaly.anomaly_type == AnomalyType.IMPOSSIBLE_SPEED
        assert anomaly.severity == AnomalySeverity.HIGH
        assert anomaly.requires_investigation is True
        assert anomaly.booking_id == "bk_2"
        assert anomaly.reported_mileage == 13_000
        assert anomaly.expected_mileage == 10_600

    def test_exactly_at_threshold_not_flagged(self, detector: MileageAnomalyDetector) -> None:
        """Test the threshold itself is plausible."""
        assert detector.detect_impossible_speed(create_gap(1200, 2)) is None

    def test_plausible_gap_not_flagged(self, detector: MileageAnomalyDetector) -> None:
        """Test an ordinary gap produces no anomaly."""
        assert detector.detect_impossible_speed(create_gap(500, 2)) is None

    @pytest.mark.parametrize("days", [0, -1, -5])
    def test_non_positive_days_skipped(self, detector: MileageAnomalyDetector, days: int) -> None:
        """Test zero or negative elapsed days never divide."""
        assert detector.detect_impossible_speed(create_gap(5000, days)) is None

    def test_custom_threshold(self) -> None:
        """Test the speed threshold is configurable."""
        detector = MileageAnomalyDetector(DetectorConfig(max_plausible_miles_per_day=200))
        assert detector.detect_impossible_speed(create_gap(500, 2)) is not None

    def test_trailing_gap_has_no_booking_reference(
        self, detector: MileageAnomalyDetector
    ) -> None:
        """Test a speed anomaly on the live reading references no booking."""
        gap = create_gap(2000, 1, next_booking_id=None, explanation="current odometer reading")
        anomaly = detector.detect_impossible_speed(gap)
        assert anomaly is not None
        assert anomaly.booking_id is None
        assert "current odometer reading" in anomaly.description


# =============================================================================
# Excessive Gap Tests
# =============================================================================


class TestExcessiveGap:
    """Tests for the opt-in excessive gap anomaly."""

    def test_violation_gap_flagged(self, detector: MileageAnomalyDetector) -> None:
        """Test a violation gap yields an excessive gap anomaly."""
        anomaly = detector.detect_excessive_gap(create_gap(400, 10, GapSeverity.VIOLATION))
        assert anomaly is not None
        assert anomaly.anomaly_type == AnomalyType.EXCESSIVE_GAP
        assert anomaly.severity == AnomalySeverity.HIGH
        assert anomaly.booking_id == "bk_1"

    def test_critical_gap_not_flagged(self, detector: MileageAnomalyDetector) -> None:
        """Test gaps short of a violation are left to the gap tiers."""
        assert detector.detect_excessive_gap(create_gap(80, 10, GapSeverity.CRITICAL)) is None

    def test_disabled_by_default(self, detector: MileageAnomalyDetector) -> None:
        """Test detect_anomalies only emits excessive gaps when enabled."""
        gaps = [create_gap(400, 10, GapSeverity.VIOLATION)]
        assert detector.detect_anomalies([], gaps) == []

    def test_enabled_in_config(self) -> None:
        """Test the flag turns on excessive gap anomalies."""
        detector = MileageAnomalyDetector(DetectorConfig(flag_excessive_gaps=True))
        gaps = [create_gap(400, 10, GapSeverity.VIOLATION)]
        anomalies = detector.detect_anomalies([], gaps)
        assert [a.anomaly_type for a in anomalies] == [AnomalyType.EXCESSIVE_GAP]


# =============================================================================
# Pattern Shift Tests
# =============================================================================


class TestUsagePatternShift:
    """Tests for abrupt changes in gap size."""

    def test_shift_detected(self, detector: MileageAnomalyDetector) -> None:
        """Test recent gaps far above history are flagged MEDIUM."""
        anomaly = detector.detect_usage_pattern_shift(
            historical=[10, 12, 8, 10, 10],
            recent=[50, 40, 60],
        )
        assert anomaly is not None
        assert anomaly.anomaly_type == AnomalyType.PATTERN_CHANGE
        assert anomaly.severity == AnomalySeverity.MEDIUM
        assert anomaly.requires_investigation is True
        assert anomaly.reported_mileage == 50
        assert anomaly.expected_mileage == 10
        assert "5.0x" in anomaly.description

    def test_ratio_at_threshold_not_flagged(self, detector: MileageAnomalyDetector) -> None:
        """Test a ratio of exactly three is not a shift."""
        assert (
            detector.detect_usage_pattern_shift(historical=[10] * 5, recent=[30, 30, 30]) is None
        )

    @pytest.mark.parametrize(
        ("historical", "recent"),
        [
            ([10, 10, 10, 10], [100, 100, 100]),
            ([10, 10, 10, 10, 10], [100, 100]),
            ([], []),
        ],
    )
    def test_insufficient_samples(
        self, detector: MileageAnomalyDetector, historical, recent
    ) -> None:
        """Test small samples return no anomaly rather than raising."""
        assert detector.detect_usage_pattern_shift(historical, recent) is None

    def test_zero_historical_mean(self, detector: MileageAnomalyDetector) -> None:
        """Test a zero baseline never divides."""
        assert detector.detect_usage_pattern_shift([0] * 5, [100, 100, 100]) is None

    def test_shift_in_gaps_uses_latest_as_recent(
        self, detector: MileageAnomalyDetector
    ) -> None:
        """Test the gap-list variant windows the most recent gaps."""
        gaps = [create_gap(m, 3) for m in [10, 10, 10, 10, 10, 90, 90, 90]]
        anomaly = detector.detect_pattern_shift_in_gaps(gaps)
        assert anomaly is not None
        assert anomaly.reported_mileage == 90

    def test_shift_in_gaps_too_few(self, detector: MileageAnomalyDetector) -> None:
        """Test short histories skip the check."""
        gaps = [create_gap(m, 3) for m in [10, 90, 90]]
        assert detector.detect_pattern_shift_in_gaps(gaps) is None


# =============================================================================
# Combined Detection Tests
# =============================================================================


class TestDetectAnomalies:
    """Tests for the combined detection pass."""

    def test_nothing_to_report(self, detector: MileageAnomalyDetector, make_booking) -> None:
        """Test clean data yields no anomalies."""
        bookings = [make_booking(1000, 1100)]
        assert detector.detect_anomalies(bookings, [create_gap(10, 2)]) == []

    def test_bookings_then_gaps(self, detector: MileageAnomalyDetector, make_booking) -> None:
        """Test reversal anomalies precede speed anomalies."""
        bookings = [make_booking(1000, 1100), make_booking(1500, 1400)]
        gaps = [create_gap(3000, 1)]

        anomalies = detector.detect_anomalies(bookings, gaps)

        assert [a.anomaly_type for a in anomalies] == [
            AnomalyType.REVERSE,
            AnomalyType.IMPOSSIBLE_SPEED,
        ]
