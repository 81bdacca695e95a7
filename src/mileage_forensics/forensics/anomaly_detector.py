"""Anomaly Detector for physically implausible or fraudulent mileage.

This module provides the MileageAnomalyDetector that:
1. Flags trips whose odometer went backwards
2. Flags gaps that imply an impossible average daily distance
3. Optionally flags gaps beyond the declared use's violation threshold
4. Detects an abrupt shift in gap size between history and recent trips

Anomalies are judged on their own severity scale, independent of the
gap severity tiers assigned by the usage rules.
"""

from collections.abc import Sequence
from statistics import fmean

from pydantic import BaseModel, Field

from mileage_forensics.core.logging import get_logger
from mileage_forensics.forensics.types import (
    AnomalySeverity,
    AnomalyType,
    BookingMileageRecord,
    GapSeverity,
    MileageAnomaly,
    MileageGap,
)

logger = get_logger(__name__)


# Severity for each anomaly type
ANOMALY_TYPE_SEVERITY: dict[AnomalyType, AnomalySeverity] = {
    AnomalyType.REVERSE: AnomalySeverity.CRITICAL,
    AnomalyType.IMPOSSIBLE_SPEED: AnomalySeverity.HIGH,
    AnomalyType.EXCESSIVE_GAP: AnomalySeverity.HIGH,
    AnomalyType.PATTERN_CHANGE: AnomalySeverity.MEDIUM,
}


class DetectorConfig(BaseModel):
    """Configuration for mileage anomaly detector."""

    max_plausible_miles_per_day: float = Field(
        default=600.0, gt=0, description="Average daily miles above which a gap is implausible"
    )
    pattern_shift_ratio: float = Field(
        default=3.0, gt=1.0, description="Recent/historical mean ratio that signals a shift"
    )
    min_historical_samples: int = Field(
        default=5, ge=1, description="Historical gaps required for the shift check"
    )
    min_recent_samples: int = Field(
        default=3, ge=1, description="Recent gaps required for the shift check"
    )
    flag_excessive_gaps: bool = Field(
        default=False, description="Emit EXCESSIVE_GAP anomalies for VIOLATION gaps"
    )


class MileageAnomalyDetector:
    """Detects structural impossibilities in reported mileage.

    Example:
        ```python
        detector = MileageAnomalyDetector()

        anomalies = detector.detect_anomalies(
            bookings=extraction.bookings,
            gaps=extraction.computed_gaps,
        )

        shift = detector.detect_usage_pattern_shift(
            historical=[12, 8, 20, 15, 10],
            recent=[90, 120, 75],
        )
        ```
    """

    def __init__(self, config: DetectorConfig | None = None):
        """Initialize the anomaly detector.

        Args:
            config: Detector configuration.
        """
        self.config = config or DetectorConfig()

    def detect_anomalies(
        self,
        bookings: Sequence[BookingMileageRecord],
        gaps: Sequence[MileageGap],
    ) -> list[MileageAnomaly]:
        """Detect all per-booking and per-gap anomalies.

        Args:
            bookings: Qualifying bookings in trip-end order.
            gaps: Every measured gap, including a NORMAL trailing gap.

        Returns:
            Anomalies in booking order, then gap order.
        """
        anomalies: list[MileageAnomaly] = []

        for booking in bookings:
            reversed_odometer = self.detect_reversed_odometer(booking)
            if reversed_odometer is not None:
                anomalies.append(reversed_odometer)

        for gap in gaps:
            speed = self.detect_impossible_speed(gap)
            if speed is not None:
                anomalies.append(speed)

            if self.config.flag_excessive_gaps:
                excessive = self.detect_excessive_gap(gap)
                if excessive is not None:
                    anomalies.append(excessive)

        if anomalies:
            logger.info(
                "Mileage anomalies detected",
                total=len(anomalies),
                by_type={
                    t.value: sum(1 for a in anomalies if a.anomaly_type == t)
                    for t in AnomalyType
                },
            )

        return anomalies

    def detect_reversed_odometer(self, booking: BookingMileageRecord) -> MileageAnomaly | None:
        """Flag a trip that ended on a lower odometer than it started."""
        rental_miles = booking.rental_miles
        if rental_miles is None or rental_miles >= 0:
            return None

        # rental_miles is only set when both readings are present
        start = float(booking.start_odometer)  # type: ignore[arg-type]
        end = float(booking.end_odometer)  # type: ignore[arg-type]

        return MileageAnomaly(
            anomaly_type=AnomalyType.REVERSE,
            severity=ANOMALY_TYPE_SEVERITY[AnomalyType.REVERSE],
            description=(
                f"Odometer reversed during booking {booking.booking_code or booking.booking_id}: "
                f"ended at {end:,.0f} after starting at {start:,.0f}"
            ),
            reported_mileage=end,
            expected_mileage=start,
            booking_id=booking.booking_id,
            booking_code=booking.booking_code or None,
            requires_investigation=True,
        )

    def detect_impossible_speed(self, gap: MileageGap) -> MileageAnomaly | None:
        """Flag a gap whose mileage could not be driven in the time available.

        Gaps with zero or negative elapsed days are skipped; they carry no
        usable rate.
        """
        if gap.gap_days <= 0:
            return None

        miles_per_day = gap.gap_miles / gap.gap_days
        limit = self.config.max_plausible_miles_per_day
        if miles_per_day <= limit:
            return None

        where = (
            f"before {gap.explanation}"
            if gap.next_booking_id is None and gap.explanation
            else "between bookings"
        )
        return MileageAnomaly(
            anomaly_type=AnomalyType.IMPOSSIBLE_SPEED,
            severity=ANOMALY_TYPE_SEVERITY[AnomalyType.IMPOSSIBLE_SPEED],
            description=(
                f"{gap.gap_miles:,.0f} miles in {gap.gap_days} day(s) {where} "
                f"averages {miles_per_day:,.0f} miles/day (limit {limit:,.0f})"
            ),
            reported_mileage=gap.next_odometer,
            expected_mileage=gap.last_odometer + limit * gap.gap_days,
            booking_id=gap.next_booking_id,
            requires_investigation=True,
        )

    def detect_excessive_gap(self, gap: MileageGap) -> MileageAnomaly | None:
        """Flag a gap that violates the declared use outright."""
        if gap.severity != GapSeverity.VIOLATION:
            return None

        return MileageAnomaly(
            anomaly_type=AnomalyType.EXCESSIVE_GAP,
            severity=ANOMALY_TYPE_SEVERITY[AnomalyType.EXCESSIVE_GAP],
            description=(
                f"Unexplained gap of {gap.gap_miles:,.0f} miles after booking "
                f"{gap.booking_code or gap.booking_id} violates the declared use"
            ),
            reported_mileage=gap.next_odometer,
            expected_mileage=gap.last_odometer,
            booking_id=gap.booking_id,
            booking_code=gap.booking_code or None,
            requires_investigation=True,
        )

    def detect_usage_pattern_shift(
        self,
        historical: Sequence[float],
        recent: Sequence[float],
    ) -> MileageAnomaly | None:
        """Compare recent gap sizes against the vehicle's history.

        Args:
            historical: Older gap sizes in miles.
            recent: Most recent gap sizes in miles.

        Returns:
            A PATTERN_CHANGE anomaly, or None when the samples are too small
            or no shift is found.
        """
        if (
            len(historical) < self.config.min_historical_samples
            or len(recent) < self.config.min_recent_samples
        ):
            return None

        historical_mean = fmean(historical)
        recent_mean = fmean(recent)
        if historical_mean <= 0:
            return None

        ratio = recent_mean / historical_mean
        if ratio <= self.config.pattern_shift_ratio:
            return None

        return MileageAnomaly(
            anomaly_type=AnomalyType.PATTERN_CHANGE,
            severity=ANOMALY_TYPE_SEVERITY[AnomalyType.PATTERN_CHANGE],
            description=(
                f"Recent average gap of {recent_mean:,.0f} miles is {ratio:.1f}x "
                f"the historical average of {historical_mean:,.0f} miles"
            ),
            reported_mileage=recent_mean,
            expected_mileage=historical_mean,
            requires_investigation=True,
        )

    def detect_pattern_shift_in_gaps(self, gaps: Sequence[MileageGap]) -> MileageAnomaly | None:
        """Run the shift check with the latest gaps as the recent window."""
        window = self.config.min_recent_samples
        if len(gaps) <= window:
            return None

        sizes = [g.gap_miles for g in gaps]
        return self.detect_usage_pattern_shift(historical=sizes[:-window], recent=sizes[-window:])


def create_anomaly_detector(config: DetectorConfig | None = None) -> MileageAnomalyDetector:
    """Create a mileage anomaly detector.

    Args:
        config: Optional detector configuration.

    Returns:
        Configured MileageAnomalyDetector.
    """
    return MileageAnomalyDetector(config=config)
