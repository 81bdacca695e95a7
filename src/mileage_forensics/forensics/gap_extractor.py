"""Gap Extractor for reconstructing a vehicle's mileage timeline.

This module provides the GapExtractor that:
1. Filters bookings down to completed trips with a recorded return odometer
2. Orders them by trip end and totals the miles driven inside trips
3. Measures the odometer and time gap between consecutive trips
4. Measures the trailing gap up to the live odometer reading
5. Classifies every gap through the injected severity policy
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from mileage_forensics.core.logging import get_logger
from mileage_forensics.forensics.types import (
    BookingMileageRecord,
    GapSeverity,
    MileageGap,
    UsageCategory,
)
from mileage_forensics.forensics.usage_rules import SeverityPolicy

logger = get_logger(__name__)

TRAILING_GAP_EXPLANATION = "current odometer reading"

SECONDS_PER_DAY = 86400


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def days_between(start: datetime, end: datetime) -> int:
    """Whole days from ``start`` to ``end``, rounded up.

    Any positive interval counts as at least one day. Zero and negative
    intervals (clock skew, overlapping bookings) return zero or less.
    """
    seconds = (as_utc(end) - as_utc(start)).total_seconds()
    return math.ceil(seconds / SECONDS_PER_DAY)


@dataclass
class GapExtraction:
    """Result of walking one vehicle's booking history.

    Attributes:
        bookings: Qualifying bookings in trip-end order.
        gaps: Gaps surfaced in the analysis (the trailing gap only when flagged).
        computed_gaps: Every gap measured, including a NORMAL trailing gap.
        rental_mileage: Sum of in-trip miles over bookings with both readings.
    """

    bookings: list[BookingMileageRecord] = field(default_factory=list)
    gaps: list[MileageGap] = field(default_factory=list)
    computed_gaps: list[MileageGap] = field(default_factory=list)
    rental_mileage: float = 0.0


class ExtractorConfig(BaseModel):
    """Configuration for gap extractor."""

    escalate_negative_gaps: bool = Field(
        default=True,
        description="Classify gaps where the odometer went backwards as VIOLATION",
    )


class GapExtractor:
    """Extracts mileage gaps between consecutive completed bookings.

    Example:
        ```python
        extractor = GapExtractor(policy=UsageRulesTable())

        extraction = extractor.extract(
            bookings=records,
            current_odometer=48_210,
            primary_use=UsageCategory.RENTAL,
            now=datetime.now(UTC),
        )

        flagged = [g for g in extraction.gaps if g.flagged]
        ```
    """

    def __init__(self, policy: SeverityPolicy, config: ExtractorConfig | None = None):
        """Initialize the gap extractor.

        Args:
            policy: Severity lookup used to classify each gap.
            config: Extractor configuration.
        """
        self.policy = policy
        self.config = config or ExtractorConfig()

    def qualifying_bookings(
        self, bookings: Iterable[BookingMileageRecord]
    ) -> list[BookingMileageRecord]:
        """Completed bookings with a return odometer, ordered by trip end."""
        qualifying = [b for b in bookings if b.is_completed and b.end_odometer is not None]
        return sorted(qualifying, key=lambda b: as_utc(b.end_date))

    def extract(
        self,
        bookings: Iterable[BookingMileageRecord],
        current_odometer: float | None,
        primary_use: UsageCategory,
        now: datetime,
    ) -> GapExtraction:
        """Measure every gap in a vehicle's booking history.

        Args:
            bookings: All bookings for the vehicle, in any order.
            current_odometer: Live odometer reading, or None if unknown.
            primary_use: Declared use the gaps are judged against.
            now: Instant the live reading was taken.

        Returns:
            Extraction holding the ordered bookings, gaps and rental mileage.
        """
        result = GapExtraction(bookings=self.qualifying_bookings(bookings))

        previous: BookingMileageRecord | None = None
        for booking in result.bookings:
            rental_miles = booking.rental_miles
            if rental_miles is not None:
                result.rental_mileage += rental_miles

            if previous is not None and booking.start_odometer is not None:
                gap = self._build_gap(
                    previous=previous,
                    next_odometer=booking.start_odometer,
                    next_date=booking.start_date,
                    primary_use=primary_use,
                    next_booking_id=booking.booking_id,
                )
                result.gaps.append(gap)
                result.computed_gaps.append(gap)

            previous = booking

        if previous is not None and current_odometer is not None:
            trailing = self._build_gap(
                previous=previous,
                next_odometer=current_odometer,
                next_date=now,
                primary_use=primary_use,
                explanation=TRAILING_GAP_EXPLANATION,
            )
            result.computed_gaps.append(trailing)
            if trailing.flagged:
                result.gaps.append(trailing)

        logger.debug(
            "Mileage gaps extracted",
            bookings=len(result.bookings),
            gaps=len(result.gaps),
            flagged=sum(1 for g in result.gaps if g.flagged),
        )

        return result

    def classify(self, gap_miles: float, primary_use: UsageCategory) -> GapSeverity:
        """Classify a gap, escalating odometer decreases when configured."""
        if gap_miles < 0 and self.config.escalate_negative_gaps:
            return GapSeverity.VIOLATION
        return GapSeverity(self.policy.classify(gap_miles, primary_use))

    def _build_gap(
        self,
        previous: BookingMileageRecord,
        next_odometer: float,
        next_date: datetime,
        primary_use: UsageCategory,
        next_booking_id: str | None = None,
        explanation: str | None = None,
    ) -> MileageGap:
        # Qualifying bookings always carry an end odometer
        last_odometer = float(previous.end_odometer)  # type: ignore[arg-type]
        gap_miles = next_odometer - last_odometer
        severity = self.classify(gap_miles, primary_use)

        return MileageGap(
            booking_id=previous.booking_id,
            booking_code=previous.booking_code,
            last_odometer=last_odometer,
            last_date=previous.end_date,
            next_odometer=next_odometer,
            next_date=next_date,
            gap_miles=gap_miles,
            gap_days=days_between(previous.end_date, next_date),
            severity=severity,
            flagged=severity != GapSeverity.NORMAL,
            next_booking_id=next_booking_id,
            explanation=explanation,
        )


def create_gap_extractor(
    policy: SeverityPolicy,
    config: ExtractorConfig | None = None,
) -> GapExtractor:
    """Create a gap extractor.

    Args:
        policy: Severity lookup used to classify each gap.
        config: Optional extractor configuration.

    Returns:
        Configured GapExtractor.
    """
    return GapExtractor(policy=policy, config=config)
