"""Mileage Forensic Analyzer: the engine's entry point.

This module provides the MileageForensicAnalyzer that:
1. Validates the booking list and declared use
2. Extracts mileage gaps through the injected severity policy
3. Detects anomalies over the same bookings and gaps
4. Aggregates a risk summary and generates recommendations

The analyzer holds no state between calls. Every input it depends on,
including the current instant, is passed in by the caller, so identical
inputs always produce identical output.
"""

import math
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from mileage_forensics.config.settings import Settings, get_settings
from mileage_forensics.core.logging import LogContext, get_logger, log_exception
from mileage_forensics.forensics.anomaly_detector import DetectorConfig, MileageAnomalyDetector
from mileage_forensics.forensics.gap_extractor import ExtractorConfig, GapExtractor
from mileage_forensics.forensics.recommendations import (
    RecommendationGenerator,
    RecommenderConfig,
)
from mileage_forensics.forensics.report import render_text_report
from mileage_forensics.forensics.risk_aggregator import AggregatorConfig, MileageRiskAggregator
from mileage_forensics.forensics.types import (
    BookingMileageRecord,
    ForensicAnalysis,
    UsageCategory,
)
from mileage_forensics.forensics.usage_rules import (
    SeverityFunction,
    SeverityPolicy,
    UsageRulesTable,
    as_policy,
    load_usage_rules,
)
from mileage_forensics.utils.exceptions import InvalidInputError

logger = get_logger(__name__)


class AnalyzerConfig(BaseModel):
    """Configuration for the forensic analyzer and its components."""

    extractor: ExtractorConfig = Field(default_factory=ExtractorConfig)
    detector: DetectorConfig = Field(default_factory=DetectorConfig)
    aggregator: AggregatorConfig = Field(default_factory=AggregatorConfig)
    recommender: RecommenderConfig = Field(default_factory=RecommenderConfig)
    detect_pattern_shift: bool = Field(
        default=False, description="Check the latest gaps for a usage-pattern shift"
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> "AnalyzerConfig":
        """Build analyzer configuration from application settings."""
        forensics = settings.forensics
        return cls(
            extractor=ExtractorConfig(escalate_negative_gaps=forensics.escalate_negative_gaps),
            detector=DetectorConfig(
                max_plausible_miles_per_day=forensics.max_plausible_miles_per_day,
                pattern_shift_ratio=forensics.pattern_shift_ratio,
                min_historical_samples=forensics.min_historical_samples,
                min_recent_samples=forensics.min_recent_samples,
                flag_excessive_gaps=forensics.flag_excessive_gaps,
            ),
            aggregator=AggregatorConfig(
                critical_gap_limit=forensics.critical_gap_limit,
                warning_gap_limit=forensics.warning_gap_limit,
            ),
            recommender=RecommenderConfig(
                rental_average_gap_threshold=forensics.rental_average_gap_threshold,
                flagged_gap_threshold=forensics.flagged_gap_threshold,
                compliance_floor=forensics.compliance_floor,
            ),
            detect_pattern_shift=forensics.detect_pattern_shift,
        )


class MileageForensicAnalyzer:
    """Reconstructs a vehicle's mileage timeline into a forensic risk report.

    Example:
        ```python
        analyzer = MileageForensicAnalyzer(policy=load_usage_rules())

        analysis = analyzer.analyze(
            bookings=records,
            current_odometer=48_210,
            primary_use="Rental",
            now=datetime.now(UTC),
            vehicle_id="car_123",
        )

        print(f"Risk: {analysis.risk_level.value}")
        print(analyzer.render_report(analysis))
        ```
    """

    def __init__(
        self,
        policy: SeverityPolicy | SeverityFunction | None = None,
        config: AnalyzerConfig | None = None,
    ):
        """Initialize the analyzer.

        Args:
            policy: Gap severity lookup; defaults to the built-in usage rules.
            config: Analyzer configuration.
        """
        self.policy = as_policy(policy) if policy is not None else UsageRulesTable()
        self.config = config or AnalyzerConfig()

        self.extractor = GapExtractor(policy=self.policy, config=self.config.extractor)
        self.detector = MileageAnomalyDetector(config=self.config.detector)
        self.aggregator = MileageRiskAggregator(config=self.config.aggregator)
        self.recommender = RecommendationGenerator(
            config=self.config.recommender,
            rules=self.policy if isinstance(self.policy, UsageRulesTable) else None,
        )

    def analyze(
        self,
        bookings: Iterable[BookingMileageRecord | Mapping[str, Any]] | None,
        current_odometer: float | None,
        primary_use: UsageCategory | str | None,
        now: datetime,
        vehicle_id: str | None = None,
    ) -> ForensicAnalysis:
        """Run the forensic analysis for one vehicle.

        Args:
            bookings: Every booking for the vehicle, in any order. Items may
                be records or mappings in the booking subsystem's shape.
            current_odometer: Live odometer reading.
            primary_use: The vehicle's declared use.
            now: Instant of the live odometer reading.
            vehicle_id: Optional identifier, used only for logging.

        Returns:
            The complete forensic analysis.

        Raises:
            InvalidInputError: If the booking list is missing or the declared
                use is unknown.

        Errors raised by the severity policy are logged and propagate
        unchanged.
        """
        if bookings is None:
            raise InvalidInputError("Booking list is required")
        if isinstance(bookings, (str, bytes, Mapping)) or not isinstance(bookings, Iterable):
            raise InvalidInputError(
                f"Booking list must be a sequence, got {type(bookings).__name__}"
            )

        category = UsageCategory.parse(primary_use)
        odometer = self._coerce_odometer(current_odometer)

        with LogContext(vehicle_id=vehicle_id):
            records = self._coerce_records(bookings)

            try:
                extraction = self.extractor.extract(
                    bookings=records,
                    current_odometer=odometer,
                    primary_use=category,
                    now=now,
                )
            except Exception as e:
                log_exception(logger, e, stage="gap_extraction", primary_use=category.value)
                raise

            anomalies = self.detector.detect_anomalies(
                bookings=extraction.bookings,
                gaps=extraction.computed_gaps,
            )
            if self.config.detect_pattern_shift:
                between_bookings = [
                    g for g in extraction.computed_gaps if g.next_booking_id is not None
                ]
                shift = self.detector.detect_pattern_shift_in_gaps(between_bookings)
                if shift is not None:
                    anomalies.append(shift)

            summary = self.aggregator.aggregate(extraction.gaps, anomalies)
            recommendations = self.recommender.generate(summary, category)

            analysis = ForensicAnalysis(
                primary_use=category,
                gaps=extraction.gaps,
                anomalies=anomalies,
                total_mileage=odometer if odometer is not None else 0.0,
                rental_mileage=extraction.rental_mileage,
                unaccounted_mileage=summary.unaccounted_mileage,
                average_gap_size=summary.average_gap_size,
                max_gap=summary.max_gap,
                compliance_rate=summary.compliance_rate,
                risk_level=summary.risk_level,
                insurance_impact=summary.insurance_impact,
                recommendations=recommendations,
            )

            logger.info(
                "mileage_analysis_completed",
                primary_use=category.value,
                bookings=len(extraction.bookings),
                gaps=analysis.total_gaps,
                flagged_gaps=analysis.flagged_gaps,
                anomalies=len(anomalies),
                risk_level=analysis.risk_level.value,
            )

        return analysis

    def render_report(self, analysis: ForensicAnalysis, vehicle_label: str | None = None) -> str:
        """Render an analysis as a plain-text report."""
        return render_text_report(analysis, vehicle_label=vehicle_label)

    def _coerce_records(
        self, bookings: Iterable[BookingMileageRecord | Mapping[str, Any]]
    ) -> list[BookingMileageRecord]:
        records: list[BookingMileageRecord] = []
        for index, item in enumerate(bookings):
            if isinstance(item, BookingMileageRecord):
                records.append(item)
                continue
            try:
                records.append(BookingMileageRecord.model_validate(item))
            except ValidationError as e:
                # Malformed records never abort the analysis
                logger.warning(
                    "booking_record_skipped",
                    index=index,
                    errors=e.error_count(),
                )
        return records

    def _coerce_odometer(self, value: float | None) -> float | None:
        if value is None:
            return None
        try:
            odometer = float(value)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Current odometer must be a number, got {value!r}") from e
        if not math.isfinite(odometer):
            logger.warning("current_odometer_ignored", value=str(value))
            return None
        return odometer


def create_mileage_analyzer(
    settings: Settings | None = None,
    policy: SeverityPolicy | SeverityFunction | None = None,
) -> MileageForensicAnalyzer:
    """Create an analyzer configured from application settings.

    Args:
        settings: Settings to use (default: global settings).
        policy: Severity policy overriding the settings' usage-rules table.

    Returns:
        Configured MileageForensicAnalyzer.
    """
    settings = settings or get_settings()
    if policy is None:
        policy = load_usage_rules(settings.forensics.usage_rules_path)
    return MileageForensicAnalyzer(policy=policy, config=AnalyzerConfig.from_settings(settings))
