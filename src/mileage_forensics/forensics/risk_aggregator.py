"""Risk Aggregator for mileage forensic summaries.

This module provides the MileageRiskAggregator that:
1. Totals unaccounted mileage across all gaps
2. Computes average and maximum gap size
3. Computes the compliance rate of gaps within tolerance
4. Determines the overall risk level and its insurance impact
"""

from collections.abc import Sequence
from dataclasses import dataclass

from pydantic import BaseModel, Field

from mileage_forensics.core.logging import get_logger
from mileage_forensics.forensics.types import (
    AnomalySeverity,
    GapSeverity,
    MileageAnomaly,
    MileageGap,
    RiskLevel,
)

logger = get_logger(__name__)


# Insurance impact narrative per risk level
INSURANCE_IMPACT: dict[RiskLevel, str] = {
    RiskLevel.CRITICAL: (
        "Coverage may be denied for claims. Mileage anomalies must be resolved "
        "before insurance will honor a claim on this vehicle."
    ),
    RiskLevel.HIGH: (
        "Claims will face additional scrutiny. Insurers may request documentation "
        "for every unexplained mileage gap."
    ),
    RiskLevel.MEDIUM: (
        "Minor impact on coverage. Maintain documentation of vehicle use between rentals."
    ),
    RiskLevel.LOW: (
        "No impact on insurance coverage. Mileage history is consistent with the declared use."
    ),
}


@dataclass
class RiskSummary:
    """Summary statistics reduced from gaps and anomalies."""

    unaccounted_mileage: float = 0.0
    average_gap_size: float = 0.0
    max_gap: float = 0.0
    total_gaps: int = 0
    flagged_gaps: int = 0
    anomaly_count: int = 0
    compliance_rate: float = 100.0
    risk_level: RiskLevel = RiskLevel.LOW
    insurance_impact: str = INSURANCE_IMPACT[RiskLevel.LOW]


class AggregatorConfig(BaseModel):
    """Configuration for risk aggregator."""

    critical_gap_limit: int = Field(
        default=2, ge=0, description="CRITICAL gaps tolerated before HIGH risk"
    )
    warning_gap_limit: int = Field(
        default=5, ge=0, description="WARNING gaps tolerated before MEDIUM risk"
    )


class MileageRiskAggregator:
    """Reduces gaps and anomalies into a risk summary.

    The reduction is pure: the same gaps and anomalies always produce the
    same summary, and neither input is modified.
    """

    def __init__(self, config: AggregatorConfig | None = None):
        """Initialize the risk aggregator.

        Args:
            config: Aggregator configuration.
        """
        self.config = config or AggregatorConfig()

    def aggregate(
        self,
        gaps: Sequence[MileageGap],
        anomalies: Sequence[MileageAnomaly],
    ) -> RiskSummary:
        """Summarize gaps and anomalies.

        Args:
            gaps: Surfaced mileage gaps.
            anomalies: Detected anomalies.

        Returns:
            Risk summary with totals, compliance rate and risk level.
        """
        sizes = [g.gap_miles for g in gaps]
        flagged = sum(1 for g in gaps if g.flagged)
        risk_level = self.determine_risk_level(gaps, anomalies)

        summary = RiskSummary(
            unaccounted_mileage=float(sum(sizes)),
            average_gap_size=sum(sizes) / len(sizes) if sizes else 0.0,
            max_gap=max(sizes) if sizes else 0.0,
            total_gaps=len(gaps),
            flagged_gaps=flagged,
            anomaly_count=len(anomalies),
            compliance_rate=self.calculate_compliance_rate(gaps),
            risk_level=risk_level,
            insurance_impact=INSURANCE_IMPACT[risk_level],
        )

        logger.debug(
            "Mileage risk aggregated",
            total_gaps=summary.total_gaps,
            flagged_gaps=summary.flagged_gaps,
            risk_level=risk_level.value,
        )

        return summary

    def calculate_compliance_rate(self, gaps: Sequence[MileageGap]) -> float:
        """Percentage of gaps within tolerance; 100 with no gaps."""
        if not gaps:
            return 100.0
        flagged = sum(1 for g in gaps if g.flagged)
        return 100 * (len(gaps) - flagged) / len(gaps)

    def determine_risk_level(
        self,
        gaps: Sequence[MileageGap],
        anomalies: Sequence[MileageAnomaly],
    ) -> RiskLevel:
        """Apply the risk rules in priority order; the first match wins."""
        if any(a.severity == AnomalySeverity.CRITICAL for a in anomalies):
            return RiskLevel.CRITICAL

        violations = sum(1 for g in gaps if g.severity == GapSeverity.VIOLATION)
        critical = sum(1 for g in gaps if g.severity == GapSeverity.CRITICAL)
        if violations > 0 or critical > self.config.critical_gap_limit:
            return RiskLevel.HIGH

        warnings = sum(1 for g in gaps if g.severity == GapSeverity.WARNING)
        if warnings > self.config.warning_gap_limit:
            return RiskLevel.MEDIUM

        return RiskLevel.LOW


def create_risk_aggregator(config: AggregatorConfig | None = None) -> MileageRiskAggregator:
    """Create a mileage risk aggregator.

    Args:
        config: Optional aggregator configuration.

    Returns:
        Configured MileageRiskAggregator.
    """
    return MileageRiskAggregator(config=config)
