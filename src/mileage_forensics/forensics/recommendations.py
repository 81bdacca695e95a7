"""Recommendation Generator for mileage forensic results.

Turns a risk summary into advisory strings for the host. Each heuristic is
evaluated independently; every one that applies contributes a
recommendation.
"""

from pydantic import BaseModel, Field

from mileage_forensics.forensics.declarations import suggest_declarations
from mileage_forensics.forensics.risk_aggregator import RiskSummary
from mileage_forensics.forensics.types import UsageCategory
from mileage_forensics.forensics.usage_rules import UsageRulesTable


class RecommenderConfig(BaseModel):
    """Configuration for recommendation generator."""

    rental_average_gap_threshold: float = Field(
        default=30.0, ge=0, description="Average gap above which rental-only hosts should redeclare"
    )
    flagged_gap_threshold: int = Field(
        default=3, ge=0, description="Flagged gaps above which every gap must be documented"
    )
    compliance_floor: float = Field(
        default=80.0, ge=0, le=100, description="Compliance rate below which logging must improve"
    )


class RecommendationGenerator:
    """Generates host guidance from a mileage risk summary."""

    def __init__(
        self,
        config: RecommenderConfig | None = None,
        rules: UsageRulesTable | None = None,
    ):
        """Initialize the recommendation generator.

        Args:
            config: Recommender configuration.
            rules: Rules table used to name declarations that would fit. When
                None, the suggestion falls back to generic wording.
        """
        self.config = config or RecommenderConfig()
        self.rules = rules

    def generate(self, summary: RiskSummary, primary_use: UsageCategory) -> list[str]:
        """Build the ordered list of recommendations.

        Args:
            summary: Aggregated gap and anomaly statistics.
            primary_use: The vehicle's declared use.

        Returns:
            Recommendation strings, most urgent heuristics first.
        """
        recommendations: list[str] = []

        if (
            primary_use == UsageCategory.RENTAL
            and summary.average_gap_size > self.config.rental_average_gap_threshold
        ):
            recommendations.append(self._declaration_advice(summary.average_gap_size))

        if summary.anomaly_count > 0:
            recommendations.append(
                f"Resolve {summary.anomaly_count} mileage anomal"
                f"{'y' if summary.anomaly_count == 1 else 'ies'} immediately; "
                "unresolved anomalies put insurance coverage at risk."
            )

        if summary.flagged_gaps > self.config.flagged_gap_threshold:
            recommendations.append(
                f"Document the cause of every mileage gap; {summary.flagged_gaps} gaps "
                "exceed the tolerance for the declared use."
            )

        if summary.compliance_rate < self.config.compliance_floor:
            recommendations.append(
                f"Improve trip logging: only {summary.compliance_rate:.0f}% of gaps are "
                "within tolerance. Record odometer readings at every pickup and return."
            )

        if not recommendations and summary.compliance_rate == 100:
            recommendations.append(
                "Excellent mileage compliance. Keep recording accurate odometer readings."
            )

        return recommendations

    def _declaration_advice(self, average_gap: float) -> str:
        prefix = f"Average gap of {average_gap:,.0f} miles exceeds rental-only use"
        if self.rules is None:
            return f"{prefix}; consider a more permissive declaration such as Personal or Business."

        fits = suggest_declarations(average_gap, UsageCategory.RENTAL, self.rules)
        if fits:
            labels = " or ".join(f.label for f in fits)
            return f"{prefix}; consider updating the declaration to {labels}."
        return (
            f"{prefix} and no current declaration covers this usage; "
            "document off-platform use between rentals."
        )


def create_recommendation_generator(
    config: RecommenderConfig | None = None,
    rules: UsageRulesTable | None = None,
) -> RecommendationGenerator:
    """Create a recommendation generator.

    Args:
        config: Optional recommender configuration.
        rules: Optional rules table for declaration suggestions.

    Returns:
        Configured RecommendationGenerator.
    """
    return RecommendationGenerator(config=config, rules=rules)
