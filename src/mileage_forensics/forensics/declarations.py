"""Declaration fit checks for a vehicle's declared primary use.

Compares a vehicle's average mileage gap against the gap allowance of each
usage declaration, so hosts can see which declaration their actual use fits.
"""

from dataclasses import dataclass
from typing import Any

from mileage_forensics.forensics.types import UsageCategory
from mileage_forensics.forensics.usage_rules import UsageRulesTable


@dataclass
class DeclarationFit:
    """How one usage declaration fits a vehicle's observed gaps."""

    category: UsageCategory
    label: str
    max_gap: float
    is_current: bool
    will_comply: bool

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "category": self.category.value,
            "label": self.label,
            "max_gap": self.max_gap,
            "is_current": self.is_current,
            "will_comply": self.will_comply,
        }


def is_non_compliant(
    average_gap: float,
    category: UsageCategory,
    rules: UsageRulesTable | None = None,
) -> bool:
    """Whether the average gap exceeds the declaration's allowance."""
    rules = rules or UsageRulesTable()
    return average_gap > rules.get_rule(category).max_gap


def evaluate_declarations(
    average_gap: float,
    current: UsageCategory,
    rules: UsageRulesTable | None = None,
) -> list[DeclarationFit]:
    """Check every declaration against a vehicle's average gap.

    A declaration only counts as a fit when the vehicle has measurable
    gaps (``average_gap > 0``) that stay within its allowance.

    Args:
        average_gap: Average miles between trips.
        current: The vehicle's current declaration.
        rules: Rules table supplying the allowances (defaults if None).

    Returns:
        One entry per usage category, in declaration order.
    """
    rules = rules or UsageRulesTable()
    current = UsageCategory.parse(current)

    fits = []
    for category in UsageCategory:
        rule = rules.get_rule(category)
        fits.append(
            DeclarationFit(
                category=category,
                label=rule.label or category.value,
                max_gap=rule.max_gap,
                is_current=category == current,
                will_comply=0 < average_gap <= rule.max_gap,
            )
        )
    return fits


def suggest_declarations(
    average_gap: float,
    current: UsageCategory,
    rules: UsageRulesTable | None = None,
) -> list[DeclarationFit]:
    """Declarations other than the current one that the vehicle would fit."""
    return [
        fit
        for fit in evaluate_declarations(average_gap, current, rules)
        if fit.will_comply and not fit.is_current
    ]
