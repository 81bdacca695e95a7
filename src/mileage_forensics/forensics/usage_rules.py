"""Usage rules: gap severity thresholds per declared vehicle use.

This module provides:
- The ``SeverityPolicy`` protocol the gap extractor classifies through
- ``UsageRule`` threshold sets per usage category
- ``UsageRulesTable``, the default threshold-table policy
- Loading of a rules table from a mapping or a JSON file

Thresholds are configuration, not code: callers may pass any object (or
plain function) satisfying ``SeverityPolicy`` into the analyzer.
"""

import json
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field, ValidationError, model_validator

from mileage_forensics.core.logging import get_logger
from mileage_forensics.forensics.types import GapSeverity, UsageCategory
from mileage_forensics.utils.exceptions import ConfigurationError

logger = get_logger(__name__)


# =============================================================================
# Policy Protocol
# =============================================================================


@runtime_checkable
class SeverityPolicy(Protocol):
    """Protocol for gap severity lookup."""

    def classify(self, gap_miles: float, primary_use: UsageCategory) -> GapSeverity:
        """Return the severity tier for a gap under a declared use."""
        ...


SeverityFunction = Callable[[float, UsageCategory], GapSeverity]


class FunctionPolicy:
    """Adapts a plain ``(gap_miles, primary_use) -> GapSeverity`` function."""

    def __init__(self, func: SeverityFunction):
        self._func = func

    def classify(self, gap_miles: float, primary_use: UsageCategory) -> GapSeverity:
        return GapSeverity(self._func(gap_miles, primary_use))


def as_policy(policy: SeverityPolicy | SeverityFunction) -> SeverityPolicy:
    """Wrap a bare callable so it satisfies ``SeverityPolicy``."""
    if isinstance(policy, SeverityPolicy):
        return policy
    if callable(policy):
        return FunctionPolicy(policy)
    raise ConfigurationError(f"Not a severity policy: {policy!r}")


# =============================================================================
# Threshold Table
# =============================================================================


class UsageRule(BaseModel):
    """Gap thresholds for one usage category.

    A gap of ``normal_max`` miles or less is NORMAL; up to ``warning_max``
    is WARNING; up to ``critical_max`` is CRITICAL; anything above is a
    VIOLATION of the declared use.
    """

    label: str = Field(default="", description="Display name of the declaration")
    normal_max: float = Field(ge=0, description="Largest gap treated as normal")
    warning_max: float = Field(ge=0, description="Largest gap treated as a warning")
    critical_max: float = Field(ge=0, description="Largest gap short of a violation")

    @model_validator(mode="after")
    def _check_order(self) -> "UsageRule":
        if not self.normal_max <= self.warning_max <= self.critical_max:
            raise ValueError(
                "thresholds must satisfy normal_max <= warning_max <= critical_max"
            )
        return self

    @property
    def max_gap(self) -> float:
        """Allowed miles between trips advertised for this declaration."""
        return self.normal_max

    def classify(self, gap_miles: float) -> GapSeverity:
        """Get the severity tier for a gap size."""
        if gap_miles <= self.normal_max:
            return GapSeverity.NORMAL
        elif gap_miles <= self.warning_max:
            return GapSeverity.WARNING
        elif gap_miles <= self.critical_max:
            return GapSeverity.CRITICAL
        else:
            return GapSeverity.VIOLATION


DEFAULT_USAGE_RULES: dict[UsageCategory, UsageRule] = {
    UsageCategory.RENTAL: UsageRule(
        label="Rental Only", normal_max=15, warning_max=50, critical_max=100
    ),
    UsageCategory.PERSONAL: UsageRule(
        label="Personal & Rental", normal_max=500, warning_max=750, critical_max=1000
    ),
    UsageCategory.BUSINESS: UsageRule(
        label="Business Use", normal_max=300, warning_max=500, critical_max=750
    ),
}


class UsageRulesTable(BaseModel):
    """Severity policy backed by a per-category threshold table."""

    rules: dict[UsageCategory, UsageRule] = Field(
        default_factory=lambda: dict(DEFAULT_USAGE_RULES)
    )

    @model_validator(mode="after")
    def _check_complete(self) -> "UsageRulesTable":
        missing = [c.value for c in UsageCategory if c not in self.rules]
        if missing:
            raise ValueError(f"missing usage rules for: {', '.join(missing)}")
        return self

    def get_rule(self, primary_use: UsageCategory) -> UsageRule:
        """Get the threshold set for a usage category."""
        return self.rules[UsageCategory.parse(primary_use)]

    def classify(self, gap_miles: float, primary_use: UsageCategory) -> GapSeverity:
        """Classify a gap under the declared use."""
        return self.get_rule(primary_use).classify(gap_miles)


def load_usage_rules(source: Mapping[str, Any] | Path | str | None = None) -> UsageRulesTable:
    """Build a rules table from a mapping or a JSON file.

    The mapping is keyed by usage category (``"Rental"``, ``"Personal"``,
    ``"Business"``); categories it omits keep their default thresholds.

    Args:
        source: Mapping of category to thresholds, a path to a JSON file
            holding one, or None for the defaults.

    Returns:
        Validated rules table.

    Raises:
        ConfigurationError: If the file cannot be read or the table is invalid.
    """
    if source is None:
        return UsageRulesTable()

    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot load usage rules from {path}: {e}") from e
    else:
        data = source

    if not isinstance(data, Mapping):
        raise ConfigurationError("Usage rules must be a mapping of category to thresholds")

    rules = dict(DEFAULT_USAGE_RULES)
    try:
        for key, value in data.items():
            rules[UsageCategory.parse(key)] = UsageRule.model_validate(value)
        table = UsageRulesTable(rules=rules)
    except (ValidationError, ValueError) as e:
        raise ConfigurationError(f"Invalid usage rules: {e}") from e

    logger.debug("usage_rules_loaded", categories=sorted(str(k) for k in data))
    return table
