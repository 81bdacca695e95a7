"""Plain-text rendering of a forensic analysis.

Used for audit trails and support tooling. Rendering is deterministic: the
report depends only on the analysis and the optional vehicle label.
"""

from enum import Enum

from mileage_forensics.forensics.types import ForensicAnalysis

RULE_WIDTH = 60


class ReportSection(str, Enum):
    """Sections of the text report, in rendering order."""

    HEADER = "header"
    MILEAGE_TOTALS = "mileage_totals"
    COMPLIANCE_SUMMARY = "compliance_summary"
    INSURANCE_IMPACT = "insurance_impact"
    RECOMMENDATIONS = "recommendations"
    ANOMALIES = "anomalies"


SECTION_TITLES: dict[ReportSection, str] = {
    ReportSection.HEADER: "MILEAGE FORENSIC REPORT",
    ReportSection.MILEAGE_TOTALS: "Mileage Totals",
    ReportSection.COMPLIANCE_SUMMARY: "Compliance & Risk",
    ReportSection.INSURANCE_IMPACT: "Insurance Impact",
    ReportSection.RECOMMENDATIONS: "Recommendations",
    ReportSection.ANOMALIES: "Anomalies",
}


def _miles(value: float) -> str:
    return f"{value:,.0f} mi"


def _section(title: str, lines: list[str]) -> list[str]:
    return [title, "-" * len(title), *lines, ""]


def render_text_report(analysis: ForensicAnalysis, vehicle_label: str | None = None) -> str:
    """Render an analysis as a plain-text report.

    Args:
        analysis: The analysis to render.
        vehicle_label: Optional vehicle name shown in the header.

    Returns:
        Report text, sections separated by blank lines.
    """
    header = [
        "=" * RULE_WIDTH,
        SECTION_TITLES[ReportSection.HEADER],
    ]
    if vehicle_label:
        header.append(f"Vehicle: {vehicle_label}")
    header.extend(
        [
            f"Declared use: {analysis.primary_use.value}",
            "=" * RULE_WIDTH,
            "",
        ]
    )

    totals = _section(
        SECTION_TITLES[ReportSection.MILEAGE_TOTALS],
        [
            f"Current odometer:     {_miles(analysis.total_mileage)}",
            f"Rental mileage:       {_miles(analysis.rental_mileage)}",
            f"Unaccounted mileage:  {_miles(analysis.unaccounted_mileage)}",
            f"Average gap:          {_miles(analysis.average_gap_size)}",
            f"Largest gap:          {_miles(analysis.max_gap)}",
        ],
    )

    compliance = _section(
        SECTION_TITLES[ReportSection.COMPLIANCE_SUMMARY],
        [
            f"Gaps analyzed:        {analysis.total_gaps}",
            f"Gaps flagged:         {analysis.flagged_gaps}",
            f"Compliance rate:      {analysis.compliance_rate:.1f}%",
            f"Risk level:           {analysis.risk_level.value}",
        ],
    )

    impact = _section(
        SECTION_TITLES[ReportSection.INSURANCE_IMPACT],
        [analysis.insurance_impact],
    )

    recommendations = _section(
        SECTION_TITLES[ReportSection.RECOMMENDATIONS],
        [f"{i}. {r}" for i, r in enumerate(analysis.recommendations, start=1)] or ["None"],
    )

    anomaly_lines = []
    for anomaly in analysis.anomalies:
        line = f"[{anomaly.severity.value}] {anomaly.anomaly_type.value}: {anomaly.description}"
        if anomaly.requires_investigation:
            line += " (investigation required)"
        anomaly_lines.append(line)
    anomalies = _section(
        SECTION_TITLES[ReportSection.ANOMALIES],
        anomaly_lines or ["No anomalies detected"],
    )

    lines = header + totals + compliance + impact + recommendations + anomalies
    return "\n".join(lines).rstrip() + "\n"
