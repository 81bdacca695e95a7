"""Mileage forensics: gap extraction, anomaly detection and risk scoring."""

from mileage_forensics.forensics.analyzer import (
    AnalyzerConfig,
    MileageForensicAnalyzer,
    create_mileage_analyzer,
)
from mileage_forensics.forensics.anomaly_detector import (
    ANOMALY_TYPE_SEVERITY,
    DetectorConfig,
    MileageAnomalyDetector,
    create_anomaly_detector,
)
from mileage_forensics.forensics.declarations import (
    DeclarationFit,
    evaluate_declarations,
    is_non_compliant,
    suggest_declarations,
)
from mileage_forensics.forensics.gap_extractor import (
    TRAILING_GAP_EXPLANATION,
    ExtractorConfig,
    GapExtraction,
    GapExtractor,
    create_gap_extractor,
    days_between,
)
from mileage_forensics.forensics.recommendations import (
    RecommendationGenerator,
    RecommenderConfig,
    create_recommendation_generator,
)
from mileage_forensics.forensics.report import ReportSection, render_text_report
from mileage_forensics.forensics.risk_aggregator import (
    INSURANCE_IMPACT,
    AggregatorConfig,
    MileageRiskAggregator,
    RiskSummary,
    create_risk_aggregator,
)
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
from mileage_forensics.forensics.usage_rules import (
    DEFAULT_USAGE_RULES,
    FunctionPolicy,
    SeverityPolicy,
    UsageRule,
    UsageRulesTable,
    as_policy,
    load_usage_rules,
)

__all__ = [
    # Analyzer
    "MileageForensicAnalyzer",
    "create_mileage_analyzer",
    "AnalyzerConfig",
    # Types
    "BookingMileageRecord",
    "MileageGap",
    "MileageAnomaly",
    "ForensicAnalysis",
    "UsageCategory",
    "GapSeverity",
    "AnomalyType",
    "AnomalySeverity",
    "RiskLevel",
    # Usage Rules
    "SeverityPolicy",
    "FunctionPolicy",
    "UsageRule",
    "UsageRulesTable",
    "DEFAULT_USAGE_RULES",
    "as_policy",
    "load_usage_rules",
    # Gap Extractor
    "GapExtractor",
    "create_gap_extractor",
    "ExtractorConfig",
    "GapExtraction",
    "TRAILING_GAP_EXPLANATION",
    "days_between",
    # Anomaly Detector
    "MileageAnomalyDetector",
    "create_anomaly_detector",
    "DetectorConfig",
    "ANOMALY_TYPE_SEVERITY",
    # Risk Aggregator
    "MileageRiskAggregator",
    "create_risk_aggregator",
    "AggregatorConfig",
    "RiskSummary",
    "INSURANCE_IMPACT",
    # Recommendations
    "RecommendationGenerator",
    "create_recommendation_generator",
    "RecommenderConfig",
    # Declarations
    "DeclarationFit",
    "evaluate_declarations",
    "suggest_declarations",
    "is_non_compliant",
    # Report
    "ReportSection",
    "render_text_report",
]
