"""
Services for the alert decision engine.

This package contains the analysis pipeline (classification, trend, risk,
decision), the screening and reminder rules, alert deduplication, the alert
workflow and the ward monitoring service that ties them together.
"""

from .agent import AnalysisHistory, VitalSignAgent
from .classifier import Classification, check_critical_values, check_normal_range, classify
from .composer import DecisionComposer, ThinkingTrace
from .dedup import deduplicate_by_category, deduplicate_by_title
from .measurements import MeasurementStore, Result, parse_measurement
from .risk import RiskAssessment, assess_risk
from .screening import RuleScreener
from .trends import BaselineShiftTrend, SplitWindowTrend, TrendAssessment, TrendShift
from .ward_monitoring import UnknownPatientError, WardMonitoringService
from .workflow import AlertWorkflow

__all__ = [
    "AlertWorkflow",
    "AnalysisHistory",
    "BaselineShiftTrend",
    "Classification",
    "DecisionComposer",
    "MeasurementStore",
    "Result",
    "RiskAssessment",
    "RuleScreener",
    "SplitWindowTrend",
    "ThinkingTrace",
    "TrendAssessment",
    "TrendShift",
    "UnknownPatientError",
    "VitalSignAgent",
    "WardMonitoringService",
    "assess_risk",
    "check_critical_values",
    "check_normal_range",
    "classify",
    "deduplicate_by_category",
    "deduplicate_by_title",
    "parse_measurement",
]
