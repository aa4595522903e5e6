"""
Decision composition: severity scoring, priority mapping and alert synthesis.

Severity is an integer accumulator:

    +2  reading outside its normal range
    +2  high diagnosis risk (+1 for medium)
    +1  trend direction is not stable

A critical-value override forces severity to 5 and replaces the reasoning
entirely. Severity 0 is the only outcome that produces no alert.
"""

import uuid
from collections.abc import Callable
from datetime import UTC, datetime

import structlog
from pydantic import BaseModel, ConfigDict

from vitalsign.domain.models import (
    Alert,
    AlertCategory,
    AlertPriority,
    Measurement,
    Patient,
    ThinkingStep,
)
from vitalsign.domain.reference import (
    IMMEDIATE_ACTIONS,
    TRACKING_ITEM,
    TYPE_CHECKLISTS,
    format_value,
    type_info,
)
from vitalsign.services.classifier import check_critical_values
from vitalsign.services.risk import RiskAssessment
from vitalsign.services.trends import TrendAssessment

logger = structlog.get_logger(__name__)

IdFactory = Callable[[str], str]
Clock = Callable[[], datetime]

CRITICAL_SEVERITY = 5
MAX_CONFIDENCE = 0.95

NO_ALERT_REASONING = "Values are normal, no alert needed"


def new_id(prefix: str) -> str:
    """Unique identifier such as ``alert-3f2a...``."""
    return f"{prefix}-{uuid.uuid4().hex}"


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(moment: datetime) -> datetime:
    """Naive datetimes are taken to be UTC, matching Measurement.measured_at."""
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=UTC)


def severity_to_priority(severity: int) -> AlertPriority | None:
    """Map a severity score to a priority tier; None means no alert."""
    if severity >= 4:
        return AlertPriority.CRITICAL
    if severity >= 3:
        return AlertPriority.HIGH
    if severity >= 2:
        return AlertPriority.MEDIUM
    if severity >= 1:
        return AlertPriority.LOW
    return None


def confidence_for(severity: int) -> float:
    """Monotonically non-decreasing in severity, capped at 0.95."""
    return round(min(MAX_CONFIDENCE, 0.6 + severity * 0.1), 2)


def build_suggestion(measurement: Measurement, priority: AlertPriority) -> str:
    """Numbered checklist: immediate actions, type-specific checks, then tracking."""
    items = [*IMMEDIATE_ACTIONS[priority], *TYPE_CHECKLISTS.get(measurement.type, ())]
    if priority is not AlertPriority.LOW:
        items.append(TRACKING_ITEM)
    return "\n".join(f"{i}. {item}" for i, item in enumerate(items, 1))


def build_title(measurement: Measurement, patient: Patient, priority: AlertPriority) -> str:
    urgency = {AlertPriority.CRITICAL: "🚨 ", AlertPriority.HIGH: "⚠️ "}.get(priority, "")
    return f"{urgency}{patient.name} {type_info(measurement.type).name} abnormal"


def build_message(measurement: Measurement, patient: Patient, reasoning: str) -> str:
    info = type_info(measurement.type)
    return (
        f"{patient.name} (room {patient.room_number}, bed {patient.bed_number}) "
        f"{info.name} reading: {format_value(measurement)}.\n\n"
        f"Analysis: {reasoning}\n\n"
        f"Diagnosis: {patient.diagnosis}"
    )


class Decision(BaseModel):
    """Outcome of merging classifier, trend and risk signals."""

    model_config = ConfigDict(frozen=True)

    alert: Alert | None
    priority: AlertPriority
    confidence: float
    reasoning: str
    severity: int


class DecisionComposer:
    """
    Merges the independent signals into zero or one alert.

    Identifier generation and the clock are injected so results are
    reproducible in tests.
    """

    def __init__(self, id_factory: IdFactory = new_id, clock: Clock = utc_now) -> None:
        self.id_factory = id_factory
        self.clock = clock
        self.logger = logger.bind(component="decision_composer")

    def score(
        self, in_range: bool, trend: TrendAssessment, risk: RiskAssessment
    ) -> tuple[int, list[str]]:
        """Additive severity score plus the reasons that contributed to it."""
        severity = 0
        reasons: list[str] = []

        if not in_range:
            severity += 2
            reasons.append("Value is outside the normal range")

        if risk.risk_level == "high":
            severity += 2
            reasons.append("Patient diagnosis increases the risk")
        elif risk.risk_level == "medium":
            severity += 1
            reasons.append("Patient diagnosis adds contextual risk")

        if trend.direction != "stable":
            severity += 1
            reasons.append(f"Readings are trending {trend.direction}")

        return severity, reasons

    def decide(
        self,
        measurement: Measurement,
        patient: Patient,
        in_range: bool,
        trend: TrendAssessment,
        risk: RiskAssessment,
    ) -> Decision:
        severity, reasons = self.score(in_range, trend, risk)
        reasoning = "; ".join(reasons)

        override = check_critical_values(measurement)
        if override is not None:
            severity = CRITICAL_SEVERITY
            reasoning = override

        confidence = confidence_for(severity)
        priority = severity_to_priority(severity)

        if priority is None:
            return Decision(
                alert=None,
                priority=AlertPriority.LOW,
                confidence=confidence,
                reasoning=NO_ALERT_REASONING,
                severity=severity,
            )

        alert = Alert(
            id=self.id_factory("alert"),
            patient_id=patient.id,
            measurement_id=measurement.id,
            category=AlertCategory.ABNORMAL if severity >= 3 else AlertCategory.TREND,
            priority=priority,
            title=build_title(measurement, patient, priority),
            message=build_message(measurement, patient, reasoning),
            suggestion=build_suggestion(measurement, priority),
            created_at=self.clock(),
        )

        self.logger.info(
            "alert_composed",
            alert_id=alert.id,
            patient_id=patient.id,
            priority=priority.value,
            category=alert.category.value,
            severity=severity,
            critical_override=override is not None,
        )

        return Decision(
            alert=alert,
            priority=priority,
            confidence=confidence,
            reasoning=reasoning,
            severity=severity,
        )


class ThinkingTrace:
    """Records decision steps in strict order, numbered from 1."""

    def __init__(self) -> None:
        self._steps: list[ThinkingStep] = []

    def record(self, action: str, observation: str, reasoning: str) -> ThinkingStep:
        step = ThinkingStep(
            step=len(self._steps) + 1,
            action=action,
            observation=observation,
            reasoning=reasoning,
        )
        self._steps.append(step)
        return step

    @property
    def steps(self) -> list[ThinkingStep]:
        return list(self._steps)

    def __len__(self) -> int:
        return len(self._steps)
