"""
The monitoring agent: explainable single-reading analysis and batch analysis.

Key architectural decisions:
- Independent signals: classifier, trend and diagnosis risk never see each other
- Explainable: every interactive analysis records an ordered thinking trace
- Injectable history: status reporting reads an AnalysisHistory owned by the caller
- Deterministic: no model calls, no randomness; ids and clock are injected
"""

import asyncio
import threading
from collections import deque
from collections.abc import Iterable
from datetime import datetime, timedelta

import structlog
from pydantic import BaseModel, Field

from vitalsign.config import AgentProfileConfig, AppConfig
from vitalsign.domain.models import (
    Alert,
    AlertPriority,
    AnalysisResult,
    Measurement,
    MeasurementType,
    Patient,
)
from vitalsign.domain.reference import (
    NormalRange,
    format_normal_range,
    format_value,
    normal_range_for,
    type_info,
)
from vitalsign.services.classifier import classify
from vitalsign.services.composer import DecisionComposer, ThinkingTrace, as_utc, utc_now
from vitalsign.services.dedup import deduplicate_by_category
from vitalsign.services.risk import assess_risk
from vitalsign.services.trends import BaselineShiftTrend

logger = structlog.get_logger(__name__)


class StatusSnapshot(BaseModel):
    """Cumulative analysis counters; purely observational."""

    total_analyses: int = Field(ge=0)
    alerts_generated: int = Field(ge=0)
    average_confidence: float = Field(ge=0.0, le=1.0)


class AnalysisHistory:
    """
    Append-only log of analysis outcomes used for status reporting.

    Counters are cumulative; only the most recent results are retained for
    inspection. Safe to share between concurrent analyses.
    """

    def __init__(self, max_recent: int = 100) -> None:
        self._lock = threading.Lock()
        self._total = 0
        self._alerts = 0
        self._confidence_sum = 0.0
        self._recent: deque[tuple[datetime, AnalysisResult]] = deque(maxlen=max_recent)

    def record(self, result: AnalysisResult, at: datetime | None = None) -> None:
        with self._lock:
            self._total += 1
            self._confidence_sum += result.confidence
            if result.alert is not None:
                self._alerts += 1
            self._recent.append((as_utc(at) if at else utc_now(), result))

    @property
    def total_analyses(self) -> int:
        return self._total

    @property
    def alerts_generated(self) -> int:
        return self._alerts

    @property
    def average_confidence(self) -> float:
        return self._confidence_sum / self._total if self._total else 0.0

    def snapshot(self) -> StatusSnapshot:
        with self._lock:
            return StatusSnapshot(
                total_analyses=self._total,
                alerts_generated=self._alerts,
                average_confidence=self._confidence_sum / self._total if self._total else 0.0,
            )

    def recent(
        self, hours: float = 24, now: datetime | None = None
    ) -> list[tuple[datetime, AnalysisResult]]:
        """Retained results recorded within the last ``hours``."""
        cutoff = (as_utc(now) if now else utc_now()) - timedelta(hours=hours)
        with self._lock:
            return [(at, result) for at, result in self._recent if at >= cutoff]

    def __len__(self) -> int:
        return self._total


_PRIORITY_PREAMBLE: dict[AlertPriority, str] = {
    AlertPriority.CRITICAL: (
        "the situation is urgent and needs immediate action.\n\n"
        "🚨 Recommended immediate actions:\n"
    ),
    AlertPriority.HIGH: (
        "there is an abnormal finding that needs your attention soon.\n\n⚠️ Recommended care:\n"
    ),
    AlertPriority.MEDIUM: "some values need follow-up observation.\n\n📋 Recommended follow-up:\n",
    AlertPriority.LOW: "a routine follow-up is suggested.\n\n💡 Suggestion:\n",
}


class VitalSignAgent:
    """
    Orchestrates classification, trend analysis, risk assessment and decision.

    This is the main entry point the dashboard calls when a reading arrives,
    and when it wants a batch pass over recent readings.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        history: AnalysisHistory | None = None,
        composer: DecisionComposer | None = None,
        ranges: dict[MeasurementType, NormalRange] | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.history = history or AnalysisHistory(self.config.history.max_recent_results)
        self.composer = composer or DecisionComposer()
        self.ranges = ranges
        self.trend = BaselineShiftTrend(self.config.trend)
        self.logger = logger.bind(component="vital_sign_agent")
        self._is_running = False

    @property
    def profile(self) -> AgentProfileConfig:
        return self.config.agent

    @property
    def is_running(self) -> bool:
        return self._is_running

    def start(self) -> None:
        self._is_running = True
        self.logger.info("agent_started", agent=self.profile.name)

    def stop(self) -> None:
        self._is_running = False
        self.logger.info("agent_stopped", agent=self.profile.name)

    def introduce(self) -> str:
        capabilities = "\n".join(
            f"{i}. {capability}" for i, capability in enumerate(self.profile.capabilities, 1)
        )
        return (
            f'Hello! I am "{self.profile.name}", your {self.profile.role}.\n\n'
            f"My specialties include:\n{capabilities}\n\n"
            "I keep watching every patient's vital signs and will alert you as soon as "
            "something abnormal or worth attention shows up."
        )

    async def analyze_with_thinking(
        self,
        measurement: Measurement,
        patient: Patient,
        history: Iterable[Measurement],
        with_trace: bool = True,
    ) -> AnalysisResult:
        """
        Analyze one reading with full context.

        Returns an AnalysisResult whose alert is None when nothing is warranted.
        """
        trace = ThinkingTrace()
        info = type_info(measurement.type)

        trace.record(
            action="Receive measurement",
            observation=(
                f"Received {patient.name}'s {info.name} reading: {format_value(measurement)}"
            ),
            reasoning="Starting analysis of the newly uploaded reading",
        )

        trace.record(
            action="Look up patient background",
            observation=(
                f"{patient.name}, {patient.age}-year-old {patient.gender}, "
                f"diagnosis: {patient.diagnosis or 'none recorded'}"
            ),
            reasoning="The patient's diagnosis affects how the reading should be interpreted",
        )

        normal_range = normal_range_for(measurement.type, self.ranges)
        classification = classify(measurement, self.ranges)
        trace.record(
            action="Compare with normal range",
            observation=(
                f"Normal {info.name} range: "
                f"{format_normal_range(measurement.type, normal_range)}; current value is "
                f"{'within' if classification.in_range else 'outside'} the normal range"
            ),
            reasoning=(
                "Within range, but the patient's condition and trend still need consideration"
                if classification.in_range
                else "Outside the normal range, severity needs further evaluation"
            ),
        )

        trend = self.trend.analyze(measurement, history)
        trace.record(
            action="Analyze historical trend",
            observation=trend.observation,
            reasoning=trend.reasoning,
        )

        risk = assess_risk(measurement.type, patient.diagnosis)
        trace.record(
            action="Assess diagnosis-related risk",
            observation=risk.observation,
            reasoning=risk.reasoning,
        )

        decision = self.composer.decide(
            measurement, patient, classification.in_range, trend, risk
        )
        trace.record(
            action="Conclude and recommend",
            observation=(
                f"Classified as a {decision.priority.value} priority alert"
                if decision.alert
                else "Classified as normal, no alert needed"
            ),
            reasoning=decision.reasoning,
        )

        result = AnalysisResult(
            alert=decision.alert,
            thinking_process=trace.steps if with_trace else [],
            priority=decision.priority,
            confidence=decision.confidence,
            reasoning=decision.reasoning,
        )
        self.history.record(result)

        self.logger.info(
            "analysis_completed",
            measurement_id=measurement.id,
            patient_id=patient.id,
            measurement_type=measurement.type.value,
            severity=decision.severity,
            alert_generated=decision.alert is not None,
            confidence=decision.confidence,
        )
        return result

    async def analyze_all_measurements(
        self,
        measurements: Iterable[Measurement],
        patients: Iterable[Patient],
        now: datetime | None = None,
    ) -> list[Alert]:
        """
        Batch analysis over recent readings.

        Only readings inside the configured window are analyzed, capped at the
        configured count, and the resulting alerts are deduplicated per
        (patient, category).
        """
        all_readings = list(measurements)
        patient_map = {p.id: p for p in patients}
        now = as_utc(now) if now else utc_now()
        cutoff = now - timedelta(hours=self.config.batch.recent_window_hours)

        recent = [m for m in all_readings if m.measured_at > cutoff]
        selected = recent[: self.config.batch.max_measurements]

        async with asyncio.TaskGroup() as task_group:
            tasks = [
                task_group.create_task(
                    self.analyze_with_thinking(
                        measurement,
                        patient_map[measurement.patient_id],
                        [m for m in all_readings if m.patient_id == measurement.patient_id],
                        with_trace=False,
                    )
                )
                for measurement in selected
                if measurement.patient_id in patient_map
            ]

        alerts = [alert for task in tasks if (alert := task.result().alert) is not None]
        unique = deduplicate_by_category(alerts)

        self.logger.info(
            "batch_analysis_completed",
            candidates=len(recent),
            analyzed=len(tasks),
            raw_alerts=len(alerts),
            alerts=len(unique),
        )
        return unique

    def personalized_suggestion(
        self, alert: Alert, patient: Patient, greeting_index: int = 0
    ) -> str:
        """Wrap an alert's suggestion in a priority-appropriate note for the nurse."""
        greetings = (
            f"Hello, regarding {patient.name}: ",
            f"Please note that for {patient.name}, ",
            f"The latest data for {patient.name} shows that ",
        )
        greeting = greetings[greeting_index % len(greetings)]
        return (
            f"{greeting}{_PRIORITY_PREAMBLE[alert.priority]}{alert.suggestion}"
            f"\n\nIf you have any questions I can analyze more information for you. "
            f"-- {self.profile.name}"
        )

    def status_report(self) -> str:
        snapshot = self.history.snapshot()
        rule = "━" * 24
        return (
            f'\n📊 Agent "{self.profile.name}" status report\n'
            f"{rule}\n"
            f"🔍 Readings analyzed: {snapshot.total_analyses}\n"
            f"🔔 Alerts generated: {snapshot.alerts_generated}\n"
            f"📈 Average confidence: {snapshot.average_confidence * 100:.1f}%\n"
            f"⏰ Status: {'monitoring' if self._is_running else 'standby'}\n"
            f"{rule}"
        )
