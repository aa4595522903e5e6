"""
Rule-based full-sweep screening.

Each reading is walked down its type's tiered screening ladder. A reading
that trips no rule may still raise a trend alert through the split-window
strategy. The sweep deduplicates by (patient, category, title) and returns the
alerts critical first.

Follow-up reminders for overdue measurements are synthesized here as well.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime

import structlog

from vitalsign.config import ReminderConfig, TrendConfig
from vitalsign.domain.models import (
    Alert,
    AlertCategory,
    AlertPriority,
    Measurement,
    MeasurementType,
    Patient,
)
from vitalsign.domain.reference import SCREENING_RULES, format_value, type_info
from vitalsign.services.composer import Clock, IdFactory, as_utc, new_id, utc_now
from vitalsign.services.dedup import deduplicate_by_title
from vitalsign.services.trends import SplitWindowTrend

logger = structlog.get_logger(__name__)


class RuleScreener:
    """Tiered per-type rules plus the split-window trend check."""

    def __init__(
        self,
        trend_config: TrendConfig | None = None,
        reminder_config: ReminderConfig | None = None,
        id_factory: IdFactory = new_id,
        clock: Clock = utc_now,
    ) -> None:
        self.trend = SplitWindowTrend(trend_config)
        self.reminder_config = reminder_config or ReminderConfig()
        self.id_factory = id_factory
        self.clock = clock
        self.logger = logger.bind(component="rule_screener")

    def screen_measurement(
        self,
        measurement: Measurement,
        patient: Patient,
        history: Iterable[Measurement],
    ) -> Alert | None:
        """Return the abnormal alert for the first matching rule, else a trend alert, else None."""
        info = type_info(measurement.type)

        for rule in SCREENING_RULES.get(measurement.type, ()):
            if not rule.matches(measurement):
                continue
            return Alert(
                id=self.id_factory("alert"),
                patient_id=patient.id,
                measurement_id=measurement.id,
                category=AlertCategory.ABNORMAL,
                priority=rule.priority(measurement),
                title=rule.title,
                message=(
                    f"{patient.name} {info.name} reading of "
                    f"{format_value(measurement)} {rule.finding}."
                ),
                suggestion=rule.suggestion,
                created_at=self.clock(),
            )

        return self.trend_alert(measurement, patient, history)

    def trend_alert(
        self,
        measurement: Measurement,
        patient: Patient,
        history: Iterable[Measurement],
    ) -> Alert | None:
        shift = self.trend.analyze(measurement, history)
        if shift is None:
            return None

        info = type_info(measurement.type)
        return Alert(
            id=self.id_factory("alert-trend"),
            patient_id=patient.id,
            measurement_id=measurement.id,
            category=AlertCategory.TREND,
            priority=shift.priority,
            title=f"{info.name.capitalize()} trending {shift.direction}",
            message=(
                f"{patient.name}'s {info.name} has been trending {shift.direction} recently, "
                f"a change of about {abs(shift.change_percent):.1f}%."
            ),
            suggestion=f"Monitor {info.name} closely and evaluate possible causes.",
            created_at=self.clock(),
        )

    def screen_all(
        self,
        measurements: Iterable[Measurement],
        patients: Iterable[Patient],
    ) -> list[Alert]:
        """Screen every reading against its patient's history; deduplicated, critical first."""
        readings = list(measurements)
        patient_map = {p.id: p for p in patients}

        by_patient: defaultdict[str, list[Measurement]] = defaultdict(list)
        for m in readings:
            by_patient[m.patient_id].append(m)

        alerts: list[Alert] = []
        skipped = 0
        for measurement in readings:
            patient = patient_map.get(measurement.patient_id)
            if patient is None:
                skipped += 1
                continue
            alert = self.screen_measurement(measurement, patient, by_patient[patient.id])
            if alert:
                alerts.append(alert)

        unique = deduplicate_by_title(alerts)
        self.logger.info(
            "full_sweep_completed",
            measurements=len(readings),
            skipped_unknown_patient=skipped,
            raw_alerts=len(alerts),
            alerts=len(unique),
        )
        return unique

    def follow_up_reminder(
        self,
        patient: Patient,
        measurement_type: MeasurementType,
        last_measurement: Measurement | None,
        now: datetime | None = None,
    ) -> Alert | None:
        """Remind staff when a reading is missing or overdue."""
        info = type_info(measurement_type)
        now = as_utc(now) if now else self.clock()

        if last_measurement is None:
            return Alert(
                id=self.id_factory("alert-reminder"),
                patient_id=patient.id,
                measurement_id="",
                category=AlertCategory.REMINDER,
                priority=AlertPriority.MEDIUM,
                title=f"{info.name.capitalize()} measurement due",
                message=f"{patient.name} has no {info.name} reading recorded today.",
                suggestion=f"Schedule a {info.name} measurement.",
                created_at=now,
            )

        hours_since = (now - last_measurement.measured_at).total_seconds() / 3600
        if hours_since <= self.reminder_config.overdue_after_hours:
            return None

        return Alert(
            id=self.id_factory("alert-reminder"),
            patient_id=patient.id,
            measurement_id=last_measurement.id,
            category=AlertCategory.REMINDER,
            priority=AlertPriority.LOW,
            title=f"{info.name.capitalize()} measurement follow-up",
            message=(
                f"{patient.name} has not had {info.name} measured "
                f"for {int(hours_since)} hours."
            ),
            suggestion=f"Schedule a {info.name} measurement to keep tracking.",
            created_at=now,
        )
