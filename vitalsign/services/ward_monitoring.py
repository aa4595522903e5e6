"""
Ward monitoring service that ties ingestion, analysis and the alert board together.

This demonstrates the complete end-to-end pipeline:
1. Validate and store an uploaded reading
2. Analyze it against the patient's history (serialized per patient)
3. Put any alert on the board and dispatch it to handlers
4. Run full sweeps and reminder sweeps on demand
"""

import asyncio
import inspect
from collections import defaultdict
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Mapping
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import structlog
from pydantic import ValidationError

from vitalsign.config import AppConfig, get_config
from vitalsign.domain.models import Alert, AnalysisResult, Measurement, MeasurementType, Patient
from vitalsign.services.agent import VitalSignAgent
from vitalsign.services.composer import utc_now
from vitalsign.services.measurements import MeasurementStore, Result, parse_measurement
from vitalsign.services.screening import RuleScreener
from vitalsign.services.workflow import AlertWorkflow

logger = structlog.get_logger(__name__)

AlertHandler = Callable[[Alert], None] | Callable[[Alert], Awaitable[None]]


class UnknownPatientError(KeyError):
    """Raised when a reading references a patient that is not registered."""


class WardMonitoringService:
    """
    Main service the dashboard talks to.

    Readings for the same patient are analyzed one at a time, because trend
    analysis reads the history that a concurrent upload would change.
    Different patients proceed concurrently.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        store: MeasurementStore | None = None,
        agent: VitalSignAgent | None = None,
        screener: RuleScreener | None = None,
        workflow: AlertWorkflow | None = None,
        handlers: Iterable[AlertHandler] = (),
    ) -> None:
        self.config = config or get_config()
        self.logger = logger.bind(component="ward_monitoring")

        self.store = store or MeasurementStore()
        self.agent = agent or VitalSignAgent(self.config)
        self.screener = screener or RuleScreener(self.config.trend, self.config.reminder)
        self.workflow = workflow or AlertWorkflow(self.config.reminder)
        self.handlers: list[AlertHandler] = list(handlers)

        self.patients: dict[str, Patient] = {}
        self._patient_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def register_patient(self, patient: Patient) -> None:
        self.patients[patient.id] = patient
        self.logger.info("patient_registered", patient_id=patient.id, room=patient.room_number)

    @asynccontextmanager
    async def monitoring_session(self) -> AsyncIterator["WardMonitoringService"]:
        """Mark the agent as monitoring for the duration of the block."""
        self.agent.start()
        try:
            yield self
        finally:
            self.agent.stop()

    async def ingest(self, reading: Measurement | Mapping[str, Any]) -> AnalysisResult:
        """
        Store a reading and analyze it.

        Raw payloads are validated first; a rejected payload raises the
        underlying pydantic ValidationError.
        """
        if isinstance(reading, Measurement):
            measurement = reading
        else:
            measurement = parse_measurement(reading).unwrap()

        patient = self.patients.get(measurement.patient_id)
        if patient is None:
            raise UnknownPatientError(measurement.patient_id)

        async with self._patient_locks[patient.id]:
            self.store.add(measurement)
            history = self.store.for_patient(patient.id, measurement.type)
            result = await self.agent.analyze_with_thinking(measurement, patient, history)

        if result.alert is not None:
            self.workflow.add(result.alert)
            await self.dispatch_alerts([result.alert])

        return result

    def ingest_payload(self, payload: Mapping[str, Any]) -> Result[Measurement, ValidationError]:
        """Store a raw payload without analysis; used for back-filling history."""
        return self.store.ingest(payload)

    async def run_batch_analysis(self, now: datetime | None = None) -> list[Alert]:
        """Agent batch pass over recent readings; alerts are added to the board."""
        alerts = await self.agent.analyze_all_measurements(
            self.store.all(), self.patients.values(), now=now
        )
        self.workflow.add_many(alerts)
        await self.dispatch_alerts(alerts)
        return alerts

    async def run_full_sweep(self) -> list[Alert]:
        """Rule screening over every stored reading; alerts are added to the board."""
        alerts = self.screener.screen_all(self.store.all(), self.patients.values())
        self.workflow.add_many(alerts)
        await self.dispatch_alerts(alerts)
        return alerts

    async def sweep_reminders(
        self,
        measurement_types: Iterable[MeasurementType] = tuple(MeasurementType),
        now: datetime | None = None,
    ) -> list[Alert]:
        """Raise reminders for every patient and type that is missing or overdue."""
        now = now or utc_now()
        types = list(measurement_types)
        reminders = []
        for patient in self.patients.values():
            for measurement_type in types:
                reminder = self.screener.follow_up_reminder(
                    patient, measurement_type, self.store.latest(patient.id, measurement_type), now
                )
                if reminder is not None:
                    reminders.append(reminder)

        self.workflow.add_many(reminders)
        await self.dispatch_alerts(reminders)
        self.logger.info("reminder_sweep_completed", reminders=len(reminders))
        return reminders

    async def dispatch_alerts(
        self,
        alerts: list[Alert],
        handlers: list[AlertHandler] | None = None,
    ) -> None:
        """Dispatch alerts to handlers; a failing handler never stops the others."""
        if not alerts:
            return

        for alert in alerts:
            for handler in handlers if handlers is not None else self.handlers:
                try:
                    outcome = handler(alert)
                    if inspect.isawaitable(outcome):
                        await outcome
                except Exception as e:
                    self.logger.error(
                        "alert_dispatch_failed",
                        error=str(e),
                        alert_id=alert.id,
                        handler=getattr(handler, "__name__", type(handler).__name__),
                    )

    def status_report(self) -> str:
        return self.agent.status_report()
