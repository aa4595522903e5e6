"""
Tests for the ward monitoring service.

Covers ingestion (typed and raw), alert dispatch with sync, async and
failing handlers, per-patient serialization, and the sweep entry points.
"""

import asyncio

import pytest
from pydantic import ValidationError

from vitalsign.config import AppConfig
from vitalsign.domain.models import (
    Alert,
    AlertCategory,
    AlertPriority,
    AlertStatus,
    MeasurementType,
)
from vitalsign.services.agent import VitalSignAgent
from vitalsign.services.composer import DecisionComposer
from vitalsign.services.screening import RuleScreener
from vitalsign.services.ward_monitoring import UnknownPatientError, WardMonitoringService
from vitalsign.services.workflow import AlertWorkflow

BP = MeasurementType.BLOOD_PRESSURE
HR = MeasurementType.HEART_RATE


@pytest.fixture
def received() -> list[Alert]:
    return []


@pytest.fixture
def service(
    id_factory, clock, received, hypertensive_patient, healthy_patient
) -> WardMonitoringService:
    config = AppConfig()
    ward = WardMonitoringService(
        config=config,
        agent=VitalSignAgent(config, composer=DecisionComposer(id_factory, clock)),
        screener=RuleScreener(config.trend, config.reminder, id_factory, clock),
        workflow=AlertWorkflow(config.reminder, id_factory, clock),
        handlers=[received.append],
    )
    ward.register_patient(hypertensive_patient)
    ward.register_patient(healthy_patient)
    return ward


class TestIngest:
    async def test_critical_reading_reaches_board_and_handlers(
        self, service, make_measurement, received
    ) -> None:
        m = make_measurement("p1", BP, 185, secondary_value=110)

        result = await service.ingest(m)

        assert result.alert is not None
        assert result.priority is AlertPriority.CRITICAL
        assert service.workflow.get(result.alert.id).status is AlertStatus.PENDING
        assert received == [result.alert]
        assert service.store.get(m.id) == m

    async def test_raw_payload_is_validated(self, service, received) -> None:
        result = await service.ingest(
            {"id": "up-1", "patient_id": "p9", "type": "heart_rate", "value": 72, "unit": "bpm"}
        )

        assert result.alert is None
        assert len(service.store) == 1
        assert received == []

    async def test_invalid_payload_raises(self, service) -> None:
        with pytest.raises(ValidationError):
            await service.ingest(
                {"id": "up-1", "patient_id": "p9", "type": "pulse", "value": 72, "unit": "bpm"}
            )
        assert len(service.store) == 0

    async def test_unknown_patient_raises(self, service, make_measurement) -> None:
        with pytest.raises(UnknownPatientError):
            await service.ingest(make_measurement("ghost", HR, 72))

        assert issubclass(UnknownPatientError, KeyError)
        assert len(service.store) == 0

    async def test_stored_history_feeds_trend(self, service, make_measurement) -> None:
        for hours_ago in (1, 2):
            service.store.add(make_measurement("p9", HR, 70, hours_ago=hours_ago))

        result = await service.ingest(make_measurement("p9", HR, 90))

        assert result.alert is not None
        assert result.alert.category is AlertCategory.TREND

    async def test_concurrent_uploads_for_one_patient(self, service, make_measurement) -> None:
        readings = [make_measurement("p9", HR, 70 + i, hours_ago=i) for i in range(5)]

        await asyncio.gather(*(service.ingest(m) for m in readings))

        assert len(service.store) == 5
        assert service.agent.history.total_analyses == 5

    def test_ingest_payload_back_fills_without_analysis(self, service) -> None:
        result = service.ingest_payload(
            {"id": "old-1", "patient_id": "p9", "type": "heart_rate", "value": 72, "unit": "bpm"}
        )

        assert result.is_ok()
        assert len(service.store) == 1
        assert service.agent.history.total_analyses == 0


class TestDispatch:
    async def test_failing_handler_does_not_block_others(
        self, service, make_measurement, received
    ) -> None:
        def pager(alert: Alert) -> None:
            raise RuntimeError("pager offline")

        service.handlers = [pager, received.append]

        result = await service.ingest(make_measurement("p1", BP, 185, secondary_value=110))

        assert received == [result.alert]

    async def test_async_handlers_are_awaited(self, service, make_measurement) -> None:
        delivered: list[str] = []

        async def notify(alert: Alert) -> None:
            await asyncio.sleep(0)
            delivered.append(alert.id)

        await service.dispatch_alerts(
            [
                Alert(
                    id="a1",
                    patient_id="p1",
                    measurement_id="m1",
                    category=AlertCategory.ABNORMAL,
                    priority=AlertPriority.HIGH,
                    title="t",
                    message="m",
                    suggestion="s",
                )
            ],
            handlers=[notify],
        )

        assert delivered == ["a1"]


class TestSweeps:
    async def test_full_sweep_adds_sorted_alerts(
        self, service, make_measurement, received
    ) -> None:
        service.store.add(make_measurement("p1", BP, 150, hours_ago=2, secondary_value=85))
        service.store.add(make_measurement("p9", HR, 155, hours_ago=1))

        alerts = await service.run_full_sweep()

        assert [a.priority for a in alerts] == [AlertPriority.CRITICAL, AlertPriority.MEDIUM]
        assert service.workflow.pending_count() == 2
        assert received == alerts

    async def test_batch_analysis(self, service, make_measurement, fixed_now) -> None:
        service.store.add(make_measurement("p1", BP, 185, hours_ago=1, secondary_value=110))
        service.store.add(make_measurement("p9", HR, 72, hours_ago=1))

        alerts = await service.run_batch_analysis(now=fixed_now)

        assert len(alerts) == 1
        assert alerts[0].patient_id == "p1"
        assert service.workflow.pending_count() == 1

    async def test_reminder_sweep(self, service, make_measurement, fixed_now) -> None:
        service.store.add(make_measurement("p1", HR, 72, hours_ago=10))

        reminders = await service.sweep_reminders([HR], now=fixed_now)

        by_patient = {r.patient_id: r.priority for r in reminders}
        assert by_patient == {"p1": AlertPriority.LOW, "p9": AlertPriority.MEDIUM}
        assert all(r.category is AlertCategory.REMINDER for r in reminders)

    async def test_monitoring_session_toggles_agent(self, service) -> None:
        async with service.monitoring_session():
            assert service.agent.is_running
            assert "monitoring" in service.status_report()

        assert not service.agent.is_running


async def test_sweeps_accept_naive_now(service, make_measurement, fixed_now) -> None:
    service.store.add(make_measurement("p1", HR, 72, hours_ago=10))
    naive_now = fixed_now.replace(tzinfo=None)

    reminders = await service.sweep_reminders([HR], now=naive_now)
    await service.run_batch_analysis(now=naive_now)

    assert {r.patient_id for r in reminders} == {"p1", "p9"}
    assert service.agent.history.total_analyses == 1
