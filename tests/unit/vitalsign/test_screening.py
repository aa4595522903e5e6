"""Tests for full-sweep rule screening and follow-up reminders."""

import pytest

from vitalsign.config import ReminderConfig
from vitalsign.domain.models import AlertCategory, AlertPriority, MeasurementType
from vitalsign.services.screening import RuleScreener

BP = MeasurementType.BLOOD_PRESSURE
SUGAR = MeasurementType.BLOOD_SUGAR
HR = MeasurementType.HEART_RATE
TEMP = MeasurementType.TEMPERATURE
SPO2 = MeasurementType.OXYGEN_SATURATION


@pytest.fixture
def screener(id_factory, clock) -> RuleScreener:
    return RuleScreener(id_factory=id_factory, clock=clock)


@pytest.mark.parametrize(
    "measurement_type,value,secondary,title,priority",
    [
        (BP, 185, 100, "Blood pressure critical", AlertPriority.CRITICAL),
        (BP, 150, 125, "Blood pressure critical", AlertPriority.CRITICAL),
        (BP, 165, 85, "Blood pressure elevated", AlertPriority.HIGH),
        (BP, 150, 85, "Blood pressure elevated", AlertPriority.MEDIUM),
        (BP, 130, 95, "Blood pressure elevated", AlertPriority.MEDIUM),
        (BP, 85, 70, "Blood pressure low", AlertPriority.HIGH),
        (BP, 75, 50, "Blood pressure low", AlertPriority.CRITICAL),
        (SUGAR, 320, None, "Blood sugar critical", AlertPriority.CRITICAL),
        (SUGAR, 250, None, "Blood sugar elevated", AlertPriority.HIGH),
        (SUGAR, 150, None, "Blood sugar elevated", AlertPriority.MEDIUM),
        (SUGAR, 45, None, "Low blood sugar", AlertPriority.CRITICAL),
        (SUGAR, 60, None, "Low blood sugar", AlertPriority.HIGH),
        (HR, 155, None, "Severe tachycardia", AlertPriority.CRITICAL),
        (HR, 35, None, "Severe bradycardia", AlertPriority.CRITICAL),
        (HR, 125, None, "Heart rate fast", AlertPriority.HIGH),
        (HR, 110, None, "Heart rate fast", AlertPriority.MEDIUM),
        (HR, 45, None, "Heart rate slow", AlertPriority.HIGH),
        (HR, 55, None, "Heart rate slow", AlertPriority.MEDIUM),
        (TEMP, 39.6, None, "High fever", AlertPriority.CRITICAL),
        (TEMP, 38.6, None, "Temperature elevated", AlertPriority.HIGH),
        (TEMP, 38.0, None, "Temperature elevated", AlertPriority.MEDIUM),
        (TEMP, 35.0, None, "Temperature low", AlertPriority.HIGH),
        (SPO2, 89, None, "Oxygen saturation critically low", AlertPriority.CRITICAL),
        (SPO2, 91, None, "Oxygen saturation low", AlertPriority.HIGH),
        (SPO2, 94, None, "Oxygen saturation low", AlertPriority.MEDIUM),
    ],
)
def test_screening_tiers(
    screener,
    make_measurement,
    hypertensive_patient,
    measurement_type: MeasurementType,
    value: float,
    secondary: float | None,
    title: str,
    priority: AlertPriority,
) -> None:
    m = make_measurement("p1", measurement_type, value, secondary_value=secondary)

    alert = screener.screen_measurement(m, hypertensive_patient, [m])

    assert alert is not None
    assert alert.title == title
    assert alert.priority is priority
    assert alert.category is AlertCategory.ABNORMAL
    assert alert.measurement_id == m.id
    assert alert.message.startswith("Zhang Wei ")


@pytest.mark.parametrize(
    "measurement_type,value,secondary",
    [(BP, 120, 80), (BP, 120, None), (HR, 72, None), (MeasurementType.WEIGHT, 150, None)],
)
def test_normal_readings_without_history_raise_nothing(
    screener,
    make_measurement,
    healthy_patient,
    measurement_type: MeasurementType,
    value: float,
    secondary: float | None,
) -> None:
    m = make_measurement("p9", measurement_type, value, secondary_value=secondary)
    assert screener.screen_measurement(m, healthy_patient, [m]) is None


def test_in_range_shift_raises_trend_alert(screener, make_measurement, healthy_patient) -> None:
    history = [
        make_measurement("p9", HR, value, hours_ago=i)
        for i, value in enumerate([95, 95, 95, 70, 70])
    ]

    alert = screener.screen_measurement(history[0], healthy_patient, history)

    assert alert is not None
    assert alert.category is AlertCategory.TREND
    assert alert.priority is AlertPriority.HIGH
    assert alert.title == "Heart rate trending up"
    assert alert.id.startswith("alert-trend-")
    assert "35.7%" in alert.message


def test_screen_all_deduplicates_and_sorts(
    screener, make_measurement, hypertensive_patient, copd_patient
) -> None:
    first_bp = make_measurement("p1", BP, 150, hours_ago=3, secondary_value=85)
    readings = [
        first_bp,
        make_measurement("p1", BP, 155, hours_ago=1, secondary_value=85),
        make_measurement("p3", SPO2, 85, hours_ago=2),
        make_measurement("ghost", BP, 200, hours_ago=1, secondary_value=100),
    ]

    alerts = screener.screen_all(readings, [hypertensive_patient, copd_patient])

    assert [a.title for a in alerts] == [
        "Oxygen saturation critically low",
        "Blood pressure elevated",
    ]
    assert alerts[0].priority is AlertPriority.CRITICAL
    assert alerts[1].measurement_id == first_bp.id
    assert all(a.patient_id != "ghost" for a in alerts)


class TestFollowUpReminder:
    def test_missing_reading_is_medium_reminder(self, screener, healthy_patient, fixed_now) -> None:
        alert = screener.follow_up_reminder(healthy_patient, HR, None)

        assert alert is not None
        assert alert.category is AlertCategory.REMINDER
        assert alert.priority is AlertPriority.MEDIUM
        assert alert.measurement_id == ""
        assert alert.title == "Heart rate measurement due"
        assert alert.created_at == fixed_now

    def test_overdue_reading_is_low_reminder(
        self, screener, make_measurement, healthy_patient, fixed_now
    ) -> None:
        last = make_measurement("p9", HR, 72, hours_ago=10)

        alert = screener.follow_up_reminder(healthy_patient, HR, last, fixed_now)

        assert alert is not None
        assert alert.priority is AlertPriority.LOW
        assert alert.measurement_id == last.id
        assert "10 hours" in alert.message

    @pytest.mark.parametrize("hours_ago", [2, 8])
    def test_recent_reading_needs_no_reminder(
        self, screener, make_measurement, healthy_patient, fixed_now, hours_ago: float
    ) -> None:
        last = make_measurement("p9", HR, 72, hours_ago=hours_ago)
        assert screener.follow_up_reminder(healthy_patient, HR, last, fixed_now) is None

    def test_overdue_threshold_is_configurable(
        self, id_factory, clock, make_measurement, healthy_patient, fixed_now
    ) -> None:
        screener = RuleScreener(
            reminder_config=ReminderConfig(overdue_after_hours=1),
            id_factory=id_factory,
            clock=clock,
        )
        last = make_measurement("p9", HR, 72, hours_ago=2)

        alert = screener.follow_up_reminder(healthy_patient, HR, last, fixed_now)

        assert alert is not None
        assert alert.priority is AlertPriority.LOW


def test_naive_now_is_taken_as_utc(screener, make_measurement, healthy_patient, fixed_now) -> None:
    last = make_measurement("p9", HR, 72, hours_ago=10)
    naive_now = fixed_now.replace(tzinfo=None)

    alert = screener.follow_up_reminder(healthy_patient, HR, last, naive_now)

    assert alert is not None
    assert alert.priority is AlertPriority.LOW
    assert alert.created_at == fixed_now
