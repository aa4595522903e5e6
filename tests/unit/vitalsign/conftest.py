"""Shared fixtures: sample patients, a reading factory and deterministic ids/clock."""

import itertools
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from vitalsign.domain.models import Measurement, MeasurementType, Patient
from vitalsign.domain.reference import type_info
from vitalsign.services.composer import IdFactory

FIXED_NOW = datetime(2024, 1, 15, 8, 0, tzinfo=UTC)

MeasurementFactory = Callable[..., Measurement]


def sequential_ids() -> IdFactory:
    counter = itertools.count(1)
    return lambda prefix: f"{prefix}-{next(counter)}"


@pytest.fixture
def id_factory() -> IdFactory:
    return sequential_ids()


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def hypertensive_patient() -> Patient:
    return Patient(
        id="p1",
        name="Zhang Wei",
        age=68,
        gender="male",
        room_number="301",
        bed_number="A",
        diagnosis="Hypertension, coronary heart disease",
    )


@pytest.fixture
def copd_patient() -> Patient:
    return Patient(
        id="p3",
        name="Wang Fang",
        age=72,
        gender="female",
        room_number="303",
        bed_number="A",
        diagnosis="COPD",
    )


@pytest.fixture
def healthy_patient() -> Patient:
    return Patient(
        id="p9",
        name="Sun Li",
        age=30,
        gender="female",
        room_number="309",
        bed_number="B",
    )


@pytest.fixture
def make_measurement() -> MeasurementFactory:
    """Build readings relative to FIXED_NOW with auto-numbered ids."""
    counter = itertools.count(1)

    def _make(
        patient_id: str,
        measurement_type: MeasurementType,
        value: float,
        hours_ago: float = 0,
        secondary_value: float | None = None,
        measurement_id: str | None = None,
    ) -> Measurement:
        return Measurement(
            id=measurement_id or f"m{next(counter)}",
            patient_id=patient_id,
            type=measurement_type,
            value=value,
            secondary_value=secondary_value,
            unit=type_info(measurement_type).unit,
            measured_at=FIXED_NOW - timedelta(hours=hours_ago),
        )

    return _make
