"""
Measurement ingestion and the in-memory chronological store.

Key patterns:
- Generic Result type for expected boundary failures (bad payloads)
- Validation happens once, at ingestion; the engine only sees valid readings
- Queries always return newest-first copies, never the internal lists
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, Generic, TypeVar

import structlog
from pydantic import ValidationError

from vitalsign.domain.models import Measurement, MeasurementType

logger = structlog.get_logger(__name__)

# Generic Result type for explicit error handling
ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    Why: Makes error paths visible in type system, forces handling decisions.
    When to use: When failure is expected business logic, not exceptional.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is None and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error


def parse_measurement(payload: Mapping[str, Any]) -> Result[Measurement, ValidationError]:
    """
    Validate a raw upload into a Measurement.

    Unknown measurement types, missing values and naive garbage are rejected
    here so nothing downstream has to guess.
    """
    try:
        return Result.ok(Measurement.model_validate(dict(payload)))
    except ValidationError as e:
        logger.warning(
            "measurement_rejected",
            patient_id=payload.get("patient_id"),
            measurement_type=payload.get("type"),
            errors=e.error_count(),
        )
        return Result.err(e)


class MeasurementStore:
    """
    Append-only, patient-keyed collection of measurements.

    Stands in for the external measurement repository. Readings are never
    mutated or removed once added.
    """

    def __init__(self, measurements: Iterable[Measurement] = ()) -> None:
        self._by_patient: defaultdict[str, list[Measurement]] = defaultdict(list)
        self._by_id: dict[str, Measurement] = {}
        self.logger = logger.bind(component="measurement_store")
        for measurement in measurements:
            self.add(measurement)

    def add(self, measurement: Measurement) -> Measurement:
        if measurement.id in self._by_id:
            raise ValueError(f"Measurement {measurement.id} already stored")
        self._by_id[measurement.id] = measurement
        self._by_patient[measurement.patient_id].append(measurement)
        self.logger.debug(
            "measurement_stored",
            measurement_id=measurement.id,
            patient_id=measurement.patient_id,
            measurement_type=measurement.type.value,
        )
        return measurement

    def ingest(self, payload: Mapping[str, Any]) -> Result[Measurement, ValidationError]:
        """Validate and store a raw payload in one step."""
        result = parse_measurement(payload)
        if result.is_ok():
            self.add(result.unwrap())
        return result

    def get(self, measurement_id: str) -> Measurement | None:
        return self._by_id.get(measurement_id)

    def for_patient(
        self,
        patient_id: str,
        measurement_type: MeasurementType | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[Measurement]:
        """Readings for one patient, newest first, optionally filtered by type and time."""
        readings = [
            m
            for m in self._by_patient.get(patient_id, [])
            if (measurement_type is None or m.type is measurement_type)
            and (since is None or m.measured_at >= since)
            and (until is None or m.measured_at <= until)
        ]
        return sorted(readings, key=lambda m: m.measured_at, reverse=True)

    def latest(self, patient_id: str, measurement_type: MeasurementType) -> Measurement | None:
        readings = self.for_patient(patient_id, measurement_type)
        return readings[0] if readings else None

    def all(self) -> list[Measurement]:
        """Every stored reading, newest first."""
        return sorted(self._by_id.values(), key=lambda m: m.measured_at, reverse=True)

    def patient_ids(self) -> list[str]:
        return list(self._by_patient)

    def __len__(self) -> int:
        return len(self._by_id)
