"""
Threshold classification of a single measurement.

Two independent checks run here: the normal-range comparison and the
critical-value override. The override takes precedence downstream, but both
are always evaluated so the decision trace can report each of them.
"""

import structlog
from pydantic import BaseModel, ConfigDict

from vitalsign.domain.models import Measurement, MeasurementType
from vitalsign.domain.reference import (
    CRITICAL_THRESHOLDS,
    NormalRange,
    UnsupportedMeasurementError,
    normal_range_for,
)

logger = structlog.get_logger(__name__)


class Classification(BaseModel):
    """Result of comparing one reading with the reference tables."""

    model_config = ConfigDict(frozen=True)

    in_range: bool
    critical_override: str | None = None

    @property
    def is_critical(self) -> bool:
        return self.critical_override is not None


def check_normal_range(measurement: Measurement, normal_range: NormalRange) -> bool:
    """Inclusive range check. A missing diastolic value is not applicable, not out of range."""
    primary_ok = normal_range.min <= measurement.value <= normal_range.max

    if measurement.type is not MeasurementType.BLOOD_PRESSURE:
        return primary_ok

    if measurement.secondary_value is None:
        return primary_ok

    secondary_min = normal_range.secondary_min if normal_range.secondary_min is not None else 0
    secondary_max = (
        normal_range.secondary_max if normal_range.secondary_max is not None else 100
    )
    return primary_ok and secondary_min <= measurement.secondary_value <= secondary_max


def check_critical_values(measurement: Measurement) -> str | None:
    """Return the override reason for the first danger threshold crossed, if any."""
    try:
        thresholds = CRITICAL_THRESHOLDS[measurement.type]
    except KeyError:
        raise UnsupportedMeasurementError(
            f"No critical thresholds configured for {measurement.type!r}"
        ) from None

    for threshold in thresholds:
        if threshold.is_crossed(measurement):
            return threshold.reason
    return None


def classify(
    measurement: Measurement,
    ranges: dict[MeasurementType, NormalRange] | None = None,
) -> Classification:
    """Classify a reading against its normal range and the critical thresholds."""
    normal_range = normal_range_for(measurement.type, ranges)
    classification = Classification(
        in_range=check_normal_range(measurement, normal_range),
        critical_override=check_critical_values(measurement),
    )

    if classification.is_critical:
        logger.info(
            "critical_value_detected",
            measurement_id=measurement.id,
            patient_id=measurement.patient_id,
            measurement_type=measurement.type.value,
            reason=classification.critical_override,
        )

    return classification
