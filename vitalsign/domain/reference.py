"""
Static clinical reference tables.

Everything the engine decides on is looked up here: normal ranges, critical
danger thresholds, diagnosis keyword rules, suggestion checklists and the
tiered screening rules used by the full-sweep path. Nothing in this module is
mutated at runtime.
"""

import operator
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict

from vitalsign.domain.models import AlertPriority, Measurement, MeasurementType


class UnsupportedMeasurementError(ValueError):
    """Raised when a measurement type has no entry in the reference tables."""


class NormalRange(BaseModel):
    """Inclusive normal range; the secondary bounds apply to diastolic pressure."""

    model_config = ConfigDict(frozen=True)

    min: float
    max: float
    secondary_min: float | None = None
    secondary_max: float | None = None


class MeasurementTypeInfo(BaseModel):
    """Display metadata plus the normal range for one measurement type."""

    model_config = ConfigDict(frozen=True)

    name: str
    unit: str
    normal_range: NormalRange


MEASUREMENT_TYPE_INFO: dict[MeasurementType, MeasurementTypeInfo] = {
    MeasurementType.BLOOD_PRESSURE: MeasurementTypeInfo(
        name="blood pressure",
        unit="mmHg",
        normal_range=NormalRange(min=90, max=140, secondary_min=60, secondary_max=90),
    ),
    MeasurementType.BLOOD_SUGAR: MeasurementTypeInfo(
        name="blood sugar", unit="mg/dL", normal_range=NormalRange(min=70, max=140)
    ),
    MeasurementType.HEART_RATE: MeasurementTypeInfo(
        name="heart rate", unit="bpm", normal_range=NormalRange(min=60, max=100)
    ),
    MeasurementType.TEMPERATURE: MeasurementTypeInfo(
        name="temperature", unit="°C", normal_range=NormalRange(min=36.0, max=37.5)
    ),
    MeasurementType.OXYGEN_SATURATION: MeasurementTypeInfo(
        name="oxygen saturation", unit="%", normal_range=NormalRange(min=95, max=100)
    ),
    MeasurementType.WEIGHT: MeasurementTypeInfo(
        name="weight", unit="kg", normal_range=NormalRange(min=40, max=100)
    ),
}

NORMAL_RANGES: dict[MeasurementType, NormalRange] = {
    measurement_type: info.normal_range for measurement_type, info in MEASUREMENT_TYPE_INFO.items()
}


def type_info(measurement_type: MeasurementType) -> MeasurementTypeInfo:
    """Look up display metadata, rejecting types the tables do not know."""
    try:
        return MEASUREMENT_TYPE_INFO[measurement_type]
    except KeyError:
        raise UnsupportedMeasurementError(
            f"Unsupported measurement type: {measurement_type!r}"
        ) from None


def normal_range_for(
    measurement_type: MeasurementType,
    ranges: dict[MeasurementType, NormalRange] | None = None,
) -> NormalRange:
    table = NORMAL_RANGES if ranges is None else ranges
    try:
        return table[measurement_type]
    except KeyError:
        raise UnsupportedMeasurementError(
            f"No normal range configured for {measurement_type!r}"
        ) from None


def format_value(measurement: Measurement) -> str:
    """Human readable value, e.g. '150/95 mmHg' or '38.2 °C'."""
    if measurement.type is MeasurementType.BLOOD_PRESSURE:
        diastolic = (
            f"/{measurement.secondary_value:g}" if measurement.secondary_value is not None else ""
        )
        return f"{measurement.value:g}{diastolic} {measurement.unit}"
    if measurement.type is MeasurementType.TEMPERATURE:
        return f"{measurement.value:.1f} {measurement.unit}"
    return f"{measurement.value:g} {measurement.unit}"


def format_normal_range(measurement_type: MeasurementType, normal_range: NormalRange) -> str:
    if measurement_type is MeasurementType.BLOOD_PRESSURE:
        return (
            f"{normal_range.min:g}-{normal_range.max:g}/"
            f"{normal_range.secondary_min:g}-{normal_range.secondary_max:g} mmHg"
        )
    return f"{normal_range.min:g}-{normal_range.max:g}"


# Critical danger thresholds
ReadingField = Literal["value", "secondary_value"]


@dataclass(frozen=True)
class CriticalThreshold:
    """A danger threshold that forces maximum severity when crossed."""

    field: ReadingField
    compare: Callable[[float, float], bool]
    limit: float
    reason: str

    def is_crossed(self, measurement: Measurement) -> bool:
        reading = getattr(measurement, self.field)
        if reading is None:
            return False
        return self.compare(reading, self.limit)


_HYPERTENSIVE_CRISIS = "Blood pressure meets hypertensive crisis criteria (>180/120 mmHg)"

# Checked in order, first hit wins
CRITICAL_THRESHOLDS: dict[MeasurementType, tuple[CriticalThreshold, ...]] = {
    MeasurementType.BLOOD_PRESSURE: (
        CriticalThreshold("value", operator.gt, 180, _HYPERTENSIVE_CRISIS),
        CriticalThreshold("secondary_value", operator.gt, 120, _HYPERTENSIVE_CRISIS),
        CriticalThreshold(
            "value", operator.lt, 80, "Systolic pressure too low (<80 mmHg), risk of shock"
        ),
    ),
    MeasurementType.BLOOD_SUGAR: (
        CriticalThreshold(
            "value",
            operator.gt,
            400,
            "Severely elevated blood sugar (>400 mg/dL), risk of ketoacidosis",
        ),
        CriticalThreshold(
            "value",
            operator.lt,
            50,
            "Severe hypoglycaemia (<50 mg/dL), risk of loss of consciousness",
        ),
    ),
    MeasurementType.HEART_RATE: (
        CriticalThreshold("value", operator.gt, 150, "Severe tachycardia (>150 bpm)"),
        CriticalThreshold("value", operator.lt, 40, "Severe bradycardia (<40 bpm)"),
    ),
    MeasurementType.OXYGEN_SATURATION: (
        CriticalThreshold(
            "value",
            operator.lt,
            88,
            "Oxygen saturation critically low (<88%), risk of respiratory failure",
        ),
    ),
    MeasurementType.TEMPERATURE: (
        CriticalThreshold(
            "value", operator.ge, 40, "Hyperpyrexia (≥40°C), active cooling required"
        ),
        CriticalThreshold(
            "value", operator.lt, 35, "Body temperature too low (<35°C), hypothermia risk"
        ),
    ),
    MeasurementType.WEIGHT: (),
}


# Diagnosis keyword rules
@dataclass(frozen=True)
class DiagnosisRiskRule:
    """Any keyword hit contributes the rule's phrase once."""

    keywords: tuple[str, ...]
    phrase: str


DIAGNOSIS_RISK_RULES: dict[MeasurementType, tuple[DiagnosisRiskRule, ...]] = {
    MeasurementType.BLOOD_PRESSURE: (
        DiagnosisRiskRule(
            ("hypertension",),
            "History of hypertension, blood pressure changes need close attention",
        ),
        DiagnosisRiskRule(
            ("heart", "cardiac", "coronary"),
            "Cardiac disease, blood pressure control is especially important",
        ),
    ),
    MeasurementType.BLOOD_SUGAR: (
        DiagnosisRiskRule(("diabetes",), "Diabetic patient, blood sugar may fluctuate widely"),
    ),
    MeasurementType.HEART_RATE: (
        DiagnosisRiskRule(
            ("arrhythmia", "atrial fibrillation"),
            "History of arrhythmia, heart rate changes need close monitoring",
        ),
    ),
    MeasurementType.OXYGEN_SATURATION: (
        DiagnosisRiskRule(
            ("pulmonary", "lung", "copd"),
            "Respiratory disease, oxygen saturation monitoring is essential",
        ),
    ),
    MeasurementType.TEMPERATURE: (
        DiagnosisRiskRule(
            ("pneumonia",),
            "Pneumonia patient, temperature reflects infection control",
        ),
    ),
    MeasurementType.WEIGHT: (),
}


# Suggestion checklists
IMMEDIATE_ACTIONS: dict[AlertPriority, tuple[str, ...]] = {
    AlertPriority.CRITICAL: (
        "Go to the bedside immediately and assess the patient",
        "Notify the on-call physician",
    ),
    AlertPriority.HIGH: ("Confirm the patient's current condition as soon as possible",),
    AlertPriority.MEDIUM: (),
    AlertPriority.LOW: (),
}

TYPE_CHECKLISTS: dict[MeasurementType, tuple[str, ...]] = {
    MeasurementType.BLOOD_PRESSURE: (
        "Check use of antihypertensive or vasopressor medication",
        "Assess for headache, dizziness or similar symptoms",
    ),
    MeasurementType.BLOOD_SUGAR: (
        "Check insulin or oral hypoglycaemic medication use",
        "Review recent food intake",
    ),
    MeasurementType.HEART_RATE: (
        "Assess for palpitations, chest tightness or discomfort",
        "Arrange an ECG if needed",
    ),
    MeasurementType.OXYGEN_SATURATION: (
        "Confirm oxygen equipment is working properly",
        "Assess breathing and auscultate the lungs",
    ),
    MeasurementType.TEMPERATURE: (
        "Give appropriate antipyretic care",
        "Monitor for signs of infection",
    ),
    MeasurementType.WEIGHT: (),
}

TRACKING_ITEM = "Keep tracking and document any changes"


# Tiered screening rules for the full-sweep path
@dataclass(frozen=True)
class ScreeningRule:
    """One tier of the per-type screening ladder. Rules are tried in order."""

    matches: Callable[[Measurement], bool]
    priority: Callable[[Measurement], AlertPriority]
    title: str
    finding: str
    suggestion: str


def _fixed(priority: AlertPriority) -> Callable[[Measurement], AlertPriority]:
    return lambda _measurement: priority


def _above(
    limit: float, then: AlertPriority, otherwise: AlertPriority
) -> Callable[[Measurement], AlertPriority]:
    return lambda m: then if m.value > limit else otherwise


def _below(
    limit: float, then: AlertPriority, otherwise: AlertPriority
) -> Callable[[Measurement], AlertPriority]:
    return lambda m: then if m.value < limit else otherwise


def _diastolic(m: Measurement, compare: Callable[[float, float], bool], limit: float) -> bool:
    return m.secondary_value is not None and compare(m.secondary_value, limit)


SCREENING_RULES: dict[MeasurementType, tuple[ScreeningRule, ...]] = {
    MeasurementType.BLOOD_PRESSURE: (
        ScreeningRule(
            matches=lambda m: m.value > 180 or _diastolic(m, operator.gt, 120),
            priority=_fixed(AlertPriority.CRITICAL),
            title="Blood pressure critical",
            finding="meets hypertensive crisis criteria and needs immediate treatment",
            suggestion=(
                "1. Notify the on-call physician immediately\n"
                "2. Prepare antihypertensive medication\n"
                "3. Keep monitoring and record level of consciousness"
            ),
        ),
        ScreeningRule(
            matches=lambda m: m.value > 140 or _diastolic(m, operator.gt, 90),
            priority=_above(160, AlertPriority.HIGH, AlertPriority.MEDIUM),
            title="Blood pressure elevated",
            finding="is above the normal range",
            suggestion=(
                "1. Check the patient's symptoms\n"
                "2. Review current medication\n"
                "3. Notify the physician if needed"
            ),
        ),
        ScreeningRule(
            matches=lambda m: m.value < 90 or _diastolic(m, operator.lt, 60),
            priority=_below(80, AlertPriority.CRITICAL, AlertPriority.HIGH),
            title="Blood pressure low",
            finding="is below the normal range",
            suggestion=(
                "1. Assess consciousness and peripheral circulation\n"
                "2. Check for dehydration or bleeding\n"
                "3. Ask the physician to evaluate"
            ),
        ),
    ),
    MeasurementType.BLOOD_SUGAR: (
        ScreeningRule(
            matches=lambda m: m.value > 300,
            priority=_fixed(AlertPriority.CRITICAL),
            title="Blood sugar critical",
            finding="is severely elevated, watch for diabetic ketoacidosis",
            suggestion=(
                "1. Notify the physician immediately\n"
                "2. Test urine ketones\n"
                "3. Prepare insulin and IV fluids"
            ),
        ),
        ScreeningRule(
            matches=lambda m: m.value > 140,
            priority=_above(200, AlertPriority.HIGH, AlertPriority.MEDIUM),
            title="Blood sugar elevated",
            finding="is above the target range",
            suggestion=(
                "1. Confirm insulin administration\n"
                "2. Review food intake\n"
                "3. Watch for hyperglycaemia symptoms"
            ),
        ),
        ScreeningRule(
            matches=lambda m: m.value < 70,
            priority=_below(50, AlertPriority.CRITICAL, AlertPriority.HIGH),
            title="Low blood sugar",
            finding="indicates a risk of hypoglycaemia",
            suggestion=(
                "1. Give glucose immediately\n"
                "2. Monitor level of consciousness\n"
                "3. Check for medication overdose"
            ),
        ),
    ),
    MeasurementType.HEART_RATE: (
        ScreeningRule(
            matches=lambda m: m.value > 150,
            priority=_fixed(AlertPriority.CRITICAL),
            title="Severe tachycardia",
            finding="needs immediate attention",
            suggestion=(
                "1. Perform an ECG immediately\n"
                "2. Notify the physician\n"
                "3. Prepare resuscitation equipment"
            ),
        ),
        ScreeningRule(
            matches=lambda m: m.value < 40,
            priority=_fixed(AlertPriority.CRITICAL),
            title="Severe bradycardia",
            finding="needs immediate attention",
            suggestion=(
                "1. Perform an ECG immediately\n"
                "2. Notify the physician\n"
                "3. Prepare resuscitation equipment"
            ),
        ),
        ScreeningRule(
            matches=lambda m: m.value > 100,
            priority=_above(120, AlertPriority.HIGH, AlertPriority.MEDIUM),
            title="Heart rate fast",
            finding="is above the normal range",
            suggestion=(
                "1. Assess for palpitations or discomfort\n"
                "2. Review medication\n"
                "3. Perform an ECG if needed"
            ),
        ),
        ScreeningRule(
            matches=lambda m: m.value < 60,
            priority=_below(50, AlertPriority.HIGH, AlertPriority.MEDIUM),
            title="Heart rate slow",
            finding="is below the normal range",
            suggestion=(
                "1. Assess consciousness and activity tolerance\n"
                "2. Check for rate-lowering medication\n"
                "3. Ask the physician to evaluate"
            ),
        ),
    ),
    MeasurementType.TEMPERATURE: (
        ScreeningRule(
            matches=lambda m: m.value >= 39.5,
            priority=_fixed(AlertPriority.CRITICAL),
            title="High fever",
            finding="needs active cooling",
            suggestion=(
                "1. Give antipyretics immediately\n"
                "2. Apply physical cooling\n"
                "3. Trace the source of infection and notify the physician"
            ),
        ),
        ScreeningRule(
            matches=lambda m: m.value > 37.5,
            priority=_above(38.5, AlertPriority.HIGH, AlertPriority.MEDIUM),
            title="Temperature elevated",
            finding="indicates fever",
            suggestion=(
                "1. Monitor temperature changes\n"
                "2. Evaluate antipyretic effect\n"
                "3. Watch for signs of infection"
            ),
        ),
        ScreeningRule(
            matches=lambda m: m.value < 35.5,
            priority=_fixed(AlertPriority.HIGH),
            title="Temperature low",
            finding="requires keeping the patient warm",
            suggestion=(
                "1. Strengthen warming measures\n"
                "2. Assess peripheral circulation\n"
                "3. Check the room temperature"
            ),
        ),
    ),
    MeasurementType.OXYGEN_SATURATION: (
        ScreeningRule(
            matches=lambda m: m.value < 90,
            priority=_fixed(AlertPriority.CRITICAL),
            title="Oxygen saturation critically low",
            finding="needs immediate attention",
            suggestion=(
                "1. Increase oxygen supply immediately\n"
                "2. Make sure the airway is clear\n"
                "3. Notify the physician urgently"
            ),
        ),
        ScreeningRule(
            matches=lambda m: m.value < 95,
            priority=_below(92, AlertPriority.HIGH, AlertPriority.MEDIUM),
            title="Oxygen saturation low",
            finding="is below the normal value",
            suggestion=(
                "1. Confirm oxygen equipment is working\n"
                "2. Assess breathing\n"
                "3. Adjust oxygen flow if needed"
            ),
        ),
    ),
    MeasurementType.WEIGHT: (),
}
