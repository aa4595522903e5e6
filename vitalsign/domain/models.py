"""
Domain models for bedside vital-sign monitoring.

These models represent the core clinical concepts and are framework-agnostic.
They use Pydantic for validation but could be swapped to dataclasses if needed.
"""

from datetime import UTC, date, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MeasurementType(str, Enum):
    """Types of physiological measurements the ward uploads."""

    BLOOD_PRESSURE = "blood_pressure"
    BLOOD_SUGAR = "blood_sugar"
    HEART_RATE = "heart_rate"
    TEMPERATURE = "temperature"
    OXYGEN_SATURATION = "oxygen_saturation"
    WEIGHT = "weight"


class AlertPriority(str, Enum):
    """Alert priority tiers, totally ordered from critical down to low."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort rank: 0 is the most severe."""
        return PRIORITY_ORDER.index(self)


PRIORITY_ORDER: tuple[AlertPriority, ...] = (
    AlertPriority.CRITICAL,
    AlertPriority.HIGH,
    AlertPriority.MEDIUM,
    AlertPriority.LOW,
)


class AlertCategory(str, Enum):
    """What kind of finding produced the alert."""

    ABNORMAL = "abnormal"
    TREND = "trend"
    REMINDER = "reminder"
    FOLLOW_UP = "follow-up"


class AlertStatus(str, Enum):
    """Alert lifecycle. Every state except PENDING is terminal."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    DISMISSED = "dismissed"
    CONVERTED = "converted"

    @property
    def is_terminal(self) -> bool:
        return self is not AlertStatus.PENDING


TrendDirection = Literal["up", "down", "stable"]
RiskLevel = Literal["low", "medium", "high"]
TaskStatus = Literal["pending", "in-progress", "completed"]


class Patient(BaseModel):
    """Patient record as owned by the external registry."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    age: int = Field(ge=0)
    gender: str
    room_number: str
    bed_number: str
    diagnosis: str = Field(default="", description="Free text, keyword-matched only")
    admission_date: date | None = None


class Measurement(BaseModel):
    """Individual physiological reading."""

    model_config = ConfigDict(frozen=True)  # The engine only ever reads these

    id: str
    patient_id: str
    type: MeasurementType
    value: float
    secondary_value: float | None = Field(
        default=None, description="Diastolic pressure for blood pressure readings"
    )
    unit: str
    measured_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    uploaded_by: str = Field(default="", description="Source/uploader label")

    @field_validator("measured_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are taken to be UTC so readings stay comparable."""
        return v if v.tzinfo is not None else v.replace(tzinfo=UTC)


class Alert(BaseModel):
    """A generated alert. Lifecycle changes produce a new copy."""

    model_config = ConfigDict(frozen=True)

    id: str
    patient_id: str
    measurement_id: str = Field(description="Empty for reminders with no source reading")
    category: AlertCategory
    priority: AlertPriority
    title: str
    message: str
    suggestion: str
    status: AlertStatus = AlertStatus.PENDING
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    confirmed_at: datetime | None = None
    confirmed_by: str | None = None


class ThinkingStep(BaseModel):
    """One entry of the explainable decision trace."""

    model_config = ConfigDict(frozen=True)

    step: int = Field(ge=1)
    action: str
    observation: str
    reasoning: str


class AnalysisResult(BaseModel):
    """Outcome of one interactive analysis call."""

    alert: Alert | None
    thinking_process: list[ThinkingStep] = Field(default_factory=list)
    priority: AlertPriority
    confidence: float = Field(gt=0.0, le=1.0)
    reasoning: str


class FollowUpTask(BaseModel):
    """Assignable task created when an alert is converted."""

    id: str
    patient_id: str
    alert_id: str
    title: str
    description: str
    due_date: datetime
    status: TaskStatus = "pending"
    assigned_to: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None
    notes: str | None = None
