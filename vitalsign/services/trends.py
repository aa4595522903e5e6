"""
Trend analysis over a patient's recent readings of one measurement type.

Two strategies live here and are deliberately kept apart:

- BaselineShiftTrend: used by the interactive single-measurement analysis.
  Compares the current value with the mean of the newest five readings and
  reports a direction that feeds the severity score.
- SplitWindowTrend: used by the full-sweep screening. Compares the mean of the
  newest three readings with the mean of the older ones (up to ten in total)
  and only reports a shift large enough to become an alert of its own.

Call sites rely on their respective semantics, so the two are not unified.
"""

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict

from vitalsign.config import TrendConfig
from vitalsign.domain.models import AlertPriority, Measurement, TrendDirection


class TrendAssessment(BaseModel):
    """Direction of the current reading relative to the recent baseline."""

    model_config = ConfigDict(frozen=True)

    direction: TrendDirection
    observation: str
    reasoning: str
    change_percent: float | None = None
    baseline: float | None = None
    sample_count: int = 0


class TrendShift(BaseModel):
    """A recent-versus-older shift big enough to raise a trend alert."""

    model_config = ConfigDict(frozen=True)

    direction: TrendDirection
    change_percent: float
    recent_average: float
    older_average: float
    priority: AlertPriority


def recent_same_type(
    current: Measurement, history: Iterable[Measurement], limit: int
) -> list[Measurement]:
    """Same patient and type, newest first, at most ``limit`` readings."""
    same_type = [
        m
        for m in history
        if m.type is current.type and m.patient_id == current.patient_id
    ]
    same_type.sort(key=lambda m: m.measured_at, reverse=True)
    return same_type[:limit]


class BaselineShiftTrend:
    """Current value versus the mean of the newest readings."""

    def __init__(self, config: TrendConfig | None = None) -> None:
        self.config = config or TrendConfig()

    def analyze(self, current: Measurement, history: Iterable[Measurement]) -> TrendAssessment:
        samples = recent_same_type(current, history, self.config.baseline_window)

        if len(samples) < self.config.baseline_min_samples:
            return TrendAssessment(
                direction="stable",
                observation="Insufficient history for trend analysis",
                reasoning="More readings are needed before a trend can be judged",
                sample_count=len(samples),
            )

        baseline = sum(m.value for m in samples) / len(samples)
        if baseline == 0:
            return TrendAssessment(
                direction="stable",
                observation="Baseline average is zero, percentage change is undefined",
                reasoning="Trend cannot be judged against a zero baseline",
                baseline=baseline,
                sample_count=len(samples),
            )

        change = (current.value - baseline) / baseline * 100

        if abs(change) < self.config.stable_band_percent:
            return TrendAssessment(
                direction="stable",
                observation=f"Recent values are stable, averaging about {baseline:.1f}",
                reasoning="Variation is within normal fluctuation",
                change_percent=change,
                baseline=baseline,
                sample_count=len(samples),
            )

        if change > 0:
            return TrendAssessment(
                direction="up",
                observation=f"Values are trending up, {change:.1f}% above the average",
                reasoning="Check whether the continued rise reflects a change in condition",
                change_percent=change,
                baseline=baseline,
                sample_count=len(samples),
            )

        return TrendAssessment(
            direction="down",
            observation=f"Values are trending down, {abs(change):.1f}% below the average",
            reasoning="Evaluate the cause of the decline and whether intervention is needed",
            change_percent=change,
            baseline=baseline,
            sample_count=len(samples),
        )


class SplitWindowTrend:
    """Newest-three average versus the average of the older readings."""

    def __init__(self, config: TrendConfig | None = None) -> None:
        self.config = config or TrendConfig()

    def analyze(self, current: Measurement, history: Iterable[Measurement]) -> TrendShift | None:
        samples = recent_same_type(current, history, self.config.split_window)
        if len(samples) < self.config.split_min_samples:
            return None

        values = [m.value for m in samples]
        recent = values[: self.config.split_recent_count]
        older = values[self.config.split_recent_count :]
        if not older:
            return None

        recent_average = sum(recent) / len(recent)
        older_average = sum(older) / len(older)
        if older_average == 0:
            return None

        change = (recent_average - older_average) / older_average * 100
        if abs(change) <= self.config.alert_change_percent:
            return None

        priority = (
            AlertPriority.HIGH
            if abs(change) > self.config.high_change_percent
            else AlertPriority.MEDIUM
        )
        return TrendShift(
            direction="up" if change > 0 else "down",
            change_percent=change,
            recent_average=recent_average,
            older_average=older_average,
            priority=priority,
        )
