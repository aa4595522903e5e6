"""Tests for the two trend strategies."""

import pytest

from vitalsign.config import TrendConfig
from vitalsign.domain.models import AlertPriority, MeasurementType
from vitalsign.services.trends import BaselineShiftTrend, SplitWindowTrend, recent_same_type

HR = MeasurementType.HEART_RATE


def _series(make_measurement, values: list[float], patient_id: str = "p1"):
    """Readings newest first: values[0] is the most recent."""
    return [
        make_measurement(patient_id, HR, value, hours_ago=i) for i, value in enumerate(values)
    ]


class TestRecentSameType:
    def test_filters_patient_and_type_newest_first(self, make_measurement) -> None:
        current = make_measurement("p1", HR, 80)
        history = [
            make_measurement("p1", HR, 70, hours_ago=3),
            make_measurement("p1", HR, 72, hours_ago=1),
            make_measurement("p2", HR, 99, hours_ago=1),
            make_measurement("p1", MeasurementType.WEIGHT, 70, hours_ago=1),
        ]

        samples = recent_same_type(current, history, limit=5)

        assert [m.value for m in samples] == [72, 70]

    def test_limit_keeps_newest(self, make_measurement) -> None:
        current = make_measurement("p1", HR, 80)
        history = _series(make_measurement, [1, 2, 3, 4])
        assert [m.value for m in recent_same_type(current, history, limit=2)] == [1, 2]


class TestBaselineShiftTrend:
    @pytest.fixture
    def trend(self) -> BaselineShiftTrend:
        return BaselineShiftTrend()

    def test_insufficient_history_is_stable(self, trend, make_measurement) -> None:
        current = make_measurement("p1", HR, 120)

        assessment = trend.analyze(current, _series(make_measurement, [70]))

        assert assessment.direction == "stable"
        assert "Insufficient" in assessment.observation
        assert assessment.sample_count == 1

    def test_identical_values_are_stable(self, trend, make_measurement) -> None:
        history = _series(make_measurement, [72, 72, 72, 72, 72])
        current = history[0]

        assessment = trend.analyze(current, history)

        assert assessment.direction == "stable"
        assert assessment.change_percent == 0

    @pytest.mark.parametrize(
        "value,direction", [(104, "stable"), (96, "stable"), (110, "up"), (90, "down")]
    )
    def test_direction_against_baseline(
        self, trend, make_measurement, value: float, direction: str
    ) -> None:
        current = make_measurement("p1", HR, value)

        assessment = trend.analyze(current, _series(make_measurement, [100, 100]))

        assert assessment.direction == direction
        assert assessment.baseline == 100
        assert assessment.change_percent == pytest.approx(value - 100)

    def test_baseline_uses_newest_five(self, trend, make_measurement) -> None:
        history = _series(make_measurement, [100, 100, 100, 100, 100, 1000])
        current = make_measurement("p1", HR, 100)

        assessment = trend.analyze(current, history)

        assert assessment.baseline == 100
        assert assessment.sample_count == 5

    def test_zero_baseline_is_stable(self, trend, make_measurement) -> None:
        history = [
            make_measurement("p1", MeasurementType.WEIGHT, 0, hours_ago=i) for i in (1, 2)
        ]
        current = make_measurement("p1", MeasurementType.WEIGHT, 70)

        assessment = trend.analyze(current, history)

        assert assessment.direction == "stable"
        assert assessment.change_percent is None

    def test_stable_band_is_configurable(self, make_measurement) -> None:
        trend = BaselineShiftTrend(TrendConfig(stable_band_percent=15.0))
        current = make_measurement("p1", HR, 110)

        assessment = trend.analyze(current, _series(make_measurement, [100, 100]))

        assert assessment.direction == "stable"


class TestSplitWindowTrend:
    @pytest.fixture
    def trend(self) -> SplitWindowTrend:
        return SplitWindowTrend()

    @pytest.mark.parametrize("values", [[100], [100, 130], [130, 130, 100]])
    def test_too_few_readings(self, trend, make_measurement, values: list[float]) -> None:
        history = _series(make_measurement, values)
        # Three readings leave no older window
        assert trend.analyze(history[0], history) is None

    @pytest.mark.parametrize(
        "values,direction,priority",
        [
            ([130, 130, 130, 100, 100], "up", AlertPriority.HIGH),
            ([120, 120, 120, 100, 100], "up", AlertPriority.MEDIUM),
            ([70, 70, 70, 100, 100], "down", AlertPriority.HIGH),
            ([80, 80, 80, 100, 100], "down", AlertPriority.MEDIUM),
        ],
    )
    def test_shift_priority(
        self,
        trend,
        make_measurement,
        values: list[float],
        direction: str,
        priority: AlertPriority,
    ) -> None:
        history = _series(make_measurement, values)

        shift = trend.analyze(history[0], history)

        assert shift is not None
        assert shift.direction == direction
        assert shift.priority is priority
        assert shift.older_average == 100

    def test_shift_within_threshold_is_ignored(self, trend, make_measurement) -> None:
        history = _series(make_measurement, [114, 114, 114, 100])
        assert trend.analyze(history[0], history) is None

    def test_only_ten_newest_considered(self, trend, make_measurement) -> None:
        # Without the cap the ancient 1000 would dominate the older average
        history = _series(make_measurement, [100] * 10 + [1000])
        assert trend.analyze(history[0], history) is None

    def test_zero_older_average_is_ignored(self, trend, make_measurement) -> None:
        history = [
            make_measurement("p1", MeasurementType.WEIGHT, value, hours_ago=i)
            for i, value in enumerate([70, 70, 70, 0, 0])
        ]
        assert trend.analyze(history[0], history) is None
