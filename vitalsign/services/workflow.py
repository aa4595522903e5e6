"""
Alert lifecycle and follow-up tasks.

pending -> confirmed | dismissed | converted. All three targets are terminal;
a transition requested from a terminal state is logged and ignored, and the
alert is returned unchanged. Converting an alert creates a follow-up task.
"""

from collections.abc import Iterable
from datetime import datetime, timedelta

import structlog

from vitalsign.config import ReminderConfig
from vitalsign.domain.models import Alert, AlertStatus, FollowUpTask, TaskStatus
from vitalsign.services.composer import Clock, IdFactory, new_id, utc_now

logger = structlog.get_logger(__name__)

UNASSIGNED = "unassigned"


class AlertWorkflow:
    """In-memory alert board with lifecycle transitions and task conversion."""

    def __init__(
        self,
        reminder_config: ReminderConfig | None = None,
        id_factory: IdFactory = new_id,
        clock: Clock = utc_now,
    ) -> None:
        self.reminder_config = reminder_config or ReminderConfig()
        self.id_factory = id_factory
        self.clock = clock
        self.logger = logger.bind(component="alert_workflow")
        self._alerts: dict[str, Alert] = {}
        self._tasks: dict[str, FollowUpTask] = {}

    def add(self, alert: Alert) -> Alert:
        self._alerts[alert.id] = alert
        self.logger.info(
            "alert_added",
            alert_id=alert.id,
            patient_id=alert.patient_id,
            priority=alert.priority.value,
            category=alert.category.value,
        )
        return alert

    def add_many(self, alerts: Iterable[Alert]) -> list[Alert]:
        return [self.add(alert) for alert in alerts]

    def get(self, alert_id: str) -> Alert:
        return self._alerts[alert_id]

    @property
    def alerts(self) -> list[Alert]:
        """All alerts, newest first."""
        return sorted(self._alerts.values(), key=lambda a: a.created_at, reverse=True)

    @property
    def tasks(self) -> list[FollowUpTask]:
        return sorted(self._tasks.values(), key=lambda t: t.created_at, reverse=True)

    def _transition(self, alert_id: str, status: AlertStatus, **updates: object) -> Alert:
        alert = self._alerts[alert_id]
        if alert.status.is_terminal:
            self.logger.warning(
                "alert_transition_ignored",
                alert_id=alert_id,
                current_status=alert.status.value,
                requested_status=status.value,
            )
            return alert

        updated = alert.model_copy(update={"status": status, **updates})
        self._alerts[alert_id] = updated
        self.logger.info("alert_status_changed", alert_id=alert_id, status=status.value)
        return updated

    def confirm(self, alert_id: str, confirmed_by: str) -> Alert:
        return self._transition(
            alert_id,
            AlertStatus.CONFIRMED,
            confirmed_by=confirmed_by,
            confirmed_at=self.clock(),
        )

    def dismiss(self, alert_id: str) -> Alert:
        return self._transition(alert_id, AlertStatus.DISMISSED)

    def convert_to_task(
        self,
        alert_id: str,
        title: str | None = None,
        description: str | None = None,
        due_date: datetime | None = None,
        assigned_to: str | None = None,
    ) -> FollowUpTask | None:
        """
        Convert a pending alert into a follow-up task.

        Returns None when the alert is already in a terminal state.
        """
        alert = self._alerts[alert_id]
        if alert.status.is_terminal:
            self._transition(alert_id, AlertStatus.CONVERTED)
            return None

        now = self.clock()
        task = FollowUpTask(
            id=self.id_factory("task"),
            patient_id=alert.patient_id,
            alert_id=alert.id,
            title=title or alert.title,
            description=description or alert.suggestion,
            due_date=due_date or now + timedelta(hours=self.reminder_config.task_due_hours),
            assigned_to=assigned_to or UNASSIGNED,
            created_at=now,
        )
        self._transition(alert_id, AlertStatus.CONVERTED)
        self._tasks[task.id] = task
        self.logger.info(
            "follow_up_task_created",
            task_id=task.id,
            alert_id=alert_id,
            assigned_to=task.assigned_to,
        )
        return task

    def update_task_status(
        self, task_id: str, status: TaskStatus, notes: str | None = None
    ) -> FollowUpTask:
        task = self._tasks[task_id]
        updated = task.model_copy(
            update={
                "status": status,
                "notes": task.notes if notes is None else notes,
                "completed_at": self.clock() if status == "completed" else task.completed_at,
            }
        )
        self._tasks[task_id] = updated
        return updated

    def pending_count(self) -> int:
        return sum(1 for a in self._alerts.values() if a.status is AlertStatus.PENDING)

    def alerts_for_patient(self, patient_id: str) -> list[Alert]:
        return [a for a in self.alerts if a.patient_id == patient_id]

    def tasks_for_patient(self, patient_id: str) -> list[FollowUpTask]:
        return [t for t in self.tasks if t.patient_id == patient_id]
