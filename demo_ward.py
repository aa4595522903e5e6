"""
End-to-end demonstration of the ward monitoring pipeline.

This script walks through:
1. Configuration loading
2. Interactive analysis of uploaded readings with the thinking trace
3. Agent batch analysis over the last day
4. Full-sweep rule screening and follow-up reminders
5. Alert workflow: confirm, dismiss and convert to a task

Run with: python demo_ward.py
"""

import asyncio
from datetime import UTC, date, datetime, timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from vitalsign.config import get_config, print_config_summary
from vitalsign.domain.models import (
    Alert,
    AlertPriority,
    Measurement,
    MeasurementType,
    Patient,
)
from vitalsign.domain.reference import format_value
from vitalsign.logs import configure_logging
from vitalsign.services.ward_monitoring import WardMonitoringService

console = Console()

PRIORITY_STYLES = {
    AlertPriority.CRITICAL: "bold red",
    AlertPriority.HIGH: "red",
    AlertPriority.MEDIUM: "yellow",
    AlertPriority.LOW: "cyan",
}

UNITS = {
    MeasurementType.BLOOD_PRESSURE: "mmHg",
    MeasurementType.BLOOD_SUGAR: "mg/dL",
    MeasurementType.HEART_RATE: "bpm",
    MeasurementType.TEMPERATURE: "°C",
    MeasurementType.OXYGEN_SATURATION: "%",
    MeasurementType.WEIGHT: "kg",
}

PATIENTS = [
    Patient(
        id="p1",
        name="Zhang Wei",
        age=68,
        gender="male",
        room_number="301",
        bed_number="A",
        diagnosis="Hypertension, coronary heart disease",
        admission_date=date(2024, 1, 10),
    ),
    Patient(
        id="p2",
        name="Li Na",
        age=55,
        gender="female",
        room_number="302",
        bed_number="B",
        diagnosis="Type 2 diabetes",
        admission_date=date(2024, 1, 12),
    ),
    Patient(
        id="p3",
        name="Wang Fang",
        age=72,
        gender="female",
        room_number="303",
        bed_number="A",
        diagnosis="COPD, chronic lung disease",
        admission_date=date(2024, 1, 8),
    ),
    Patient(
        id="p4",
        name="Chen Jun",
        age=45,
        gender="male",
        room_number="304",
        bed_number="C",
        diagnosis="Community-acquired pneumonia",
        admission_date=date(2024, 1, 14),
    ),
]


def _reading(
    index: int,
    patient_id: str,
    measurement_type: MeasurementType,
    value: float,
    hours_ago: float,
    secondary_value: float | None = None,
) -> Measurement:
    return Measurement(
        id=f"m{index}",
        patient_id=patient_id,
        type=measurement_type,
        value=value,
        secondary_value=secondary_value,
        unit=UNITS[measurement_type],
        measured_at=datetime.now(UTC) - timedelta(hours=hours_ago),
        uploaded_by="demo-nurse",
    )


def history_readings() -> list[Measurement]:
    """A few days of readings so trend analysis has something to work with."""
    bp = MeasurementType.BLOOD_PRESSURE
    sugar = MeasurementType.BLOOD_SUGAR
    spo2 = MeasurementType.OXYGEN_SATURATION
    temp = MeasurementType.TEMPERATURE
    rows = [
        ("p1", bp, 138, 30, 88),
        ("p1", bp, 142, 20, 90),
        ("p1", bp, 145, 10, 92),
        ("p2", sugar, 120, 30, None),
        ("p2", sugar, 130, 26, None),
        ("p2", sugar, 128, 22, None),
        ("p2", sugar, 170, 6, None),
        ("p2", sugar, 185, 4, None),
        ("p2", sugar, 190, 2, None),
        ("p3", spo2, 96, 20, None),
        ("p3", spo2, 95, 12, None),
        ("p4", temp, 37.2, 14, None),
        ("p4", temp, 37.8, 10, None),
    ]
    return [
        _reading(i, patient_id, kind, value, hours_ago, secondary)
        for i, (patient_id, kind, value, hours_ago, secondary) in enumerate(rows, 1)
    ]


def print_alerts(title: str, alerts: list[Alert]) -> None:
    table = Table(title=title)
    table.add_column("Priority", style="white")
    table.add_column("Category", style="magenta")
    table.add_column("Patient", style="cyan")
    table.add_column("Title", style="white")

    for alert in alerts:
        table.add_row(
            f"[{PRIORITY_STYLES[alert.priority]}]{alert.priority.value.upper()}[/]",
            alert.category.value,
            alert.patient_id,
            alert.title,
        )

    console.print(table)


async def demo_interactive_analysis(service: WardMonitoringService) -> bool:
    """Upload new readings and show the explainable trace for each."""

    console.print(Panel("🩺 Interactive Analysis", style="blue"))

    uploads = [
        _reading(100, "p1", MeasurementType.BLOOD_PRESSURE, 185, 0, secondary_value=110),
        _reading(101, "p3", MeasurementType.OXYGEN_SATURATION, 93, 0),
        _reading(102, "p4", MeasurementType.TEMPERATURE, 36.8, 0),
    ]

    try:
        for measurement in uploads:
            patient = service.patients[measurement.patient_id]
            result = await service.ingest(measurement)

            console.print(
                f"\n📥 {patient.name}: {measurement.type.value} {format_value(measurement)}",
                style="bold",
            )
            for step in result.thinking_process:
                console.print(f"  {step.step}. [cyan]{step.action}[/] - {step.observation}")

            if result.alert is None:
                console.print("  ✅ No alert needed", style="green")
            else:
                console.print(
                    f"  🔔 {result.priority.value.upper()} alert "
                    f"(confidence {result.confidence:.0%}): {result.alert.title}",
                    style=PRIORITY_STYLES[result.priority],
                )
        return True

    except Exception as e:
        console.print(f"❌ Interactive analysis failed: {e}", style="red")
        return False


async def demo_batch_and_sweep(service: WardMonitoringService) -> bool:
    """Batch analysis, full-sweep screening and reminder sweep."""

    console.print(Panel("📊 Batch Analysis and Screening", style="blue"))

    try:
        batch_alerts = await service.run_batch_analysis()
        print_alerts("Agent batch analysis (last 24h)", batch_alerts)

        sweep_alerts = await service.run_full_sweep()
        print_alerts("Full-sweep rule screening", sweep_alerts)

        reminders = await service.sweep_reminders(
            [MeasurementType.BLOOD_PRESSURE, MeasurementType.HEART_RATE]
        )
        print_alerts("Follow-up reminders", reminders)
        return True

    except Exception as e:
        console.print(f"❌ Batch analysis failed: {e}", style="red")
        return False


async def demo_workflow(service: WardMonitoringService) -> bool:
    """Walk a few alerts through their lifecycle."""

    console.print(Panel("📋 Alert Workflow", style="blue"))

    workflow = service.workflow
    pending = [a for a in workflow.alerts if not a.status.is_terminal]
    if len(pending) < 3:
        console.print("Not enough pending alerts to demonstrate the workflow", style="yellow")
        return True

    confirmed = workflow.confirm(pending[0].id, confirmed_by="Nurse Liu")
    console.print(f"✅ Confirmed: {confirmed.title} by {confirmed.confirmed_by}")

    dismissed = workflow.dismiss(pending[1].id)
    console.print(f"🗑️ Dismissed: {dismissed.title}")

    task = workflow.convert_to_task(pending[2].id, assigned_to="Nurse Zhao")
    if task is not None:
        console.print(
            f"📌 Task created for {task.assigned_to}, due {task.due_date:%Y-%m-%d %H:%M}"
        )

    # Terminal states stay put
    again = workflow.dismiss(pending[0].id)
    console.print(f"🔒 Re-dismissing a confirmed alert leaves it {again.status.value}")

    console.print(f"\nPending alerts remaining: {workflow.pending_count()}", style="yellow")

    patient = service.patients[pending[0].patient_id]
    console.print(
        Panel(service.agent.personalized_suggestion(pending[0], patient), title="Suggestion")
    )
    return True


async def main() -> None:
    config = get_config()
    configure_logging(config.logging)

    console.print(Panel("🏥 Ward Vital-Sign Monitoring Demo", style="bold blue"))
    print_config_summary()

    service = WardMonitoringService(config)
    for patient in PATIENTS:
        service.register_patient(patient)
    for measurement in history_readings():
        service.store.add(measurement)

    console.print(service.agent.introduce())

    results = {}
    async with service.monitoring_session():
        results["Interactive analysis"] = await demo_interactive_analysis(service)
        results["Batch and screening"] = await demo_batch_and_sweep(service)
        results["Alert workflow"] = await demo_workflow(service)
        console.print(service.status_report())

    summary = Table(title="Demo Summary")
    summary.add_column("Stage", style="cyan")
    summary.add_column("Result", style="white")
    for stage, ok in results.items():
        summary.add_row(stage, "[green]PASS[/]" if ok else "[red]FAIL[/]")
    console.print(summary)


if __name__ == "__main__":
    asyncio.run(main())
