"""Per-patient vaccination chart rows and status counts."""

from dataclasses import dataclass

from vaccine_reminder_bot.due_dates import (
    effective_due_date,
    record_field,
    to_date,
    vaccination_status,
)
from vaccine_reminder_bot.schedule import STATUS_LABELS, VaccinationStatus, iter_schedule


@dataclass
class ChartRow:
    age_label: str
    vaccine: str
    due_date: str | None
    given_date: str | None
    lot_number: str | None
    status: VaccinationStatus

    @property
    def status_label(self) -> str:
        return STATUS_LABELS[self.status]


def build_vaccination_chart(patient, doses, schedule, today) -> list[ChartRow]:
    """One row per schedule (age label, vaccine), merged with the patient's records."""
    patient_id = record_field(patient, "id")
    records = {}
    for dose in doses:
        if patient_id is None or record_field(dose, "patient_id") != patient_id:
            continue
        records[(record_field(dose, "age_label"), record_field(dose, "vaccine"))] = dose

    rows = []
    for age_label, vaccine in iter_schedule(schedule):
        record = records.get((age_label, vaccine))
        due = effective_due_date(
            record_field(patient, "date_of_birth"),
            age_label,
            record_field(record, "due_date"),
        )
        given = to_date(record_field(record, "given_date"))
        rows.append(ChartRow(
            age_label=age_label,
            vaccine=vaccine,
            due_date=due.isoformat() if due else None,
            given_date=given.isoformat() if given else None,
            lot_number=record_field(record, "lot_number"),
            status=vaccination_status(due, given, today),
        ))
    return rows


def summarize_chart(rows: list[ChartRow]) -> dict[str, int]:
    """Count rows per status, plus a total."""
    summary = {"total": len(rows)}
    for status in VaccinationStatus:
        summary[status.value] = 0
    for row in rows:
        summary[row.status.value] += 1
    return summary
