"""Selects which patients get a vaccination reminder on a given day."""

from dataclasses import dataclass, field
from datetime import date, timedelta

from vaccine_reminder_bot.due_dates import effective_due_date, is_given, record_field, to_date
from vaccine_reminder_bot.schedule import iter_schedule


@dataclass
class ReminderGroup:
    """Vaccines due for one patient on one date, sent as a single notification."""
    patient: object
    due_date: date
    vaccines: list[str] = field(default_factory=list)

    @property
    def patient_id(self):
        return record_field(self.patient, "id")

    @property
    def due_date_iso(self) -> str:
        return self.due_date.isoformat()

    @property
    def key(self) -> tuple:
        return (self.patient_id, self.due_date_iso)


def _index_doses(doses) -> tuple[set, dict]:
    """
    Build lookups from dose records.

    Returns the set of (patient_id, vaccine) with a parseable given date,
    and the recorded due dates keyed by (patient_id, age_label, vaccine).
    Records missing a patient_id or vaccine are left out of both.
    """
    given = set()
    recorded_due = {}
    for dose in doses:
        patient_id = record_field(dose, "patient_id")
        vaccine = record_field(dose, "vaccine")
        if not patient_id or not vaccine:
            continue
        if is_given(record_field(dose, "given_date")):
            given.add((patient_id, vaccine))
        due = to_date(record_field(dose, "due_date"))
        age_label = record_field(dose, "age_label")
        if due is not None and age_label:
            recorded_due[(patient_id, age_label, vaccine)] = due
    return given, recorded_due


def target_dates(today, windows) -> set[date]:
    """Dates that are exactly `w` days after today for each window."""
    today = to_date(today)
    if today is None:
        return set()
    targets = set()
    for w in windows:
        try:
            targets.add(today + timedelta(days=int(w)))
        except (OverflowError, TypeError, ValueError):
            # Window past date.max or not a number
            continue
    return targets


def select_reminders(patients, doses, schedule, today, windows) -> list[ReminderGroup]:
    """
    Group not-yet-given vaccines whose due date is exactly today + w.

    Every (patient, schedule entry, vaccine) is resolved to a due date
    (a recorded due date wins over the computed one). Vaccines already
    given to the patient are skipped. Results are grouped per
    (patient, due date) with vaccines in schedule order, and groups come
    back in the order they were first found.
    """
    targets = target_dates(today, windows)
    if not targets:
        return []

    given, recorded_due = _index_doses(doses)
    groups: dict[tuple, ReminderGroup] = {}

    for patient in patients:
        patient_id = record_field(patient, "id")
        dob = to_date(record_field(patient, "date_of_birth"))
        if patient_id is None or dob is None:
            continue

        for age_label, vaccine in iter_schedule(schedule):
            due = effective_due_date(
                dob, age_label, recorded_due.get((patient_id, age_label, vaccine))
            )
            if due is None or due not in targets:
                continue
            if (patient_id, vaccine) in given:
                continue

            key = (patient_id, due.isoformat())
            if key not in groups:
                groups[key] = ReminderGroup(patient=patient, due_date=due)
            groups[key].vaccines.append(vaccine)

    return list(groups.values())
