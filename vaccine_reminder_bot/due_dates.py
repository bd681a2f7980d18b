"""Due-date resolution for schedule age labels."""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from dateutil.relativedelta import relativedelta

from vaccine_reminder_bot.schedule import VaccinationStatus

BIRTH_LABEL = "BIRTH"

# First <number>[-<number>] <unit> in the label. For ranges the lower bound wins.
AGE_LABEL_PATTERN = re.compile(r"(\d+)(?:\s*-\s*\d+)?\s*(weeks|mo|yrs)")

# "Due soon" horizon used by the vaccination chart
DUE_SOON_DAYS = 7


@dataclass(frozen=True)
class AgeOffset:
    """Parsed age label: an amount and a unit (weeks, mo or yrs)."""
    amount: int
    unit: str

    def to_relativedelta(self) -> relativedelta:
        if self.unit == "weeks":
            return relativedelta(days=7 * self.amount)
        if self.unit == "mo":
            return relativedelta(months=self.amount)
        return relativedelta(years=self.amount)


def to_date(value) -> date | None:
    """Coerce a date, datetime or ISO string to a date. Returns None if invalid."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        # Accept full timestamps like "2024-01-01T00:00:00Z" by keeping the day part
        if len(text) > 10 and text[10] in "T ":
            text = text[:10]
        try:
            return date.fromisoformat(text)
        except ValueError:
            return None
    return None


def record_field(record, name: str):
    """Read a field from a dataclass-like object or a plain dict row."""
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def is_given(given_date) -> bool:
    """A dose counts as given only when its given date parses."""
    return to_date(given_date) is not None


def parse_age_label(age_label) -> AgeOffset | None:
    """Parse "<N> weeks", "<N> mo", "<N> yrs" (or a range like "16-18 mo")."""
    if not isinstance(age_label, str):
        return None
    match = AGE_LABEL_PATTERN.search(age_label)
    if not match:
        return None
    number, unit = match.groups()
    return AgeOffset(amount=int(number), unit=unit)


def resolve_due_date(date_of_birth, age_label) -> date | None:
    """
    Compute the calendar due date for a schedule milestone.

    Month and year offsets clamp to the last day of the target month,
    so Jan 31 + 1 mo is Feb 28 (or 29) and Feb 29 + 1 yrs is Feb 28.

    Returns None for a missing/invalid date of birth or an unparseable label.
    """
    dob = to_date(date_of_birth)
    if dob is None:
        return None

    if age_label == BIRTH_LABEL:
        return dob

    offset = parse_age_label(age_label)
    if offset is None:
        return None

    try:
        return dob + offset.to_relativedelta()
    except (OverflowError, ValueError):
        # Offsets past date.max
        return None


def effective_due_date(date_of_birth, age_label, recorded_due_date=None) -> date | None:
    """Recorded due date if one is stored, otherwise the computed one."""
    recorded = to_date(recorded_due_date)
    if recorded is not None:
        return recorded
    return resolve_due_date(date_of_birth, age_label)


def vaccination_status(due_date, given_date, today) -> VaccinationStatus:
    """Classify a dose for the vaccination chart."""
    if is_given(given_date):
        return VaccinationStatus.COMPLETED

    due = to_date(due_date)
    today = to_date(today)
    if due is None or today is None:
        return VaccinationStatus.UPCOMING
    if due < today:
        return VaccinationStatus.OVERDUE
    if due <= today + timedelta(days=DUE_SOON_DAYS):
        return VaccinationStatus.DUE
    return VaccinationStatus.UPCOMING
