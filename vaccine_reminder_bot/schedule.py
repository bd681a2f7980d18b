"""Immunization schedule definitions and loading."""

import json
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ScheduleError(Exception):
    """Raised when a schedule file cannot be loaded or validated."""
    pass


class VaccinationStatus(Enum):
    """Status of a single dose on a patient's vaccination chart."""
    COMPLETED = "completed"
    OVERDUE = "overdue"
    DUE = "due"
    UPCOMING = "upcoming"


STATUS_LABELS = {
    VaccinationStatus.COMPLETED: "Completed",
    VaccinationStatus.OVERDUE: "Overdue",
    VaccinationStatus.DUE: "Due Soon",
    VaccinationStatus.UPCOMING: "Upcoming",
}


class ScheduleEntry(BaseModel):
    """One age milestone of the schedule and the vaccines given at it."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    age_label: str = Field(
        ..., alias="age", description='Milestone label, e.g. "BIRTH", "6 weeks", "16-18 mo"'
    )
    vaccines: tuple[str, ...] = Field(
        ..., description="Vaccines due at this milestone, in display order"
    )

    @field_validator("age_label", mode="before")
    @classmethod
    def normalize_age_label(cls, v):
        """Strip surrounding whitespace from the label."""
        if not isinstance(v, str) or not v.strip():
            raise ValueError("age label must be a non-empty string")
        return v.strip()

    @field_validator("vaccines", mode="before")
    @classmethod
    def normalize_vaccines(cls, v):
        """Drop blank vaccine names."""
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, (list, tuple)):
            raise ValueError("vaccines must be a list of names")
        return tuple(name.strip() for name in v if isinstance(name, str) and name.strip())


def _entry(age_label: str, *vaccines: str) -> ScheduleEntry:
    return ScheduleEntry(age_label=age_label, vaccines=vaccines)


# Indian Academy of Pediatrics schedule
IAP_SCHEDULE: tuple[ScheduleEntry, ...] = (
    _entry("BIRTH", "BCG", "OPV (0)", "Hepatitis B (1)"),
    _entry(
        "6 weeks",
        "Hepatitis B (2)", "DTPw / DTaP (1)", "HIB (1)", "IPV (1)",
        "Pneumococcal - PCV (1)", "Rotavirus (1)",
    ),
    _entry(
        "10 weeks",
        "DTPw / DTaP (2)", "HIB (2)", "IPV (2)", "Pneumococcal - PCV (2)", "Rotavirus (2)",
    ),
    _entry(
        "14 weeks",
        "DTPw / DTaP (3)", "HIB (3)", "IPV (3)", "Pneumococcal - PCV (3)", "Rotavirus (3)",
    ),
    _entry("6mo", "Hepatitis B (3) + OPV (1)"),
    _entry("9 mo", "M.M.R. (1) + OPV (2)"),
    _entry("12 mo", "Hepatitis A (1)"),
    _entry("15 mo", "M.M.R. (2) + Varicella (1)", "Pneumo. - PCV Booster"),
    _entry("16-18 mo", "DTPw / DTaP (B1)", "HIB (B1)", "IPV (B1)"),
    _entry("18 mo", "Hepatitis A (2)"),
    _entry("2 yrs", "Typhoid (every 3 yrs)"),
    _entry("4-6 yrs", "DTPw / DTaP (B2)+OPV(3)", "Varicella (2)", "Typhoid (2)"),
    _entry("10-12 yrs", "Td / Tdap", "HPV (0, 1-2 mo, 6 mo)"),
)


def load_schedule(path: str | Path) -> tuple[ScheduleEntry, ...]:
    """
    Load a schedule from a JSON file.

    The file holds a list of objects with "age_label" (or "age") and
    "vaccines" keys. Order in the file is kept as display order.

    Raises:
        ScheduleError: if the file is missing, not JSON, or an entry is invalid.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ScheduleError(f"Schedule file not found: {path}")
    except json.JSONDecodeError as e:
        raise ScheduleError(f"Schedule file is not valid JSON: {e}")

    if not isinstance(data, list):
        raise ScheduleError("Schedule file must contain a list of entries")

    entries = []
    for i, raw in enumerate(data):
        try:
            entries.append(ScheduleEntry.model_validate(raw))
        except ValidationError as e:
            raise ScheduleError(f"Invalid schedule entry at index {i}: {e}")
    return tuple(entries)


def iter_schedule(schedule):
    """Yield (age_label, vaccine) pairs in schedule order."""
    for entry in schedule:
        for vaccine in entry.vaccines:
            yield entry.age_label, vaccine
