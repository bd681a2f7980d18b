"""Shared pytest fixtures."""

from datetime import date

import pytest

from vaccine_reminder_bot.clinic_records.database import connection, init_database
from vaccine_reminder_bot.clinic_records.database.patient_repository import Patient
from vaccine_reminder_bot.schedule import ScheduleEntry


@pytest.fixture
def clinic_db(tmp_path, monkeypatch):
    """Point the record store at a fresh SQLite file for one test."""
    monkeypatch.setattr(connection, "DB_PATH", tmp_path / "clinic_records.db")
    init_database()
    yield tmp_path / "clinic_records.db"


@pytest.fixture
def small_schedule():
    """A short schedule that keeps reminder expectations readable."""
    return (
        ScheduleEntry(age_label="BIRTH", vaccines=("BCG", "OPV (0)")),
        ScheduleEntry(age_label="6 weeks", vaccines=("HIB (1)", "IPV (1)")),
        ScheduleEntry(age_label="10 weeks", vaccines=("HIB (2)",)),
    )


@pytest.fixture
def baby():
    """Patient born 2023-11-20, so 6 weeks falls on 2024-01-01."""
    return Patient(
        id="pt-baby",
        clinic_id="c-test",
        name="Baby Test",
        date_of_birth="2023-11-20",
        guardian_name="Guardian Test",
        guardian_email="guardian@email.com",
        guardian_phone="919800000000",
    )


@pytest.fixture
def six_week_date():
    return date(2024, 1, 1)
