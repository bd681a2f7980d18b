"""Seed the database with a demo clinic, patients and vaccination records."""

from datetime import date, timedelta

from vaccine_reminder_bot.clinic_records.database import (
    ClinicRepository,
    PatientRepository,
    VaccinationRepository,
    init_database,
)
from vaccine_reminder_bot.clinic_records.database.clinic_repository import Clinic
from vaccine_reminder_bot.clinic_records.database.patient_repository import Patient
from vaccine_reminder_bot.clinic_records.database.vaccination_repository import AdministeredDose


MOCK_CLINIC = Clinic(
    id="c-001",
    name="Little Steps Pediatrics",
    subdomain="littlesteps",
    whatsapp_number="919800000001",
    whatsapp_display_name="Little Steps",
)


def build_mock_patients(today: date) -> list[Patient]:
    """Children whose milestones land inside the default reminder windows."""
    return [
        Patient(
            id="pt-001",
            clinic_id=MOCK_CLINIC.id,
            name="Aarav Sharma",
            # 6 weeks old in 7 days
            date_of_birth=(today + timedelta(days=7) - timedelta(weeks=6)).isoformat(),
            guardian_name="Priya Sharma",
            guardian_email="priya.sharma@email.com",
            guardian_phone="919800000101",
        ),
        Patient(
            id="pt-002",
            clinic_id=MOCK_CLINIC.id,
            name="Diya Patel",
            # 10 weeks old tomorrow
            date_of_birth=(today + timedelta(days=1) - timedelta(weeks=10)).isoformat(),
            guardian_name="Rohan Patel",
            guardian_email="rohan.patel@email.com",
            guardian_phone="919800000102",
        ),
        Patient(
            id="pt-003",
            clinic_id=MOCK_CLINIC.id,
            name="Kabir Singh",
            date_of_birth="2022-03-15",
            guardian_name="Meera Singh",
            guardian_phone="919800000103",
        ),
    ]


def build_mock_doses(patients: list[Patient]) -> list[AdministeredDose]:
    """Doses dated from each patient's date of birth."""
    doses = []
    for patient in patients:
        for vaccine in ("BCG", "OPV (0)", "Hepatitis B (1)"):
            doses.append(AdministeredDose(
                patient_id=patient.id,
                age_label="BIRTH",
                vaccine=vaccine,
                given_date=patient.date_of_birth,
                lot_number=f"LOT-{vaccine[:3].upper()}-01",
            ))
    # Given a week ahead of schedule, so no reminder for it
    first = next(p for p in patients if p.id == "pt-001")
    doses.append(AdministeredDose(
        patient_id=first.id,
        age_label="6 weeks",
        vaccine="Rotavirus (1)",
        given_date=(date.fromisoformat(first.date_of_birth) + timedelta(weeks=5)).isoformat(),
    ))
    return doses


def seed_database(today: date | None = None):
    """Seed the database with mock data."""
    today = today or date.today()
    init_database()

    clinic_repo = ClinicRepository()
    patient_repo = PatientRepository()
    vaccination_repo = VaccinationRepository()

    print("Creating clinic...")
    if clinic_repo.get_by_id(MOCK_CLINIC.id):
        print(f"  Skipping {MOCK_CLINIC.name} (already exists)")
    else:
        clinic_repo.create(MOCK_CLINIC)
        print(f"  Created {MOCK_CLINIC.name} ({MOCK_CLINIC.subdomain})")

    print("Creating patients...")
    patients = []
    for patient in build_mock_patients(today):
        existing = patient_repo.get_by_id(patient.id)
        if existing:
            print(f"  Skipping {patient.name} (already exists)")
            # Doses follow the stored date of birth, not today's mock one
            patients.append(existing)
            continue
        patients.append(patient_repo.create(patient))
        print(f"  Created {patient.name} (DOB {patient.date_of_birth})")

    print("Creating vaccination records...")
    doses = build_mock_doses(patients)
    for dose in doses:
        vaccination_repo.upsert(dose)

    print("\nDatabase seeded successfully!")
    print("  - 1 clinic")
    print(f"  - {len(patients)} patients")
    print(f"  - {len(doses)} vaccination records")


if __name__ == "__main__":
    seed_database()
