"""Vaccination record repository."""

import uuid
from dataclasses import dataclass
from datetime import datetime

from .connection import get_connection


@dataclass
class AdministeredDose:
    patient_id: str | None
    vaccine: str | None
    age_label: str | None = None
    given_date: str | None = None
    due_date: str | None = None
    lot_number: str | None = None
    id: str | None = None


class VaccinationRepository:
    """Repository for vaccination records, keyed by (patient, age label, vaccine)."""

    def upsert(self, dose: AdministeredDose) -> AdministeredDose:
        """Insert or update the record for the dose's (patient, age label, vaccine)."""
        conn = get_connection()
        cursor = conn.cursor()

        now = datetime.now().isoformat()
        cursor.execute("""
            INSERT INTO vaccinations (
                id, patient_id, age_label, vaccine, due_date, given_date, lot_number, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (patient_id, age_label, vaccine) DO UPDATE SET
                due_date = excluded.due_date,
                given_date = excluded.given_date,
                lot_number = excluded.lot_number,
                updated_at = excluded.updated_at
        """, (
            dose.id or str(uuid.uuid4()), dose.patient_id, dose.age_label, dose.vaccine,
            dose.due_date or None, dose.given_date or None, dose.lot_number or None, now
        ))
        conn.commit()

        cursor.execute(
            "SELECT * FROM vaccinations WHERE patient_id = ? AND age_label = ? AND vaccine = ?",
            (dose.patient_id, dose.age_label, dose.vaccine)
        )
        row = cursor.fetchone()
        conn.close()
        return self._row_to_dose(row)

    def get_for_patient(self, patient_id: str) -> list[AdministeredDose]:
        """Get all records for a patient, earliest due date first."""
        conn = get_connection()
        cursor = conn.cursor()
        cursor.execute("""
            SELECT * FROM vaccinations
            WHERE patient_id = ?
            ORDER BY due_date IS NULL, due_date, age_label, vaccine
        """, (patient_id,))
        rows = cursor.fetchall()
        conn.close()
        return [self._row_to_dose(row) for row in rows]

    def list_all(self) -> list[AdministeredDose]:
        """Get every vaccination record (bulk read for the reminder job)."""
        conn = get_connection()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM vaccinations")
        rows = cursor.fetchall()
        conn.close()
        return [self._row_to_dose(row) for row in rows]

    def mark_given(
        self,
        patient_id: str,
        age_label: str,
        vaccine: str,
        given_date: str,
        lot_number: str | None = None,
    ) -> AdministeredDose:
        """Record that a dose was administered, keeping any stored due date."""
        existing = self._get(patient_id, age_label, vaccine)
        return self.upsert(AdministeredDose(
            patient_id=patient_id,
            age_label=age_label,
            vaccine=vaccine,
            due_date=existing.due_date if existing else None,
            given_date=given_date,
            lot_number=lot_number or (existing.lot_number if existing else None),
        ))

    def _get(self, patient_id: str, age_label: str, vaccine: str) -> AdministeredDose | None:
        conn = get_connection()
        cursor = conn.cursor()
        cursor.execute(
            "SELECT * FROM vaccinations WHERE patient_id = ? AND age_label = ? AND vaccine = ?",
            (patient_id, age_label, vaccine)
        )
        row = cursor.fetchone()
        conn.close()
        return self._row_to_dose(row) if row else None

    def _row_to_dose(self, row) -> AdministeredDose:
        """Convert a database row to an AdministeredDose object."""
        return AdministeredDose(
            id=row["id"],
            patient_id=row["patient_id"],
            vaccine=row["vaccine"],
            age_label=row["age_label"],
            given_date=row["given_date"],
            due_date=row["due_date"],
            lot_number=row["lot_number"],
        )
