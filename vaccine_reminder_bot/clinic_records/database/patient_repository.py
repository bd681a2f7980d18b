"""Patient repository with CRUD operations."""

import uuid
from dataclasses import dataclass
from datetime import datetime

from .connection import get_connection


@dataclass
class Patient:
    id: str
    name: str
    date_of_birth: str | None
    clinic_id: str | None = None
    guardian_name: str | None = None
    guardian_email: str | None = None
    guardian_phone: str | None = None
    created_at: str | None = None


class PatientRepository:
    """Repository for patient CRUD operations."""

    # Fields that can be updated
    PATIENT_FIELDS = [
        "clinic_id", "name", "date_of_birth",
        "guardian_name", "guardian_email", "guardian_phone",
    ]

    def create(self, patient: Patient) -> Patient:
        """Create a new patient."""
        conn = get_connection()
        cursor = conn.cursor()

        patient.id = patient.id or str(uuid.uuid4())
        # Empty email is stored as NULL so reminders skip it cleanly
        if patient.guardian_email is not None and not patient.guardian_email.strip():
            patient.guardian_email = None
        now = datetime.now().isoformat()

        cursor.execute("""
            INSERT INTO patients (
                id, clinic_id, name, date_of_birth,
                guardian_name, guardian_email, guardian_phone, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            patient.id, patient.clinic_id, patient.name, patient.date_of_birth,
            patient.guardian_name, patient.guardian_email, patient.guardian_phone, now
        ))

        conn.commit()
        conn.close()

        patient.created_at = now
        return patient

    def get_by_id(self, patient_id: str) -> Patient | None:
        """Get a patient by ID."""
        conn = get_connection()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM patients WHERE id = ?", (patient_id,))
        row = cursor.fetchone()
        conn.close()
        return self._row_to_patient(row) if row else None

    def list_patients(self, clinic_id: str | None = None) -> list[Patient]:
        """List all patients, optionally limited to one clinic."""
        conn = get_connection()
        cursor = conn.cursor()
        if clinic_id:
            cursor.execute(
                "SELECT * FROM patients WHERE clinic_id = ? ORDER BY name",
                (clinic_id,)
            )
        else:
            cursor.execute("SELECT * FROM patients ORDER BY name")
        rows = cursor.fetchall()
        conn.close()
        return [self._row_to_patient(row) for row in rows]

    def update(self, patient_id: str, updates: dict) -> Patient | None:
        """Update allowed patient fields."""
        valid_updates = {k: v for k, v in updates.items() if k in self.PATIENT_FIELDS}
        if not valid_updates:
            return self.get_by_id(patient_id)

        conn = get_connection()
        cursor = conn.cursor()
        set_clause = ", ".join(f"{field} = ?" for field in valid_updates)
        cursor.execute(
            f"UPDATE patients SET {set_clause} WHERE id = ?",
            list(valid_updates.values()) + [patient_id]
        )
        conn.commit()
        conn.close()
        return self.get_by_id(patient_id)

    def delete(self, patient_id: str) -> bool:
        """Delete a patient and their vaccination records."""
        conn = get_connection()
        cursor = conn.cursor()
        cursor.execute("DELETE FROM vaccinations WHERE patient_id = ?", (patient_id,))
        cursor.execute("DELETE FROM patients WHERE id = ?", (patient_id,))
        deleted = cursor.rowcount > 0
        conn.commit()
        conn.close()
        return deleted

    def _row_to_patient(self, row) -> Patient:
        """Convert a database row to a Patient object."""
        return Patient(
            id=row["id"],
            clinic_id=row["clinic_id"],
            name=row["name"],
            date_of_birth=row["date_of_birth"],
            guardian_name=row["guardian_name"],
            guardian_email=row["guardian_email"],
            guardian_phone=row["guardian_phone"],
            created_at=row["created_at"],
        )
