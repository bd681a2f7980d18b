"""Clinic (tenant) repository."""

import uuid
from dataclasses import dataclass
from datetime import datetime

from .connection import get_connection


@dataclass
class Clinic:
    id: str
    name: str
    subdomain: str
    whatsapp_number: str | None = None
    whatsapp_api_key: str | None = None
    whatsapp_display_name: str | None = None
    created_at: str | None = None

    @property
    def whatsapp_configured(self) -> bool:
        return bool(self.whatsapp_number and self.whatsapp_api_key)


class ClinicRepository:
    """Repository for clinic lookups."""

    def create(self, clinic: Clinic) -> Clinic:
        """Create a new clinic."""
        conn = get_connection()
        cursor = conn.cursor()

        clinic.id = clinic.id or str(uuid.uuid4())
        clinic.subdomain = clinic.subdomain.strip().lower()
        now = datetime.now().isoformat()

        cursor.execute("""
            INSERT INTO clinics (
                id, name, subdomain, whatsapp_number, whatsapp_api_key,
                whatsapp_display_name, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (
            clinic.id, clinic.name, clinic.subdomain, clinic.whatsapp_number,
            clinic.whatsapp_api_key, clinic.whatsapp_display_name, now
        ))

        conn.commit()
        conn.close()

        clinic.created_at = now
        return clinic

    def get_by_id(self, clinic_id: str) -> Clinic | None:
        """Get a clinic by ID."""
        conn = get_connection()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM clinics WHERE id = ?", (clinic_id,))
        row = cursor.fetchone()
        conn.close()
        return self._row_to_clinic(row) if row else None

    def get_by_subdomain(self, subdomain: str) -> Clinic | None:
        """Get a clinic by its subdomain (case-insensitive)."""
        if not subdomain:
            return None
        conn = get_connection()
        cursor = conn.cursor()
        cursor.execute(
            "SELECT * FROM clinics WHERE subdomain = ?",
            (subdomain.strip().lower(),)
        )
        row = cursor.fetchone()
        conn.close()
        return self._row_to_clinic(row) if row else None

    def _row_to_clinic(self, row) -> Clinic:
        """Convert a database row to a Clinic object."""
        return Clinic(
            id=row["id"],
            name=row["name"],
            subdomain=row["subdomain"],
            whatsapp_number=row["whatsapp_number"],
            whatsapp_api_key=row["whatsapp_api_key"],
            whatsapp_display_name=row["whatsapp_display_name"],
            created_at=row["created_at"],
        )
