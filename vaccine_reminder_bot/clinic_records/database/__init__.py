from .connection import get_connection, init_database
from .clinic_repository import ClinicRepository
from .patient_repository import PatientRepository
from .vaccination_repository import VaccinationRepository

__all__ = [
    "get_connection",
    "init_database",
    "ClinicRepository",
    "PatientRepository",
    "VaccinationRepository",
]
