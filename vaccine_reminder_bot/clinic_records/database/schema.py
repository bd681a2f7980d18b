"""
Clinic Records Database Schema
Supports clinics (tenants), patients with guardian contacts, and vaccination records.
"""

SCHEMA = """
-- =============================================================================
-- 1. CLINICS - Tenants, identified by subdomain
-- =============================================================================
CREATE TABLE IF NOT EXISTS clinics (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    subdomain TEXT NOT NULL UNIQUE,

    -- WhatsApp (Gupshup) credentials
    whatsapp_number TEXT,
    whatsapp_api_key TEXT,
    whatsapp_display_name TEXT,

    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);


-- =============================================================================
-- 2. PATIENTS - Children registered at a clinic
-- =============================================================================
CREATE TABLE IF NOT EXISTS patients (
    id TEXT PRIMARY KEY,
    clinic_id TEXT,

    name TEXT NOT NULL,
    date_of_birth TEXT,  -- YYYY-MM-DD

    -- Guardian contact
    guardian_name TEXT,
    guardian_email TEXT,
    guardian_phone TEXT,

    created_at TEXT DEFAULT CURRENT_TIMESTAMP,

    FOREIGN KEY (clinic_id) REFERENCES clinics(id)
);

CREATE INDEX IF NOT EXISTS idx_patients_clinic ON patients(clinic_id);


-- =============================================================================
-- 3. VACCINATIONS - Administered / scheduled doses
-- =============================================================================
-- One row per (patient, age label, vaccine). due_date overrides the computed one.
CREATE TABLE IF NOT EXISTS vaccinations (
    id TEXT PRIMARY KEY,
    patient_id TEXT NOT NULL,
    age_label TEXT NOT NULL,
    vaccine TEXT NOT NULL,

    due_date TEXT,
    given_date TEXT,
    lot_number TEXT,

    updated_at TEXT DEFAULT CURRENT_TIMESTAMP,

    UNIQUE (patient_id, age_label, vaccine),
    FOREIGN KEY (patient_id) REFERENCES patients(id)
);

CREATE INDEX IF NOT EXISTS idx_vaccinations_patient ON vaccinations(patient_id);
CREATE INDEX IF NOT EXISTS idx_vaccinations_due ON vaccinations(due_date);
"""
