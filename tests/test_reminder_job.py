"""Tests for the daily reminder job."""

from datetime import date
from unittest.mock import MagicMock, patch

import pytest
import requests

from vaccine_reminder_bot.clinic_records.database import (
    ClinicRepository,
    PatientRepository,
    VaccinationRepository,
)
from vaccine_reminder_bot.clinic_records.database.clinic_repository import Clinic
from vaccine_reminder_bot.clinic_records.database.patient_repository import Patient
from vaccine_reminder_bot.clinic_records.database.vaccination_repository import AdministeredDose
from vaccine_reminder_bot.notifications import NotificationError, WhatsAppSender
from vaccine_reminder_bot.reminder_job import DEFAULT_WINDOWS, main, parse_windows, run_reminder_job

TODAY = date(2023, 12, 31)


@pytest.fixture
def seeded(clinic_db, small_schedule):
    """Two clinics and three patients, all with 6-week doses due 2024-01-01."""
    clinics = ClinicRepository()
    clinics.create(Clinic(
        id="c-wa", name="WhatsApp Clinic", subdomain="wa",
        whatsapp_number="919811111111", whatsapp_api_key="gs-key",
    ))
    clinics.create(Clinic(id="c-plain", name="Plain Clinic", subdomain="plain"))

    patients = PatientRepository()
    patients.create(Patient(
        id="pt-1", clinic_id="c-wa", name="Asha", date_of_birth="2023-11-20",
        guardian_name="Ravi", guardian_email="ravi@email.com", guardian_phone="919800000001",
    ))
    patients.create(Patient(
        id="pt-2", clinic_id="c-wa", name="Bela", date_of_birth="2023-11-20",
        guardian_email="", guardian_phone="919800000002",
    ))
    patients.create(Patient(
        id="pt-3", clinic_id="c-plain", name="Chetan", date_of_birth="2023-11-20",
        guardian_email="chetan.parent@email.com", guardian_phone="919800000003",
    ))

    VaccinationRepository().upsert(AdministeredDose(
        patient_id="pt-1", age_label="6 weeks", vaccine="HIB (1)", given_date="2023-12-30",
    ))
    return small_schedule


class TestParseWindows:
    def test_parse(self):
        assert parse_windows("1, 7,14") == (1, 7, 14)

    @pytest.mark.parametrize("value", [None, "", "soon", " , "])
    def test_defaults(self, value):
        assert parse_windows(value) == DEFAULT_WINDOWS


class TestRunReminderJobEmail:
    """Email channel."""

    def test_sends_one_email_per_group(self, seeded):
        sender = MagicMock()
        result = run_reminder_job(today=TODAY, schedule=seeded, email_sender=sender)

        assert result.selected == 3
        assert result.sent == 2
        assert result.skipped == 1  # pt-2 has no guardian email
        assert result.failed == 0

        recipients = [c.args[0] for c in sender.send.call_args_list]
        assert recipients == ["ravi@email.com", "chetan.parent@email.com"]
        subject = sender.send.call_args_list[0].args[1]
        assert subject == "Vaccination Reminder: 2024-01-01 for Asha"

    def test_given_dose_left_out(self, seeded):
        result = run_reminder_job(today=TODAY, schedule=seeded, email_sender=MagicMock())
        by_patient = {g.patient_id: g.vaccines for g in result.groups}
        assert by_patient["pt-1"] == ["IPV (1)"]
        assert by_patient["pt-3"] == ["HIB (1)", "IPV (1)"]

    def test_failure_does_not_block_later_groups(self, seeded):
        sender = MagicMock()
        sender.send.side_effect = [NotificationError("smtp down"), None]

        result = run_reminder_job(today=TODAY, schedule=seeded, email_sender=sender)

        assert sender.send.call_count == 2
        assert result.failed == 1
        assert result.sent == 1

    def test_clinic_filter(self, seeded):
        sender = MagicMock()
        result = run_reminder_job(today=TODAY, schedule=seeded, clinic_id="c-plain", email_sender=sender)
        assert result.selected == 1
        assert result.groups[0].patient_id == "pt-3"

    def test_nothing_due(self, seeded):
        sender = MagicMock()
        result = run_reminder_job(today=date(2023, 12, 29), schedule=seeded, email_sender=sender)
        assert result.selected == 0
        sender.send.assert_not_called()

    def test_same_day_rerun_reselects(self, seeded):
        first = run_reminder_job(today=TODAY, schedule=seeded, email_sender=MagicMock())
        second = run_reminder_job(today=TODAY, schedule=seeded, email_sender=MagicMock())
        assert [g.key for g in first.groups] == [g.key for g in second.groups]

    def test_unknown_channel(self, seeded):
        with pytest.raises(ValueError, match="pigeon"):
            run_reminder_job(today=TODAY, schedule=seeded, channel="pigeon")


class TestRunReminderJobWhatsApp:
    """WhatsApp channel."""

    def test_sends_for_configured_clinics(self, seeded):
        sender = MagicMock()
        result = run_reminder_job(today=TODAY, schedule=seeded, channel="whatsapp", whatsapp_sender=sender)

        assert result.sent == 2  # pt-1 and pt-2 at the WhatsApp clinic
        assert result.skipped == 1  # pt-3's clinic has no WhatsApp
        clinic, destination, template, params = sender.send_template.call_args_list[0].args
        assert clinic.id == "c-wa"
        assert destination == "919800000001"
        assert template == "vaccination_reminder"
        assert params == ["Asha", "IPV (1)", "2024-01-01", "WhatsApp Clinic"]

    def test_failure_counted(self, seeded):
        sender = MagicMock()
        sender.send_template.side_effect = NotificationError("gupshup down")
        result = run_reminder_job(today=TODAY, schedule=seeded, channel="whatsapp", whatsapp_sender=sender)
        assert result.failed == 2
        assert result.sent == 0

    @patch("vaccine_reminder_bot.notifications.requests.post")
    def test_bad_clinic_key_does_not_stop_other_clinics(self, mock_post, clinic_db, small_schedule):
        clinics = ClinicRepository()
        clinics.create(Clinic(id="c-a", name="Clinic A", subdomain="a",
                              whatsapp_number="919811110001", whatsapp_api_key="key\n"))
        clinics.create(Clinic(id="c-b", name="Clinic B", subdomain="b",
                              whatsapp_number="919811110002", whatsapp_api_key="good"))
        patients = PatientRepository()
        patients.create(Patient(id="pt-a", clinic_id="c-a", name="Anya", date_of_birth="2023-11-20",
                                guardian_phone="919800000011"))
        patients.create(Patient(id="pt-b", clinic_id="c-b", name="Bodhi", date_of_birth="2023-11-20",
                                guardian_phone="919800000012"))

        def post(url, data, headers, timeout):
            if headers["apikey"] != headers["apikey"].strip():
                raise requests.exceptions.InvalidHeader("Invalid leading whitespace in header value")
            return MagicMock(status_code=202, json=lambda: {"status": "submitted"})

        mock_post.side_effect = post

        result = run_reminder_job(today=TODAY, schedule=small_schedule, channel="whatsapp",
                                  whatsapp_sender=WhatsAppSender())

        assert result.failed == 1
        assert result.sent == 1
        sources = [c.kwargs["data"]["source"] for c in mock_post.call_args_list]
        assert sources == ["919811110001", "919811110002"]


class TestRunReminderJobArguments:
    def test_invalid_today_rejected(self, clinic_db, small_schedule):
        with pytest.raises(ValueError, match="Invalid run date"):
            run_reminder_job(today="not-a-date", schedule=small_schedule, email_sender=MagicMock())

    def test_string_today_accepted(self, clinic_db, small_schedule):
        result = run_reminder_job(today="2023-12-31", schedule=small_schedule, email_sender=MagicMock())
        assert result.selected == 0


class TestMain:
    @patch("vaccine_reminder_bot.reminder_job.run_reminder_job")
    def test_main_uses_env(self, mock_run, clinic_db, monkeypatch):
        monkeypatch.setenv("REMINDER_CHANNEL", "whatsapp")
        monkeypatch.setenv("REMINDER_WINDOWS", "2")
        mock_run.return_value = MagicMock(groups=[], sent=0, skipped=0, failed=0)

        main()

        mock_run.assert_called_once_with(windows=(2,), channel="whatsapp")

    def test_main_rejects_bad_channel(self, clinic_db, monkeypatch):
        monkeypatch.setenv("REMINDER_CHANNEL", "fax")
        with pytest.raises(SystemExit):
            main()
