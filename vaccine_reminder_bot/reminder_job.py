"""Daily vaccination reminder job."""

import logging
import os
from dataclasses import dataclass
from datetime import date

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from vaccine_reminder_bot.clinic_records.database import (
    ClinicRepository,
    PatientRepository,
    VaccinationRepository,
    init_database,
)
from vaccine_reminder_bot.due_dates import to_date
from vaccine_reminder_bot.notifications import (
    VACCINATION_TEMPLATE,
    EmailSender,
    NotificationError,
    WhatsAppSender,
    reminder_template_params,
    render_reminder_email,
)
from vaccine_reminder_bot.reminder_selector import ReminderGroup, select_reminders
from vaccine_reminder_bot.schedule import IAP_SCHEDULE

load_dotenv(override=True)

logger = logging.getLogger(__name__)

DEFAULT_WINDOWS = (1, 7)
CHANNELS = ("email", "whatsapp")


@dataclass
class ReminderJobResult:
    selected: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    groups: list[ReminderGroup] | None = None


def parse_windows(value: str | None) -> tuple[int, ...]:
    """Parse "1,7" into (1, 7). Empty or invalid input gives the defaults."""
    if not value:
        return DEFAULT_WINDOWS
    try:
        windows = tuple(int(part) for part in value.split(",") if part.strip())
    except ValueError:
        logger.warning("Invalid REMINDER_WINDOWS %r, using %s", value, DEFAULT_WINDOWS)
        return DEFAULT_WINDOWS
    return windows or DEFAULT_WINDOWS


def run_reminder_job(
    today=None,
    windows=DEFAULT_WINDOWS,
    channel: str = "email",
    schedule=IAP_SCHEDULE,
    clinic_id: str | None = None,
    patient_repo: PatientRepository | None = None,
    vaccination_repo: VaccinationRepository | None = None,
    clinic_repo: ClinicRepository | None = None,
    email_sender: EmailSender | None = None,
    whatsapp_sender: WhatsAppSender | None = None,
) -> ReminderJobResult:
    """
    Select today's reminder groups and deliver one notification per group.

    A failed delivery is logged and counted, then the next group is tried.
    Nothing is recorded about sent reminders, so a second run on the same
    day selects the same groups again.
    """
    if channel not in CHANNELS:
        raise ValueError(f"Unknown reminder channel: {channel}")

    if today is None:
        today = date.today()
    else:
        parsed = to_date(today)
        if parsed is None:
            raise ValueError(f"Invalid run date: {today!r}")
        today = parsed

    patient_repo = patient_repo or PatientRepository()
    vaccination_repo = vaccination_repo or VaccinationRepository()

    patients = patient_repo.list_patients(clinic_id=clinic_id)
    doses = vaccination_repo.list_all()
    groups = select_reminders(patients, doses, schedule, today, windows)

    result = ReminderJobResult(selected=len(groups), groups=groups)
    logger.info(
        "Selected %d reminder group(s) for %s (windows=%s, channel=%s)",
        len(groups), today.isoformat(), list(windows), channel,
    )

    if channel == "email":
        sender = email_sender or EmailSender()
        for group in groups:
            _deliver_email(sender, group, result)
    else:
        sender = whatsapp_sender or WhatsAppSender()
        clinic_repo = clinic_repo or ClinicRepository()
        clinics = {}
        for group in groups:
            _deliver_whatsapp(sender, clinic_repo, clinics, group, result)

    logger.info(
        "Reminder job finished: %d sent, %d skipped, %d failed",
        result.sent, result.skipped, result.failed,
    )
    return result


def _deliver_email(sender: EmailSender, group: ReminderGroup, result: ReminderJobResult) -> None:
    patient = group.patient
    if not patient.guardian_email:
        logger.debug("No guardian email for patient %s, skipping", patient.id)
        result.skipped += 1
        return

    subject, body = render_reminder_email(group)
    try:
        sender.send(patient.guardian_email, subject, body)
    except NotificationError as e:
        logger.error("Reminder email for patient %s failed: %s", patient.id, e)
        result.failed += 1
        return
    result.sent += 1


def _deliver_whatsapp(
    sender: WhatsAppSender,
    clinic_repo: ClinicRepository,
    clinics: dict,
    group: ReminderGroup,
    result: ReminderJobResult,
) -> None:
    patient = group.patient
    if not patient.guardian_phone or not patient.clinic_id:
        logger.debug("No guardian phone or clinic for patient %s, skipping", patient.id)
        result.skipped += 1
        return

    if patient.clinic_id not in clinics:
        clinics[patient.clinic_id] = clinic_repo.get_by_id(patient.clinic_id)
    clinic = clinics[patient.clinic_id]
    if clinic is None or not clinic.whatsapp_configured:
        logger.debug("Clinic %s has no WhatsApp configured, skipping", patient.clinic_id)
        result.skipped += 1
        return

    params = reminder_template_params(group, clinic.name)
    try:
        sender.send_template(clinic, patient.guardian_phone, VACCINATION_TEMPLATE, params)
    except NotificationError as e:
        logger.error("WhatsApp reminder for patient %s failed: %s", patient.id, e)
        result.failed += 1
        return
    result.sent += 1


def main():
    """Run the reminder job once for today (intended for a daily cron trigger)."""
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    console = Console()

    init_database()
    channel = os.getenv("REMINDER_CHANNEL", "email")
    windows = parse_windows(os.getenv("REMINDER_WINDOWS"))

    try:
        result = run_reminder_job(windows=windows, channel=channel)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise SystemExit(1)

    table = Table(title=f"Vaccination reminders ({channel})")
    table.add_column("Patient")
    table.add_column("Due date")
    table.add_column("Vaccines")
    for group in result.groups or []:
        table.add_row(group.patient.name, group.due_date_iso, ", ".join(group.vaccines))
    console.print(table)
    console.print(
        f"[bold green]{result.sent} sent[/bold green], "
        f"{result.skipped} skipped, "
        f"[bold red]{result.failed} failed[/bold red]"
    )


if __name__ == "__main__":
    main()
