"""Reminder delivery over email (SMTP) and WhatsApp (Gupshup templates)."""

import html
import json
import logging
import os
import smtplib
from email.errors import MessageError
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import requests
from dotenv import load_dotenv

load_dotenv(override=True)

logger = logging.getLogger(__name__)

EMAIL_PROVIDER = os.getenv("EMAIL_PROVIDER", "sendgrid")
SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
EMAIL_FROM = os.getenv("EMAIL_FROM", "noreply@sendgrid.net")
SENDGRID_SMTP_HOST = "smtp.sendgrid.net"
SENDGRID_SMTP_PORT = 587
MAILPIT_HOST = os.getenv("MAILPIT_HOST", "localhost")
MAILPIT_PORT = int(os.getenv("MAILPIT_PORT", "1025"))

GUPSHUP_API_URL = os.getenv("GUPSHUP_API_URL", "https://api.gupshup.io/sm/api/v1/msg")
VACCINATION_TEMPLATE = "vaccination_reminder"


class NotificationError(Exception):
    """Raised when a reminder could not be delivered."""
    pass


# ---------------------------------------------------------------------------
# Message rendering
# ---------------------------------------------------------------------------

def render_reminder_email(group) -> tuple[str, str]:
    """Build the (subject, html body) for a reminder group."""
    patient = group.patient
    due = group.due_date_iso
    name = html.escape(patient.name or "")
    greeting_name = html.escape(patient.guardian_name or patient.name or "")

    subject = f"Vaccination Reminder: {due} for {patient.name}"

    rows = "".join(
        f"""
        <tr>
          <td style="padding: 8px 12px; color: #222; border-bottom: 1px solid #e5e7eb;">{html.escape(vaccine)}</td>
          <td style="padding: 8px 12px; color: #222; border-bottom: 1px solid #e5e7eb;">{due}</td>
        </tr>"""
        for vaccine in group.vaccines
    )

    body = f"""
    <div style="font-family: 'Segoe UI', Arial, sans-serif; max-width: 520px; margin: 0 auto; padding: 32px 28px;">
      <h2 style="color: #059669; margin-bottom: 12px;">Vaccination Reminder</h2>
      <p>Dear <b>{greeting_name}</b>,</p>
      <p>This is a friendly reminder that the following vaccination(s) are due for <b>{name}</b>:</p>
      <table style="width: 100%; border-collapse: collapse; margin-bottom: 18px;">
        <thead>
          <tr style="background: #e0f2fe;">
            <th style="padding: 10px 12px; text-align: left;">Vaccine</th>
            <th style="padding: 10px 12px; text-align: left;">Due Date</th>
          </tr>
        </thead>
        <tbody>{rows}
        </tbody>
      </table>
      <p>Please ensure your child receives these vaccinations on or before the due date.
      If you have already completed these vaccinations, please ignore this email.</p>
      <p>Regards,<br/><b>Your Pediatric Clinic</b></p>
    </div>
    """
    return subject, body


def reminder_template_params(group, clinic_name: str) -> list[str]:
    """Template parameters for the WhatsApp vaccination reminder.

    {{1}} patient name, {{2}} vaccines, {{3}} due date, {{4}} clinic name
    """
    return [
        group.patient.name,
        ", ".join(group.vaccines),
        group.due_date_iso,
        clinic_name,
    ]


# ---------------------------------------------------------------------------
# Senders
# ---------------------------------------------------------------------------

class EmailSender:
    """Sends HTML email through SendGrid's SMTP relay or a local Mailpit."""

    def __init__(
        self,
        provider: str | None = None,
        api_key: str | None = None,
        from_address: str | None = None,
    ):
        self.provider = (provider or EMAIL_PROVIDER).lower()
        self.api_key = api_key if api_key is not None else SENDGRID_API_KEY
        self.from_address = from_address or EMAIL_FROM
        if self.provider not in ("sendgrid", "mailpit"):
            logger.warning("Unknown EMAIL_PROVIDER %r, using sendgrid", self.provider)
            self.provider = "sendgrid"

    def send(self, to: str, subject: str, html_body: str) -> None:
        """Send one email. Raises NotificationError on failure."""
        if not to:
            raise NotificationError("Recipient address is empty")

        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = self.from_address
            msg["To"] = to
            msg.attach(MIMEText(html_body, "html"))

            if self.provider == "mailpit":
                with smtplib.SMTP(MAILPIT_HOST, MAILPIT_PORT, timeout=10) as server:
                    server.send_message(msg)
            else:
                if not self.api_key:
                    raise NotificationError("SENDGRID_API_KEY is missing")
                with smtplib.SMTP(SENDGRID_SMTP_HOST, SENDGRID_SMTP_PORT, timeout=10) as server:
                    server.starttls()
                    server.login("apikey", self.api_key)
                    server.send_message(msg)
        except smtplib.SMTPAuthenticationError:
            raise NotificationError("Failed to authenticate with email server")
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"Email sending failed: {e}")
        except (MessageError, ValueError) as e:
            # Malformed header or address, e.g. an embedded newline
            raise NotificationError(f"Invalid email message: {e}")

        logger.info("Reminder email sent via %s to %s", self.provider, to)


class WhatsAppSender:
    """Sends WhatsApp template messages through Gupshup with clinic credentials."""

    def __init__(self, api_url: str | None = None, timeout: int = 10):
        self.api_url = api_url or GUPSHUP_API_URL
        self.timeout = timeout

    def send_template(self, clinic, destination: str, template: str, params: list[str]) -> dict:
        """
        Send a template message from the clinic's WhatsApp number.

        Returns the Gupshup response body. Raises NotificationError on failure.
        """
        if clinic is None or not clinic.whatsapp_api_key or not clinic.whatsapp_number:
            raise NotificationError("Clinic WhatsApp not configured")
        if not destination:
            raise NotificationError("Destination phone number is empty")

        payload = {
            "channel": "whatsapp",
            "source": clinic.whatsapp_number,
            "destination": destination,
            "src.name": clinic.whatsapp_display_name or "Clinic",
            "template": template,
            "template.params": json.dumps(params),
        }

        try:
            response = requests.post(
                self.api_url,
                data=payload,
                headers={"apikey": clinic.whatsapp_api_key},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            raise NotificationError("WhatsApp API request timed out")
        except requests.exceptions.ConnectionError:
            raise NotificationError("Failed to connect to WhatsApp API")
        except requests.exceptions.RequestException as e:
            raise NotificationError(f"WhatsApp API request failed: {e}")

        if response.status_code == 401:
            raise NotificationError("WhatsApp API key rejected")
        elif not 200 <= response.status_code < 300:
            raise NotificationError(f"WhatsApp API error: {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            data = {}

        logger.info("WhatsApp %s sent to %s", template, destination)
        return data
