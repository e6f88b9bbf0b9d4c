import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from clinic.core.config import settings
from clinic.services.appointment_service import AppointmentReminder

logger = logging.getLogger(__name__)


def _send_email_sync(to_email: str, subject: str, text_body: str, html_body: str) -> bool:
    """Send email via SMTP (blocking). Use from a background task or thread."""
    if not settings.email_enabled:
        logger.debug("Email disabled (SMTP not configured), skipping send to %s", to_email)
        return False
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{settings.from_name} <{settings.from_email}>"
    msg["To"] = to_email
    msg.attach(MIMEText(text_body, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
            server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.from_email, [to_email], msg.as_string())
        logger.info("Email sent to %s", to_email)
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.exception("Failed to send email to %s: %s", to_email, e)
        return False


def _html_escape(s: str) -> str:
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def _format_slot(start_utc: datetime, end_utc: datetime) -> str:
    return f"{start_utc.strftime('%A, %B %d, %Y %H:%M')} - {end_utc.strftime('%H:%M')} (UTC)"


def _html_from_lines(title: str, lines: list[str]) -> str:
    paragraphs = "\n".join(
        f'<p style="margin:0 0 12px 0;color:#374151;">{_html_escape(line)}</p>' for line in lines if line
    )
    return f"""
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{_html_escape(title)}</title></head>
<body style="font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;background-color:#f3f4f6;padding:32px;">
  <h1 style="margin:0 0 16px 0;font-size:20px;color:#111827;">{_html_escape(title)}</h1>
  {paragraphs}
  <p style="margin:24px 0 0 0;font-size:13px;color:#6b7280;">{_html_escape(settings.site_name)}</p>
</body>
</html>
"""


def build_booking_confirmation(
    recipient_name: str | None, slot_start_utc: datetime, slot_end_utc: datetime
) -> tuple[str, str]:
    """Plain-text and HTML bodies for a booking confirmation."""
    lines = [
        f"Hello {recipient_name or 'there'},",
        "Your appointment is confirmed:",
        _format_slot(slot_start_utc, slot_end_utc),
        "If you need to cancel, please do so in the app.",
    ]
    return "\n\n".join(lines), _html_from_lines("Appointment Confirmed", lines)


def build_reminder(reminder: AppointmentReminder) -> tuple[str, str, str]:
    """Subject, plain-text and HTML bodies for the 24h reminder."""
    subject = f"Reminder: appointment with {reminder.doctor_name} ({reminder.specialization_name})"
    lines = [
        f"Hello {reminder.patient_name},",
        "This is a reminder for your upcoming appointment:",
        f"Doctor: {reminder.doctor_name}",
        f"Specialization: {reminder.specialization_name}",
        f"Starts at: {_format_slot(reminder.slot_start, reminder.slot_end)}",
        "If you need to cancel or reschedule, please do so in the app.",
    ]
    return subject, "\n".join(lines), _html_from_lines("Appointment Reminder", lines)


def send_booking_confirmation_email(
    to_email: str,
    recipient_name: str | None,
    slot_start_utc: datetime,
    slot_end_utc: datetime,
) -> None:
    """Compose and send a booking confirmation (call from background task)."""
    subject = f"{settings.site_name} - Appointment Confirmed"
    text, html = build_booking_confirmation(recipient_name, slot_start_utc, slot_end_utc)
    _send_email_sync(to_email, subject, text, html)


def send_reminder_email(reminder: AppointmentReminder) -> bool:
    subject, text, html = build_reminder(reminder)
    return _send_email_sync(reminder.patient_email, subject, text, html)
