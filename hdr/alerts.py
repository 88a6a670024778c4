from __future__ import annotations

import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from .settings import settings


def send_email(subject: str, body: str) -> bool:
    """Send an email if SMTP settings are configured.

    Environment variables:
      - HDR_ENABLE_EMAIL=true
      - HDR_SMTP_HOST / HDR_SMTP_PORT
      - HDR_SMTP_USER / HDR_SMTP_PASSWORD
      - HDR_EMAIL_FROM / HDR_EMAIL_TO
    """
    if not settings.enable_email:
        return False
    if not all(
        [
            settings.smtp_host,
            settings.smtp_port,
            settings.smtp_user,
            settings.smtp_password,
            settings.email_from,
            settings.email_to,
        ]
    ):
        return False

    try:
        msg = MIMEMultipart()
        msg["From"] = settings.email_from
        msg["To"] = settings.email_to
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))

        server = smtplib.SMTP(settings.smtp_host, settings.smtp_port)
        server.starttls()
        server.login(settings.smtp_user, settings.smtp_password)
        server.sendmail(settings.email_from, [settings.email_to], msg.as_string())
        server.quit()
        return True
    except (OSError, smtplib.SMTPException):
        return False


def alert_duplicates(errors: list) -> bool:
    if not errors:
        return False
    subject = f"Duplicate job names: {', '.join(sorted({e.name for e in errors}))}"
    body = "\n".join(str(e) for e in errors)
    return send_email(subject, body)


def alert_fatal(root: str, error: Exception) -> bool:
    return send_email(f"Job directory scan failed: {root}", f"{type(error).__name__}: {error}")
