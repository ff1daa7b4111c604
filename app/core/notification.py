"""
Outbound email. SMTP calls are blocking, so the async entry point runs them in the
threadpool. Callers on the post-commit path catch every failure; nothing here retries.
"""

import html
import logging
import mimetypes
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from pathlib import Path
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from app.core.config import settings

logger = logging.getLogger(__name__)


class EmailNotConfiguredError(RuntimeError):
    """Sender address or SMTP credentials are not set."""


@dataclass(frozen=True)
class EmailContent:
    subject: str
    text: str
    html: Optional[str] = None


def build_message(
    to_address: str,
    content: EmailContent,
    attachment_path: Optional[Path] = None,
    attachment_name: Optional[str] = None,
) -> EmailMessage:
    sender = settings.email_from or settings.smtp_username
    if not sender:
        raise EmailNotConfiguredError("EMAIL_FROM or SMTP_USERNAME must be set")

    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = to_address
    msg["Subject"] = content.subject
    msg.set_content(content.text)
    if content.html:
        msg.add_alternative(content.html, subtype="html")

    if attachment_path is not None:
        ctype, _ = mimetypes.guess_type(str(attachment_path))
        maintype, subtype = (ctype or "application/octet-stream").split("/", 1)
        msg.add_attachment(
            attachment_path.read_bytes(),
            maintype=maintype,
            subtype=subtype,
            filename=attachment_name or attachment_path.name,
        )
    return msg


def send_email(
    to_address: str,
    content: EmailContent,
    attachment_path: Optional[Path] = None,
    attachment_name: Optional[str] = None,
) -> None:
    """Send one message over SMTP. Raises on any failure."""
    if not settings.smtp_username or not settings.smtp_password:
        raise EmailNotConfiguredError("SMTP_USERNAME and SMTP_PASSWORD must be set")

    msg = build_message(to_address, content, attachment_path, attachment_name)
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout_seconds) as smtp:
        if settings.smtp_use_tls:
            smtp.starttls()
        smtp.login(settings.smtp_username, settings.smtp_password)
        smtp.send_message(msg)
    logger.info("Sent email %r to %s", content.subject, to_address)


async def send_email_async(
    to_address: str,
    content: EmailContent,
    attachment_path: Optional[Path] = None,
    attachment_name: Optional[str] = None,
) -> None:
    await run_in_threadpool(send_email, to_address, content, attachment_path, attachment_name)


def acceptance_email(full_name: str, programme_name: str, student_number: str, with_letter: bool) -> EmailContent:
    """Congratulation email carrying the new student number."""
    institution = settings.institution_name
    name = full_name or "Student"
    letter_line = (
        "Your offer letter is attached as a PDF."
        if with_letter
        else "Your offer letter will be sent to you separately."
    )
    text = (
        f"Good day {name},\n\n"
        f"Congratulations! You have been accepted to study {programme_name} at the {institution}.\n\n"
        f"Your student number is: {student_number}\n\n"
        f"We look forward to welcoming you. {letter_line}\n\n"
        f"Regards,\n{institution}"
    )
    e = html.escape
    html_body = (
        '<div style="font-family:system-ui,Segoe UI,Arial,sans-serif;background:#f4f4f4;padding:20px">'
        '<div style="max-width:600px;margin:0 auto;background:#ffffff;border-radius:10px;overflow:hidden">'
        f'<div style="background:#208F74;padding:16px 20px;color:#ffffff"><h2 style="margin:0">{e(institution)}</h2>'
        '<div style="font-size:13px">Admissions</div></div>'
        '<div style="padding:20px 22px;color:#222">'
        f"<p>Good day {e(name)},</p>"
        f"<p>Congratulations! You have been accepted to study {e(programme_name)} at the {e(institution)}.</p>"
        "<p>Your student number is:</p>"
        f'<p style="font-size:20px;font-weight:700">{e(student_number)}</p>'
        f"<p>We look forward to welcoming you. {e(letter_line)}</p>"
        f"<p>Regards,<br/>{e(institution)}</p>"
        "</div></div></div>"
    )
    return EmailContent(
        subject=f"{settings.institution_short_name} Admission Offer and Student Number",
        text=text,
        html=html_body,
    )
