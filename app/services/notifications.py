"""
Outgoing email for booking events.

Delivery is fire-and-forget: messages are handed to a small thread pool and
any SMTP failure is logged, never raised to the caller. With no SMTP_HOST
configured, messages are only logged.
"""

import logging
import smtplib
from concurrent.futures import ThreadPoolExecutor
from email.message import EmailMessage
from typing import Any, Dict, Optional

from app.core.config import settings

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="email")


def _deliver(message: EmailMessage) -> None:
    try:
        if not settings.SMTP_HOST:
            logger.info("SMTP not configured, skipping email %r to %s", message["Subject"], message["To"])
            return
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=15) as smtp:
            if settings.SMTP_USE_TLS:
                smtp.starttls()
            if settings.SMTP_USER:
                smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            smtp.send_message(message)
        logger.info("Sent email %r to %s", message["Subject"], message["To"])
    except Exception:
        logger.exception("Email delivery failed: %r to %s", message["Subject"], message["To"])


def _build_message(to: str, subject: str, text: str, html: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = settings.EMAIL_FROM
    message["To"] = to
    message["Subject"] = subject
    message.set_content(text)
    message.add_alternative(html, subtype="html")
    return message


def _submit(to: Optional[str], subject: str, text: str, html: str) -> bool:
    if not to:
        logger.warning("No recipient address for %r, email skipped", subject)
        return False
    try:
        _executor.submit(_deliver, _build_message(to, subject, text, html))
    except Exception:
        logger.exception("Could not queue email %r to %s", subject, to)
        return False
    return True


def send_booking_confirmation(email: Optional[str], details: Dict[str, Any]) -> bool:
    """Queue a booking confirmation. Returns False if the email could not be queued."""
    lines = [
        f"Court: {details.get('court_name', 'Court')}",
        f"Date: {details.get('date')}",
        f"Time: {details.get('start_time')} - {details.get('end_time')}",
    ]
    if details.get("coach"):
        lines.append(f"Coach: {details['coach']}")
    if details.get("equipment"):
        lines.append(f"Equipment: {details['equipment']}")
    lines.append(f"Total: {details.get('total_amount')}")

    text = "Your court booking has been confirmed.\n\n" + "\n".join(lines)
    html = (
        "<h2>Booking Confirmed!</h2><p>Your court booking has been confirmed.</p>"
        + "".join(f"<p>{line}</p>" for line in lines)
    )
    return _submit(email, "Booking Confirmation - Court Booking", text, html)


def send_waitlist_notification(email: Optional[str], details: Dict[str, Any]) -> bool:
    """Queue a 'slot available' email for a waitlisted user."""
    slot = (
        f"{details.get('court_name', 'Court')} on {details.get('date')} "
        f"from {details.get('start_time')} to {details.get('end_time')}"
    )
    if details.get("booked"):
        text = f"Good news! A slot opened up and has been booked for you: {slot}."
    else:
        text = f"Good news! A slot you are waiting for is now available: {slot}. Book it before someone else does."
    html = f"<h2>Slot Available!</h2><p>{text}</p>"
    return _submit(email, "Slot Available - Court Booking", text, html)
