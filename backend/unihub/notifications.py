"""Fire-and-forget side effects: in-app notifications and email.

Both helpers are scheduled as FastAPI background tasks once the primary
mutation has committed. They never raise; failures are logged.
"""

import html
import logging
from email.message import EmailMessage

import aiosmtplib
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import SMTP_FROM, SMTP_HOST, SMTP_PASSWORD, SMTP_PORT, SMTP_TLS, SMTP_USER
from .db import get_session
from .errors import Forbidden, NotFound
from .models import NotificationType, UserNotification

logger = logging.getLogger(__name__)


def record_notification(
    user_id: int,
    type: NotificationType,
    title: str,
    message: str,
    related_id: int | None = None,
) -> None:
    try:
        with get_session() as session:
            session.add(
                UserNotification(
                    user_id=user_id,
                    type=type.value,
                    title=title,
                    message=message,
                    related_id=related_id,
                )
            )
    except Exception as e:
        logger.warning("Failed to record %s notification for user %s: %s", type.value, user_id, e)


async def send_email(to_email: str, subject: str, html: str) -> None:
    if not SMTP_HOST:
        logger.info("SMTP not configured, skipping email '%s' to %s", subject, to_email)
        return

    msg = EmailMessage()
    msg["From"] = SMTP_FROM
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(html, subtype="html")

    try:
        await aiosmtplib.send(
            msg,
            hostname=SMTP_HOST,
            port=SMTP_PORT,
            username=SMTP_USER,
            password=SMTP_PASSWORD,
            start_tls=SMTP_TLS and SMTP_PORT == 587,
            use_tls=SMTP_TLS and SMTP_PORT == 465,
        )
        logger.info("Email '%s' sent to %s", subject, to_email)
    except Exception as e:
        logger.warning("Failed to send email '%s' to %s: %s", subject, to_email, e)


def list_notifications(db: Session, user_id: int) -> list[UserNotification]:
    return (
        db.execute(
            select(UserNotification)
            .where(UserNotification.user_id == user_id)
            .order_by(UserNotification.created_at.desc(), UserNotification.id.desc())
        )
        .scalars()
        .all()
    )


def mark_read(db: Session, notification_id: int, user_id: int) -> UserNotification:
    notification = db.get(UserNotification, notification_id)
    if not notification:
        raise NotFound("Notification not found")
    if notification.user_id != user_id:
        raise Forbidden("Unauthorized access")
    notification.is_read = True
    db.flush()
    return notification


# Email templates

def verification_code_email(code: str) -> tuple[str, str]:
    return (
        "Your UNIHub Verification Code",
        f"<h1>Email Verification</h1>"
        f"<p>Your verification code is:</p><h2>{code}</h2>"
        f"<p>This code will expire in 10 minutes.</p>",
    )


def club_approval_email(club_name: str) -> tuple[str, str]:
    return (
        "Club Request Approved",
        f"<h1>Your Club Request Has Been Approved!</h1>"
        f"<p>Congratulations! Your club \"{html.escape(club_name)}\" has been approved.</p>"
        f"<p>You can now start managing your club and creating events.</p>",
    )


def event_approval_email(event_name: str) -> tuple[str, str]:
    return (
        "Event Request Approved",
        f"<h1>Your Event Has Been Approved!</h1><p>\"{html.escape(event_name)}\" is now live.</p>",
    )


def ticket_confirmation_email(event_name: str, ticket_id: int) -> tuple[str, str]:
    return (
        "Ticket Confirmation",
        f"<h1>Ticket Confirmation</h1>"
        f"<p>Your ticket for \"{html.escape(event_name)}\" has been confirmed.</p>"
        f"<p>Ticket ID: {ticket_id}</p>"
        f"<p>Please show this email at the event entrance.</p>",
    )


def ticket_rejection_email(event_name: str, ticket_id: int) -> tuple[str, str]:
    return (
        "Ticket Rejected",
        f"<h1>Ticket Rejected</h1>"
        f"<p>Your booking #{ticket_id} for \"{html.escape(event_name)}\" was rejected and your seats were released.</p>",
    )
