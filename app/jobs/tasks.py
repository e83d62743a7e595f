"""Background job tasks"""

from html import escape
from datetime import timedelta
from typing import Optional, Tuple
from uuid import UUID
import asyncio

import httpx
import structlog

from app.jobs.celery_app import celery_app
from app.config import settings
from app.services.slots import local_now, slot_label

logger = structlog.get_logger()

EMAIL_SUBJECTS = {
    "created": "Your reservation is confirmed",
    "cancelled": "Your reservation has been cancelled",
}


def run_async(coro):
    """Helper to run async functions in sync context"""
    return asyncio.run(coro)


def build_reservation_email(event: str, reservation, user) -> Tuple[str, str]:
    """Subject and HTML body of a reservation email"""
    subject = EMAIL_SUBJECTS.get(event, "Reservation update")
    name = escape(user.full_name or user.email)
    tables = ", ".join(str(number) for number in reservation.table_numbers)

    lines = [
        f"<p>Hello {name},</p>",
        f"<p>{subject} at {settings.restaurant_name}.</p>",
        "<ul>",
        f"<li>Reservation number: {reservation.reservation_number}</li>",
        f"<li>Date: {reservation.date.isoformat()}</li>",
        f"<li>Time: {slot_label(reservation.slot)}</li>",
        f"<li>Guests: {reservation.guests}</li>",
        f"<li>Tables: {tables}</li>",
        "</ul>",
    ]
    if reservation.special_request and event != "cancelled":
        lines.append(f"<p>Special request: {escape(reservation.special_request)}</p>")

    return subject, "\n".join(lines)


def post_email(to_address: str, to_name: Optional[str], subject: str, html: str) -> None:
    """Send one transactional email through the email API"""
    response = httpx.post(
        settings.email_api_url,
        headers={"api-key": settings.email_api_key, "accept": "application/json"},
        json={
            "sender": {
                "name": settings.email_sender_name,
                "email": settings.email_sender_address,
            },
            "to": [{"email": to_address, "name": to_name or to_address}],
            "subject": subject,
            "htmlContent": html,
        },
        timeout=settings.email_timeout_seconds,
    )
    response.raise_for_status()


@celery_app.task(name="send_reservation_email")
def send_reservation_email(event: str, reservation_id: str):
    """Email the guest about a reservation change"""
    logger.info("Sending reservation email", reservation_event=event, reservation_id=reservation_id)

    async def _load():
        from app.database import SessionLocal
        from app.models.reservation import Reservation
        from app.models.user import User

        async with SessionLocal() as db:
            reservation = await db.get(Reservation, UUID(reservation_id))
            if reservation is None:
                return None, None
            user = await db.get(User, reservation.user_id)
            return reservation, user

    reservation, user = run_async(_load())

    if reservation is None or user is None:
        logger.warning("Reservation email skipped, reservation not found", reservation_id=reservation_id)
        return

    subject, html = build_reservation_email(event, reservation, user)

    try:
        post_email(user.email, user.full_name, subject, html)
    except httpx.HTTPError as e:
        logger.error(
            "Failed to send reservation email",
            reservation_id=reservation_id,
            error=str(e),
        )
        return

    logger.info("Reservation email sent", reservation_id=reservation_id)


@celery_app.task(name="purge_past_table_bookings")
def purge_past_table_bookings():
    """Drop ledger holds for days older than the retention window"""
    logger.info("Purging past table bookings")

    async def _purge():
        from app.database import SessionLocal
        from app.services.ledger import BookingLedger

        cutoff = local_now().date() - timedelta(days=settings.booking_retention_days)

        async with SessionLocal() as db:
            purged = await BookingLedger(db).purge_before(cutoff)
            await db.commit()

        logger.info("Purged past table bookings", purged=purged, cutoff=cutoff.isoformat())
        return purged

    return run_async(_purge())
