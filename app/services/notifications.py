"""Fire-and-forget guest notifications"""

from uuid import UUID

import structlog

from app.config import settings
from app.jobs.tasks import send_reservation_email

logger = structlog.get_logger()


def notify_reservation(event: str, reservation_id: UUID) -> bool:
    """
    Queue a reservation email.

    Failures are logged and never propagate: a reservation operation must not
    fail because the notification could not be queued.

    Returns:
        True if the email was queued
    """
    if not settings.notifications_enabled:
        return False

    try:
        send_reservation_email.delay(event, str(reservation_id))
    except Exception as e:
        logger.warning(
            "Failed to queue reservation email",
            reservation_event=event,
            reservation_id=str(reservation_id),
            error=str(e),
        )
        return False

    return True
