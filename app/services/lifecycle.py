"""Reservation status state machine"""

from datetime import datetime, timedelta
from typing import Callable, Dict, FrozenSet, Optional

import structlog

from app.config import settings
from app.errors import AuthorizationError, InvalidTransitionError, ValidationError
from app.models.reservation import Reservation, ReservationStatus
from app.services.ledger import BookingLedger
from app.services.slots import hours_until, local_now, service_span, slot_datetime

logger = structlog.get_logger()

S = ReservationStatus

TRANSITIONS: Dict[ReservationStatus, FrozenSet[ReservationStatus]] = {
    S.CONFIRMED: frozenset({S.SEATED, S.CANCELLED, S.NO_SHOW}),
    S.SEATED: frozenset({S.COMPLETED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
    S.NO_SHOW: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)

# Transitions into these states give the held slots back to the ledger
RELEASING_STATUSES = frozenset({S.CANCELLED, S.NO_SHOW})

ADMIN_ONLY_STATUSES = frozenset({S.SEATED, S.COMPLETED, S.NO_SHOW})


def parse_status(value) -> ReservationStatus:
    """Coerce a status value, rejecting unknown ones"""
    try:
        return ReservationStatus(value)
    except ValueError:
        valid = ", ".join(status.value for status in ReservationStatus)
        raise ValidationError(
            f"Invalid status. Valid statuses are: {valid}",
            code="INVALID_STATUS",
        )


def can_transition(current: ReservationStatus, target: ReservationStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


class ReservationLifecycle:
    """Applies status transitions and the ledger releases they imply"""

    def __init__(self, ledger: BookingLedger, clock: Optional[Callable[[], datetime]] = None):
        self.ledger = ledger
        self.clock = clock or local_now

    def check(self, reservation: Reservation, target: ReservationStatus, is_admin: bool) -> None:
        """
        Raise if `reservation` may not move to `target`.

        Raises:
            InvalidTransitionError: the state machine forbids the change
            AuthorizationError: a customer attempted an admin transition
            ValidationError: the change is outside its time window
        """
        current = parse_status(reservation.status)

        if not can_transition(current, target):
            raise InvalidTransitionError(
                f"Cannot change reservation from {current.value} to {target.value}",
                details={"from": current.value, "to": target.value},
            )

        if target in ADMIN_ONLY_STATUSES and not is_admin:
            raise AuthorizationError(
                f"Only admins can mark a reservation as {target.value}"
            )

        now = self.clock()
        starts_at = slot_datetime(reservation.date, reservation.slot)

        if target == S.SEATED and now < starts_at - timedelta(minutes=settings.seating_grace_minutes):
            raise ValidationError(
                "Cannot mark reservation as seated before the reservation time",
                code="TOO_EARLY",
            )

        if target == S.NO_SHOW and now < starts_at:
            raise ValidationError(
                "Cannot mark reservation as no-show before the reservation time",
                code="TOO_EARLY",
            )

        if target == S.CANCELLED and not is_admin:
            hours_left = hours_until(reservation.date, reservation.slot, now)
            if hours_left < settings.cancellation_window_hours:
                raise ValidationError(
                    "Reservations can only be cancelled at least "
                    f"{settings.cancellation_window_hours:g} hours in advance",
                    code="CANCELLATION_WINDOW_CLOSED",
                    details={"hours_until": round(hours_left, 2)},
                )

    async def release_holds(self, reservation: Reservation) -> int:
        """Give back every slot the reservation holds"""
        span = service_span(reservation.slot)
        released = 0
        for table_number in reservation.table_numbers:
            released += await self.ledger.release_slots(
                table_number, reservation.date, span, reservation.id
            )
        return released

    async def apply(
        self,
        reservation: Reservation,
        target: ReservationStatus,
        is_admin: bool,
    ) -> Reservation:
        """Validate and perform a transition (not committed)"""
        self.check(reservation, target, is_admin)

        previous = reservation.status
        if target in RELEASING_STATUSES:
            await self.release_holds(reservation)

        now = datetime.utcnow()
        reservation.status = target.value
        if target == S.SEATED:
            reservation.seated_at = now
        elif target == S.COMPLETED:
            reservation.completed_at = now
        elif target == S.CANCELLED:
            reservation.cancelled_at = now

        logger.info(
            "Reservation status changed",
            reservation_id=str(reservation.id),
            from_status=previous,
            to_status=target.value,
        )
        return reservation
