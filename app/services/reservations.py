"""
Reservation service: validates booking requests against the table registry
and the booking ledger, and drives reservation status changes.
"""

import re
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, AsyncIterator, Callable, Dict, Iterable, List, Optional, Sequence
from uuid import UUID

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.errors import (
    AuthorizationError,
    CapacityError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.models.audit import AuditLog
from app.models.reservation import Reservation, ReservationStatus
from app.models.table import Table
from app.models.user import User
from app.services.ledger import BookingLedger, LedgerKey
from app.services.lifecycle import ReservationLifecycle, parse_status
from app.services.notifications import notify_reservation
from app.services.registry import TableRegistry
from app.services.slots import (
    all_slots,
    build_reservation_number,
    hours_until,
    is_valid_slot,
    local_now,
    service_span,
    to_date,
)

logger = structlog.get_logger()

PHONE_PATTERN = re.compile(r"^[0-9]{10}$")

UPDATABLE_FIELDS = (
    "date",
    "slot",
    "guests",
    "table_numbers",
    "contact_phone",
    "special_request",
    "notes",
)


@dataclass
class AvailabilityResult:
    """Active tables partitioned for a date, slot and party size"""
    available: List[int] = field(default_factory=list)
    occupied: List[int] = field(default_factory=list)
    not_eligible: List[int] = field(default_factory=list)


@dataclass
class TableDayAvailability:
    """Occupancy of one table over a whole day"""
    table_number: int
    capacity: int
    booked_slots: List[int]
    available_slots: List[int]

    @property
    def is_fully_booked(self) -> bool:
        return not self.available_slots


def is_table_eligible(capacity: int, guests: int) -> bool:
    """
    Whether a free table may be offered for the party.

    Tables smaller than the party stay eligible so they can be combined;
    only tables with more than `max_spare_seats` spare seats are excluded.
    """
    if settings.max_spare_seats is None:
        return True
    return capacity <= guests + settings.max_spare_seats


def check_capacity(tables: Sequence[Table], guests: int) -> int:
    """
    Verify the assigned tables jointly seat the party.

    The combined capacity must be at least the guest count, and neither a
    single table nor the combination may exceed it by more than
    `max_spare_seats` seats (one by default, unchecked when unset).

    Returns:
        Total capacity of the tables

    Raises:
        CapacityError
    """
    total = sum(table.capacity for table in tables)

    if total < guests:
        raise CapacityError(
            f"Total capacity ({total}) is insufficient for {guests} guests",
            code="CAPACITY_EXCEEDED",
            details={"total_capacity": total, "guests": guests},
        )

    if settings.max_spare_seats is not None:
        limit = guests + settings.max_spare_seats
        for table in tables:
            if table.capacity > limit:
                raise CapacityError(
                    f"Table {table.table_number} (capacity {table.capacity}) "
                    f"is too large for {guests} guests",
                    code="TABLE_TOO_LARGE",
                    details={"table_number": table.table_number, "guests": guests},
                )
        if total > limit:
            raise CapacityError(
                f"Total capacity ({total}) exceeds maximum allowed ({limit}) "
                f"for {guests} guests",
                code="TABLE_TOO_LARGE",
                details={"total_capacity": total, "guests": guests},
            )

    return total


def normalize_table_numbers(table_numbers: Optional[Iterable[Any]]) -> List[int]:
    """Validate a requested table list and return it sorted ascending"""
    numbers = list(table_numbers or [])
    if not numbers:
        raise ValidationError("At least one table must be selected", code="NO_TABLES")
    for number in numbers:
        if not isinstance(number, int) or isinstance(number, bool):
            raise ValidationError(f"Invalid table number: {number!r}", code="TABLE_INVALID")
    if len(set(numbers)) != len(numbers):
        raise ValidationError("A table can only be selected once", code="DUPLICATE_TABLES")
    return sorted(numbers)


class ReservationService:
    """Reservation booking, rescheduling and status changes"""

    def __init__(self, db: AsyncSession, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.clock = clock or local_now
        self.registry = TableRegistry(db)
        self.ledger = BookingLedger(db)
        self.lifecycle = ReservationLifecycle(self.ledger, self.clock)

    # -- validation -------------------------------------------------------

    def _validate_date(self, booking_date: Any) -> date:
        try:
            day = to_date(booking_date)
        except (TypeError, ValueError):
            raise ValidationError("Invalid reservation date", code="INVALID_DATE")
        if day < self.clock().date():
            raise ValidationError(
                "Reservation date cannot be in the past",
                code="DATE_IN_PAST",
                details={"date": day.isoformat()},
            )
        return day

    @staticmethod
    def _validate_slot(slot: Any) -> int:
        if not is_valid_slot(slot):
            raise ValidationError(
                "Invalid slot number",
                code="INVALID_SLOT",
                details={"slot": slot},
            )
        return slot

    @staticmethod
    def _validate_guests(guests: Any) -> int:
        if (
            not isinstance(guests, int)
            or isinstance(guests, bool)
            or not settings.min_guests <= guests <= settings.max_guests
        ):
            raise ValidationError(
                f"Number of guests must be between {settings.min_guests} and {settings.max_guests}",
                code="INVALID_GUEST_COUNT",
                details={"guests": guests},
            )
        return guests

    @staticmethod
    def _validate_phone(phone: Any) -> str:
        if not isinstance(phone, str) or not PHONE_PATTERN.match(phone):
            raise ValidationError("Please add a valid phone number", code="INVALID_PHONE")
        return phone

    @staticmethod
    def _validate_text(value: Optional[str], max_length: int, label: str, code: str) -> Optional[str]:
        if value is not None and len(value) > max_length:
            raise ValidationError(f"{label} cannot exceed {max_length} characters", code=code)
        return value

    async def _resolve_tables(self, table_numbers: List[int]) -> List[Table]:
        """Every requested table must exist and be active"""
        found = await self.registry.get_tables(table_numbers)
        for number in table_numbers:
            table = found.get(number)
            if table is None or not table.is_active:
                raise NotFoundError(
                    f"Table {number} not found or inactive",
                    code="TABLE_INVALID",
                    details={"table_number": number},
                )
        return [found[number] for number in table_numbers]

    # -- ledger -----------------------------------------------------------

    async def _hold_all(
        self,
        table_numbers: List[int],
        booking_date: date,
        span: Sequence[int],
        reservation_id: UUID,
    ) -> None:
        """
        Hold `span` on every table, all or nothing.

        The caller must hold the ledger locks of every (table, date) key.
        """
        for number in table_numbers:
            if not await self.ledger.is_table_free(number, booking_date, span):
                raise ConflictError(
                    f"Table {number} is already booked for this time",
                    details={
                        "table_number": number,
                        "date": booking_date.isoformat(),
                        "slots": list(span),
                    },
                )

        held: List[int] = []
        try:
            for number in table_numbers:
                await self.ledger.hold_slots(number, booking_date, span, reservation_id)
                held.append(number)
        except ConflictError as exc:
            if not exc.rolled_back:
                for number in reversed(held):
                    await self.ledger.release_slots(number, booking_date, span, reservation_id)
            logger.warning(
                "Multi-table hold undone",
                reservation_id=str(reservation_id),
                held=held,
                conflict=exc.details.get("table_number"),
            )
            raise

    # -- bookkeeping ------------------------------------------------------

    async def _count_reservation(self, user_id: UUID, delta: int) -> None:
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(total_reservations=User.total_reservations + delta)
        )

    @staticmethod
    def snapshot(reservation: Reservation) -> Dict[str, Any]:
        return {
            "reservation_number": reservation.reservation_number,
            "date": reservation.date.isoformat() if reservation.date else None,
            "slot": reservation.slot,
            "guests": reservation.guests,
            "table_numbers": list(reservation.table_numbers or []),
            "status": reservation.status,
        }

    def _audit(
        self,
        action: str,
        reservation: Reservation,
        actor_id: Optional[UUID],
        is_admin: bool,
        before: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.db.add(
            AuditLog(
                actor_id=actor_id,
                actor_type="admin" if is_admin else "customer",
                action=action,
                resource_type="reservation",
                resource_id=str(reservation.id),
                data_json={"before": before, "after": self.snapshot(reservation)},
            )
        )

    # -- queries ----------------------------------------------------------

    async def _load(self, reservation_id: UUID) -> Reservation:
        reservation = await self.db.get(Reservation, reservation_id)
        if reservation is None:
            raise NotFoundError(
                "Reservation not found",
                code="RESERVATION_NOT_FOUND",
                details={"reservation_id": str(reservation_id)},
            )
        return reservation

    async def get_reservation(
        self,
        reservation_id: UUID,
        user_id: Optional[UUID] = None,
        is_admin: bool = False,
    ) -> Reservation:
        """Fetch a reservation the caller owns (admins may fetch any)"""
        reservation = await self._load(reservation_id)
        if not is_admin and reservation.user_id != user_id:
            raise AuthorizationError(
                "Not authorized to access this reservation",
                code="NOT_OWNER",
            )
        return reservation

    async def check_availability(
        self,
        booking_date: Any,
        slot: Any,
        guests: Any,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> AvailabilityResult:
        """
        Partition active tables for a booking request.

        Occupied tables hold some slot of the service span; not-eligible
        tables are free but have more spare seats than the policy allows.
        """
        try:
            day = to_date(booking_date)
        except (TypeError, ValueError):
            raise ValidationError("Invalid reservation date", code="INVALID_DATE")
        slot = self._validate_slot(slot)
        guests = self._validate_guests(guests)

        tables = await self.registry.list_active_tables()
        occupied = await self.ledger.occupied_tables(
            day, service_span(slot), exclude_reservation_id
        )

        result = AvailabilityResult()
        for table in tables:
            if table.table_number in occupied:
                result.occupied.append(table.table_number)
            elif not is_table_eligible(table.capacity, guests):
                result.not_eligible.append(table.table_number)
            else:
                result.available.append(table.table_number)
        return result

    async def day_availability(self, booking_date: Any) -> List[TableDayAvailability]:
        """Booked and bookable start slots of every active table on a day"""
        try:
            day = to_date(booking_date)
        except (TypeError, ValueError):
            raise ValidationError("Invalid reservation date", code="INVALID_DATE")

        tables = await self.registry.list_active_tables()
        held = await self.ledger.get_day(day)

        availability = []
        for table in tables:
            booked = held.get(table.table_number, set())
            free_starts = [
                slot.number
                for slot in all_slots()
                if not booked.intersection(service_span(slot.number))
            ]
            availability.append(
                TableDayAvailability(
                    table_number=table.table_number,
                    capacity=table.capacity,
                    booked_slots=sorted(booked),
                    available_slots=free_starts,
                )
            )
        return availability

    # -- commands ---------------------------------------------------------

    async def create_reservation(
        self,
        user_id: UUID,
        date: Any,
        slot: Any,
        guests: Any,
        table_numbers: Iterable[Any],
        contact_phone: Any,
        special_request: Optional[str] = None,
        notes: Optional[str] = None,
        is_admin: bool = False,
    ) -> Reservation:
        """
        Book tables for a party.

        Args:
            user_id: Owner of the reservation
            date: Reservation day (today or later)
            slot: Starting slot
            guests: Party size
            table_numbers: Tables to assign
            contact_phone: Ten digit phone number
            special_request: Optional guest request
            notes: Optional staff notes (admins only)
            is_admin: Whether the caller is an admin

        Returns:
            The committed reservation

        Raises:
            ValidationError, NotFoundError, CapacityError, ConflictError,
            AuthorizationError
        """
        day = self._validate_date(date)
        slot = self._validate_slot(slot)
        guests = self._validate_guests(guests)
        contact_phone = self._validate_phone(contact_phone)
        special_request = self._validate_text(
            special_request, settings.special_request_max_length,
            "Special request", "SPECIAL_REQUEST_TOO_LONG",
        )
        notes = self._validate_text(notes, settings.notes_max_length, "Notes", "NOTES_TOO_LONG")
        if notes is not None and not is_admin:
            raise AuthorizationError("Only admins can add reservation notes")

        numbers = normalize_table_numbers(table_numbers)
        tables = await self._resolve_tables(numbers)
        check_capacity(tables, guests)

        span = service_span(slot)
        reservation_id = uuid.uuid4()

        async with self.ledger.lock((number, day) for number in numbers):
            await self._hold_all(numbers, day, span, reservation_id)

            reservation = Reservation(
                id=reservation_id,
                user_id=user_id,
                reservation_number=build_reservation_number(day, slot, numbers),
                date=day,
                slot=slot,
                guests=guests,
                table_numbers=numbers,
                status=ReservationStatus.CONFIRMED.value,
                contact_phone=contact_phone,
                special_request=special_request,
                notes=notes,
            )
            self.db.add(reservation)
            await self._count_reservation(user_id, 1)
            self._audit("create_reservation", reservation, user_id, is_admin)
            await self.db.commit()

        logger.info(
            "Reservation created",
            reservation_id=str(reservation.id),
            reservation_number=reservation.reservation_number,
            tables=numbers,
            guests=guests,
        )

        notify_reservation("created", reservation.id)
        return reservation

    @asynccontextmanager
    async def _locked(
        self,
        reservation: Reservation,
        extra_keys: Optional[Callable[[Reservation], List[LedgerKey]]] = None,
    ) -> AsyncIterator[None]:
        """
        Hold the ledger locks of a reservation's tables, with the row reloaded.

        Another request may move the reservation while this one waits; the
        locks are then dropped and taken again for its current tables.
        """
        while True:
            held_date = reservation.date
            held_tables = list(reservation.table_numbers)
            keys = [(number, held_date) for number in held_tables]
            if extra_keys is not None:
                keys += extra_keys(reservation)

            async with self.ledger.lock(keys):
                await self.db.refresh(reservation)
                if reservation.date == held_date and list(reservation.table_numbers) == held_tables:
                    yield
                    return

            logger.info(
                "Reservation moved while waiting for its tables",
                reservation_id=str(reservation.id),
            )

    @staticmethod
    def _check_modifiable(reservation: Reservation) -> None:
        if reservation.status != ReservationStatus.CONFIRMED.value:
            raise InvalidTransitionError(
                "Only confirmed reservations can be updated",
                code="RESERVATION_NOT_MODIFIABLE",
                details={"status": reservation.status},
            )

    async def update_reservation(
        self,
        reservation_id: UUID,
        user_id: Optional[UUID],
        changes: Dict[str, Any],
        is_admin: bool = False,
    ) -> Reservation:
        """
        Change an existing confirmed reservation.

        Rescheduling releases the old holds and holds the new ones in one
        locked step; when the new booking is rejected the original holds are
        restored unchanged.
        """
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unknown reservation fields: {', '.join(sorted(unknown))}",
                code="UNKNOWN_FIELDS",
            )

        reservation = await self.get_reservation(reservation_id, user_id, is_admin)
        self._check_modifiable(reservation)

        if "notes" in changes and not is_admin:
            raise AuthorizationError("Only admins can change reservation notes")

        requested_date = None
        if changes.get("date") is not None:
            requested_date = self._validate_date(changes["date"])
        requested_slot = None
        if changes.get("slot") is not None:
            requested_slot = self._validate_slot(changes["slot"])
        requested_guests = None
        if changes.get("guests") is not None:
            requested_guests = self._validate_guests(changes["guests"])
        requested_tables = None
        if changes.get("table_numbers") is not None:
            requested_tables = normalize_table_numbers(changes["table_numbers"])

        if changes.get("contact_phone") is not None:
            self._validate_phone(changes["contact_phone"])
        if "special_request" in changes:
            self._validate_text(
                changes["special_request"], settings.special_request_max_length,
                "Special request", "SPECIAL_REQUEST_TOO_LONG",
            )
        if "notes" in changes:
            self._validate_text(changes["notes"], settings.notes_max_length, "Notes", "NOTES_TOO_LONG")

        def target_keys(current: Reservation) -> List[LedgerKey]:
            day = requested_date if requested_date is not None else current.date
            numbers = requested_tables if requested_tables is not None else current.table_numbers
            return [(number, day) for number in numbers]

        async with self._locked(reservation, target_keys):
            # Re-checked on the reloaded row
            self._check_modifiable(reservation)

            old_date = reservation.date
            old_slot = reservation.slot
            old_tables = list(reservation.table_numbers)

            new_date = requested_date if requested_date is not None else old_date
            new_slot = requested_slot if requested_slot is not None else old_slot
            new_guests = requested_guests if requested_guests is not None else reservation.guests
            new_tables = requested_tables if requested_tables is not None else old_tables

            time_changed = new_date != old_date or new_slot != old_slot
            booking_changed = time_changed or new_tables != old_tables
            guests_changed = new_guests != reservation.guests

            if not is_admin:
                now = self.clock()
                if hours_until(old_date, old_slot, now) < settings.modification_window_hours:
                    raise ValidationError(
                        "Cannot modify reservation less than "
                        f"{settings.modification_window_hours:g} hour before the original time",
                        code="MODIFICATION_WINDOW_CLOSED",
                    )
                if time_changed and hours_until(new_date, new_slot, now) < settings.modification_window_hours:
                    raise ValidationError(
                        "New reservation time must be at least "
                        f"{settings.modification_window_hours:g} hour from now",
                        code="TOO_SOON",
                    )

            if booking_changed or guests_changed:
                tables = await self._resolve_tables(new_tables)
                check_capacity(tables, new_guests)

            before = self.snapshot(reservation)

            if booking_changed:
                old_span = service_span(old_slot)
                new_span = service_span(new_slot)
                for number in old_tables:
                    await self.ledger.release_slots(number, old_date, old_span, reservation.id)
                try:
                    await self._hold_all(new_tables, new_date, new_span, reservation.id)
                except ConflictError as exc:
                    if not exc.rolled_back:
                        for number in old_tables:
                            await self.ledger.hold_slots(number, old_date, old_span, reservation.id)
                    raise

            self._apply_changes(reservation, changes, new_date, new_slot, new_guests, new_tables)
            self._audit("update_reservation", reservation, user_id, is_admin, before)
            await self.db.commit()

        logger.info(
            "Reservation updated",
            reservation_id=str(reservation.id),
            rescheduled=booking_changed,
            fields=sorted(changes),
        )
        return reservation

    @staticmethod
    def _apply_changes(
        reservation: Reservation,
        changes: Dict[str, Any],
        new_date: date,
        new_slot: int,
        new_guests: int,
        new_tables: List[int],
    ) -> None:
        reservation.date = new_date
        reservation.slot = new_slot
        reservation.guests = new_guests
        reservation.table_numbers = new_tables
        reservation.reservation_number = build_reservation_number(new_date, new_slot, new_tables)
        if changes.get("contact_phone") is not None:
            reservation.contact_phone = changes["contact_phone"]
        if "special_request" in changes:
            reservation.special_request = changes["special_request"]
        if "notes" in changes:
            reservation.notes = changes["notes"]

    async def _transition(
        self,
        reservation: Reservation,
        target: ReservationStatus,
        actor_id: Optional[UUID],
        is_admin: bool,
    ) -> Reservation:
        async with self._locked(reservation):
            before = self.snapshot(reservation)
            await self.lifecycle.apply(reservation, target, is_admin)
            if target == ReservationStatus.CANCELLED:
                await self._count_reservation(reservation.user_id, -1)
            self._audit("update_status", reservation, actor_id, is_admin, before)
            await self.db.commit()

        if target == ReservationStatus.CANCELLED:
            notify_reservation("cancelled", reservation.id)
        return reservation

    async def cancel_reservation(
        self,
        reservation_id: UUID,
        user_id: Optional[UUID],
        is_admin: bool = False,
    ) -> Reservation:
        """Cancel a reservation and release its tables"""
        reservation = await self.get_reservation(reservation_id, user_id, is_admin)
        return await self._transition(
            reservation, ReservationStatus.CANCELLED, user_id, is_admin
        )

    async def transition_status(
        self,
        reservation_id: UUID,
        target: Any,
        actor_id: Optional[UUID],
        is_admin: bool = True,
    ) -> Reservation:
        """Move a reservation to another lifecycle status"""
        target = parse_status(target)
        reservation = await self._load(reservation_id)
        return await self._transition(reservation, target, actor_id, is_admin)
