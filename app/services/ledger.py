"""
Booking ledger: which slots of which table are held on which day.

Each held (table, day, slot) is one `table_bookings` row. The unique
constraint on that triple makes inserting a hold an insert-if-absent
operation, and the in-process key locks serialize check-then-hold
sequences for the same (table, day).
"""

import asyncio
import weakref
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import AsyncIterator, Dict, Iterable, List, Optional, Set, Tuple
from uuid import UUID

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import ConflictError
from app.models.table import TableBooking

logger = structlog.get_logger()

LedgerKey = Tuple[int, date]

_key_locks: "weakref.WeakValueDictionary[LedgerKey, asyncio.Lock]" = weakref.WeakValueDictionary()


def _lock_for(key: LedgerKey) -> asyncio.Lock:
    lock = _key_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _key_locks[key] = lock
    return lock


@dataclass
class BookingEntry:
    """Held slots of one table on one day"""
    table_number: int
    date: date
    slots: Set[int] = field(default_factory=set)

    @property
    def booked_slots(self) -> List[int]:
        return sorted(self.slots)


class BookingLedger:
    """Slot occupancy per (table, day)"""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    @asynccontextmanager
    async def lock(keys: Iterable[LedgerKey]) -> AsyncIterator[None]:
        """
        Hold the in-process locks of several (table_number, day) keys.

        Locks are taken in ascending key order so that requests contending for
        overlapping table sets cannot wait on each other in a cycle.
        """
        async with AsyncExitStack() as stack:
            for key in sorted(set(keys)):
                await stack.enter_async_context(_lock_for(key))
            yield

    async def get_occupied_slots(self, table_number: int, booking_date: date) -> Set[int]:
        result = await self.db.execute(
            select(TableBooking.slot).where(
                TableBooking.table_number == table_number,
                TableBooking.date == booking_date,
            )
        )
        return set(result.scalars().all())

    async def get_entries(self, table_number: int) -> List[BookingEntry]:
        """All booking entries of a table, one per day with held slots"""
        result = await self.db.execute(
            select(TableBooking.date, TableBooking.slot)
            .where(TableBooking.table_number == table_number)
            .order_by(TableBooking.date, TableBooking.slot)
        )
        entries: Dict[date, BookingEntry] = {}
        for booking_date, slot in result.all():
            entry = entries.setdefault(booking_date, BookingEntry(table_number, booking_date))
            entry.slots.add(slot)
        return list(entries.values())

    async def get_day(self, booking_date: date) -> Dict[int, Set[int]]:
        """Held slots per table number for one day"""
        result = await self.db.execute(
            select(TableBooking.table_number, TableBooking.slot).where(
                TableBooking.date == booking_date
            )
        )
        day: Dict[int, Set[int]] = {}
        for table_number, slot in result.all():
            day.setdefault(table_number, set()).add(slot)
        return day

    async def is_table_free(
        self,
        table_number: int,
        booking_date: date,
        slots: Iterable[int],
        exclude_reservation_id: Optional[UUID] = None,
    ) -> bool:
        """True when none of `slots` is held on the table that day"""
        query = select(TableBooking.id).where(
            TableBooking.table_number == table_number,
            TableBooking.date == booking_date,
            TableBooking.slot.in_(list(slots)),
        )
        if exclude_reservation_id is not None:
            query = query.where(
                (TableBooking.reservation_id.is_(None))
                | (TableBooking.reservation_id != exclude_reservation_id)
            )
        result = await self.db.execute(query.limit(1))
        return result.first() is None

    async def occupied_tables(
        self,
        booking_date: date,
        slots: Iterable[int],
        exclude_reservation_id: Optional[UUID] = None,
    ) -> Set[int]:
        """Tables holding any of `slots` on the day"""
        query = select(TableBooking.table_number).where(
            TableBooking.date == booking_date,
            TableBooking.slot.in_(list(slots)),
        )
        if exclude_reservation_id is not None:
            query = query.where(
                (TableBooking.reservation_id.is_(None))
                | (TableBooking.reservation_id != exclude_reservation_id)
            )
        result = await self.db.execute(query.distinct())
        return set(result.scalars().all())

    async def hold_slots(
        self,
        table_number: int,
        booking_date: date,
        slots: Iterable[int],
        reservation_id: Optional[UUID] = None,
    ) -> None:
        """
        Hold slots of a table for a day (flushed, not committed).

        Raises:
            ConflictError: some requested slot is already held. When a racing
                writer got there first the store rejects the insert and the
                session transaction is rolled back (`rolled_back` is set).
        """
        requested = set(slots)
        clash = requested & await self.get_occupied_slots(table_number, booking_date)
        if clash:
            raise ConflictError(
                f"Table {table_number} is already booked for this time",
                details={
                    "table_number": table_number,
                    "date": booking_date.isoformat(),
                    "slots": sorted(clash),
                },
            )

        for slot in sorted(requested):
            self.db.add(
                TableBooking(
                    table_number=table_number,
                    date=booking_date,
                    slot=slot,
                    reservation_id=reservation_id,
                )
            )

        try:
            await self.db.flush()
        except IntegrityError as exc:
            await self.db.rollback()
            logger.warning(
                "Concurrent hold rejected by store",
                table_number=table_number,
                date=booking_date.isoformat(),
                slots=sorted(requested),
            )
            raise ConflictError(
                f"Table {table_number} is already booked for this time",
                details={
                    "table_number": table_number,
                    "date": booking_date.isoformat(),
                    "slots": sorted(requested),
                },
                rolled_back=True,
            ) from exc

        logger.debug(
            "Slots held",
            table_number=table_number,
            date=booking_date.isoformat(),
            slots=sorted(requested),
        )

    async def release_slots(
        self,
        table_number: int,
        booking_date: date,
        slots: Iterable[int],
        reservation_id: Optional[UUID] = None,
    ) -> int:
        """
        Release slots of a table for a day (not committed).

        Slots that are not held are ignored, so releasing twice is harmless.
        With `reservation_id` only that reservation's holds are released.

        Returns:
            Number of slots actually released
        """
        query = delete(TableBooking).where(
            TableBooking.table_number == table_number,
            TableBooking.date == booking_date,
            TableBooking.slot.in_(list(slots)),
        )
        if reservation_id is not None:
            query = query.where(TableBooking.reservation_id == reservation_id)
        result = await self.db.execute(query)
        released = result.rowcount or 0
        logger.debug(
            "Slots released",
            table_number=table_number,
            date=booking_date.isoformat(),
            released=released,
        )
        return released

    async def purge_before(self, cutoff: date) -> int:
        """Drop holds for days before `cutoff`"""
        result = await self.db.execute(
            delete(TableBooking).where(TableBooking.date < cutoff)
        )
        return result.rowcount or 0
