"""
Time slot model for reservations.

A day has 15 numbered slots, 30 minutes apart:

    Slots 1-6:  lunch service (11:00-13:30)
    Slots 7-15: dinner service (18:00-22:00)

A booking starting at a slot holds that slot and the following ones for the
length of the service span, without crossing into another service period.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterable, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo

from app.config import settings


LUNCH = "lunch"
DINNER = "dinner"


@dataclass(frozen=True)
class TimeSlot:
    """A bookable start time"""
    number: int
    label: str
    period: str

    @property
    def start_time(self) -> time:
        hours, minutes = self.label.split(":")
        return time(int(hours), int(minutes))


TIME_SLOTS: Tuple[TimeSlot, ...] = (
    # Lunch service
    TimeSlot(1, "11:00", LUNCH),
    TimeSlot(2, "11:30", LUNCH),
    TimeSlot(3, "12:00", LUNCH),
    TimeSlot(4, "12:30", LUNCH),
    TimeSlot(5, "13:00", LUNCH),
    TimeSlot(6, "13:30", LUNCH),
    # Dinner service
    TimeSlot(7, "18:00", DINNER),
    TimeSlot(8, "18:30", DINNER),
    TimeSlot(9, "19:00", DINNER),
    TimeSlot(10, "19:30", DINNER),
    TimeSlot(11, "20:00", DINNER),
    TimeSlot(12, "20:30", DINNER),
    TimeSlot(13, "21:00", DINNER),
    TimeSlot(14, "21:30", DINNER),
    TimeSlot(15, "22:00", DINNER),
)

_SLOTS_BY_NUMBER = {slot.number: slot for slot in TIME_SLOTS}

FIRST_SLOT = TIME_SLOTS[0].number
LAST_SLOT = TIME_SLOTS[-1].number


def all_slots() -> List[TimeSlot]:
    """All slots of a day in order"""
    return list(TIME_SLOTS)


def get_slot(number: int) -> Optional[TimeSlot]:
    return _SLOTS_BY_NUMBER.get(number)


def is_valid_slot(number) -> bool:
    return isinstance(number, int) and not isinstance(number, bool) and number in _SLOTS_BY_NUMBER


def slot_label(number: int) -> str:
    """Time label ("HH:MM") of a slot, "N/A" for unknown slots"""
    slot = get_slot(number)
    return slot.label if slot else "N/A"


def service_span(number: int, length: Optional[int] = None) -> Tuple[int, ...]:
    """
    Slots held by a booking that starts at `number`.

    Args:
        number: Starting slot
        length: Span length, defaults to the configured service span

    Returns:
        Ascending slot numbers, clipped to the starting slot's service period
    """
    start = get_slot(number)
    if start is None:
        raise ValueError(f"Unknown slot {number}")

    if length is None:
        length = settings.service_span_slots

    span = []
    for candidate in range(number, number + max(length, 1)):
        slot = get_slot(candidate)
        if slot is None or slot.period != start.period:
            break
        span.append(candidate)
    return tuple(span)


def to_date(value: Union[date, datetime, str]) -> date:
    """Strip the time of day from a date-like value"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(value).date()


def local_now() -> datetime:
    """Current wall-clock time in the restaurant timezone (naive)"""
    return datetime.now(ZoneInfo(settings.restaurant_timezone)).replace(tzinfo=None)


def slot_datetime(day: date, number: int) -> datetime:
    """Start datetime of a slot on a given day"""
    slot = get_slot(number)
    if slot is None:
        raise ValueError(f"Unknown slot {number}")
    return datetime.combine(to_date(day), slot.start_time)


def hours_until(day: date, number: int, now: datetime) -> float:
    """Hours from `now` until the slot starts (negative once it has started)"""
    return (slot_datetime(day, number) - now).total_seconds() / 3600


def build_reservation_number(day: date, number: int, table_numbers: Iterable[int]) -> str:
    """Derive the label YYYYMMDD-HHMM-T1-T2-... for a booking"""
    date_part = to_date(day).strftime("%Y%m%d")
    time_part = slot_label(number).replace(":", "")
    tables_part = "-".join(str(table) for table in sorted(table_numbers))
    return f"{date_part}-{time_part}-{tables_part}"
