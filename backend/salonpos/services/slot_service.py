"""
Agenda slot generator.

Pure functions: no database access, identical input gives identical output.
The agenda works on shop-local wall-clock datetimes (naive).
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Union

from salonpos.core.config import settings
from salonpos.core.errors import ValidationError

ALLOWED_INTERVALS = (5, 10, 30, 60)
END_OF_DAY = time(23, 59)


class BlockReason:
    CLOSED = "CLOSED"
    LUNCH = "LUNCH"
    BOOKED = "BOOKED"


@dataclass(frozen=True)
class DayHours:
    is_open: bool
    start: time
    end: time


@dataclass(frozen=True)
class WorkSchedule:
    start: time
    end: time
    lunch_start: Optional[time] = None
    lunch_end: Optional[time] = None


def parse_hhmm(value: Union[str, time]) -> time:
    """Accepts "09:00" or a time instance."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    try:
        hours, minutes = str(value).strip().split(":")[:2]
        return time(int(hours), int(minutes))
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid time of day: {value!r}") from exc


def validate_interval(interval: int) -> int:
    if interval not in ALLOWED_INTERVALS:
        raise ValidationError(
            f"Slot interval must be one of {', '.join(str(i) for i in ALLOWED_INTERVALS)} minutes"
        )
    return interval


def weekday_index(day: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def hours_for_day(rows: Iterable, day: date) -> Optional[DayHours]:
    """Pick the OperatingHours row for the weekday of `day`, if configured."""
    index = weekday_index(day)
    for row in rows:
        if row.day_index == index:
            return DayHours(is_open=bool(row.is_open), start=parse_hhmm(row.start), end=parse_hhmm(row.end))
    return None


def schedule_for(professional) -> WorkSchedule:
    """Personal schedule of a professional, falling back to the configured defaults."""
    start = professional.work_start or parse_hhmm(settings.default_work_start)
    end = professional.work_end or parse_hhmm(settings.default_work_end)
    lunch_start = professional.lunch_start
    lunch_end = professional.lunch_end
    if professional.work_start is None and professional.work_end is None and lunch_start is None and lunch_end is None:
        lunch_start = parse_hhmm(settings.default_lunch_start)
        lunch_end = parse_hhmm(settings.default_lunch_end)
    return WorkSchedule(start=start, end=end, lunch_start=lunch_start, lunch_end=lunch_end)


def generate_day_slots(
    day: date,
    hours: Optional[DayHours],
    display_until: time,
    interval: int,
    fallback_open: time,
) -> List[datetime]:
    """
    Slot start times for the staff calendar of one day.

    Starts at the weekday's opening time, or at `fallback_open` when the shop is
    closed (or not configured) that weekday, so the multi-professional grid still
    renders. Runs up to `display_until` inclusive; a cutoff that is not after the
    opening time is pushed to 23:59.
    """
    validate_interval(interval)
    open_at = hours.start if hours is not None and hours.is_open else fallback_open

    current = datetime.combine(day, open_at)
    limit = datetime.combine(day, display_until)
    if limit <= current:
        limit = datetime.combine(day, END_OF_DAY)

    step = timedelta(minutes=interval)
    slots: List[datetime] = []
    while current <= limit:
        slots.append(current)
        current += step
    return slots


def schedule_block_reason(slot: Union[datetime, time], schedule: Optional[WorkSchedule]) -> Optional[str]:
    """
    CLOSED when the slot is outside [start, end) of the personal schedule,
    LUNCH when it falls inside [lunch_start, lunch_end). None when bookable.
    """
    if schedule is None:
        return None
    moment = slot.time() if isinstance(slot, datetime) else slot
    moment = moment.replace(second=0, microsecond=0)

    if moment < schedule.start or moment >= schedule.end:
        return BlockReason.CLOSED
    if schedule.lunch_start and schedule.lunch_end and schedule.lunch_start <= moment < schedule.lunch_end:
        return BlockReason.LUNCH
    return None


def bookable_slots(slots: Iterable[datetime], schedule: Optional[WorkSchedule]) -> List[datetime]:
    """Drop the slots the personal schedule marks CLOSED or LUNCH."""
    return [slot for slot in slots if schedule_block_reason(slot, schedule) is None]
