"""
Conflict detection for the agenda.

Double-booking is checked with half-open intervals: [start, end) overlaps
[other_start, other_end) when other_start < end and start < other_end.
Back-to-back appointments (one ends 10:30, next starts 10:30) do not conflict.

Everything here is pure; callers load the busy intervals from the database.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Union

from salonpos.services.slot_service import (
    BlockReason,
    DayHours,
    WorkSchedule,
    schedule_block_reason,
    validate_interval,
)


@dataclass(frozen=True)
class BusyInterval:
    start: datetime
    end: datetime
    appointment_id: Optional[int] = None
    status: Optional[str] = None


@dataclass
class Candidate:
    """A professional considered for a slot: schedule plus what is already booked."""
    professional_id: int
    schedule: Optional[WorkSchedule] = None
    busy: List[BusyInterval] = field(default_factory=list)


@dataclass
class SlotCell:
    start: datetime
    available: bool
    reason: Optional[str] = None
    appointment_id: Optional[int] = None


# Specialty policy: who may perform which service categories.

@dataclass(frozen=True)
class Unrestricted:
    """No declared specialties: the professional is eligible for every service."""

    def allows(self, category: Optional[str]) -> bool:
        return True


@dataclass(frozen=True)
class RestrictedTo:
    categories: FrozenSet[str]

    def allows(self, category: Optional[str]) -> bool:
        # Uncategorized services are open to everyone
        if not category:
            return True
        return category in self.categories


SpecialtyPolicy = Union[Unrestricted, RestrictedTo]


def specialty_policy(specialties: Optional[Iterable[str]]) -> SpecialtyPolicy:
    cleaned = frozenset(s.strip() for s in (specialties or []) if s and s.strip())
    if not cleaned:
        return Unrestricted()
    return RestrictedTo(cleaned)


def is_eligible(policy: SpecialtyPolicy, categories: Iterable[Optional[str]]) -> bool:
    return all(policy.allows(category) for category in categories)


def overlaps(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    return other_start < end and start < other_end


def find_conflict(
    busy: Iterable[BusyInterval],
    start: datetime,
    end: datetime,
    exclude_id: Optional[int] = None,
) -> Optional[BusyInterval]:
    """First busy interval overlapping [start, end), ignoring `exclude_id`."""
    for interval in busy:
        if exclude_id is not None and interval.appointment_id == exclude_id:
            continue
        if overlaps(start, end, interval.start, interval.end):
            return interval
    return None


def candidate_is_free(candidate: Candidate, start: datetime, duration_minutes: int) -> bool:
    if schedule_block_reason(start, candidate.schedule) is not None:
        return False
    end = start + timedelta(minutes=duration_minutes)
    return find_conflict(candidate.busy, start, end) is None


def any_available(candidates: Sequence[Candidate], start: datetime, duration_minutes: int) -> bool:
    """
    "Any professional" pool: the slot is unavailable only when every candidate
    is blocked or conflicts. An empty pool has nothing to offer.
    """
    return any(candidate_is_free(c, start, duration_minutes) for c in candidates)


def public_available_slots(
    day: date,
    hours: Optional[DayHours],
    candidates: Sequence[Candidate],
    duration_minutes: int,
    interval: int,
    now: datetime,
) -> List[datetime]:
    """
    Slots a client may book on `day`.

    Closed (or unconfigured) weekdays yield nothing. Slots run from the opening
    time while strictly before closing, each checked for the full service
    duration. Only starts strictly after `now` are offered, which also empties
    past dates.
    """
    validate_interval(interval)
    if hours is None or not hours.is_open:
        return []

    current = datetime.combine(day, hours.start)
    closing = datetime.combine(day, hours.end)
    step = timedelta(minutes=interval)

    slots: List[datetime] = []
    while current < closing:
        if current > now and any_available(candidates, current, duration_minutes):
            slots.append(current)
        current += step
    return slots


def build_agenda_grid(slots: Sequence[datetime], candidates: Sequence[Candidate]) -> Dict[int, List[SlotCell]]:
    """
    Per professional, every slot with its availability and the reason it is
    taken: CLOSED / LUNCH from the personal schedule, BOOKED when an
    appointment covers it.
    """
    grid: Dict[int, List[SlotCell]] = {}
    for candidate in candidates:
        cells: List[SlotCell] = []
        for slot in slots:
            reason = schedule_block_reason(slot, candidate.schedule)
            appointment_id = None
            if reason is None:
                # A slot is covered by an appointment when start <= slot < end
                occupying = find_conflict(candidate.busy, slot, slot + timedelta(microseconds=1))
                if occupying is not None:
                    reason = BlockReason.BOOKED
                    appointment_id = occupying.appointment_id
            cells.append(SlotCell(start=slot, available=reason is None, reason=reason, appointment_id=appointment_id))
        grid[candidate.professional_id] = cells
    return grid
