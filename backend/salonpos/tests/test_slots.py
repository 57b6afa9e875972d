from datetime import date, datetime, time, timedelta

import pytest

from salonpos.core.errors import ValidationError
from salonpos.services.slot_service import (
    BlockReason,
    DayHours,
    WorkSchedule,
    bookable_slots,
    generate_day_slots,
    parse_hhmm,
    schedule_block_reason,
    weekday_index,
)

MONDAY = date(2030, 1, 7)
OPEN_9_TO_20 = DayHours(is_open=True, start=time(9, 0), end=time(20, 0))
CARLOS = WorkSchedule(start=time(9, 0), end=time(20, 0), lunch_start=time(12, 0), lunch_end=time(13, 0))


def test_weekday_index_starts_on_sunday():
    assert weekday_index(date(2030, 1, 6)) == 0
    assert weekday_index(MONDAY) == 1
    assert weekday_index(date(2030, 1, 12)) == 6


def test_lunch_and_early_slots_are_not_bookable():
    slots = generate_day_slots(MONDAY, OPEN_9_TO_20, time(21, 0), 30, time(8, 0))
    bookable = bookable_slots(slots, CARLOS)
    times = [s.time() for s in bookable]

    assert time(12, 0) not in times
    assert time(12, 30) not in times
    assert all(t >= time(9, 0) for t in times)
    assert times[0] == time(9, 0)
    assert times[-1] == time(19, 30)


@pytest.mark.parametrize("interval", [5, 10, 30, 60])
def test_slots_step_by_interval_from_open_time(interval):
    slots = generate_day_slots(MONDAY, OPEN_9_TO_20, time(21, 0), interval, time(8, 0))

    assert slots[0] == datetime.combine(MONDAY, time(9, 0))
    assert all(b - a == timedelta(minutes=interval) for a, b in zip(slots, slots[1:]))
    assert slots[-1] <= datetime.combine(MONDAY, time(21, 0))


def test_cutoff_is_inclusive():
    slots = generate_day_slots(MONDAY, OPEN_9_TO_20, time(19, 30), 30, time(8, 0))
    assert slots[-1].time() == time(19, 30)


def test_cutoff_not_after_open_runs_to_end_of_day():
    late_open = DayHours(is_open=True, start=time(22, 0), end=time(23, 0))
    slots = generate_day_slots(MONDAY, late_open, time(21, 0), 30, time(8, 0))

    assert slots[0].time() == time(22, 0)
    assert slots[-1].time() == time(23, 30)


def test_closed_day_uses_fallback_open_for_staff_grid():
    closed = DayHours(is_open=False, start=time(9, 0), end=time(20, 0))
    slots = generate_day_slots(date(2030, 1, 6), closed, time(21, 0), 60, time(8, 0))
    assert slots[0].time() == time(8, 0)

    unconfigured = generate_day_slots(date(2030, 1, 6), None, time(21, 0), 60, time(8, 0))
    assert unconfigured == slots


def test_invalid_interval_is_rejected():
    with pytest.raises(ValidationError):
        generate_day_slots(MONDAY, OPEN_9_TO_20, time(21, 0), 15, time(8, 0))


def test_schedule_block_reason():
    assert schedule_block_reason(time(8, 30), CARLOS) == BlockReason.CLOSED
    assert schedule_block_reason(time(9, 0), CARLOS) is None
    assert schedule_block_reason(time(12, 0), CARLOS) == BlockReason.LUNCH
    assert schedule_block_reason(time(12, 59), CARLOS) == BlockReason.LUNCH
    assert schedule_block_reason(time(13, 0), CARLOS) is None
    assert schedule_block_reason(time(20, 0), CARLOS) == BlockReason.CLOSED
    assert schedule_block_reason(time(20, 0), None) is None


def test_lunch_needs_both_bounds():
    no_lunch = WorkSchedule(start=time(9, 0), end=time(20, 0), lunch_start=time(12, 0))
    assert schedule_block_reason(time(12, 0), no_lunch) is None


def test_parse_hhmm():
    assert parse_hhmm("08:30") == time(8, 30)
    assert parse_hhmm(time(8, 30, 15)) == time(8, 30)
    with pytest.raises(ValidationError):
        parse_hhmm("eight")
