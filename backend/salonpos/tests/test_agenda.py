from datetime import date, datetime, time

import pytest

from salonpos.core.database import SessionLocal
from salonpos.core.errors import ConflictError, ValidationError
from salonpos.models.professional import Professional, ProfessionalStatus
from salonpos.services import agenda_service, appointment_service
from salonpos.services.slot_service import BlockReason

MONDAY = date(2030, 1, 7)
SUNDAY = date(2030, 1, 6)


def at(hour, minute=0, day=MONDAY):
    return datetime.combine(day, time(hour, minute))


def add_professional(db, tenant, name, specialties=(), status=ProfessionalStatus.ACTIVE):
    pro = Professional(
        tenant_id=tenant.id,
        name=name,
        commission_rate=30,
        specialties=list(specialties),
        status=status,
        work_start=time(9, 0),
        work_end=time(20, 0),
    )
    db.add(pro)
    db.commit()
    return pro


def book(db, tenant, professional, service, start, phone="11955554444"):
    return appointment_service.create_booking(
        db, tenant.id, professional.id, start, [service.id], client_name="Maria", phone=phone
    )


def test_staff_grid_marks_bookings_and_breaks(db, tenant, professional, haircut):
    appointment = book(db, tenant, professional, haircut, at(10))

    view = agenda_service.staff_grid(db, tenant.id, MONDAY, interval=30)

    assert view["slots"][0] == at(9)
    assert view["slots"][-1] == at(21)
    cells = {cell.start: cell for cell in view["grid"][professional.id]}
    assert cells[at(9)].available
    assert cells[at(10)].reason == BlockReason.BOOKED
    assert cells[at(10)].appointment_id == appointment.id
    assert cells[at(10, 30)].available
    assert cells[at(12)].reason == BlockReason.LUNCH
    assert cells[at(20)].reason == BlockReason.CLOSED


def test_staff_grid_on_closed_day_starts_at_fallback(db, tenant, professional):
    view = agenda_service.staff_grid(db, tenant.id, SUNDAY, interval=60)
    assert view["slots"][0] == at(8, day=SUNDAY)


def test_public_slots(db, tenant, professional, haircut):
    book(db, tenant, professional, haircut, at(10))

    slots = agenda_service.public_slots(db, tenant.id, MONDAY, [haircut.id], now=at(8))

    assert slots[0] == at(9)
    assert at(9, 30) in slots
    assert at(10) not in slots
    assert at(12) not in slots
    assert slots[-1] == at(19, 30)

    assert agenda_service.public_slots(db, tenant.id, SUNDAY, [haircut.id], now=at(0, day=SUNDAY)) == []
    with pytest.raises(ValidationError):
        agenda_service.public_slots(db, tenant.id, MONDAY, [999], now=at(8))


def test_any_professional_offers_slot_while_someone_is_free(db, tenant, professional, haircut):
    bruno = add_professional(db, tenant, "Bruno")
    book(db, tenant, professional, haircut, at(10))

    slots = agenda_service.public_slots(db, tenant.id, MONDAY, [haircut.id], now=at(8))
    assert at(10) in slots

    only_carlos = agenda_service.public_slots(
        db, tenant.id, MONDAY, [haircut.id], now=at(8), professional_id=professional.id
    )
    assert at(10) not in only_carlos

    book(db, tenant, bruno, haircut, at(10), phone="11955553333")
    assert at(10) not in agenda_service.public_slots(db, tenant.id, MONDAY, [haircut.id], now=at(8))


def test_pick_professional_skips_ineligible_and_absent(db, tenant, professional, haircut):
    add_professional(db, tenant, "Aline", status=ProfessionalStatus.VACATION)
    add_professional(db, tenant, "Ana", specialties=["Barba"])
    book(db, tenant, professional, haircut, at(10))

    with pytest.raises(ValidationError):
        agenda_service.pick_professional(db, tenant.id, at(10), [haircut.id])

    bruno = add_professional(db, tenant, "Bruno")
    assert agenda_service.pick_professional(db, tenant.id, at(10), [haircut.id]).id == bruno.id
    assert agenda_service.pick_professional(db, tenant.id, at(11), [haircut.id]).id == bruno.id


def test_board_reloads_its_day_after_writes(db, tenant, professional, haircut):
    board = agenda_service.AgendaBoard(SessionLocal, tenant.id, MONDAY)
    assert board.show(MONDAY) == []

    appointment = book(db, tenant, professional, haircut, at(10))
    assert [row["id"] for row in board.appointments] == [appointment.id]

    # A write on another day still reloads the day being shown
    book(db, tenant, professional, haircut, at(10, day=date(2030, 1, 8)), phone="11955552222")
    assert [row["id"] for row in board.appointments] == [appointment.id]
    assert board.refresh_count == 3

    board.close()
    appointment_service.cancel(db, tenant.id, appointment.id)
    assert board.refresh_count == 3
    assert board.show(MONDAY) == []


def test_pick_professional_respects_shop_hours(db, tenant, professional, haircut):
    with pytest.raises(ValidationError):
        agenda_service.pick_professional(db, tenant.id, at(10, day=SUNDAY), [haircut.id])
    with pytest.raises(ValidationError):
        agenda_service.pick_professional(db, tenant.id, at(20), [haircut.id])
    assert agenda_service.pick_professional(db, tenant.id, at(19, 30), [haircut.id]).id == professional.id


def test_pick_professional_rejects_unknown_services(db, tenant, professional, haircut):
    haircut.active = False
    db.commit()
    with pytest.raises(ValidationError):
        agenda_service.pick_professional(db, tenant.id, at(10), [haircut.id])
    with pytest.raises(ValidationError):
        agenda_service.pick_professional(db, tenant.id, at(10), [999])


def test_public_booking_must_take_an_offered_slot(db, tenant, professional, haircut):
    now = at(8)
    agenda_service.ensure_public_slot(db, tenant.id, at(9, 30), [haircut.id], now, professional.id)

    for start in (at(10, day=SUNDAY), at(12), at(3), at(9, 15), at(7)):
        with pytest.raises(ConflictError):
            agenda_service.ensure_public_slot(db, tenant.id, start, [haircut.id], now, professional.id)
    with pytest.raises(ConflictError):
        agenda_service.ensure_public_slot(db, tenant.id, at(10, day=SUNDAY), [haircut.id], now)
