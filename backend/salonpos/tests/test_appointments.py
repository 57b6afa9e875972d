from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from salonpos.core.errors import ConflictError, InvariantError, NotFoundError, ValidationError
from salonpos.core.events import appointment_events
from salonpos.models.appointment import Appointment, AppointmentStatus
from salonpos.models.customer import Customer
from salonpos.models.status_history import StatusHistory
from salonpos.services import appointment_service

TEN = datetime(2030, 1, 7, 10, 0)


def book(db, tenant, professional, service, start=TEN, **kwargs):
    kwargs.setdefault("client_name", "Maria")
    kwargs.setdefault("phone", "11977776666")
    return appointment_service.create_booking(
        db, tenant.id, professional.id, start, [service.id], **kwargs
    )


def test_booking_creates_customer_and_sums_services(db, tenant, professional, haircut, eyebrow):
    appointment = appointment_service.create_booking(
        db, tenant.id, professional.id, TEN, [haircut.id, eyebrow.id], client_name="Maria", phone="11977776666"
    )

    assert appointment.status == AppointmentStatus.SCHEDULED
    assert appointment.duration_minutes == 45
    assert appointment.end_time == TEN + timedelta(minutes=45)
    assert appointment.total_value == Decimal("70.00")
    assert [item.name for item in appointment.items] == ["Corte", "Sobrancelha"]
    assert appointment.professional_id == professional.id

    customer = db.query(Customer).filter(Customer.phone == "11977776666").one()
    assert appointment.customer_id == customer.id

    # Same phone, new booking: no duplicate client
    book(db, tenant, professional, haircut, start=TEN + timedelta(hours=2), client_name="Maria Silva")
    assert db.query(Customer).filter(Customer.phone == "11977776666").count() == 1


def test_overlapping_booking_is_rejected(db, tenant, professional, haircut):
    book(db, tenant, professional, haircut, start=TEN)

    with pytest.raises(ConflictError):
        book(db, tenant, professional, haircut, start=TEN + timedelta(minutes=15), phone="11900000001")

    back_to_back = book(db, tenant, professional, haircut, start=TEN + timedelta(minutes=30), phone="11900000002")
    assert back_to_back.start_time == TEN + timedelta(minutes=30)


def test_booking_validation(db, tenant, professional, haircut):
    with pytest.raises(ValidationError):
        appointment_service.create_booking(db, tenant.id, 0, TEN, [haircut.id], client_name="A", phone="1")
    with pytest.raises(ValidationError):
        appointment_service.create_booking(db, tenant.id, "abc", TEN, [haircut.id], client_name="A", phone="1")
    with pytest.raises(ValidationError):
        appointment_service.create_booking(db, tenant.id, 9999, TEN, [haircut.id], client_name="A", phone="1")
    with pytest.raises(ValidationError):
        appointment_service.create_booking(db, tenant.id, professional.id, TEN, [], client_name="A", phone="1")
    with pytest.raises(ValidationError):
        appointment_service.create_booking(db, tenant.id, professional.id, TEN, [haircut.id], client_name="A")

    assert db.query(Appointment).count() == 0


def test_time_off_block(db, tenant, professional, haircut):
    block = appointment_service.block_time_off(db, tenant.id, professional.id, TEN, 60, "Dentista")

    assert block.status == AppointmentStatus.BLOCKED
    assert block.customer_id is None
    assert block.total_value == Decimal("0.00")
    assert block.client_name == "Dentista"

    with pytest.raises(ConflictError):
        book(db, tenant, professional, haircut, start=TEN + timedelta(minutes=30))
    with pytest.raises(ValidationError):
        appointment_service.block_time_off(db, tenant.id, professional.id, TEN + timedelta(hours=3), 30, "  ")
    with pytest.raises(ValidationError):
        appointment_service.block_time_off(db, tenant.id, professional.id, TEN + timedelta(hours=3), 0, "Folga")
    with pytest.raises(InvariantError):
        appointment_service.reschedule(db, tenant.id, block.id, start_time=TEN + timedelta(hours=4))


def test_confirm_and_reschedule(db, tenant, professional, haircut):
    first = book(db, tenant, professional, haircut, start=TEN)
    second = book(db, tenant, professional, haircut, start=TEN + timedelta(hours=1), phone="11900000003")

    confirmed = appointment_service.confirm(db, tenant.id, first.id)
    assert confirmed.status == AppointmentStatus.CONFIRMED

    with pytest.raises(ConflictError):
        appointment_service.reschedule(db, tenant.id, second.id, start_time=TEN + timedelta(minutes=15))

    # Moving onto its own current slot is fine
    moved = appointment_service.reschedule(
        db, tenant.id, second.id, start_time=TEN + timedelta(hours=1, minutes=15), duration_minutes=45
    )
    assert moved.start_time == TEN + timedelta(hours=1, minutes=15)
    assert moved.end_time == TEN + timedelta(hours=2)


def test_cancel_deletes_and_keeps_history(db, tenant, professional, haircut):
    appointment = book(db, tenant, professional, haircut)
    appointment_id = appointment.id

    appointment_service.cancel(db, tenant.id, appointment_id)

    with pytest.raises(NotFoundError):
        appointment_service.get_appointment(db, tenant.id, appointment_id)
    statuses = [
        h.new_status
        for h in db.query(StatusHistory).filter(StatusHistory.entity_id == appointment_id).order_by(StatusHistory.id)
    ]
    assert statuses == [AppointmentStatus.SCHEDULED, AppointmentStatus.CANCELED]

    # The slot is free again
    book(db, tenant, professional, haircut, phone="11900000004")


def test_writes_notify_listeners(db, tenant, professional, haircut):
    calls = []
    unsubscribe = appointment_events.subscribe(tenant.id, calls.append)

    appointment = book(db, tenant, professional, haircut)
    appointment_service.confirm(db, tenant.id, appointment.id)
    unsubscribe()
    appointment_service.cancel(db, tenant.id, appointment.id)

    assert calls == [tenant.id, tenant.id]


def test_list_day_and_financial(db, tenant, professional, haircut):
    book(db, tenant, professional, haircut, start=TEN + timedelta(hours=1), phone="11900000005")
    book(db, tenant, professional, haircut, start=TEN, phone="11900000006")
    book(db, tenant, professional, haircut, start=TEN + timedelta(days=1), phone="11900000007")

    day = appointment_service.list_day(db, tenant.id, TEN.date())
    assert [a.start_time for a in day] == [TEN, TEN + timedelta(hours=1)]

    financial = appointment_service.list_financial(db, tenant.id, TEN.date(), TEN.date() + timedelta(days=1))
    assert len(financial["open"]) == 3
    assert financial["closed"] == []
