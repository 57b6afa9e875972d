from datetime import datetime
from decimal import Decimal

import pytest

from salonpos.core.errors import InvariantError, ValidationError
from salonpos.models.appointment import AppointmentStatus, ItemKind
from salonpos.models.commission import CommissionTransaction, CommissionType
from salonpos.models.ledger_entry import LedgerEntry
from salonpos.services import appointment_service, cash_service, checkout_service
from salonpos.services.checkout_service import CheckoutMode, NewItem, Tender

TEN = datetime(2030, 1, 7, 10, 0)
CLOSING = datetime(2030, 1, 7, 10, 40)


@pytest.fixture()
def register(db, tenant):
    return cash_service.open_session(db, tenant.id, opening_balance=Decimal("100"))


def book_for(db, tenant, professional, client, *services):
    return appointment_service.create_booking(
        db, tenant.id, professional.id, TEN, [s.id for s in services], customer_id=client.id
    )


def test_subscriber_pays_only_products(db, tenant, professional, haircut, pomade, subscriber, methods, register):
    appointment = book_for(db, tenant, professional, subscriber, haircut)

    result = checkout_service.settle(
        db, tenant.id, appointment.id,
        [Tender(methods["cash"].id, Decimal("30"))],
        mode=CheckoutMode.STANDARD,
        add_items=[NewItem(ItemKind.PRODUCT, pomade.id)],
        now=CLOSING,
    )

    assert result.allocation.total == Decimal("30.00")
    assert result.appointment.total_value == Decimal("30.00")
    assert result.appointment.status == AppointmentStatus.COMPLETED
    assert [i.name for i in result.appointment.items] == ["Corte", "Pomada"]


def test_split_tenders_write_one_entry_each(db, tenant, professional, haircut, customer, methods, register):
    methods["pix"].fee_percentage = Decimal("1.50")
    db.commit()
    appointment = appointment_service.create_booking(
        db, tenant.id, professional.id, TEN, [haircut.id], customer_id=customer.id
    )
    appointment.items[0].price = Decimal("30")
    db.commit()

    result = checkout_service.settle(
        db, tenant.id, appointment.id,
        [Tender(methods["cash"].id, Decimal("20")), Tender(methods["pix"].id, Decimal("10"))],
        now=CLOSING,
    )

    assert result.allocation.remaining == Decimal("0.00")
    entries = db.query(LedgerEntry).filter(LedgerEntry.appointment_id == appointment.id).order_by(LedgerEntry.id).all()
    assert [(e.method, e.amount, e.fee_amount) for e in entries] == [
        ("cash", Decimal("20.00"), Decimal("0.00")),
        ("pix", Decimal("10.00"), Decimal("0.15")),
    ]
    assert all(e.session_id == register.id for e in entries)
    assert entries[0].description == "Service: João"

    db.refresh(customer)
    assert customer.total_spent == Decimal("30.00")
    assert customer.visits_count == 1
    assert customer.last_visit == CLOSING


def test_credit_fee_is_recorded(db, tenant, professional, haircut, customer, methods, register):
    appointment = book_for(db, tenant, professional, customer, haircut)

    checkout_service.settle(db, tenant.id, appointment.id, [Tender(methods["credit"].id, Decimal("50"))], now=CLOSING)

    entry = db.query(LedgerEntry).filter(LedgerEntry.appointment_id == appointment.id).one()
    assert entry.fee_amount == Decimal("2.00")  # 3.99% of 50, rounded half up


def test_short_payment_blocks_without_writes(db, tenant, professional, haircut, customer, methods, register):
    appointment = book_for(db, tenant, professional, customer, haircut)

    with pytest.raises(ValidationError) as err:
        checkout_service.settle(db, tenant.id, appointment.id, [Tender(methods["cash"].id, Decimal("40"))])

    assert "10.00" in err.value.message
    db.rollback()
    assert db.query(LedgerEntry).count() == 0
    assert db.query(CommissionTransaction).count() == 0
    assert appointment_service.get_appointment(db, tenant.id, appointment.id).status == AppointmentStatus.SCHEDULED


def test_overpayment_is_recorded_as_tendered(db, tenant, professional, haircut, customer, methods, register):
    appointment = book_for(db, tenant, professional, customer, haircut)

    result = checkout_service.settle(db, tenant.id, appointment.id, [Tender(methods["cash"].id, Decimal("60"))])

    assert result.allocation.change == Decimal("10.00")
    assert result.ledger_entries[0].amount == Decimal("60.00")


def test_closed_register_blocks_settlement(db, tenant, professional, haircut, customer, methods):
    appointment = book_for(db, tenant, professional, customer, haircut)

    with pytest.raises(InvariantError):
        checkout_service.settle(db, tenant.id, appointment.id, [Tender(methods["cash"].id, Decimal("50"))])

    db.rollback()
    assert db.query(LedgerEntry).count() == 0
    assert appointment_service.get_appointment(db, tenant.id, appointment.id).status == AppointmentStatus.SCHEDULED


def test_discount_only_settlement_with_closed_register(db, tenant, professional, haircut, customer, methods):
    appointment = book_for(db, tenant, professional, customer, haircut)

    result = checkout_service.settle(
        db, tenant.id, appointment.id, [Tender(methods["discount"].id, Decimal("50"))]
    )

    entry = result.ledger_entries[0]
    assert entry.session_id is None
    assert entry.description == "Discount: João"
    assert entry.fee_amount == Decimal("0.00")


def test_commission_snapshot_survives_rate_change(db, tenant, professional, haircut, eyebrow, pomade, customer, methods, register):
    appointment = book_for(db, tenant, professional, customer, haircut, eyebrow)

    checkout_service.settle(
        db, tenant.id, appointment.id,
        [Tender(methods["cash"].id, Decimal("100"))],
        mode=CheckoutMode.STANDARD,
        add_items=[NewItem(ItemKind.PRODUCT, pomade.id)],
    )
    professional.commission_rate = Decimal("90")
    db.commit()

    records = db.query(CommissionTransaction).order_by(CommissionTransaction.id).all()
    assert [(r.type, r.commission_rate_snapshot, r.commission_amount_snapshot) for r in records] == [
        (CommissionType.SERVICE, Decimal("40.00"), Decimal("20.00")),
        (CommissionType.SERVICE, Decimal("60.00"), Decimal("12.00")),
        (CommissionType.PRODUCT_SALE, Decimal("10.00"), Decimal("3.00")),
    ]
    assert all(r.status == "PENDING" for r in records)


def test_standard_mode_removes_lines(db, tenant, professional, haircut, eyebrow, customer, methods, register):
    appointment = book_for(db, tenant, professional, customer, haircut, eyebrow)
    eyebrow_line = appointment.items[1].id

    result = checkout_service.settle(
        db, tenant.id, appointment.id,
        [Tender(methods["cash"].id, Decimal("50"))],
        mode=CheckoutMode.STANDARD,
        remove_item_ids=[eyebrow_line],
    )

    assert [i.name for i in result.appointment.items] == ["Corte"]
    assert result.appointment.total_value == Decimal("50.00")


def test_quick_mode_cannot_edit_the_comanda(db, tenant, professional, haircut, pomade, customer, methods, register):
    appointment = book_for(db, tenant, professional, customer, haircut)

    with pytest.raises(ValidationError):
        checkout_service.settle(
            db, tenant.id, appointment.id,
            [Tender(methods["cash"].id, Decimal("80"))],
            add_items=[NewItem(ItemKind.PRODUCT, pomade.id)],
        )
    with pytest.raises(ValidationError):
        checkout_service.settle(
            db, tenant.id, appointment.id,
            [Tender(methods["cash"].id, Decimal("50"))],
            mode=CheckoutMode.STANDARD,
            remove_item_ids=[appointment.items[0].id],
        )


def test_preview_writes_nothing(db, tenant, professional, haircut, customer, methods):
    appointment = book_for(db, tenant, professional, customer, haircut)

    preview = checkout_service.preview(
        db, tenant.id, appointment.id, [Tender(methods["credit"].id, Decimal("20"))]
    )

    assert preview.allocation.total == Decimal("50.00")
    assert preview.allocation.remaining == Decimal("30.00")
    assert not preview.allocation.can_settle
    assert preview.tenders[0].fee_amount == Decimal("0.80")
    assert db.query(LedgerEntry).count() == 0


def test_settled_comanda_cannot_be_settled_twice(db, tenant, professional, haircut, customer, methods, register):
    appointment = book_for(db, tenant, professional, customer, haircut)
    tenders = [Tender(methods["cash"].id, Decimal("50"))]
    checkout_service.settle(db, tenant.id, appointment.id, tenders)

    with pytest.raises(InvariantError):
        checkout_service.settle(db, tenant.id, appointment.id, tenders)


def test_reopen_reverses_the_checkout(db, tenant, professional, haircut, customer, methods, register):
    appointment = book_for(db, tenant, professional, customer, haircut)
    checkout_service.settle(
        db, tenant.id, appointment.id,
        [Tender(methods["cash"].id, Decimal("30")), Tender(methods["debit"].id, Decimal("20"))],
        now=CLOSING,
    )

    reopened = appointment_service.reopen(db, tenant.id, appointment.id)

    assert reopened.status == AppointmentStatus.CONFIRMED
    assert db.query(LedgerEntry).count() == 0
    assert db.query(CommissionTransaction).count() == 0
    db.refresh(customer)
    assert customer.total_spent == Decimal("0.00")
    assert customer.visits_count == 0

    summary = cash_service.current_summary(db, tenant.id)["summary"]
    assert summary.cash_in_hand == Decimal("100.00")

    # Reopening again only finishes leftovers
    assert appointment_service.reopen(db, tenant.id, appointment.id).status == AppointmentStatus.CONFIRMED

    # And the comanda can be settled again
    checkout_service.settle(db, tenant.id, appointment.id, [Tender(methods["cash"].id, Decimal("50"))])
    assert db.query(LedgerEntry).count() == 1


def test_reopen_removes_legacy_entries_by_description(db, tenant, professional, haircut, customer, register):
    appointment = book_for(db, tenant, professional, customer, haircut)
    appointment.status = AppointmentStatus.COMPLETED
    db.commit()
    cash_service.add_entry(db, tenant.id, amount=Decimal("50"), method="cash", description="Service: João")
    cash_service.add_entry(db, tenant.id, amount=Decimal("50"), method="cash", description="Service: Outro")

    appointment_service.reopen(db, tenant.id, appointment.id)

    assert [e.description for e in db.query(LedgerEntry).all()] == ["Service: Outro"]


def test_reopen_of_unsettled_appointment_keeps_manual_entries(db, tenant, professional, haircut, customer, register):
    appointment = book_for(db, tenant, professional, customer, haircut)
    appointment_service.confirm(db, tenant.id, appointment.id)
    cash_service.add_entry(db, tenant.id, amount=Decimal("50"), method="cash", description="Service: João")

    appointment_service.reopen(db, tenant.id, appointment.id)

    assert [e.description for e in db.query(LedgerEntry).all()] == ["Service: João"]
    assert cash_service.current_summary(db, tenant.id)["summary"].cash_in_hand == Decimal("150.00")


def test_reopen_moves_last_visit_back(db, tenant, professional, haircut, customer, methods, register):
    earlier = appointment_service.create_booking(
        db, tenant.id, professional.id, datetime(2030, 1, 5, 9, 0), [haircut.id], customer_id=customer.id
    )
    checkout_service.settle(db, tenant.id, earlier.id, [Tender(methods["cash"].id, Decimal("50"))], now=datetime(2030, 1, 5, 9, 40))
    appointment = book_for(db, tenant, professional, customer, haircut)
    checkout_service.settle(db, tenant.id, appointment.id, [Tender(methods["cash"].id, Decimal("50"))], now=CLOSING)

    appointment_service.reopen(db, tenant.id, appointment.id)
    db.refresh(customer)
    assert customer.last_visit == datetime(2030, 1, 5, 9, 0)
    assert customer.visits_count == 1

    appointment_service.reopen(db, tenant.id, earlier.id)
    db.refresh(customer)
    assert customer.last_visit is None
