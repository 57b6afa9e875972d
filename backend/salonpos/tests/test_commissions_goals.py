from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from salonpos.core.errors import NotFoundError, ValidationError
from salonpos.models.commission import CommissionTransaction, CommissionType
from salonpos.models.goal import Goal, GoalType
from salonpos.services import appointment_service, cash_service, checkout_service, commission_service, goal_service
from salonpos.services.checkout_service import CheckoutMode, NewItem, Tender

JAN_10 = date(2030, 1, 10)


def record(record_type, price, appointment_id=None, record_id=None, commission="0", category=None, catalog_id=None):
    return SimpleNamespace(
        id=record_id,
        type=record_type,
        price=Decimal(price),
        appointment_id=appointment_id,
        commission_amount_snapshot=Decimal(commission),
        category=category,
        catalog_id=catalog_id,
        professional_id=1,
    )


@pytest.fixture()
def settled(db, tenant, professional, haircut, pomade, customer, methods):
    """One settled comanda on 2030-01-07: haircut R$50 + pomade R$30."""
    cash_service.open_session(db, tenant.id, opening_balance=0)
    appointment = appointment_service.create_booking(
        db, tenant.id, professional.id, datetime(2030, 1, 7, 10), [haircut.id], customer_id=customer.id
    )
    checkout_service.settle(
        db, tenant.id, appointment.id,
        [Tender(methods["cash"].id, Decimal("80"))],
        mode=CheckoutMode.STANDARD,
        add_items=[NewItem("product", pomade.id)],
        now=datetime(2030, 1, 7, 10, 40),
    )
    return appointment


def test_pay_and_undo_payout(db, tenant, settled):
    records = commission_service.list_commissions(db, tenant.id)
    assert len(records) == 2

    paid = commission_service.pay_commission(db, tenant.id, records[0].id, payout_id="P-1")
    assert paid.commission_paid and paid.status == "PAID"

    commission_service.pay_commissions(db, tenant.id, [records[1].id], payout_id="P-1")
    assert commission_service.list_commissions(db, tenant.id, paid=False) == []

    assert commission_service.undo_payout(db, tenant.id, "P-1") == 2
    assert len(commission_service.list_commissions(db, tenant.id, paid=False)) == 2


def test_pay_batch_needs_existing_ids(db, tenant, settled):
    with pytest.raises(NotFoundError):
        commission_service.pay_commissions(db, tenant.id, [999], payout_id="P-2")
    with pytest.raises(ValidationError):
        commission_service.pay_commissions(db, tenant.id, [], payout_id="P-2")
    with pytest.raises(NotFoundError):
        commission_service.undo_payout(db, tenant.id, "missing")


def test_recalculate_touches_only_unpaid_sales(db, tenant, professional, settled):
    haircut_record, pomade_record = sorted(
        commission_service.list_commissions(db, tenant.id), key=lambda r: r.type, reverse=True
    )
    commission_service.pay_commission(db, tenant.id, pomade_record.id)
    bonus = commission_service.record_adjustment(
        db, tenant.id, professional.id, CommissionType.BONUS, "Meta batida", Decimal("25")
    )

    changed = commission_service.recalculate_commissions(db, tenant.id, professional.id, Decimal("50"))

    assert changed == 1
    db.refresh(haircut_record)
    db.refresh(pomade_record)
    db.refresh(bonus)
    assert haircut_record.commission_amount_snapshot == Decimal("25.00")
    assert pomade_record.commission_amount_snapshot == Decimal("3.00")
    assert bonus.commission_amount_snapshot == Decimal("25.00")

    with pytest.raises(ValidationError):
        commission_service.recalculate_commissions(db, tenant.id, professional.id, Decimal("120"))


def test_adjustments_are_signed(db, tenant, professional):
    purchase = commission_service.record_adjustment(
        db, tenant.id, professional.id, CommissionType.EMPLOYEE_PURCHASE, "Pomada", Decimal("30")
    )
    assert purchase.commission_amount_snapshot == Decimal("-30.00")

    with pytest.raises(ValidationError):
        commission_service.record_adjustment(db, tenant.id, professional.id, CommissionType.SERVICE, "x", 1)

    totals = commission_service.totals_by_professional(db.query(CommissionTransaction).all())
    assert totals[professional.id] == {"pending": Decimal("-30.00"), "paid": Decimal("0.00")}


def test_period_math():
    clock = goal_service.month_clock(JAN_10)
    assert (clock.days_in_period, clock.days_elapsed, clock.days_remaining) == (31, 10, 21)

    assert goal_service.projection(Decimal("1000"), clock) == Decimal("3100.00")
    assert goal_service.daily_target_remaining(Decimal("5000"), Decimal("1000"), clock) == Decimal("190.48")
    assert goal_service.daily_target_remaining(Decimal("500"), Decimal("1000"), clock) == Decimal("0.00")

    last_day = goal_service.month_clock(date(2030, 1, 31))
    assert goal_service.daily_target_remaining(Decimal("5000"), Decimal("1000"), last_day) == Decimal("0.00")


def test_attendance_metrics():
    records = [
        record(CommissionType.SERVICE, "50", appointment_id=1, commission="20", category="Cabelo"),
        record(CommissionType.PRODUCT_SALE, "30", appointment_id=1, commission="3", catalog_id=9),
        record(CommissionType.SERVICE, "40", appointment_id=2, commission="16", category="Química"),
        record(CommissionType.SERVICE, "20", record_id=77, commission="8"),
        record(CommissionType.BONUS, "100", record_id=78, commission="100"),
    ]

    assert goal_service.revenue(records) == Decimal("140.00")
    assert goal_service.attendances(records) == 3
    assert goal_service.ticket_average(records) == Decimal("46.67")
    assert goal_service.product_attach_rate(records) == Decimal("0.33")
    assert goal_service.net_profit(records, {9: Decimal("12")}) == Decimal("81.00")
    assert goal_service.service_units(records, ["Cabelo", "Barba"]) == {"total": 3, "secondary": 2}


def test_metrics_on_empty_period():
    assert goal_service.ticket_average([]) == Decimal("0.00")
    assert goal_service.product_attach_rate([]) == Decimal("0.00")
    assert goal_service.projection(Decimal("0"), goal_service.month_clock(JAN_10)) == Decimal("0.00")


def test_set_goal_replaces(db, tenant, professional):
    goal_service.set_goal(db, tenant.id, GoalType.SHOP_REVENUE, Decimal("10000"))
    goal_service.set_goal(db, tenant.id, GoalType.SHOP_REVENUE, Decimal("12000"), professional_id=professional.id)
    goal_service.set_goal(db, tenant.id, GoalType.PROFESSIONAL_REVENUE, Decimal("4000"), professional_id=professional.id)

    goals = db.query(Goal).all()
    assert len(goals) == 2
    shop = [g for g in goals if g.type == GoalType.SHOP_REVENUE][0]
    assert shop.professional_id is None
    assert shop.target_value == Decimal("12000.00")

    with pytest.raises(ValidationError):
        goal_service.set_goal(db, tenant.id, GoalType.PROFESSIONAL_REVENUE, Decimal("1"))
    with pytest.raises(ValidationError):
        goal_service.set_goal(db, tenant.id, "YEARLY", Decimal("1"))
    with pytest.raises(NotFoundError):
        goal_service.set_goal(db, tenant.id, GoalType.PROFESSIONAL_REVENUE, Decimal("1"), professional_id=999)


def test_progress_report(db, tenant, professional, settled):
    goal_service.set_goal(db, tenant.id, GoalType.SHOP_REVENUE, Decimal("2180"))

    report = goal_service.progress_report(db, tenant.id, JAN_10)

    shop = report["shop"]
    assert shop["revenue"] == Decimal("80.00")
    assert shop["attendances"] == 1
    assert shop["ticket_average"] == Decimal("80.00")
    assert shop["product_attach_rate"] == Decimal("1.00")
    # 80 - 20 (haircut commission) - 3 (pomade commission) - 12 (pomade cost)
    assert shop["net_profit"] == Decimal("45.00")
    assert shop["projection"] == Decimal("248.00")
    assert shop["daily_target_remaining"] == Decimal("100.00")

    carlos = report["professionals"][0]
    assert carlos["professional_id"] == professional.id
    assert carlos["service_units"] == 1
    assert carlos["secondary_units"] == 0
    assert carlos["revenue_target"] is None

    february = goal_service.progress_report(db, tenant.id, date(2030, 2, 1))
    assert february["shop"]["revenue"] == Decimal("0.00")
