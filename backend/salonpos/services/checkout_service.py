"""
Checkout settlement of a comanda.

Flow (one database transaction):
1. comanda total, with service lines free for active subscribers;
2. tenders must cover the total; overpayment is recorded as tendered;
3. one IN ledger entry per tender with its processor fee;
4. one commission snapshot per line;
5. appointment -> COMPLETED with the final items and value;
6. client aggregates (total spent, visits, last visit).

Nothing is written when any step fails; the caller can simply retry.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from salonpos.core.database import commit_or_rollback
from salonpos.core.errors import InvariantError, ValidationError
from salonpos.core.events import appointment_events
from salonpos.core.money import ZERO, percent_of, to_money
from salonpos.models.appointment import Appointment, AppointmentItem, AppointmentStatus, ItemKind
from salonpos.models.customer import Customer
from salonpos.models.ledger_entry import LedgerCategory, LedgerEntry
from salonpos.models.payment_method import PaymentMethod, PaymentMethodType
from salonpos.models.product import Product
from salonpos.models.service import Service
from salonpos.models.user import User
from salonpos.services import appointment_service, cash_service, commission_service, customer_service

logger = logging.getLogger(__name__)


class CheckoutMode:
    QUICK = "quick"  # settle the comanda as booked
    STANDARD = "standard"  # may add and remove lines first


@dataclass(frozen=True)
class Tender:
    method_id: int
    amount: Decimal


@dataclass(frozen=True)
class NewItem:
    kind: str
    catalog_id: int


@dataclass
class Allocation:
    total: Decimal
    paid: Decimal
    remaining: Decimal
    change: Decimal

    @property
    def can_settle(self) -> bool:
        return self.paid >= self.total


@dataclass
class TenderLine:
    method_id: int
    method_name: str
    method_type: str
    amount: Decimal
    fee_percentage: Decimal
    fee_amount: Decimal


@dataclass
class SettlementPreview:
    appointment_id: int
    is_subscriber: bool
    items: List[Dict[str, Any]]
    allocation: Allocation
    tenders: List[TenderLine] = field(default_factory=list)


@dataclass
class SettlementResult:
    appointment: Appointment
    allocation: Allocation
    ledger_entries: List[LedgerEntry]
    commissions: list


def comanda_total(items: Iterable[Any], is_subscriber: bool) -> Decimal:
    """Sum of line prices. Under an active subscription service lines cost nothing."""
    total = ZERO
    for item in items:
        if is_subscriber and item.kind == ItemKind.SERVICE:
            continue
        total += to_money(item.price)
    return to_money(total)


def allocate(total: Decimal, amounts: Iterable[Decimal]) -> Allocation:
    paid = to_money(sum((to_money(a) for a in amounts), ZERO))
    total = to_money(total)
    return Allocation(
        total=total,
        paid=paid,
        remaining=max(ZERO, total - paid),
        change=max(ZERO, paid - total),
    )


def tender_fee(amount: Decimal, fee_percentage: Any) -> Decimal:
    return percent_of(amount, fee_percentage)


def _load_methods(db: Session, tenant_id: int, tenders: Sequence[Tender]) -> Dict[int, PaymentMethod]:
    ids = {t.method_id for t in tenders}
    methods = {
        m.id: m
        for m in db.query(PaymentMethod).filter(PaymentMethod.tenant_id == tenant_id, PaymentMethod.id.in_(ids))
    }
    for method_id in ids:
        method = methods.get(method_id)
        if method is None or not method.is_active:
            raise ValidationError(f"Invalid payment method: {method_id}")
    return methods


def _tender_lines(db: Session, tenant_id: int, tenders: Sequence[Tender]) -> List[TenderLine]:
    for tender in tenders:
        if to_money(tender.amount) <= ZERO:
            raise ValidationError("Every payment amount must be greater than zero")
    methods = _load_methods(db, tenant_id, tenders) if tenders else {}
    lines = []
    for tender in tenders:
        method = methods[tender.method_id]
        amount = to_money(tender.amount)
        lines.append(
            TenderLine(
                method_id=method.id,
                method_name=method.name,
                method_type=method.type,
                amount=amount,
                fee_percentage=to_money(method.fee_percentage),
                fee_amount=tender_fee(amount, method.fee_percentage),
            )
        )
    return lines


@dataclass
class _Line:
    kind: str
    catalog_id: Optional[int]
    name: str
    price: Decimal
    duration_minutes: Optional[int] = None


def _final_lines(
    db: Session,
    tenant_id: int,
    appointment: Appointment,
    mode: str,
    add_items: Sequence[NewItem],
    remove_item_ids: Sequence[int],
) -> List[_Line]:
    if mode not in (CheckoutMode.QUICK, CheckoutMode.STANDARD):
        raise ValidationError(f"Invalid checkout mode: {mode}")
    if mode == CheckoutMode.QUICK and (add_items or remove_item_ids):
        raise ValidationError("Quick checkout settles the comanda as booked; use standard mode to edit it")

    existing_ids = {item.id for item in appointment.items}
    unknown = [item_id for item_id in remove_item_ids if item_id not in existing_ids]
    if unknown:
        raise ValidationError(f"Item(s) not in this comanda: {', '.join(str(u) for u in unknown)}")

    removed = set(remove_item_ids)
    lines = [
        _Line(item.kind, item.catalog_id, item.name, to_money(item.price), item.duration_minutes)
        for item in appointment.items
        if item.id not in removed
    ]

    for new in add_items:
        if new.kind == ItemKind.SERVICE:
            service = (
                db.query(Service)
                .filter(Service.id == new.catalog_id, Service.tenant_id == tenant_id, Service.active == True)  # noqa: E712
                .first()
            )
            if not service:
                raise ValidationError(f"Unknown service: {new.catalog_id}")
            lines.append(_Line(ItemKind.SERVICE, service.id, service.name, to_money(service.price), service.duration_minutes))
        elif new.kind == ItemKind.PRODUCT:
            product = (
                db.query(Product)
                .filter(Product.id == new.catalog_id, Product.tenant_id == tenant_id, Product.active == True)  # noqa: E712
                .first()
            )
            if not product:
                raise ValidationError(f"Unknown product: {new.catalog_id}")
            lines.append(_Line(ItemKind.PRODUCT, product.id, product.name, to_money(product.price)))
        else:
            raise ValidationError(f"Invalid item kind: {new.kind}")

    if not lines:
        raise ValidationError("The comanda has no items")
    return lines


def _settleable(db: Session, tenant_id: int, appointment_id: int) -> Appointment:
    appointment = appointment_service.get_appointment(db, tenant_id, appointment_id)
    if appointment.status == AppointmentStatus.COMPLETED:
        raise InvariantError("This comanda is already closed")
    if appointment.status == AppointmentStatus.BLOCKED:
        raise InvariantError("Time-off blocks cannot be checked out")
    return appointment


def _customer(db: Session, appointment: Appointment) -> Optional[Customer]:
    if appointment.customer_id is None:
        return None
    return db.query(Customer).filter(Customer.id == appointment.customer_id).first()


def preview(
    db: Session,
    tenant_id: int,
    appointment_id: int,
    tenders: Sequence[Tender] = (),
    mode: str = CheckoutMode.QUICK,
    add_items: Sequence[NewItem] = (),
    remove_item_ids: Sequence[int] = (),
) -> SettlementPreview:
    """Totals, remaining balance and fees, without writing anything."""
    appointment = _settleable(db, tenant_id, appointment_id)
    lines = _final_lines(db, tenant_id, appointment, mode, add_items, remove_item_ids)
    customer = _customer(db, appointment)
    is_subscriber = bool(customer and customer.is_subscriber)
    tender_lines = _tender_lines(db, tenant_id, tenders)

    return SettlementPreview(
        appointment_id=appointment.id,
        is_subscriber=is_subscriber,
        items=[
            {
                "kind": line.kind,
                "catalog_id": line.catalog_id,
                "name": line.name,
                "price": line.price,
                "billed": ZERO if is_subscriber and line.kind == ItemKind.SERVICE else line.price,
            }
            for line in lines
        ],
        allocation=allocate(comanda_total(lines, is_subscriber), (t.amount for t in tender_lines)),
        tenders=tender_lines,
    )


def settle(
    db: Session,
    tenant_id: int,
    appointment_id: int,
    tenders: Sequence[Tender],
    mode: str = CheckoutMode.QUICK,
    add_items: Sequence[NewItem] = (),
    remove_item_ids: Sequence[int] = (),
    actor: Optional[User] = None,
    now: Optional[datetime] = None,
) -> SettlementResult:
    """
    Close the comanda of an appointment.

    Raises ValidationError while the tenders do not cover the total (the
    message carries the remaining balance) and InvariantError when a real
    tender is given with the cash register closed. Both happen before any write.
    """
    when = now or datetime.now()
    appointment = _settleable(db, tenant_id, appointment_id)
    lines = _final_lines(db, tenant_id, appointment, mode, add_items, remove_item_ids)
    customer = _customer(db, appointment)
    is_subscriber = bool(customer and customer.is_subscriber)

    tender_lines = _tender_lines(db, tenant_id, tenders)
    total = comanda_total(lines, is_subscriber)
    allocation = allocate(total, (t.amount for t in tender_lines))
    if not allocation.can_settle:
        logger.warning(
            "Checkout blocked: appointment=%s total=%s paid=%s", appointment.id, allocation.total, allocation.paid
        )
        raise ValidationError(f"Payment is short: R$ {allocation.remaining} remaining")

    session = None
    if any(t.method_type != PaymentMethodType.DISCOUNT for t in tender_lines):
        session = cash_service.require_open_session(db, tenant_id)

    professional = appointment_service.resolve_professional(db, tenant_id, appointment.professional_id)
    client_name = customer.name if customer else appointment.client_name

    # 3. ledger
    entries = []
    for tender in tender_lines:
        is_discount = tender.method_type == PaymentMethodType.DISCOUNT
        entries.append(
            cash_service.stage_entry(
                db,
                tenant_id,
                amount=tender.amount,
                method=tender.method_type,
                description=cash_service.checkout_description(client_name, is_discount),
                category=LedgerCategory.DISCOUNT if is_discount else LedgerCategory.SERVICE_SALE,
                fee_amount=ZERO if is_discount else tender.fee_amount,
                professional_id=professional.id,
                appointment_id=appointment.id,
                customer_name=client_name,
                occurred_at=when,
                session=session,
            )
        )

    # 4. commissions
    service_ids = [line.catalog_id for line in lines if line.kind == ItemKind.SERVICE and line.catalog_id]
    product_ids = [line.catalog_id for line in lines if line.kind == ItemKind.PRODUCT and line.catalog_id]
    services = {
        s.id: s for s in db.query(Service).filter(Service.tenant_id == tenant_id, Service.id.in_(service_ids))
    } if service_ids else {}
    products = {
        p.id: p for p in db.query(Product).filter(Product.tenant_id == tenant_id, Product.id.in_(product_ids))
    } if product_ids else {}
    commissions = commission_service.build_snapshots(
        tenant_id, appointment.id, professional, lines, client_name, services, products, when
    )
    db.add_all(commissions)

    # 5. appointment
    if mode == CheckoutMode.STANDARD:
        appointment.items.clear()
        db.flush()
        for position, line in enumerate(lines):
            appointment.items.append(
                AppointmentItem(
                    position=position,
                    kind=line.kind,
                    catalog_id=line.catalog_id,
                    name=line.name,
                    price=line.price,
                    duration_minutes=line.duration_minutes,
                )
            )
    old_status = appointment.status
    appointment.status = AppointmentStatus.COMPLETED
    appointment.total_value = total
    appointment_service.record_transition(
        db, tenant_id, appointment.id, old_status, AppointmentStatus.COMPLETED, actor,
        f"Checkout {mode}: total R$ {total}, paid R$ {allocation.paid}",
    )

    # 6. client aggregates
    if customer is not None:
        customer_service.register_visit(customer, total, when)

    commit_or_rollback(db, "Checkout")
    db.refresh(appointment)

    logger.info(
        "Checkout completed: appointment=%s total=%s paid=%s tenders=%s commissions=%s",
        appointment.id, total, allocation.paid, len(entries), len(commissions),
    )
    appointment_events.publish(tenant_id)
    return SettlementResult(
        appointment=appointment,
        allocation=allocation,
        ledger_entries=entries,
        commissions=commissions,
    )
