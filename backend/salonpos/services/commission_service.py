"""
Commission records.

Checkout writes one CommissionTransaction per comanda line with the rate and
amount frozen at that moment. Changing a professional's default rate later does
not touch them; only the explicit `recalculate_commissions` admin operation
rewrites unpaid snapshots.
"""
import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from salonpos.core.database import commit_or_rollback
from salonpos.core.errors import NotFoundError, ValidationError
from salonpos.core.money import ZERO, percent_of, to_money
from salonpos.models.appointment import ItemKind
from salonpos.models.commission import CommissionTransaction, CommissionType
from salonpos.models.product import Product
from salonpos.models.professional import Professional
from salonpos.models.service import CommissionType as ServiceCommissionType, Service

logger = logging.getLogger(__name__)


def resolve_rate(
    item: Any,
    professional: Professional,
    services: Dict[int, Service],
    products: Dict[int, Product],
) -> Decimal:
    """
    Commission rate for a comanda line:
    - service with a "custom" commission type -> its custom rate;
    - any other service -> the professional's default rate;
    - product -> the product's catalog rate.
    """
    if item.kind == ItemKind.PRODUCT:
        product = products.get(item.catalog_id)
        return to_money(product.commission_rate if product else ZERO)

    service = services.get(item.catalog_id)
    if (
        service is not None
        and service.commission_type == ServiceCommissionType.CUSTOM
        and service.custom_commission_rate is not None
    ):
        return to_money(service.custom_commission_rate)
    return to_money(professional.commission_rate)


def build_snapshots(
    tenant_id: int,
    appointment_id: Optional[int],
    professional: Professional,
    items: Iterable[Any],
    client_name: Optional[str],
    services: Dict[int, Service],
    products: Dict[int, Product],
    when: datetime,
) -> List[CommissionTransaction]:
    """One PENDING record per line, amount = rate% x price of the line."""
    records = []
    for item in items:
        rate = resolve_rate(item, professional, services, products)
        price = to_money(item.price)
        if item.kind == ItemKind.PRODUCT:
            product = products.get(item.catalog_id)
            record_type = CommissionType.PRODUCT_SALE
            category = product.category if product else None
        else:
            service = services.get(item.catalog_id)
            record_type = CommissionType.SERVICE
            category = service.category if service else None
        records.append(
            CommissionTransaction(
                tenant_id=tenant_id,
                professional_id=professional.id,
                appointment_id=appointment_id,
                catalog_id=item.catalog_id,
                type=record_type,
                item_name=item.name,
                client_name=client_name,
                category=category,
                date=when,
                price=price,
                commission_rate_snapshot=rate,
                commission_amount_snapshot=percent_of(price, rate),
                status="PENDING",
                commission_paid=False,
            )
        )
    return records


def _query(db: Session, tenant_id: int):
    return db.query(CommissionTransaction).filter(CommissionTransaction.tenant_id == tenant_id)


def get_commission(db: Session, tenant_id: int, commission_id: int) -> CommissionTransaction:
    record = _query(db, tenant_id).filter(CommissionTransaction.id == commission_id).first()
    if not record:
        raise NotFoundError("Commission record not found")
    return record


def list_commissions(
    db: Session,
    tenant_id: int,
    professional_id: Optional[int] = None,
    paid: Optional[bool] = None,
    start_day: Optional[date] = None,
    end_day: Optional[date] = None,
) -> List[CommissionTransaction]:
    query = _query(db, tenant_id)
    if professional_id is not None:
        query = query.filter(CommissionTransaction.professional_id == professional_id)
    if paid is not None:
        query = query.filter(CommissionTransaction.commission_paid == paid)
    if start_day is not None:
        query = query.filter(CommissionTransaction.date >= datetime.combine(start_day, time.min))
    if end_day is not None:
        query = query.filter(CommissionTransaction.date < datetime.combine(end_day, time.min) + timedelta(days=1))
    return query.order_by(CommissionTransaction.date.desc(), CommissionTransaction.id.desc()).all()


def record_adjustment(
    db: Session,
    tenant_id: int,
    professional_id: int,
    record_type: str,
    item_name: str,
    amount: Any,
    when: Optional[datetime] = None,
) -> CommissionTransaction:
    """
    Manual entry outside checkout: a BONUS paid to the professional or an
    EMPLOYEE_PURCHASE discounted from the commission. Amount is the commission
    value itself (rate 100%); purchases are stored negative.
    """
    if record_type not in (CommissionType.BONUS, CommissionType.EMPLOYEE_PURCHASE):
        raise ValidationError("Adjustments must be BONUS or EMPLOYEE_PURCHASE")
    value = to_money(amount)
    if value <= ZERO:
        raise ValidationError("Amount must be greater than zero")
    if not (item_name or "").strip():
        raise ValidationError("Description is required")
    professional = (
        db.query(Professional)
        .filter(Professional.id == professional_id, Professional.tenant_id == tenant_id)
        .first()
    )
    if not professional:
        raise NotFoundError("Professional not found")

    signed = value if record_type == CommissionType.BONUS else -value
    record = CommissionTransaction(
        tenant_id=tenant_id,
        professional_id=professional.id,
        type=record_type,
        item_name=item_name.strip(),
        date=when or datetime.now(),
        price=value,
        commission_rate_snapshot=Decimal("100.00"),
        commission_amount_snapshot=signed,
        status="PENDING",
        commission_paid=False,
    )
    db.add(record)
    commit_or_rollback(db, "Record commission adjustment")
    db.refresh(record)
    logger.info("Commission adjustment: professional=%s type=%s amount=%s", professional.id, record_type, signed)
    return record


def _mark_paid(record: CommissionTransaction, payout_id: Optional[str]) -> None:
    record.commission_paid = True
    record.status = "PAID"
    record.payout_id = payout_id


def pay_commission(db: Session, tenant_id: int, commission_id: int, payout_id: Optional[str] = None) -> CommissionTransaction:
    record = get_commission(db, tenant_id, commission_id)
    _mark_paid(record, payout_id)
    commit_or_rollback(db, "Pay commission")
    db.refresh(record)
    logger.info("Commission paid: id=%s payout=%s", record.id, payout_id)
    return record


def pay_commissions(db: Session, tenant_id: int, commission_ids: Iterable[int], payout_id: str) -> List[CommissionTransaction]:
    """Pay a batch under one payout id. All ids must exist."""
    ids = list(dict.fromkeys(int(cid) for cid in commission_ids))
    if not ids:
        raise ValidationError("Select at least one commission")
    if not (payout_id or "").strip():
        raise ValidationError("Payout id is required")
    records = _query(db, tenant_id).filter(CommissionTransaction.id.in_(ids)).all()
    if len(records) != len(ids):
        found = {r.id for r in records}
        missing = [cid for cid in ids if cid not in found]
        raise NotFoundError(f"Commission record(s) not found: {', '.join(str(m) for m in missing)}")
    for record in records:
        _mark_paid(record, payout_id)
    commit_or_rollback(db, "Pay commissions")
    logger.info("Commission payout %s: %s records", payout_id, len(records))
    return records


def undo_payout(db: Session, tenant_id: int, payout_id: str) -> int:
    records = _query(db, tenant_id).filter(CommissionTransaction.payout_id == payout_id).all()
    if not records:
        raise NotFoundError("Payout not found")
    for record in records:
        record.commission_paid = False
        record.status = "PENDING"
        record.payout_id = None
    commit_or_rollback(db, "Undo commission payout")
    logger.info("Commission payout %s undone: %s records", payout_id, len(records))
    return len(records)


def recalculate_commissions(db: Session, tenant_id: int, professional_id: int, rate: Any) -> int:
    """
    Admin-only bulk rewrite: every unpaid SERVICE/PRODUCT_SALE record of the
    professional gets the new rate and amount. Paid records are left alone.
    """
    new_rate = to_money(rate)
    if new_rate < ZERO or new_rate > Decimal("100"):
        raise ValidationError("Commission rate must be between 0 and 100")
    records = (
        _query(db, tenant_id)
        .filter(
            CommissionTransaction.professional_id == professional_id,
            CommissionTransaction.commission_paid == False,  # noqa: E712
            CommissionTransaction.type.in_((CommissionType.SERVICE, CommissionType.PRODUCT_SALE)),
        )
        .all()
    )
    for record in records:
        record.commission_rate_snapshot = new_rate
        record.commission_amount_snapshot = percent_of(record.price, new_rate)
    commit_or_rollback(db, "Recalculate commissions")
    logger.info(
        "Commissions recalculated: professional=%s rate=%s records=%s", professional_id, new_rate, len(records)
    )
    return len(records)


def purge_appointment_commissions(db: Session, tenant_id: int, appointment_id: int) -> int:
    """Stage deletion of the records written by an appointment's checkout."""
    return (
        _query(db, tenant_id)
        .filter(CommissionTransaction.appointment_id == appointment_id)
        .delete(synchronize_session=False)
    )


def totals_by_professional(records: Iterable[CommissionTransaction]) -> Dict[int, Dict[str, Decimal]]:
    """Pending and paid commission per professional."""
    totals: Dict[int, Dict[str, Decimal]] = {}
    for record in records:
        bucket = totals.setdefault(record.professional_id, {"pending": ZERO, "paid": ZERO})
        key = "paid" if record.commission_paid else "pending"
        bucket[key] += to_money(record.commission_amount_snapshot)
    return totals
