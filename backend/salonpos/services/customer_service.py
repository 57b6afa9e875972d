from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from salonpos.core.errors import NotFoundError, ValidationError
from salonpos.core.money import ZERO, to_money
from salonpos.models.appointment import Appointment, AppointmentStatus
from salonpos.models.customer import Customer

logger = logging.getLogger(__name__)


def _normalize_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def get_customer(db: Session, tenant_id: int, customer_id: int) -> Customer:
    customer = (
        db.query(Customer)
        .filter(Customer.id == customer_id, Customer.tenant_id == tenant_id)
        .first()
    )
    if not customer:
        raise NotFoundError("Client not found")
    return customer


def upsert_customer(
    db: Session,
    tenant_id: int,
    name: Optional[str],
    phone: Optional[str],
    email: Optional[str] = None,
) -> Customer:
    """
    Ensure there is a Customer record for the given tenant/phone.
    - Phone is the grouping key (unique per tenant); both name and phone are required.
    - An existing record gets its name (and email, when given) refreshed.
    The new row is staged on the session, not committed.
    """
    normalized_name = _normalize_text(name)
    normalized_phone = _normalize_text(phone)
    normalized_email = _normalize_text(email)

    if not normalized_name or not normalized_phone:
        raise ValidationError("Client name and phone are required")

    customer = (
        db.query(Customer)
        .filter(Customer.tenant_id == tenant_id, Customer.phone == normalized_phone)
        .first()
    )

    if customer:
        if customer.name != normalized_name:
            customer.name = normalized_name
        if normalized_email and customer.email != normalized_email:
            customer.email = normalized_email
        return customer

    customer = Customer(
        tenant_id=tenant_id,
        name=normalized_name,
        phone=normalized_phone,
        email=normalized_email,
    )
    db.add(customer)
    db.flush()
    logger.info("Client created: tenant=%s id=%s", tenant_id, customer.id)
    return customer


def register_visit(customer: Customer, amount: Decimal, when: datetime) -> None:
    customer.total_spent = to_money(customer.total_spent) + to_money(amount)
    customer.visits_count = (customer.visits_count or 0) + 1
    customer.last_visit = when


def revert_visit(customer: Customer, amount: Decimal, last_visit: Optional[datetime] = None) -> None:
    """Undo one settled visit. Aggregates never go below zero."""
    customer.total_spent = max(ZERO, to_money(customer.total_spent) - to_money(amount))
    customer.visits_count = max(0, (customer.visits_count or 0) - 1)
    customer.last_visit = last_visit


def last_completed_visit(
    db: Session,
    tenant_id: int,
    customer_id: int,
    exclude_id: Optional[int] = None,
) -> Optional[datetime]:
    """Start of the latest COMPLETED appointment of a client, if any."""
    query = db.query(func.max(Appointment.start_time)).filter(
        Appointment.tenant_id == tenant_id,
        Appointment.customer_id == customer_id,
        Appointment.status == AppointmentStatus.COMPLETED,
    )
    if exclude_id is not None:
        query = query.filter(Appointment.id != exclude_id)
    return query.scalar()
