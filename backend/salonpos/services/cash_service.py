"""
Cash register sessions (abertura / fechamento de caixa) and the ledger.

Invariants:
- at most one open session per tenant (partial unique index + pre-check);
- money-moving entries need an open session, except the "discount" pseudo-tender;
- closing is always allowed; the difference is informational only.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from salonpos.core.database import commit_or_rollback
from salonpos.core.errors import ConflictError, InvariantError, NotFoundError, StorageError, ValidationError
from salonpos.core.money import ZERO, to_money
from salonpos.models.cash_session import CashSession, CashSessionStatus
from salonpos.models.ledger_entry import Direction, LedgerCategory, LedgerEntry
from salonpos.models.payment_method import PaymentMethodType

logger = logging.getLogger(__name__)

CASH_CLOSED_MESSAGE = "Cash register is closed. Open the register before receiving payments."


@dataclass
class CashSummary:
    opening_balance: Decimal = ZERO
    total_in: Decimal = ZERO
    total_out: Decimal = ZERO
    by_method: Dict[str, Decimal] = field(default_factory=dict)
    cash_in_hand: Decimal = ZERO
    current_balance: Decimal = ZERO
    discounts_given: Decimal = ZERO
    gross_revenue: Decimal = ZERO
    total_fees: Decimal = ZERO
    net_revenue: Decimal = ZERO
    entries_count: int = 0


def summarize(opening_balance: Any, entries: Iterable[LedgerEntry]) -> CashSummary:
    """
    Derived totals of a session.

    by_method is net (IN - OUT). Cash in hand only counts the cash method;
    current balance counts every method. Discounts are a price reduction, so
    they stay out of cash in hand and gross revenue.
    """
    opening = to_money(opening_balance)
    summary = CashSummary(opening_balance=opening)

    for entry in entries:
        amount = to_money(entry.amount)
        signed = amount if entry.direction == Direction.IN else -amount
        summary.entries_count += 1
        summary.by_method[entry.method] = summary.by_method.get(entry.method, ZERO) + signed

        if entry.direction == Direction.IN:
            summary.total_in += amount
            if entry.method == PaymentMethodType.DISCOUNT:
                summary.discounts_given += amount
            else:
                summary.gross_revenue += amount
                summary.total_fees += to_money(entry.fee_amount)
        else:
            summary.total_out += amount

    summary.cash_in_hand = opening + summary.by_method.get(PaymentMethodType.CASH, ZERO)
    summary.current_balance = opening + summary.total_in - summary.total_out
    summary.net_revenue = summary.gross_revenue - summary.total_fees
    return summary


def get_open_session(db: Session, tenant_id: int) -> Optional[CashSession]:
    return (
        db.query(CashSession)
        .filter(CashSession.tenant_id == tenant_id, CashSession.status == CashSessionStatus.OPEN)
        .first()
    )


def require_open_session(db: Session, tenant_id: int) -> CashSession:
    session = get_open_session(db, tenant_id)
    if session is None:
        logger.warning("Rejected money movement: cash register closed (tenant=%s)", tenant_id)
        raise InvariantError(CASH_CLOSED_MESSAGE)
    return session


def last_closing_balance(db: Session, tenant_id: int) -> Decimal:
    last = (
        db.query(CashSession)
        .filter(CashSession.tenant_id == tenant_id, CashSession.status == CashSessionStatus.CLOSED)
        .order_by(CashSession.closed_at.desc(), CashSession.id.desc())
        .first()
    )
    if last is None or last.closing_balance is None:
        return ZERO
    return to_money(last.closing_balance)


def open_session(
    db: Session,
    tenant_id: int,
    opening_balance: Any = None,
    responsible_name: Optional[str] = None,
    observation: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CashSession:
    """
    Open the register. Without an explicit opening balance, the previous
    session's closing balance carries over (0 for the first session).
    """
    if get_open_session(db, tenant_id) is not None:
        logger.warning("Rejected cash open: a session is already open (tenant=%s)", tenant_id)
        raise ConflictError("Cash register is already open")

    if opening_balance is None:
        balance = last_closing_balance(db, tenant_id)
    else:
        balance = to_money(opening_balance)
        if balance < ZERO:
            raise ValidationError("Opening balance cannot be negative")

    session = CashSession(
        tenant_id=tenant_id,
        status=CashSessionStatus.OPEN,
        opened_at=now or datetime.now(),
        opening_balance=balance,
        responsible_name=responsible_name,
        observation=observation,
    )
    db.add(session)
    try:
        db.commit()
    except IntegrityError as exc:
        # Lost the race against a concurrent open
        db.rollback()
        logger.warning("Cash open rejected by unique index (tenant=%s)", tenant_id)
        raise ConflictError("Cash register is already open") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError(str(getattr(exc, "orig", None) or exc)) from exc
    db.refresh(session)

    logger.info("Cash register opened: tenant=%s session=%s balance=%s", tenant_id, session.id, balance)
    return session


def stage_entry(
    db: Session,
    tenant_id: int,
    amount: Any,
    method: str,
    description: str,
    direction: str = Direction.IN,
    category: str = LedgerCategory.OTHER,
    fee_amount: Any = ZERO,
    professional_id: Optional[int] = None,
    appointment_id: Optional[int] = None,
    customer_name: Optional[str] = None,
    occurred_at: Optional[datetime] = None,
    session: Optional[CashSession] = None,
) -> LedgerEntry:
    """
    Validate and add a ledger entry to the unit of work without committing.
    Used by add_entry and by checkout, which commits everything at once.
    """
    value = to_money(amount)
    if value <= ZERO:
        raise ValidationError("Amount must be greater than zero")
    if direction not in (Direction.IN, Direction.OUT):
        raise ValidationError(f"Invalid direction: {direction}")
    if method not in PaymentMethodType.ALL:
        raise ValidationError(f"Invalid payment method: {method}")
    if not (description or "").strip():
        raise ValidationError("Description is required")

    if session is None:
        session = get_open_session(db, tenant_id)
    if session is None and method != PaymentMethodType.DISCOUNT:
        logger.warning("Rejected ledger entry: cash register closed (tenant=%s, method=%s)", tenant_id, method)
        raise InvariantError(CASH_CLOSED_MESSAGE)

    entry = LedgerEntry(
        tenant_id=tenant_id,
        session_id=session.id if session is not None else None,
        appointment_id=appointment_id,
        professional_id=professional_id,
        amount=value,
        direction=direction,
        method=method,
        fee_amount=to_money(fee_amount),
        category=category,
        description=description.strip(),
        customer_name=customer_name,
        status="PAID",
        occurred_at=occurred_at or datetime.now(),
    )
    db.add(entry)
    return entry


def add_entry(db: Session, tenant_id: int, **kwargs) -> LedgerEntry:
    entry = stage_entry(db, tenant_id, **kwargs)
    commit_or_rollback(db, "Add ledger entry")
    db.refresh(entry)
    logger.info(
        "Ledger entry: tenant=%s id=%s %s %s via %s (%s)",
        tenant_id, entry.id, entry.direction, entry.amount, entry.method, entry.category,
    )
    return entry


def session_entries(db: Session, session: CashSession) -> List[LedgerEntry]:
    return (
        db.query(LedgerEntry)
        .filter(
            LedgerEntry.tenant_id == session.tenant_id,
            LedgerEntry.session_id == session.id,
            LedgerEntry.status == "PAID",
        )
        .order_by(LedgerEntry.occurred_at.desc(), LedgerEntry.id.desc())
        .all()
    )


def current_summary(db: Session, tenant_id: int) -> Dict[str, Any]:
    session = get_open_session(db, tenant_id)
    if session is None:
        return {"is_open": False, "session": None, "summary": summarize(ZERO, []), "entries": []}
    entries = session_entries(db, session)
    return {
        "is_open": True,
        "session": session,
        "summary": summarize(session.opening_balance, entries),
        "entries": entries,
    }


def close_session(
    db: Session,
    tenant_id: int,
    physical_cash: Any,
    observation: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CashSession:
    """Close with the counted cash. Never blocked by a discrepancy."""
    session = get_open_session(db, tenant_id)
    if session is None:
        raise InvariantError("Cash register is not open")

    counted = to_money(physical_cash)
    if counted < ZERO:
        raise ValidationError("Physical cash count cannot be negative")

    summary = summarize(session.opening_balance, session_entries(db, session))
    session.status = CashSessionStatus.CLOSED
    session.closed_at = now or datetime.now()
    session.closing_balance = counted
    session.expected_cash = summary.cash_in_hand
    session.difference = counted - summary.cash_in_hand
    if observation:
        session.observation = observation
    commit_or_rollback(db, "Close cash register")
    db.refresh(session)

    log = logger.warning if session.difference != ZERO else logger.info
    log(
        "Cash register closed: tenant=%s session=%s expected=%s counted=%s difference=%s",
        tenant_id, session.id, session.expected_cash, counted, session.difference,
    )
    return session


def list_sessions(db: Session, tenant_id: int, limit: int = 30) -> List[CashSession]:
    return (
        db.query(CashSession)
        .filter(CashSession.tenant_id == tenant_id)
        .order_by(CashSession.opened_at.desc())
        .limit(limit)
        .all()
    )


def list_entries(db: Session, tenant_id: int, start_day: date, end_day: date) -> List[LedgerEntry]:
    start = datetime.combine(start_day, time.min)
    end = datetime.combine(end_day, time.min) + timedelta(days=1)
    return (
        db.query(LedgerEntry)
        .filter(
            LedgerEntry.tenant_id == tenant_id,
            LedgerEntry.occurred_at >= start,
            LedgerEntry.occurred_at < end,
        )
        .order_by(LedgerEntry.occurred_at.desc(), LedgerEntry.id.desc())
        .all()
    )


def delete_entry(db: Session, tenant_id: int, entry_id: int) -> None:
    entry = (
        db.query(LedgerEntry)
        .filter(LedgerEntry.id == entry_id, LedgerEntry.tenant_id == tenant_id)
        .first()
    )
    if not entry:
        raise NotFoundError("Ledger entry not found")
    db.delete(entry)
    commit_or_rollback(db, "Delete ledger entry")
    logger.info("Ledger entry deleted: tenant=%s id=%s", tenant_id, entry_id)


def purge_entries_by_details(db: Session, tenant_id: int, description: str, amount: Any) -> int:
    """Stage deletion of entries matching description and amount exactly (rows without appointment key)."""
    return (
        db.query(LedgerEntry)
        .filter(
            LedgerEntry.tenant_id == tenant_id,
            LedgerEntry.appointment_id.is_(None),
            LedgerEntry.description == description,
            LedgerEntry.amount == to_money(amount),
        )
        .delete(synchronize_session=False)
    )


def purge_appointment_entries(db: Session, tenant_id: int, appointment, match_legacy: bool = False) -> int:
    """
    Stage deletion of every ledger entry written by an appointment's checkout.
    With `match_legacy`, entries without the appointment key are matched on the
    checkout description and the appointment value; only a settled appointment
    can own such rows.
    """
    removed = (
        db.query(LedgerEntry)
        .filter(LedgerEntry.tenant_id == tenant_id, LedgerEntry.appointment_id == appointment.id)
        .delete(synchronize_session=False)
    )
    if match_legacy and removed == 0 and to_money(appointment.total_value) > ZERO:
        removed = purge_entries_by_details(
            db, tenant_id, checkout_description(appointment.client_name), appointment.total_value
        )
    return removed


def checkout_description(client_name: Optional[str], is_discount: bool = False) -> str:
    prefix = "Discount" if is_discount else "Service"
    return f"{prefix}: {client_name or 'Client'}"
