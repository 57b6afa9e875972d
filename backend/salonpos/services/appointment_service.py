"""
Appointment state machine.

    SCHEDULED -> CONFIRMED -> COMPLETED (checkout only) -> CONFIRMED (reopen)
    BLOCKED for professional time-off
    Cancel removes the row (any status but COMPLETED)

Every write commits in a single transaction, records a StatusHistory row,
refreshes the canonical record and then notifies AppointmentEvents.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session, selectinload

from salonpos.core.config import settings
from salonpos.core.database import commit_or_rollback
from salonpos.core.errors import ConflictError, InvariantError, NotFoundError, ValidationError
from salonpos.core.events import appointment_events
from salonpos.core.money import ZERO, to_money
from salonpos.models.appointment import Appointment, AppointmentItem, AppointmentStatus, ItemKind
from salonpos.models.professional import Professional
from salonpos.models.service import Service
from salonpos.models.status_history import StatusHistory
from salonpos.models.user import User
from salonpos.services import cash_service, commission_service, customer_service
from salonpos.services.conflict_service import BusyInterval, find_conflict

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.COMPLETED,
    AppointmentStatus.BLOCKED,
)
OPEN_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)
TIME_OFF_NOTE = "Administrative block"


def _wall_clock(value: datetime) -> datetime:
    """Appointments are stored as shop-local wall-clock time."""
    if value.tzinfo is not None:
        value = value.replace(tzinfo=None)
    return value.replace(second=0, microsecond=0)


def record_transition(
    db: Session,
    tenant_id: int,
    appointment_id: int,
    old_status: Optional[str],
    new_status: str,
    actor: Optional[User] = None,
    notes: Optional[str] = None,
) -> StatusHistory:
    """Stage a status history row; committed together with the transition."""
    history = StatusHistory(
        tenant_id=tenant_id,
        entity_type="appointment",
        entity_id=appointment_id,
        old_status=old_status,
        new_status=new_status,
        user_id=actor.id if actor else None,
        user_email=actor.email if actor else None,
        notes=notes,
    )
    db.add(history)
    return history


def _appointment_query(db: Session, tenant_id: int):
    return (
        db.query(Appointment)
        .options(selectinload(Appointment.items))
        .filter(Appointment.tenant_id == tenant_id)
    )


def get_appointment(db: Session, tenant_id: int, appointment_id: int) -> Appointment:
    appointment = _appointment_query(db, tenant_id).filter(Appointment.id == appointment_id).first()
    if not appointment:
        raise NotFoundError("Appointment not found")
    return appointment


def resolve_professional(db: Session, tenant_id: int, professional_id: Any) -> Professional:
    """The identifier must be a positive integer of a professional of this tenant."""
    try:
        pid = int(professional_id)
    except (TypeError, ValueError):
        pid = 0
    if isinstance(professional_id, bool) or pid <= 0:
        raise ValidationError("Invalid professional identifier")
    professional = (
        db.query(Professional)
        .filter(Professional.id == pid, Professional.tenant_id == tenant_id)
        .first()
    )
    if not professional:
        raise ValidationError("Invalid professional identifier")
    return professional


def busy_intervals(
    db: Session,
    tenant_id: int,
    professional_id: int,
    start: datetime,
    end: datetime,
) -> List[BusyInterval]:
    """Appointments of a professional that touch [start, end). Canceled rows no longer exist."""
    rows = (
        db.query(Appointment.id, Appointment.start_time, Appointment.end_time, Appointment.status)
        .filter(
            Appointment.tenant_id == tenant_id,
            Appointment.professional_id == professional_id,
            Appointment.status.in_(ACTIVE_STATUSES),
            Appointment.start_time < end,
            Appointment.end_time > start,
        )
        .all()
    )
    return [BusyInterval(start=r.start_time, end=r.end_time, appointment_id=r.id, status=r.status) for r in rows]


def ensure_slot_free(
    db: Session,
    tenant_id: int,
    professional_id: int,
    start: datetime,
    duration_minutes: int,
    exclude_id: Optional[int] = None,
) -> None:
    end = start + timedelta(minutes=duration_minutes)
    busy = busy_intervals(db, tenant_id, professional_id, start, end)
    conflict = find_conflict(busy, start, end, exclude_id=exclude_id)
    if conflict is not None:
        logger.warning(
            "Slot conflict: professional=%s %s-%s overlaps appointment %s",
            professional_id, start, end, conflict.appointment_id,
        )
        raise ConflictError(
            f"Time slot no longer available ({conflict.start:%H:%M}-{conflict.end:%H:%M} is taken)"
        )


def _load_services(db: Session, tenant_id: int, service_ids: Iterable[int]) -> List[Service]:
    ids = [int(sid) for sid in service_ids]
    if not ids:
        raise ValidationError("Select at least one service")
    found = {
        s.id: s
        for s in db.query(Service).filter(
            Service.tenant_id == tenant_id, Service.id.in_(ids), Service.active == True  # noqa: E712
        )
    }
    missing = [sid for sid in ids if sid not in found]
    if missing:
        raise ValidationError(f"Unknown service(s): {', '.join(str(m) for m in missing)}")
    return [found[sid] for sid in ids]


def _notify(tenant_id: int) -> None:
    appointment_events.publish(tenant_id)


def create_booking(
    db: Session,
    tenant_id: int,
    professional_id: Any,
    start_time: datetime,
    service_ids: Iterable[int],
    customer_id: Optional[int] = None,
    client_name: Optional[str] = None,
    phone: Optional[str] = None,
    email: Optional[str] = None,
    notes: Optional[str] = None,
    actor: Optional[User] = None,
) -> Appointment:
    """
    Book services for a client.

    The client is either an existing customer or is materialized from
    name + phone (upsert by phone). Duration is the sum of the service
    durations (default booking duration when that sum is zero) and the value
    the sum of their prices.
    """
    professional = resolve_professional(db, tenant_id, professional_id)
    services = _load_services(db, tenant_id, service_ids)

    start = _wall_clock(start_time)
    duration = sum(s.duration_minutes or 0 for s in services) or settings.default_booking_duration
    ensure_slot_free(db, tenant_id, professional.id, start, duration)

    if customer_id is not None:
        customer = customer_service.get_customer(db, tenant_id, customer_id)
    else:
        customer = customer_service.upsert_customer(db, tenant_id, client_name, phone, email)

    appointment = Appointment(
        tenant_id=tenant_id,
        professional_id=professional.id,
        customer_id=customer.id,
        client_name=customer.name,
        start_time=start,
        end_time=start + timedelta(minutes=duration),
        duration_minutes=duration,
        status=AppointmentStatus.SCHEDULED,
        total_value=to_money(sum((to_money(s.price) for s in services), ZERO)),
        notes=notes,
    )
    for position, service in enumerate(services):
        appointment.items.append(
            AppointmentItem(
                position=position,
                kind=ItemKind.SERVICE,
                catalog_id=service.id,
                name=service.name,
                price=to_money(service.price),
                duration_minutes=service.duration_minutes,
            )
        )
    db.add(appointment)
    db.flush()
    record_transition(db, tenant_id, appointment.id, None, AppointmentStatus.SCHEDULED, actor, "Booked")
    commit_or_rollback(db, "Create booking")
    db.refresh(appointment)

    logger.info(
        "Appointment booked: id=%s professional=%s client=%s start=%s duration=%s",
        appointment.id, professional.id, customer.id, start, duration,
    )
    _notify(tenant_id)
    return appointment


def block_time_off(
    db: Session,
    tenant_id: int,
    professional_id: Any,
    start_time: datetime,
    duration_minutes: int,
    reason: str,
    actor: Optional[User] = None,
) -> Appointment:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A reason is required to block time off")
    if duration_minutes is None or duration_minutes <= 0:
        raise ValidationError("Time-off duration must be positive")

    professional = resolve_professional(db, tenant_id, professional_id)
    start = _wall_clock(start_time)
    ensure_slot_free(db, tenant_id, professional.id, start, duration_minutes)

    appointment = Appointment(
        tenant_id=tenant_id,
        professional_id=professional.id,
        customer_id=None,
        client_name=reason,
        start_time=start,
        end_time=start + timedelta(minutes=duration_minutes),
        duration_minutes=duration_minutes,
        status=AppointmentStatus.BLOCKED,
        total_value=ZERO,
        notes=TIME_OFF_NOTE,
    )
    db.add(appointment)
    db.flush()
    record_transition(db, tenant_id, appointment.id, None, AppointmentStatus.BLOCKED, actor, reason)
    commit_or_rollback(db, "Block time off")
    db.refresh(appointment)

    logger.info("Time off blocked: id=%s professional=%s start=%s", appointment.id, professional.id, start)
    _notify(tenant_id)
    return appointment


def confirm(db: Session, tenant_id: int, appointment_id: int, actor: Optional[User] = None) -> Appointment:
    appointment = get_appointment(db, tenant_id, appointment_id)
    if appointment.status == AppointmentStatus.CONFIRMED:
        return appointment
    if appointment.status != AppointmentStatus.SCHEDULED:
        raise InvariantError(f"Cannot confirm an appointment with status {appointment.status}")

    appointment.status = AppointmentStatus.CONFIRMED
    record_transition(db, tenant_id, appointment.id, AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED, actor)
    commit_or_rollback(db, "Confirm appointment")
    db.refresh(appointment)

    logger.info("Appointment confirmed: id=%s", appointment.id)
    _notify(tenant_id)
    return appointment


def reschedule(
    db: Session,
    tenant_id: int,
    appointment_id: int,
    start_time: Optional[datetime] = None,
    professional_id: Any = None,
    duration_minutes: Optional[int] = None,
    actor: Optional[User] = None,
) -> Appointment:
    """Move an appointment in time and/or to another professional. End time is recomputed."""
    appointment = get_appointment(db, tenant_id, appointment_id)
    if appointment.status in (AppointmentStatus.COMPLETED, AppointmentStatus.BLOCKED):
        raise InvariantError(f"Cannot reschedule an appointment with status {appointment.status}")
    if duration_minutes is not None and duration_minutes <= 0:
        raise ValidationError("Duration must be positive")

    target_professional_id = appointment.professional_id
    if professional_id is not None:
        target_professional_id = resolve_professional(db, tenant_id, professional_id).id

    start = _wall_clock(start_time) if start_time is not None else appointment.start_time
    duration = duration_minutes or appointment.duration_minutes or settings.default_booking_duration
    ensure_slot_free(db, tenant_id, target_professional_id, start, duration, exclude_id=appointment.id)

    old_start = appointment.start_time
    appointment.professional_id = target_professional_id
    appointment.start_time = start
    appointment.duration_minutes = duration
    appointment.end_time = start + timedelta(minutes=duration)
    record_transition(
        db, tenant_id, appointment.id, appointment.status, appointment.status, actor,
        f"Rescheduled from {old_start:%Y-%m-%d %H:%M}",
    )
    commit_or_rollback(db, "Reschedule appointment")
    db.refresh(appointment)

    logger.info(
        "Appointment rescheduled: id=%s professional=%s start=%s duration=%s",
        appointment.id, target_professional_id, start, duration,
    )
    _notify(tenant_id)
    return appointment


def reopen(db: Session, tenant_id: int, appointment_id: int, actor: Optional[User] = None) -> Appointment:
    """
    Undo a checkout: COMPLETED -> CONFIRMED.

    Removes the ledger entries and commission records of the appointment and
    reverses the client aggregates. On an appointment already CONFIRMED it only
    purges leftovers keyed by the appointment, so a half-applied earlier attempt
    can be finished without touching unrelated entries.
    """
    appointment = get_appointment(db, tenant_id, appointment_id)
    if appointment.status not in (AppointmentStatus.COMPLETED, AppointmentStatus.CONFIRMED):
        raise InvariantError(f"Cannot reopen an appointment with status {appointment.status}")

    was_completed = appointment.status == AppointmentStatus.COMPLETED
    removed_entries = cash_service.purge_appointment_entries(db, tenant_id, appointment, match_legacy=was_completed)
    removed_commissions = commission_service.purge_appointment_commissions(db, tenant_id, appointment.id)

    if was_completed:
        if appointment.customer_id:
            customer = customer_service.get_customer(db, tenant_id, appointment.customer_id)
            customer_service.revert_visit(
                customer,
                appointment.total_value,
                customer_service.last_completed_visit(db, tenant_id, customer.id, exclude_id=appointment.id),
            )
        appointment.status = AppointmentStatus.CONFIRMED
        record_transition(
            db, tenant_id, appointment.id, AppointmentStatus.COMPLETED, AppointmentStatus.CONFIRMED, actor,
            "Checkout reopened",
        )
    commit_or_rollback(db, "Reopen appointment")
    db.refresh(appointment)

    logger.info(
        "Appointment reopened: id=%s ledger_removed=%s commissions_removed=%s status_changed=%s",
        appointment.id, removed_entries, removed_commissions, was_completed,
    )
    _notify(tenant_id)
    return appointment


def cancel(db: Session, tenant_id: int, appointment_id: int, actor: Optional[User] = None) -> None:
    """Cancellation deletes the appointment. Only the status history keeps a trace."""
    appointment = get_appointment(db, tenant_id, appointment_id)
    if appointment.status == AppointmentStatus.COMPLETED:
        raise InvariantError("Completed appointments cannot be canceled; reopen the checkout first")

    record_transition(
        db, tenant_id, appointment.id, appointment.status, AppointmentStatus.CANCELED, actor,
        f"{appointment.client_name} {appointment.start_time:%Y-%m-%d %H:%M}",
    )
    db.delete(appointment)
    commit_or_rollback(db, "Cancel appointment")

    logger.info("Appointment canceled (deleted): id=%s", appointment_id)
    _notify(tenant_id)


def list_day(
    db: Session,
    tenant_id: int,
    day: date,
    professional_id: Optional[int] = None,
) -> List[Appointment]:
    start = datetime.combine(day, time.min)
    end = start + timedelta(days=1)
    query = _appointment_query(db, tenant_id).filter(
        Appointment.start_time >= start,
        Appointment.start_time < end,
    )
    if professional_id is not None:
        query = query.filter(Appointment.professional_id == professional_id)
    return query.order_by(Appointment.start_time.asc(), Appointment.id.asc()).all()


def list_financial(db: Session, tenant_id: int, start_day: date, end_day: date) -> Dict[str, List[Appointment]]:
    """Open comandas (oldest first) and closed ones (newest first) in the date range."""
    start = datetime.combine(start_day, time.min)
    end = datetime.combine(end_day, time.min) + timedelta(days=1)
    base = _appointment_query(db, tenant_id).filter(
        Appointment.start_time >= start,
        Appointment.start_time < end,
    )
    open_rows = (
        base.filter(Appointment.status.in_(OPEN_STATUSES))
        .order_by(Appointment.start_time.asc())
        .all()
    )
    closed_rows = (
        base.filter(Appointment.status == AppointmentStatus.COMPLETED)
        .order_by(Appointment.start_time.desc())
        .all()
    )
    return {"open": open_rows, "closed": closed_rows}


def list_customer_appointments(db: Session, tenant_id: int, customer_id: int) -> List[Appointment]:
    return (
        _appointment_query(db, tenant_id)
        .filter(Appointment.customer_id == customer_id)
        .order_by(Appointment.start_time.desc())
        .all()
    )


def day_busy_map(db: Session, tenant_id: int, day: date) -> Dict[int, List[BusyInterval]]:
    """Busy intervals of the day grouped by professional."""
    busy: Dict[int, List[BusyInterval]] = {}
    for appointment in list_day(db, tenant_id, day):
        if appointment.status not in ACTIVE_STATUSES:
            continue
        busy.setdefault(appointment.professional_id, []).append(
            BusyInterval(
                start=appointment.start_time,
                end=appointment.end_time,
                appointment_id=appointment.id,
                status=appointment.status,
            )
        )
    return busy