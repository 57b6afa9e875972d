"""
Agenda views built from the slot generator and the conflict detector:
the staff grid, the public booking slots and the live AgendaBoard.
"""
import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from salonpos.core.config import settings
from salonpos.core.errors import ConflictError, NotFoundError, ValidationError
from salonpos.core.events import AppointmentEvents, appointment_events
from salonpos.core.serialization_helpers import serialize_appointment
from salonpos.models.operating_hours import OperatingHours
from salonpos.models.professional import Professional, ProfessionalStatus
from salonpos.models.service import Service
from salonpos.services import appointment_service
from salonpos.services.conflict_service import (
    Candidate,
    build_agenda_grid,
    candidate_is_free,
    is_eligible,
    public_available_slots,
    specialty_policy,
)
from salonpos.services.slot_service import (
    generate_day_slots,
    hours_for_day,
    parse_hhmm,
    schedule_for,
)

logger = logging.getLogger(__name__)


def day_hours(db: Session, tenant_id: int, day: date):
    rows = db.query(OperatingHours).filter(OperatingHours.tenant_id == tenant_id).all()
    return hours_for_day(rows, day)


def active_professionals(db: Session, tenant_id: int) -> List[Professional]:
    return (
        db.query(Professional)
        .filter(Professional.tenant_id == tenant_id, Professional.status == ProfessionalStatus.ACTIVE)
        .order_by(Professional.name)
        .all()
    )


def staff_grid(db: Session, tenant_id: int, day: date, interval: Optional[int] = None) -> Dict[str, Any]:
    """Every active professional's slots for `day`, with availability and reason."""
    slots = generate_day_slots(
        day,
        day_hours(db, tenant_id, day),
        parse_hhmm(settings.agenda_display_until),
        interval or settings.agenda_interval,
        parse_hhmm(settings.closed_day_fallback_open),
    )
    professionals = active_professionals(db, tenant_id)
    busy = appointment_service.day_busy_map(db, tenant_id, day)
    candidates = [
        Candidate(professional_id=p.id, schedule=schedule_for(p), busy=busy.get(p.id, []))
        for p in professionals
    ]
    return {
        "date": day,
        "slots": slots,
        "professionals": professionals,
        "grid": build_agenda_grid(slots, candidates),
    }


def booking_services(db: Session, tenant_id: int, service_ids: Iterable[int]) -> List[Service]:
    """Active services of the tenant for a booking; unknown or inactive ids are rejected."""
    ids = [int(sid) for sid in service_ids]
    services = (
        db.query(Service).filter(Service.tenant_id == tenant_id, Service.id.in_(ids), Service.active == True).all()  # noqa: E712
        if ids else []
    )
    if not ids or len(services) != len(set(ids)):
        raise ValidationError("Unknown service selected")
    return services


def booking_duration(services: Iterable[Service]) -> int:
    return sum(s.duration_minutes or 0 for s in services) or settings.default_booking_duration


def public_slots(
    db: Session,
    tenant_id: int,
    day: date,
    service_ids: Iterable[int],
    now: datetime,
    professional_id: Optional[int] = None,
) -> List[datetime]:
    """
    Bookable start times for a client. Without a professional, a slot is offered
    while at least one eligible professional can take the whole booking.
    """
    services = booking_services(db, tenant_id, service_ids)
    duration = booking_duration(services)
    categories = [s.category for s in services]

    if professional_id is not None:
        professional = (
            db.query(Professional)
            .filter(Professional.id == professional_id, Professional.tenant_id == tenant_id)
            .first()
        )
        if not professional:
            raise NotFoundError("Professional not found")
        pool = [professional] if professional.status == ProfessionalStatus.ACTIVE else []
    else:
        pool = [
            p for p in active_professionals(db, tenant_id)
            if is_eligible(specialty_policy(p.specialties), categories)
        ]

    busy = appointment_service.day_busy_map(db, tenant_id, day)
    candidates = [
        Candidate(professional_id=p.id, schedule=schedule_for(p), busy=busy.get(p.id, []))
        for p in pool
    ]
    return public_available_slots(
        day,
        day_hours(db, tenant_id, day),
        candidates,
        duration,
        settings.public_slot_interval,
        now,
    )


def ensure_public_slot(
    db: Session,
    tenant_id: int,
    start: datetime,
    service_ids: Iterable[int],
    now: datetime,
    professional_id: Optional[int] = None,
) -> None:
    """A client may only book one of the slots public_slots offers."""
    if start not in public_slots(db, tenant_id, start.date(), service_ids, now, professional_id):
        logger.warning(
            "Public booking rejected: tenant=%s start=%s professional=%s", tenant_id, start, professional_id
        )
        raise ConflictError("Time slot no longer available")


def pick_professional(
    db: Session,
    tenant_id: int,
    start: datetime,
    service_ids: Iterable[int],
) -> Professional:
    """First eligible professional free for the whole booking at `start` ("any professional")."""
    services = booking_services(db, tenant_id, service_ids)
    duration = booking_duration(services)
    categories = [s.category for s in services]

    hours = day_hours(db, tenant_id, start.date())
    if hours is None or not hours.is_open or not hours.start <= start.time() < hours.end:
        raise ValidationError("The shop is closed at this time")

    busy = appointment_service.day_busy_map(db, tenant_id, start.date())
    for professional in active_professionals(db, tenant_id):
        if not is_eligible(specialty_policy(professional.specialties), categories):
            continue
        candidate = Candidate(professional.id, schedule_for(professional), busy.get(professional.id, []))
        if candidate_is_free(candidate, start, duration):
            return professional
    raise ValidationError("No professional is available at this time")


class AgendaBoard:
    """
    In-memory view of one day of the agenda, kept fresh by AppointmentEvents.

    The board always reloads the date it was told to show; a notification
    replaces its state wholesale.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        tenant_id: int,
        day: date,
        events: AppointmentEvents = appointment_events,
    ):
        self.session_factory = session_factory
        self.tenant_id = tenant_id
        self.day = day
        self.appointments: List[Dict[str, Any]] = []
        self.refresh_count = 0
        self._unsubscribe = events.subscribe(tenant_id, self._on_change)

    def show(self, day: date) -> List[Dict[str, Any]]:
        self.day = day
        return self.refresh()

    def refresh(self) -> List[Dict[str, Any]]:
        db = self.session_factory()
        try:
            rows = appointment_service.list_day(db, self.tenant_id, self.day)
            self.appointments = [serialize_appointment(row) for row in rows]
        finally:
            db.close()
        self.refresh_count += 1
        return self.appointments

    def close(self) -> None:
        self._unsubscribe()

    def _on_change(self, tenant_id: int) -> None:
        logger.debug("Agenda board refresh: tenant=%s day=%s", tenant_id, self.day)
        self.refresh()
