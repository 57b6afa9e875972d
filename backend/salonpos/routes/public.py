"""
Online booking for clients. Tenant comes from the shop slug in the path;
no login required.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from salonpos.core.database import get_db
from salonpos.models.professional import Professional, ProfessionalStatus
from salonpos.models.service import Service
from salonpos.models.tenant import Tenant
from salonpos.routes.appointments import AppointmentOut
from salonpos.services import agenda_service, appointment_service


router = APIRouter()


class PublicService(BaseModel):
    id: int
    name: str
    description: Optional[str]
    price: Decimal
    duration_minutes: int
    category: Optional[str]

    class Config:
        from_attributes = True


class PublicProfessional(BaseModel):
    id: int
    name: str
    role: Optional[str]
    avatar_url: Optional[str]
    specialties: List[str] = []

    class Config:
        from_attributes = True


class PublicBookingRequest(BaseModel):
    professional_id: Optional[int] = None  # None = any professional
    start_time: datetime
    service_ids: List[int]
    client_name: str
    phone: str
    email: Optional[str] = None


def shop_by_slug(slug: str, db: Session = Depends(get_db)) -> Tenant:
    tenant = db.query(Tenant).filter(Tenant.slug == slug, Tenant.is_active == True).first()  # noqa: E712
    if not tenant:
        raise HTTPException(status_code=404, detail="Shop not found")
    return tenant


@router.get("/{slug}/services", response_model=List[PublicService])
def public_services(tenant: Tenant = Depends(shop_by_slug), db: Session = Depends(get_db)):
    return (
        db.query(Service)
        .filter(Service.tenant_id == tenant.id, Service.active == True)  # noqa: E712
        .order_by(Service.name)
        .all()
    )


@router.get("/{slug}/professionals", response_model=List[PublicProfessional])
def public_professionals(tenant: Tenant = Depends(shop_by_slug), db: Session = Depends(get_db)):
    return (
        db.query(Professional)
        .filter(Professional.tenant_id == tenant.id, Professional.status == ProfessionalStatus.ACTIVE)
        .order_by(Professional.name)
        .all()
    )


@router.get("/{slug}/slots", response_model=List[datetime])
def public_slots(
    day: date = Query(...),
    service_ids: List[int] = Query(...),
    professional_id: Optional[int] = Query(None),
    tenant: Tenant = Depends(shop_by_slug),
    db: Session = Depends(get_db),
):
    return agenda_service.public_slots(db, tenant.id, day, service_ids, datetime.now(), professional_id)


@router.post("/{slug}/book", response_model=AppointmentOut, status_code=201)
def public_book(
    data: PublicBookingRequest,
    tenant: Tenant = Depends(shop_by_slug),
    db: Session = Depends(get_db),
):
    start = data.start_time.replace(tzinfo=None, second=0, microsecond=0)
    now = datetime.now()
    if start <= now:
        raise HTTPException(status_code=400, detail="Choose a future time")
    agenda_service.ensure_public_slot(db, tenant.id, start, data.service_ids, now, data.professional_id)
    if data.professional_id is None:
        professional_id = agenda_service.pick_professional(db, tenant.id, start, data.service_ids).id
    else:
        professional_id = data.professional_id
    return appointment_service.create_booking(
        db,
        tenant.id,
        professional_id=professional_id,
        start_time=start,
        service_ids=data.service_ids,
        client_name=data.client_name,
        phone=data.phone,
        email=data.email,
    )
