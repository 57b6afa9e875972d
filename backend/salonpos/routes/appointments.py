from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from salonpos.core.database import get_db
from salonpos.core.deps import get_tenant, require_staff
from salonpos.models.tenant import Tenant
from salonpos.models.user import User
from salonpos.services import appointment_service


router = APIRouter()


class AppointmentItemOut(BaseModel):
    id: int
    kind: str
    catalog_id: Optional[int]
    name: str
    price: Decimal
    duration_minutes: Optional[int]

    class Config:
        from_attributes = True


class AppointmentOut(BaseModel):
    id: int
    professional_id: int
    customer_id: Optional[int]
    client_name: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    status: str
    total_value: Decimal
    notes: Optional[str]
    items: List[AppointmentItemOut] = []

    class Config:
        from_attributes = True


class BookingRequest(BaseModel):
    professional_id: int
    start_time: datetime
    service_ids: List[int]
    customer_id: Optional[int] = None
    client_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None


class TimeOffRequest(BaseModel):
    professional_id: int
    start_time: datetime
    duration_minutes: int
    reason: str


class RescheduleRequest(BaseModel):
    start_time: Optional[datetime] = None
    professional_id: Optional[int] = None
    duration_minutes: Optional[int] = None


class FinancialResponse(BaseModel):
    open: List[AppointmentOut]
    closed: List[AppointmentOut]


@router.get("/", response_model=List[AppointmentOut])
def list_appointments(
    day: date = Query(..., description="Agenda date"),
    professional_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_staff),
):
    return appointment_service.list_day(db, tenant.id, day, professional_id)


@router.get("/financial", response_model=FinancialResponse)
def list_financial(
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_staff),
):
    """Open and closed comandas of the period."""
    return appointment_service.list_financial(db, tenant.id, start_date, end_date)


@router.get("/customer/{customer_id}", response_model=List[AppointmentOut])
def list_customer_appointments(
    customer_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_staff),
):
    return appointment_service.list_customer_appointments(db, tenant.id, customer_id)


@router.get("/{appointment_id}", response_model=AppointmentOut)
def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_staff),
):
    return appointment_service.get_appointment(db, tenant.id, appointment_id)


@router.post("/", response_model=AppointmentOut, status_code=201)
def create_booking(
    data: BookingRequest,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_staff),
):
    return appointment_service.create_booking(
        db,
        tenant.id,
        professional_id=data.professional_id,
        start_time=data.start_time,
        service_ids=data.service_ids,
        customer_id=data.customer_id,
        client_name=data.client_name,
        phone=data.phone,
        email=data.email,
        notes=data.notes,
        actor=user,
    )


@router.post("/time-off", response_model=AppointmentOut, status_code=201)
def block_time_off(
    data: TimeOffRequest,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_staff),
):
    return appointment_service.block_time_off(
        db, tenant.id, data.professional_id, data.start_time, data.duration_minutes, data.reason, actor=user
    )


@router.post("/{appointment_id}/confirm", response_model=AppointmentOut)
def confirm_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_staff),
):
    return appointment_service.confirm(db, tenant.id, appointment_id, actor=user)


@router.put("/{appointment_id}/reschedule", response_model=AppointmentOut)
def reschedule_appointment(
    appointment_id: int,
    data: RescheduleRequest,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_staff),
):
    return appointment_service.reschedule(
        db,
        tenant.id,
        appointment_id,
        start_time=data.start_time,
        professional_id=data.professional_id,
        duration_minutes=data.duration_minutes,
        actor=user,
    )


@router.post("/{appointment_id}/reopen", response_model=AppointmentOut)
def reopen_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_staff),
):
    return appointment_service.reopen(db, tenant.id, appointment_id, actor=user)


@router.delete("/{appointment_id}", status_code=204)
def cancel_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_staff),
):
    appointment_service.cancel(db, tenant.id, appointment_id, actor=user)
