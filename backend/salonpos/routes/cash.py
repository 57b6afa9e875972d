from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, condecimal
from sqlalchemy.orm import Session

from salonpos.core.database import get_db
from salonpos.core.deps import get_tenant, require_admin, require_staff
from salonpos.models.ledger_entry import Direction, LedgerCategory
from salonpos.models.tenant import Tenant
from salonpos.models.user import User
from salonpos.services import cash_service


router = APIRouter()


class CashSessionOut(BaseModel):
    id: int
    status: str
    opened_at: datetime
    closed_at: Optional[datetime]
    opening_balance: Decimal
    closing_balance: Optional[Decimal]
    expected_cash: Optional[Decimal]
    difference: Optional[Decimal]
    responsible_name: Optional[str]
    observation: Optional[str]

    class Config:
        from_attributes = True


class LedgerEntryOut(BaseModel):
    id: int
    session_id: Optional[int]
    appointment_id: Optional[int]
    professional_id: Optional[int]
    amount: Decimal
    direction: str
    method: str
    fee_amount: Decimal
    category: str
    description: str
    customer_name: Optional[str]
    status: str
    occurred_at: datetime

    class Config:
        from_attributes = True


class CashSummaryOut(BaseModel):
    opening_balance: Decimal
    total_in: Decimal
    total_out: Decimal
    by_method: Dict[str, Decimal]
    cash_in_hand: Decimal
    current_balance: Decimal
    discounts_given: Decimal
    gross_revenue: Decimal
    total_fees: Decimal
    net_revenue: Decimal
    entries_count: int

    class Config:
        from_attributes = True


class CashStatusOut(BaseModel):
    is_open: bool
    session: Optional[CashSessionOut]
    summary: CashSummaryOut
    entries: List[LedgerEntryOut]


class OpenRequest(BaseModel):
    opening_balance: Optional[condecimal(max_digits=10, decimal_places=2)] = None
    responsible_name: Optional[str] = None
    observation: Optional[str] = None


class EntryRequest(BaseModel):
    amount: condecimal(max_digits=10, decimal_places=2)
    method: str = "cash"
    description: str
    direction: str = Direction.IN
    category: str = LedgerCategory.OTHER
    professional_id: Optional[int] = None


class CloseRequest(BaseModel):
    physical_cash: condecimal(max_digits=10, decimal_places=2)
    observation: Optional[str] = None


@router.get("/current", response_model=CashStatusOut)
def current_cash(
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_staff),
):
    return cash_service.current_summary(db, tenant.id)


@router.get("/sessions", response_model=List[CashSessionOut])
def list_sessions(
    limit: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_admin),
):
    return cash_service.list_sessions(db, tenant.id, limit)


@router.post("/open", response_model=CashSessionOut)
def open_cash(
    data: OpenRequest,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_staff),
):
    return cash_service.open_session(
        db,
        tenant.id,
        opening_balance=data.opening_balance,
        responsible_name=data.responsible_name or user.name or user.email,
        observation=data.observation,
    )


@router.post("/entries", response_model=LedgerEntryOut, status_code=201)
def add_entry(
    data: EntryRequest,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_staff),
):
    """Manual movement: expense, advance to a professional, extra income."""
    return cash_service.add_entry(
        db,
        tenant.id,
        amount=data.amount,
        method=data.method,
        description=data.description,
        direction=data.direction,
        category=data.category,
        professional_id=data.professional_id,
    )


@router.get("/entries", response_model=List[LedgerEntryOut])
def list_entries(
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_admin),
):
    return cash_service.list_entries(db, tenant.id, start_date, end_date)


@router.delete("/entries/{entry_id}", status_code=204)
def delete_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_admin),
):
    cash_service.delete_entry(db, tenant.id, entry_id)


@router.post("/close", response_model=CashSessionOut)
def close_cash(
    data: CloseRequest,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_staff),
):
    return cash_service.close_session(db, tenant.id, data.physical_cash, observation=data.observation)
