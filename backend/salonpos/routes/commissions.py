from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, condecimal
from sqlalchemy.orm import Session

from salonpos.core.database import get_db
from salonpos.core.deps import get_tenant, require_admin, require_staff
from salonpos.models.tenant import Tenant
from salonpos.models.user import User
from salonpos.services import commission_service


router = APIRouter()


class CommissionOut(BaseModel):
    id: int
    professional_id: int
    appointment_id: Optional[int]
    catalog_id: Optional[int]
    type: str
    item_name: str
    client_name: Optional[str]
    category: Optional[str]
    date: datetime
    price: Decimal
    commission_rate_snapshot: Decimal
    commission_amount_snapshot: Decimal
    status: str
    commission_paid: bool
    payout_id: Optional[str]

    class Config:
        from_attributes = True


class PayBatchRequest(BaseModel):
    commission_ids: List[int]
    payout_id: str


class PayOneRequest(BaseModel):
    payout_id: Optional[str] = None


class RecalculateRequest(BaseModel):
    professional_id: int
    rate: condecimal(max_digits=5, decimal_places=2)


class AdjustmentRequest(BaseModel):
    professional_id: int
    type: str  # BONUS | EMPLOYEE_PURCHASE
    description: str
    amount: condecimal(max_digits=10, decimal_places=2)


class CountResponse(BaseModel):
    updated: int


@router.get("/", response_model=List[CommissionOut])
def list_commissions(
    professional_id: Optional[int] = Query(None),
    paid: Optional[bool] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_staff),
):
    return commission_service.list_commissions(db, tenant.id, professional_id, paid, start_date, end_date)


@router.get("/totals", response_model=Dict[int, Dict[str, Decimal]])
def commission_totals(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_admin),
):
    records = commission_service.list_commissions(db, tenant.id, start_day=start_date, end_day=end_date)
    return commission_service.totals_by_professional(records)


@router.post("/adjustments", response_model=CommissionOut, status_code=201)
def add_adjustment(
    data: AdjustmentRequest,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_admin),
):
    return commission_service.record_adjustment(
        db, tenant.id, data.professional_id, data.type, data.description, data.amount
    )


@router.post("/{commission_id}/pay", response_model=CommissionOut)
def pay_commission(
    commission_id: int,
    data: PayOneRequest,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_admin),
):
    return commission_service.pay_commission(db, tenant.id, commission_id, data.payout_id)


@router.post("/pay", response_model=List[CommissionOut])
def pay_batch(
    data: PayBatchRequest,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_admin),
):
    return commission_service.pay_commissions(db, tenant.id, data.commission_ids, data.payout_id)


@router.delete("/payouts/{payout_id}", response_model=CountResponse)
def undo_payout(
    payout_id: str,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_admin),
):
    return CountResponse(updated=commission_service.undo_payout(db, tenant.id, payout_id))


@router.post("/recalculate", response_model=CountResponse)
def recalculate(
    data: RecalculateRequest,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_admin),
):
    """Rewrite the unpaid snapshots of one professional with a new rate."""
    return CountResponse(
        updated=commission_service.recalculate_commissions(db, tenant.id, data.professional_id, data.rate)
    )
