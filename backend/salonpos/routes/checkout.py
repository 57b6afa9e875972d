from decimal import Decimal
from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, condecimal
from sqlalchemy.orm import Session

from salonpos.core.database import get_db
from salonpos.core.deps import get_tenant, require_staff
from salonpos.models.tenant import Tenant
from salonpos.models.user import User
from salonpos.routes.appointments import AppointmentOut
from salonpos.services import checkout_service
from salonpos.services.checkout_service import CheckoutMode, NewItem, Tender


router = APIRouter()


class TenderIn(BaseModel):
    method_id: int
    amount: condecimal(max_digits=10, decimal_places=2)


class NewItemIn(BaseModel):
    kind: str  # service | product
    catalog_id: int


class CheckoutRequest(BaseModel):
    mode: str = CheckoutMode.QUICK
    tenders: List[TenderIn] = []
    add_items: List[NewItemIn] = []
    remove_item_ids: List[int] = []


class AllocationOut(BaseModel):
    total: Decimal
    paid: Decimal
    remaining: Decimal
    change: Decimal
    can_settle: bool


class TenderLineOut(BaseModel):
    method_id: int
    method_name: str
    method_type: str
    amount: Decimal
    fee_percentage: Decimal
    fee_amount: Decimal


class PreviewOut(BaseModel):
    appointment_id: int
    is_subscriber: bool
    items: List[Dict[str, Any]]
    allocation: AllocationOut
    tenders: List[TenderLineOut]


class SettlementOut(BaseModel):
    appointment: AppointmentOut
    allocation: AllocationOut
    ledger_entries: int
    commissions: int


def _allocation(allocation) -> AllocationOut:
    return AllocationOut(
        total=allocation.total,
        paid=allocation.paid,
        remaining=allocation.remaining,
        change=allocation.change,
        can_settle=allocation.can_settle,
    )


def _request_args(data: CheckoutRequest) -> Dict[str, Any]:
    return {
        "tenders": [Tender(method_id=t.method_id, amount=t.amount) for t in data.tenders],
        "mode": data.mode,
        "add_items": [NewItem(kind=i.kind, catalog_id=i.catalog_id) for i in data.add_items],
        "remove_item_ids": list(data.remove_item_ids),
    }


@router.post("/{appointment_id}/preview", response_model=PreviewOut)
def preview_checkout(
    appointment_id: int,
    data: CheckoutRequest,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_staff),
):
    """Totals, fees and remaining balance. Nothing is written."""
    result = checkout_service.preview(db, tenant.id, appointment_id, **_request_args(data))
    return PreviewOut(
        appointment_id=result.appointment_id,
        is_subscriber=result.is_subscriber,
        items=result.items,
        allocation=_allocation(result.allocation),
        tenders=[TenderLineOut(**line.__dict__) for line in result.tenders],
    )


@router.post("/{appointment_id}", response_model=SettlementOut)
def settle_checkout(
    appointment_id: int,
    data: CheckoutRequest,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_staff),
):
    result = checkout_service.settle(db, tenant.id, appointment_id, actor=user, **_request_args(data))
    return SettlementOut(
        appointment=AppointmentOut.model_validate(result.appointment),
        allocation=_allocation(result.allocation),
        ledger_entries=len(result.ledger_entries),
        commissions=len(result.commissions),
    )
