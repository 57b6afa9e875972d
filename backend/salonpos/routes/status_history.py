from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session
from typing import List, Optional

from salonpos.core.database import get_db
from salonpos.core.deps import get_tenant, require_staff
from salonpos.models.tenant import Tenant
from salonpos.models.user import User
from salonpos.models.status_history import StatusHistory

router = APIRouter()


class StatusHistoryResponse(BaseModel):
    id: int
    entity_type: str
    entity_id: int
    old_status: Optional[str]
    new_status: str
    user_email: Optional[str]
    notes: Optional[str]
    created_at: str

    class Config:
        from_attributes = True


@router.get("/appointments/{appointment_id}", response_model=List[StatusHistoryResponse])
def get_status_history(
    appointment_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_staff)
):
    """Transitions of an appointment, newest first. Still available after cancellation."""
    history = db.query(StatusHistory).filter(
        StatusHistory.tenant_id == tenant.id,
        StatusHistory.entity_type == "appointment",
        StatusHistory.entity_id == appointment_id
    ).order_by(StatusHistory.created_at.desc(), StatusHistory.id.desc()).all()

    return [
        {
            "id": h.id,
            "entity_type": h.entity_type,
            "entity_id": h.entity_id,
            "old_status": h.old_status,
            "new_status": h.new_status,
            "user_email": h.user_email,
            "notes": h.notes,
            "created_at": h.created_at.isoformat()
        }
        for h in history
    ]
