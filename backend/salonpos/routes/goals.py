from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, condecimal
from sqlalchemy.orm import Session

from salonpos.core.database import get_db
from salonpos.core.deps import get_tenant, require_admin
from salonpos.models.tenant import Tenant
from salonpos.models.user import User
from salonpos.services import goal_service


router = APIRouter()


class GoalIn(BaseModel):
    type: str
    target_value: condecimal(max_digits=12, decimal_places=2)
    professional_id: Optional[int] = None


class GoalOut(BaseModel):
    id: int
    type: str
    professional_id: Optional[int]
    target_value: Decimal
    period: str

    class Config:
        from_attributes = True


@router.get("/", response_model=List[GoalOut])
def list_goals(
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_admin),
):
    return goal_service.list_goals(db, tenant.id)


@router.put("/", response_model=GoalOut)
def set_goal(
    data: GoalIn,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_admin),
):
    """Create or replace the goal for (type, professional)."""
    return goal_service.set_goal(db, tenant.id, data.type, data.target_value, data.professional_id)


@router.get("/progress")
def goal_progress(
    today: Optional[date] = Query(None, description="Reference day; defaults to the server date"),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_admin),
) -> Dict[str, Any]:
    return goal_service.progress_report(db, tenant.id, today or date.today())
