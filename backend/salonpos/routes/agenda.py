from datetime import date, datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from salonpos.core.database import get_db
from salonpos.core.deps import get_tenant, require_staff
from salonpos.models.tenant import Tenant
from salonpos.models.user import User
from salonpos.services import agenda_service


router = APIRouter()


class SlotCellOut(BaseModel):
    start: datetime
    available: bool
    reason: Optional[str] = None
    appointment_id: Optional[int] = None


class ProfessionalColumn(BaseModel):
    professional_id: int
    name: str
    cells: List[SlotCellOut]


class AgendaGridOut(BaseModel):
    day: date
    slots: List[datetime]
    columns: List[ProfessionalColumn]


@router.get("/grid", response_model=AgendaGridOut)
def agenda_grid(
    day: date = Query(..., description="Agenda date"),
    interval: Optional[int] = Query(None, description="5, 10, 30 or 60 minutes"),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(require_staff),
):
    """Multi-professional calendar: every slot with availability and block reason."""
    view = agenda_service.staff_grid(db, tenant.id, day, interval)
    grid: Dict[int, list] = view["grid"]
    columns = [
        ProfessionalColumn(
            professional_id=p.id,
            name=p.name,
            cells=[SlotCellOut(**cell.__dict__) for cell in grid.get(p.id, [])],
        )
        for p in view["professionals"]
    ]
    return AgendaGridOut(day=view["date"], slots=view["slots"], columns=columns)
