from datetime import datetime
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Time, JSON

from salonpos.models.tenant import Base


class ProfessionalStatus:
    ACTIVE = "ACTIVE"
    VACATION = "VACATION"


class Professional(Base):
    __tablename__ = "professionals"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    role = Column(String(100), nullable=True)  # Display label, e.g. "Barbeiro"
    avatar_url = Column(String(500), nullable=True)
    commission_rate = Column(Numeric(5, 2), nullable=False, default=0)
    # Service categories this professional performs. Empty list = performs everything.
    specialties = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default=ProfessionalStatus.ACTIVE)

    # Personal work schedule
    work_start = Column(Time, nullable=True)
    work_end = Column(Time, nullable=True)
    lunch_start = Column(Time, nullable=True)
    lunch_end = Column(Time, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
