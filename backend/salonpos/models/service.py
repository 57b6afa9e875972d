from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, Boolean, DateTime
from datetime import datetime

from salonpos.models.tenant import Base


class ServiceCategory:
    HAIR = "Cabelo"
    BEARD = "Barba"
    AESTHETICS = "Estética"
    CHEMICAL = "Química"
    OTHER = "Outros"


class CommissionType:
    DEFAULT = "default"  # follows the professional's rate
    CUSTOM = "custom"  # uses custom_commission_rate


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(String(500), nullable=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    duration_minutes = Column(Integer, nullable=False, default=30)
    category = Column(String(50), nullable=True, index=True)
    commission_type = Column(String(20), nullable=False, default=CommissionType.DEFAULT)
    custom_commission_rate = Column(Numeric(5, 2), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
