from datetime import datetime
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Index

from salonpos.models.tenant import Base


class GoalType:
    SHOP_REVENUE = "SHOP_REVENUE"
    PROFESSIONAL_REVENUE = "PROFESSIONAL_REVENUE"
    PROFESSIONAL_SECONDARY_UNITS = "PROFESSIONAL_SECONDARY_UNITS"


class Goal(Base):
    __tablename__ = "goals"
    __table_args__ = (
        Index("ix_goals_tenant_type_professional", "tenant_id", "type", "professional_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(40), nullable=False)
    professional_id = Column(Integer, ForeignKey("professionals.id", ondelete="CASCADE"), nullable=True)  # NULL = shop-wide
    target_value = Column(Numeric(12, 2), nullable=False, default=0)
    period = Column(String(20), nullable=False, default="monthly")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
