from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Time, UniqueConstraint

from salonpos.models.tenant import Base


class OperatingHours(Base):
    """Shop-wide booking window for one weekday (0 = Sunday ... 6 = Saturday)."""
    __tablename__ = "operating_hours"
    __table_args__ = (
        UniqueConstraint("tenant_id", "day_index", name="uq_operating_hours_tenant_day"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    day_index = Column(Integer, nullable=False)
    day_name = Column(String(20), nullable=True)
    is_open = Column(Boolean, nullable=False, default=True)
    start = Column(Time, nullable=False)
    end = Column(Time, nullable=False)
