from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from datetime import datetime

from salonpos.models.tenant import Base


class StatusHistory(Base):
    """Audit trail of appointment transitions, kept after hard-deleting canceled rows."""
    __tablename__ = "status_history"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)

    entity_type = Column(String(20), nullable=False, default="appointment")
    entity_id = Column(Integer, nullable=False, index=True)  # No FK: the appointment may be deleted

    old_status = Column(String(20), nullable=True)  # NULL on creation
    new_status = Column(String(20), nullable=False)

    # Who made the change. Email kept in case the user is removed.
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    user_email = Column(String(255), nullable=True)

    notes = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
