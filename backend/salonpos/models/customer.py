from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric, UniqueConstraint

from salonpos.models.tenant import Base


class SubscriptionStatus:
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    PENDING_PAYMENT = "PENDING_PAYMENT"
    NONE = "NONE"


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (
        UniqueConstraint("tenant_id", "phone", name="uq_customers_tenant_phone"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True, index=True)  # Grouping key: same phone = same client
    email = Column(String(255), nullable=True)
    notes = Column(String(500), nullable=True)

    # Lifetime aggregates, maintained by checkout and reopen
    total_spent = Column(Numeric(10, 2), nullable=False, default=0)
    visits_count = Column(Integer, nullable=False, default=0)
    last_visit = Column(DateTime, nullable=True)

    subscription_status = Column(String(20), nullable=False, default=SubscriptionStatus.NONE)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.utcnow)

    @property
    def is_subscriber(self) -> bool:
        return self.subscription_status == SubscriptionStatus.ACTIVE
