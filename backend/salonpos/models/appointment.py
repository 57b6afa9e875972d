from datetime import datetime

from sqlalchemy import Column, Integer, Numeric, ForeignKey, DateTime, String
from sqlalchemy.orm import relationship

from salonpos.models.tenant import Base


class AppointmentStatus:
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"
    BLOCKED = "BLOCKED"


class ItemKind:
    SERVICE = "service"
    PRODUCT = "product"


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    professional_id = Column(Integer, ForeignKey("professionals.id", ondelete="CASCADE"), nullable=False, index=True)
    # NULL for time-off blocks
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)
    client_name = Column(String(255), nullable=False)  # Time-off reason when BLOCKED

    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=30)

    status = Column(String(20), nullable=False, default=AppointmentStatus.SCHEDULED, index=True)
    total_value = Column(Numeric(10, 2), nullable=False, default=0)
    notes = Column(String(500), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.utcnow)

    items = relationship(
        "AppointmentItem",
        back_populates="appointment",
        cascade="all, delete-orphan",
        order_by="AppointmentItem.position",
    )
    professional = relationship("Professional")
    customer = relationship("Customer")


class AppointmentItem(Base):
    """A billable line of the comanda: a service or a product."""
    __tablename__ = "appointment_items"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    kind = Column(String(20), nullable=False, default=ItemKind.SERVICE)
    catalog_id = Column(Integer, nullable=True)  # services.id or products.id, depending on kind
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    duration_minutes = Column(Integer, nullable=True)

    appointment = relationship("Appointment", back_populates="items")
