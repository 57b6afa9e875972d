from datetime import datetime
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey

from salonpos.models.tenant import Base


class Direction:
    IN = "IN"
    OUT = "OUT"


class LedgerCategory:
    SERVICE_SALE = "SERVICE_SALE"
    PRODUCT_SALE = "PRODUCT_SALE"
    DISCOUNT = "DISCOUNT"
    COMMISSION = "COMMISSION"
    EXPENSE = "EXPENSE"
    ADVANCE = "ADVANCE"
    OTHER = "OTHER"


class LedgerEntry(Base):
    """A cash-register movement. Amount is always a positive magnitude."""
    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    # NULL for discount entries written while the register is closed
    session_id = Column(Integer, ForeignKey("cash_sessions.id", ondelete="SET NULL"), nullable=True, index=True)
    appointment_id = Column(Integer, nullable=True, index=True)  # No FK: appointments are hard-deleted
    professional_id = Column(Integer, ForeignKey("professionals.id", ondelete="SET NULL"), nullable=True, index=True)

    amount = Column(Numeric(10, 2), nullable=False)
    direction = Column(String(3), nullable=False, default=Direction.IN)
    method = Column(String(20), nullable=False, default="cash")
    fee_amount = Column(Numeric(10, 2), nullable=False, default=0)
    category = Column(String(30), nullable=False, default=LedgerCategory.OTHER)
    description = Column(String(500), nullable=False)
    customer_name = Column(String(255), nullable=True)
    status = Column(String(10), nullable=False, default="PAID")  # PAID / PENDING
    occurred_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
