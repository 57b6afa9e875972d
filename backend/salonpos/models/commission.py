from datetime import datetime
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean, ForeignKey

from salonpos.models.tenant import Base


class CommissionType:
    SERVICE = "SERVICE"
    PRODUCT_SALE = "PRODUCT_SALE"
    BONUS = "BONUS"
    EMPLOYEE_PURCHASE = "EMPLOYEE_PURCHASE"


class CommissionTransaction(Base):
    """
    One settled line item attributed to a professional.
    Rate and amount are snapshots taken at settlement time.
    """
    __tablename__ = "commission_transactions"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    professional_id = Column(Integer, ForeignKey("professionals.id", ondelete="CASCADE"), nullable=False, index=True)
    appointment_id = Column(Integer, nullable=True, index=True)
    catalog_id = Column(Integer, nullable=True)  # services.id or products.id
    type = Column(String(30), nullable=False, default=CommissionType.SERVICE)
    item_name = Column(String(255), nullable=False)
    client_name = Column(String(255), nullable=True)
    category = Column(String(50), nullable=True)
    date = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    commission_rate_snapshot = Column(Numeric(5, 2), nullable=False, default=0)
    commission_amount_snapshot = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String(10), nullable=False, default="PENDING")  # PENDING / PAID
    commission_paid = Column(Boolean, nullable=False, default=False)
    payout_id = Column(String(64), nullable=True, index=True)
