from sqlalchemy import Column, Integer, String, Numeric, Boolean, ForeignKey

from salonpos.models.tenant import Base


class PaymentMethodType:
    CASH = "cash"
    PIX = "pix"
    CREDIT = "credit"
    DEBIT = "debit"
    DISCOUNT = "discount"  # Price reduction, not a real tender
    CASHBACK = "cashback"
    STORE_CREDIT = "store_credit"

    ALL = {CASH, PIX, CREDIT, DEBIT, DISCOUNT, CASHBACK, STORE_CREDIT}


class PaymentMethod(Base):
    __tablename__ = "payment_methods"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    type = Column(String(20), nullable=False)
    fee_percentage = Column(Numeric(5, 2), nullable=False, default=0)  # 2.5 means 2.5%
    receive_days = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
