from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, Boolean, DateTime
from datetime import datetime

from salonpos.models.tenant import Base


class Product(Base):
    """Retail product sold over the counter during checkout."""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(50), nullable=True, index=True)  # hair, beard, beverage, food, other
    price = Column(Numeric(10, 2), nullable=False, default=0)  # Selling price
    cost = Column(Numeric(10, 2), nullable=False, default=0)  # Purchase cost
    commission_rate = Column(Numeric(5, 2), nullable=False, default=0)  # % for the professional
    stock = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
