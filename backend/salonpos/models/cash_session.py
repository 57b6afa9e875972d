from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey, Index, text

from salonpos.models.tenant import Base


class CashSessionStatus:
    OPEN = "open"
    CLOSED = "closed"


class CashSession(Base):
    """
    Daily cash register session (abertura/fechamento).
    Only one session with status 'open' may exist per tenant: the partial
    unique index below makes a second concurrent open fail at insert time.
    """

    __tablename__ = "cash_sessions"
    __table_args__ = (
        Index(
            "uq_cash_sessions_one_open",
            "tenant_id",
            unique=True,
            postgresql_where=text("status = 'open'"),
            sqlite_where=text("status = 'open'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=CashSessionStatus.OPEN)
    opened_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    closed_at = Column(DateTime, nullable=True)
    opening_balance = Column(Numeric(10, 2), nullable=False, default=0)
    closing_balance = Column(Numeric(10, 2), nullable=True)  # Physical count at close
    expected_cash = Column(Numeric(10, 2), nullable=True)
    difference = Column(Numeric(10, 2), nullable=True)  # Informational only
    responsible_name = Column(String(255), nullable=True)
    observation = Column(String(500), nullable=True)
