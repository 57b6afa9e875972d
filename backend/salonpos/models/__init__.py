from .tenant import Tenant
from .user import User
from .customer import Customer
from .professional import Professional
from .operating_hours import OperatingHours
from .service import Service
from .product import Product
from .appointment import Appointment, AppointmentItem
from .cash_session import CashSession
from .ledger_entry import LedgerEntry
from .payment_method import PaymentMethod
from .commission import CommissionTransaction
from .goal import Goal
from .status_history import StatusHistory

__all__ = [
    "Tenant",
    "User",
    "Customer",
    "Professional",
    "OperatingHours",
    "Service",
    "Product",
    "Appointment",
    "AppointmentItem",
    "CashSession",
    "LedgerEntry",
    "PaymentMethod",
    "CommissionTransaction",
    "Goal",
    "StatusHistory",
]
