from datetime import time
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, condecimal
from sqlalchemy import func
from sqlalchemy.orm import Session

from salonpos.core.database import commit_or_rollback, get_db
from salonpos.core.deps import get_current_user, get_tenant, require_admin
from salonpos.models.customer import Customer, SubscriptionStatus
from salonpos.models.operating_hours import OperatingHours
from salonpos.models.payment_method import PaymentMethod, PaymentMethodType
from salonpos.models.product import Product
from salonpos.models.professional import Professional, ProfessionalStatus
from salonpos.models.service import CommissionType, Service
from salonpos.models.tenant import Tenant
from salonpos.models.user import User
from salonpos.services import customer_service


router = APIRouter()
logger = logging.getLogger(__name__)


# Services

class ServiceBase(BaseModel):
    name: str
    description: Optional[str] = None
    price: condecimal(max_digits=10, decimal_places=2) = 0
    duration_minutes: int = 30
    category: Optional[str] = None
    commission_type: str = CommissionType.DEFAULT
    custom_commission_rate: Optional[condecimal(max_digits=5, decimal_places=2)] = None
    active: bool = True


class ServiceOut(ServiceBase):
    id: int

    class Config:
        from_attributes = True


@router.get("/services", response_model=List[ServiceOut])
def list_services(
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(get_current_user),
    active: Optional[bool] = Query(None),
):
    query = db.query(Service).filter(Service.tenant_id == tenant.id)
    if active is not None:
        query = query.filter(Service.active == active)
    return query.order_by(Service.name).all()


@router.post("/services", response_model=ServiceOut, dependencies=[Depends(require_admin)])
def create_service(data: ServiceBase, db: Session = Depends(get_db), tenant: Tenant = Depends(get_tenant)):
    if data.commission_type not in (CommissionType.DEFAULT, CommissionType.CUSTOM):
        raise HTTPException(status_code=400, detail="commission_type must be 'default' or 'custom'")
    if data.duration_minutes <= 0:
        raise HTTPException(status_code=400, detail="Duration must be positive")
    service = Service(tenant_id=tenant.id, **data.model_dump())
    db.add(service)
    commit_or_rollback(db, "Create service")
    db.refresh(service)
    return service


@router.put("/services/{service_id}", response_model=ServiceOut, dependencies=[Depends(require_admin)])
def update_service(
    service_id: int,
    data: ServiceBase,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
):
    service = db.query(Service).filter(Service.id == service_id, Service.tenant_id == tenant.id).first()
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")
    for field, value in data.model_dump().items():
        setattr(service, field, value)
    commit_or_rollback(db, "Update service")
    db.refresh(service)
    return service


# Products

class ProductBase(BaseModel):
    name: str
    category: Optional[str] = None
    price: condecimal(max_digits=10, decimal_places=2) = 0
    cost: condecimal(max_digits=10, decimal_places=2) = 0
    commission_rate: condecimal(max_digits=5, decimal_places=2) = 0
    stock: int = 0
    min_stock: int = 0
    active: bool = True


class ProductOut(ProductBase):
    id: int

    class Config:
        from_attributes = True


@router.get("/products", response_model=List[ProductOut])
def list_products(
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(get_current_user),
    q: Optional[str] = Query(None, description="Search by name"),
    active: Optional[bool] = Query(None),
):
    query = db.query(Product).filter(Product.tenant_id == tenant.id)
    if q and q.strip():
        query = query.filter(func.lower(Product.name).like(f"%{q.strip().lower()}%"))
    if active is not None:
        query = query.filter(Product.active == active)
    return query.order_by(Product.name).all()


@router.post("/products", response_model=ProductOut, dependencies=[Depends(require_admin)])
def create_product(data: ProductBase, db: Session = Depends(get_db), tenant: Tenant = Depends(get_tenant)):
    product = Product(tenant_id=tenant.id, **data.model_dump())
    db.add(product)
    commit_or_rollback(db, "Create product")
    db.refresh(product)
    return product


@router.put("/products/{product_id}", response_model=ProductOut, dependencies=[Depends(require_admin)])
def update_product(
    product_id: int,
    data: ProductBase,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
):
    product = db.query(Product).filter(Product.id == product_id, Product.tenant_id == tenant.id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    for field, value in data.model_dump().items():
        setattr(product, field, value)
    commit_or_rollback(db, "Update product")
    db.refresh(product)
    return product


# Professionals

class ProfessionalBase(BaseModel):
    name: str
    role: Optional[str] = None
    avatar_url: Optional[str] = None
    commission_rate: condecimal(max_digits=5, decimal_places=2) = 0
    specialties: List[str] = []
    status: str = ProfessionalStatus.ACTIVE
    work_start: Optional[time] = None
    work_end: Optional[time] = None
    lunch_start: Optional[time] = None
    lunch_end: Optional[time] = None


class ProfessionalOut(ProfessionalBase):
    id: int

    class Config:
        from_attributes = True


def _check_professional(data: ProfessionalBase) -> None:
    if data.status not in (ProfessionalStatus.ACTIVE, ProfessionalStatus.VACATION):
        raise HTTPException(status_code=400, detail="status must be ACTIVE or VACATION")
    if data.work_start and data.work_end and data.work_end <= data.work_start:
        raise HTTPException(status_code=400, detail="Work end must be after work start")
    if bool(data.lunch_start) != bool(data.lunch_end):
        raise HTTPException(status_code=400, detail="Lunch needs both start and end")
    if data.lunch_start and data.lunch_end and data.lunch_end <= data.lunch_start:
        raise HTTPException(status_code=400, detail="Lunch end must be after lunch start")


@router.get("/professionals", response_model=List[ProfessionalOut])
def list_professionals(
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(get_current_user),
):
    return db.query(Professional).filter(Professional.tenant_id == tenant.id).order_by(Professional.name).all()


@router.post("/professionals", response_model=ProfessionalOut, dependencies=[Depends(require_admin)])
def create_professional(data: ProfessionalBase, db: Session = Depends(get_db), tenant: Tenant = Depends(get_tenant)):
    _check_professional(data)
    professional = Professional(tenant_id=tenant.id, **data.model_dump())
    db.add(professional)
    commit_or_rollback(db, "Create professional")
    db.refresh(professional)
    return professional


@router.put("/professionals/{professional_id}", response_model=ProfessionalOut, dependencies=[Depends(require_admin)])
def update_professional(
    professional_id: int,
    data: ProfessionalBase,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
):
    """Changing the default rate never touches settled commissions."""
    _check_professional(data)
    professional = (
        db.query(Professional)
        .filter(Professional.id == professional_id, Professional.tenant_id == tenant.id)
        .first()
    )
    if not professional:
        raise HTTPException(status_code=404, detail="Professional not found")
    for field, value in data.model_dump().items():
        setattr(professional, field, value)
    commit_or_rollback(db, "Update professional")
    db.refresh(professional)
    return professional


# Payment methods

class PaymentMethodBase(BaseModel):
    name: str
    type: str
    fee_percentage: condecimal(max_digits=5, decimal_places=2) = 0
    receive_days: int = 0
    is_active: bool = True


class PaymentMethodOut(PaymentMethodBase):
    id: int

    class Config:
        from_attributes = True


@router.get("/payment-methods", response_model=List[PaymentMethodOut])
def list_payment_methods(
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(get_current_user),
):
    return db.query(PaymentMethod).filter(PaymentMethod.tenant_id == tenant.id).order_by(PaymentMethod.id).all()


@router.post("/payment-methods", response_model=PaymentMethodOut, dependencies=[Depends(require_admin)])
def create_payment_method(data: PaymentMethodBase, db: Session = Depends(get_db), tenant: Tenant = Depends(get_tenant)):
    if data.type not in PaymentMethodType.ALL:
        raise HTTPException(status_code=400, detail=f"Invalid payment method type: {data.type}")
    method = PaymentMethod(tenant_id=tenant.id, **data.model_dump())
    db.add(method)
    commit_or_rollback(db, "Create payment method")
    db.refresh(method)
    return method


# Operating hours

class OperatingHoursIn(BaseModel):
    day_index: int
    is_open: bool = True
    start: time
    end: time
    day_name: Optional[str] = None


class OperatingHoursOut(OperatingHoursIn):
    id: int

    class Config:
        from_attributes = True


@router.get("/operating-hours", response_model=List[OperatingHoursOut])
def list_operating_hours(db: Session = Depends(get_db), tenant: Tenant = Depends(get_tenant)):
    return (
        db.query(OperatingHours)
        .filter(OperatingHours.tenant_id == tenant.id)
        .order_by(OperatingHours.day_index)
        .all()
    )


@router.put("/operating-hours", response_model=List[OperatingHoursOut], dependencies=[Depends(require_admin)])
def save_operating_hours(
    data: List[OperatingHoursIn],
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
):
    """Upsert the weekly hours, one row per weekday (0 = Sunday)."""
    for row in data:
        if not 0 <= row.day_index <= 6:
            raise HTTPException(status_code=400, detail="day_index must be between 0 and 6")
        existing = (
            db.query(OperatingHours)
            .filter(OperatingHours.tenant_id == tenant.id, OperatingHours.day_index == row.day_index)
            .first()
        )
        if existing is None:
            existing = OperatingHours(tenant_id=tenant.id, day_index=row.day_index)
            db.add(existing)
        existing.is_open = row.is_open
        existing.start = row.start
        existing.end = row.end
        existing.day_name = row.day_name
    commit_or_rollback(db, "Save operating hours")
    return list_operating_hours(db, tenant)


# Clients

class CustomerIn(BaseModel):
    name: str
    phone: str
    email: Optional[str] = None


class CustomerOut(BaseModel):
    id: int
    name: str
    phone: Optional[str]
    email: Optional[str]
    total_spent: condecimal(max_digits=10, decimal_places=2)
    visits_count: int
    last_visit: Optional[str] = None
    subscription_status: str

    class Config:
        from_attributes = True

    @classmethod
    def from_model(cls, customer: Customer) -> "CustomerOut":
        return cls(
            id=customer.id,
            name=customer.name,
            phone=customer.phone,
            email=customer.email,
            total_spent=customer.total_spent or 0,
            visits_count=customer.visits_count or 0,
            last_visit=customer.last_visit.isoformat() if customer.last_visit else None,
            subscription_status=customer.subscription_status,
        )


class SubscriptionUpdate(BaseModel):
    subscription_status: str


@router.get("/customers", response_model=List[CustomerOut])
def list_customers(
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(get_current_user),
    q: Optional[str] = Query(None, description="Search by name or phone"),
):
    query = db.query(Customer).filter(Customer.tenant_id == tenant.id)
    if q and q.strip():
        needle = f"%{q.strip().lower()}%"
        query = query.filter(func.lower(Customer.name).like(needle) | Customer.phone.like(needle))
    return [CustomerOut.from_model(c) for c in query.order_by(Customer.name).all()]


@router.post("/customers", response_model=CustomerOut)
def upsert_customer(
    data: CustomerIn,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    user: User = Depends(get_current_user),
):
    customer = customer_service.upsert_customer(db, tenant.id, data.name, data.phone, data.email)
    commit_or_rollback(db, "Save client")
    db.refresh(customer)
    return CustomerOut.from_model(customer)


@router.put("/customers/{customer_id}/subscription", response_model=CustomerOut, dependencies=[Depends(require_admin)])
def update_subscription(
    customer_id: int,
    data: SubscriptionUpdate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
):
    allowed = {
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.PAUSED,
        SubscriptionStatus.PENDING_PAYMENT,
        SubscriptionStatus.NONE,
    }
    if data.subscription_status not in allowed:
        raise HTTPException(status_code=400, detail="Invalid subscription status")
    customer = customer_service.get_customer(db, tenant.id, customer_id)
    customer.subscription_status = data.subscription_status
    commit_or_rollback(db, "Update subscription")
    db.refresh(customer)
    logger.info("Subscription updated: client=%s status=%s", customer.id, customer.subscription_status)
    return CustomerOut.from_model(customer)
