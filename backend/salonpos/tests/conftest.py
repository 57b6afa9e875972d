import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"

from datetime import time
from decimal import Decimal

import pytest

from salonpos.core.database import SessionLocal, engine
from salonpos.core.events import appointment_events
from salonpos.models.customer import Customer, SubscriptionStatus
from salonpos.models.payment_method import PaymentMethod
from salonpos.models.product import Product
from salonpos.models.professional import Professional
from salonpos.models.service import CommissionType, Service
from salonpos.models.tenant import Base, Tenant
from salonpos.services.seed import seed_tenant_defaults

import salonpos.models  # noqa: F401


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        appointment_events.clear()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def tenant(db):
    """Shop open Monday-Saturday 09:00-20:00 with the default payment methods."""
    shop = Tenant(name="Barbearia Teste", slug="teste")
    db.add(shop)
    db.flush()
    seed_tenant_defaults(db, shop)
    db.commit()
    return shop


@pytest.fixture()
def professional(db, tenant):
    pro = Professional(
        tenant_id=tenant.id,
        name="Carlos",
        commission_rate=Decimal("40"),
        specialties=[],
        work_start=time(9, 0),
        work_end=time(20, 0),
        lunch_start=time(12, 0),
        lunch_end=time(13, 0),
    )
    db.add(pro)
    db.commit()
    return pro


@pytest.fixture()
def haircut(db, tenant):
    service = Service(tenant_id=tenant.id, name="Corte", price=Decimal("50"), duration_minutes=30, category="Cabelo")
    db.add(service)
    db.commit()
    return service


@pytest.fixture()
def eyebrow(db, tenant):
    service = Service(
        tenant_id=tenant.id,
        name="Sobrancelha",
        price=Decimal("20"),
        duration_minutes=15,
        category="Estética",
        commission_type=CommissionType.CUSTOM,
        custom_commission_rate=Decimal("60"),
    )
    db.add(service)
    db.commit()
    return service


@pytest.fixture()
def pomade(db, tenant):
    product = Product(
        tenant_id=tenant.id,
        name="Pomada",
        price=Decimal("30"),
        cost=Decimal("12"),
        commission_rate=Decimal("10"),
        stock=10,
    )
    db.add(product)
    db.commit()
    return product


@pytest.fixture()
def customer(db, tenant):
    client = Customer(tenant_id=tenant.id, name="João", phone="11999990000")
    db.add(client)
    db.commit()
    return client


@pytest.fixture()
def subscriber(db, tenant):
    client = Customer(
        tenant_id=tenant.id,
        name="Pedro",
        phone="11988887777",
        subscription_status=SubscriptionStatus.ACTIVE,
    )
    db.add(client)
    db.commit()
    return client


@pytest.fixture()
def methods(db, tenant):
    """Seeded payment methods by type: cash, pix, credit, debit, discount."""
    rows = db.query(PaymentMethod).filter(PaymentMethod.tenant_id == tenant.id).all()
    return {m.type: m for m in rows}
