import logging
from datetime import time
from decimal import Decimal

from sqlalchemy.orm import Session

from salonpos.core.security import hash_password
from salonpos.models.operating_hours import OperatingHours
from salonpos.models.payment_method import PaymentMethod, PaymentMethodType
from salonpos.models.product import Product
from salonpos.models.professional import Professional
from salonpos.models.service import CommissionType, Service, ServiceCategory
from salonpos.models.tenant import Tenant
from salonpos.models.user import User

logger = logging.getLogger(__name__)

# (name, type, fee %, days to receive)
DEFAULT_PAYMENT_METHODS = [
    ("Dinheiro", PaymentMethodType.CASH, Decimal("0"), 0),
    ("Pix", PaymentMethodType.PIX, Decimal("0"), 0),
    ("Crédito", PaymentMethodType.CREDIT, Decimal("3.99"), 30),
    ("Débito", PaymentMethodType.DEBIT, Decimal("1.99"), 1),
    ("Desconto", PaymentMethodType.DISCOUNT, Decimal("0"), 0),
]

DAY_NAMES = ["Domingo", "Segunda", "Terça", "Quarta", "Quinta", "Sexta", "Sábado"]


def seed_payment_methods(db: Session, tenant_id: int) -> None:
    if db.query(PaymentMethod).filter(PaymentMethod.tenant_id == tenant_id).first():
        return
    for name, method_type, fee, days in DEFAULT_PAYMENT_METHODS:
        db.add(
            PaymentMethod(
                tenant_id=tenant_id,
                name=name,
                type=method_type,
                fee_percentage=fee,
                receive_days=days,
                is_active=True,
            )
        )


def seed_operating_hours(db: Session, tenant_id: int) -> None:
    """Monday to Saturday 09:00-20:00, closed on Sunday."""
    if db.query(OperatingHours).filter(OperatingHours.tenant_id == tenant_id).first():
        return
    for index, day_name in enumerate(DAY_NAMES):
        db.add(
            OperatingHours(
                tenant_id=tenant_id,
                day_index=index,
                day_name=day_name,
                is_open=index != 0,
                start=time(9, 0),
                end=time(20, 0),
            )
        )


def seed_tenant_defaults(db: Session, tenant: Tenant) -> None:
    """Payment methods and opening hours every new shop starts with. Not committed."""
    seed_payment_methods(db, tenant.id)
    seed_operating_hours(db, tenant.id)


def seed_demo(db: Session):
    if db.query(Tenant).filter(Tenant.slug == 'demo').first():
        return
    tenant = Tenant(name='Demo Barbearia', slug='demo')
    db.add(tenant)
    db.flush()
    user = User(
        email='owner@demo.com',
        name='Owner',
        hashed_password=hash_password('secret123'),
        role='owner',
        tenant_id=tenant.id,
    )
    db.add(user)
    seed_tenant_defaults(db, tenant)

    db.add_all([
        Professional(
            tenant_id=tenant.id, name='Carlos', role='Barbeiro', commission_rate=Decimal('40'),
            specialties=[ServiceCategory.HAIR, ServiceCategory.BEARD],
            work_start=time(9, 0), work_end=time(20, 0), lunch_start=time(12, 0), lunch_end=time(13, 0),
        ),
        Professional(
            tenant_id=tenant.id, name='Ana', role='Esteticista', commission_rate=Decimal('50'),
            specialties=[],
            work_start=time(10, 0), work_end=time(19, 0), lunch_start=time(13, 0), lunch_end=time(14, 0),
        ),
    ])
    db.add_all([
        Service(tenant_id=tenant.id, name='Corte', price=Decimal('50'), duration_minutes=30,
                category=ServiceCategory.HAIR),
        Service(tenant_id=tenant.id, name='Barba', price=Decimal('35'), duration_minutes=30,
                category=ServiceCategory.BEARD),
        Service(tenant_id=tenant.id, name='Sobrancelha', price=Decimal('20'), duration_minutes=15,
                category=ServiceCategory.AESTHETICS, commission_type=CommissionType.CUSTOM,
                custom_commission_rate=Decimal('60')),
    ])
    db.add_all([
        Product(tenant_id=tenant.id, name='Pomada Modeladora', category='hair', price=Decimal('30'),
                cost=Decimal('12'), commission_rate=Decimal('10'), stock=20, min_stock=5),
        Product(tenant_id=tenant.id, name='Óleo para Barba', category='beard', price=Decimal('45'),
                cost=Decimal('18'), commission_rate=Decimal('10'), stock=10, min_stock=3),
    ])
    db.commit()
    logger.info("Demo tenant seeded: slug=%s owner=%s", tenant.slug, user.email)
