from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from salonpos.core.config import settings
from salonpos.core.database import get_db
from salonpos.core.security import decode_token
from salonpos.models.customer import Customer
from salonpos.models.tenant import Tenant
from salonpos.models.user import User
from salonpos.core.roles import Role, ADMIN_ROLES, STAFF_ROLES


def get_tenant_slug(request: Request) -> str:
    header_value = request.headers.get(settings.tenant_header)
    if header_value:
        return header_value
    # Fallback: subdomain e.g., barbearia.myapp.com
    host = request.headers.get("host", "")
    parts = host.split(":")[0].split(".")
    if len(parts) >= 3:
        return parts[0]
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing tenant header")


def get_tenant(db: Session = Depends(get_db), tenant_slug: str = Depends(get_tenant_slug)) -> Tenant:
    tenant = db.query(Tenant).filter(Tenant.slug == tenant_slug, Tenant.is_active == True).first()  # noqa: E712
    if not tenant:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return tenant


def get_current_user(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(None),
    tenant: Tenant = Depends(get_tenant),
) -> User:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    token = authorization.split(" ", 1)[1]
    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    if payload.get("tid") != tenant.id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token issued for another tenant")
    user_id = payload.get("sub")
    user = db.query(User).filter(User.id == int(user_id), User.tenant_id == tenant.id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def require_staff(user: User = Depends(get_current_user)) -> User:
    if user.role not in {r.value for r in STAFF_ROLES}:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Staff only")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role not in {r.value for r in ADMIN_ROLES}:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
    return user


def linked_customer(db: Session, user: User) -> Optional[Customer]:
    """
    Customer record of a client-role user: same tenant and phone first, then any
    shop where that phone is registered.
    """
    if user.role != Role.client.value or not user.phone:
        return None
    customer = (
        db.query(Customer)
        .filter(Customer.tenant_id == user.tenant_id, Customer.phone == user.phone)
        .first()
    )
    if customer:
        return customer
    return db.query(Customer).filter(Customer.phone == user.phone).order_by(Customer.id).first()


def linked_tenant_id(db: Session, user: User) -> int:
    customer = linked_customer(db, user)
    return customer.tenant_id if customer else user.tenant_id
