from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session

from salonpos.core.database import get_db
from salonpos.core.security import create_token_pair, decode_token, hash_password, verify_password
from salonpos.core.deps import get_current_user, get_tenant, linked_tenant_id
from salonpos.core.roles import Role
from salonpos.models.tenant import Tenant
from salonpos.models.user import User
from salonpos.services.seed import seed_tenant_defaults


router = APIRouter()


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    name: Optional[str] = None
    tenant_name: str
    tenant_slug: str


class ClientRegisterRequest(BaseModel):
    email: EmailStr
    password: str
    name: str
    phone: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class MeResponse(BaseModel):
    id: int
    email: str
    name: Optional[str]
    role: str
    phone: Optional[str]
    tenant_id: int
    linked_tenant_id: int


def _tokens(user: User) -> TokenResponse:
    access, refresh = create_token_pair(user.id, user.tenant_id)
    return TokenResponse(access_token=access, refresh_token=refresh)


@router.post("/register", response_model=TokenResponse)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    """Create a shop and its owner."""
    existing_tenant = db.query(Tenant).filter(Tenant.slug == data.tenant_slug).first()
    if existing_tenant:
        raise HTTPException(status_code=400, detail="Tenant already exists")

    tenant = Tenant(name=data.tenant_name, slug=data.tenant_slug)
    db.add(tenant)
    db.flush()

    user = User(
        email=data.email,
        name=data.name,
        hashed_password=hash_password(data.password),
        role=Role.owner.value,
        tenant_id=tenant.id,
    )
    db.add(user)
    seed_tenant_defaults(db, tenant)
    db.commit()
    db.refresh(user)
    return _tokens(user)


@router.post("/register-client", response_model=TokenResponse)
def register_client(data: ClientRegisterRequest, db: Session = Depends(get_db), tenant: Tenant = Depends(get_tenant)):
    """Client login for online booking, linked to the client record by phone."""
    if db.query(User).filter(User.email == data.email, User.tenant_id == tenant.id).first():
        raise HTTPException(status_code=400, detail="Email already registered")
    user = User(
        email=data.email,
        name=data.name,
        phone=data.phone.strip(),
        hashed_password=hash_password(data.password),
        role=Role.client.value,
        tenant_id=tenant.id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return _tokens(user)


@router.post("/login", response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db), tenant: Tenant = Depends(get_tenant)):
    user = db.query(User).filter(User.email == data.email, User.tenant_id == tenant.id).first()
    if not user or not verify_password(data.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return _tokens(user)


class RefreshRequest(BaseModel):
    refresh_token: str


@router.post("/refresh", response_model=TokenResponse)
def refresh_token_endpoint(data: RefreshRequest, db: Session = Depends(get_db), tenant: Tenant = Depends(get_tenant)):
    payload = decode_token(data.refresh_token)
    if not payload or payload.get("type") != "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    user = db.query(User).filter(User.id == int(payload["sub"]), User.tenant_id == tenant.id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return _tokens(user)


@router.get("/me", response_model=MeResponse)
def me(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return MeResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        phone=user.phone,
        tenant_id=user.tenant_id,
        linked_tenant_id=linked_tenant_id(db, user),
    )
