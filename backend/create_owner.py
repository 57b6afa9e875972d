#!/usr/bin/env python3
"""
Script to create (or reset) the owner user of a shop
Run this inside the Docker container: docker-compose exec backend python create_owner.py <slug> <email> <password>
"""
import sys

from salonpos.core.database import SessionLocal
from salonpos.core.roles import Role
from salonpos.core.security import hash_password
from salonpos.models.tenant import Tenant
from salonpos.models.user import User
from salonpos.services.seed import seed_tenant_defaults


def create_owner(slug: str, email: str, password: str):
    db = SessionLocal()
    try:
        # Find or create the shop
        tenant = db.query(Tenant).filter(Tenant.slug == slug).first()
        if not tenant:
            print(f"Creating shop '{slug}'...")
            tenant = Tenant(name=slug, slug=slug)
            db.add(tenant)
            db.flush()
            seed_tenant_defaults(db, tenant)
            print(f"Shop '{slug}' created with ID: {tenant.id}")
        else:
            print(f"Found shop '{slug}' with ID: {tenant.id}")

        # Check if email already exists for this shop
        user = db.query(User).filter(
            User.tenant_id == tenant.id,
            User.email == email
        ).first()

        if user:
            # Update existing user to owner role
            user.role = Role.owner.value
            user.hashed_password = hash_password(password)
            action = "updated to owner role"
        else:
            user = User(
                email=email,
                hashed_password=hash_password(password),
                role=Role.owner.value,
                tenant_id=tenant.id
            )
            db.add(user)
            action = "created"
        db.commit()
        db.refresh(user)

        print(f"\nOwner '{email}' {action}")
        print(f"\n{'='*50}")
        print("CREDENTIALS:")
        print(f"{'='*50}")
        print(f"Email: {user.email}")
        print(f"Password: {password}")
        print(f"Role: {user.role}")
        print(f"Tenant: {slug}")
        print(f"{'='*50}")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == '__main__':
    if len(sys.argv) != 4:
        print("Usage: python create_owner.py <slug> <email> <password>")
        sys.exit(1)
    create_owner(*sys.argv[1:])
