"""
Script to recreate the database with the current schema and the demo shop
"""
from salonpos.core.database import SessionLocal, engine
from salonpos.models.tenant import Base
from salonpos.services.seed import seed_demo

# Import all models to ensure they're registered
import salonpos.models  # noqa: F401


def recreate_db():
    print("Recreating database with the salon schema...")

    # Drop all tables
    print("Dropping existing tables...")
    Base.metadata.drop_all(bind=engine)

    # Create all tables with new schema
    print("Creating tables...")
    Base.metadata.create_all(bind=engine)

    # Seed demo data
    print("Seeding demo data...")
    db = SessionLocal()
    try:
        seed_demo(db)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    print("Database recreated successfully!")
    print("\nLogin credentials:")
    print("   Email: owner@demo.com")
    print("   Password: secret123")
    print("   Tenant: demo")

if __name__ == "__main__":
    recreate_db()
