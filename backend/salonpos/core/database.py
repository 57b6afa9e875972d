import logging

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from salonpos.core.config import settings
from salonpos.core.errors import StorageError
from salonpos.models.tenant import Base

logger = logging.getLogger(__name__)


def build_engine(database_url: str):
    """
    PostgreSQL in production; SQLite for local development and tests.
    An in-memory SQLite URL shares one connection so every session sees the same data.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url.rstrip("/") in {"sqlite:", "sqlite+pysqlite:"}:
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    # Register every table on the metadata before create_all
    import salonpos.models  # noqa: F401

    # Create tables in dev/test without running Alembic
    if settings.env in {"dev", "test"}:
        Base.metadata.create_all(bind=engine)


def commit_or_rollback(db: Session, action: str) -> None:
    """
    Commit the unit of work or roll every staged change back.
    The driver message is carried verbatim in the StorageError.
    """
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        message = str(getattr(exc, "orig", None) or exc)
        logger.error("%s failed, transaction rolled back: %s", action, message)
        raise StorageError(message) from exc
