# ev_admin_system/data/database.py
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.exc import OperationalError

# The ONLY Base for the application lives in models.py.
from ev_admin_system.data.models import Base
from ev_admin_system.core.config import get_settings

logger = logging.getLogger(__name__)

DATABASE_URL = get_settings().database_url

if DATABASE_URL.startswith("sqlite"):
    logger.warning(f"Using SQLite database at {DATABASE_URL}. Set DATABASE_URL for PostgreSQL.")
    engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
else:
    logger.info("Using DATABASE_URL from environment.")
    engine = create_engine(DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """FastAPI dependency yielding one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction_scope(session: Session):
    """
    Runs the enclosed writes as one unit: commit when the block completes,
    roll back when anything escapes it.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def create_db_tables():
    logger.info("Attempting to create database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created (or already exist).")


def check_db_connection(session: Session | None = None) -> bool:
    """
    Returns True when the database answers a trivial query.
    """
    db = session or SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        return True
    except OperationalError as e:
        logger.error(f"Database connection failed: {e}")
        return False
    finally:
        if session is None:
            db.close()
