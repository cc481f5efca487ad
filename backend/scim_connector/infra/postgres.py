import logging
import os
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from scim_connector.models.base import Base

logger = logging.getLogger(__name__)

# =========================
# CONFIGURATION
# =========================

DB_USER = os.getenv("DB_USER", "scim_user")
DB_PASS = os.getenv("DB_PASS", "")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME", "employees")

# A full DATABASE_URL wins over the assembled PostgreSQL URL
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)

# =========================
# ENGINE CONFIGURATION
# =========================


def build_engine(url: str = DATABASE_URL, echo: bool = False):
    if url.startswith("sqlite"):
        # Single shared connection so an in-memory database survives across sessions
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo,
        )

    return create_engine(
        url,
        pool_pre_ping=True,  # Check connections before using them
        pool_size=5,         # Maintain 5 connections in the pool
        max_overflow=10,     # Allow 10 extra connections if needed
        pool_recycle=3600,   # Recycle connections every hour
        echo=echo,           # Set True to see SQL statements (debugging)
    )


engine = build_engine()

# =========================
# SESSION CONFIGURATION
# =========================

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# =========================
# DATABASE FUNCTIONS
# =========================


def close_quietly(session) -> None:
    """Release a session; a failing close is logged, never raised."""
    try:
        session.close()
    except SQLAlchemyError as e:
        logger.error("Unable to cleanup and close the db session: %s", e, exc_info=True)


def get_db():
    """
    FastAPI dependency to provide a DB session to routes.
    Usage:
        def my_route(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        close_quietly(db)


def init_db(bind=None, drop: bool = False) -> list[str]:
    """
    Create all tables based on registered models and return their names.
    With drop=True the tables are dropped first.
    """
    # Register models with Base
    from scim_connector.models import user  # noqa: F401

    bind = bind if bind is not None else engine
    if drop:
        logger.warning("Dropping all tables on %s", bind.url.render_as_string(hide_password=True))
        Base.metadata.drop_all(bind=bind)

    Base.metadata.create_all(bind=bind)
    tables = inspect(bind).get_table_names()
    logger.info("Database tables ready: %s", tables)
    return tables


def check_connection(bind=None) -> bool:
    """
    Test DB connection.
    """
    bind = bind if bind is not None else engine
    try:
        with bind.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("✅ Database connection successful")
        return True
    except SQLAlchemyError as e:
        logger.error("❌ Database connection failed: %s", e)
        return False
