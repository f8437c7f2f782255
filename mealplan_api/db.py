"""
Database connection management for the SQL record store backend.

Only used when RECORD_STORE_BACKEND=sql. The Airtable backend never touches
this module.

Environment variables:
    - DATABASE_URL: SQLAlchemy connection URL (default: sqlite:///./mealplan.db)
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from .config import DATABASE_URL
from .models import Base

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    echo=False,
    connect_args=_connect_args,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def init_db() -> None:
    """Create the record store table if it does not exist yet."""
    Base.metadata.create_all(bind=engine)
