"""Database utilities and setup."""
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from mock_core.config import DATABASE_URL, DB_DIR

if DATABASE_URL.startswith("sqlite:///") and ":memory:" not in DATABASE_URL:
    DB_DIR.mkdir(parents=True, exist_ok=True)

# Create engine
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Base class for models
class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def init_db(bind=None):
    """Initialize database (create all tables)."""
    # Register tables on Base.metadata before create_all
    import mock_core.models.db  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
