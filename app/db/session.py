import logging

from sqlmodel import SQLModel, create_engine, Session
from app.core.config import settings

logger = logging.getLogger(__name__)

_engine = None


def get_engine():
    global _engine

    if _engine is not None:
        return _engine

    # Fallback to a local SQLite file when DATABASE_URL is not configured
    db_url = settings.DATABASE_URL or "sqlite:///./ftth_dash.db"

    # SQLite fix for multithreading
    connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}

    _engine = create_engine(db_url, connect_args=connect_args, pool_pre_ping=True)
    return _engine

engine = get_engine()


def init_db(bind=None) -> None:
    """Create all tables registered on SQLModel.metadata."""
    # Importing the models registers their tables
    import app.models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)
    logger.info("Database schema ready")


def get_db():
    with Session(engine) as session:
        yield session
