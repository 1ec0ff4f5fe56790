"""Engine and session factory for the catalog database"""
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from hybrid_recommendation_service.config import get_database_url
from hybrid_recommendation_service.models.base import Base

DATABASE_URL = get_database_url()

if DATABASE_URL is None:
    raise ValueError("DATABASE_URL is not configured. Set the DATABASE_URL environment variable.")


def _engine_options(url: str) -> dict:
    """Connection pool options for the configured backend."""
    if make_url(url).get_backend_name() == "sqlite":
        # Sessions are opened from Azure Functions worker threads
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_recycle": 3600}


engine = create_engine(
    DATABASE_URL,
    echo=False,  # Set to True for SQL debugging
    **_engine_options(DATABASE_URL)
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables() -> None:
    """Create any missing catalog tables."""
    Base.metadata.create_all(engine)
