from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sanad.core.config import settings

# SQLite needs check_same_thread=False when sessions cross FastAPI worker threads
_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True, connect_args=_connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Create all tables. Called once at application startup."""
    from sanad.db import base  # noqa: F401
    base.Base.metadata.create_all(bind=engine)
