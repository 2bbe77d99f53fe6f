from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import settings


# Bound by init_engine() at startup; do not use scoped_session, create a fresh Session per request
SessionLocal = sessionmaker(autoflush=False, autocommit=False, future=True)

Base = declarative_base()

_engine: Optional[Engine] = None


def init_engine(database_url: Optional[str] = None, **engine_kwargs) -> Engine:
    """Create the process-wide engine and bind the session factory to it."""
    global _engine
    url = database_url or settings.database_url
    if url.startswith("sqlite"):
        engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        engine_kwargs.setdefault("pool_size", 5)
        engine_kwargs.setdefault("max_overflow", 10)
        engine_kwargs.setdefault("pool_recycle", 3600)  # Recycle connections after 1 hour
    _engine = create_engine(url, future=True, pool_pre_ping=True, **engine_kwargs)
    SessionLocal.configure(bind=_engine)
    return _engine


def dispose_engine() -> None:
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
