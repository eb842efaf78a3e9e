"""
Database engine and session management
"""
from typing import Any, Dict

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from vod_pipeline.config import get_settings

settings = get_settings()

Base = declarative_base()


def build_engine(url: str) -> Engine:
    """
    Create an engine for the given URL

    SQLite needs check_same_thread disabled because FastAPI and the worker
    hand sessions across threads.
    """
    is_sqlite = url.startswith("sqlite:")

    connect_args: Dict[str, Any] = {}
    if is_sqlite:
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = 30

    return create_engine(
        url,
        echo=settings.debug,
        connect_args=connect_args,
        pool_pre_ping=not is_sqlite,
    )


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Create tables if they don't exist"""
    from vod_pipeline.models import Video, ProcessingTask, UserPermission  # noqa
    Base.metadata.create_all(bind=engine)


def get_db():
    """
    FastAPI dependency: one session per request

    Usage:
        def route(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
