# app/database.py
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from app.core.config import get_settings

settings = get_settings()

IN_MEMORY_SQLITE_URLS = ("sqlite://", "sqlite:///:memory:")


def build_engine(db_url: str) -> Engine:
    """
    Create the SQLAlchemy engine backing the cart slots.

    Connections are pre-pinged before use. For sqlite the connection may be
    shared by the FastAPI threadpool (check_same_thread=False), and an
    in-memory database keeps one static connection so every session sees
    the same tables.
    """
    kwargs = {"pool_pre_ping": True}

    if db_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if db_url in IN_MEMORY_SQLITE_URLS:
            kwargs["poolclass"] = StaticPool

    return create_engine(db_url, echo=False, **kwargs)


engine = build_engine(settings.DATABASE_URL)


def create_db_and_tables(bind: Engine | None = None) -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(bind or engine)
