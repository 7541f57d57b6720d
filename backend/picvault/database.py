import os
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool


def database_url() -> str:
    """DATABASE_URL from the environment, SQLite for local development."""
    url = os.environ.get("DATABASE_URL", "sqlite:///./picvault.db")
    # Hosted Postgres providers hand out postgres://
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


def make_engine(url: str) -> Engine:
    connect_args: dict[str, Any] = {}
    options: dict[str, Any] = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        # One shared connection, otherwise each thread sees its own empty database
        if ":memory:" in url:
            options["poolclass"] = StaticPool
    else:
        options.update(
            pool_size=int(os.environ.get("DB_POOL_SIZE", "5")),
            max_overflow=int(os.environ.get("DB_MAX_OVERFLOW", "10")),
            pool_timeout=int(os.environ.get("DB_POOL_TIMEOUT", "10")),
            pool_pre_ping=True,
            pool_recycle=3600,
        )
    return create_engine(url, connect_args=connect_args, **options)


engine = make_engine(database_url())
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db() -> None:
    """Create tables for every model registered on Base."""
    from picvault.models import user, image_library  # noqa: F401 - register tables

    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
