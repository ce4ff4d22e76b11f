"""
Database engine and session management using SQLAlchemy 2.x.
Provides connection pooling and session factory for the application.
"""
from contextlib import contextmanager
from typing import Any, Dict, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session, DeclarativeBase
from sqlalchemy.pool import StaticPool

from slotbook.lib.settings import settings


# Base class for all SQLAlchemy models
class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Pool options per backend; SQLite has no server-side pool."""
    if database_url.startswith("sqlite"):
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection so every session sees the same in-memory database
            options["poolclass"] = StaticPool
        return options
    return {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_size": 5,
        "max_overflow": 10,
    }


engine = create_engine(
    settings.database_url,
    echo=settings.debug,
    **_engine_options(settings.database_url),
)


if engine.dialect.name == "sqlite":
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for FastAPI routes to get a database session.

    Usage:
        @app.get("/example")
        def example(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside of FastAPI routes.

    Usage:
        with get_db_context() as db:
            result = db.execute(select(Provider)).scalars().first()
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db():
    """
    Initialize the database by creating all tables.
    Imports the models package so every table is registered with Base.metadata.
    """
    import slotbook.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_db():
    """
    Drop all tables. Use with caution - for testing only.
    """
    Base.metadata.drop_all(bind=engine)
