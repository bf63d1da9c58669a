# app/database.py
"""
Database engine, session factory, and table creation.
Uses SQLAlchemy with PostgreSQL (SQLite is accepted for local runs and tests).

Nothing here is a module-level connection: the engine is built once at
application start and handed to SqlDataAccess, which is what the routers see.
"""

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def build_engine(database_url: str):
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool   # One shared in-memory DB per engine
        return create_engine(database_url, **kwargs)

    return create_engine(
        database_url,
        pool_pre_ping=True,          # Auto-reconnect if DB connection drops
        pool_size=10,
        max_overflow=20,
        echo=False,                  # Set True to log all SQL queries (debug only)
    )


def build_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def create_tables(engine):
    """
    Creates all DB tables. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from app.models.site import Site                        # noqa
    from app.models.emergency_alert import EmergencyAlert  # noqa

    Base.metadata.create_all(bind=engine)


def get_data_access(request: Request):
    """FastAPI dependency: the data-access object built at startup."""
    return request.app.state.data_access
