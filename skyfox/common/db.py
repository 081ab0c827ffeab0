"""Database bootstrap for the SQL-backed ledger."""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from skyfox.common.config import settings


def make_engine(dsn: str) -> Engine:
    """Engine for the ledger store named by `dsn`.

    Postgres gets a bounded pool sized from settings; every payment attempt
    holds a connection only for its acquire and release. SQLite (local runs and
    tests) shares one connection so an in-memory database outlives a session.
    """

    if make_url(dsn).get_backend_name() == "sqlite":
        return create_engine(dsn, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(
        dsn,
        pool_pre_ping=True,
        pool_size=settings.ledger_pool_size,
        pool_timeout=settings.ledger_pool_timeout_seconds,
    )


def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autoflush=False, autocommit=False, expire_on_commit=False)


# Nothing connects until first use.
engine = make_engine(settings.postgres_dsn)
SessionLocal = make_session_factory(engine)


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""

    pass
