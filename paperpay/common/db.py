"""Database bootstrap helpers shared by all services."""

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from paperpay.common.config import settings


_connect_args = {"check_same_thread": False} if settings.database_dsn.startswith("sqlite") else {}

# Single SQLAlchemy engine per process.
engine = create_engine(settings.database_dsn, pool_pre_ping=True, connect_args=_connect_args)
# `expire_on_commit=False` keeps ORM objects readable after commit in handlers.
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""

    pass
