"""
SQLAlchemy ORM Base Configuration
Provides declarative base and session management for ORM models.

IMPORTANT: Engine is imported from database.connection to ensure single source of truth.
The session factory is bound lazily so importing models never opens a connection pool.
"""

from typing import Optional

from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    """Base class for all ORM models"""
    pass


_session_factory: Optional[sessionmaker] = None


def _get_engine():
    """
    Get the SQLAlchemy engine from database.connection.

    Lazy import to avoid circular dependencies during module initialization.
    """
    from database.connection import db
    return db.get_engine()


def get_session_factory() -> sessionmaker:
    """Session factory bound to the shared engine, created on first use."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=_get_engine(),
            expire_on_commit=False,  # Allow access to objects after commit
            autoflush=True
        )
    return _session_factory


def reset_session_factory() -> None:
    """Forget the bound factory (after the engine is disposed)."""
    global _session_factory
    _session_factory = None


def create_session() -> Session:
    """
    Factory for creating sessions (cron jobs, scripts).

    Usage:
        session = create_session()
        try:
            # Do work
            session.commit()
        except Exception as e:
            session.rollback()
            raise
        finally:
            session.close()

    Returns:
        SQLAlchemy Session instance
    """
    return get_session_factory()()
