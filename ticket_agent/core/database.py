"""Database configuration and session management."""

from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from ticket_agent.core.config import settings
from ticket_agent.core.errors import RecordAlreadyExistsError, StoreError

_engine = None
_session_maker = None


def get_engine():
    """Get or create the engine."""
    global _engine, _session_maker

    if _engine is None:
        database_url = make_url(settings.database_url)

        engine_kwargs = {}
        if settings.env == "test":
            engine_kwargs["poolclass"] = NullPool

        if database_url.get_backend_name() == "sqlite":
            # Workers share the engine across threads
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if database_url.database and database_url.database != ":memory:":
                Path(database_url.database).parent.mkdir(parents=True, exist_ok=True)

        _engine = create_engine(
            database_url,
            echo=False,
            pool_pre_ping=True,
            **engine_kwargs,
        )

        _session_maker = sessionmaker(
            bind=_engine,
            class_=Session,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

    return _engine


@contextmanager
def get_session():
    """Get database session.

    SQLAlchemy failures are re-raised as store errors so callers only ever see
    the application's own error kinds.
    """
    get_engine()  # Ensure engine is initialized

    with _session_maker() as session:
        try:
            yield session
            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise RecordAlreadyExistsError(f"Integrity violation: {e.orig}", e) from e
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError(f"Database operation failed: {e}", e) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


def create_tables() -> None:
    """Create all database tables."""
    # Register table models on the metadata before creating
    import ticket_agent.models  # noqa: F401

    engine = get_engine()
    SQLModel.metadata.create_all(engine)


def clean_database() -> None:
    """Delete all rows from every table (used between tests)."""
    with get_session() as session:
        for table in reversed(SQLModel.metadata.sorted_tables):
            session.execute(table.delete())


def close_db() -> None:
    """Close database connections."""
    global _engine, _session_maker

    if _engine:
        _engine.dispose()
        _engine = None
        _session_maker = None
