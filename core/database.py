from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from contextlib import contextmanager

# Base class for all models
Base = declarative_base()


def make_engine(database_url: str):
    """Create an engine; SQLite connections may be shared across Streamlit threads."""
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args)


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_context(session_factory):
    """
    Context manager for database sessions.
    Automatically closes session when done.

    Usage:
        with get_db_context(SessionLocal) as db:
            result = db.query(Model).all()
    """
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(session_factory):
    """Session that commits on success and rolls back on any exception."""
    with get_db_context(session_factory) as db:
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
