"""Database connection and session management."""
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Any, Dict, Generator

from hippo.config import get_settings

settings = get_settings()


def engine_options(database_url: str, timeout: float) -> Dict[str, Any]:
    """
    Build engine keyword arguments that bound every store call by `timeout`.

    - pool checkout waits at most `timeout` seconds
    - PostgreSQL statements are cancelled server-side after `timeout`
    - SQLite waits at most `timeout` seconds on a locked database

    An in-memory SQLite URL gets a single shared connection so every session
    sees the same database.
    """
    url = make_url(database_url)
    options: Dict[str, Any] = {"pool_pre_ping": True}

    if url.get_backend_name() == "sqlite":
        options["connect_args"] = {"check_same_thread": False, "timeout": timeout}
        if url.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
        return options

    options["pool_timeout"] = timeout
    if url.get_backend_name() == "postgresql":
        options["connect_args"] = {"options": f"-c statement_timeout={int(timeout * 1000)}"}
    return options


# Create database engine
engine = create_engine(
    settings.database_url,
    echo=settings.debug,
    **engine_options(settings.database_url, settings.store_timeout_seconds)
)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session.

    Usage:
        @router.get("/loans/{loan_id}")
        def get_loan(loan_id: str, db: Session = Depends(get_db)):
            return LoanRegistry(db).get(loan_id)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
