from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi import Request
from typing import Generator

Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """Create the engine for the configured database URL."""
    if database_url.startswith("sqlite"):
        # In-memory SQLite must share one connection across threads
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    # PostgreSQL with appropriate connection pool settings
    return create_engine(
        database_url,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,  # Recycle connections after 30 minutes
        pool_pre_ping=True,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Database dependency
def get_db(request: Request) -> Generator[Session, None, None]:
    """Get database session."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


# Database initialization
def init_db(engine: Engine) -> None:
    """Initialize database tables."""
    from ..models import appointment, professional  # noqa: F401

    Base.metadata.create_all(bind=engine)


def ping_db(engine: Engine) -> None:
    """Run a trivial query; raises if the database is unreachable."""
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
