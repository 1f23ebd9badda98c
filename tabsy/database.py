from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def create_db_engine(database_url: str) -> Engine:
    """
    Create the engine for the configured database.

    SQLite connections are shared with FastAPI's worker threads, so the
    same-thread check is disabled for them.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    return create_engine(
        database_url,
        echo=False,  # Set True for SQL debugging
        pool_pre_ping=True,  # Verify connections before use
        connect_args=connect_args
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory for request-scoped sessions."""
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False
    )


def get_db(request: Request):
    """
    FastAPI dependency to get a database session.

    The session factory is built once in create_app() and lives on
    app.state, so tests can point the whole app at another database.

    Usage:
        @router.get("/items")
        def get_items(db: Session = Depends(get_db)):
            ...

    Yields:
        Session: Database session that auto-closes after request
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
