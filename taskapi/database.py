from typing import Iterator

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, StaticPool
from sqlmodel import Session, SQLModel, create_engine

# Import all models to ensure they are registered with SQLModel metadata
from .models import Task, User  # noqa: F401

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def create_db_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        if database_url in _MEMORY_URLS:
            # One shared connection so every session sees the same database
            return create_engine(
                database_url,
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
        )

    # Postgres and friends: disable pooling for serverless and enable pre-ping
    return create_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
        poolclass=NullPool,
    )


def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, class_=Session, autoflush=False)


def get_db(request: Request) -> Iterator[Session]:
    """Dependency to get a database session bound to the app's engine."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def create_tables(engine: Engine) -> None:
    """Create all database tables."""
    SQLModel.metadata.create_all(bind=engine)
