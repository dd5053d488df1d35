from __future__ import annotations

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from campus_booking.core.config import settings


def build_engine(url: str) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        # request handlers and the stress tests share the file across threads
        connect_args = {"check_same_thread": False, "timeout": 30}
    return create_engine(url, connect_args=connect_args)


engine = build_engine(settings.DATABASE_URL)


def init_db(bind: Engine | None = None) -> None:
    """Create database tables in environments without migrations."""
    import campus_booking.models  # noqa: F401  registers the tables

    SQLModel.metadata.create_all(bind=bind or engine)


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_session)]
