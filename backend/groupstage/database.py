import os
from pathlib import Path
from typing import Generator

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./groupstage.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")

_SQLITE_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Engine for a database URL.

    SQLite is opened with check_same_thread=False for the threaded server.
    An in-memory database is pinned to one connection (StaticPool) so every
    session sees the same tables; a file database gets its directory created.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, echo=echo)

    connect_args = {"check_same_thread": False}
    if database_url in _SQLITE_MEMORY_URLS:
        return create_engine(database_url, echo=echo, connect_args=connect_args, poolclass=StaticPool)

    Path(database_url.replace("sqlite:///", "", 1)).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, echo=echo, connect_args=connect_args)


engine: Engine = build_engine(DATABASE_URL, echo=SQL_ECHO)


def get_session() -> Generator[Session, None, None]:
    """Request-scoped session; engine operations commit through atomic()"""
    with Session(engine) as session:
        yield session


def init_db(bind: Engine = engine) -> None:
    """Create every group stage table that does not exist yet"""
    # Registers all tables with SQLModel metadata
    import groupstage.models  # noqa: F401

    SQLModel.metadata.create_all(bind)
