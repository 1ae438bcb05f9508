"""Database engine and the SQL handler used by the repositories.

`SQLHandler` owns the SQLModel/SQLAlchemy engine and exposes the only
three things the repositories need: ORM sessions, parameterized
statements that return an affected-row count, and parameterized queries
that return rows. It holds no business logic.
"""

from typing import Any, List, Union

from sqlalchemy import text
from sqlalchemy.sql.elements import TextClause
from sqlalchemy.engine import RowMapping
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# imported for the side effect of registering the tables on the metadata
from . import models  # noqa: F401


def _as_clause(statement: Union[str, TextClause]) -> TextClause:
    return text(statement) if isinstance(statement, str) else statement


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


class SQLHandler:
    """Thin wrapper around an engine configured from the settings."""

    def __init__(self, url: str, max_idle_conns: int = 5, max_open_conns: int = 10, echo: bool = False):
        if url.startswith("sqlite"):
            kwargs: dict = {"connect_args": {"check_same_thread": False}}
            if _is_memory_sqlite(url):
                # every session must see the same in-memory database
                kwargs["poolclass"] = StaticPool
        else:
            kwargs = {
                "pool_size": max_idle_conns,
                "max_overflow": max(0, max_open_conns - max_idle_conns),
                "pool_pre_ping": True,
            }
        self.engine = create_engine(url, echo=echo, **kwargs)

    def create_tables(self):
        """Create database tables using SQLModel metadata.

        This is idempotent and intended for local development and tests;
        production deployments should rely on a proper migration tool.
        """
        SQLModel.metadata.create_all(self.engine)

    def ping(self):
        """Open a connection and run a trivial statement."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def session(self) -> Session:
        """Return a new `Session`; objects stay usable after commit."""
        return Session(self.engine, expire_on_commit=False)

    def execute(self, statement: Union[str, TextClause], **params: Any) -> int:
        """Run a parameterized statement in its own transaction.

        `statement` is SQL text or a `text()` clause with typed bind
        parameters. Returns the number of affected rows.
        """
        with self.engine.begin() as conn:
            result = conn.execute(_as_clause(statement), params)
            return result.rowcount

    def query(self, statement: Union[str, TextClause], **params: Any) -> List[RowMapping]:
        """Run a parameterized query and return all rows as mappings."""
        with self.engine.connect() as conn:
            return list(conn.execute(_as_clause(statement), params).mappings().all())

    def dispose(self):
        self.engine.dispose()
