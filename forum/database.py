from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, TypeVar

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from forum.config import settings
from forum.middleware import install_query_counter

T = TypeVar("T")

# Module-level engine variable allows tests to override with a test engine.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

# Register the per-request SQL query counter on the production engine.
install_query_counter(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


class Gateway:
    """
    Persistence gateway shared by every service.

    Each logical operation acquires one session (and therefore one pooled
    connection) for its whole duration and releases it on every exit path:

    - ``transaction()`` wraps the block in BEGIN/COMMIT and rolls back on
      any exception before re-raising it.
    - ``session()`` yields a session for read paths that do not need a
      transaction of their own.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            async with session.begin():
                yield session

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            yield session

    async def with_transaction(self, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run *fn* inside a transaction and return its result."""
        async with self.transaction() as session:
            return await fn(session)

    async def query(self, stmt) -> Any:
        """Execute a single read statement outside of any transaction."""
        async with self.session() as session:
            return await session.execute(stmt)


gateway = Gateway(async_session)


def get_gateway() -> Gateway:
    """FastAPI dependency; tests override it with a gateway bound to their engine."""
    return gateway


def dialect_insert(session: AsyncSession, table):
    """
    Return an INSERT construct supporting ``on_conflict_do_*`` for the
    dialect the session is bound to (PostgreSQL in production, SQLite in
    tests).
    """
    name = session.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert(table)
    if name == "sqlite":
        return sqlite.insert(table)
    raise RuntimeError(f"Upserts are not supported for dialect {name!r}")


async def dispose_engine(target: AsyncEngine | None = None) -> None:
    await (target or engine).dispose()
