from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.db.session import async_session_factory
from app.repositories import (
    MemoryStore,
    Repositories,
    build_memory_repositories,
    build_sql_repositories,
)

_memory_store: MemoryStore | None = None


def get_memory_store() -> MemoryStore:
    global _memory_store
    if _memory_store is None:
        _memory_store = MemoryStore(settings.data_dir)
    return _memory_store


@asynccontextmanager
async def memory_scope(store: MemoryStore) -> AsyncIterator[Repositories]:
    """Every memory write is durable at once, so only commit callbacks ever run."""
    repos = build_memory_repositories(store)
    yield repos
    repos.finish(committed=True)


@asynccontextmanager
async def database_scope(
    session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
) -> AsyncIterator[Repositories]:
    """One session and one transaction shared by every repository.

    Committed when the block exits normally, rolled back when it raises.
    """
    async with session_factory() as session:
        repos = build_sql_repositories(session)
        try:
            async with session.begin():
                yield repos
        except Exception:
            repos.finish(committed=False)
            raise
    repos.finish(committed=True)


async def get_repositories() -> AsyncGenerator[Repositories, None]:
    """FastAPI dependency that yields the repositories for the configured backend."""
    if settings.storage_backend == "memory":
        async with memory_scope(get_memory_store()) as repos:
            yield repos
        return

    async with database_scope() as repos:
        yield repos
