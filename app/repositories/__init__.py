from app.repositories.base import NO_MORE_POSTS, CursorPage, Repositories
from app.repositories.memory import build_memory_repositories
from app.repositories.sql import build_sql_repositories
from app.repositories.store import JsonCollection, MemoryStore

__all__ = [
    "NO_MORE_POSTS",
    "CursorPage",
    "Repositories",
    "build_memory_repositories",
    "build_sql_repositories",
    "JsonCollection",
    "MemoryStore",
]
