"""One-time script: copy a memory-mode data directory into the database.

Records keep their ids, so sessions, cursors and image keys stay valid after
switching APP_STORAGE_BACKEND from "memory" to "database". The target tables
must exist (run ``alembic upgrade head`` first) and should be empty.

Usage:
    python -m scripts.import_json_store data
    python -m scripts.import_json_store --dry-run data
"""

import asyncio
import sys
from pathlib import Path

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import Base
from app.db.session import async_session_factory, engine
from app.models import Comment, LoginSession, Post, PostLike, User, ViewHistory
from app.repositories import MemoryStore

# Parents before children so foreign keys resolve
IMPORT_ORDER: list[tuple[str, type[Base]]] = [
    ("users", User),
    ("posts", Post),
    ("comments", Comment),
    ("post_likes", PostLike),
    ("view_histories", ViewHistory),
    ("login_sessions", LoginSession),
]


async def _copy(db: AsyncSession, store: MemoryStore, dry_run: bool) -> bool:
    for name, model in IMPORT_ORDER:
        existing = await db.scalar(select(func.count()).select_from(model))
        if existing:
            print(f"{model.__tablename__} already holds {existing} rows, aborting.")
            return False

    for name, model in IMPORT_ORDER:
        records = getattr(store, name).filter(lambda record: True)
        print(f"{name}: {len(records)} record(s)")
        db.add_all(model.from_record(record) for record in records)
        await db.flush()

    if dry_run:
        await db.rollback()
        print("Dry run: nothing written.")
        return True

    # Explicit ids leave PostgreSQL sequences behind
    if db.bind.dialect.name == "postgresql":
        for _, model in IMPORT_ORDER:
            table = model.__tablename__
            await db.execute(
                text(
                    f"SELECT setval(pg_get_serial_sequence('{table}', 'id'), "
                    f"COALESCE((SELECT MAX(id) FROM {table}), 0) + 1, false)"
                )
            )

    await db.commit()
    print("Import complete.")
    return True


async def import_store(data_dir: str, dry_run: bool = False) -> bool:
    """Returns False when nothing was imported."""
    path = Path(data_dir)
    missing = [f"{name}.json" for name, _ in IMPORT_ORDER if not (path / f"{name}.json").is_file()]
    if missing:
        print(f"{data_dir} is not a memory-mode data directory (missing {', '.join(missing)}).")
        return False

    store = MemoryStore(path)
    try:
        async with async_session_factory() as db:
            return await _copy(db, store, dry_run)
    finally:
        await engine.dispose()


def main() -> None:
    args = sys.argv[1:]
    dry_run = "--dry-run" in args
    args = [a for a in args if a != "--dry-run"]

    if len(args) != 1:
        print("Usage: python -m scripts.import_json_store [--dry-run] <data_dir>")
        sys.exit(1)

    print(f"=== Importing {args[0]} ===")
    if not asyncio.run(import_store(args[0], dry_run=dry_run)):
        sys.exit(1)


if __name__ == "__main__":
    main()
