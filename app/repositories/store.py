"""JSON-file backed collections for the in-memory storage backend.

Each collection is a list of dict records kept sorted by ascending ``id`` and
a separate counter holding the last id ever assigned. Both live in memory and
are rewritten to disk in full after every mutation.
"""

import json
import logging
import threading
from bisect import bisect_left
from collections.abc import Callable
from pathlib import Path
from typing import Any

from app.db.base import utcnow

logger = logging.getLogger(__name__)

Record = dict[str, Any]
Predicate = Callable[[Record], bool]


class JsonCollection:
    """An id-sorted array of records mirrored to ``<name>.json``.

    The last assigned id is stored in ``<name>_id.json`` so ids are never
    reused after a deletion. Mutations take ``self.lock``; this keeps a
    single process consistent but offers nothing across processes.
    """

    def __init__(self, data_dir: Path, name: str):
        self.name = name
        self.path = data_dir / f"{name}.json"
        self.counter_path = data_dir / f"{name}_id.json"
        self.lock = threading.RLock()
        self._records: list[Record] = self._load(self.path, [])
        self._check_order()
        self._last_id: int = self._load(self.counter_path, 0)
        if self._records:
            self._last_id = max(self._last_id, self._records[-1]["id"])

    @staticmethod
    def _load(path: Path, default: Any) -> Any:
        if not path.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(default), encoding="utf-8")
            return default
        return json.loads(path.read_text(encoding="utf-8"))

    def _check_order(self) -> None:
        ids = [record["id"] for record in self._records]
        for previous, current in zip(ids, ids[1:]):
            if current <= previous:
                raise ValueError(
                    f"{self.path}: id {current} follows id {previous}, records must be sorted by id"
                )

    def flush(self) -> None:
        self.path.write_text(json.dumps(self._records, ensure_ascii=False), encoding="utf-8")
        self.counter_path.write_text(json.dumps(self._last_id), encoding="utf-8")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._records)

    def index_of(self, record_id: int) -> int:
        """Binary search for ``record_id``; -1 when absent."""
        with self.lock:
            idx = bisect_left(self._records, record_id, key=_record_id)
            if idx < len(self._records) and self._records[idx]["id"] == record_id:
                return idx
            return -1

    def get(self, record_id: int) -> Record | None:
        with self.lock:
            idx = self.index_of(record_id)
            return dict(self._records[idx]) if idx != -1 else None

    def find(self, predicate: Predicate) -> Record | None:
        with self.lock:
            for record in self._records:
                if predicate(record):
                    return dict(record)
            return None

    def filter(self, predicate: Predicate) -> list[Record]:
        with self.lock:
            return [dict(r) for r in self._records if predicate(r)]

    def count(self, predicate: Predicate) -> int:
        with self.lock:
            return sum(1 for r in self._records if predicate(r))

    def descending_before(
        self, cursor: int | None, limit: int
    ) -> tuple[list[Record], bool] | None:
        """Return up to ``limit`` records with id below ``cursor``, newest first.

        The second element tells whether older records remain. ``None`` is
        returned when ``cursor`` is given but matches no stored record.
        """
        with self.lock:
            if cursor is None:
                end = len(self._records)
            else:
                end = self.index_of(cursor)
                if end == -1:
                    return None
            start = max(end - limit, 0)
            page = [dict(r) for r in reversed(self._records[start:end])]
            return page, start > 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, values: Record) -> Record:
        """Assign the next id, stamp timestamps, append and flush."""
        with self.lock:
            now = utcnow().isoformat()
            record = {**values, "id": self._last_id + 1, "created_at": now, "updated_at": now}
            self.append(record)
            return dict(record)

    def append(self, record: Record) -> None:
        """Append a record that already carries its id.

        Rejects ids that would break the ascending order binary search
        relies on.
        """
        with self.lock:
            record_id = record["id"]
            if self._records and record_id <= self._records[-1]["id"]:
                raise ValueError(
                    f"{self.name}: id {record_id} is not greater than "
                    f"last id {self._records[-1]['id']}"
                )
            self._records.append(dict(record))
            self._last_id = max(self._last_id, record_id)
            self.flush()

    def update(self, record_id: int, changes: Record) -> Record | None:
        with self.lock:
            idx = self.index_of(record_id)
            if idx == -1:
                return None
            record = self._records[idx]
            record.update(changes)
            record["updated_at"] = utcnow().isoformat()
            self.flush()
            return dict(record)

    def delete(self, record_id: int) -> bool:
        with self.lock:
            idx = self.index_of(record_id)
            if idx == -1:
                return False
            del self._records[idx]
            self.flush()
            return True

    def delete_where(self, predicate: Predicate) -> int:
        with self.lock:
            kept = [r for r in self._records if not predicate(r)]
            removed = len(self._records) - len(kept)
            if removed:
                self._records = kept
                self.flush()
            return removed


def _record_id(record: Record) -> int:
    return record["id"]


class MemoryStore:
    """Owns one collection per entity under a single data directory."""

    COLLECTIONS = (
        "users",
        "posts",
        "comments",
        "post_likes",
        "view_histories",
        "login_sessions",
    )

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.users = JsonCollection(self.data_dir, "users")
        self.posts = JsonCollection(self.data_dir, "posts")
        self.comments = JsonCollection(self.data_dir, "comments")
        self.post_likes = JsonCollection(self.data_dir, "post_likes")
        self.view_histories = JsonCollection(self.data_dir, "view_histories")
        self.login_sessions = JsonCollection(self.data_dir, "login_sessions")
        logger.info(
            "Memory store loaded",
            extra={
                "data_dir": str(self.data_dir),
                "counts": {name: len(getattr(self, name)) for name in self.COLLECTIONS},
            },
        )
