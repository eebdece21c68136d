"""Tests for the JSON-file collections behind the memory backend."""

import json

import pytest

from app.repositories import JsonCollection, MemoryStore


class TestJsonCollection:
    def test_missing_files_are_created_empty(self, tmp_path):
        JsonCollection(tmp_path, "posts")
        assert json.loads((tmp_path / "posts.json").read_text()) == []
        assert json.loads((tmp_path / "posts_id.json").read_text()) == 0

    def test_insert_assigns_increasing_ids_and_flushes(self, tmp_path):
        posts = JsonCollection(tmp_path, "posts")
        first = posts.insert({"title": "one"})
        second = posts.insert({"title": "two"})

        assert (first["id"], second["id"]) == (1, 2)
        assert first["created_at"] == first["updated_at"]
        on_disk = json.loads((tmp_path / "posts.json").read_text())
        assert [r["title"] for r in on_disk] == ["one", "two"]
        assert json.loads((tmp_path / "posts_id.json").read_text()) == 2

    def test_ids_not_reused_after_delete(self, tmp_path):
        posts = JsonCollection(tmp_path, "posts")
        posts.insert({"title": "one"})
        last = posts.insert({"title": "two"})
        assert posts.delete(last["id"]) is True

        assert posts.insert({"title": "three"})["id"] == 3

    def test_ids_not_reused_after_reload(self, tmp_path):
        posts = JsonCollection(tmp_path, "posts")
        posts.insert({"title": "one"})
        posts.delete(1)

        reloaded = JsonCollection(tmp_path, "posts")
        assert len(reloaded) == 0
        assert reloaded.insert({"title": "two"})["id"] == 2

    def test_append_rejects_out_of_order_id(self, tmp_path):
        posts = JsonCollection(tmp_path, "posts")
        posts.append({"id": 5, "title": "five"})

        with pytest.raises(ValueError):
            posts.append({"id": 3, "title": "three"})
        with pytest.raises(ValueError):
            posts.append({"id": 5, "title": "again"})
        assert len(posts) == 1

    def test_binary_search_lookup(self, tmp_path):
        posts = JsonCollection(tmp_path, "posts")
        for record_id in (2, 4, 7, 10):
            posts.append({"id": record_id})

        assert posts.index_of(7) == 2
        assert posts.index_of(5) == -1
        assert posts.index_of(11) == -1
        assert posts.get(10) == {"id": 10}
        assert posts.get(1) is None

    def test_get_returns_a_copy(self, tmp_path):
        posts = JsonCollection(tmp_path, "posts")
        record = posts.insert({"title": "one"})
        fetched = posts.get(record["id"])
        fetched["title"] = "changed"

        assert posts.get(record["id"])["title"] == "one"

    def test_update_and_delete_where(self, tmp_path):
        likes = JsonCollection(tmp_path, "post_likes")
        likes.insert({"user_id": 1, "post_id": 1})
        likes.insert({"user_id": 2, "post_id": 1})
        likes.insert({"user_id": 1, "post_id": 2})

        assert likes.update(2, {"post_id": 3})["post_id"] == 3
        assert likes.update(99, {"post_id": 3}) is None
        assert likes.delete_where(lambda r: r["user_id"] == 1) == 2
        assert [r["id"] for r in likes.filter(lambda r: True)] == [2]
        assert likes.count(lambda r: r["post_id"] == 3) == 1

    def test_descending_before(self, tmp_path):
        posts = JsonCollection(tmp_path, "posts")
        for _ in range(5):
            posts.insert({})

        page, more = posts.descending_before(None, 2)
        assert [r["id"] for r in page] == [5, 4]
        assert more is True

        page, more = posts.descending_before(3, 5)
        assert [r["id"] for r in page] == [2, 1]
        assert more is False

        assert posts.descending_before(42, 2) is None

    def test_unsorted_file_rejected_on_load(self, tmp_path):
        records = [{"id": 2, "title": "two"}, {"id": 1, "title": "one"}]
        (tmp_path / "posts.json").write_text(json.dumps(records))

        with pytest.raises(ValueError, match="sorted by id"):
            JsonCollection(tmp_path, "posts")

    def test_duplicate_ids_rejected_on_load(self, tmp_path):
        (tmp_path / "posts.json").write_text(json.dumps([{"id": 1}, {"id": 1}]))

        with pytest.raises(ValueError):
            JsonCollection(tmp_path, "posts")


class TestMemoryStore:
    def test_creates_one_file_pair_per_entity(self, tmp_path):
        MemoryStore(tmp_path / "data")
        for name in MemoryStore.COLLECTIONS:
            assert (tmp_path / "data" / f"{name}.json").exists()
            assert (tmp_path / "data" / f"{name}_id.json").exists()

    def test_reloads_records_from_disk(self, tmp_path):
        store = MemoryStore(tmp_path)
        store.users.insert({"email": "a@b.com", "nickname": "alice"})

        reloaded = MemoryStore(tmp_path)
        assert reloaded.users.get(1)["nickname"] == "alice"
