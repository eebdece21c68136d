import re

import pytest
from httpx import AsyncClient

from app.repositories import MemoryStore

TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")


async def _create_post(ac: AsyncClient, title: str = "Hello", content: str = "World") -> int:
    response = await ac.post("/api/v1/posts", data={"title": title, "content": content})
    assert response.status_code == 200
    assert response.json()["code"] == 2001
    return response.json()["data"]["postId"]


class TestPostList:
    @pytest.mark.asyncio
    async def test_requires_login(self, client: AsyncClient):
        response = await client.get("/api/v1/posts")
        assert response.status_code == 401
        assert response.json()["code"] == 4001

    @pytest.mark.asyncio
    async def test_empty_list_is_4004_with_empty_page(self, client: AsyncClient, alice: int):
        response = await client.get("/api/v1/posts")
        assert response.status_code == 200
        assert response.json() == {
            "code": 4004,
            "message": "No posts found",
            "data": {"content": [], "hasNext": False, "lastId": -1},
        }

    @pytest.mark.asyncio
    async def test_cursor_walk(self, client: AsyncClient, alice: int):
        ids = [await _create_post(client, title=f"post {i}") for i in range(7)]

        seen: list[int] = []
        params: dict = {"size": 3}
        while True:
            body = (await client.get("/api/v1/posts", params=params)).json()
            assert body["code"] == 2000
            seen.extend(item["postId"] for item in body["data"]["content"])
            if not body["data"]["hasNext"]:
                assert body["data"]["lastId"] == -1
                break
            params["lastId"] = body["data"]["lastId"]

        assert seen == ids[::-1]

    @pytest.mark.asyncio
    async def test_summary_fields(self, client: AsyncClient, other_client: AsyncClient, alice: int, bob: int):
        post_id = await _create_post(client)
        await other_client.post("/api/v1/posts/likes", json={"postId": post_id})
        await other_client.post("/api/v1/posts/comments", json={"postId": post_id, "content": "c"})
        await other_client.get(f"/api/v1/posts/{post_id}")

        (item,) = (await client.get("/api/v1/posts")).json()["data"]["content"]
        assert item["postId"] == post_id
        assert item["authorName"] == "alice"
        assert item["profileImageUrl"] is None
        assert (item["likeCount"], item["commentCount"], item["viewCount"]) == (1, 1, 1)
        assert TIMESTAMP_RE.match(item["createdDateTime"])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [{"size": 0}, {"size": 101}, {"lastId": 0}, {"size": "x"}])
    async def test_invalid_query(self, client: AsyncClient, alice: int, params):
        response = await client.get("/api/v1/posts", params=params)
        assert response.status_code == 400
        assert response.json()["code"] == 4000


class TestPostDetail:
    @pytest.mark.asyncio
    async def test_detail_records_one_view_per_user(
        self, client: AsyncClient, alice: int, store: MemoryStore
    ):
        post_id = await _create_post(client)

        first = (await client.get(f"/api/v1/posts/{post_id}")).json()["data"]
        second = (await client.get(f"/api/v1/posts/{post_id}")).json()["data"]
        assert first["viewCount"] == 1
        assert second["viewCount"] == 1
        assert len(store.view_histories) == 1

    @pytest.mark.asyncio
    async def test_detail_shape(self, client: AsyncClient, other_client: AsyncClient, alice: int, bob: int):
        post_id = await _create_post(client, title="Title", content="Body")
        await client.post("/api/v1/posts/comments", json={"postId": post_id, "content": "mine"})
        await other_client.post("/api/v1/posts/comments", json={"postId": post_id, "content": "reply"})
        await client.post("/api/v1/posts/likes", json={"postId": post_id})

        data = (await client.get(f"/api/v1/posts/{post_id}")).json()["data"]
        assert data["postId"] == post_id
        assert (data["title"], data["content"], data["imageUrl"]) == ("Title", "Body", None)
        assert data["author"] == {"id": alice, "name": "alice", "profileImageUrl": None}
        assert data["isLiked"] is True
        assert (data["likeCount"], data["commentCount"]) == (1, 2)
        assert [c["content"] for c in data["comments"]] == ["mine", "reply"]
        assert data["comments"][1]["author"]["name"] == "bob"
        assert TIMESTAMP_RE.match(data["comments"][0]["createdDateTime"])

        other_view = (await other_client.get(f"/api/v1/posts/{post_id}")).json()["data"]
        assert other_view["isLiked"] is False
        assert other_view["viewCount"] == 2

    @pytest.mark.asyncio
    async def test_comment_flag_n_omits_comments(self, client: AsyncClient, alice: int):
        post_id = await _create_post(client)
        await client.post("/api/v1/posts/comments", json={"postId": post_id, "content": "c"})

        data = (await client.get(f"/api/v1/posts/{post_id}", params={"comment": "n"})).json()["data"]
        assert "comments" not in data
        assert data["commentCount"] == 1

    @pytest.mark.asyncio
    async def test_missing_post(self, client: AsyncClient, alice: int):
        response = await client.get("/api/v1/posts/999")
        assert response.status_code == 404
        assert response.json()["code"] == 4004

    @pytest.mark.asyncio
    async def test_bad_comment_flag(self, client: AsyncClient, alice: int):
        post_id = await _create_post(client)
        response = await client.get(f"/api/v1/posts/{post_id}", params={"comment": "maybe"})
        assert response.status_code == 400


class TestPostWrites:
    @pytest.mark.asyncio
    async def test_blank_title_rejected(self, client: AsyncClient, alice: int, store: MemoryStore):
        response = await client.post("/api/v1/posts", data={"title": "  ", "content": "x"})
        assert response.status_code == 400
        assert len(store.posts) == 0

    @pytest.mark.asyncio
    async def test_title_too_long(self, client: AsyncClient, alice: int):
        response = await client.post("/api/v1/posts", data={"title": "t" * 256, "content": "x"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_by_author(self, client: AsyncClient, alice: int):
        post_id = await _create_post(client)
        response = await client.put(
            f"/api/v1/posts/{post_id}", data={"title": "New", "content": "Text"}
        )
        assert response.json() == {"code": 2000, "message": "Post updated", "data": {"postId": post_id}}

        data = (await client.get(f"/api/v1/posts/{post_id}")).json()["data"]
        assert (data["title"], data["content"]) == ("New", "Text")

    @pytest.mark.asyncio
    async def test_update_and_delete_by_other_user_forbidden(
        self, client: AsyncClient, other_client: AsyncClient, alice: int, bob: int
    ):
        post_id = await _create_post(client)

        update = await other_client.put(
            f"/api/v1/posts/{post_id}", data={"title": "Hijack", "content": "x"}
        )
        assert update.status_code == 403
        assert update.json()["code"] == 4003

        delete = await other_client.delete(f"/api/v1/posts/{post_id}")
        assert delete.status_code == 403

    @pytest.mark.asyncio
    async def test_delete_cascades(
        self, client: AsyncClient, other_client: AsyncClient, alice: int, bob: int, store: MemoryStore
    ):
        post_id = await _create_post(client)
        keep_id = await _create_post(client, title="keep")
        for target in (post_id, keep_id):
            await other_client.post("/api/v1/posts/comments", json={"postId": target, "content": "c"})
            await other_client.post("/api/v1/posts/likes", json={"postId": target})
            await other_client.get(f"/api/v1/posts/{target}")

        response = await client.delete(f"/api/v1/posts/{post_id}")
        assert response.status_code == 204

        assert store.posts.get(post_id) is None
        for collection in (store.comments, store.post_likes, store.view_histories):
            assert collection.filter(lambda r: r["post_id"] == post_id) == []
            assert len(collection.filter(lambda r: r["post_id"] == keep_id)) == 1

        missing = await client.delete(f"/api/v1/posts/{post_id}")
        assert missing.status_code == 404


class TestComments:
    @pytest.mark.asyncio
    async def test_create_returns_comment(self, client: AsyncClient, alice: int):
        post_id = await _create_post(client)
        response = await client.post(
            "/api/v1/posts/comments", json={"postId": post_id, "content": "Nice"}
        )
        body = response.json()
        assert body["code"] == 2001
        comment = body["data"]["comment"]
        assert comment["content"] == "Nice"
        assert comment["postId"] == post_id
        assert comment["authorName"] == "alice"
        assert TIMESTAMP_RE.match(comment["createdDateTime"])

    @pytest.mark.asyncio
    async def test_comment_on_missing_post(self, client: AsyncClient, alice: int):
        response = await client.post("/api/v1/posts/comments", json={"postId": 42, "content": "?"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update_and_delete_own_comment(self, client: AsyncClient, alice: int, store: MemoryStore):
        post_id = await _create_post(client)
        created = await client.post(
            "/api/v1/posts/comments", json={"postId": post_id, "content": "draft"}
        )
        comment_id = created.json()["data"]["comment"]["commentId"]

        updated = await client.put(
            "/api/v1/posts/comments", json={"commentId": comment_id, "content": "final"}
        )
        assert updated.json()["data"] == {"commentId": comment_id}
        assert store.comments.get(comment_id)["content"] == "final"

        deleted = await client.request(
            "DELETE", "/api/v1/posts/comments", json={"commentId": comment_id}
        )
        assert deleted.status_code == 204
        assert store.comments.get(comment_id) is None

    @pytest.mark.asyncio
    async def test_other_users_comment_is_forbidden(
        self, client: AsyncClient, other_client: AsyncClient, alice: int, bob: int
    ):
        post_id = await _create_post(client)
        created = await client.post(
            "/api/v1/posts/comments", json={"postId": post_id, "content": "mine"}
        )
        comment_id = created.json()["data"]["comment"]["commentId"]

        update = await other_client.put(
            "/api/v1/posts/comments", json={"commentId": comment_id, "content": "theirs"}
        )
        assert update.status_code == 403
        delete = await other_client.request(
            "DELETE", "/api/v1/posts/comments", json={"commentId": comment_id}
        )
        assert delete.status_code == 403

    @pytest.mark.asyncio
    async def test_empty_content_rejected(self, client: AsyncClient, alice: int):
        post_id = await _create_post(client)
        response = await client.post("/api/v1/posts/comments", json={"postId": post_id, "content": ""})
        assert response.status_code == 400


class TestLikes:
    @pytest.mark.asyncio
    async def test_like_twice_conflicts(self, client: AsyncClient, alice: int, store: MemoryStore):
        post_id = await _create_post(client)

        first = await client.post("/api/v1/posts/likes", json={"postId": post_id})
        assert first.json()["code"] == 2001
        assert isinstance(first.json()["data"]["likeId"], int)

        second = await client.post("/api/v1/posts/likes", json={"postId": post_id})
        assert second.status_code == 409
        assert second.json()["code"] == 4009
        assert len(store.post_likes) == 1

    @pytest.mark.asyncio
    async def test_unlike(self, client: AsyncClient, alice: int, store: MemoryStore):
        post_id = await _create_post(client)
        await client.post("/api/v1/posts/likes", json={"postId": post_id})

        response = await client.request("DELETE", "/api/v1/posts/likes", json={"postId": post_id})
        assert response.status_code == 204
        assert len(store.post_likes) == 0

        again = await client.request("DELETE", "/api/v1/posts/likes", json={"postId": post_id})
        assert again.status_code == 404
        assert again.json()["code"] == 4004

    @pytest.mark.asyncio
    async def test_like_missing_post(self, client: AsyncClient, alice: int):
        response = await client.post("/api/v1/posts/likes", json={"postId": 77})
        assert response.status_code == 404
