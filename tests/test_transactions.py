"""Per-request transactions of the database backend, over SQLite."""

import io
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.deps import database_scope, get_repositories
from app.core.errors import ApiError
from app.db.base import Base
from app.main import app
from app.models import Comment, LoginSession, Post, User
from app.repositories import Repositories
from app.repositories.sql import SqlPostRepository, SqlUserRepository


def _png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color="blue").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def sql_client(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests run on the database backend."""

    async def _repositories() -> AsyncGenerator[Repositories, None]:
        async with database_scope(session_factory) as repos:
            yield repos

    app.dependency_overrides[get_repositories] = _repositories
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _count(session_factory: async_sessionmaker, model) -> int:
    async with session_factory() as db:
        return await db.scalar(select(func.count()).select_from(model))


async def _fail(*args, **kwargs):
    raise ApiError("Storage failure")


class TestRequestTransaction:
    @pytest.mark.asyncio
    async def test_successful_request_is_committed(
        self, sql_client: AsyncClient, session_factory, sign_up, sign_in
    ):
        await sign_up(sql_client)
        await sign_in(sql_client)
        response = await sql_client.post("/api/v1/posts", data={"title": "t", "content": "c"})

        assert response.json()["code"] == 2001
        assert await _count(session_factory, User) == 1
        assert await _count(session_factory, Post) == 1
        assert await _count(session_factory, LoginSession) == 1

    @pytest.mark.asyncio
    async def test_withdrawal_failing_midway_deletes_nothing(
        self, sql_client: AsyncClient, session_factory, sign_up, sign_in, monkeypatch
    ):
        await sign_up(sql_client)
        await sign_in(sql_client)
        created = await sql_client.post("/api/v1/posts", data={"title": "t", "content": "c"})
        post_id = created.json()["data"]["postId"]
        await sql_client.post("/api/v1/posts/comments", json={"postId": post_id, "content": "c"})

        # comments, likes, views and posts are gone by the time the user row goes
        monkeypatch.setattr(SqlUserRepository, "delete", _fail)
        response = await sql_client.delete("/api/v1/auth/withdrawal")

        assert response.status_code == 500
        assert response.json()["code"] == 5000
        assert await _count(session_factory, User) == 1
        assert await _count(session_factory, Post) == 1
        assert await _count(session_factory, Comment) == 1
        assert await _count(session_factory, LoginSession) == 1
        assert (await sql_client.get("/api/v1/users/me")).status_code == 200

    @pytest.mark.asyncio
    async def test_post_delete_failure_keeps_image(
        self, sql_client: AsyncClient, sign_up, sign_in, monkeypatch
    ):
        await sign_up(sql_client)
        await sign_in(sql_client)
        created = await sql_client.post(
            "/api/v1/posts",
            data={"title": "t", "content": "c"},
            files={"postImage": ("a.png", _png_bytes(), "image/png")},
        )
        post_id = created.json()["data"]["postId"]
        url = (await sql_client.get(f"/api/v1/posts/{post_id}")).json()["data"]["imageUrl"]
        image_path = Path(settings.upload_dir) / url.rsplit("/", 1)[1]

        monkeypatch.setattr(SqlPostRepository, "delete", _fail)
        response = await sql_client.delete(f"/api/v1/posts/{post_id}")

        assert response.status_code == 500
        assert image_path.exists()

    @pytest.mark.asyncio
    async def test_failed_profile_update_keeps_old_image_and_drops_new_one(
        self, sql_client: AsyncClient, sign_up, sign_in, monkeypatch
    ):
        await sign_up(sql_client, files={"profileImage": ("me.png", _png_bytes(), "image/png")})
        await sign_in(sql_client)
        old_url = (await sql_client.get("/api/v1/users/me")).json()["data"]["profileImageUrl"]
        upload_dir = Path(settings.upload_dir)
        before = set(upload_dir.iterdir())

        monkeypatch.setattr(SqlUserRepository, "update", _fail)
        response = await sql_client.put(
            "/api/v1/users/me",
            files={"profileImage": ("new.png", _png_bytes(), "image/png")},
        )

        assert response.status_code == 500
        assert set(upload_dir.iterdir()) == before
        monkeypatch.undo()
        me = (await sql_client.get("/api/v1/users/me")).json()["data"]
        assert me["profileImageUrl"] == old_url
