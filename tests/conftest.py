import base64
import os
import tempfile
from collections.abc import AsyncGenerator, Awaitable, Callable

# Settings are read at import time, so the environment must be ready first
_TMP_ROOT = tempfile.mkdtemp(prefix="board-tests-")
os.environ["APP_STORAGE_BACKEND"] = "memory"
os.environ["APP_RATE_LIMIT_ENABLED"] = "false"
os.environ["APP_DATA_DIR"] = os.path.join(_TMP_ROOT, "data")
os.environ["APP_UPLOAD_DIR"] = os.path.join(_TMP_ROOT, "uploads")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient, Response  # noqa: E402

from app.core.deps import get_repositories, memory_scope  # noqa: E402
from app.main import app  # noqa: E402
from app.repositories import MemoryStore, Repositories, build_memory_repositories  # noqa: E402

PASSWORD = "Abc123!@"


def b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


@pytest.fixture
def store(tmp_path) -> MemoryStore:
    return MemoryStore(tmp_path / "data")


@pytest.fixture
def repos(store: MemoryStore) -> Repositories:
    return build_memory_repositories(store)


@pytest.fixture
async def client(store: MemoryStore) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client wired to the FastAPI app over a fresh memory store."""

    async def _repositories() -> AsyncGenerator[Repositories, None]:
        async with memory_scope(store) as repos:
            yield repos

    app.dependency_overrides[get_repositories] = _repositories
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def other_client(client: AsyncClient) -> AsyncGenerator[AsyncClient, None]:
    """A second client with its own cookie jar, sharing the store of ``client``."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


SignUp = Callable[..., Awaitable[Response]]
SignIn = Callable[..., Awaitable[Response]]


@pytest.fixture
def sign_up() -> SignUp:
    async def _sign_up(
        ac: AsyncClient,
        email: str = "a@b.com",
        nickname: str = "alice",
        password: str = PASSWORD,
        files: dict | None = None,
    ) -> Response:
        return await ac.post(
            "/api/v1/auth/signup",
            data={
                "email": email,
                "password": b64(password),
                "passwordChecker": b64(password),
                "nickname": nickname,
            },
            files=files,
        )

    return _sign_up


@pytest.fixture
def sign_in() -> SignIn:
    async def _sign_in(
        ac: AsyncClient, email: str = "a@b.com", password: str = PASSWORD
    ) -> Response:
        return await ac.post(
            "/api/v1/auth/signin",
            data={"email": email, "password": b64(password)},
        )

    return _sign_in


@pytest.fixture
async def alice(client: AsyncClient, sign_up: SignUp, sign_in: SignIn) -> int:
    """Sign up and log in ``client`` as alice and return the user id."""
    response = await sign_up(client)
    await sign_in(client)
    return response.json()["data"]["userId"]


@pytest.fixture
async def bob(other_client: AsyncClient, sign_up: SignUp, sign_in: SignIn) -> int:
    """Sign up and log in ``other_client`` as bob and return the user id."""
    response = await sign_up(other_client, email="bob@b.com", nickname="bob")
    await sign_in(other_client, email="bob@b.com")
    return response.json()["data"]["userId"]
