import logging
import secrets

from fastapi import Depends, Request
from passlib.context import CryptContext

from app.core.config import settings
from app.core.deps import get_repositories
from app.core.errors import AuthenticationError, NotFoundError
from app.models import User
from app.repositories import Repositories

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


async def resolve_session(repos: Repositories, session_id: str | None) -> User:
    """Map a session id to its user.

    Sessions never expire; they stay valid until logout, withdrawal or the
    next login of the same user removes them.
    """
    if not session_id:
        raise AuthenticationError("Authentication required")

    session = await repos.sessions.find_by_session_id(session_id)
    try:
        return await repos.users.find_by_id(session.user_id)
    except NotFoundError as exc:
        logger.warning("Session %s points at missing user %s", session.id, session.user_id)
        raise AuthenticationError("Authentication required") from exc


async def open_session(
    repos: Repositories, user: User, presented_session_id: str | None
) -> str:
    """Create the single active session of ``user`` and return its id.

    A session id presented with the login request is dropped if it belongs
    to the same user; every other session of the user is removed as well.
    """
    if presented_session_id:
        try:
            existing = await repos.sessions.find_by_session_id(presented_session_id)
        except AuthenticationError:
            existing = None
        if existing is not None and existing.user_id == user.id:
            await repos.sessions.delete_by_session_id(presented_session_id)

    evicted = await repos.sessions.delete_all_by_user_id(user.id)
    if evicted:
        logger.info("Evicted %d previous session(s) of user %s", evicted, user.id)

    session_id = new_session_id()
    await repos.sessions.create(session_id, user.id)
    return session_id


def get_session_id(request: Request) -> str | None:
    return request.cookies.get(settings.session_cookie_name)


async def get_current_user(
    session_id: str | None = Depends(get_session_id),
    repos: Repositories = Depends(get_repositories),
) -> User:
    """FastAPI dependency: return the User behind the session cookie."""
    return await resolve_session(repos, session_id)
