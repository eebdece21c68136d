import logging

from app.api.schemas import AvailabilityData, SessionStatusData, UserIdData
from app.core.errors import AuthenticationError, ConflictError
from app.core.security import hash_password, open_session, resolve_session, verify_password
from app.core.validation import decode_password, validate_email, validate_nickname
from app.models import User
from app.repositories import Repositories
from app.services.images import ImageUpload, delete_image, save_image

logger = logging.getLogger(__name__)


async def ensure_email_available(repos: Repositories, email: str) -> None:
    if await repos.users.find_by_email(email) is not None:
        raise ConflictError("Email is already registered", {"isAvailable": False})


async def ensure_nickname_available(repos: Repositories, nickname: str) -> None:
    if await repos.users.find_by_nickname(nickname) is not None:
        raise ConflictError("Nickname is already taken", {"isAvailable": False})


async def signup(
    repos: Repositories,
    *,
    email: str,
    password: str,
    nickname: str,
    profile_image: ImageUpload | None = None,
) -> UserIdData:
    """Register a user. ``password`` is the already validated plain text."""
    await ensure_email_available(repos, email)
    await ensure_nickname_available(repos, nickname)

    profile_image_key = None
    if profile_image:
        profile_image_key = save_image(profile_image)
        repos.on_rollback(delete_image, profile_image_key)
    user = await repos.users.create(
        email=email,
        nickname=nickname,
        password=hash_password(password),
        profile_image_key=profile_image_key,
    )
    logger.info("User %s signed up", user.id)
    return UserIdData(user_id=user.id)


async def check_nickname(repos: Repositories, nickname: str) -> AvailabilityData:
    nickname = validate_nickname(nickname, {"isAvailable": False})
    await ensure_nickname_available(repos, nickname)
    return AvailabilityData(is_available=True)


async def check_email(repos: Repositories, email: str) -> AvailabilityData:
    email = validate_email(email, {"isAvailable": False})
    await ensure_email_available(repos, email)
    return AvailabilityData(is_available=True)


async def signin(
    repos: Repositories,
    *,
    email: str,
    encoded_password: str,
    presented_session_id: str | None,
) -> tuple[User, str]:
    """Check credentials and open a session; returns the user and the new session id.

    An unknown email and a wrong password are indistinguishable to the caller.
    """
    user = await repos.users.find_by_email(email.strip())
    if user is None or not verify_password(decode_password(encoded_password), user.password):
        raise AuthenticationError("Invalid email or password")

    session_id = await open_session(repos, user, presented_session_id)
    logger.info("User %s signed in", user.id)
    return user, session_id


async def logout(repos: Repositories, session_id: str | None) -> None:
    if not session_id:
        raise AuthenticationError("Authentication required")
    await repos.sessions.delete_by_session_id(session_id)


async def status(repos: Repositories, session_id: str | None) -> SessionStatusData:
    user = await resolve_session(repos, session_id)
    return SessionStatusData(is_logged_in=True, user_id=user.id)


async def withdraw(repos: Repositories, user: User) -> None:
    """Delete ``user`` together with everything that references them.

    Rows attached to the user's posts go first, then the user's own comments,
    likes and views, then the posts, the sessions and the user row. Image
    files are removed once the deletion is committed.
    """
    posts = await repos.posts.find_all_by_user_id(user.id)
    for post in posts:
        await repos.comments.delete_all_by_post_id(post.id)
        await repos.likes.delete_all_by_post_id(post.id)
        await repos.views.delete_all_by_post_id(post.id)

    await repos.comments.delete_all_by_user_id(user.id)
    await repos.likes.delete_all_by_user_id(user.id)
    await repos.views.delete_all_by_user_id(user.id)
    await repos.posts.delete_all_by_user_id(user.id)
    await repos.sessions.delete_all_by_user_id(user.id)
    await repos.users.delete(user.id)

    for post in posts:
        repos.on_commit(delete_image, post.content_image_key)
    repos.on_commit(delete_image, user.profile_image_key)
    logger.info("User %s withdrew (%d posts removed)", user.id, len(posts))
