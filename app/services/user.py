import logging

from app.api.schemas import AuthorInfo, UserIdData, UserInfo
from app.core.errors import BadRequestError, ConflictError, ForbiddenError
from app.core.security import hash_password, verify_password
from app.core.validation import decode_password, validate_new_password
from app.models import User
from app.repositories import Repositories
from app.services.images import ImageUpload, delete_image, image_url, save_image

logger = logging.getLogger(__name__)


def author_info(user: User) -> AuthorInfo:
    return AuthorInfo(
        id=user.id,
        name=user.nickname,
        profile_image_url=image_url(user.profile_image_key),
    )


def get_user_info(user: User) -> UserInfo:
    return UserInfo(
        user_id=user.id,
        email=user.email,
        nickname=user.nickname,
        profile_image_url=image_url(user.profile_image_key),
        created_date_time=user.created_at,
    )


async def update_user(
    repos: Repositories,
    user: User,
    *,
    nickname: str | None,
    remove_profile_image: bool,
    profile_image: ImageUpload | None,
) -> AuthorInfo:
    """Change nickname and/or profile image.

    Sending the current nickname again leaves it unchanged.
    """
    new_nickname = nickname or user.nickname
    if new_nickname != user.nickname:
        if await repos.users.find_by_nickname(new_nickname) is not None:
            raise ConflictError("Nickname is already taken")

    old_key = profile_image_key = user.profile_image_key
    if profile_image:
        profile_image_key = save_image(profile_image)
        repos.on_rollback(delete_image, profile_image_key)
    elif remove_profile_image:
        profile_image_key = None

    updated = await repos.users.update(user.id, new_nickname, profile_image_key)
    if old_key and old_key != profile_image_key:
        repos.on_commit(delete_image, old_key)
    return author_info(updated)


async def change_password(
    repos: Repositories,
    user: User,
    *,
    current_password: str,
    new_password: str,
    password_check: str,
) -> UserIdData:
    """All three passwords arrive base64-encoded."""
    plain_new = validate_new_password(new_password, password_check)

    if not verify_password(decode_password(current_password), user.password):
        raise ForbiddenError("Current password is incorrect")
    if verify_password(plain_new, user.password):
        raise BadRequestError("New password must differ from the current one")

    await repos.users.update_password(user.id, hash_password(plain_new))
    logger.info("User %s changed password", user.id)
    return UserIdData(user_id=user.id)
