"""Post, comment and like operations.

Counts and authors are fetched one repository call at a time per post or
comment; nothing here is batched.
"""

import logging

from app.api.schemas import (
    CommentIdData,
    CommentInfo,
    CommentSummary,
    LikeIdData,
    PostDetail,
    PostIdData,
    PostPage,
    PostSummary,
)
from app.core.errors import NotFoundError
from app.core.rbac import ensure_author
from app.core.validation import validate_title
from app.models import Post, User
from app.repositories import Repositories
from app.services.images import ImageUpload, delete_image, image_url, save_image
from app.services.user import author_info

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------


async def get_post_detail(
    repos: Repositories, post_id: int, viewer: User, include_comments: bool = True
) -> PostDetail:
    post = await repos.posts.find_by_id(post_id)

    if not await repos.views.exists_by_user_id_and_post_id(viewer.id, post.id):
        await repos.views.create(viewer.id, post.id)

    try:
        author = await repos.users.find_by_id(post.author_id)
    except NotFoundError as exc:
        raise NotFoundError("Author not found") from exc

    comments = await repos.comments.find_by_post_id(post.id)
    detail = PostDetail(
        post_id=post.id,
        title=post.title,
        content=post.content,
        image_url=image_url(post.content_image_key),
        author=author_info(author),
        is_liked=await repos.likes.exists_by_user_id_and_post_id(viewer.id, post.id),
        like_count=await repos.likes.count_by_post_id(post.id),
        view_count=await repos.views.count_by_post_id(post.id),
        comment_count=len(comments),
        created_date_time=post.created_at,
    )

    if include_comments:
        detail.comments = []
        for comment in comments:
            commenter = await repos.users.find_by_id(comment.author_id)
            detail.comments.append(
                CommentInfo(
                    comment_id=comment.id,
                    content=comment.content,
                    created_date_time=comment.created_at,
                    author=author_info(commenter),
                )
            )
    return detail


async def _summarize(repos: Repositories, post: Post) -> PostSummary:
    author = await repos.users.find_by_id(post.author_id)
    return PostSummary(
        post_id=post.id,
        title=post.title,
        like_count=await repos.likes.count_by_post_id(post.id),
        comment_count=await repos.comments.count_by_post_id(post.id),
        view_count=await repos.views.count_by_post_id(post.id),
        created_date_time=post.created_at,
        author_name=author.nickname,
        profile_image_url=image_url(author.profile_image_key),
    )


async def list_posts(repos: Repositories, size: int, last_id: int | None) -> PostPage:
    page = await repos.posts.get_page(size, last_id)
    content = [await _summarize(repos, post) for post in page.items]
    return PostPage(content=content, has_next=page.has_next, last_id=page.last_id)


async def create_post(
    repos: Repositories,
    author: User,
    *,
    title: str,
    content: str,
    image: ImageUpload | None = None,
) -> PostIdData:
    title = validate_title(title)
    image_key = None
    if image:
        image_key = save_image(image)
        repos.on_rollback(delete_image, image_key)
    post = await repos.posts.create(
        title=title, content=content, content_image_key=image_key, author_id=author.id
    )
    logger.info("User %s created post %s", author.id, post.id)
    return PostIdData(post_id=post.id)


async def update_post(
    repos: Repositories,
    post_id: int,
    editor: User,
    *,
    title: str,
    content: str,
    remove_image: bool = False,
    image: ImageUpload | None = None,
) -> PostIdData:
    """Rewrite a post. A new image replaces the stored one.

    The old file is removed only once the new key is durable.
    """
    post = await repos.posts.find_by_id(post_id)
    ensure_author(post, editor)
    title = validate_title(title)

    old_key = image_key = post.content_image_key
    if image:
        image_key = save_image(image)
        repos.on_rollback(delete_image, image_key)
    elif remove_image:
        image_key = None

    updated = await repos.posts.update(post.id, title, content, image_key)
    if old_key and old_key != image_key:
        repos.on_commit(delete_image, old_key)
    return PostIdData(post_id=updated.id)


async def delete_post(repos: Repositories, post_id: int, editor: User) -> None:
    post = await repos.posts.find_by_id(post_id)
    ensure_author(post, editor)

    await repos.comments.delete_all_by_post_id(post.id)
    await repos.likes.delete_all_by_post_id(post.id)
    await repos.views.delete_all_by_post_id(post.id)
    await repos.posts.delete(post.id)

    repos.on_commit(delete_image, post.content_image_key)
    logger.info("User %s deleted post %s", editor.id, post.id)


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


async def create_comment(
    repos: Repositories, author: User, post_id: int, content: str
) -> CommentSummary:
    post = await repos.posts.find_by_id(post_id)
    comment = await repos.comments.create(content=content, author_id=author.id, post_id=post.id)
    return CommentSummary(
        comment_id=comment.id,
        content=comment.content,
        post_id=post.id,
        created_date_time=comment.created_at,
        author_name=author.nickname,
        profile_image_url=image_url(author.profile_image_key),
    )


async def update_comment(
    repos: Repositories, editor: User, comment_id: int, content: str
) -> CommentIdData:
    comment = await repos.comments.find_by_id(comment_id)
    ensure_author(comment, editor)
    updated = await repos.comments.update(comment.id, content)
    return CommentIdData(comment_id=updated.id)


async def delete_comment(repos: Repositories, editor: User, comment_id: int) -> None:
    comment = await repos.comments.find_by_id(comment_id)
    ensure_author(comment, editor)
    await repos.comments.delete(comment.id)


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------


async def like_post(repos: Repositories, user: User, post_id: int) -> LikeIdData:
    post = await repos.posts.find_by_id(post_id)
    like = await repos.likes.create(user.id, post.id)
    return LikeIdData(like_id=like.id)


async def unlike_post(repos: Repositories, user: User, post_id: int) -> None:
    post = await repos.posts.find_by_id(post_id)
    like = await repos.likes.find_by_user_id_and_post_id(user.id, post.id)
    if like is None:
        raise NotFoundError("Like not found")
    await repos.likes.delete(like.id)
