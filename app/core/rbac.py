"""Ownership checks for posts and comments."""

from app.core.errors import ForbiddenError
from app.models import Comment, Post, User


def ensure_author(resource: Post | Comment, user: User) -> None:
    """Raise ``ForbiddenError`` unless ``user`` wrote ``resource``."""
    if resource.author_id != user.id:
        kind = "post" if isinstance(resource, Post) else "comment"
        raise ForbiddenError(f"Only the author can modify this {kind}")
