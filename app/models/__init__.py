from app.models.user import User
from app.models.post import Post
from app.models.comment import Comment
from app.models.post_like import PostLike
from app.models.view_history import ViewHistory
from app.models.login_session import LoginSession

__all__ = [
    "User",
    "Post",
    "Comment",
    "PostLike",
    "ViewHistory",
    "LoginSession",
]
