"""Repository contracts shared by the memory and SQL backends.

Lookups by primary key raise ``NotFoundError`` (or ``AuthenticationError``
for sessions); lookups by a secondary key return ``None`` so callers can use
them for uniqueness checks.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial

from app.models import Comment, LoginSession, Post, PostLike, User, ViewHistory

NO_MORE_POSTS = -1


@dataclass
class CursorPage:
    items: list[Post] = field(default_factory=list)
    has_next: bool = False
    last_id: int = NO_MORE_POSTS


class UserRepository(ABC):
    @abstractmethod
    async def find_by_id(self, user_id: int) -> User: ...

    @abstractmethod
    async def find_by_email(self, email: str) -> User | None: ...

    @abstractmethod
    async def find_by_nickname(self, nickname: str) -> User | None: ...

    @abstractmethod
    async def create(
        self, email: str, nickname: str, password: str, profile_image_key: str | None
    ) -> User: ...

    @abstractmethod
    async def update(
        self, user_id: int, nickname: str, profile_image_key: str | None
    ) -> User: ...

    @abstractmethod
    async def update_password(self, user_id: int, hashed_password: str) -> User: ...

    @abstractmethod
    async def delete(self, user_id: int) -> None: ...


class PostRepository(ABC):
    @abstractmethod
    async def find_by_id(self, post_id: int) -> Post: ...

    @abstractmethod
    async def find_all_by_user_id(self, user_id: int) -> list[Post]: ...

    @abstractmethod
    async def create(
        self, title: str, content: str, content_image_key: str | None, author_id: int
    ) -> Post: ...

    @abstractmethod
    async def get_page(self, size: int, last_id: int | None) -> CursorPage:
        """Posts with id below ``last_id`` (or the newest), id descending."""

    @abstractmethod
    async def update(
        self, post_id: int, title: str, content: str, content_image_key: str | None
    ) -> Post: ...

    @abstractmethod
    async def delete(self, post_id: int) -> None: ...

    @abstractmethod
    async def delete_all_by_user_id(self, user_id: int) -> int: ...


class CommentRepository(ABC):
    @abstractmethod
    async def find_by_id(self, comment_id: int) -> Comment: ...

    @abstractmethod
    async def find_by_user_id(self, user_id: int) -> list[Comment]: ...

    @abstractmethod
    async def find_by_post_id(self, post_id: int) -> list[Comment]: ...

    @abstractmethod
    async def count_by_post_id(self, post_id: int) -> int: ...

    @abstractmethod
    async def create(self, content: str, author_id: int, post_id: int) -> Comment: ...

    @abstractmethod
    async def update(self, comment_id: int, content: str) -> Comment: ...

    @abstractmethod
    async def delete(self, comment_id: int) -> None: ...

    @abstractmethod
    async def delete_all_by_user_id(self, user_id: int) -> int: ...

    @abstractmethod
    async def delete_all_by_post_id(self, post_id: int) -> int: ...


class PostLikeRepository(ABC):
    @abstractmethod
    async def find_by_user_id_and_post_id(self, user_id: int, post_id: int) -> PostLike | None: ...

    @abstractmethod
    async def exists_by_user_id_and_post_id(self, user_id: int, post_id: int) -> bool: ...

    @abstractmethod
    async def count_by_post_id(self, post_id: int) -> int: ...

    @abstractmethod
    async def create(self, user_id: int, post_id: int) -> PostLike:
        """Raises ``ConflictError`` when the user already likes the post."""

    @abstractmethod
    async def delete(self, like_id: int) -> None: ...

    @abstractmethod
    async def delete_all_by_user_id(self, user_id: int) -> int: ...

    @abstractmethod
    async def delete_all_by_post_id(self, post_id: int) -> int: ...


class ViewHistoryRepository(ABC):
    @abstractmethod
    async def exists_by_user_id_and_post_id(self, user_id: int, post_id: int) -> bool: ...

    @abstractmethod
    async def count_by_post_id(self, post_id: int) -> int: ...

    @abstractmethod
    async def create(self, user_id: int, post_id: int) -> ViewHistory:
        """Record a view; an existing (user, post) row is returned unchanged."""

    @abstractmethod
    async def delete_all_by_user_id(self, user_id: int) -> int: ...

    @abstractmethod
    async def delete_all_by_post_id(self, post_id: int) -> int: ...


class LoginSessionRepository(ABC):
    @abstractmethod
    async def find_by_session_id(self, session_id: str) -> LoginSession: ...

    @abstractmethod
    async def find_all_by_user_id(self, user_id: int) -> list[LoginSession]: ...

    @abstractmethod
    async def create(self, session_id: str, user_id: int) -> LoginSession: ...

    @abstractmethod
    async def delete_by_session_id(self, session_id: str) -> None: ...

    @abstractmethod
    async def delete_all_by_user_id(self, user_id: int) -> int: ...


@dataclass
class Repositories:
    """One repository per entity, all bound to the same backend."""

    users: UserRepository
    posts: PostRepository
    comments: CommentRepository
    likes: PostLikeRepository
    views: ViewHistoryRepository
    sessions: LoginSessionRepository
    _on_commit: list[Callable[[], None]] = field(default_factory=list, init=False, repr=False)
    _on_rollback: list[Callable[[], None]] = field(default_factory=list, init=False, repr=False)

    def on_commit(self, callback: Callable[..., None], *args) -> None:
        """Run ``callback(*args)`` once the request's writes are durable."""
        self._on_commit.append(partial(callback, *args))

    def on_rollback(self, callback: Callable[..., None], *args) -> None:
        """Run ``callback(*args)`` if the request's writes are rolled back."""
        self._on_rollback.append(partial(callback, *args))

    def finish(self, committed: bool) -> None:
        callbacks = self._on_commit if committed else self._on_rollback
        self._on_commit, self._on_rollback = [], []
        for callback in callbacks:
            callback()
