"""Repositories over the JSON-file collections of a ``MemoryStore``."""

from app.core.errors import AuthenticationError, ConflictError, NotFoundError
from app.models import Comment, LoginSession, Post, PostLike, User, ViewHistory
from app.repositories.base import (
    NO_MORE_POSTS,
    CommentRepository,
    CursorPage,
    LoginSessionRepository,
    PostLikeRepository,
    PostRepository,
    Repositories,
    UserRepository,
    ViewHistoryRepository,
)
from app.repositories.store import JsonCollection, MemoryStore


class InMemoryUserRepository(UserRepository):
    def __init__(self, users: JsonCollection):
        self.users = users

    async def find_by_id(self, user_id: int) -> User:
        record = self.users.get(user_id)
        if record is None:
            raise NotFoundError("User not found")
        return User.from_record(record)

    # email and nickname are not sorted, so these are linear scans
    async def find_by_email(self, email: str) -> User | None:
        record = self.users.find(lambda r: r["email"] == email)
        return User.from_record(record) if record else None

    async def find_by_nickname(self, nickname: str) -> User | None:
        record = self.users.find(lambda r: r["nickname"] == nickname)
        return User.from_record(record) if record else None

    async def create(
        self, email: str, nickname: str, password: str, profile_image_key: str | None
    ) -> User:
        record = self.users.insert(
            {
                "email": email,
                "nickname": nickname,
                "password": password,
                "profile_image_key": profile_image_key,
            }
        )
        return User.from_record(record)

    async def update(
        self, user_id: int, nickname: str, profile_image_key: str | None
    ) -> User:
        record = self.users.update(
            user_id, {"nickname": nickname, "profile_image_key": profile_image_key}
        )
        if record is None:
            raise NotFoundError("User not found")
        return User.from_record(record)

    async def update_password(self, user_id: int, hashed_password: str) -> User:
        record = self.users.update(user_id, {"password": hashed_password})
        if record is None:
            raise NotFoundError("User not found")
        return User.from_record(record)

    async def delete(self, user_id: int) -> None:
        if not self.users.delete(user_id):
            raise NotFoundError("User not found")


class InMemoryPostRepository(PostRepository):
    def __init__(self, posts: JsonCollection):
        self.posts = posts

    async def find_by_id(self, post_id: int) -> Post:
        record = self.posts.get(post_id)
        if record is None:
            raise NotFoundError("Post not found")
        return Post.from_record(record)

    async def find_all_by_user_id(self, user_id: int) -> list[Post]:
        return [Post.from_record(r) for r in self.posts.filter(lambda r: r["author_id"] == user_id)]

    async def create(
        self, title: str, content: str, content_image_key: str | None, author_id: int
    ) -> Post:
        record = self.posts.insert(
            {
                "title": title,
                "content": content,
                "content_image_key": content_image_key,
                "author_id": author_id,
            }
        )
        return Post.from_record(record)

    async def get_page(self, size: int, last_id: int | None) -> CursorPage:
        result = self.posts.descending_before(last_id, size)
        if result is None:
            # cursor does not name a stored post: treated as the end of the list
            return CursorPage()
        records, has_next = result
        items = [Post.from_record(r) for r in records]
        return CursorPage(
            items=items,
            has_next=has_next,
            last_id=items[-1].id if has_next else NO_MORE_POSTS,
        )

    async def update(
        self, post_id: int, title: str, content: str, content_image_key: str | None
    ) -> Post:
        record = self.posts.update(
            post_id,
            {"title": title, "content": content, "content_image_key": content_image_key},
        )
        if record is None:
            raise NotFoundError("Post not found")
        return Post.from_record(record)

    async def delete(self, post_id: int) -> None:
        if not self.posts.delete(post_id):
            raise NotFoundError("Post not found")

    async def delete_all_by_user_id(self, user_id: int) -> int:
        return self.posts.delete_where(lambda r: r["author_id"] == user_id)


class InMemoryCommentRepository(CommentRepository):
    def __init__(self, comments: JsonCollection):
        self.comments = comments

    async def find_by_id(self, comment_id: int) -> Comment:
        record = self.comments.get(comment_id)
        if record is None:
            raise NotFoundError("Comment not found")
        return Comment.from_record(record)

    async def find_by_user_id(self, user_id: int) -> list[Comment]:
        return [
            Comment.from_record(r) for r in self.comments.filter(lambda r: r["author_id"] == user_id)
        ]

    async def find_by_post_id(self, post_id: int) -> list[Comment]:
        return [
            Comment.from_record(r) for r in self.comments.filter(lambda r: r["post_id"] == post_id)
        ]

    async def count_by_post_id(self, post_id: int) -> int:
        return self.comments.count(lambda r: r["post_id"] == post_id)

    async def create(self, content: str, author_id: int, post_id: int) -> Comment:
        record = self.comments.insert(
            {"content": content, "author_id": author_id, "post_id": post_id}
        )
        return Comment.from_record(record)

    async def update(self, comment_id: int, content: str) -> Comment:
        record = self.comments.update(comment_id, {"content": content})
        if record is None:
            raise NotFoundError("Comment not found")
        return Comment.from_record(record)

    async def delete(self, comment_id: int) -> None:
        if not self.comments.delete(comment_id):
            raise NotFoundError("Comment not found")

    async def delete_all_by_user_id(self, user_id: int) -> int:
        return self.comments.delete_where(lambda r: r["author_id"] == user_id)

    async def delete_all_by_post_id(self, post_id: int) -> int:
        return self.comments.delete_where(lambda r: r["post_id"] == post_id)


class InMemoryPostLikeRepository(PostLikeRepository):
    def __init__(self, likes: JsonCollection):
        self.likes = likes

    async def find_by_user_id_and_post_id(self, user_id: int, post_id: int) -> PostLike | None:
        record = self.likes.find(lambda r: r["user_id"] == user_id and r["post_id"] == post_id)
        return PostLike.from_record(record) if record else None

    async def exists_by_user_id_and_post_id(self, user_id: int, post_id: int) -> bool:
        return await self.find_by_user_id_and_post_id(user_id, post_id) is not None

    async def count_by_post_id(self, post_id: int) -> int:
        return self.likes.count(lambda r: r["post_id"] == post_id)

    async def create(self, user_id: int, post_id: int) -> PostLike:
        with self.likes.lock:
            if self.likes.find(lambda r: r["user_id"] == user_id and r["post_id"] == post_id):
                raise ConflictError("Post already liked")
            record = self.likes.insert({"user_id": user_id, "post_id": post_id})
        return PostLike.from_record(record)

    async def delete(self, like_id: int) -> None:
        if not self.likes.delete(like_id):
            raise NotFoundError("Like not found")

    async def delete_all_by_user_id(self, user_id: int) -> int:
        return self.likes.delete_where(lambda r: r["user_id"] == user_id)

    async def delete_all_by_post_id(self, post_id: int) -> int:
        return self.likes.delete_where(lambda r: r["post_id"] == post_id)


class InMemoryViewHistoryRepository(ViewHistoryRepository):
    def __init__(self, views: JsonCollection):
        self.views = views

    async def exists_by_user_id_and_post_id(self, user_id: int, post_id: int) -> bool:
        return self.views.find(lambda r: r["user_id"] == user_id and r["post_id"] == post_id) is not None

    async def count_by_post_id(self, post_id: int) -> int:
        return self.views.count(lambda r: r["post_id"] == post_id)

    async def create(self, user_id: int, post_id: int) -> ViewHistory:
        existing = self.views.find(lambda r: r["user_id"] == user_id and r["post_id"] == post_id)
        if existing is not None:
            return ViewHistory.from_record(existing)
        record = self.views.insert({"user_id": user_id, "post_id": post_id})
        return ViewHistory.from_record(record)

    async def delete_all_by_user_id(self, user_id: int) -> int:
        return self.views.delete_where(lambda r: r["user_id"] == user_id)

    async def delete_all_by_post_id(self, post_id: int) -> int:
        return self.views.delete_where(lambda r: r["post_id"] == post_id)


class InMemoryLoginSessionRepository(LoginSessionRepository):
    def __init__(self, sessions: JsonCollection):
        self.sessions = sessions

    async def find_by_session_id(self, session_id: str) -> LoginSession:
        record = self.sessions.find(lambda r: r["session_id"] == session_id)
        if record is None:
            raise AuthenticationError("Login session not found")
        return LoginSession.from_record(record)

    async def find_all_by_user_id(self, user_id: int) -> list[LoginSession]:
        return [
            LoginSession.from_record(r) for r in self.sessions.filter(lambda r: r["user_id"] == user_id)
        ]

    async def create(self, session_id: str, user_id: int) -> LoginSession:
        record = self.sessions.insert({"session_id": session_id, "user_id": user_id})
        return LoginSession.from_record(record)

    async def delete_by_session_id(self, session_id: str) -> None:
        if not self.sessions.delete_where(lambda r: r["session_id"] == session_id):
            raise NotFoundError("Login session not found")

    async def delete_all_by_user_id(self, user_id: int) -> int:
        return self.sessions.delete_where(lambda r: r["user_id"] == user_id)


def build_memory_repositories(store: MemoryStore) -> Repositories:
    return Repositories(
        users=InMemoryUserRepository(store.users),
        posts=InMemoryPostRepository(store.posts),
        comments=InMemoryCommentRepository(store.comments),
        likes=InMemoryPostLikeRepository(store.post_likes),
        views=InMemoryViewHistoryRepository(store.view_histories),
        sessions=InMemoryLoginSessionRepository(store.login_sessions),
    )
