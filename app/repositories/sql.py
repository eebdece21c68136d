"""Repositories over a SQLAlchemy ``AsyncSession``.

Every call runs on the session handed in by the request, so all repository
calls of one request share the same transaction.
"""

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

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


class SqlUserRepository(UserRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def find_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def find_by_nickname(self, nickname: str) -> User | None:
        result = await self.db.execute(select(User).where(User.nickname == nickname))
        return result.scalar_one_or_none()

    async def create(
        self, email: str, nickname: str, password: str, profile_image_key: str | None
    ) -> User:
        user = User(
            email=email,
            nickname=nickname,
            password=password,
            profile_image_key=profile_image_key,
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            raise ConflictError("Email or nickname already in use") from exc
        return user

    async def update(
        self, user_id: int, nickname: str, profile_image_key: str | None
    ) -> User:
        user = await self.find_by_id(user_id)
        user.nickname = nickname
        user.profile_image_key = profile_image_key
        await self.db.flush()
        return user

    async def update_password(self, user_id: int, hashed_password: str) -> User:
        user = await self.find_by_id(user_id)
        user.password = hashed_password
        await self.db.flush()
        return user

    async def delete(self, user_id: int) -> None:
        result = await self.db.execute(delete(User).where(User.id == user_id))
        if result.rowcount == 0:
            raise NotFoundError("User not found")


class SqlPostRepository(PostRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, post_id: int) -> Post:
        post = await self.db.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post not found")
        return post

    async def find_all_by_user_id(self, user_id: int) -> list[Post]:
        result = await self.db.execute(
            select(Post).where(Post.author_id == user_id).order_by(Post.id)
        )
        return list(result.scalars().all())

    async def create(
        self, title: str, content: str, content_image_key: str | None, author_id: int
    ) -> Post:
        post = Post(
            title=title,
            content=content,
            content_image_key=content_image_key,
            author_id=author_id,
        )
        self.db.add(post)
        await self.db.flush()
        return post

    async def get_page(self, size: int, last_id: int | None) -> CursorPage:
        query = select(Post)
        if last_id is not None:
            query = query.where(Post.id < last_id)
        # one extra row tells whether another page exists
        query = query.order_by(Post.id.desc()).limit(size + 1)

        result = await self.db.execute(query)
        rows = list(result.scalars().all())
        has_next = len(rows) > size
        items = rows[:size]
        return CursorPage(
            items=items,
            has_next=has_next,
            last_id=items[-1].id if has_next else NO_MORE_POSTS,
        )

    async def update(
        self, post_id: int, title: str, content: str, content_image_key: str | None
    ) -> Post:
        post = await self.find_by_id(post_id)
        post.title = title
        post.content = content
        post.content_image_key = content_image_key
        await self.db.flush()
        return post

    async def delete(self, post_id: int) -> None:
        result = await self.db.execute(delete(Post).where(Post.id == post_id))
        if result.rowcount == 0:
            raise NotFoundError("Post not found")

    async def delete_all_by_user_id(self, user_id: int) -> int:
        result = await self.db.execute(delete(Post).where(Post.author_id == user_id))
        return result.rowcount


class SqlCommentRepository(CommentRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, comment_id: int) -> Comment:
        comment = await self.db.get(Comment, comment_id)
        if comment is None:
            raise NotFoundError("Comment not found")
        return comment

    async def find_by_user_id(self, user_id: int) -> list[Comment]:
        result = await self.db.execute(
            select(Comment).where(Comment.author_id == user_id).order_by(Comment.id)
        )
        return list(result.scalars().all())

    async def find_by_post_id(self, post_id: int) -> list[Comment]:
        result = await self.db.execute(
            select(Comment).where(Comment.post_id == post_id).order_by(Comment.id)
        )
        return list(result.scalars().all())

    async def count_by_post_id(self, post_id: int) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Comment).where(Comment.post_id == post_id)
        )
        return result.scalar() or 0

    async def create(self, content: str, author_id: int, post_id: int) -> Comment:
        comment = Comment(content=content, author_id=author_id, post_id=post_id)
        self.db.add(comment)
        await self.db.flush()
        return comment

    async def update(self, comment_id: int, content: str) -> Comment:
        comment = await self.find_by_id(comment_id)
        comment.content = content
        await self.db.flush()
        return comment

    async def delete(self, comment_id: int) -> None:
        result = await self.db.execute(delete(Comment).where(Comment.id == comment_id))
        if result.rowcount == 0:
            raise NotFoundError("Comment not found")

    async def delete_all_by_user_id(self, user_id: int) -> int:
        result = await self.db.execute(delete(Comment).where(Comment.author_id == user_id))
        return result.rowcount

    async def delete_all_by_post_id(self, post_id: int) -> int:
        result = await self.db.execute(delete(Comment).where(Comment.post_id == post_id))
        return result.rowcount


class SqlPostLikeRepository(PostLikeRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_user_id_and_post_id(self, user_id: int, post_id: int) -> PostLike | None:
        result = await self.db.execute(
            select(PostLike).where(PostLike.user_id == user_id, PostLike.post_id == post_id)
        )
        return result.scalar_one_or_none()

    async def exists_by_user_id_and_post_id(self, user_id: int, post_id: int) -> bool:
        result = await self.db.execute(
            select(func.count())
            .select_from(PostLike)
            .where(PostLike.user_id == user_id, PostLike.post_id == post_id)
        )
        return (result.scalar() or 0) > 0

    async def count_by_post_id(self, post_id: int) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(PostLike).where(PostLike.post_id == post_id)
        )
        return result.scalar() or 0

    async def create(self, user_id: int, post_id: int) -> PostLike:
        like = PostLike(user_id=user_id, post_id=post_id)
        self.db.add(like)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            raise ConflictError("Post already liked") from exc
        return like

    async def delete(self, like_id: int) -> None:
        result = await self.db.execute(delete(PostLike).where(PostLike.id == like_id))
        if result.rowcount == 0:
            raise NotFoundError("Like not found")

    async def delete_all_by_user_id(self, user_id: int) -> int:
        result = await self.db.execute(delete(PostLike).where(PostLike.user_id == user_id))
        return result.rowcount

    async def delete_all_by_post_id(self, post_id: int) -> int:
        result = await self.db.execute(delete(PostLike).where(PostLike.post_id == post_id))
        return result.rowcount


class SqlViewHistoryRepository(ViewHistoryRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def exists_by_user_id_and_post_id(self, user_id: int, post_id: int) -> bool:
        result = await self.db.execute(
            select(func.count())
            .select_from(ViewHistory)
            .where(ViewHistory.user_id == user_id, ViewHistory.post_id == post_id)
        )
        return (result.scalar() or 0) > 0

    async def count_by_post_id(self, post_id: int) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(ViewHistory).where(ViewHistory.post_id == post_id)
        )
        return result.scalar() or 0

    async def create(self, user_id: int, post_id: int) -> ViewHistory:
        # A concurrent first view of the same post may have inserted the row already
        if self.db.get_bind().dialect.name == "postgresql":
            stmt = pg_insert(ViewHistory)
        else:
            stmt = sqlite_insert(ViewHistory)
        await self.db.execute(
            stmt.values(user_id=user_id, post_id=post_id).on_conflict_do_nothing(
                index_elements=["user_id", "post_id"]
            )
        )
        result = await self.db.execute(
            select(ViewHistory).where(
                ViewHistory.user_id == user_id, ViewHistory.post_id == post_id
            )
        )
        return result.scalar_one()

    async def delete_all_by_user_id(self, user_id: int) -> int:
        result = await self.db.execute(delete(ViewHistory).where(ViewHistory.user_id == user_id))
        return result.rowcount

    async def delete_all_by_post_id(self, post_id: int) -> int:
        result = await self.db.execute(delete(ViewHistory).where(ViewHistory.post_id == post_id))
        return result.rowcount


class SqlLoginSessionRepository(LoginSessionRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_session_id(self, session_id: str) -> LoginSession:
        result = await self.db.execute(
            select(LoginSession).where(LoginSession.session_id == session_id)
        )
        session = result.scalar_one_or_none()
        if session is None:
            raise AuthenticationError("Login session not found")
        return session

    async def find_all_by_user_id(self, user_id: int) -> list[LoginSession]:
        result = await self.db.execute(
            select(LoginSession).where(LoginSession.user_id == user_id)
        )
        return list(result.scalars().all())

    async def create(self, session_id: str, user_id: int) -> LoginSession:
        session = LoginSession(session_id=session_id, user_id=user_id)
        self.db.add(session)
        await self.db.flush()
        return session

    async def delete_by_session_id(self, session_id: str) -> None:
        result = await self.db.execute(
            delete(LoginSession).where(LoginSession.session_id == session_id)
        )
        if result.rowcount == 0:
            raise NotFoundError("Login session not found")

    async def delete_all_by_user_id(self, user_id: int) -> int:
        result = await self.db.execute(
            delete(LoginSession).where(LoginSession.user_id == user_id)
        )
        return result.rowcount


def build_sql_repositories(db: AsyncSession) -> Repositories:
    return Repositories(
        users=SqlUserRepository(db),
        posts=SqlPostRepository(db),
        comments=SqlCommentRepository(db),
        likes=SqlPostLikeRepository(db),
        views=SqlViewHistoryRepository(db),
        sessions=SqlLoginSessionRepository(db),
    )
