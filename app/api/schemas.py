from datetime import datetime, timezone
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

T = TypeVar("T")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as ``YYYY-MM-DD HH:MM:SS`` in UTC.

    SQLite hands back naive datetimes; they are already UTC.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(TIMESTAMP_FORMAT)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class ApiResponse(BaseModel, Generic[T]):
    code: int
    message: str
    data: T | None = None


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class UserIdData(CamelModel):
    user_id: int


class AvailabilityData(CamelModel):
    is_available: bool


class SessionStatusData(CamelModel):
    is_logged_in: bool
    user_id: int


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserInfo(CamelModel):
    user_id: int
    email: str
    nickname: str
    profile_image_url: str | None = None
    created_date_time: datetime

    @field_serializer("created_date_time", when_used="json")
    def _format_created(self, value: datetime) -> str:
        return format_timestamp(value)


class AuthorInfo(CamelModel):
    id: int
    name: str
    profile_image_url: str | None = None


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------


class CommentInfo(CamelModel):
    comment_id: int
    content: str
    created_date_time: datetime
    author: AuthorInfo

    @field_serializer("created_date_time", when_used="json")
    def _format_created(self, value: datetime) -> str:
        return format_timestamp(value)


class PostDetail(CamelModel):
    post_id: int
    title: str
    content: str
    image_url: str | None = None
    author: AuthorInfo
    is_liked: bool
    like_count: int
    view_count: int
    comment_count: int
    created_date_time: datetime
    comments: list[CommentInfo] | None = None

    @field_serializer("created_date_time", when_used="json")
    def _format_created(self, value: datetime) -> str:
        return format_timestamp(value)


class PostSummary(CamelModel):
    post_id: int
    title: str
    like_count: int
    comment_count: int
    view_count: int
    created_date_time: datetime
    author_name: str
    profile_image_url: str | None = None

    @field_serializer("created_date_time", when_used="json")
    def _format_created(self, value: datetime) -> str:
        return format_timestamp(value)


class PostPage(CamelModel):
    content: list[PostSummary]
    has_next: bool
    last_id: int


class PostIdData(CamelModel):
    post_id: int


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


class CommentCreate(CamelModel):
    post_id: int = Field(..., ge=1)
    content: str = Field(..., min_length=1)


class CommentUpdate(CamelModel):
    comment_id: int = Field(..., ge=1)
    content: str = Field(..., min_length=1)


class CommentDelete(CamelModel):
    comment_id: int = Field(..., ge=1)


class CommentSummary(CamelModel):
    comment_id: int
    content: str
    post_id: int
    created_date_time: datetime
    author_name: str
    profile_image_url: str | None = None

    @field_serializer("created_date_time", when_used="json")
    def _format_created(self, value: datetime) -> str:
        return format_timestamp(value)


class CommentCreated(CamelModel):
    comment: CommentSummary


class CommentIdData(CamelModel):
    comment_id: int


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------


class LikeRequest(CamelModel):
    post_id: int = Field(..., ge=1)


class LikeIdData(CamelModel):
    like_id: int
