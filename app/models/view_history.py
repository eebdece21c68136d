from sqlalchemy import ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class ViewHistory(Base):
    """One row per (user, post) pair; ``created_at`` is the first view time."""

    __tablename__ = "view_histories"
    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_view_histories_user_post"),
    )

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id"), nullable=False, index=True
    )
