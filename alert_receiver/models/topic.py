"""Topic model."""
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from alert_receiver.utils.time import utcnow

from .base import Base


class Topic(Base):
    """A forum topic tracking one alert group.

    ``raw`` is the body of the first post. ``base_title``, ``topic_body`` and
    ``previous_topic_id`` hold what the topic was created from so revisions can
    rebuild title and body without the original payload.
    """

    __tablename__ = "topics"
    __table_args__ = (Index("ix_topics_category_closed", "category_id", "closed"),)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    raw: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category_id: Mapped[int | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    closed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    bumped_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    tags: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    base_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    topic_body: Mapped[str | None] = mapped_column(Text, nullable=True)
    previous_topic_id: Mapped[int | None] = mapped_column(nullable=True)

    assigned_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    assigned_group_id: Mapped[int | None] = mapped_column(
        ForeignKey("groups.id", ondelete="SET NULL"), nullable=True
    )

    category = relationship("Category", back_populates="topics")
    alerts = relationship(
        "Alert", back_populates="topic", cascade="all, delete-orphan", passive_deletes=True
    )
    assigned_user = relationship("User")
    assigned_group = relationship("Group")

    @property
    def is_assigned(self) -> bool:
        return self.assigned_user_id is not None or self.assigned_group_id is not None
