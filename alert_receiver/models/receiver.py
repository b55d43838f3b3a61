"""Receiver model: one webhook URL and the topics it feeds."""
from sqlalchemy import JSON, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

# JSON object keys can't be null; alert groups without an alertname map here.
UNNAMED_GROUP_KEY = ""


class Receiver(Base):
    """A webhook endpoint identified by its secret token.

    ``topic_map`` maps an alertname to the id of the topic currently tracking
    that alert group. Groups without an alertname share the
    :data:`UNNAMED_GROUP_KEY` entry. The map is reassigned, not mutated in
    place, so the JSON column is flagged dirty.
    """

    __tablename__ = "alert_receivers"

    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"), nullable=False
    )
    assignee_group_id: Mapped[int | None] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"), nullable=True
    )
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    topic_map: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    category = relationship("Category", back_populates="receivers")
    assignee_group = relationship("Group", back_populates="receivers")

    @staticmethod
    def map_key(alertname: str | None) -> str:
        return UNNAMED_GROUP_KEY if alertname is None else alertname

    def topic_id_for(self, alertname: str | None) -> int | None:
        value = (self.topic_map or {}).get(self.map_key(alertname))
        return int(value) if value is not None else None

    def alertname_for(self, topic_id: int) -> str | None:
        for alertname, mapped_id in (self.topic_map or {}).items():
            if mapped_id is not None and int(mapped_id) == topic_id:
                return alertname
        return None
