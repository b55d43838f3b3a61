"""Alert model."""
import enum
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class AlertStatus(str, enum.Enum):
    firing = "firing"
    resolved = "resolved"
    suppressed = "suppressed"
    stale = "stale"


# An alert stays the "same" alert, and keeps its row, while in one of these states.
ACTIVE_STATUSES = (AlertStatus.firing.value, AlertStatus.suppressed.value)

_ACTIVE_WHERE = text("status IN ('firing', 'suppressed')")


class Alert(Base):
    """One alert instance attached to the topic of its alert group."""

    __tablename__ = "alert_receiver_alerts"
    __table_args__ = (
        Index(
            "uq_alert_receiver_alerts_active",
            "topic_id",
            "external_url",
            "identifier",
            unique=True,
            sqlite_where=_ACTIVE_WHERE,
            postgresql_where=_ACTIVE_WHERE,
        ),
        Index("ix_alert_receiver_alerts_topic_status", "topic_id", "status"),
        Index("ix_alert_receiver_alerts_external_url_status", "external_url", "status"),
    )

    topic_id: Mapped[int] = mapped_column(ForeignKey("topics.id", ondelete="CASCADE"), nullable=False)
    external_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    identifier: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    alertname: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    datacenter: Mapped[str | None] = mapped_column(String(255), nullable=True)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    generator_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    link_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    link_text: Mapped[str | None] = mapped_column(String(255), nullable=True)

    topic = relationship("Topic", back_populates="alerts")
