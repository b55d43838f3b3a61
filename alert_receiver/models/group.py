"""Group and membership models."""
from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class Group(Base):
    """A group of users; receivers may name one as the pool of assignees."""

    __tablename__ = "groups"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)

    members = relationship("GroupMember", back_populates="group", cascade="all, delete-orphan")
    users = relationship("User", secondary="group_members", viewonly=True)
    receivers = relationship("Receiver", back_populates="assignee_group", cascade="all, delete-orphan")


class GroupMember(Base):
    __tablename__ = "group_members"
    __table_args__ = (UniqueConstraint("group_id", "user_id"),)

    group_id: Mapped[int] = mapped_column(ForeignKey("groups.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    group = relationship("Group", back_populates="members")
    user = relationship("User", back_populates="memberships")
