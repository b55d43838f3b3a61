"""Category model."""
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class Category(Base):
    """A forum category that alert topics are created in."""

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)

    topics = relationship("Topic", back_populates="category")
    receivers = relationship("Receiver", back_populates="category", cascade="all, delete-orphan")
