"""ORM models package."""
from .alert import ACTIVE_STATUSES, Alert, AlertStatus
from .base import Base
from .category import Category
from .group import Group, GroupMember
from .receiver import Receiver
from .topic import Topic
from .user import User

__all__ = [
    "ACTIVE_STATUSES",
    "Alert",
    "AlertStatus",
    "Base",
    "Category",
    "Group",
    "GroupMember",
    "Receiver",
    "Topic",
    "User",
]
