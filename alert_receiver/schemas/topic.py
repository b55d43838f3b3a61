"""Topic schemas."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class TopicRead(BaseModel):
    id: int
    title: str
    category_id: int | None
    closed: bool
    bumped_at: datetime
    tags: list[str]
    assigned_user_id: int | None
    assigned_group_id: int | None

    model_config = ConfigDict(from_attributes=True)


class FiringTopicsRead(BaseModel):
    count: int
    topics: list[TopicRead]
