"""Receiver schemas."""
from pydantic import BaseModel


class ReceiverCreate(BaseModel):
    category_id: int
    assignee_group_id: int | None = None


class ReceiverUrlRead(BaseModel):
    success: str = "OK"
    url: str
