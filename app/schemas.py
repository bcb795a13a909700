from pydantic import BaseModel, field_validator
from typing import Optional, List
from datetime import datetime
from models import EventPayload


class User(BaseModel):
    id: str
    role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserCreateResponse(BaseModel):
    user_id: str
    api_key: str
    message: str


class MessageResponse(BaseModel):
    message: str


class Tag(BaseModel):
    id: int
    name: str


class TagCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Tag name is required")
        if len(value) > 100:
            raise ValueError("Tag name must be at most 100 characters")
        return value


class CalendarEventCreate(EventPayload):
    """Request body of event creation and edits, timestamps are local time"""

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Title is required")
        return value

    @field_validator("start_datetime", "end_datetime", "recurrence_end_date")
    @classmethod
    def drop_timezone(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is not None:
            return value.replace(tzinfo=None)
        return value


class CalendarEvent(BaseModel):
    id: int
    user_id: str
    title: str
    description: Optional[str] = None
    start_datetime: datetime
    end_datetime: datetime
    recurrence_rule: Optional[str] = None
    recurrence_end_date: Optional[datetime] = None
    recurrence_count: Optional[int] = None
    parent_event_id: Optional[int] = None
    original_start_datetime: Optional[datetime] = None
    excluded_dates: Optional[str] = None
    tags: List[Tag] = []
