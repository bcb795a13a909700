# Domain records handled by the recurrence engine and the event stores

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class Tag(BaseModel):
    id: Optional[int] = None
    user_id: str
    name: str


class MasterEvent(BaseModel):
    """
    A stored event row.

    Recurring masters carry a recurrence rule. Overrides carry a parent event id
    and the start of the occurrence they replace, and never recur themselves.
    """
    id: Optional[int] = None
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
    tags: List[Tag] = Field(default_factory=list)

    @property
    def is_recurring(self) -> bool:
        return bool(self.recurrence_rule)

    @property
    def is_override(self) -> bool:
        return self.parent_event_id is not None


class OccurrenceProjection(BaseModel):
    """One visible event in a query window; built per request, never stored."""
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
    tags: List[Tag] = Field(default_factory=list)

    @classmethod
    def of_event(cls, event: MasterEvent) -> "OccurrenceProjection":
        """Project a stored, non-expanded row (plain event or override) as-is."""
        return cls(**event.model_dump())


class EventPayload(BaseModel):
    """Replacement content for create and edit operations."""
    title: str
    description: Optional[str] = None
    start_datetime: datetime
    end_datetime: datetime
    recurrence_rule: Optional[str] = None
    recurrence_end_date: Optional[datetime] = None
    recurrence_count: Optional[int] = None
    tag_ids: Optional[List[int]] = None
