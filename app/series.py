# Creating, editing and deleting events, including single occurrences of a series

import logging
import datetime
from enum import Enum
from typing import List, Optional, Tuple

import config
import occurrence_ids
import recurrence
from errors import AccessDeniedError, NotFoundError, TagResolutionError, ValidationError
from exclusions import exclude_occurrence
from models import EventPayload, MasterEvent, OccurrenceProjection, Tag

logger = logging.getLogger(__name__)


class EditScope(str, Enum):
    INSTANCE = "instance"
    SERIES = "series"
    # Default scope of edits, behaves like SERIES
    SINGLE = "single"


def _validate_payload(payload: EventPayload):
    if payload.end_datetime <= payload.start_datetime:
        raise ValidationError("End date and time must be after start date and time")
    if payload.recurrence_count is not None and payload.recurrence_count < 0:
        raise ValidationError("Recurrence count cannot be negative")


def _resolve_tags(payload: EventPayload, user_id: str, tag_store) -> List[Tag]:
    """All requested tags or an error; no tag ids means no tags."""
    if not payload.tag_ids:
        return []
    requested = set(payload.tag_ids)
    tags = tag_store.find_by_ids(list(requested), user_id)
    missing = requested - {tag.id for tag in tags}
    if missing:
        raise TagResolutionError(f"One or more tags not found: {sorted(missing)}")
    return tags


def _scan_candidates(user_id: str, event_store):
    if config.OCCURRENCE_SCAN_SCOPE == "user":
        return event_store.find_all_for_user(user_id)
    return event_store.find_all()


def _resolve_target(target_id: int, user_id: str, event_store) -> Tuple[MasterEvent, Optional[datetime.datetime]]:
    """
    Find the record an id refers to and, for occurrence ids, the start of the
    occurrence. Raises NotFoundError or AccessDeniedError.
    """
    occurrence_start = None
    resolved = occurrence_ids.resolve_occurrence_id(target_id, _scan_candidates(user_id, event_store))
    if resolved is not None:
        master_id, occurrence_start = resolved
        event = event_store.find_by_id(master_id)
        if event is None:
            raise NotFoundError("Master event not found")
    else:
        event = event_store.find_by_id(target_id)
        if event is None:
            raise NotFoundError("Event not found")

    if event.user_id != user_id:
        raise AccessDeniedError("Access denied: you can only change your own events")

    return event, occurrence_start


def create_event(payload: EventPayload, user_id: str, event_store, tag_store) -> MasterEvent:
    _validate_payload(payload)
    tags = _resolve_tags(payload, user_id, tag_store)

    event = MasterEvent(
        user_id=user_id,
        title=payload.title,
        description=payload.description,
        start_datetime=payload.start_datetime,
        end_datetime=payload.end_datetime,
        recurrence_rule=payload.recurrence_rule or None,
        recurrence_end_date=payload.recurrence_end_date,
        recurrence_count=payload.recurrence_count,
        tags=tags,
    )
    saved = event_store.save(event)
    logger.info(f"Created event {saved.id} '{saved.title}' for user {user_id}")
    return saved


def list_events(user_id: str, event_store) -> List[MasterEvent]:
    return event_store.find_all_for_user(user_id)


def query_events(user_id: str, range_start, range_end, event_store, tag_id: Optional[int] = None) -> List[OccurrenceProjection]:
    """Events of a user visible in [range_start, range_end)."""
    if range_start >= range_end:
        raise ValidationError("'start' must be before 'end'")
    return recurrence.events_in_range(event_store.find_all_for_user(user_id), range_start, range_end, tag_id)


def _split_occurrence(master: MasterEvent, occurrence_start: datetime.datetime, payload: EventPayload, tags: List[Tag], event_store) -> MasterEvent:
    """Detach one occurrence into an override and exclude it from the series."""
    exclude_occurrence(master, occurrence_start)
    override = MasterEvent(
        user_id=master.user_id,
        title=payload.title,
        description=payload.description,
        start_datetime=payload.start_datetime,
        end_datetime=payload.end_datetime,
        parent_event_id=master.id,
        original_start_datetime=occurrence_start,
        tags=tags,
    )
    with event_store.transaction():
        event_store.save(master)
        saved = event_store.save(override)
    logger.info(f"Split occurrence {occurrence_start} of event {master.id} into override {saved.id}")
    return saved


def _overwrite(event: MasterEvent, payload: EventPayload, tags: List[Tag], event_store) -> MasterEvent:
    event.title = payload.title
    event.description = payload.description
    event.start_datetime = payload.start_datetime
    event.end_datetime = payload.end_datetime
    if event.is_override:
        # Overrides stay single occurrences
        event.recurrence_rule = None
        event.recurrence_end_date = None
        event.recurrence_count = None
    else:
        event.recurrence_rule = payload.recurrence_rule or None
        event.recurrence_end_date = payload.recurrence_end_date
        event.recurrence_count = payload.recurrence_count
    event.tags = tags

    saved = event_store.save(event)
    logger.info(f"Updated event {saved.id}")
    return saved


def resolve_edit(target_id: int, payload: EventPayload, scope, user_id: str, event_store, tag_store) -> MasterEvent:
    """
    Apply an edit to an event, a series or one occurrence of a series.

    With scope "instance" and an occurrence id, the occurrence is split off: its
    start is excluded on the master and a standalone override carrying the
    payload is created and returned. Every other combination overwrites the
    addressed record in place and returns it.
    """
    scope = EditScope(scope)
    _validate_payload(payload)
    event, occurrence_start = _resolve_target(target_id, user_id, event_store)
    tags = _resolve_tags(payload, user_id, tag_store)

    if scope == EditScope.INSTANCE and occurrence_start is not None:
        return _split_occurrence(event, occurrence_start, payload, tags, event_store)
    return _overwrite(event, payload, tags, event_store)


def resolve_delete(target_id: int, scope, user_id: str, event_store):
    """
    Delete an event, a series or one occurrence of a series.

    Scope "series" removes the master and all of its overrides. Otherwise an
    occurrence or the first occurrence of a recurring master is excluded from
    the series, while overrides and plain events are deleted.
    """
    scope = EditScope(scope)
    event, occurrence_start = _resolve_target(target_id, user_id, event_store)

    if scope == EditScope.SERIES:
        with event_store.transaction():
            event_store.delete_by_parent(event)
            event_store.delete(event)
        logger.info(f"Deleted series {event.id}")
        return

    if occurrence_start is not None:
        exclude_occurrence(event, occurrence_start)
        event_store.save(event)
        logger.info(f"Excluded occurrence {occurrence_start} of event {event.id}")
    elif event.is_override:
        event_store.delete(event)
    elif event.is_recurring:
        exclude_occurrence(event, event.start_datetime)
        event_store.save(event)
        logger.info(f"Excluded first occurrence of event {event.id}")
    else:
        event_store.delete(event)
