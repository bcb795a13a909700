# Calendar route of the API: events, recurring series and their occurrences

import logging
from fastapi import APIRouter, Depends, HTTPException, Header, Response
from typing import Optional, List
import utils
import schemas
import series
import stores
from errors import CalendarError
from series import EditScope

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/", response_model=schemas.CalendarEvent, status_code=201)
async def create_event(
        event: schemas.CalendarEventCreate,
        for_user: Optional[str] = None, # Let admin create events for other users
        api_key: str = Header(..., alias="X-API-Key"),
        event_store: stores.EventStore = Depends(stores.get_event_store),
        tag_store: stores.TagStore = Depends(stores.get_tag_store),
):
    """Create a new, possibly recurring, calendar event"""
    target_user_id = utils.validate_user_for_action(api_key, for_user)

    try:
        return series.create_event(event, target_user_id, event_store, tag_store)
    except CalendarError as e:
        raise utils.to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to create calendar event: {str(e)}")
        raise HTTPException(status_code=500, detail="An error occurred while creating the event")

@router.get("/", response_model=List[schemas.CalendarEvent])
async def query_events(
        start: str,
        end: str,
        tag_id: Optional[int] = None,
        for_user: Optional[str] = None,
        api_key: str = Header(..., alias="X-API-Key"),
        event_store: stores.EventStore = Depends(stores.get_event_store),
):
    """Events visible in the window [start, end), recurring events expanded into occurrences"""
    requester_id = utils.validate_user_for_action(api_key, for_user)

    start_dt = utils.validate_time_format(start)
    if start_dt is None:
        raise HTTPException(status_code=400, detail="Invalid start time format")
    end_dt = utils.validate_time_format(end)
    if end_dt is None:
        raise HTTPException(status_code=400, detail="Invalid end time format")

    try:
        results = series.query_events(
            requester_id, start_dt.replace(tzinfo=None), end_dt.replace(tzinfo=None), event_store, tag_id
        )
        logger.info(f"Found {len(results)} events for user {requester_id}")
        return results
    except CalendarError as e:
        raise utils.to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to query calendar events: {str(e)}")
        raise HTTPException(status_code=500, detail="An error occurred while fetching events")

@router.get("/all", response_model=List[schemas.CalendarEvent])
async def list_events(
        for_user: Optional[str] = None,
        api_key: str = Header(..., alias="X-API-Key"),
        event_store: stores.EventStore = Depends(stores.get_event_store),
):
    """All stored events of the user, series masters and overrides unexpanded"""
    requester_id = utils.validate_user_for_action(api_key, for_user)

    try:
        return series.list_events(requester_id, event_store)
    except Exception as e:
        logger.error(f"Failed to list calendar events: {str(e)}")
        raise HTTPException(status_code=500, detail="An error occurred while fetching events")

@router.get("/{event_id}", response_model=schemas.CalendarEvent)
async def get_event(
        event_id: int,
        for_user: Optional[str] = None,
        api_key: str = Header(..., alias="X-API-Key"),
        event_store: stores.EventStore = Depends(stores.get_event_store),
):
    """Get a single stored calendar event"""
    requester_id = utils.validate_user_for_action(api_key, for_user)

    try:
        event = event_store.find_by_id(event_id)
    except Exception as e:
        logger.error(f"Failed to retrieve calendar event {event_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to retrieve calendar event {event_id}")

    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    if event.user_id != requester_id:
        raise HTTPException(status_code=403, detail="Access denied")
    return event

@router.put("/{event_id}", response_model=schemas.CalendarEvent)
async def update_event(
        event_id: int,
        event: schemas.CalendarEventCreate,
        scope: EditScope = EditScope.SINGLE,
        for_user: Optional[str] = None,
        api_key: str = Header(..., alias="X-API-Key"),
        event_store: stores.EventStore = Depends(stores.get_event_store),
        tag_store: stores.TagStore = Depends(stores.get_tag_store),
):
    """
    Update an event. For occurrences of a recurring event, scope "instance"
    detaches the occurrence into its own event, other scopes edit the series.
    """
    requester_id = utils.validate_user_for_action(api_key, for_user)

    try:
        return series.resolve_edit(event_id, event, scope, requester_id, event_store, tag_store)
    except CalendarError as e:
        logger.warning(f"Rejected update of event {event_id}: {e.detail}")
        raise utils.to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to update calendar event {event_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="An error occurred while updating the event")

@router.delete("/{event_id}", status_code=204)
async def delete_event(
        event_id: int,
        scope: EditScope = EditScope.INSTANCE,
        for_user: Optional[str] = None,
        api_key: str = Header(..., alias="X-API-Key"),
        event_store: stores.EventStore = Depends(stores.get_event_store),
):
    """Delete an event, one occurrence of a recurring event, or (scope "series") the whole series"""
    requester_id = utils.validate_user_for_action(api_key, for_user)

    try:
        series.resolve_delete(event_id, scope, requester_id, event_store)
    except CalendarError as e:
        logger.warning(f"Rejected deletion of event {event_id}: {e.detail}")
        raise utils.to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to delete calendar event {event_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="An error occurred while deleting the event")

    return Response(status_code=204)
