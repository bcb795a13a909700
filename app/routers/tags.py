# Tag routes: per-user labels attached to calendar events

import logging
from fastapi import APIRouter, Depends, HTTPException, Header, Response
from typing import Optional, List
import utils
import schemas
import stores
from models import Tag

logger = logging.getLogger(__name__)
router = APIRouter()

def _get_owned_tag(tag_id: int, user_id: str, tag_store) -> Tag:
    tag = tag_store.find_by_id(tag_id)
    if tag is None:
        raise HTTPException(status_code=404, detail=f"Tag not found with id: {tag_id}")
    if tag.user_id != user_id:
        raise HTTPException(status_code=403, detail="Access denied: you can only access your own tags")
    return tag

@router.get("/", response_model=List[schemas.Tag])
async def list_tags(
        for_user: Optional[str] = None,
        api_key: str = Header(..., alias="X-API-Key"),
        tag_store: stores.TagStore = Depends(stores.get_tag_store),
):
    """List the tags of the user"""
    requester_id = utils.validate_user_for_action(api_key, for_user)
    try:
        return tag_store.find_all_for_user(requester_id)
    except Exception as e:
        logger.error(f"Failed to list tags: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

@router.post("/", response_model=schemas.Tag, status_code=201)
async def create_tag(
        tag: schemas.TagCreate,
        for_user: Optional[str] = None,
        api_key: str = Header(..., alias="X-API-Key"),
        tag_store: stores.TagStore = Depends(stores.get_tag_store),
):
    """Create a tag, names are unique per user"""
    requester_id = utils.validate_user_for_action(api_key, for_user)

    if tag_store.find_by_name(requester_id, tag.name) is not None:
        raise HTTPException(status_code=400, detail=f"Tag with name '{tag.name}' already exists")

    try:
        return tag_store.save(Tag(user_id=requester_id, name=tag.name))
    except Exception as e:
        logger.error(f"Failed to create tag: {e}")
        raise HTTPException(status_code=500, detail="An error occurred while creating the tag")

@router.get("/{tag_id}", response_model=schemas.Tag)
async def get_tag(
        tag_id: int,
        for_user: Optional[str] = None,
        api_key: str = Header(..., alias="X-API-Key"),
        tag_store: stores.TagStore = Depends(stores.get_tag_store),
):
    requester_id = utils.validate_user_for_action(api_key, for_user)
    return _get_owned_tag(tag_id, requester_id, tag_store)

@router.put("/{tag_id}", response_model=schemas.Tag)
async def update_tag(
        tag_id: int,
        tag: schemas.TagCreate,
        for_user: Optional[str] = None,
        api_key: str = Header(..., alias="X-API-Key"),
        tag_store: stores.TagStore = Depends(stores.get_tag_store),
):
    """Rename a tag"""
    requester_id = utils.validate_user_for_action(api_key, for_user)
    existing = _get_owned_tag(tag_id, requester_id, tag_store)

    if existing.name != tag.name and tag_store.find_by_name(requester_id, tag.name) is not None:
        raise HTTPException(status_code=400, detail=f"Tag with name '{tag.name}' already exists")

    existing.name = tag.name
    try:
        return tag_store.save(existing)
    except Exception as e:
        logger.error(f"Failed to update tag {tag_id}: {e}")
        raise HTTPException(status_code=500, detail="An error occurred while updating the tag")

@router.delete("/{tag_id}", status_code=204)
async def delete_tag(
        tag_id: int,
        for_user: Optional[str] = None,
        api_key: str = Header(..., alias="X-API-Key"),
        tag_store: stores.TagStore = Depends(stores.get_tag_store),
):
    """Delete a tag, it is removed from every event carrying it"""
    requester_id = utils.validate_user_for_action(api_key, for_user)
    existing = _get_owned_tag(tag_id, requester_id, tag_store)

    try:
        tag_store.delete(existing)
    except Exception as e:
        logger.error(f"Failed to delete tag {tag_id}: {e}")
        raise HTTPException(status_code=500, detail="An error occurred while deleting the tag")

    return Response(status_code=204)
