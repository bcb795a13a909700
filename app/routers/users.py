# User management routes

import logging
from fastapi import APIRouter, HTTPException, Header
from typing import List
import database
import utils
import schemas

logger = logging.getLogger(__name__)
router = APIRouter()

USER_COLUMNS = "id, role, created_at, updated_at"

@router.post("/", response_model=schemas.UserCreateResponse)
async def create_user(
    api_key: str = Header(..., alias="X-API-Key")
):
    """Create a new user (by admin only)"""
    user_id, user_role, _ = utils.validate_api_key(api_key)

    if not user_id or user_role != 'admin':
        raise HTTPException(status_code=403, detail="Admin access required")

    try:
        cursor = database.get_cursor()

        # Generate new user credentials
        new_user_id = utils.generate_user_id()
        new_api_key = utils.generate_api_key()
        api_key_hash = utils.hash_api_key(new_api_key)

        cursor.execute(
            "INSERT INTO users (id, api_key_hash, role) VALUES (%s, %s, 'user')",
            (new_user_id, api_key_hash)
        )
        database.get_connection().commit()

        logger.info(f"New user created: {new_user_id}")

        return {
            "user_id": new_user_id,
            "api_key": new_api_key,
            "message": "User created successfully"
        }

    except Exception as e:
        database.get_connection().rollback()
        logger.error(f"Error creating user: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

@router.get("/", response_model=List[schemas.User])
async def list_users(
    api_key: str = Header(..., alias="X-API-Key")
):
    """List all users (admin only)"""
    user_id, user_role, _ = utils.validate_api_key(api_key)

    if not user_id or user_role != 'admin':
        raise HTTPException(status_code=403, detail="Admin access required")

    try:
        cursor = database.get_cursor()
        cursor.execute(f"SELECT {USER_COLUMNS} FROM users ORDER BY created_at")
        return utils.rows_to_dicts(cursor, cursor.fetchall())

    except Exception as e:
        logger.error(f"Error listing users: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

@router.get("/{user_id}", response_model=schemas.User)
async def get_user(
    user_id: str,
    api_key: str = Header(..., alias="X-API-Key")
):
    """Get user details (admin or self only)"""
    requester_id, _, has_permission = utils.validate_api_key(api_key, user_id)

    if not requester_id or not has_permission:
        raise HTTPException(status_code=403, detail="Access denied")

    try:
        cursor = database.get_cursor()
        cursor.execute(
            f"SELECT {USER_COLUMNS} FROM users WHERE id = %s",
            (user_id,)
        )

        users = utils.rows_to_dicts(cursor, cursor.fetchall())
        if not users:
            raise HTTPException(status_code=404, detail="User not found")

        return users[0]

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting user: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

@router.delete("/{user_id}", response_model=schemas.MessageResponse)
async def delete_user(
    user_id: str,
    api_key: str = Header(..., alias="X-API-Key")
):
    """Delete user (admin or self only), their events and tags go with them"""
    requester_id, _, has_permission = utils.validate_api_key(api_key, user_id)
    if not requester_id or not has_permission:
        raise HTTPException(status_code=403, detail="Access denied")

    try:
        cursor = database.get_cursor()
        # Prevent deletion of admin users
        cursor.execute("SELECT role FROM users WHERE id = %s", (user_id,))
        result = cursor.fetchone()
        if not result:
            raise HTTPException(status_code=404, detail="User not found")
        if result[0] == 'admin':
            raise HTTPException(status_code=403, detail="Admin users cannot be deleted")

        # Delete user (cascade will handle events, tags and their links)
        cursor.execute("DELETE FROM users WHERE id = %s", (user_id,))
        database.get_connection().commit()

        logger.info(f"User deleted: {user_id}")
        return {"message": "User deleted successfully"}

    except HTTPException:
        raise
    except Exception as e:
        database.get_connection().rollback()
        logger.error(f"Error deleting user: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
