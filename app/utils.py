# Utility functions for the calendar api

import hashlib
import secrets
import string
import logging
import database
from dateutil import parser
from typing import Optional
from fastapi import HTTPException
from errors import CalendarError

logger = logging.getLogger(__name__)

def generate_user_id():
    """Generate a random 8-character alphanumeric user ID"""
    return ''.join(secrets.choice(string.ascii_letters + string.digits) for _ in range(8))

def generate_api_key():
    """Generate a random API key"""
    return secrets.token_urlsafe(32)

def hash_api_key(api_key):
    """Hash an API key using SHA-256"""
    return hashlib.sha256(api_key.encode()).hexdigest()

def validate_api_key(api_key, target_user_id=None):
    """
    Validate API key and return user info and permissions

    Args:
        api_key: API key to validate
        target_user_id: Optional user ID to check permissions against

    Returns:
        tuple: (user_id, user_role, has_permission)
        - user_id: ID of the user who owns the API key
        - user_role: Role of the user ('admin' or 'user')
        - has_permission: True if user has rights over target_user_id
    """
    try:
        cursor = database.get_cursor()
        api_key_hash = hash_api_key(api_key)

        cursor.execute("SELECT id, role FROM users WHERE api_key_hash = %s", (api_key_hash,))
        result = cursor.fetchone()

        if not result:
            return None, None, False

        user_id, user_role = result

        # Check permissions
        has_permission = False
        if target_user_id is None or user_role == 'admin' or user_id == target_user_id:
            has_permission = True

        return user_id, user_role, has_permission

    except Exception as e:
        logger.error(f"Error validating API key: {e}")
        return None, None, False

def validate_user_for_action(api_key: str, for_user: Optional[str] = None):
    """
    Validates API key and permissions for a user to act on a user's calendar.

    Args:
        api_key (str): The API key of the user performing the action.
        for_user (Optional[str]): The ID of the user whose calendar is being accessed.

    Returns:
        str: The ID of the user whose calendar should be accessed.

    Raises:
        HTTPException: If validation fails.
    """
    requesting_user_id, requesting_user_role, _ = validate_api_key(api_key)

    if not requesting_user_id:
        raise HTTPException(status_code=403, detail="Invalid API key")

    if requesting_user_role == 'admin':
        if not for_user:
            raise HTTPException(status_code=400, detail="Admin must specify 'for_user' when performing this action.")
        if for_user == requesting_user_id:
            raise HTTPException(status_code=400, detail="Admin cannot perform this action on themselves.")
        return for_user

    else:  # Regular user
        if for_user and for_user != requesting_user_id:
            raise HTTPException(status_code=403, detail="Users cannot perform actions for other users.")
        return requesting_user_id

def rows_to_dicts(cursor, rows):
    """Map fetched rows to dicts keyed by the column names of the last query"""
    cols = [d[0] for d in cursor.description]
    return [dict(zip(cols, row)) for row in rows]

def to_http_exception(error: CalendarError):
    """Translate a domain error into the HTTP error returned to the client"""
    return HTTPException(status_code=error.status_code, detail=error.detail)

def validate_time_format(time_str):
    """
    Validate time format (ISO 8601) and return as datetime object

    Args:
        time_str: Time string to validate

    Returns:
        datetime: Parsed datetime object if valid, None otherwise
    """
    try:
        return parser.isoparse(time_str)
    except (ValueError, TypeError):
        logger.error(f"Invalid time format: {time_str}")
        return None
