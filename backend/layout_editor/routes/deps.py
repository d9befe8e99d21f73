"""
Shared route dependencies.
"""

import logging

from fastapi import Query

from layout_editor.core.exceptions import ConfigurationError
from layout_editor.core.room_service import RoomService, get_room_service


logger = logging.getLogger(__name__)

SESSION_ID_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9._-]{0,63}$"


def room_service() -> RoomService:
    """RoomService for the request; a missing API key surfaces as CONFIGURATION_ERROR."""
    try:
        return get_room_service()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        raise ConfigurationError(str(e)) from e


def session_id_param(
    session_id: str = Query("default", pattern=SESSION_ID_PATTERN, description="Room session to act on")
) -> str:
    return session_id
