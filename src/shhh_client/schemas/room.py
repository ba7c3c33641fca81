"""
Room Schema Definitions

This module defines the records exchanged by the room creation call.
"""

from dataclasses import dataclass
from typing import Any, Dict

from ..errors import DecodeError
from .base import BaseResponse


@dataclass
class CreateRoomResponse(BaseResponse):
    """
    Response body of a successful room creation.

    Attributes:
        room_id: Server-issued identifier of the new room
    """

    room_id: str

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "CreateRoomResponse":
        """Create from response body, which names the field roomId."""
        room_id = data.get("roomId")
        if not isinstance(room_id, str) or not room_id:
            raise DecodeError("Response is missing a roomId")
        return cls(room_id=room_id)
