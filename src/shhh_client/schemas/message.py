"""
Message Schema Definitions

This module defines the frames carried by the room join connection:
outbound chat text and inbound chat messages.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..errors import DecodeError
from .base import BaseRequest, BaseResponse


@dataclass
class OutgoingMessage(BaseRequest):
    """
    Frame sent to the room.

    Attributes:
        content: The message text
    """

    content: str


@dataclass
class IncomingMessage(BaseResponse):
    """
    Frame received from the room.

    Attributes:
        content: The message text
        username: Sender, when the backend includes it
    """

    content: str
    username: Optional[str] = None

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "IncomingMessage":
        """Create from frame data; content must be a string."""
        content = data.get("content")
        if not isinstance(content, str):
            raise DecodeError("Frame has no string content")

        username = data.get("username")
        if username is not None and not isinstance(username, str):
            username = str(username)

        return cls(content=content, username=username or None)
