"""
Schemas Package

This package contains the wire records exchanged with the chat backend,
organized by category: room creation and chat messages.
"""

from .base import BaseRequest, BaseResponse
from .room import CreateRoomResponse
from .message import OutgoingMessage, IncomingMessage

__all__ = [
    # Base classes
    "BaseRequest",
    "BaseResponse",
    # Room schemas
    "CreateRoomResponse",
    # Message schemas
    "OutgoingMessage",
    "IncomingMessage",
]
