"""
Shhh Chat Client Package

This package provides the client side of the Shhh chat system: creating
rooms over HTTP, joining them over a WebSocket connection, and exchanging
messages with the other participants.

Modules:
    - session: ChatSession state machine driving the whole client
    - connection: ConnectionManager for the room join connection
    - rooms: RoomApi for the room creation call
    - message_log: MessageLog of received messages
    - debounce: Debouncer for pacing outgoing text
    - schemas: wire records exchanged with the backend
"""

from .config import ClientConfig
from .errors import (
    ChatClientError,
    ValidationError,
    RequestError,
    ConnectError,
    TransportError,
    SendError,
    DecodeError,
    InvalidTransitionError,
)
from .debounce import Debouncer, schedule
from .message_log import ChatMessage, MessageLog
from .connection import (
    Connection,
    ConnectionManager,
    ConnectionStatus,
    ConnectionEstablished,
    MessageReceived,
    ConnectionClosed,
    ConnectionFailed,
)
from .rooms import RoomApi
from .session import ChatSession, ConnectionState, SessionView
from .schemas import CreateRoomResponse, OutgoingMessage, IncomingMessage

__all__ = [
    # Session
    "ChatSession",
    "ConnectionState",
    "SessionView",
    # Collaborators
    "ClientConfig",
    "ConnectionManager",
    "Connection",
    "ConnectionStatus",
    "RoomApi",
    "MessageLog",
    "ChatMessage",
    "Debouncer",
    "schedule",
    # Connection events
    "ConnectionEstablished",
    "MessageReceived",
    "ConnectionClosed",
    "ConnectionFailed",
    # Schemas
    "CreateRoomResponse",
    "OutgoingMessage",
    "IncomingMessage",
    # Errors
    "ChatClientError",
    "ValidationError",
    "RequestError",
    "ConnectError",
    "TransportError",
    "SendError",
    "DecodeError",
    "InvalidTransitionError",
]
