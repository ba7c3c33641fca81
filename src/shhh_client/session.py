"""
Chat Session State Machine

This module provides the ChatSession class, the single owner of the
client's room state. It validates user intents, drives room creation and
the join connection, paces outgoing text through a debounce gate, and
records inbound messages in a MessageLog.

States:
    IDLE        no connection; a room ID may or may not be known
    CREATING    a room creation call is in flight
    CONNECTING  the join connection is being established
    CONNECTED   chat text can be sent
    CLOSED      the connection ended cleanly
    ERROR       the connection failed

Only one create or join may be in flight at a time; while one is, both
are refused. Starting either one ends the current cycle first: the
pending send is dropped, the connection is closed and the log cleared.

Usage:
    session = ChatSession(ClientConfig.from_env())
    session.set_on_state_changed(render)
    await session.create_room()
    session.set_username("alice")
    await session.join_room()
    session.type_message("hi")
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, FrozenSet, Optional, Tuple, Union

from .config import ClientConfig
from .connection import (
    Connection,
    ConnectionClosed,
    ConnectionEstablished,
    ConnectionEvent,
    ConnectionFailed,
    ConnectionManager,
    MessageReceived,
)
from .debounce import schedule
from .errors import (
    ConnectError,
    DecodeError,
    InvalidTransitionError,
    RequestError,
    SendError,
    ValidationError,
)
from .message_log import ChatMessage, MessageLog
from .rooms import RoomApi
from .schemas import IncomingMessage

logger = logging.getLogger(__name__)

ROOM_ID_REQUIRED = "Room ID is required"
USERNAME_REQUIRED = "Username is required"
CONNECTION_ERROR_MESSAGE = "Connection error. Please try rejoining the room."


class ConnectionState(Enum):
    """Top-level state of a chat session."""

    IDLE = "idle"
    CREATING = "creating"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"
    ERROR = "error"


_TRANSITIONS: Dict[ConnectionState, FrozenSet[ConnectionState]] = {
    ConnectionState.IDLE: frozenset(
        {ConnectionState.CREATING, ConnectionState.CONNECTING}
    ),
    ConnectionState.CREATING: frozenset({ConnectionState.IDLE}),
    ConnectionState.CONNECTING: frozenset(
        {
            ConnectionState.CONNECTED,
            ConnectionState.CLOSED,
            ConnectionState.ERROR,
            ConnectionState.IDLE,
        }
    ),
    ConnectionState.CONNECTED: frozenset(
        {ConnectionState.CLOSED, ConnectionState.ERROR, ConnectionState.IDLE}
    ),
    ConnectionState.CLOSED: frozenset({ConnectionState.IDLE}),
    ConnectionState.ERROR: frozenset({ConnectionState.IDLE}),
}


@dataclass(frozen=True)
class SessionView:
    """
    Read-only snapshot of a session for the presentation layer.

    Attributes:
        is_loading: A create or join is in flight
        error_message: Most recent failure, empty if none
        room_id: Current room ID, empty if unset
        username: Current username, empty if unset
        can_send: Chat text would currently be transmitted
        state: Current ConnectionState
        messages: Received messages in arrival order
    """

    is_loading: bool
    error_message: str
    room_id: str
    username: str
    can_send: bool
    state: ConnectionState
    messages: Tuple[ChatMessage, ...]

    @property
    def can_edit(self) -> bool:
        """Whether the room ID and username may currently change."""
        return self.state not in (
            ConnectionState.CONNECTING,
            ConnectionState.CONNECTED,
        )

    @property
    def can_leave(self) -> bool:
        """Whether leave_room would currently do anything."""
        return self.state not in (ConnectionState.IDLE, ConnectionState.CREATING)


class ChatSession:
    """
    Client-side lifecycle of creating, joining and chatting in a room.

    Attributes:
        config: Client configuration
        messages: Log of messages received in the current cycle
        last_close: Terminal event of the most recent connection, which
                    tells a clean close apart from a failure
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        room_api: Optional[RoomApi] = None,
        connections: Optional[ConnectionManager] = None,
    ):
        """
        Initialize the session.

        Args:
            config: Client configuration (defaults to ClientConfig())
            room_api: Optional room API client (for dependency injection)
            connections: Optional connection manager (for dependency
                         injection/testing)
        """
        self.config = config or ClientConfig()
        self._room_api = room_api or RoomApi(self.config)
        self._connections = connections or ConnectionManager(self.config)

        self.messages = MessageLog()
        self.last_close: Optional[Union[ConnectionClosed, ConnectionFailed]] = None

        self._state = ConnectionState.IDLE
        self._room_id = ""
        self._username = ""
        self._error_message = ""
        self._busy = False
        self._connection: Optional[Connection] = None
        self._send_later = schedule(self._transmit, self.config.debounce_ms)
        self._on_state_changed: Optional[Callable[[SessionView], None]] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def room_id(self) -> str:
        return self._room_id

    @property
    def username(self) -> str:
        return self._username

    @property
    def error_message(self) -> str:
        return self._error_message

    @property
    def is_loading(self) -> bool:
        """Whether a create or join is in flight."""
        return self._busy

    @property
    def can_send(self) -> bool:
        """Whether typed text would currently be transmitted."""
        return (
            self._state == ConnectionState.CONNECTED
            and self._connection is not None
        )

    def view(self) -> SessionView:
        """Return a snapshot of the session for rendering."""
        return SessionView(
            is_loading=self._busy,
            error_message=self._error_message,
            room_id=self._room_id,
            username=self._username,
            can_send=self.can_send,
            state=self._state,
            messages=self.messages.messages,
        )

    def set_on_state_changed(
        self, callback: Optional[Callable[[SessionView], None]]
    ) -> None:
        """
        Register callback for session changes.

        Args:
            callback: Function that receives a SessionView after each change
        """
        self._on_state_changed = callback

    def set_room_id(self, room_id: str) -> bool:
        """
        Set the room to join.

        Returns:
            False if the session is connected or connecting and the room
            cannot change until it returns to idle
        """
        if self._is_bound():
            logger.warning("Room ID cannot change while %s", self._state.value)
            return False
        self._room_id = room_id.strip()
        self._notify()
        return True

    def set_username(self, username: str) -> bool:
        """
        Set the username to join as.

        Returns:
            False if the session is connected or connecting and the
            username cannot change until it returns to idle
        """
        if self._is_bound():
            logger.warning("Username cannot change while %s", self._state.value)
            return False
        self._username = username.strip()
        self._notify()
        return True

    async def create_room(self) -> bool:
        """
        Create a new room on the backend and remember its ID.

        Does not join the room. Failures are reported through
        error_message.

        Returns:
            True if a room was created, False if refused or failed
        """
        if self._busy:
            logger.warning("Create room ignored, another operation is in flight")
            return False

        self._busy = True
        self._error_message = ""
        await self._end_cycle()
        self._transition(ConnectionState.CREATING)
        self._notify()

        try:
            room_id = await self._room_api.create_room()
        except RequestError as e:
            self._error_message = str(e)
            return False
        else:
            self._room_id = room_id
            logger.info("Session room set to %s", room_id)
            return True
        finally:
            self._busy = False
            if self._state == ConnectionState.CREATING:
                self._transition(ConnectionState.IDLE)
            self._notify()

    async def join_room(self) -> bool:
        """
        Start joining the current room with the current username.

        Returns once the connection has been started; the session becomes
        CONNECTED when the connection reports it is established.

        Returns:
            True if a connection attempt was started, False otherwise
        """
        if self._busy:
            logger.warning("Join room ignored, another operation is in flight")
            return False

        try:
            self._validate_join()
        except ValidationError as e:
            logger.info("Join room rejected: %s", e)
            self._error_message = str(e)
            self._notify()
            return False

        self._busy = True
        self._error_message = ""
        await self._end_cycle()
        self._transition(ConnectionState.CONNECTING)

        try:
            self._connection = self._connections.open(
                self._room_id, self._username, self._on_connection_event
            )
        except ConnectError as e:
            logger.error("Failed to open connection: %s", e)
            self._error_message = str(e)
            self._busy = False
            self._transition(ConnectionState.ERROR)
            self._notify()
            return False

        self._notify()
        return True

    def send_text(self, text: str) -> None:
        """
        Queue text for sending after the debounce period.

        Each call replaces text queued by the previous one; only the last
        text of a burst is transmitted. Ignored unless connected.
        """
        if not self.can_send:
            logger.debug("Send ignored, session is %s", self._state.value)
            return
        self._send_later(text)

    def type_message(self, text: str) -> None:
        """Forward the current contents of the message input."""
        self.send_text(text)

    async def leave_room(self) -> bool:
        """
        Return to idle, closing any connection.

        The room ID and username are kept so the room can be rejoined.
        Ignored while a room is being created; the creation call owns the
        busy flag until it resolves.

        Returns:
            False if refused because a room creation is in flight
        """
        if self._state == ConnectionState.CREATING:
            logger.warning("Leave room ignored, a room is being created")
            return False
        await self._end_cycle()
        self._busy = False
        self._notify()
        return True

    async def shutdown(self) -> None:
        """Cancel pending sends, close the connection and stop notifying."""
        logger.info("Shutting down chat session")
        self._on_state_changed = None
        if self._state == ConnectionState.CREATING:
            # No connection exists yet; create_room settles the state
            return
        await self._end_cycle()
        self._busy = False

    def _validate_join(self) -> None:
        if not self._room_id:
            raise ValidationError(ROOM_ID_REQUIRED)
        if not self._username:
            raise ValidationError(USERNAME_REQUIRED)

    def _is_bound(self) -> bool:
        return self._state in (
            ConnectionState.CONNECTING,
            ConnectionState.CONNECTED,
        )

    async def _end_cycle(self) -> None:
        """Drop the pending send, close the connection and clear the log."""
        self._send_later.cancel()
        connection, self._connection = self._connection, None
        await self._connections.close(connection)
        self.messages.clear()
        self.last_close = None
        if self._state != ConnectionState.IDLE:
            self._transition(ConnectionState.IDLE)

    def _transition(self, new_state: ConnectionState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise InvalidTransitionError(
                f"Cannot move from {self._state.value} to {new_state.value}"
            )
        logger.debug("Session %s -> %s", self._state.value, new_state.value)
        self._state = new_state

    def _on_connection_event(
        self, connection: Connection, event: ConnectionEvent
    ) -> None:
        if connection is not self._connection:
            logger.debug("Ignoring %s from a stale connection", type(event).__name__)
            return

        if isinstance(event, ConnectionEstablished):
            self._busy = False
            self._transition(ConnectionState.CONNECTED)
        elif isinstance(event, MessageReceived):
            self._receive(event.payload)
        elif isinstance(event, ConnectionClosed):
            self._release_connection(event)
            self._transition(ConnectionState.CLOSED)
        elif isinstance(event, ConnectionFailed):
            logger.error("Connection failed: %s", event.detail)
            self._release_connection(event)
            self._error_message = CONNECTION_ERROR_MESSAGE
            self._transition(ConnectionState.ERROR)

        self._notify()

    def _release_connection(
        self, event: Union[ConnectionClosed, ConnectionFailed]
    ) -> None:
        self._connection = None
        self._send_later.cancel()
        self._busy = False
        self.last_close = event

    def _receive(self, payload) -> None:
        try:
            message = IncomingMessage.from_json(payload)
        except DecodeError as e:
            logger.warning("Dropping malformed frame: %s", e)
            return
        self.messages.append(message.content, username=message.username)

    async def _transmit(self, text: str) -> None:
        connection = self._connection
        if connection is None or self._state != ConnectionState.CONNECTED:
            return
        if not text:
            logger.debug("Nothing to send")
            return

        try:
            await self._connections.send(connection, text)
        except SendError as e:
            self._error_message = str(e)
            self._notify()

    def _notify(self) -> None:
        if self._on_state_changed is None:
            return
        try:
            self._on_state_changed(self.view())
        except Exception:
            logger.exception("State change callback failed")
