"""
Connection Manager for the Room Join Connection

This module owns the persistent WebSocket connection to a chat room. It
opens the connection for a room and username, reports everything that
happens on it as a small set of events, transmits chat text, and tears
the connection down.

Architecture:
    - One background asyncio task per connection runs the handshake and
      the receive loop
    - Events are delivered to a single callback, in transport order, and
      every connection ends with exactly one terminal event
    - The WebSocket factory is injectable (for testability)

Events:
    ConnectionEstablished  the connection can carry chat text
    MessageReceived        a raw inbound frame, not yet decoded
    ConnectionClosed       the transport ended cleanly (either side)
    ConnectionFailed       the transport failed before or during use
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union
from urllib.parse import quote

import websockets
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from .config import ClientConfig
from .errors import ConnectError, SendError
from .schemas import OutgoingMessage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionEstablished:
    """The handshake completed; the connection is usable for sending."""


@dataclass(frozen=True)
class MessageReceived:
    """
    An inbound frame.

    Attributes:
        payload: Raw frame data as delivered by the transport
    """

    payload: Union[str, bytes]


@dataclass(frozen=True)
class ConnectionClosed:
    """
    The transport ended without a failure.

    Attributes:
        code: WebSocket close code, if one was exchanged
        reason: Close reason text, if any
    """

    code: Optional[int] = None
    reason: str = ""


@dataclass(frozen=True)
class ConnectionFailed:
    """
    The transport failed. The connection is gone; no close is needed.

    Attributes:
        detail: Description of the failure, for logs
    """

    detail: str


ConnectionEvent = Union[
    ConnectionEstablished, MessageReceived, ConnectionClosed, ConnectionFailed
]

EventHandler = Callable[["Connection", ConnectionEvent], None]


class ConnectionStatus(Enum):
    """Lifecycle of a single connection."""

    PENDING = "pending"
    ESTABLISHED = "established"
    CLOSED = "closed"
    FAILED = "failed"


class Connection:
    """
    Handle for one WebSocket connection to a room.

    Created by ConnectionManager.open(); the handshake runs in the
    background after construction.

    Attributes:
        room_id: Room the connection is bound to
        username: Username the connection joined as
        url: Full WebSocket URL of the join endpoint
        status: Current ConnectionStatus
    """

    def __init__(
        self,
        room_id: str,
        username: str,
        url: str,
        websocket_factory: Callable,
        on_event: EventHandler,
    ):
        self.room_id = room_id
        self.username = username
        self.url = url
        self.status = ConnectionStatus.PENDING
        self._websocket_factory = websocket_factory
        self._on_event = on_event
        self._websocket: Optional[Any] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_established(self) -> bool:
        """Check if the connection can currently send."""
        return (
            self.status == ConnectionStatus.ESTABLISHED
            and self._websocket is not None
        )

    @property
    def is_finished(self) -> bool:
        """Check if the connection has delivered its terminal event."""
        return self.status in (ConnectionStatus.CLOSED, ConnectionStatus.FAILED)

    def start(self) -> None:
        """Schedule the handshake and receive loop on the running loop."""
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def send(self, text: str) -> None:
        """
        Transmit chat text as an outbound frame.

        Does nothing if the connection is not established.

        Raises:
            SendError: If text is empty or the transport rejects the frame
        """
        if not self.is_established:
            logger.debug("Send skipped, connection to %s not established", self.room_id)
            return
        if not text:
            raise SendError("Cannot send an empty message")

        frame = OutgoingMessage(content=text).to_json()
        try:
            await self._websocket.send(frame)
        except Exception as e:
            logger.error("Failed to send to room %s: %s", self.room_id, e)
            raise SendError(f"Failed to send message: {e}")
        logger.debug("Sent frame to room %s", self.room_id)

    async def close(self) -> None:
        """
        Shut the connection down and wait for its terminal event.

        Safe to call repeatedly and after the connection already ended.
        """
        if self._task is None:
            self._finish(ConnectionClosed(reason="Closed before start"))
            return

        websocket = self._websocket
        if websocket is not None:
            try:
                await websocket.close()
            except Exception as e:
                logger.warning("Error while closing connection: %s", e)
        elif not self._task.done():
            # Still in the handshake
            self._task.cancel()

        if self._task is not asyncio.current_task():
            await asyncio.gather(self._task, return_exceptions=True)

    async def _run(self) -> None:
        logger.info("Connecting to %s...", self.url)
        try:
            websocket = await self._websocket_factory(self.url)
        except asyncio.CancelledError:
            self._finish(ConnectionClosed(reason="Cancelled while connecting"))
            raise
        except Exception as e:
            logger.error("Failed to connect to %s: %s", self.url, e)
            self._finish(ConnectionFailed(f"Could not connect to {self.url}: {e}"))
            return

        self._websocket = websocket
        self.status = ConnectionStatus.ESTABLISHED
        logger.info("Joined room %s as %s", self.room_id, self.username)
        self._emit(ConnectionEstablished())

        try:
            async for payload in websocket:
                logger.debug("Received frame: %s", payload)
                self._emit(MessageReceived(payload))
        except ConnectionClosedOK:
            pass
        except ConnectionClosedError as e:
            logger.warning("Connection to room %s lost: %s", self.room_id, e)
            self._finish(ConnectionFailed(str(e)))
            return
        except asyncio.CancelledError:
            self._finish(ConnectionClosed(reason="Receive loop cancelled"))
            raise
        except Exception as e:
            logger.error("Error in receive loop for room %s: %s", self.room_id, e)
            self._finish(ConnectionFailed(str(e)))
            return

        logger.info("Connection to room %s closed", self.room_id)
        self._finish(
            ConnectionClosed(
                code=getattr(websocket, "close_code", None),
                reason=getattr(websocket, "close_reason", None) or "",
            )
        )

    def _finish(self, event: ConnectionEvent) -> None:
        if self.is_finished:
            return
        if isinstance(event, ConnectionFailed):
            self.status = ConnectionStatus.FAILED
        else:
            self.status = ConnectionStatus.CLOSED
        self._websocket = None
        self._emit(event)

    def _emit(self, event: ConnectionEvent) -> None:
        try:
            self._on_event(self, event)
        except Exception:
            logger.exception("Connection event handler failed for %r", event)


class ConnectionManager:
    """
    Opens, uses and closes room join connections.

    Attributes:
        config: Client configuration providing the backend address
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        websocket_factory: Optional[Callable] = None,
    ):
        """
        Initialize the connection manager.

        Args:
            config: Client configuration (defaults to ClientConfig())
            websocket_factory: Optional factory for creating WebSocket
                             connections (for dependency injection/testing)
        """
        self.config = config or ClientConfig()
        self._websocket_factory = websocket_factory or websockets.connect

    def build_url(self, room_id: str, username: str) -> str:
        """
        Build the join URL for a room.

        Args:
            room_id: ID of the room to join
            username: Username to join as

        Returns:
            WebSocket URL with room id and username percent-encoded
        """
        return (
            f"{self.config.websocket_base_url}/room/{quote(room_id, safe='')}"
            f"/join?username={quote(username, safe='')}"
        )

    def open(
        self, room_id: str, username: str, on_event: EventHandler
    ) -> Connection:
        """
        Start a connection to a room.

        Returns immediately; establishment is reported through on_event.

        Args:
            room_id: ID of the room to join
            username: Username to join as
            on_event: Callback receiving (connection, event) for every event

        Returns:
            Connection handle

        Raises:
            ConnectError: If the connection cannot be started
        """
        if not room_id:
            raise ConnectError("Cannot connect without a room ID")
        if not username:
            raise ConnectError("Cannot connect without a username")

        url = self.build_url(room_id, username)
        connection = Connection(
            room_id, username, url, self._websocket_factory, on_event
        )
        try:
            connection.start()
        except RuntimeError as e:
            raise ConnectError(f"Could not start connection to {url}: {e}")
        return connection

    async def send(self, connection: Connection, text: str) -> None:
        """
        Send chat text over a connection.

        Raises:
            SendError: If text is empty or the transport fails
        """
        await connection.send(text)

    async def close(self, connection: Optional[Connection]) -> None:
        """Close a connection; a None or finished connection is ignored."""
        if connection is None:
            return
        await connection.close()
