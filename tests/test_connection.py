"""
Tests for the Connection Manager

Tests for the room join connection using a fake WebSocket in place of
the transport: URL building, event delivery, sending and closing.
"""

import asyncio
import json

import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from shhh_client import (
    ClientConfig,
    ConnectError,
    ConnectionClosed,
    ConnectionEstablished,
    ConnectionFailed,
    ConnectionManager,
    ConnectionStatus,
    MessageReceived,
    SendError,
)

_END = object()


class MockWebSocket:
    """Mock WebSocket for testing."""

    def __init__(self):
        self.sent_messages = []
        self.closed = False
        self.close_code = None
        self.close_reason = ""
        self.fail_send = False
        self._incoming = asyncio.Queue()

    def feed(self, frame):
        """Queue an inbound frame, or an exception to raise."""
        self._incoming.put_nowait(frame)

    def finish(self, code=1000, reason=""):
        """End the stream as a remote close would."""
        self.close_code = code
        self.close_reason = reason
        self._incoming.put_nowait(_END)

    async def send(self, message):
        if self.fail_send:
            raise OSError("broken pipe")
        self.sent_messages.append(message)

    async def close(self):
        if not self.closed:
            self.closed = True
            self.finish(1000)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._incoming.get()
        if item is _END:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


class MockWebSocketFactory:
    """Stand-in for websockets.connect."""

    def __init__(self, websocket=None, error=None, gate=None):
        self.websocket = websocket or MockWebSocket()
        self.error = error
        self.gate = gate
        self.urls = []

    async def __call__(self, url):
        self.urls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.websocket


async def settle():
    await asyncio.sleep(0.01)


@pytest.fixture
def events():
    return []


@pytest.fixture
def record(events):
    def on_event(connection, event):
        events.append(event)

    return on_event


def make_manager(factory, backend_url="http://localhost:8000"):
    return ConnectionManager(
        ClientConfig(backend_url=backend_url), websocket_factory=factory
    )


# URL building


def test_build_url_percent_encodes_username():
    """Test that the username is percent-encoded into the query."""
    manager = make_manager(MockWebSocketFactory())
    url = manager.build_url("R1", "alice smith&co")
    assert url == "ws://localhost:8000/room/R1/join?username=alice%20smith%26co"


def test_build_url_uses_secure_scheme_for_https_backend():
    """Test that an https backend is joined over wss."""
    manager = make_manager(MockWebSocketFactory(), "https://chat.example.com")
    url = manager.build_url("R1", "bob")
    assert url == "wss://chat.example.com/room/R1/join?username=bob"


def test_open_requires_room_and_username(record):
    """Test that open refuses missing arguments."""
    manager = make_manager(MockWebSocketFactory())
    with pytest.raises(ConnectError):
        manager.open("", "alice", record)
    with pytest.raises(ConnectError):
        manager.open("R1", "", record)


def test_open_without_running_loop_fails(record):
    """Test that open reports a ConnectError outside an event loop."""
    manager = make_manager(MockWebSocketFactory())
    with pytest.raises(ConnectError):
        manager.open("R1", "alice", record)


# Event delivery


@pytest.mark.asyncio
async def test_open_establishes_and_delivers_messages_in_order(events, record):
    """Test that frames arrive in transport order after establishment."""
    factory = MockWebSocketFactory()
    manager = make_manager(factory)

    connection = manager.open("R1", "alice", record)
    assert connection.status == ConnectionStatus.PENDING

    for content in ["a", "b", "c"]:
        factory.websocket.feed(json.dumps({"content": content}))
    await settle()

    assert factory.urls == ["ws://localhost:8000/room/R1/join?username=alice"]
    assert connection.is_established
    assert isinstance(events[0], ConnectionEstablished)
    payloads = [json.loads(e.payload)["content"] for e in events[1:]]
    assert payloads == ["a", "b", "c"]

    await manager.close(connection)


@pytest.mark.asyncio
async def test_malformed_frames_are_passed_through(events, record):
    """Test that the manager does not drop frames it cannot read."""
    factory = MockWebSocketFactory()
    manager = make_manager(factory)
    connection = manager.open("R1", "alice", record)

    factory.websocket.feed("not json")
    await settle()

    assert events[-1] == MessageReceived("not json")
    assert connection.is_established
    await manager.close(connection)


@pytest.mark.asyncio
async def test_remote_close_emits_closed_once(events, record):
    """Test that a clean remote close ends with one ConnectionClosed."""
    factory = MockWebSocketFactory()
    manager = make_manager(factory)
    connection = manager.open("R1", "alice", record)
    await settle()

    factory.websocket.finish(1000, "bye")
    await settle()

    assert events[-1] == ConnectionClosed(code=1000, reason="bye")
    assert connection.status == ConnectionStatus.CLOSED
    assert not connection.is_established

    await manager.close(connection)
    await manager.close(connection)
    assert sum(isinstance(e, ConnectionClosed) for e in events) == 1


@pytest.mark.asyncio
async def test_closed_ok_exception_emits_closed(events, record):
    """Test that ConnectionClosedOK is a clean close."""
    factory = MockWebSocketFactory()
    manager = make_manager(factory)
    connection = manager.open("R1", "alice", record)
    await settle()

    factory.websocket.feed(ConnectionClosedOK(None, None))
    await settle()

    assert isinstance(events[-1], ConnectionClosed)
    assert connection.status == ConnectionStatus.CLOSED


@pytest.mark.asyncio
async def test_handshake_failure_emits_failed(events, record):
    """Test that a failed handshake ends with ConnectionFailed."""
    factory = MockWebSocketFactory(error=OSError("connection refused"))
    manager = make_manager(factory)
    connection = manager.open("R1", "alice", record)
    await settle()

    assert len(events) == 1
    assert isinstance(events[0], ConnectionFailed)
    assert "connection refused" in events[0].detail
    assert connection.status == ConnectionStatus.FAILED

    # Closing after an error is a no-op
    await manager.close(connection)
    assert len(events) == 1


@pytest.mark.asyncio
async def test_abnormal_close_emits_failed(events, record):
    """Test that losing the transport mid-session is a failure."""
    factory = MockWebSocketFactory()
    manager = make_manager(factory)
    connection = manager.open("R1", "alice", record)
    await settle()

    factory.websocket.feed(ConnectionClosedError(None, None))
    await settle()

    assert isinstance(events[-1], ConnectionFailed)
    assert connection.status == ConnectionStatus.FAILED
    assert not connection.is_established


@pytest.mark.asyncio
async def test_handler_errors_do_not_stop_delivery(events):
    """Test that a failing handler does not break the receive loop."""
    factory = MockWebSocketFactory()
    manager = make_manager(factory)

    def on_event(connection, event):
        events.append(event)
        if isinstance(event, MessageReceived) and event.payload == "bad":
            raise RuntimeError("handler bug")

    connection = manager.open("R1", "alice", on_event)
    factory.websocket.feed("bad")
    factory.websocket.feed("good")
    await settle()

    assert events[-1] == MessageReceived("good")
    await manager.close(connection)


# Sending


@pytest.mark.asyncio
async def test_send_transmits_content_frame(record):
    """Test that send writes a JSON content frame."""
    factory = MockWebSocketFactory()
    manager = make_manager(factory)
    connection = manager.open("R1", "alice", record)
    await settle()

    await manager.send(connection, "hi!")

    assert [json.loads(m) for m in factory.websocket.sent_messages] == [
        {"content": "hi!"}
    ]
    await manager.close(connection)


@pytest.mark.asyncio
async def test_send_before_established_is_noop(record):
    """Test that sending on a pending connection does nothing."""
    gate = asyncio.Event()
    factory = MockWebSocketFactory(gate=gate)
    manager = make_manager(factory)
    connection = manager.open("R1", "alice", record)
    await settle()

    await manager.send(connection, "too early")

    assert factory.websocket.sent_messages == []
    gate.set()
    await settle()
    await manager.close(connection)


@pytest.mark.asyncio
async def test_send_rejects_empty_text(record):
    """Test that empty text is a SendError."""
    factory = MockWebSocketFactory()
    manager = make_manager(factory)
    connection = manager.open("R1", "alice", record)
    await settle()

    with pytest.raises(SendError):
        await manager.send(connection, "")
    await manager.close(connection)


@pytest.mark.asyncio
async def test_send_transport_failure_raises_send_error(record):
    """Test that a transport failure while sending is a SendError."""
    factory = MockWebSocketFactory()
    manager = make_manager(factory)
    connection = manager.open("R1", "alice", record)
    await settle()

    factory.websocket.fail_send = True
    with pytest.raises(SendError, match="broken pipe"):
        await manager.send(connection, "hello")
    await manager.close(connection)


@pytest.mark.asyncio
async def test_send_after_close_is_noop(record):
    """Test that sending on a closed connection does nothing."""
    factory = MockWebSocketFactory()
    manager = make_manager(factory)
    connection = manager.open("R1", "alice", record)
    await settle()
    await manager.close(connection)

    await manager.send(connection, "late")

    assert factory.websocket.sent_messages == []


# Closing


@pytest.mark.asyncio
async def test_local_close_is_idempotent(events, record):
    """Test that closing repeatedly yields one terminal event."""
    factory = MockWebSocketFactory()
    manager = make_manager(factory)
    connection = manager.open("R1", "alice", record)
    await settle()

    await manager.close(connection)
    await manager.close(connection)
    await manager.close(None)

    assert factory.websocket.closed
    assert connection.status == ConnectionStatus.CLOSED
    terminal = [e for e in events if isinstance(e, (ConnectionClosed, ConnectionFailed))]
    assert terminal == [ConnectionClosed(code=1000, reason="")]


@pytest.mark.asyncio
async def test_close_during_handshake_cancels_it(events, record):
    """Test that closing a pending connection abandons the handshake."""
    gate = asyncio.Event()
    factory = MockWebSocketFactory(gate=gate)
    manager = make_manager(factory)
    connection = manager.open("R1", "alice", record)
    await settle()

    await manager.close(connection)

    assert connection.status == ConnectionStatus.CLOSED
    assert len(events) == 1
    assert isinstance(events[0], ConnectionClosed)
    assert not factory.websocket.closed
