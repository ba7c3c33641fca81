"""
Chat Application UI

Terminal front end for the chat session, built using the Textual
framework. The app keeps no chat state of its own: it renders the
session's SessionView and forwards button presses and keystrokes to the
session.
"""

import logging
from typing import List, Optional

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, ScrollableContainer, Vertical
from textual.css.query import NoMatches
from textual.widgets import Button, Footer, Header, Input, Label, Static

from ..config import ClientConfig
from ..session import ChatSession, ConnectionState, SessionView

logger = logging.getLogger(__name__)


class MessageDisplay(Static):
    """Widget for displaying a single chat message."""

    def __init__(self, message_content: str, username: Optional[str] = None) -> None:
        """Initialize message display."""
        super().__init__()
        self.msg_username = username
        self.msg_content = message_content

    def compose(self) -> ComposeResult:
        """Compose the message display."""
        text = escape(self.msg_content)
        if self.msg_username:
            text = f"[bold cyan]{escape(self.msg_username)}[/]\n{text}"
        yield Static(text, classes="message-content")


class ChatApp(App):
    """Main chat application."""

    CSS = """
    Screen {
        layout: vertical;
    }

    .screen-title {
        text-align: center;
        padding: 1 0;
        text-style: bold;
    }

    #room-form {
        height: auto;
        padding: 0 1;
    }

    #room-form Input {
        margin: 0 0 1 0;
    }

    .button-row {
        height: 3;
    }

    .button-row Button {
        margin: 0 1 0 0;
    }

    #error-line {
        color: red;
        padding: 0 1;
    }

    #room-status {
        padding: 0 1;
    }

    #messages-container {
        height: 1fr;
        padding: 1;
    }

    #empty-placeholder {
        text-align: center;
        text-style: italic;
    }

    MessageDisplay {
        padding: 0 0 1 0;
    }

    .message-content {
        padding: 0 1;
    }

    #message-input {
        margin: 0 1;
    }

    .hidden {
        display: none;
    }
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit", show=True),
        Binding("escape", "leave_room", "Leave", show=True),
    ]

    def __init__(
        self,
        session: Optional[ChatSession] = None,
        config: Optional[ClientConfig] = None,
    ) -> None:
        """Initialize the chat application."""
        super().__init__()
        self.session = session or ChatSession(config)
        self._rendered_ids: List[str] = []

    def compose(self) -> ComposeResult:
        """Compose the single chat screen."""
        yield Header()
        yield Static("[bold blue]Shhh[/]", classes="screen-title")
        with Vertical(id="room-form"):
            yield Label("Room ID:")
            yield Input(placeholder="Create a room or paste its ID...", id="room-id-input")
            yield Label("Username:")
            yield Input(placeholder="Enter your username...", id="username-input")
            with Horizontal(classes="button-row"):
                yield Button("Create New Chat", id="create-btn", variant="primary")
                yield Button("Join", id="join-btn", variant="success")
                yield Button("Leave", id="leave-btn", variant="warning")
        yield Static("", id="error-line")
        yield Static("", id="room-status")
        with ScrollableContainer(id="messages-container"):
            yield Static("No messages yet", id="empty-placeholder")
        yield Input(placeholder="Type a message...", id="message-input", disabled=True)
        yield Footer()

    async def on_mount(self) -> None:
        """Start rendering session changes."""
        self.session.set_on_state_changed(self._on_session_changed)
        await self._render_view(self.session.view())

    async def on_unmount(self) -> None:
        """Close the connection when the app exits."""
        await self.session.shutdown()

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        """Forward button presses to the session."""
        button_id = event.button.id
        if button_id == "create-btn":
            created = await self.session.create_room()
            if created:
                self.query_one("#room-id-input", Input).value = self.session.room_id
        elif button_id == "join-btn":
            await self.session.join_room()
        elif button_id == "leave-btn":
            await self.session.leave_room()

    def on_input_changed(self, event: Input.Changed) -> None:
        """Forward input edits to the session."""
        input_id = event.input.id
        if input_id == "room-id-input":
            if event.value.strip() != self.session.room_id:
                self.session.set_room_id(event.value)
        elif input_id == "username-input":
            self.session.set_username(event.value)
        elif input_id == "message-input":
            self.session.type_message(event.value)

    def action_leave_room(self) -> None:
        """Handle leave action."""
        self.run_worker(self.session.leave_room(), exclusive=True)

    def _on_session_changed(self, view: SessionView) -> None:
        """Callback when the session changes."""
        self.call_later(self._render_view, view)

    async def _render_view(self, view: SessionView) -> None:
        """Bring the widgets in line with a session snapshot."""
        try:
            create_btn = self.query_one("#create-btn", Button)
            create_btn.disabled = view.is_loading
            create_btn.label = (
                "Creating..."
                if view.state == ConnectionState.CREATING
                else "Create New Chat"
            )
            self.query_one("#join-btn", Button).disabled = view.is_loading
            self.query_one("#leave-btn", Button).disabled = not view.can_leave
            self.query_one("#room-id-input", Input).disabled = not view.can_edit
            self.query_one("#username-input", Input).disabled = not view.can_edit
            self.query_one("#error-line", Static).update(escape(view.error_message))
            self.query_one("#room-status", Static).update(self._status_text(view))
            self.query_one("#message-input", Input).disabled = not view.can_send
            await self._render_messages(view)
        except NoMatches:
            pass

    async def _render_messages(self, view: SessionView) -> None:
        container = self.query_one("#messages-container", ScrollableContainer)
        placeholder = self.query_one("#empty-placeholder", Static)

        ids = [message.local_id for message in view.messages]
        if ids[: len(self._rendered_ids)] != self._rendered_ids:
            # The log was cleared for a new cycle
            await container.query(MessageDisplay).remove()
            self._rendered_ids = []

        for message in view.messages[len(self._rendered_ids):]:
            await container.mount(
                MessageDisplay(message.content, username=message.username)
            )
            self._rendered_ids.append(message.local_id)

        placeholder.set_class(bool(view.messages), "hidden")
        if view.messages:
            container.scroll_end()

    @staticmethod
    def _status_text(view: SessionView) -> str:
        if view.state == ConnectionState.CONNECTED:
            return f"[green]Connected to {escape(view.room_id)} as {escape(view.username)}[/]"
        if view.state == ConnectionState.CONNECTING:
            return "[yellow]Joining room...[/]"
        if view.state == ConnectionState.CLOSED:
            return "[dim]Disconnected[/]"
        if view.room_id:
            return f"Room: {escape(view.room_id)}"
        return ""
