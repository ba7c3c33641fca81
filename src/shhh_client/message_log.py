"""
Message Log for Client-Side Display

This module provides the append-only record of chat messages received in
the current room. Messages are kept in the order the connection delivered
them; the backend provides no sequence numbers, so arrival order is the
display order.

Usage:
    log = MessageLog()
    log.append("hello", username="alice")
    for message in log:
        render(message)
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatMessage:
    """
    A received chat message.

    Attributes:
        content: The message text
        arrival_order: Position in the log, starting at 1
        username: Sender, when the backend included one
        local_id: Unique identifier used as a display key
    """

    content: str
    arrival_order: int
    username: Optional[str] = None
    local_id: str = field(default_factory=lambda: uuid.uuid4().hex)


class MessageLog:
    """
    Append-only log of messages in arrival order.

    Attributes:
        messages: Snapshot of the logged messages, oldest first
    """

    def __init__(self):
        self._messages: List[ChatMessage] = []
        self._next_order = 1

    def append(self, content: str, username: Optional[str] = None) -> ChatMessage:
        """
        Add a message to the tail of the log.

        Args:
            content: The message text
            username: Sender, if known

        Returns:
            ChatMessage: The stored message with its arrival order and id
        """
        message = ChatMessage(
            content=content,
            arrival_order=self._next_order,
            username=username,
        )
        self._next_order += 1
        self._messages.append(message)

        logger.debug(
            "Message appended (order: %s, id: %s)",
            message.arrival_order,
            message.local_id,
        )
        return message

    def clear(self) -> None:
        """
        Empty the log and restart arrival numbering.

        Called when the session starts a new create or join cycle.
        """
        self._messages.clear()
        self._next_order = 1
        logger.debug("Message log cleared")

    def is_empty(self) -> bool:
        """Whether no message has been logged since the last clear."""
        return not self._messages

    @property
    def messages(self) -> Tuple[ChatMessage, ...]:
        return tuple(self._messages)

    @property
    def last(self) -> Optional[ChatMessage]:
        """Most recently received message, or None."""
        return self._messages[-1] if self._messages else None

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(tuple(self._messages))
