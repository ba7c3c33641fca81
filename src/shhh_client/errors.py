"""
Client Errors

Exception hierarchy for the chat client. Every failure the session can
recover from is one of these; the session turns them into the error line
shown to the user.
"""

from typing import Optional


class ChatClientError(Exception):
    """Base class for all chat client errors."""


class ValidationError(ChatClientError):
    """A precondition failed locally, before anything reached the network."""


class RequestError(ChatClientError):
    """
    The room creation call failed or returned a non-success status.

    Attributes:
        status_code: HTTP status of the response, if one was received
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConnectError(ChatClientError):
    """The join connection could not be started."""


class TransportError(ChatClientError):
    """The join connection failed after it was started."""


class SendError(TransportError):
    """An outbound frame could not be transmitted."""


class DecodeError(ChatClientError):
    """A payload from the backend could not be decoded."""


class InvalidTransitionError(ChatClientError):
    """The session was asked to move between states it cannot connect."""
