"""
Client Configuration

Settings for the chat client, read from environment variables with
sensible defaults for a backend running on localhost.

Environment:
    SHHH_BACKEND_URL: Base URL of the chat backend (http or https)
    SHHH_DEBOUNCE_MS: Quiet period before a typed message is sent
    SHHH_REQUEST_TIMEOUT: Timeout in seconds for HTTP requests
    SHHH_LOG_FILE: File the client logs to
    SHHH_LOG_LEVEL: Logging level name (e.g., DEBUG, INFO)
"""

import os
from dataclasses import dataclass
from urllib.parse import urlsplit, urlunsplit

DEFAULT_BACKEND_URL = "http://localhost:8000"
DEFAULT_DEBOUNCE_MS = 300
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_LOG_FILE = "chat_client.log"
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass
class ClientConfig:
    """
    Configuration for the chat client.

    Attributes:
        backend_url: Base URL of the backend (e.g., http://localhost:8000)
        debounce_ms: Delay in milliseconds before typed text is transmitted
        request_timeout: Timeout in seconds for the room creation call
        log_file: Path of the client log file
        log_level: Logging level name
    """

    backend_url: str = DEFAULT_BACKEND_URL
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    log_file: str = DEFAULT_LOG_FILE
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """
        Build a configuration from environment variables.

        Returns:
            ClientConfig with values from the environment or defaults

        Raises:
            ValueError: If a numeric variable cannot be parsed or the debounce
                delay is negative
        """
        backend_url = os.environ.get("SHHH_BACKEND_URL", DEFAULT_BACKEND_URL)

        debounce_raw = os.environ.get("SHHH_DEBOUNCE_MS", str(DEFAULT_DEBOUNCE_MS))
        try:
            debounce_ms = int(debounce_raw)
        except ValueError:
            raise ValueError(
                f"SHHH_DEBOUNCE_MS must be an integer, got {debounce_raw!r}"
            )
        if debounce_ms < 0:
            raise ValueError(
                f"SHHH_DEBOUNCE_MS must not be negative, got {debounce_ms}"
            )

        timeout_raw = os.environ.get(
            "SHHH_REQUEST_TIMEOUT", str(DEFAULT_REQUEST_TIMEOUT)
        )
        try:
            request_timeout = float(timeout_raw)
        except ValueError:
            raise ValueError(
                f"SHHH_REQUEST_TIMEOUT must be a number, got {timeout_raw!r}"
            )

        return cls(
            backend_url=backend_url,
            debounce_ms=debounce_ms,
            request_timeout=request_timeout,
            log_file=os.environ.get("SHHH_LOG_FILE", DEFAULT_LOG_FILE),
            log_level=os.environ.get("SHHH_LOG_LEVEL", DEFAULT_LOG_LEVEL),
        )

    @property
    def is_secure(self) -> bool:
        """True if the backend is reached over TLS."""
        return urlsplit(self.backend_url).scheme == "https"

    @property
    def http_base_url(self) -> str:
        """Backend base URL without a trailing slash."""
        return self.backend_url.rstrip("/")

    @property
    def websocket_base_url(self) -> str:
        """Backend base URL with the matching websocket scheme."""
        parts = urlsplit(self.http_base_url)
        scheme = "wss" if self.is_secure else "ws"
        return urlunsplit((scheme, parts.netloc, parts.path, "", ""))
