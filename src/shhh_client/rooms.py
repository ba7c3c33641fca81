"""
Room API Client

Request/response calls to the chat backend over HTTP: creating rooms and
checking that the backend is up. Joining a room is not a request; see
connection.py.
"""

import logging
from typing import Optional

import httpx

from .config import ClientConfig
from .errors import DecodeError, RequestError
from .schemas import CreateRoomResponse

logger = logging.getLogger(__name__)


class RoomApi:
    """
    HTTP client for the backend's room endpoints.

    Attributes:
        config: Client configuration providing the backend address
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the room API client.

        Args:
            config: Client configuration (defaults to ClientConfig())
            transport: Optional httpx transport (for testing)
        """
        self.config = config or ClientConfig()
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.http_base_url,
            timeout=self.config.request_timeout,
            transport=self._transport,
        )

    async def create_room(self) -> str:
        """
        Ask the backend for a new room.

        Returns:
            The server-issued room ID

        Raises:
            RequestError: If the call fails, returns a non-success status,
                          or returns a body without a room ID
        """
        logger.info("Requesting a new room from %s", self.config.http_base_url)
        try:
            async with self._client() as client:
                response = await client.post(
                    "/room/create",
                    headers={"Content-Type": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.error("Room creation request failed: %s", e)
            raise RequestError(f"Failed to create chat: {e}")

        if not response.is_success:
            logger.error(
                "Room creation rejected: %s %s",
                response.status_code,
                response.reason_phrase,
            )
            raise RequestError(
                f"Failed to create chat: {response.status_code} "
                f"{response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            created = CreateRoomResponse.from_json(response.content)
        except DecodeError as e:
            logger.error("Unexpected room creation response: %s", e)
            raise RequestError(
                f"Failed to create chat: {e}", status_code=response.status_code
            )

        logger.info("Room created: %s", created.room_id)
        return created.room_id

    async def check_health(self) -> bool:
        """
        Check whether the backend answers its health endpoint.

        Returns:
            True if the backend responded with a success status
        """
        try:
            async with self._client() as client:
                response = await client.get("/health")
        except httpx.HTTPError as e:
            logger.warning("Health check failed: %s", e)
            return False

        logger.debug("Health check returned %s", response.status_code)
        return response.is_success
