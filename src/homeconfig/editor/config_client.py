"""Signed HTTP client the main app uses to call the configuration service."""

from typing import Any
from urllib.parse import quote

import aiohttp

from homeconfig.common.logging import get_logger
from homeconfig.common.settings import Settings
from homeconfig.common.signing import RequestSigner, canonical_body

logger = get_logger(__name__)


class ConfigServiceError(Exception):
    """Error communicating with the configuration service."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ConfigServiceClient:
    """
    HTTP client for the configuration service storage API.

    Every request is signed with the shared API key and signing secret and
    carries the end user's id as the caller identity.
    """

    def __init__(self, settings: Settings, signer: RequestSigner | None = None):
        """
        Initialize the client.

        Args:
            settings: Application settings
            signer: Optional request signer (defaults to one built from settings)
        """
        self._base_url = settings.config_service_url.rstrip("/")
        self._prefix = settings.api_prefix.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=settings.http_timeout)
        self._signer = signer or RequestSigner(settings.signing_credentials())
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "ConfigServiceClient":
        """Enter async context."""
        self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context."""
        if self._session:
            await self._session.close()
            self._session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session exists."""
        if not self._session:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    def _config_path(self, config_id: str | None = None) -> str:
        if config_id is None:
            return self._prefix
        return f"{self._prefix}/{quote(str(config_id), safe='')}"

    async def _signed_request(
        self,
        user_id: str,
        method: str,
        path: str,
        payload: Any = None,
    ) -> aiohttp.ClientResponse:
        """
        Send a signed request.

        Args:
            user_id: Caller identity asserted to the service
            method: HTTP method
            path: Request path below the service base URL
            payload: Optional JSON payload

        Returns:
            aiohttp response object

        Raises:
            ConfigServiceError: On transport failure
        """
        method = method.upper()
        body = canonical_body(payload)
        headers = self._signer.headers(user_id, method, path, body)
        if body:
            headers["Content-Type"] = "application/json"

        session = self._ensure_session()
        try:
            return await session.request(
                method,
                f"{self._base_url}{path}",
                data=body.encode("utf-8") if body else None,
                headers=headers,
            )
        except aiohttp.ClientError as e:
            raise ConfigServiceError(f"Request failed: {e}") from e

    @staticmethod
    async def _raise_for_status(response: aiohttp.ClientResponse, default_error: str) -> None:
        if response.status < 400:
            return
        message = f"{default_error}: {response.reason}"
        try:
            payload = await response.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError):
            payload = None
        if isinstance(payload, dict) and payload.get("message"):
            message = str(payload["message"])
        raise ConfigServiceError(message, response.status)

    @staticmethod
    async def _read_json(response: aiohttp.ClientResponse) -> Any:
        try:
            return await response.json()
        except (aiohttp.ClientError, ValueError) as e:
            raise ConfigServiceError(f"Invalid response body: {e}", response.status) from e

    async def list_configs(self, user_id: str) -> list[dict[str, Any]]:
        """List all configurations owned by ``user_id``."""
        response = await self._signed_request(user_id, "GET", self._config_path())
        async with response:
            await self._raise_for_status(response, "Failed to fetch configurations")
            return await self._read_json(response)

    async def get_config(self, user_id: str, config_id: str) -> dict[str, Any] | None:
        """Fetch one configuration, or None if it does not exist for this user."""
        response = await self._signed_request(user_id, "GET", self._config_path(config_id))
        async with response:
            if response.status == 404:
                return None
            await self._raise_for_status(response, "Failed to fetch configuration")
            return await self._read_json(response)

    async def create_config(self, user_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Store a new configuration."""
        response = await self._signed_request(
            user_id, "POST", self._config_path(), payload={"data": data}
        )
        async with response:
            await self._raise_for_status(response, "Failed to create configuration")
            created = await self._read_json(response)
        logger.info("Configuration stored", config_id=created.get("id"))
        return created

    async def update_config(
        self,
        user_id: str,
        config_id: str,
        data: dict[str, Any],
    ) -> dict[str, Any]:
        """Replace an existing configuration."""
        response = await self._signed_request(
            user_id, "PUT", self._config_path(config_id), payload={"data": data}
        )
        async with response:
            await self._raise_for_status(response, "Failed to update configuration")
            return await self._read_json(response)

    async def delete_config(self, user_id: str, config_id: str) -> bool:
        """Delete a configuration; False if it did not exist."""
        response = await self._signed_request(user_id, "DELETE", self._config_path(config_id))
        async with response:
            if response.status == 404:
                return False
            await self._raise_for_status(response, "Failed to delete configuration")
            return True
