"""HTTP client for the Flowen service API.

This module provides:
- Credential: Access/refresh token pair returned by login
- FlowenClient: Async HTTP client for login, refresh, teams and upload

The client keeps a cookie jar for its whole lifetime: the refresh endpoint
relies on the session cookie set by the login response.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from flowsync.client.errors import AuthError, NetworkError, ParseError
from flowsync.core.config import (
    LOGIN_PATH,
    REFRESH_PATH,
    TEAMS_PATH,
    UPLOAD_PATH,
    AgentConfig,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    """Bearer credential held by the agent.

    Replaced wholesale on login or refresh, never mutated.
    """

    access_token: str
    refresh_token: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Credential:
        """Create from a login response body.

        Raises:
            ParseError: If the body carries no token.
        """
        token = data.get("token")
        if not isinstance(token, str) or not token:
            raise ParseError("No token in response")
        refresh = data.get("refreshToken", data.get("refresh_token"))
        return cls(
            access_token=token,
            refresh_token=refresh if isinstance(refresh, str) else None,
        )


def _parse_json(text: str) -> dict[str, Any]:
    """Parse a JSON object body."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Failed to parse JSON: {e}") from e
    if not isinstance(data, dict):
        raise ParseError("Expected a JSON object")
    return data


class FlowenClient:
    """Async HTTP client for the Flowen service.

    Usage:
        async with FlowenClient(config) as client:
            credential = await client.login(email, password)
            teams = await client.list_teams(credential.access_token)
    """

    def __init__(
        self,
        config: AgentConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Agent configuration with base URL and timeout.
            transport: Optional transport override.
        """
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=config.api_base,
            timeout=config.timeout,
            verify=config.verify_ssl,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        """Get the service base URL."""
        return self._config.api_base

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> FlowenClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.aclose()

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, translating transport failures."""
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise NetworkError(f"Request to {url} failed: {e}") from e

    # === Authentication ===

    async def login(self, email: str, password: str) -> Credential:
        """Log in with email and password.

        Args:
            email: Account email.
            password: Account password.

        Returns:
            The credential issued by the service.

        Raises:
            AuthError: If the service rejects the login.
            NetworkError: If the service is unreachable.
            ParseError: If the response body is not a token object.
        """
        response = await self._send(
            "POST", LOGIN_PATH, json={"email": email, "password": password}
        )
        if not response.is_success:
            raise AuthError(
                f"Login failed ({response.status_code}): {response.text}",
                response.status_code,
            )
        return Credential.from_dict(_parse_json(response.text))

    async def refresh(self) -> str:
        """Exchange the session cookie for a new access token.

        Returns:
            The new access token.

        Raises:
            AuthError: If the service denies the refresh.
            NetworkError: If the service is unreachable.
            ParseError: If the response carries no token.
        """
        response = await self._send("POST", REFRESH_PATH)
        if not response.is_success:
            raise AuthError(
                f"Refresh denied ({response.status_code})", response.status_code
            )
        return Credential.from_dict(_parse_json(response.text)).access_token

    # === Destinations ===

    async def list_teams(self, token: str) -> str:
        """Fetch the destinations visible to the user.

        The payload is returned verbatim; its schema is not modelled.

        Args:
            token: Bearer access token.

        Returns:
            Raw JSON text of the response.

        Raises:
            NetworkError: On transport failure or non-success status.
        """
        response = await self._send(
            "GET", TEAMS_PATH, headers={"Authorization": f"Bearer {token}"}
        )
        if not response.is_success:
            raise NetworkError(
                f"Failed to list teams ({response.status_code})",
                response.status_code,
                response.text,
            )
        return response.text

    # === Upload ===

    async def upload(
        self,
        token: str,
        *,
        file_name: str,
        content: bytes,
        content_type: str,
        fields: dict[str, str],
    ) -> httpx.Response:
        """Upload one file as a multipart request.

        Args:
            token: Bearer access token.
            file_name: File name sent with the ``files`` part.
            content: File bytes.
            content_type: MIME type of the file part.
            fields: Text fields sent alongside the file.

        Returns:
            The raw response; the caller classifies the status.

        Raises:
            NetworkError: On transport failure.
        """
        return await self._send(
            "POST",
            UPLOAD_PATH,
            params={"skipEmail": "true"},
            headers={"Authorization": f"Bearer {token}"},
            files={"files": (file_name, content, content_type)},
            data=fields,
        )
