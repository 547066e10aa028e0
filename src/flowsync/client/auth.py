"""Access token management.

This module provides:
- decode_token_expiry: Read the ``exp`` claim of a bearer token
- is_expiring_soon: Decide whether a token needs a refresh
- TokenManager: Holds the credential and refreshes it before it expires

Refresh failures are never fatal: the current token is still returned and the
service gets the final word on whether it is accepted.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import math
import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from flowsync.client.api import Credential
from flowsync.client.errors import AuthError, FlowSyncError, ParseError
from flowsync.core.config import TOKEN_REFRESH_WINDOW_SECONDS

if TYPE_CHECKING:
    from flowsync.client.api import FlowenClient

logger = logging.getLogger(__name__)


def decode_token_expiry(token: str) -> int:
    """Decode the expiry claim of a three-segment bearer token.

    The middle segment is base64url with padding stripped; padding is restored
    before decoding.

    Args:
        token: The access token.

    Returns:
        The ``exp`` claim in Unix seconds.

    Raises:
        ParseError: If the token is malformed or carries no numeric ``exp``.
    """
    parts = token.split(".")
    if len(parts) != 3:
        raise ParseError("Token is not a three-segment structure")

    payload_b64 = parts[1]
    payload_b64 += "=" * (-len(payload_b64) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(payload_b64))
    except (binascii.Error, ValueError) as e:
        raise ParseError(f"Undecodable token payload: {e}") from e

    exp = payload.get("exp") if isinstance(payload, dict) else None
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise ParseError("Token payload has no numeric exp claim")
    if not math.isfinite(exp):
        raise ParseError(f"Token exp claim is not finite: {exp}")
    return int(exp)


def is_expiring_soon(
    token: str,
    now: float | None = None,
    window: int = TOKEN_REFRESH_WINDOW_SECONDS,
) -> bool:
    """Check whether a token expires within the refresh window.

    Tokens whose expiry cannot be decoded are treated as expiring.
    """
    try:
        exp = decode_token_expiry(token)
    except ParseError as e:
        logger.debug("Treating token as expiring: %s", e)
        return True
    if now is None:
        now = time.time()
    return exp - now <= window


class TokenManager:
    """Owns the credential and keeps the access token fresh.

    The credential is swapped under a lock; network calls happen outside it.

    Usage:
        tokens = TokenManager(client)
        await tokens.login(email, password)
        token = await tokens.ensure_valid()
    """

    def __init__(
        self,
        client: FlowenClient,
        refresh_window: int = TOKEN_REFRESH_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the token manager.

        Args:
            client: HTTP client used for login and refresh.
            refresh_window: Refresh when fewer seconds than this remain.
            clock: Source of the current Unix time.
        """
        self._client = client
        self._refresh_window = refresh_window
        self._clock = clock
        self._credential: Credential | None = None
        self._lock = threading.Lock()

    @property
    def credential(self) -> Credential | None:
        """Get the current credential."""
        with self._lock:
            return self._credential

    @property
    def is_authenticated(self) -> bool:
        """Check if an access token is held."""
        return self.credential is not None

    def set_credential(self, credential: Credential | None) -> None:
        """Replace the stored credential."""
        with self._lock:
            self._credential = credential

    def clear(self) -> None:
        """Forget the stored credential."""
        self.set_credential(None)

    async def login(self, email: str, password: str) -> Credential:
        """Log in and store the resulting credential.

        Raises:
            AuthError: If the service rejects the login.
        """
        credential = await self._client.login(email, password)
        self.set_credential(credential)
        logger.info("Logged in as %s", email)
        return credential

    def needs_refresh(self, token: str) -> bool:
        """Check whether a token is inside the refresh window."""
        return is_expiring_soon(token, self._clock(), self._refresh_window)

    async def refresh(self) -> str:
        """Obtain a new access token from the service.

        The refresh token, if any, is kept from the previous credential.

        Returns:
            The new access token.

        Raises:
            FlowSyncError: If the refresh failed.
        """
        new_token = await self._client.refresh()
        with self._lock:
            refresh_token = self._credential.refresh_token if self._credential else None
            self._credential = Credential(access_token=new_token, refresh_token=refresh_token)
        logger.info("Access token refreshed")
        return new_token

    async def ensure_valid(self) -> str:
        """Return an access token, refreshing it first if it is about to expire.

        Returns:
            A fresh token, or the current one if refreshing failed.

        Raises:
            AuthError: If no access token is held.
        """
        credential = self.credential
        if credential is None:
            raise AuthError("not authenticated")

        token = credential.access_token
        if not self.needs_refresh(token):
            return token

        try:
            return await self.refresh()
        except FlowSyncError as e:
            logger.warning("Token refresh failed: %s - proceeding with existing token", e)
            return token
