"""Google OAuth token exchange.

The watcher runs unattended with a long-lived refresh token. Every trigger
exchanges it for a short-lived access token before calling the Calendar API.

## OAuth Endpoints

- Token: https://oauth2.googleapis.com/token

## Scopes Used

- https://www.googleapis.com/auth/calendar.readonly: events.list and events.watch
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from calendar_watch.config import Settings, get_settings

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


class TokenExchangeError(Exception):
    """Raised when the refresh-token exchange fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class GoogleTokens:
    """Access token from a refresh-token exchange."""

    access_token: str


class GoogleOAuth:
    """Google OAuth 2.0 client for the refresh-token grant.

    Example:
        ```python
        oauth = GoogleOAuth()
        tokens = await oauth.refresh_access_token()
        client = GoogleCalendarClient(tokens.access_token, calendar_id)
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Google OAuth client.

        Args:
            settings: Application settings (defaults to the cached settings)
            transport: Custom httpx transport (tests)
        """
        settings = settings or get_settings()

        self.client_id = settings.google_client_id
        self.client_secret = settings.google_client_secret
        self.refresh_token = settings.google_refresh_token
        self.timeout = settings.http_timeout_seconds
        self._transport = transport

        if not self.is_configured:
            logger.warning(
                "Google OAuth not configured. Set GOOGLE_CLIENT_ID, "
                "GOOGLE_CLIENT_SECRET and GOOGLE_REFRESH_TOKEN environment variables."
            )

    @property
    def is_configured(self) -> bool:
        """Check if the refresh-token grant can be performed."""
        return bool(self.client_id and self.client_secret and self.refresh_token)

    async def refresh_access_token(self, refresh_token: str | None = None) -> GoogleTokens:
        """Exchange the refresh token for a fresh access token.

        Args:
            refresh_token: Refresh token (defaults to the configured one)

        Returns:
            GoogleTokens carrying the new access token

        Raises:
            TokenExchangeError: If the exchange fails
        """
        refresh_token = refresh_token or self.refresh_token
        if not (self.client_id and self.client_secret and refresh_token):
            raise RuntimeError("Google OAuth not configured")

        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            try:
                response = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "refresh_token": refresh_token,
                        "grant_type": "refresh_token",
                    },
                )
            except httpx.HTTPError as e:
                raise TokenExchangeError(f"Token refresh failed: {e}") from e

            if response.status_code != 200:
                logger.error(f"Token refresh failed: {response.text}")
                raise TokenExchangeError(
                    f"Token refresh failed: {response.status_code}",
                    status_code=response.status_code,
                )

            data = response.json()

        access_token = data.get("access_token")
        if not access_token:
            raise TokenExchangeError("Token refresh returned no access_token")

        return GoogleTokens(access_token=access_token)
