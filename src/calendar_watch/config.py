"""Application configuration.

Configuration is loaded from environment variables using pydantic-settings.
All sensitive values (OAuth secrets, webhook URLs) should be provided via
environment variables, not config files.

## Required Environment Variables

- GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET: OAuth client used for the token exchange
- GOOGLE_REFRESH_TOKEN: Long-lived refresh token for the watched account
- CALENDAR_ID: Calendar to watch
- PUBLIC_BASE_URL: Public base URL Google can reach for push callbacks
- DISCORD_WEBHOOK_URL: Webhook that receives change reports

## Optional Environment Variables

- DATABASE_URL: State store (default: local SQLite file)
- CHANNEL_TOKEN: Verification token attached to the watch channel
- CIVIL_UTC_OFFSET_HOURS: Offset used for "today" and for rendering (default: 9)
- RENEW_INTERVAL_MINUTES: In-process channel renewal loop (default: 0, disabled)

## Example .env file

```
GOOGLE_CLIENT_ID=your-google-client-id.apps.googleusercontent.com
GOOGLE_CLIENT_SECRET=your-google-client-secret
GOOGLE_REFRESH_TOKEN=1//0g-your-refresh-token
CALENDAR_ID=room@group.calendar.google.com
PUBLIC_BASE_URL=https://calendar-watch.example.com
DISCORD_WEBHOOK_URL=https://discord.com/api/webhooks/123/abc
```
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Calendar Watch"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    log_format: Literal["text", "json"] = "text"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./calendar_watch.db",
        description="State store connection string",
    )
    database_echo: bool = False  # Log SQL queries

    # Google OAuth
    google_client_id: str | None = None
    google_client_secret: str | None = None
    google_refresh_token: str | None = None

    # Google Calendar
    calendar_id: str = "primary"
    public_base_url: str | None = None  # Base URL for webhook callbacks
    channel_token: str | None = Field(
        default=None,
        description="Optional verification token echoed back in X-Goog-Channel-Token",
    )
    watch_ttl_seconds: int | None = Field(default=None, ge=60)
    renewal_margin_seconds: int = Field(default=5 * 60, ge=0)
    renew_interval_minutes: int = Field(default=0, ge=0, le=1440)

    # Sync
    civil_utc_offset_hours: float = Field(default=9, ge=-12, le=14)
    window_days: int = Field(default=14, ge=1, le=365)
    http_timeout_seconds: float = Field(default=30.0, gt=0)

    # Notifications
    discord_webhook_url: str | None = None
    notification_subject: str = "Room reservations"

    @field_validator("database_url", mode="before")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Ensure PostgreSQL URLs use the asyncpg driver."""
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @property
    def google_oauth_configured(self) -> bool:
        """Check if the refresh-token exchange is configured."""
        return bool(
            self.google_client_id
            and self.google_client_secret
            and self.google_refresh_token
        )

    @property
    def webhook_url(self) -> str:
        """Public callback address registered with the watch channel."""
        if not self.public_base_url:
            raise RuntimeError("PUBLIC_BASE_URL is not configured")
        return f"{self.public_base_url.rstrip('/')}/hook"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are loaded once and cached. To reload, clear the cache:
    ```python
    get_settings.cache_clear()
    ```
    """
    return Settings()
