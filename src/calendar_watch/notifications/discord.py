"""Discord webhook notification sink.

## Delivery

- One webhook message per report chunk, each carrying one embed
  (Discord caps an embed description at 4096 characters)
- The report title is set on the first embed only
- Transport failures are retried with exponential backoff; HTTP errors
  are not

Error reports for operators go out as plain ``content`` messages.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from calendar_watch.notifications.formatter import (
    DEFAULT_CHUNK_LIMIT,
    Report,
    chunk_report,
)

logger = logging.getLogger(__name__)

EMBED_COLOR = 0x00AAFF
CONTENT_LIMIT = 2000


class NotificationError(Exception):
    """Raised when the webhook rejects a message."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DiscordNotifier:
    """Posts change reports and error reports to a Discord webhook.

    Example:
        ```python
        notifier = DiscordNotifier(webhook_url)
        await notifier.post_report(report)
        await notifier.post_error("sync failed: ...")
        ```
    """

    def __init__(
        self,
        webhook_url: str,
        timeout: float = 30.0,
        chunk_limit: int = DEFAULT_CHUNK_LIMIT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the notifier.

        Args:
            webhook_url: Discord webhook URL
            timeout: Request timeout in seconds
            chunk_limit: Maximum embed description length
            transport: Custom httpx transport (tests)
        """
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.chunk_limit = chunk_limit
        self._transport = transport

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
        reraise=True,
    )
    async def _post(self, client: httpx.AsyncClient, payload: dict[str, Any]) -> None:
        response = await client.post(self.webhook_url, json=payload)
        if response.status_code >= 400:
            logger.error(
                f"Discord webhook failed: {response.status_code} {response.text}"
            )
            raise NotificationError(
                f"Discord webhook failed: {response.status_code}",
                status_code=response.status_code,
            )

    async def post_report(self, report: Report) -> int:
        """Post a change report.

        Args:
            report: Rendered report

        Returns:
            Number of messages sent (0 when the body is empty)

        Raises:
            NotificationError: If the webhook rejects a message
        """
        if not report.body.strip():
            logger.info("Skipping notification with empty body")
            return 0

        chunks = chunk_report(report, self.chunk_limit)
        logger.info(
            f"Posting report '{report.title}' in {len(chunks)} chunk(s), "
            f"{len(report.body)} chars"
        )

        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            for index, chunk in enumerate(chunks):
                embed: dict[str, Any] = {"description": chunk, "color": EMBED_COLOR}
                if index == 0:
                    embed["title"] = report.title
                await self._post(client, {"embeds": [embed]})

        return len(chunks)

    async def post_error(self, message: str) -> bool:
        """Post an operator error report. Never raises.

        Returns:
            True if the report was delivered
        """
        content = f"(notification error) {message}"[:CONTENT_LIMIT]
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                await self._post(client, {"content": content})
        except (httpx.HTTPError, NotificationError) as e:
            logger.error(f"Failed to deliver error report: {e}")
            return False
        return True
