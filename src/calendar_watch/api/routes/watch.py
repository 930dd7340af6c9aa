"""Trigger endpoints.

- POST /subscribe: register the watch channel and seed the snapshot
- POST /hook: Google push callback, acknowledged immediately
- POST /renew: keep the watch channel alive (for external schedulers)
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from calendar_watch.api.tasks import schedule_task
from calendar_watch.calendar.service import CalendarWatchService, create_service
from calendar_watch.calendar.watch import PushNotification
from calendar_watch.config import get_settings
from calendar_watch.models.event import WatchChannel

logger = logging.getLogger(__name__)

router = APIRouter()


class ChannelResponse(BaseModel):
    """Active watch channel."""

    channel_id: str
    resource_id: str
    expiration: datetime | None

    @classmethod
    def from_channel(cls, channel: WatchChannel) -> ChannelResponse:
        return cls(
            channel_id=channel.channel_id,
            resource_id=channel.resource_id,
            expiration=channel.expiration,
        )


class SubscribeResponse(BaseModel):
    """Initialize result."""

    ok: bool = True
    channel: ChannelResponse
    events: int
    has_sync_token: bool


def get_calendar_service() -> CalendarWatchService:
    """FastAPI dependency for the trigger service."""
    return create_service(get_settings())


@router.post("/subscribe", response_model=SubscribeResponse)
async def subscribe(
    service: CalendarWatchService = Depends(get_calendar_service),
) -> SubscribeResponse:
    """Register the watch channel and rebuild the snapshot."""
    try:
        result = await service.initialize()
    except Exception as e:
        logger.exception(f"Subscribe failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"subscribe failed: {e}",
        )

    return SubscribeResponse(
        channel=ChannelResponse.from_channel(result.channel),
        events=result.events,
        has_sync_token=result.has_sync_token,
    )


@router.post("/hook", response_class=PlainTextResponse)
async def hook(
    request: Request,
    service: CalendarWatchService = Depends(get_calendar_service),
) -> str:
    """Acknowledge a push and process it in the background."""
    notification = PushNotification.from_headers(request.headers)
    logger.info(
        f"/hook invoked: state={notification.resource_state} "
        f"channel={notification.channel_id}"
    )
    schedule_task(
        service.handle_push(notification),
        name=f"push-{notification.channel_id or 'unknown'}",
    )
    return "OK"


@router.post("/renew", response_model=ChannelResponse)
async def renew(
    service: CalendarWatchService = Depends(get_calendar_service),
) -> ChannelResponse:
    """Renew the watch channel if it is near expiry."""
    try:
        channel = await service.renew()
    except Exception as e:
        logger.exception(f"Renew failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"renew failed: {e}",
        )
    return ChannelResponse.from_channel(channel)
