"""FastAPI application and routes.

## API Structure

- POST /subscribe - Register the watch channel and seed the snapshot
- POST /hook - Google Calendar push notifications
- POST /renew - Renew the watch channel (for external schedulers)
- GET /health - Health check

## Security

Push callbacks are only acted on when they carry the persisted channel id
and resource id (and the channel token, when one is configured). Put
/subscribe and /renew behind your ingress authentication.
"""

from calendar_watch.api.app import create_app

__all__ = ["create_app"]
