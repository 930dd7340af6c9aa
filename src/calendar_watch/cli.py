"""Command-line interface for the calendar watcher."""

import argparse
import asyncio
import json
import sys

from calendar_watch.config import get_settings
from calendar_watch.logging_setup import setup_logging


async def _run_trigger(command: str) -> dict:
    from calendar_watch.calendar.service import create_service
    from calendar_watch.database.connection import close_db, create_tables, init_db

    await init_db()
    await create_tables()
    try:
        service = create_service(get_settings())
        if command == "subscribe":
            result = await service.initialize()
            return {
                "ok": True,
                "channel": result.channel.model_dump(mode="json"),
                "events": result.events,
                "has_sync_token": result.has_sync_token,
            }

        channel = await service.renew()
        return {"ok": True, "channel": channel.model_dump(mode="json")}
    finally:
        await close_db()


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Calendar Watch - Google Calendar change notifications for Discord"
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP trigger server")
    serve_parser.add_argument("--host", help="Bind address (default: HOST setting)")
    serve_parser.add_argument(
        "--port", type=int, help="Bind port (default: PORT setting)"
    )

    # Subscribe command
    subparsers.add_parser(
        "subscribe", help="Register the watch channel and rebuild the snapshot"
    )

    # Renew command
    subparsers.add_parser("renew", help="Renew the watch channel if near expiry")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    settings = get_settings()

    if args.command == "serve":
        import uvicorn

        uvicorn.run(
            "calendar_watch.api.app:create_app",
            factory=True,
            host=args.host or settings.host,
            port=args.port or settings.port,
            log_level=settings.log_level.lower(),
        )
        return 0

    setup_logging(settings.log_level, settings.log_format)
    try:
        result = asyncio.run(_run_trigger(args.command))
    except Exception as e:
        print(json.dumps({"ok": False, "error": f"{type(e).__name__}: {e}"}))
        return 1

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
