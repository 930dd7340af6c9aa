"""Change reports and their delivery."""

from calendar_watch.notifications.discord import DiscordNotifier, NotificationError
from calendar_watch.notifications.formatter import (
    Report,
    build_change_entries,
    chunk_report,
    render_report,
)

__all__ = [
    "DiscordNotifier",
    "NotificationError",
    "Report",
    "build_change_entries",
    "chunk_report",
    "render_report",
]
