"""Provider event formatters.

Pure functions of (event, settings) producing provider payloads:

- SlackEventFormatter: Block Kit messages
- DiscordEventFormatter: embeds
- TeamsEventFormatter: Adaptive Cards
- GoogleCalendarEventFormatter: calendar events
- GoogleDriveFileFormatter: Drive folder/file metadata
- GmailEventFormatter: HTML email messages
- TrelloCardFormatter: card parameters
"""

from infrastructure.notifications.formatters.base import EventFormatter
from infrastructure.notifications.formatters.discord import DiscordEventFormatter
from infrastructure.notifications.formatters.gmail import GmailEventFormatter
from infrastructure.notifications.formatters.google_calendar import (
    GoogleCalendarEventFormatter,
)
from infrastructure.notifications.formatters.google_drive import (
    GoogleDriveFileFormatter,
)
from infrastructure.notifications.formatters.slack import SlackEventFormatter
from infrastructure.notifications.formatters.teams import TeamsEventFormatter
from infrastructure.notifications.formatters.trello import TrelloCardFormatter

__all__ = [
    "EventFormatter",
    "DiscordEventFormatter",
    "GmailEventFormatter",
    "GoogleCalendarEventFormatter",
    "GoogleDriveFileFormatter",
    "SlackEventFormatter",
    "TeamsEventFormatter",
    "TrelloCardFormatter",
]
