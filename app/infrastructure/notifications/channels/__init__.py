"""Provider channel implementations."""

from typing import Dict

from infrastructure.notifications.channels.base import IntegrationChannel
from infrastructure.notifications.channels.discord import DiscordChannel
from infrastructure.notifications.channels.gmail import GmailChannel
from infrastructure.notifications.channels.google_calendar import GoogleCalendarChannel
from infrastructure.notifications.channels.google_drive import GoogleDriveChannel
from infrastructure.notifications.channels.http import ProviderHttpClient
from infrastructure.notifications.channels.oauth import GoogleOAuthTokenManager
from infrastructure.notifications.channels.slack import SlackChannel
from infrastructure.notifications.channels.teams import TeamsChannel
from infrastructure.notifications.channels.trello import TrelloChannel
from infrastructure.notifications.models import IntegrationType


def build_default_channels() -> Dict[IntegrationType, IntegrationChannel]:
    """One channel per supported integration type."""
    channels = [
        SlackChannel(),
        DiscordChannel(),
        TeamsChannel(),
        GmailChannel(),
        GoogleCalendarChannel(),
        GoogleDriveChannel(),
        TrelloChannel(),
    ]
    return {channel.integration_type: channel for channel in channels}


__all__ = [
    "IntegrationChannel",
    "ProviderHttpClient",
    "GoogleOAuthTokenManager",
    "SlackChannel",
    "DiscordChannel",
    "TeamsChannel",
    "GmailChannel",
    "GoogleCalendarChannel",
    "GoogleDriveChannel",
    "TrelloChannel",
    "build_default_channels",
]
