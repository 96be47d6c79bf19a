"""Integration settings."""

from infrastructure.configuration.integrations.google import GoogleOAuthSettings
from infrastructure.configuration.integrations.notifications import (
    NotificationSettings,
)

__all__ = [
    "GoogleOAuthSettings",
    "NotificationSettings",
]
