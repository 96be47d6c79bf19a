"""Infrastructure configuration module - public API.

Centralized configuration built on Pydantic BaseSettings, organized by domain.

Exports:
    settings: Singleton Settings instance (main configuration object)
    Settings: Main settings class (for testing/overrides)

Example:
    ```python
    from infrastructure.configuration import settings

    app_url = settings.notifications.APP_URL
    webhook_timeout = settings.notifications.WEBHOOK_TIMEOUT_SECONDS
    ```
"""

from infrastructure.configuration.settings import Settings, settings
from infrastructure.configuration.integrations import (
    GoogleOAuthSettings,
    NotificationSettings,
)
from infrastructure.configuration.infrastructure import CredentialSettings

__all__ = [
    "Settings",
    "settings",
    "NotificationSettings",
    "GoogleOAuthSettings",
    "CredentialSettings",
]
