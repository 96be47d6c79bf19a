"""Integration notification delivery settings."""

from pydantic import Field, field_validator

from infrastructure.configuration.base import IntegrationSettings


class NotificationSettings(IntegrationSettings):
    """Outbound integration notification configuration.

    Environment Variables:
        APP_URL: Base URL of the web application, used for deep links
        WEBHOOK_TIMEOUT_SECONDS: Timeout shared by Slack, Discord and Teams webhooks
        PROVIDER_REQUEST_TIMEOUT_SECONDS: Timeout for OAuth and Trello REST calls
        TOKEN_REFRESH_MARGIN_SECONDS: Refresh access tokens expiring within this window
        INTEGRATION_LOG_LIMIT: Default number of audit rows returned per query

    Example:
        ```python
        from infrastructure.configuration import settings

        timeout = settings.notifications.WEBHOOK_TIMEOUT_SECONDS
        ```
    """

    APP_URL: str = Field(default="http://localhost:5173", alias="APP_URL")
    WEBHOOK_TIMEOUT_SECONDS: float = Field(default=5.0, alias="WEBHOOK_TIMEOUT_SECONDS")
    PROVIDER_REQUEST_TIMEOUT_SECONDS: float = Field(
        default=10.0, alias="PROVIDER_REQUEST_TIMEOUT_SECONDS"
    )
    TOKEN_REFRESH_MARGIN_SECONDS: int = Field(
        default=300, alias="TOKEN_REFRESH_MARGIN_SECONDS"
    )
    INTEGRATION_LOG_LIMIT: int = Field(default=50, alias="INTEGRATION_LOG_LIMIT")

    @field_validator("APP_URL")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        """Deep links are built as APP_URL + '/path'."""
        return v.rstrip("/")
