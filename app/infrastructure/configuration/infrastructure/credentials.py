"""Credential encryption settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class CredentialSettings(InfrastructureSettings):
    """Encryption key for stored integration credentials.

    Environment Variables:
        INTEGRATION_CREDENTIALS_KEY: urlsafe base64 Fernet key

    Example:
        ```python
        from infrastructure.configuration import settings

        key = settings.credentials.INTEGRATION_CREDENTIALS_KEY
        ```
    """

    INTEGRATION_CREDENTIALS_KEY: str | None = Field(
        default=None, alias="INTEGRATION_CREDENTIALS_KEY"
    )
