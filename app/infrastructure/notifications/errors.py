"""Integration notification exceptions."""

from typing import Optional


class IntegrationError(Exception):
    """Base class for integration dispatch errors.

    Attributes:
        integration_id: Integration the error relates to, when known
    """

    def __init__(self, message: str, integration_id: Optional[str] = None):
        super().__init__(message)
        self.integration_id = integration_id


class UnknownIntegrationTypeError(IntegrationError):
    """No channel is registered for the integration type."""

    def __init__(self, integration_type: str, integration_id: Optional[str] = None):
        super().__init__(
            f"Unknown integration type: {integration_type}", integration_id
        )
        self.integration_type = integration_type


class CredentialDecryptionError(IntegrationError):
    """Stored credentials could not be decrypted or parsed."""


class TokenRefreshError(IntegrationError):
    """The OAuth access token could not be refreshed."""


class IntegrationConfigurationError(IntegrationError):
    """Required configuration (key, client id) is missing."""


class StoreError(IntegrationError):
    """The integration record store failed."""
