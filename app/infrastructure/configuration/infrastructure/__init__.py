"""Infrastructure settings."""

from infrastructure.configuration.infrastructure.credentials import CredentialSettings

__all__ = ["CredentialSettings"]
