"""Credential store adapter.

Integration credentials are stored as an opaque ciphertext string. The
cipher turns that string into the provider's JSON document and back; the
adapter functions here parse the document into the typed credential model
for the integration type.

Usage:
    from infrastructure.notifications.credentials import (
        FernetCredentialCipher,
        decrypt_credentials,
    )

    cipher = FernetCredentialCipher(key)
    credentials = decrypt_credentials(cipher, integration.credentials, "slack")
"""

import json
from typing import Any, Dict, Optional, Protocol, Type, Union

from cryptography.fernet import Fernet, InvalidToken
from pydantic import ValidationError

from infrastructure.configuration import settings
from infrastructure.logging import get_module_logger
from infrastructure.notifications.errors import (
    CredentialDecryptionError,
    IntegrationConfigurationError,
    UnknownIntegrationTypeError,
)
from infrastructure.notifications.models import (
    GOOGLE_OAUTH_INTEGRATION_TYPES,
    WEBHOOK_INTEGRATION_TYPES,
    GoogleOAuthCredentials,
    IntegrationCredentials,
    IntegrationType,
    TrelloCredentials,
    WebhookCredentials,
)

logger = get_module_logger()


class CredentialCipher(Protocol):
    """Opaque encryption boundary for stored credentials."""

    def decrypt(self, ciphertext: str) -> Dict[str, Any]:
        """Return the decrypted credential document."""
        ...

    def encrypt(self, payload: Dict[str, Any]) -> str:
        """Return ciphertext for the credential document."""
        ...


class FernetCredentialCipher:
    """Symmetric cipher backed by ``cryptography.fernet``.

    The credential document is serialized to JSON, then encrypted into a
    URL-safe token string suitable for a text column.

    Args:
        key: urlsafe base64 Fernet key. Defaults to
            ``settings.credentials.INTEGRATION_CREDENTIALS_KEY``.

    Raises:
        IntegrationConfigurationError: If no key is configured or the key is
            malformed.
    """

    def __init__(self, key: Optional[Union[str, bytes]] = None):
        key = key or settings.credentials.INTEGRATION_CREDENTIALS_KEY
        if not key:
            raise IntegrationConfigurationError(
                "INTEGRATION_CREDENTIALS_KEY is not configured"
            )
        try:
            self._fernet = Fernet(key)
        except (ValueError, TypeError) as e:
            raise IntegrationConfigurationError(
                f"Invalid credential encryption key: {e}"
            ) from e

    def decrypt(self, ciphertext: str) -> Dict[str, Any]:
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as e:
            raise CredentialDecryptionError("Failed to decrypt credentials") from e

        try:
            payload = json.loads(plaintext.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CredentialDecryptionError(
                "Decrypted credentials are not valid JSON"
            ) from e

        if not isinstance(payload, dict):
            raise CredentialDecryptionError("Decrypted credentials are not an object")
        return payload

    def encrypt(self, payload: Dict[str, Any]) -> str:
        plaintext = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        return self._fernet.encrypt(plaintext).decode("utf-8")


def credential_model_for(
    integration_type: Union[IntegrationType, str],
) -> Type[IntegrationCredentials]:
    """Return the credential model used by an integration type.

    Raises:
        UnknownIntegrationTypeError: For types outside the supported set.
    """
    try:
        kind = IntegrationType(integration_type)
    except ValueError as e:
        raise UnknownIntegrationTypeError(str(integration_type)) from e

    if kind in WEBHOOK_INTEGRATION_TYPES:
        return WebhookCredentials
    if kind in GOOGLE_OAUTH_INTEGRATION_TYPES:
        return GoogleOAuthCredentials
    return TrelloCredentials


def parse_credentials(
    payload: Dict[str, Any], integration_type: Union[IntegrationType, str]
) -> IntegrationCredentials:
    """Validate a decrypted document into the typed credential model.

    Raises:
        CredentialDecryptionError: If required fields are missing.
        UnknownIntegrationTypeError: For unsupported integration types.
    """
    model = credential_model_for(integration_type)
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise CredentialDecryptionError(
            f"Invalid credentials for {integration_type}: "
            f"{e.error_count()} validation error(s)"
        ) from e


def decrypt_credentials(
    cipher: CredentialCipher,
    ciphertext: str,
    integration_type: Union[IntegrationType, str],
) -> IntegrationCredentials:
    """Decrypt stored ciphertext into typed credentials.

    Args:
        cipher: Cipher used by the credential store
        ciphertext: Stored credential string
        integration_type: Integration type selecting the credential model

    Returns:
        WebhookCredentials, GoogleOAuthCredentials or TrelloCredentials
    """
    if not ciphertext:
        raise CredentialDecryptionError("No credentials stored")
    return parse_credentials(cipher.decrypt(ciphertext), integration_type)


def encrypt_credentials(
    cipher: CredentialCipher, credentials: IntegrationCredentials
) -> str:
    """Encrypt typed credentials back into the stored ciphertext format."""
    return cipher.encrypt(credentials.to_payload())
