"""Integration notification dispatch.

Delivers platform events (projects, deliverables, comments, members,
calendar events) to the third-party tools an organisation has connected:
Slack, Discord, Teams, Gmail, Google Calendar, Google Drive and Trello.

Usage:
    from infrastructure.notifications import (
        IntegrationEvent,
        get_integration_dispatcher,
    )

    dispatcher = get_integration_dispatcher()
    await dispatcher.notify_event(
        IntegrationEvent(
            type="project.created",
            data={"id": "p-1", "name": "Boulangerie"},
            user_id="u-1",
            organisation_id="org-1",
        )
    )

    result = await dispatcher.test_connection("integration-id")
    stats = dispatcher.get_integration_stats("integration-id")
"""

# Models
from infrastructure.notifications.models import (
    EVENT_TYPES,
    GoogleOAuthCredentials,
    Integration,
    IntegrationCredentials,
    IntegrationEvent,
    IntegrationLogEntry,
    IntegrationStats,
    IntegrationStatus,
    IntegrationType,
    SendNotificationResult,
    SyncResult,
    TestConnectionResult,
    TrelloCredentials,
    WebhookCredentials,
)

# Errors
from infrastructure.notifications.errors import (
    CredentialDecryptionError,
    IntegrationConfigurationError,
    IntegrationError,
    StoreError,
    TokenRefreshError,
    UnknownIntegrationTypeError,
)

# Persistence and credentials
from infrastructure.notifications.store import (
    InMemoryIntegrationStore,
    IntegrationStore,
)
from infrastructure.notifications.credentials import (
    CredentialCipher,
    FernetCredentialCipher,
    decrypt_credentials,
    encrypt_credentials,
)

# Channels
from infrastructure.notifications.channels import (
    IntegrationChannel,
    build_default_channels,
)

# Dispatcher
from infrastructure.notifications.dispatcher import (
    IntegrationDispatcher,
    get_integration_dispatcher,
)

__all__ = [
    # Models
    "EVENT_TYPES",
    "GoogleOAuthCredentials",
    "Integration",
    "IntegrationCredentials",
    "IntegrationEvent",
    "IntegrationLogEntry",
    "IntegrationStats",
    "IntegrationStatus",
    "IntegrationType",
    "SendNotificationResult",
    "SyncResult",
    "TestConnectionResult",
    "TrelloCredentials",
    "WebhookCredentials",
    # Errors
    "CredentialDecryptionError",
    "IntegrationConfigurationError",
    "IntegrationError",
    "StoreError",
    "TokenRefreshError",
    "UnknownIntegrationTypeError",
    # Persistence and credentials
    "InMemoryIntegrationStore",
    "IntegrationStore",
    "CredentialCipher",
    "FernetCredentialCipher",
    "decrypt_credentials",
    "encrypt_credentials",
    # Channels
    "IntegrationChannel",
    "build_default_channels",
    # Dispatcher
    "IntegrationDispatcher",
    "get_integration_dispatcher",
]
