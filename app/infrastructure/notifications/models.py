"""Integration notification core models.

Provider-agnostic models shared by the dispatcher, the channels and the
formatters. Features emit an ``IntegrationEvent``; infrastructure decides
which integrations receive it and records the outcome.

Uses Pydantic BaseModel for:
- camelCase/snake_case tolerant parsing of stored records and credentials
- Runtime input validation
- Serialization of results and audit rows
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class IntegrationType(str, Enum):
    """Supported third-party providers."""

    SLACK = "slack"
    DISCORD = "discord"
    TEAMS = "teams"
    GOOGLE_CALENDAR = "google_calendar"
    TRELLO = "trello"
    GOOGLE_DRIVE = "google_drive"
    GMAIL = "gmail"


WEBHOOK_INTEGRATION_TYPES = frozenset(
    {IntegrationType.SLACK, IntegrationType.DISCORD, IntegrationType.TEAMS}
)
GOOGLE_OAUTH_INTEGRATION_TYPES = frozenset(
    {
        IntegrationType.GOOGLE_CALENDAR,
        IntegrationType.GOOGLE_DRIVE,
        IntegrationType.GMAIL,
    }
)


class IntegrationStatus(str, Enum):
    """Connection state of an integration.

    Transitions: disconnected -> connected <-> error. Only the dispatcher
    moves an integration between connected and error.
    """

    CONNECTED = "connected"
    ERROR = "error"
    DISCONNECTED = "disconnected"
    PENDING = "pending"


# Event vocabulary emitted by the platform. Unknown types are still accepted.
EVENT_TYPES = frozenset(
    {
        "project.created",
        "project.updated",
        "project.deleted",
        "deliverable.submitted",
        "deliverable.reviewed",
        "deliverable.updated",
        "comment.added",
        "member.joined",
        "member.updated",
        "member.removed",
        "event.created",
        "event.updated",
        "event.reminder",
        "organization.settings.updated",
    }
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IntegrationEvent(BaseModel):
    """Domain event to fan out to every subscribed integration.

    Attributes:
        type: Event type, e.g. ``deliverable.submitted``
        data: Free-form payload; formatters read it defensively
        user_id: Owner used for scoping when no organisation is given
        organisation_id: Organisation scope, takes precedence over user_id
        timestamp: Emission time (defaults to now, UTC)

    Example:
        event = IntegrationEvent(
            type="project.created",
            data={"id": "p1", "name": "Café Solidaire"},
            organisationId="org-1",
        )
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str
    data: Dict[str, Any] = Field(default_factory=dict)
    user_id: Optional[str] = Field(default=None, alias="userId")
    organisation_id: Optional[str] = Field(default=None, alias="organisationId")
    timestamp: datetime = Field(default_factory=_utcnow)


class Integration(BaseModel):
    """Stored integration record.

    ``credentials`` is ciphertext; it is only decrypted inside a single
    dispatch. ``integration_type`` keeps unrecognised values as raw strings
    so that one bad record fails alone instead of failing the whole query.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    integration_type: Union[IntegrationType, str] = Field(union_mode="left_to_right")
    credentials: str = ""
    settings: Dict[str, Any] = Field(default_factory=dict)
    status: IntegrationStatus = IntegrationStatus.PENDING
    error_message: Optional[str] = None
    last_used_at: Optional[datetime] = None
    connected_at: Optional[datetime] = None
    user_id: Optional[str] = None
    organisation_id: Optional[str] = None

    def is_subscribed_to(self, event_type: str) -> bool:
        """Check whether ``settings.events`` lists the event type.

        A missing or non-list ``events`` setting means not subscribed.
        """
        events = self.settings.get("events")
        return isinstance(events, list) and event_type in events


class _CredentialModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    def to_payload(self) -> Dict[str, Any]:
        """Serialize in the camelCase shape stored in encrypted form."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class WebhookCredentials(_CredentialModel):
    """Slack, Discord and Teams incoming webhook."""

    webhook_url: str


class GoogleOAuthCredentials(_CredentialModel):
    """Google bearer token set shared by Gmail, Calendar and Drive."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    scope: Optional[str] = None
    email: Optional[str] = None


class TrelloCredentials(_CredentialModel):
    """Trello API key and user token."""

    api_key: str
    token: str
    user_id: Optional[str] = None
    username: Optional[str] = None
    full_name: Optional[str] = None


IntegrationCredentials = Union[
    WebhookCredentials, GoogleOAuthCredentials, TrelloCredentials
]


class SendNotificationResult(BaseModel):
    """Outcome of one delivery attempt. Channels return it, never raise.

    Attributes:
        success: Whether the provider accepted the request
        status_code: Provider HTTP status, when a response arrived
        duration: Wall-clock duration in milliseconds
        error: Error text on failure
        refreshed_credentials: New OAuth credentials when the access token
            was refreshed during the call, so the caller can persist them
    """

    success: bool
    status_code: Optional[int] = None
    duration: int = 0
    error: Optional[str] = None
    refreshed_credentials: Optional[GoogleOAuthCredentials] = Field(
        default=None, exclude=True
    )


class TestConnectionResult(BaseModel):
    """User-facing outcome of a connection test (French text)."""

    __test__ = False

    success: bool
    message: str
    details: Optional[str] = None
    refreshed_credentials: Optional[GoogleOAuthCredentials] = Field(
        default=None, exclude=True
    )


class SyncResult(BaseModel):
    """Outcome of an update or delete on an item created earlier.

    Attributes:
        success: Whether the provider accepted the request
        resource_id: Provider id of the calendar event or card
        resource_url: Provider link to the item, when returned
        status_code: Provider HTTP status, when a response arrived
        error: Error text on failure
        refreshed_credentials: New OAuth credentials when the access token
            was refreshed during the call
    """

    success: bool
    resource_id: Optional[str] = None
    resource_url: Optional[str] = None
    status_code: Optional[int] = None
    error: Optional[str] = None
    refreshed_credentials: Optional[GoogleOAuthCredentials] = Field(
        default=None, exclude=True
    )


class IntegrationLogEntry(BaseModel):
    """Append-only audit row, one per dispatch attempt."""

    integration_id: str
    event_type: str
    success: bool
    duration_ms: Optional[int] = None
    status_code: Optional[int] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class IntegrationStats(BaseModel):
    """Aggregates over the audit log of one integration."""

    total_calls: int
    successful_calls: int
    failed_calls: int
    success_rate: int
    avg_duration: int


__all__: List[str] = [
    "EVENT_TYPES",
    "GOOGLE_OAUTH_INTEGRATION_TYPES",
    "WEBHOOK_INTEGRATION_TYPES",
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
]
