"""Unit tests for integration notification models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from infrastructure.notifications.models import (
    GoogleOAuthCredentials,
    Integration,
    IntegrationEvent,
    IntegrationStatus,
    IntegrationType,
    SendNotificationResult,
    TestConnectionResult,
    TrelloCredentials,
    WebhookCredentials,
)
from tests.factories.notifications import make_google_credentials, make_integration


@pytest.mark.unit
class TestIntegrationEvent:
    def test_accepts_camel_case_owner_fields(self):
        """Events emitted with userId/organisationId parse."""
        event = IntegrationEvent.model_validate(
            {"type": "project.created", "userId": "u-1", "organisationId": "org-1"}
        )

        assert event.user_id == "u-1"
        assert event.organisation_id == "org-1"

    def test_defaults(self):
        """Data defaults to empty and timestamp to now (UTC)."""
        event = IntegrationEvent(type="member.joined")

        assert event.data == {}
        assert event.timestamp.tzinfo is not None

    def test_is_immutable(self):
        event = IntegrationEvent(type="member.joined")

        with pytest.raises(ValidationError):
            event.type = "project.created"


@pytest.mark.unit
class TestIntegration:
    def test_known_type_parsed_to_enum(self):
        integration = make_integration(integration_type="discord")

        assert integration.integration_type == IntegrationType.DISCORD

    def test_unknown_type_kept_as_string(self):
        """Unrecognised types survive parsing so one bad row fails alone."""
        integration = make_integration(integration_type="carrier_pigeon")

        assert integration.integration_type == "carrier_pigeon"

    def test_default_status_is_pending(self):
        integration = Integration(id="i-1", integration_type="slack")

        assert integration.status == IntegrationStatus.PENDING

    @pytest.mark.parametrize(
        "settings,expected",
        [
            ({"events": ["project.created"]}, True),
            ({"events": ["comment.added"]}, False),
            ({}, False),
            ({"events": "project.created"}, False),
            ({"events": None}, False),
        ],
    )
    def test_is_subscribed_to(self, settings, expected):
        """Only a list containing the event type subscribes."""
        integration = make_integration(settings=settings)

        assert integration.is_subscribed_to("project.created") is expected


@pytest.mark.unit
class TestCredentialModels:
    def test_webhook_credentials_from_camel_case(self):
        """Stored documents use camelCase keys."""
        creds = WebhookCredentials.model_validate(
            {"webhookUrl": "https://hooks.slack.com/services/T/B/X"}
        )

        assert creds.webhook_url == "https://hooks.slack.com/services/T/B/X"

    def test_google_credentials_payload_round_trip_shape(self):
        """to_payload emits camelCase and drops empty optionals."""
        creds = GoogleOAuthCredentials(
            access_token="at",
            refresh_token="rt",
            expires_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )

        payload = creds.to_payload()

        assert payload["accessToken"] == "at"
        assert payload["refreshToken"] == "rt"
        assert payload["expiresAt"].startswith("2025-01-01T00:00:00")
        assert "email" not in payload

    def test_trello_credentials_ignore_unknown_fields(self):
        creds = TrelloCredentials.model_validate(
            {"apiKey": "k", "token": "t", "avatarUrl": "https://example.com/a.png"}
        )

        assert creds.api_key == "k"
        assert creds.token == "t"


@pytest.mark.unit
class TestResults:
    def test_refreshed_credentials_excluded_from_dump(self):
        """Refreshed tokens never leak into serialized results."""
        result = SendNotificationResult(
            success=True,
            duration=12,
            refreshed_credentials=make_google_credentials(),
        )

        dumped = result.model_dump()

        assert "refreshed_credentials" not in dumped
        assert dumped["duration"] == 12

    def test_connection_result_optional_details(self):
        result = TestConnectionResult(success=True, message="ok")

        assert result.details is None
        assert result.refreshed_credentials is None
