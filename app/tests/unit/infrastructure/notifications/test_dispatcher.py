"""Unit tests for IntegrationDispatcher.

Channels are mocked; the in-memory store and a real Fernet cipher are used
so status transitions, audit rows and credential persistence are observed
end to end.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
import requests

from infrastructure.configuration import settings
from infrastructure.notifications.channels import SlackChannel
from infrastructure.notifications.channels.base import IntegrationChannel
from infrastructure.notifications.channels.http import ProviderHttpClient
from infrastructure.notifications.credentials import (
    FernetCredentialCipher,
    decrypt_credentials,
)
from infrastructure.notifications.dispatcher import (
    IntegrationDispatcher,
    get_integration_dispatcher,
)
from infrastructure.notifications.models import (
    IntegrationStatus,
    IntegrationType,
    SendNotificationResult,
    TestConnectionResult,
)
from infrastructure.notifications.store import InMemoryIntegrationStore, IntegrationStore
from tests.factories.notifications import (
    DISCORD_WEBHOOK_URL,
    FIXED_NOW,
    SLACK_WEBHOOK_URL,
    TEAMS_WEBHOOK_URL,
    make_event,
    make_google_credentials,
    make_integration,
    make_log_entry,
    make_trello_credentials,
    make_webhook_credentials,
)


def make_channel(integration_type, result=None):
    channel = MagicMock(spec=IntegrationChannel)
    channel.integration_type = integration_type
    channel.send_notification.return_value = result or SendNotificationResult(
        success=True, status_code=200, duration=12
    )
    channel.test_connection.return_value = TestConnectionResult(
        success=True, message="Connexion réussie!"
    )
    return channel


@pytest.fixture
def channels():
    return {
        IntegrationType.SLACK: make_channel(IntegrationType.SLACK),
        IntegrationType.DISCORD: make_channel(IntegrationType.DISCORD),
        IntegrationType.TEAMS: make_channel(IntegrationType.TEAMS),
        IntegrationType.GMAIL: make_channel(IntegrationType.GMAIL),
    }


@pytest.fixture
def dispatcher(store, cipher, channels, fixed_clock):
    return IntegrationDispatcher(store, cipher, channels=channels, clock=fixed_clock)


@pytest.fixture
def add(store, cipher):
    """Store an integration with encrypted credentials."""

    def _add(integration_id, integration_type, credentials=None, **kwargs):
        credentials = credentials or make_webhook_credentials()
        store.add_integration(
            make_integration(
                integration_id,
                integration_type=integration_type,
                credentials=cipher.encrypt(credentials.to_payload()),
                **kwargs,
            )
        )

    return _add


def rejected(error):
    return SendNotificationResult(success=False, status_code=404, duration=7, error=error)


@pytest.mark.unit
class TestNotifyEvent:
    @pytest.mark.asyncio
    async def test_no_integrations(self, dispatcher, channels, store):
        """An event with no subscribers is a no-op."""
        await dispatcher.notify_event(make_event())

        for channel in channels.values():
            channel.send_notification.assert_not_called()

    @pytest.mark.asyncio
    async def test_fan_out_isolates_failures(self, dispatcher, channels, store, add):
        """One success and two failures give three audit rows and two errors."""
        add("slack-1", IntegrationType.SLACK)
        add("discord-1", IntegrationType.DISCORD, make_webhook_credentials(DISCORD_WEBHOOK_URL))
        add("teams-1", IntegrationType.TEAMS, make_webhook_credentials(TEAMS_WEBHOOK_URL))
        channels[IntegrationType.DISCORD].send_notification.return_value = rejected(
            "Discord API error: 404 - Unknown Webhook"
        )
        channels[IntegrationType.TEAMS].send_notification.side_effect = RuntimeError("boom")

        await dispatcher.notify_event(make_event())

        slack = store.get_integration("slack-1")
        assert slack.status == IntegrationStatus.CONNECTED
        assert slack.last_used_at == FIXED_NOW
        assert slack.error_message is None

        discord = store.get_integration("discord-1")
        assert discord.status == IntegrationStatus.ERROR
        assert discord.error_message == "Discord API error: 404 - Unknown Webhook"

        teams = store.get_integration("teams-1")
        assert teams.status == IntegrationStatus.ERROR
        assert teams.error_message == "boom"

        rows = [
            row
            for integration_id in ("slack-1", "discord-1", "teams-1")
            for row in store.query_logs(integration_id)
        ]
        assert [row.success for row in rows] == [True, False, False]
        assert rows[1].status_code == 404
        assert all(row.created_at == FIXED_NOW for row in rows)
        assert all(row.event_type == "project.created" for row in rows)

    @pytest.mark.asyncio
    async def test_channel_receives_decrypted_credentials_and_settings(
        self, dispatcher, channels, add
    ):
        add("slack-1", IntegrationType.SLACK, events=["project.created"])
        event = make_event()

        await dispatcher.notify_event(event)

        credentials, sent_event, settings = channels[
            IntegrationType.SLACK
        ].send_notification.call_args.args
        assert credentials.webhook_url == SLACK_WEBHOOK_URL
        assert sent_event == event
        assert settings == {"events": ["project.created"]}

    @pytest.mark.asyncio
    async def test_unsubscribed_and_malformed_settings_skipped(
        self, dispatcher, channels, add
    ):
        add("other-event", IntegrationType.SLACK, events=["comment.added"])
        add("string-events", IntegrationType.DISCORD, settings={"events": "project.created"})
        add("no-events", IntegrationType.TEAMS, settings={})

        await dispatcher.notify_event(make_event())

        for channel in channels.values():
            channel.send_notification.assert_not_called()

    @pytest.mark.asyncio
    async def test_only_connected_integrations(self, dispatcher, channels, add):
        add("slack-1", IntegrationType.SLACK, status=IntegrationStatus.ERROR)
        add("slack-2", IntegrationType.SLACK, status=IntegrationStatus.DISCONNECTED)

        await dispatcher.notify_event(make_event())

        channels[IntegrationType.SLACK].send_notification.assert_not_called()

    @pytest.mark.asyncio
    async def test_other_organisation_not_notified(self, dispatcher, channels, add):
        add("slack-1", IntegrationType.SLACK, organisation_id="org-2")

        await dispatcher.notify_event(make_event(organisation_id="org-1"))

        channels[IntegrationType.SLACK].send_notification.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_query_failure_swallowed(self, cipher, channels):
        store = MagicMock(spec=IntegrationStore)
        store.query_integrations.side_effect = RuntimeError("database down")
        dispatcher = IntegrationDispatcher(store, cipher, channels=channels)

        await dispatcher.notify_event(make_event())

        store.insert_log.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_type_fails_alone(self, dispatcher, channels, store, add):
        """An unroutable record gets an error row; others still deliver."""
        add("slack-1", IntegrationType.SLACK)
        add("pigeon-1", "carrier_pigeon")

        await dispatcher.notify_event(make_event())

        assert store.get_integration("slack-1").status == IntegrationStatus.CONNECTED
        pigeon = store.get_integration("pigeon-1")
        assert pigeon.status == IntegrationStatus.ERROR
        assert pigeon.error_message == "Unknown integration type: carrier_pigeon"
        [row] = store.query_logs("pigeon-1")
        assert not row.success

    @pytest.mark.asyncio
    async def test_undecryptable_credentials_fail_alone(self, dispatcher, channels, store):
        store.add_integration(
            make_integration("slack-1", credentials="not-a-fernet-token")
        )

        await dispatcher.notify_event(make_event())

        channels[IntegrationType.SLACK].send_notification.assert_not_called()
        assert store.get_integration("slack-1").status == IntegrationStatus.ERROR

    @pytest.mark.asyncio
    async def test_status_write_failure_still_logs_attempt(self, cipher, channels):
        store = MagicMock(spec=IntegrationStore)
        store.query_integrations.return_value = [
            make_integration(
                "slack-1", credentials=cipher.encrypt(make_webhook_credentials().to_payload())
            )
        ]
        store.update_integration.side_effect = RuntimeError("write failed")
        dispatcher = IntegrationDispatcher(store, cipher, channels=channels)

        await dispatcher.notify_event(make_event())

        store.insert_log.assert_called_once()

    @pytest.mark.asyncio
    async def test_refreshed_credentials_persisted(self, dispatcher, channels, store, cipher, add):
        """Tokens refreshed during delivery are re-encrypted into the record."""
        add("gmail-1", IntegrationType.GMAIL, make_google_credentials())
        refreshed = make_google_credentials(
            access_token="ya29.new", expires_in=timedelta(hours=2)
        )
        channels[IntegrationType.GMAIL].send_notification.return_value = (
            SendNotificationResult(
                success=True, duration=5, refreshed_credentials=refreshed
            )
        )

        await dispatcher.notify_event(make_event())

        record = store.get_integration("gmail-1")
        assert decrypt_credentials(cipher, record.credentials, "gmail") == refreshed

    @pytest.mark.asyncio
    async def test_refused_connection_does_not_store_webhook_secret(
        self, store, cipher, fixed_clock, mock_session, add
    ):
        """requests names the webhook path in its error; none of it is stored."""
        mock_session.request.side_effect = requests.ConnectionError(
            "HTTPSConnectionPool(host='hooks.slack.com', port=443): Max retries "
            "exceeded with url: /services/T0001/B0001/XXXXXXXXXXXXXXXX"
        )
        slack = SlackChannel(http_client=ProviderHttpClient(session=mock_session))
        dispatcher = IntegrationDispatcher(
            store, cipher, channels={IntegrationType.SLACK: slack}, clock=fixed_clock
        )
        add("slack-1", IntegrationType.SLACK)

        await dispatcher.notify_event(make_event())

        record = store.get_integration("slack-1")
        [row] = store.query_logs("slack-1")
        assert record.status == IntegrationStatus.ERROR
        assert record.error_message == "Connection error: ConnectionError"
        assert row.error_message == "Connection error: ConnectionError"

    @pytest.mark.asyncio
    async def test_channel_error_text_scrubbed_before_storing(
        self, dispatcher, channels, store, add
    ):
        add("slack-1", IntegrationType.SLACK)
        add("trello-1", IntegrationType.TRELLO, make_trello_credentials())
        channels[IntegrationType.SLACK].send_notification.return_value = rejected(
            "Failed: https://hooks.slack.com/services/T0001/B0001/XXXXXXXXXXXXXXXX"
        )
        channels[IntegrationType.TRELLO] = make_channel(
            IntegrationType.TRELLO,
            rejected("Failed: /1/cards?key=APIKEY&token=TRELLOTOKEN&name=x"),
        )

        await dispatcher.notify_event(make_event())

        slack = store.get_integration("slack-1").error_message
        trello = store.get_integration("trello-1").error_message
        assert slack == "Failed: https://hooks.slack.com/services/***"
        assert trello == "Failed: /1/cards?key=***&token=***&name=x"
        assert store.query_logs("trello-1")[0].error_message == trello

    @pytest.mark.asyncio
    async def test_connection_test_then_failed_delivery(
        self, dispatcher, channels, store, add
    ):
        """A record fixed by a connection test goes back to error on failure."""
        add(
            "discord-1",
            IntegrationType.DISCORD,
            make_webhook_credentials(DISCORD_WEBHOOK_URL),
            status=IntegrationStatus.ERROR,
        )
        store.update_integration("discord-1", {"error_message": "Webhook non trouvé"})

        result = await dispatcher.test_connection("discord-1")

        record = store.get_integration("discord-1")
        assert result.success
        assert record.status == IntegrationStatus.CONNECTED
        assert record.error_message is None

        channels[IntegrationType.DISCORD].send_notification.return_value = rejected(
            "Discord API error: 404 - Unknown Webhook"
        )
        await dispatcher.notify_event(make_event())

        record = store.get_integration("discord-1")
        assert record.status == IntegrationStatus.ERROR
        assert record.error_message == "Discord API error: 404 - Unknown Webhook"
        [row] = store.query_logs("discord-1")
        assert not row.success

    def test_notify_event_sync(self, dispatcher, channels, store, add):
        add("slack-1", IntegrationType.SLACK)

        dispatcher.notify_event_sync(make_event())

        channels[IntegrationType.SLACK].send_notification.assert_called_once()
        assert len(store.query_logs("slack-1")) == 1


@pytest.mark.unit
class TestTestConnection:
    @pytest.mark.asyncio
    async def test_success_marks_connected(self, dispatcher, store, add):
        add("slack-1", IntegrationType.SLACK, status=IntegrationStatus.ERROR)

        result = await dispatcher.test_connection("slack-1")

        assert result.success
        record = store.get_integration("slack-1")
        assert record.status == IntegrationStatus.CONNECTED
        assert record.connected_at == FIXED_NOW
        assert record.error_message is None

    def test_failure_marks_error(self, dispatcher, channels, store, add):
        add("slack-1", IntegrationType.SLACK)
        channels[IntegrationType.SLACK].test_connection.return_value = TestConnectionResult(
            success=False, message="Webhook non trouvé", details="supprimé"
        )

        result = dispatcher.test_connection_sync("slack-1")

        assert not result.success
        record = store.get_integration("slack-1")
        assert record.status == IntegrationStatus.ERROR
        assert record.error_message == "Webhook non trouvé"

    def test_not_found(self, dispatcher):
        result = dispatcher.test_connection_sync("missing")

        assert not result.success
        assert result.message == "Intégration non trouvée"
        assert result.details == "L'intégration a peut-être été supprimée."

    def test_unknown_type(self, dispatcher, add):
        add("pigeon-1", "carrier_pigeon")

        result = dispatcher.test_connection_sync("pigeon-1")

        assert result.message == "Type d'intégration inconnu"
        assert result.details == "carrier_pigeon"

    def test_unexpected_error(self, dispatcher, store):
        store.add_integration(make_integration("slack-1", credentials="garbage"))

        result = dispatcher.test_connection_sync("slack-1")

        assert result.message == "Erreur lors du test de connexion"

    def test_status_write_failure_keeps_provider_result(self, cipher, channels):
        """A passing provider test is reported even when the status write fails."""
        store = MagicMock(spec=IntegrationStore)
        store.get_integration.return_value = make_integration(
            "slack-1", credentials=cipher.encrypt(make_webhook_credentials().to_payload())
        )
        store.update_integration.side_effect = RuntimeError("write failed")
        dispatcher = IntegrationDispatcher(store, cipher, channels=channels)

        result = dispatcher.test_connection_sync("slack-1")

        assert result.success
        assert result.message == "Connexion réussie!"
        store.update_integration.assert_called_once()

    def test_refreshed_credentials_persisted(self, dispatcher, channels, store, cipher, add):
        add("gmail-1", IntegrationType.GMAIL, make_google_credentials())
        refreshed = make_google_credentials(access_token="ya29.new")
        channels[IntegrationType.GMAIL].test_connection.return_value = TestConnectionResult(
            success=True, message="ok", refreshed_credentials=refreshed
        )

        dispatcher.test_connection_sync("gmail-1")

        record = store.get_integration("gmail-1")
        assert decrypt_credentials(cipher, record.credentials, "gmail") == refreshed


@pytest.mark.unit
class TestAuditQueries:
    def test_stats(self, dispatcher, store):
        store.insert_log(make_log_entry("int-1", success=True, duration_ms=100))
        store.insert_log(make_log_entry("int-1", success=False, duration_ms=100))

        stats = dispatcher.get_integration_stats("int-1")

        assert stats.total_calls == 2
        assert stats.successful_calls == 1
        assert stats.failed_calls == 1
        assert stats.success_rate == 50
        assert stats.avg_duration == 100

    def test_stats_rounding_and_missing_durations(self, dispatcher, store):
        store.insert_log(make_log_entry("int-1", success=True, duration_ms=10))
        store.insert_log(make_log_entry("int-1", success=True, duration_ms=21))
        store.insert_log(make_log_entry("int-1", success=False, duration_ms=None))

        stats = dispatcher.get_integration_stats("int-1")

        assert stats.success_rate == 67
        assert stats.avg_duration == 16

    def test_stats_empty(self, dispatcher):
        stats = dispatcher.get_integration_stats("int-1")

        assert stats.total_calls == 0
        assert stats.success_rate == 0
        assert stats.avg_duration == 0

    def test_stats_store_failure(self, cipher, channels):
        store = MagicMock(spec=IntegrationStore)
        store.query_logs.side_effect = RuntimeError("down")
        dispatcher = IntegrationDispatcher(store, cipher, channels=channels)

        assert dispatcher.get_integration_stats("int-1") is None
        assert dispatcher.get_integration_logs("int-1") == []

    def test_logs_limit(self, dispatcher, store):
        for minute in range(5):
            store.insert_log(
                make_log_entry("int-1", created_at=FIXED_NOW + timedelta(minutes=minute))
            )

        logs = dispatcher.get_integration_logs("int-1", limit=2)

        assert [row.created_at for row in logs] == [
            FIXED_NOW + timedelta(minutes=4),
            FIXED_NOW + timedelta(minutes=3),
        ]

    def test_logs_default_limit(self, dispatcher, store):
        for _ in range(60):
            store.insert_log(make_log_entry("int-1"))

        assert len(dispatcher.get_integration_logs("int-1")) == 50


@pytest.mark.unit
class TestGetIntegrationDispatcher:
    @pytest.fixture(autouse=True)
    def _clear_cache(self):
        get_integration_dispatcher.cache_clear()
        yield
        get_integration_dispatcher.cache_clear()

    def test_default_wiring(self, monkeypatch, fernet_key):
        """Default instance uses the configured key and every channel."""
        monkeypatch.setattr(
            settings.credentials, "INTEGRATION_CREDENTIALS_KEY", fernet_key
        )

        dispatcher = get_integration_dispatcher()

        assert isinstance(dispatcher.store, InMemoryIntegrationStore)
        assert isinstance(dispatcher.cipher, FernetCredentialCipher)
        assert set(dispatcher.channels) == set(IntegrationType)
        assert get_integration_dispatcher() is dispatcher
