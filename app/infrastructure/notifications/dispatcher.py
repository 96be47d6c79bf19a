"""Integration notification dispatcher.

Fans one platform event out to every connected integration of the event's
owner that subscribes to the event type:
- Loads connected integrations for the organisation (or user)
- Filters on ``settings.events``
- Dispatches to each provider channel concurrently, all-settled
- Records status transitions and one audit row per attempt
- Persists OAuth credentials refreshed during delivery

Event notification is fire-and-forget: nothing raised by the store, the
cipher or a channel escapes ``notify_event``.

Usage Example:
    from infrastructure.notifications import (
        IntegrationEvent,
        get_integration_dispatcher,
    )

    dispatcher = get_integration_dispatcher()
    await dispatcher.notify_event(
        IntegrationEvent(
            type="deliverable.submitted",
            data={"id": "d-1", "name": "Business plan"},
            user_id="u-1",
            organisation_id="org-1",
        )
    )
"""

import asyncio
import time
from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable, Dict, List, Optional

from infrastructure.configuration import settings
from infrastructure.logging import bind_event_context, get_module_logger, scrub_secrets
from infrastructure.notifications.channels import build_default_channels
from infrastructure.notifications.channels.base import IntegrationChannel, elapsed_ms
from infrastructure.notifications.credentials import (
    CredentialCipher,
    FernetCredentialCipher,
    decrypt_credentials,
    encrypt_credentials,
)
from infrastructure.notifications.errors import UnknownIntegrationTypeError
from infrastructure.notifications.models import (
    Integration,
    IntegrationCredentials,
    IntegrationEvent,
    IntegrationLogEntry,
    IntegrationStats,
    IntegrationStatus,
    IntegrationType,
    SendNotificationResult,
    TestConnectionResult,
)
from infrastructure.notifications.store import InMemoryIntegrationStore, IntegrationStore

logger = get_module_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _stored_error(error: Optional[str]) -> Optional[str]:
    """Error text safe to persist: no webhook path or Trello key/token."""
    return scrub_secrets(error) if error else error


def _type_name(integration_type) -> str:
    return str(getattr(integration_type, "value", integration_type))


class IntegrationDispatcher:
    """Routes platform events to provider channels.

    Attributes:
        store: Integration and audit log persistence
        cipher: Credential cipher matching the stored ciphertext
        channels: Dict mapping integration type to channel instance
        clock: Returns the current aware UTC datetime
    """

    def __init__(
        self,
        store: IntegrationStore,
        cipher: CredentialCipher,
        channels: Optional[Dict[IntegrationType, IntegrationChannel]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize integration dispatcher.

        Args:
            store: Integration record store
            cipher: Cipher used to decrypt and re-encrypt credentials
            channels: Channel registry. Defaults to one channel per
                supported integration type.
            clock: Time source for status and audit timestamps
        """
        self.store = store
        self.cipher = cipher
        self.channels = channels if channels is not None else build_default_channels()
        self.clock = clock

        logger.info(
            "initialized_integration_dispatcher",
            channels=[_type_name(t) for t in self.channels],
            store=type(store).__name__,
        )

    # Event fan-out

    async def notify_event(self, event: IntegrationEvent) -> None:
        """Deliver an event to every subscribed connected integration.

        Never raises. Each integration is dispatched on a worker thread and
        failures are isolated to that integration.
        """
        with bind_event_context(
            event_type=event.type,
            user_id=event.user_id,
            organisation_id=event.organisation_id,
        ):
            try:
                integrations = await asyncio.to_thread(self._subscribed_integrations, event)
                if not integrations:
                    logger.info("no_integrations_subscribed")
                    return

                logger.info("notifying_integrations", integration_count=len(integrations))
                outcomes = await asyncio.gather(
                    *(
                        asyncio.to_thread(self._dispatch, integration, event)
                        for integration in integrations
                    ),
                    return_exceptions=True,
                )
            except Exception as e:  # pylint: disable=broad-except
                logger.error("notify_event_failed", error=str(e), exc_info=True)
                return

            for integration, outcome in zip(integrations, outcomes):
                if isinstance(outcome, BaseException):
                    logger.error(
                        "integration_dispatch_crashed",
                        integration_id=integration.id,
                        error=str(outcome),
                    )

            delivered = sum(
                1
                for outcome in outcomes
                if isinstance(outcome, SendNotificationResult) and outcome.success
            )
            logger.info(
                "event_notified",
                integration_count=len(integrations),
                success_count=delivered,
            )

    def notify_event_sync(self, event: IntegrationEvent) -> None:
        """Blocking wrapper for callers without a running event loop."""
        asyncio.run(self.notify_event(event))

    def _subscribed_integrations(self, event: IntegrationEvent) -> List[Integration]:
        try:
            integrations = self.store.query_integrations(
                user_id=event.user_id,
                organisation_id=event.organisation_id,
                status=IntegrationStatus.CONNECTED,
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.error("integration_query_failed", error=str(e), exc_info=True)
            return []

        return [i for i in integrations if i.is_subscribed_to(event.type)]

    def _channel_for(self, integration: Integration) -> IntegrationChannel:
        try:
            channel = self.channels.get(IntegrationType(integration.integration_type))
        except ValueError:
            channel = None
        if channel is None:
            raise UnknownIntegrationTypeError(
                _type_name(integration.integration_type), integration_id=integration.id
            )
        return channel

    def _dispatch(
        self, integration: Integration, event: IntegrationEvent
    ) -> SendNotificationResult:
        """Deliver to one integration, then record status and audit row.

        Runs on a worker thread. Exceptions from decryption, routing or the
        channel are turned into a failed result.
        """
        started = time.perf_counter()
        log = logger.bind(
            integration_id=integration.id,
            integration_type=_type_name(integration.integration_type),
        )
        try:
            channel = self._channel_for(integration)
            credentials = decrypt_credentials(
                self.cipher, integration.credentials, integration.integration_type
            )
            result = channel.send_notification(credentials, event, integration.settings)
        except Exception as e:  # pylint: disable=broad-except
            log.error("integration_dispatch_failed", error=str(e), exc_info=True)
            result = SendNotificationResult(
                success=False, duration=elapsed_ms(started), error=str(e) or type(e).__name__
            )

        if result.refreshed_credentials is not None:
            self._persist_credentials(integration.id, result.refreshed_credentials)

        if result.success:
            log.info("integration_notified", duration_ms=result.duration)
            self._update_status(
                integration.id,
                {
                    "last_used_at": self.clock(),
                    "error_message": None,
                    "status": IntegrationStatus.CONNECTED,
                },
            )
        else:
            log.warning(
                "integration_notification_failed",
                status_code=result.status_code,
                error=result.error,
            )
            self._update_status(
                integration.id,
                {
                    "status": IntegrationStatus.ERROR,
                    "error_message": _stored_error(result.error),
                },
            )

        self._record_attempt(
            IntegrationLogEntry(
                integration_id=integration.id,
                event_type=event.type,
                success=result.success,
                duration_ms=elapsed_ms(started),
                status_code=result.status_code,
                error_message=_stored_error(result.error),
                created_at=self.clock(),
            )
        )
        return result

    def _update_status(self, integration_id: str, changes: Dict[str, object]) -> None:
        try:
            self.store.update_integration(integration_id, changes)
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "integration_status_update_failed",
                integration_id=integration_id,
                error=str(e),
            )

    def _record_attempt(self, entry: IntegrationLogEntry) -> None:
        try:
            self.store.insert_log(entry)
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "integration_log_write_failed",
                integration_id=entry.integration_id,
                error=str(e),
            )

    def _persist_credentials(
        self, integration_id: str, credentials: IntegrationCredentials
    ) -> None:
        try:
            ciphertext = encrypt_credentials(self.cipher, credentials)
            self.store.update_integration(integration_id, {"credentials": ciphertext})
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "refreshed_credentials_persist_failed",
                integration_id=integration_id,
                error=str(e),
            )
            return
        logger.info("refreshed_credentials_persisted", integration_id=integration_id)

    # Connection test

    async def test_connection(self, integration_id: str) -> TestConnectionResult:
        """Test stored credentials and update the integration status.

        Returns:
            TestConnectionResult with a user-facing French message. Never
            raises.
        """
        return await asyncio.to_thread(self.test_connection_sync, integration_id)

    def test_connection_sync(self, integration_id: str) -> TestConnectionResult:
        """Blocking form of ``test_connection``."""
        log = logger.bind(integration_id=integration_id)
        try:
            integration = self.store.get_integration(integration_id)
            if integration is None:
                return TestConnectionResult(
                    success=False,
                    message="Intégration non trouvée",
                    details="L'intégration a peut-être été supprimée.",
                )

            try:
                channel = self._channel_for(integration)
            except UnknownIntegrationTypeError:
                return TestConnectionResult(
                    success=False,
                    message="Type d'intégration inconnu",
                    details=_type_name(integration.integration_type),
                )

            credentials = decrypt_credentials(
                self.cipher, integration.credentials, integration.integration_type
            )
            result = channel.test_connection(credentials)

            if result.refreshed_credentials is not None:
                self._persist_credentials(integration_id, result.refreshed_credentials)

            if result.success:
                self._update_status(
                    integration_id,
                    {
                        "status": IntegrationStatus.CONNECTED,
                        "connected_at": self.clock(),
                        "error_message": None,
                    },
                )
            else:
                self._update_status(
                    integration_id,
                    {
                        "status": IntegrationStatus.ERROR,
                        "error_message": _stored_error(result.message),
                    },
                )
            log.info(
                "integration_connection_tested",
                success=result.success,
                message=result.message,
            )
            return result
        except Exception as e:  # pylint: disable=broad-except
            log.error("integration_connection_test_failed", error=str(e), exc_info=True)
            return TestConnectionResult(
                success=False,
                message="Erreur lors du test de connexion",
                details=str(e) or "Une erreur inconnue s'est produite",
            )

    # Audit log queries

    def get_integration_logs(
        self, integration_id: str, limit: Optional[int] = None
    ) -> List[IntegrationLogEntry]:
        """Most recent audit rows first. Store errors give an empty list."""
        if limit is None:
            limit = settings.notifications.INTEGRATION_LOG_LIMIT
        try:
            return self.store.query_logs(integration_id, limit=limit)
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "integration_logs_query_failed", integration_id=integration_id, error=str(e)
            )
            return []

    def get_integration_stats(self, integration_id: str) -> Optional[IntegrationStats]:
        """Aggregate delivery statistics over all audit rows.

        Returns:
            IntegrationStats, or None when the store cannot be read.
        """
        try:
            entries = self.store.query_logs(integration_id)
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "integration_stats_query_failed", integration_id=integration_id, error=str(e)
            )
            return None

        total = len(entries)
        successful = sum(1 for entry in entries if entry.success)
        durations = [entry.duration_ms for entry in entries if entry.duration_ms is not None]
        return IntegrationStats(
            total_calls=total,
            successful_calls=successful,
            failed_calls=total - successful,
            success_rate=round(successful / total * 100) if total else 0,
            avg_duration=round(sum(durations) / len(durations)) if durations else 0,
        )


@lru_cache
def get_integration_dispatcher() -> IntegrationDispatcher:
    """Get the process-wide dispatcher.

    Uses the Fernet cipher keyed from settings and an in-process store.
    Deployments with a database build their own ``IntegrationDispatcher``
    around an ``IntegrationStore`` implementation.
    """
    return IntegrationDispatcher(
        store=InMemoryIntegrationStore(),
        cipher=FernetCredentialCipher(),
    )
