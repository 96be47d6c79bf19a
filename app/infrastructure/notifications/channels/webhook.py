"""Incoming-webhook channel base shared by Slack, Discord and Teams.

Delivery is a single JSON POST to the stored webhook URL. The connection
test validates the URL shape first, then posts a visible test message and
maps provider statuses to French messages.
"""

import time
from abc import abstractmethod
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

from infrastructure.configuration import settings
from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.base import IntegrationChannel
from infrastructure.notifications.channels.http import ProviderHttpClient
from infrastructure.notifications.models import (
    IntegrationEvent,
    SendNotificationResult,
    TestConnectionResult,
    WebhookCredentials,
)
from infrastructure.operations import OperationResult

logger = get_module_logger()


class WebhookChannel(IntegrationChannel):
    """Base class for incoming-webhook providers.

    Subclasses set ``provider_name``, the formatter, the invalid-URL texts
    and implement ``is_valid_webhook_url``.

    Attributes:
        provider_name: Display name used in messages (Slack, Discord, Teams)
        invalid_url_message: Message returned for a malformed webhook URL
        invalid_url_details: Expected URL format shown to the user
        not_found_details: Details for a 404 from the webhook
    """

    provider_name: str = ""
    invalid_url_message: str = ""
    invalid_url_details: str = ""
    not_found_details: str = ""

    def __init__(self, formatter, http_client: Optional[ProviderHttpClient] = None):
        """Initialize webhook channel.

        Args:
            formatter: Event formatter with ``format_event`` and
                ``create_test_message``
            http_client: Client used for webhook calls. Defaults to one
                using ``WEBHOOK_TIMEOUT_SECONDS``.
        """
        self.formatter = formatter
        self._http = http_client or ProviderHttpClient(
            timeout=settings.notifications.WEBHOOK_TIMEOUT_SECONDS
        )
        self._logger = logger.bind(channel=self.integration_type.value)

    @abstractmethod
    def is_valid_webhook_url(self, url: str) -> bool:
        """Check the webhook URL shape for this provider."""

    def send_notification(
        self,
        credentials: WebhookCredentials,
        event: IntegrationEvent,
        settings: Optional[Mapping[str, Any]] = None,
    ) -> SendNotificationResult:
        started = time.perf_counter()
        try:
            message = self.formatter.format_event(event, settings)
            result = self._http.post(credentials.webhook_url, json_data=message)
        except Exception as e:  # pylint: disable=broad-except
            self._logger.error("webhook_send_failed", error=str(e), exc_info=True)
            return self.failure(started, str(e) or "Unknown error")

        if result.is_success:
            return self.delivered(started, status_code=result.status_code)

        error = self._transport_error(result)
        self._logger.warning(
            "webhook_send_rejected",
            event_type=event.type,
            status_code=result.status_code,
            error_code=result.error_code,
        )
        return self.failure(started, error, status_code=result.status_code)

    def test_connection(self, credentials: WebhookCredentials) -> TestConnectionResult:
        if not self.is_valid_webhook_url(credentials.webhook_url):
            return TestConnectionResult(
                success=False,
                message=self.invalid_url_message,
                details=self.invalid_url_details,
            )

        try:
            result = self._http.post(
                credentials.webhook_url,
                json_data=self.formatter.create_test_message(),
            )
        except Exception as e:  # pylint: disable=broad-except
            self._logger.error("webhook_test_failed", error=str(e), exc_info=True)
            return TestConnectionResult(
                success=False,
                message="Erreur lors du test",
                details=str(e) or "Une erreur inconnue s'est produite",
            )

        if result.is_success:
            return TestConnectionResult(
                success=True,
                message=(
                    f"Connexion réussie! Vérifiez votre channel {self.provider_name} "
                    "pour voir le message de test."
                ),
            )
        return self._test_failure(result)

    def _transport_error(self, result: OperationResult) -> str:
        if result.status_code is None:
            return result.message
        return f"{self.provider_name} API error: {result.status_code} - {result.text}"

    def _status_messages(self, result: OperationResult) -> Dict[int, TestConnectionResult]:
        """Known webhook statuses and their user-facing explanation."""
        provider = self.provider_name
        if result.retry_after:
            wait = f"Réessayez dans {result.retry_after} secondes."
        else:
            wait = "Attendez quelques instants avant de réessayer."
        return {
            401: TestConnectionResult(
                success=False,
                message="Webhook non autorisé",
                details="Le token du webhook est invalide. Vérifiez l'URL complète du webhook.",
            ),
            404: TestConnectionResult(
                success=False,
                message="Webhook non trouvé",
                details=self.not_found_details,
            ),
            410: TestConnectionResult(
                success=False,
                message="Webhook désactivé",
                details=f"Le webhook a été désactivé dans {provider}. Créez un nouveau webhook.",
            ),
            429: TestConnectionResult(
                success=False,
                message="Trop de requêtes",
                details=f"Vous avez dépassé la limite de taux de {provider}. {wait}",
            ),
        }

    def _error_details(self, result: OperationResult) -> str:
        return result.text or "Erreur inconnue"

    def _test_failure(self, result: OperationResult) -> TestConnectionResult:
        provider = self.provider_name
        if result.is_timeout:
            return TestConnectionResult(
                success=False,
                message="Délai d'attente dépassé",
                details=(
                    f"La connexion à {provider} a pris trop de temps. "
                    "Vérifiez votre connexion internet."
                ),
            )
        if result.is_connection_error:
            return TestConnectionResult(
                success=False,
                message="Erreur de connexion",
                details=(
                    f"Impossible de contacter {provider}. "
                    "Vérifiez votre connexion internet."
                ),
            )
        if result.status_code is None:
            return TestConnectionResult(
                success=False, message="Erreur lors du test", details=result.message
            )

        known = self._status_messages(result).get(result.status_code)
        if known is not None:
            return known
        return TestConnectionResult(
            success=False,
            message=f"Erreur {provider}: {result.status_code}",
            details=self._error_details(result),
        )


def split_https_url(url: str, hosts: frozenset) -> Optional[list]:
    """Return the path segments of an https URL on one of ``hosts``.

    Segments are split on ``/`` including the leading empty segment, so
    ``/services/T/B/X`` gives ``['', 'services', 'T', 'B', 'X']``.
    """
    try:
        parsed = urlparse(url)
    except (TypeError, ValueError):
        return None
    if parsed.scheme != "https" or parsed.hostname not in hosts:
        return None
    return parsed.path.split("/")
