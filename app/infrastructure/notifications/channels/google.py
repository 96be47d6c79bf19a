"""Google REST API channel base shared by Gmail, Calendar and Drive.

Channels format first and skip the network entirely when the formatter
returns None. Otherwise they make sure the access token is fresh, call the
provider with a bearer token and report any refreshed credentials on the
result so the dispatcher can persist them.
"""

import time
from abc import abstractmethod
from typing import Any, Dict, Mapping, Optional

from infrastructure.configuration import settings
from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.base import IntegrationChannel
from infrastructure.notifications.channels.http import ProviderHttpClient
from infrastructure.notifications.channels.oauth import GoogleOAuthTokenManager
from infrastructure.notifications.errors import TokenRefreshError
from infrastructure.notifications.models import (
    GoogleOAuthCredentials,
    IntegrationEvent,
    SendNotificationResult,
    TestConnectionResult,
)
from infrastructure.operations import OperationResult

logger = get_module_logger()


class GoogleApiChannel(IntegrationChannel):
    """Base class for Google OAuth providers.

    Attributes:
        provider_name: Display name (Gmail, Google Calendar, Google Drive)
        raise_on_refresh_failure: When False a failed refresh falls back to
            the stale token and the provider call decides the outcome
    """

    provider_name: str = ""
    default_raise_on_refresh_failure: bool = True

    def __init__(
        self,
        formatter,
        http_client: Optional[ProviderHttpClient] = None,
        token_manager: Optional[GoogleOAuthTokenManager] = None,
        raise_on_refresh_failure: Optional[bool] = None,
    ):
        """Initialize Google API channel.

        Args:
            formatter: Event formatter for this provider
            http_client: Client for API calls. Defaults to one using
                ``PROVIDER_REQUEST_TIMEOUT_SECONDS``.
            token_manager: Token refresher. Defaults to one sharing the
                HTTP client.
            raise_on_refresh_failure: Overrides the provider default.
        """
        self.formatter = formatter
        self._http = http_client or ProviderHttpClient(
            timeout=settings.notifications.PROVIDER_REQUEST_TIMEOUT_SECONDS
        )
        self._tokens = token_manager or GoogleOAuthTokenManager(http_client=self._http)
        self.raise_on_refresh_failure = (
            self.default_raise_on_refresh_failure
            if raise_on_refresh_failure is None
            else raise_on_refresh_failure
        )
        self._logger = logger.bind(channel=self.integration_type.value)

    @property
    def reconnect_details(self) -> str:
        return f"Veuillez reconnecter votre compte {self.provider_name}."

    @abstractmethod
    def _deliver(
        self,
        credentials: GoogleOAuthCredentials,
        payload: Dict[str, Any],
        settings: Mapping[str, Any],
    ) -> OperationResult:
        """Perform the provider write for a formatted payload."""

    @abstractmethod
    def _check_access(self, credentials: GoogleOAuthCredentials) -> OperationResult:
        """Read-only call used by the connection test."""

    @abstractmethod
    def _access_message(self, data: Any) -> str:
        """User-facing message for a successful access check."""

    def _format(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Optional[Dict[str, Any]]:
        return self.formatter.format_event(event, settings)

    def valid_credentials(
        self, credentials: GoogleOAuthCredentials
    ) -> GoogleOAuthCredentials:
        """Refresh the token if needed.

        Raises:
            TokenRefreshError: When refresh fails and the channel is strict.
        """
        try:
            return self._tokens.ensure_valid_token(credentials)
        except TokenRefreshError:
            if self.raise_on_refresh_failure:
                raise
            self._logger.warning("token_refresh_failed_using_stale_token")
            return credentials

    @staticmethod
    def bearer(credentials: GoogleOAuthCredentials) -> Dict[str, str]:
        return {"Authorization": f"Bearer {credentials.access_token}"}

    def send_notification(
        self,
        credentials: GoogleOAuthCredentials,
        event: IntegrationEvent,
        settings: Optional[Mapping[str, Any]] = None,
    ) -> SendNotificationResult:
        started = time.perf_counter()
        integration_settings = settings or {}
        refreshed: Optional[GoogleOAuthCredentials] = None
        try:
            payload = self._format(event, integration_settings)
            if payload is None:
                return self.delivered(started, status_code=200)

            valid = self.valid_credentials(credentials)
            if valid is not credentials:
                refreshed = valid
            result = self._deliver(valid, payload, integration_settings)
        except TokenRefreshError as e:
            return self.failure(started, str(e))
        except Exception as e:  # pylint: disable=broad-except
            self._logger.error("google_api_send_failed", error=str(e), exc_info=True)
            return self.failure(
                started, str(e) or "Unknown error", refreshed_credentials=refreshed
            )

        if result.is_success:
            return self.delivered(
                started,
                status_code=result.status_code,
                refreshed_credentials=refreshed,
            )

        self._logger.warning(
            "google_api_send_rejected",
            event_type=event.type,
            status_code=result.status_code,
            error_code=result.error_code,
        )
        return self.failure(
            started,
            self._delivery_error(result),
            status_code=result.status_code,
            refreshed_credentials=refreshed,
        )

    def _delivery_error(self, result: OperationResult) -> str:
        if result.status_code is None:
            return result.message
        return f"{self.provider_name} API error: {result.status_code} - {result.message}"

    def test_connection(
        self, credentials: GoogleOAuthCredentials
    ) -> TestConnectionResult:
        try:
            valid = self.valid_credentials(credentials)
        except TokenRefreshError:
            return TestConnectionResult(
                success=False,
                message="Token expiré",
                details=self.reconnect_details,
            )

        refreshed = valid if valid is not credentials else None
        try:
            result = self._check_access(valid)
        except Exception as e:  # pylint: disable=broad-except
            self._logger.error("google_api_test_failed", error=str(e), exc_info=True)
            return TestConnectionResult(
                success=False,
                message="Erreur lors du test",
                details=str(e) or "Une erreur inconnue s'est produite",
                refreshed_credentials=refreshed,
            )

        outcome = self._access_outcome(result)
        outcome.refreshed_credentials = refreshed
        return outcome

    def _access_outcome(self, result: OperationResult) -> TestConnectionResult:
        if result.is_success:
            return TestConnectionResult(
                success=True, message=self._access_message(result.data)
            )
        if result.is_timeout:
            return TestConnectionResult(
                success=False,
                message="Délai d'attente dépassé",
                details=f"La connexion à {self.provider_name} a pris trop de temps.",
            )
        if result.is_connection_error:
            return TestConnectionResult(
                success=False,
                message="Erreur de connexion",
                details=(
                    f"Impossible de contacter {self.provider_name}. "
                    "Vérifiez votre connexion internet."
                ),
            )
        if result.status_code is None:
            return TestConnectionResult(
                success=False, message="Erreur lors du test", details=result.message
            )
        if result.status_code == 401:
            return TestConnectionResult(
                success=False, message="Token invalide", details=self.reconnect_details
            )
        return TestConnectionResult(
            success=False,
            message=f"Erreur {self.provider_name}: {result.status_code}",
            details=result.message or "Erreur inconnue",
        )
