"""Integration channel abstract base class.

All provider channels (Slack, Discord, Teams, Gmail, Google Calendar,
Google Drive, Trello) implement this interface.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from infrastructure.notifications.models import (
    IntegrationCredentials,
    IntegrationEvent,
    IntegrationType,
    SendNotificationResult,
    TestConnectionResult,
)


def elapsed_ms(started: float) -> int:
    """Milliseconds since a ``time.perf_counter()`` reading."""
    return int((time.perf_counter() - started) * 1000)


class IntegrationChannel(ABC):
    """Abstract base class for provider channels.

    Each channel delivers events to one provider using typed credentials.
    Provider abstraction lets the dispatcher route by integration type
    without knowing any wire format.

    Example Implementation:
        class SlackChannel(WebhookChannel):

            @property
            def integration_type(self) -> IntegrationType:
                return IntegrationType.SLACK

            def send_notification(self, credentials, event, settings=None):
                message = self.formatter.format_event(event, settings)
                result = self._http.post(credentials.webhook_url, json_data=message)
                ...
    """

    @property
    @abstractmethod
    def integration_type(self) -> IntegrationType:
        """Integration type served by this channel."""

    @abstractmethod
    def send_notification(
        self,
        credentials: IntegrationCredentials,
        event: IntegrationEvent,
        settings: Optional[Mapping[str, Any]] = None,
    ) -> SendNotificationResult:
        """Deliver one event to the provider.

        Must handle errors gracefully and return a failed
        SendNotificationResult rather than raising.

        Args:
            credentials: Decrypted credentials for this integration
            event: Event to deliver
            settings: Integration settings (events, provider options)

        Returns:
            SendNotificationResult with duration in milliseconds
        """

    @abstractmethod
    def test_connection(
        self, credentials: IntegrationCredentials
    ) -> TestConnectionResult:
        """Check the credentials against the provider.

        Webhook channels post a visible test message; API channels perform
        a read-only call.

        Returns:
            TestConnectionResult with a user-facing French message
        """

    @staticmethod
    def failure(
        started: float, error: str, status_code: Optional[int] = None, **extra: Any
    ) -> SendNotificationResult:
        return SendNotificationResult(
            success=False,
            status_code=status_code,
            duration=elapsed_ms(started),
            error=error,
            **extra,
        )

    @staticmethod
    def delivered(
        started: float, status_code: Optional[int] = None, **extra: Any
    ) -> SendNotificationResult:
        return SendNotificationResult(
            success=True,
            status_code=status_code,
            duration=elapsed_ms(started),
            **extra,
        )
