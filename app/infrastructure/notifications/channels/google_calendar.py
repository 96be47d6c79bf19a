"""Google Calendar channel."""

from typing import Any, Callable, Dict, List, Mapping, Optional
from urllib.parse import quote

from infrastructure.notifications.channels.google import GoogleApiChannel
from infrastructure.notifications.channels.http import ProviderHttpClient
from infrastructure.notifications.channels.oauth import GoogleOAuthTokenManager
from infrastructure.notifications.errors import IntegrationError, TokenRefreshError
from infrastructure.notifications.formatters.google_calendar import (
    GoogleCalendarEventFormatter,
)
from infrastructure.notifications.models import (
    GoogleOAuthCredentials,
    IntegrationType,
    SyncResult,
)
from infrastructure.operations import OperationResult

GOOGLE_CALENDAR_API_BASE = "https://www.googleapis.com/calendar/v3"
DEFAULT_CALENDAR_ID = "primary"


class GoogleCalendarChannel(GoogleApiChannel):
    """Creates Google Calendar events for platform calendar events.

    Events created this way can later be replaced with ``update_event`` or
    removed with ``delete_event``.

    A failed token refresh is tolerated: the stale token is used and the
    API answer decides the outcome.
    """

    provider_name = "Google Calendar"
    default_raise_on_refresh_failure = False

    def __init__(
        self,
        formatter: Optional[GoogleCalendarEventFormatter] = None,
        http_client: Optional[ProviderHttpClient] = None,
        token_manager: Optional[GoogleOAuthTokenManager] = None,
        raise_on_refresh_failure: Optional[bool] = None,
    ):
        super().__init__(
            formatter or GoogleCalendarEventFormatter(),
            http_client,
            token_manager,
            raise_on_refresh_failure,
        )

    @property
    def integration_type(self) -> IntegrationType:
        return IntegrationType.GOOGLE_CALENDAR

    def _deliver(
        self,
        credentials: GoogleOAuthCredentials,
        payload: Dict[str, Any],
        settings: Mapping[str, Any],
    ) -> OperationResult:
        calendar_id = settings.get("calendar_id") or DEFAULT_CALENDAR_ID
        url = f"{GOOGLE_CALENDAR_API_BASE}/calendars/{quote(str(calendar_id), safe='')}/events"
        result = self._http.post(
            url,
            json_data=payload,
            params={"conferenceDataVersion": 1},
            headers=self.bearer(credentials),
        )
        if result.is_success and isinstance(result.data, dict):
            self._logger.info(
                "calendar_event_created",
                google_event_id=result.data.get("id"),
                calendar_id=calendar_id,
            )
        return result

    def _check_access(self, credentials: GoogleOAuthCredentials) -> OperationResult:
        return self._http.get(
            f"{GOOGLE_CALENDAR_API_BASE}/users/me/calendarList",
            headers=self.bearer(credentials),
        )

    def _access_message(self, data: Any) -> str:
        items = data.get("items") if isinstance(data, dict) else None
        count = len(items) if isinstance(items, list) else 0
        return f"Connexion réussie! {count} calendrier(s) disponible(s)."

    def list_calendars(self, credentials: GoogleOAuthCredentials) -> List[Dict[str, Any]]:
        """List calendars the user can pick as sync target.

        Raises:
            IntegrationError: If the API call fails.
        """
        result = self._check_access(self.valid_credentials(credentials))
        if not result.is_success:
            raise IntegrationError(
                f"Failed to list calendars: {result.status_code or result.error_code}"
            )
        items = (result.data or {}).get("items")
        return items if isinstance(items, list) else []

    def _event_url(self, calendar_id: str, event_id: str) -> str:
        return (
            f"{GOOGLE_CALENDAR_API_BASE}/calendars/{quote(str(calendar_id), safe='')}"
            f"/events/{quote(str(event_id), safe='')}"
        )

    def _sync(
        self,
        credentials: GoogleOAuthCredentials,
        call: Callable[[GoogleOAuthCredentials], OperationResult],
    ) -> SyncResult:
        """Run an update or delete with a fresh token."""
        try:
            valid = self.valid_credentials(credentials)
        except TokenRefreshError as e:
            return SyncResult(success=False, error=str(e))

        refreshed = valid if valid is not credentials else None
        result = call(valid)
        if not result.is_success:
            self._logger.warning(
                "calendar_event_sync_rejected",
                status_code=result.status_code,
                error_code=result.error_code,
            )
            return SyncResult(
                success=False,
                status_code=result.status_code,
                error=self._delivery_error(result),
                refreshed_credentials=refreshed,
            )

        data = result.data if isinstance(result.data, dict) else {}
        return SyncResult(
            success=True,
            resource_id=data.get("id"),
            resource_url=data.get("htmlLink"),
            status_code=result.status_code,
            refreshed_credentials=refreshed,
        )

    def update_event(
        self,
        credentials: GoogleOAuthCredentials,
        calendar_id: str,
        event_id: str,
        calendar_event: Mapping[str, Any],
    ) -> SyncResult:
        """Replace a calendar event created earlier.

        Args:
            credentials: OAuth credentials of the integration
            calendar_id: Calendar holding the event (``primary`` if empty)
            event_id: Google event id returned at creation
            calendar_event: Full event body, as built by the formatter

        Returns:
            SyncResult with the event id and ``htmlLink`` on success
        """
        url = self._event_url(calendar_id or DEFAULT_CALENDAR_ID, event_id)
        return self._sync(
            credentials,
            lambda valid: self._http.put(
                url, json_data=dict(calendar_event), headers=self.bearer(valid)
            ),
        )

    def delete_event(
        self, credentials: GoogleOAuthCredentials, calendar_id: str, event_id: str
    ) -> SyncResult:
        """Delete a calendar event created earlier."""
        url = self._event_url(calendar_id or DEFAULT_CALENDAR_ID, event_id)
        result = self._sync(
            credentials,
            lambda valid: self._http.delete(url, headers=self.bearer(valid)),
        )
        if result.success:
            result.resource_id = event_id
        return result
