"""Google OAuth access-token refresh.

Gmail, Google Calendar and Google Drive share one token set per
integration. Before each provider call the access token is refreshed when it
expires within the refresh margin (five minutes by default).
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from infrastructure.configuration import settings
from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.http import ProviderHttpClient
from infrastructure.notifications.errors import TokenRefreshError
from infrastructure.notifications.models import GoogleOAuthCredentials

logger = get_module_logger()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GoogleOAuthTokenManager:
    """Refreshes Google access tokens through the OAuth token endpoint.

    Args:
        http_client: Client used for the token request
        client_id: OAuth client id (defaults to settings)
        client_secret: OAuth client secret (defaults to settings)
        token_endpoint: Token URL (defaults to settings)
        refresh_margin_seconds: Refresh tokens expiring within this window
        clock: Returns the current aware datetime
    """

    def __init__(
        self,
        http_client: Optional[ProviderHttpClient] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        token_endpoint: Optional[str] = None,
        refresh_margin_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        oauth_settings = settings.google_oauth
        self._http = http_client or ProviderHttpClient(
            timeout=settings.notifications.PROVIDER_REQUEST_TIMEOUT_SECONDS
        )
        self._client_id = client_id or oauth_settings.GOOGLE_CLIENT_ID
        self._client_secret = client_secret or oauth_settings.GOOGLE_CLIENT_SECRET
        self._token_endpoint = token_endpoint or oauth_settings.GOOGLE_TOKEN_ENDPOINT
        margin = (
            refresh_margin_seconds
            if refresh_margin_seconds is not None
            else settings.notifications.TOKEN_REFRESH_MARGIN_SECONDS
        )
        self._margin = timedelta(seconds=margin)
        self._clock = clock

    def needs_refresh(self, credentials: GoogleOAuthCredentials) -> bool:
        """True when the token expires within the margin.

        Credentials without an expiry are used as-is.
        """
        if credentials.expires_at is None:
            return False
        expires_at = credentials.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at - self._clock() < self._margin

    def ensure_valid_token(
        self, credentials: GoogleOAuthCredentials
    ) -> GoogleOAuthCredentials:
        """Return credentials with a usable access token.

        Returns the same object when no refresh was needed, and a new
        object carrying the new token and expiry otherwise.

        Raises:
            TokenRefreshError: If the refresh request fails.
        """
        if not self.needs_refresh(credentials):
            return credentials
        return self.refresh(credentials)

    def refresh(self, credentials: GoogleOAuthCredentials) -> GoogleOAuthCredentials:
        """Exchange the refresh token for a new access token.

        Raises:
            TokenRefreshError: On missing refresh token, HTTP failure or a
                malformed response.
        """
        if not credentials.refresh_token:
            raise TokenRefreshError("Failed to refresh access token")

        logger.info("refreshing_google_access_token", email=credentials.email)
        result = self._http.post(
            self._token_endpoint,
            form_data={
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "refresh_token": credentials.refresh_token,
                "grant_type": "refresh_token",
            },
        )
        if not result.is_success or not isinstance(result.data, dict):
            logger.warning(
                "google_token_refresh_failed",
                error_code=result.error_code,
                error=result.message,
            )
            raise TokenRefreshError("Failed to refresh access token")

        access_token = result.data.get("access_token")
        try:
            expires_in = int(result.data.get("expires_in", 3600))
        except (TypeError, ValueError):
            expires_in = 3600
        if not access_token:
            raise TokenRefreshError("Failed to refresh access token")

        return credentials.model_copy(
            update={
                "access_token": access_token,
                "expires_at": self._clock() + timedelta(seconds=expires_in),
            }
        )
