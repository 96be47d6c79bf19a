"""Google Drive channel."""

from typing import Any, Dict, Mapping, Optional

from infrastructure.notifications.channels.google import GoogleApiChannel
from infrastructure.notifications.channels.http import ProviderHttpClient
from infrastructure.notifications.channels.oauth import GoogleOAuthTokenManager
from infrastructure.notifications.errors import IntegrationError
from infrastructure.notifications.formatters.google_drive import (
    FOLDER_MIME_TYPE,
    GoogleDriveFileFormatter,
)
from infrastructure.notifications.models import GoogleOAuthCredentials, IntegrationType
from infrastructure.operations import OperationResult

GOOGLE_DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
FOLDER_PAGE_SIZE = 50


class GoogleDriveChannel(GoogleApiChannel):
    """Creates folders and Google Docs in Drive, under ``settings.folder_id``."""

    provider_name = "Google Drive"

    def __init__(
        self,
        formatter: Optional[GoogleDriveFileFormatter] = None,
        http_client: Optional[ProviderHttpClient] = None,
        token_manager: Optional[GoogleOAuthTokenManager] = None,
        raise_on_refresh_failure: Optional[bool] = None,
    ):
        super().__init__(
            formatter or GoogleDriveFileFormatter(),
            http_client,
            token_manager,
            raise_on_refresh_failure,
        )

    @property
    def integration_type(self) -> IntegrationType:
        return IntegrationType.GOOGLE_DRIVE

    def _deliver(
        self,
        credentials: GoogleOAuthCredentials,
        payload: Dict[str, Any],
        settings: Mapping[str, Any],
    ) -> OperationResult:
        metadata = dict(payload)
        if settings.get("folder_id"):
            metadata["parents"] = [settings["folder_id"]]

        result = self._http.post(
            f"{GOOGLE_DRIVE_API_BASE}/files",
            json_data=metadata,
            headers=self.bearer(credentials),
        )
        if result.is_success and isinstance(result.data, dict):
            self._logger.info(
                "drive_file_created",
                file_id=result.data.get("id"),
                is_folder=metadata.get("mimeType") == FOLDER_MIME_TYPE,
            )
        return result

    def _check_access(self, credentials: GoogleOAuthCredentials) -> OperationResult:
        return self._http.get(
            f"{GOOGLE_DRIVE_API_BASE}/files",
            params={"pageSize": 1, "fields": "files(id,name)"},
            headers=self.bearer(credentials),
        )

    def _access_message(self, data: Any) -> str:
        return "Connexion réussie! Google Drive est accessible."

    def list_folders(
        self, credentials: GoogleOAuthCredentials, page_token: Optional[str] = None
    ) -> Dict[str, Any]:
        """List Drive folders for target selection.

        Returns:
            Drive list response with ``files`` and optional ``nextPageToken``.

        Raises:
            TokenRefreshError: If the token cannot be refreshed.
            IntegrationError: If the API call fails.
        """
        params: Dict[str, Any] = {
            "q": f"mimeType='{FOLDER_MIME_TYPE}'",
            "fields": "files(id,name,mimeType,webViewLink),nextPageToken",
            "pageSize": FOLDER_PAGE_SIZE,
        }
        if page_token:
            params["pageToken"] = page_token

        result = self._http.get(
            f"{GOOGLE_DRIVE_API_BASE}/files",
            params=params,
            headers=self.bearer(self.valid_credentials(credentials)),
        )
        if not result.is_success:
            raise IntegrationError(
                f"Failed to list folders: {result.status_code or result.error_code}"
            )
        return result.data or {"files": []}
