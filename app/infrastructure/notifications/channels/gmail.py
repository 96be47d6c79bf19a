"""Gmail channel."""

import base64
from typing import Any, Dict, Mapping, Optional

from infrastructure.notifications.channels.google import GoogleApiChannel
from infrastructure.notifications.channels.http import ProviderHttpClient
from infrastructure.notifications.channels.oauth import GoogleOAuthTokenManager
from infrastructure.notifications.formatters.gmail import GmailEventFormatter
from infrastructure.notifications.models import GoogleOAuthCredentials, IntegrationType
from infrastructure.operations import OperationResult

GMAIL_API_BASE = "https://gmail.googleapis.com/gmail/v1"


def build_rfc2822_message(message: Mapping[str, Any]) -> str:
    """Assemble headers and body with CRLF line endings."""
    lines = [f"To: {', '.join(message.get('to') or [])}"]
    if message.get("cc"):
        lines.append(f"Cc: {', '.join(message['cc'])}")
    if message.get("bcc"):
        lines.append(f"Bcc: {', '.join(message['bcc'])}")
    lines.append(f"Subject: {message.get('subject', '')}")
    if message.get("is_html"):
        lines.append("MIME-Version: 1.0")
        lines.append("Content-Type: text/html; charset=UTF-8")
    else:
        lines.append("Content-Type: text/plain; charset=UTF-8")
    lines.append("")
    lines.append(message.get("body", ""))
    return "\r\n".join(lines)


def encode_raw_message(email: str) -> str:
    """base64url of the UTF-8 message, padding stripped."""
    return base64.urlsafe_b64encode(email.encode("utf-8")).decode("ascii").rstrip("=")


class GmailChannel(GoogleApiChannel):
    """Sends HTML notification emails from the connected Gmail account."""

    provider_name = "Gmail"

    def __init__(
        self,
        formatter: Optional[GmailEventFormatter] = None,
        http_client: Optional[ProviderHttpClient] = None,
        token_manager: Optional[GoogleOAuthTokenManager] = None,
        raise_on_refresh_failure: Optional[bool] = None,
    ):
        super().__init__(
            formatter or GmailEventFormatter(),
            http_client,
            token_manager,
            raise_on_refresh_failure,
        )

    @property
    def integration_type(self) -> IntegrationType:
        return IntegrationType.GMAIL

    def _deliver(
        self,
        credentials: GoogleOAuthCredentials,
        payload: Dict[str, Any],
        settings: Mapping[str, Any],
    ) -> OperationResult:
        raw = encode_raw_message(build_rfc2822_message(payload))
        result = self._http.post(
            f"{GMAIL_API_BASE}/users/me/messages/send",
            json_data={"raw": raw},
            headers=self.bearer(credentials),
        )
        if result.is_success and isinstance(result.data, dict):
            self._logger.info(
                "gmail_message_sent",
                message_id=result.data.get("id"),
                recipient_count=len(payload.get("to") or []),
            )
        return result

    def _check_access(self, credentials: GoogleOAuthCredentials) -> OperationResult:
        return self._http.get(
            f"{GMAIL_API_BASE}/users/me/profile", headers=self.bearer(credentials)
        )

    def _access_message(self, data: Any) -> str:
        address = data.get("emailAddress") if isinstance(data, dict) else None
        return f"Connexion réussie! Compte Gmail connecté ({address or 'adresse inconnue'})."
