"""Microsoft Teams incoming-webhook channel."""

from typing import Dict, Optional

from infrastructure.notifications.channels.http import ProviderHttpClient
from infrastructure.notifications.channels.webhook import WebhookChannel, split_https_url
from infrastructure.notifications.formatters.teams import TeamsEventFormatter
from infrastructure.notifications.models import IntegrationType, TestConnectionResult
from infrastructure.operations import OperationResult

TEAMS_WEBHOOK_HOSTS = frozenset({"outlook.office.com", "outlook.office365.com"})


class TeamsChannel(WebhookChannel):
    """Posts Adaptive Cards to a Teams incoming webhook.

    Expected URL: ``https://outlook.office.com/webhook/.../IncomingWebhook/...``.
    """

    provider_name = "Teams"
    invalid_url_message = (
        "URL de webhook Teams invalide. Vérifiez que l'URL commence par "
        "https://outlook.office.com/webhook/"
    )
    invalid_url_details = (
        "Le format attendu est: https://outlook.office.com/webhook/.../IncomingWebhook/..."
    )
    not_found_details = (
        "Le webhook a peut-être été supprimé de Teams. Créez un nouveau webhook "
        "dans les paramètres du channel."
    )

    def __init__(
        self,
        formatter: Optional[TeamsEventFormatter] = None,
        http_client: Optional[ProviderHttpClient] = None,
    ):
        super().__init__(formatter or TeamsEventFormatter(), http_client)

    @property
    def integration_type(self) -> IntegrationType:
        return IntegrationType.TEAMS

    def is_valid_webhook_url(self, url: str) -> bool:
        parts = split_https_url(url, TEAMS_WEBHOOK_HOSTS)
        if parts is None:
            return False
        path = "/".join(parts)
        return "/webhook/" in path and "/IncomingWebhook/" in path

    def _status_messages(self, result: OperationResult) -> Dict[int, TestConnectionResult]:
        messages = super()._status_messages(result)
        messages[400] = TestConnectionResult(
            success=False,
            message="Requête invalide",
            details="Le format du message est invalide. Vérifiez l'URL du webhook.",
        )
        return messages
