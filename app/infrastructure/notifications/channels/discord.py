"""Discord webhook channel."""

from typing import Optional

from infrastructure.notifications.channels.http import ProviderHttpClient
from infrastructure.notifications.channels.webhook import WebhookChannel, split_https_url
from infrastructure.notifications.formatters.discord import DiscordEventFormatter
from infrastructure.notifications.models import IntegrationType
from infrastructure.operations import OperationResult

DISCORD_WEBHOOK_HOSTS = frozenset({"discord.com", "discordapp.com"})


class DiscordChannel(WebhookChannel):
    """Posts embeds to a Discord channel webhook.

    Expected URL: ``https://discord.com/api/webhooks/{id}/{token}``
    (``discordapp.com`` is accepted too).
    """

    provider_name = "Discord"
    invalid_url_message = (
        "URL de webhook Discord invalide. Vérifiez que l'URL commence par "
        "https://discord.com/api/webhooks/"
    )
    invalid_url_details = (
        "Le format attendu est: https://discord.com/api/webhooks/WEBHOOK_ID/WEBHOOK_TOKEN"
    )
    not_found_details = (
        "Le webhook a peut-être été supprimé de Discord. Créez un nouveau webhook "
        "dans les paramètres du channel."
    )

    def __init__(
        self,
        formatter: Optional[DiscordEventFormatter] = None,
        http_client: Optional[ProviderHttpClient] = None,
    ):
        super().__init__(formatter or DiscordEventFormatter(), http_client)

    @property
    def integration_type(self) -> IntegrationType:
        return IntegrationType.DISCORD

    def is_valid_webhook_url(self, url: str) -> bool:
        parts = split_https_url(url, DISCORD_WEBHOOK_HOSTS)
        if parts is None or not "/".join(parts).startswith("/api/webhooks/"):
            return False
        return len(parts) == 5 and bool(parts[3]) and bool(parts[4])

    def _error_details(self, result: OperationResult) -> str:
        # Discord answers with a JSON body: {"message": ..., "code": ...}
        if isinstance(result.data, dict) and result.data.get("message"):
            return str(result.data["message"])
        return "Erreur inconnue"
