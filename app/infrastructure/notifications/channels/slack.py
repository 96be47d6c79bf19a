"""Slack incoming-webhook channel."""

from typing import Optional

from infrastructure.notifications.channels.http import ProviderHttpClient
from infrastructure.notifications.channels.webhook import WebhookChannel, split_https_url
from infrastructure.notifications.formatters.slack import SlackEventFormatter
from infrastructure.notifications.models import IntegrationType

SLACK_WEBHOOK_HOSTS = frozenset({"hooks.slack.com"})


class SlackChannel(WebhookChannel):
    """Posts Block Kit messages to a Slack incoming webhook.

    Expected URL: ``https://hooks.slack.com/services/T.../B.../XXXX``.
    """

    provider_name = "Slack"
    invalid_url_message = (
        "URL de webhook Slack invalide. Vérifiez que l'URL commence par "
        "https://hooks.slack.com/"
    )
    invalid_url_details = (
        "Le format attendu est: "
        "https://hooks.slack.com/services/T00000000/B00000000/XXXXXXXXXXXX"
    )
    not_found_details = (
        "Le webhook a peut-être été supprimé de Slack. Créez un nouveau webhook."
    )

    def __init__(
        self,
        formatter: Optional[SlackEventFormatter] = None,
        http_client: Optional[ProviderHttpClient] = None,
    ):
        super().__init__(formatter or SlackEventFormatter(), http_client)

    @property
    def integration_type(self) -> IntegrationType:
        return IntegrationType.SLACK

    def is_valid_webhook_url(self, url: str) -> bool:
        parts = split_https_url(url, SLACK_WEBHOOK_HOSTS)
        if parts is None:
            return False
        return "/".join(parts).startswith("/services/") and len(parts) == 5
