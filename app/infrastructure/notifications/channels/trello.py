"""Trello channel.

Cards are created on the board configured in ``settings.board_id``. The
first list of the board is the default target when ``list_mapping`` has no
entry for the event.
"""

import time
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote

from infrastructure.configuration import settings
from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels.base import IntegrationChannel
from infrastructure.notifications.channels.http import ProviderHttpClient
from infrastructure.notifications.errors import IntegrationError
from infrastructure.notifications.formatters.trello import TrelloCardFormatter
from infrastructure.notifications.models import (
    IntegrationEvent,
    IntegrationType,
    SendNotificationResult,
    SyncResult,
    TestConnectionResult,
    TrelloCredentials,
)
from infrastructure.operations import OperationResult

logger = get_module_logger()

TRELLO_API_BASE = "https://api.trello.com/1"

# Sent once each, in this order, when present on the card.
CARD_SCALAR_FIELDS = ("name", "idList", "desc", "pos", "due", "urlSource")
CARD_LIST_FIELDS = ("idMembers", "idLabels")


def card_query_params(
    credentials: TrelloCredentials, card: Mapping[str, Any]
) -> List[Tuple[str, str]]:
    """Flatten a card into query pairs, repeating list-valued fields."""
    params = [("key", credentials.api_key), ("token", credentials.token)]
    for field in CARD_SCALAR_FIELDS:
        value = card.get(field)
        if value:
            params.append((field, str(value)))
    for field in CARD_LIST_FIELDS:
        for value in card.get(field) or []:
            params.append((field, str(value)))
    return params


# Updatable card fields; ``desc`` and ``due`` may be sent empty to clear them.
CARD_UPDATE_FIELDS = ("name", "desc", "closed", "idList", "due", "dueComplete")
CLEARABLE_CARD_FIELDS = frozenset({"desc", "due"})


def card_update_params(
    credentials: TrelloCredentials, updates: Mapping[str, Any]
) -> List[Tuple[str, str]]:
    """Query pairs for a card update. Booleans are sent as ``true``/``false``."""
    params = [("key", credentials.api_key), ("token", credentials.token)]
    for field in CARD_UPDATE_FIELDS:
        if field not in updates:
            continue
        value = updates[field]
        if isinstance(value, bool):
            params.append((field, "true" if value else "false"))
        elif value is None or value == "":
            if field in CLEARABLE_CARD_FIELDS:
                params.append((field, ""))
        else:
            params.append((field, str(value)))
    return params


class TrelloChannel(IntegrationChannel):
    """Creates Trello cards for configured event types.

    Cards created this way can later be changed with ``update_card`` or
    removed with ``delete_card``.
    """

    provider_name = "Trello"

    def __init__(
        self,
        formatter: Optional[TrelloCardFormatter] = None,
        http_client: Optional[ProviderHttpClient] = None,
    ):
        self.formatter = formatter or TrelloCardFormatter()
        self._http = http_client or ProviderHttpClient(
            timeout=settings.notifications.PROVIDER_REQUEST_TIMEOUT_SECONDS
        )
        self._logger = logger.bind(channel=IntegrationType.TRELLO.value)

    @property
    def integration_type(self) -> IntegrationType:
        return IntegrationType.TRELLO

    @staticmethod
    def _auth(credentials: TrelloCredentials) -> Dict[str, str]:
        return {"key": credentials.api_key, "token": credentials.token}

    def send_notification(
        self,
        credentials: TrelloCredentials,
        event: IntegrationEvent,
        settings: Optional[Mapping[str, Any]] = None,
    ) -> SendNotificationResult:
        started = time.perf_counter()
        integration_settings = settings or {}
        board_id = integration_settings.get("board_id")
        if not board_id:
            return self.failure(started, "No Trello board configured")

        try:
            lists = self.get_lists(credentials, board_id)
            if not lists:
                return self.failure(started, "No lists found on Trello board")

            card = self.formatter.format_event(
                event, integration_settings, default_list_id=lists[0].get("id")
            )
            if card is None:
                return self.delivered(started, status_code=200)

            result = self._http.post(
                f"{TRELLO_API_BASE}/cards",
                params=card_query_params(credentials, card),
            )
        except Exception as e:  # pylint: disable=broad-except
            self._logger.error("trello_send_failed", error=str(e), exc_info=True)
            return self.failure(started, str(e) or "Unknown error")

        if result.is_success:
            card_id = result.data.get("id") if isinstance(result.data, dict) else None
            self._logger.info("trello_card_created", card_id=card_id, board_id=board_id)
            return self.delivered(started, status_code=result.status_code)

        self._logger.warning(
            "trello_card_rejected",
            event_type=event.type,
            status_code=result.status_code,
            error_code=result.error_code,
        )
        if result.status_code is None:
            return self.failure(started, result.message)
        return self.failure(
            started,
            f"Trello API error: {result.status_code} - {result.text}",
            status_code=result.status_code,
        )

    def test_connection(self, credentials: TrelloCredentials) -> TestConnectionResult:
        try:
            result = self._http.get(
                f"{TRELLO_API_BASE}/members/me/boards", params=self._auth(credentials)
            )
        except Exception as e:  # pylint: disable=broad-except
            self._logger.error("trello_test_failed", error=str(e), exc_info=True)
            return TestConnectionResult(
                success=False,
                message="Erreur lors du test",
                details=str(e) or "Une erreur inconnue s'est produite",
            )

        if result.is_success:
            count = len(result.data) if isinstance(result.data, list) else 0
            return TestConnectionResult(
                success=True,
                message=f"Connexion réussie! {count} tableau(x) disponible(s).",
            )
        if result.is_timeout:
            return TestConnectionResult(
                success=False,
                message="Délai d'attente dépassé",
                details="La connexion à Trello a pris trop de temps.",
            )
        if result.is_connection_error:
            return TestConnectionResult(
                success=False,
                message="Erreur de connexion",
                details="Impossible de contacter Trello. Vérifiez votre connexion internet.",
            )
        if result.status_code is None:
            return TestConnectionResult(
                success=False, message="Erreur lors du test", details=result.message
            )
        if result.status_code == 401:
            return TestConnectionResult(
                success=False,
                message="Token invalide",
                details="Veuillez reconnecter votre compte Trello.",
            )
        return TestConnectionResult(
            success=False,
            message=f"Erreur Trello: {result.status_code}",
            details="Vérifiez vos identifiants Trello.",
        )

    def list_boards(self, credentials: TrelloCredentials) -> List[Dict[str, Any]]:
        """List boards of the connected member.

        Raises:
            IntegrationError: If the API call fails.
        """
        result = self._http.get(
            f"{TRELLO_API_BASE}/members/me/boards", params=self._auth(credentials)
        )
        return self._list_or_raise(result, "boards")

    def get_lists(
        self, credentials: TrelloCredentials, board_id: str
    ) -> List[Dict[str, Any]]:
        """Lists of a board, in board order.

        Raises:
            IntegrationError: If the API call fails.
        """
        result = self._http.get(
            f"{TRELLO_API_BASE}/boards/{board_id}/lists", params=self._auth(credentials)
        )
        return self._list_or_raise(result, "lists")

    @staticmethod
    def _list_or_raise(result: OperationResult, what: str) -> List[Dict[str, Any]]:
        if not result.is_success:
            raise IntegrationError(
                f"Failed to get {what}: {result.status_code or result.error_code}"
            )
        return result.data if isinstance(result.data, list) else []

    def update_card(
        self,
        credentials: TrelloCredentials,
        card_id: str,
        updates: Mapping[str, Any],
    ) -> SyncResult:
        """Update fields of a card created earlier.

        Args:
            credentials: Trello key and token
            card_id: Card id returned at creation
            updates: Any of ``name``, ``desc``, ``closed``, ``idList``,
                ``due``, ``dueComplete``. An empty ``desc`` or ``due`` clears
                the field.

        Returns:
            SyncResult with the card id and URL on success
        """
        result = self._http.put(
            self._card_url(card_id), params=card_update_params(credentials, updates)
        )
        if not result.is_success:
            return self._sync_failure("trello_card_update_rejected", result)

        data = result.data if isinstance(result.data, dict) else {}
        return SyncResult(
            success=True,
            resource_id=data.get("id", card_id),
            resource_url=data.get("url"),
            status_code=result.status_code,
        )

    def delete_card(self, credentials: TrelloCredentials, card_id: str) -> SyncResult:
        """Delete a card created earlier."""
        result = self._http.delete(self._card_url(card_id), params=self._auth(credentials))
        if not result.is_success:
            return self._sync_failure("trello_card_delete_rejected", result)
        return SyncResult(success=True, resource_id=card_id, status_code=result.status_code)

    @staticmethod
    def _card_url(card_id: str) -> str:
        return f"{TRELLO_API_BASE}/cards/{quote(str(card_id), safe='')}"

    def _sync_failure(self, log_event: str, result: OperationResult) -> SyncResult:
        self._logger.warning(
            log_event, status_code=result.status_code, error_code=result.error_code
        )
        if result.status_code is None:
            return SyncResult(success=False, error=result.message)
        return SyncResult(
            success=False,
            status_code=result.status_code,
            error=f"Trello API error: {result.status_code} - {result.text}",
        )
