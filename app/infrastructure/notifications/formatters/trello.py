"""Trello card formatter.

Converts platform events into Trello ``POST /cards`` parameters. Only event
types listed in ``settings.create_cards_for`` produce cards.
"""

from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

import pytz

from infrastructure.notifications.formatters.base import (
    EventFormatter,
    Payload,
    format_fr_date,
    value_or,
)
from infrastructure.notifications.formatters.google_calendar import DEFAULT_TIMEZONE
from infrastructure.notifications.models import IntegrationEvent

DEFAULT_CREATE_CARDS_FOR = ["deliverable.submitted"]
DEFAULT_DUE_TIME = "09:00"


def build_card_description(
    main_content: str, fields: Iterable[tuple], footer: str
) -> str:
    """Markdown card body: content, a details block, then the footer."""
    description = f"{main_content}\n\n" if main_content else ""
    description += "---\n\n**Détails:**\n\n"
    for label, value in fields:
        description += f"**{label}:** {value}\n"
    description += f"\n---\n\n{footer}"
    return description


class TrelloCardFormatter(EventFormatter):
    """Formatter for Trello cards.

    ``format_event`` needs the id of the list to use when
    ``settings.list_mapping`` has no entry for the event. The mapping keys
    are ``project``, ``deliverable.submitted`` and ``event``.
    """

    handlers = {
        "project.created": "format_project_created",
        "deliverable.submitted": "format_deliverable_submitted",
        "event.created": "format_event_created",
    }

    def format_event(
        self,
        event: IntegrationEvent,
        settings: Optional[Mapping[str, Any]] = None,
        default_list_id: Optional[str] = None,
    ) -> Optional[Payload]:
        """Format a card, or None when the event should not create one."""
        integration_settings = settings or {}
        create_cards_for = integration_settings.get(
            "create_cards_for", DEFAULT_CREATE_CARDS_FOR
        )
        if not isinstance(create_cards_for, list) or event.type not in create_cards_for:
            return None

        card = super().format_event(event, integration_settings)
        if card is None:
            return None

        list_key = card.pop("_list_key")
        card["idList"] = self._list_id(list_key, integration_settings, default_list_id)
        return card

    def format_project_created(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        description = build_card_description(
            value_or(data, "description", ""),
            [
                ("Créé par", value_or(data, "creator_name", "Utilisateur")),
                ("Statut", value_or(data, "status", "Actif")),
                (
                    "Date de création",
                    format_fr_date(value_or(data, "created_at", event.timestamp)),
                ),
            ],
            "🎉 Nouveau projet créé sur Aurentia",
        )
        return self._card(
            f"🎯 Projet: {value_or(data, 'name', 'Sans nom')}",
            description,
            "project",
            self.link("/project", data.get("id")),
        )

    def format_deliverable_submitted(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        kind = value_or(data, "type", "Livrable")
        description = build_card_description(
            value_or(data, "content", ""),
            [
                ("Type", kind),
                ("Projet", value_or(data, "project_name", "N/A")),
                ("Soumis par", value_or(data, "submitter_name", "Entrepreneur")),
                ("Date de soumission", format_fr_date(event.timestamp)),
            ],
            "📝 Livrable en attente de révision",
        )
        return self._card(
            f"📝 Livrable: {value_or(data, 'name', kind)}",
            description,
            "deliverable.submitted",
            self.link("/deliverables", data.get("id")),
        )

    def format_event_created(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        start_time = value_or(data, "start_time", "")
        when = (
            f"{format_fr_date(data['start_date'])} {start_time}".rstrip()
            if data.get("start_date")
            else "Date non définie"
        )
        description = build_card_description(
            value_or(data, "description", ""),
            [
                ("Date", when),
                ("Lieu", value_or(data, "location", "Non spécifié")),
                ("Type", value_or(data, "type", "Événement")),
            ],
            "📅 Nouvel événement Aurentia",
        )
        card = self._card(
            f"📅 Événement: {value_or(data, 'title', 'Sans titre')}",
            description,
            "event",
            self.link("/events", ...),
        )
        due = self._due(data.get("start_date"), data.get("start_time"), settings)
        if due:
            card["due"] = due
        return card

    @staticmethod
    def _card(name: str, description: str, list_key: str, url: Optional[str]) -> Payload:
        card: Payload = {
            "name": name,
            "desc": description,
            "pos": "top",
            "_list_key": list_key,
        }
        if url:
            card["urlSource"] = url
        return card

    @staticmethod
    def _due(
        start_date: Any, start_time: Any, settings: Mapping[str, Any]
    ) -> Optional[str]:
        """Due date as UTC ISO 8601, 09:00 local time when no time is given."""
        if not start_date:
            return None
        try:
            local = datetime.fromisoformat(
                f"{start_date}T{start_time or DEFAULT_DUE_TIME}:00"
            )
            tz = pytz.timezone(settings.get("timezone") or DEFAULT_TIMEZONE)
        except (ValueError, pytz.UnknownTimeZoneError):
            return None
        due = tz.localize(local).astimezone(pytz.utc)
        return due.strftime("%Y-%m-%dT%H:%M:%S.000Z")

    @staticmethod
    def _list_id(
        list_key: str, settings: Mapping[str, Any], default_list_id: Optional[str]
    ) -> Optional[str]:
        list_mapping = settings.get("list_mapping") or {}
        if isinstance(list_mapping, dict) and list_mapping.get(list_key):
            return list_mapping[list_key]
        return default_list_id
