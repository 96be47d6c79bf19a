"""Microsoft Teams Adaptive Card event formatter.

Formats integration events as Teams incoming-webhook messages wrapping an
Adaptive Card 1.4 attachment.
See: https://adaptivecards.io/explorer/
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from infrastructure.notifications.formatters.base import (
    EventFormatter,
    Payload,
    format_fr_date,
    format_fr_datetime,
    is_approved,
    to_json,
    truncate,
    value_or,
)
from infrastructure.notifications.models import IntegrationEvent

ADAPTIVE_CARD_CONTENT_TYPE = "application/vnd.microsoft.card.adaptive"
ADAPTIVE_CARD_SCHEMA = "http://adaptivecards.io/schemas/adaptive-card.json"
ADAPTIVE_CARD_VERSION = "1.4"
GENERIC_DATA_LIMIT = 500


class TeamsEventFormatter(EventFormatter):
    """Formatter for Teams Adaptive Cards.

    Cards open with a large bold title TextBlock (color ``Good``, ``Accent``
    or ``Attention``), followed by FactSets or wrapped text, and an
    ``Action.OpenUrl`` when the resource has an id.
    """

    handlers = {
        "project.created": "format_project_created",
        "project.updated": "format_project_updated",
        "deliverable.submitted": "format_deliverable_submitted",
        "deliverable.reviewed": "format_deliverable_reviewed",
        "comment.added": "format_comment_added",
        "member.joined": "format_member_joined",
        "event.created": "format_event_created",
    }

    def format_project_created(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        body = [
            self._title("🎉 Nouveau Projet Créé", "Good"),
            self._facts(
                ("Projet", value_or(data, "name", "Sans nom")),
                ("Créé par", value_or(data, "creator_name", "Utilisateur")),
                ("Statut", value_or(data, "status", "Actif")),
                ("Date", format_fr_date(value_or(data, "created_at", event.timestamp))),
            ),
        ]
        if data.get("description"):
            body.append(self._text(data["description"]))
        return self._card(
            body, self._open_url("Voir le projet", self.link("/project", data.get("id")))
        )

    def format_project_updated(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        body = [
            self._title("📝 Projet Mis à Jour", "Accent"),
            self._text(f"**{value_or(data, 'name', 'Sans nom')}** a été modifié"),
        ]
        return self._card(
            body,
            self._open_url("Voir les changements", self.link("/project", data.get("id"))),
        )

    def format_deliverable_submitted(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        kind = value_or(data, "type", "Livrable")
        body = [
            self._title("📝 Nouveau Livrable Soumis", "Attention"),
            self._facts(
                ("Livrable", value_or(data, "name", kind)),
                ("Type", kind),
                ("Projet", value_or(data, "project_name", "N/A")),
                ("Soumis par", value_or(data, "submitter_name", "Entrepreneur")),
            ),
            {**self._text("⏰ **En attente de révision**"), "color": "Attention"},
        ]
        return self._card(
            body,
            self._open_url(
                "Réviser le livrable", self.link("/deliverables", data.get("id"))
            ),
        )

    def format_deliverable_reviewed(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        approved = is_approved(data)
        verb = "approuvé" if approved else "évalué"
        body = [
            self._title(
                "✅ Livrable Approuvé" if approved else "📝 Livrable Évalué",
                "Good" if approved else "Accent",
            ),
            self._text(
                f"**{value_or(data, 'name', 'Sans nom')}** a été {verb} par "
                f"{value_or(data, 'reviewer_name', 'un mentor')}"
            ),
        ]
        return self._card(
            body,
            self._open_url("Voir les détails", self.link("/deliverables", data.get("id"))),
        )

    def format_comment_added(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        body = [
            self._title("💬 Nouveau Commentaire", "Accent"),
            self._text(
                f"{value_or(data, 'author_name', 'Utilisateur')} a ajouté un "
                f"commentaire sur **{value_or(data, 'deliverable_name', 'un livrable')}**"
            ),
            {
                "type": "Container",
                "items": [
                    {
                        "type": "TextBlock",
                        "text": f'"{truncate(data.get("comment_text"))}"',
                        "wrap": True,
                        "color": "Default",
                    }
                ],
                "style": "Emphasis",
                "spacing": "Medium",
            },
        ]
        return self._card(
            body,
            self._open_url(
                "Voir le commentaire",
                self.link("/deliverables", data.get("deliverable_id")),
            ),
        )

    def format_member_joined(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        organisation = value_or(data, "organisation_name", "l'organisation")
        body = [
            self._title("👋 Nouveau Membre", "Good"),
            self._text(
                f"**{value_or(data, 'name', 'Utilisateur')}** vient de rejoindre "
                f"**{organisation}** en tant que {value_or(data, 'role', 'membre')}!"
            ),
        ]
        return self._card(body)

    def format_event_created(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        start_date = format_fr_date(data.get("start_date"), "Date non définie")
        start_time = value_or(data, "start_time", "")
        body = [
            self._title("📅 Nouvel Événement", "Attention"),
            self._facts(
                ("Titre", value_or(data, "title", "Sans titre")),
                ("Date", f"{start_date} {start_time}".rstrip()),
                ("Lieu", value_or(data, "location", "Non spécifié")),
                ("Type", value_or(data, "type", "Événement")),
            ),
        ]
        if data.get("description"):
            body.append(self._text(data["description"]))
        return self._card(body, self._open_url("Voir l'événement", self.link("/events", ...)))

    def format_generic(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        body = [
            {
                "type": "TextBlock",
                "text": "Événement Aurentia",
                "size": "Large",
                "weight": "Bolder",
            },
            self._text(f"**Type:** {event.type}"),
            self._text(f"```\n{to_json(event.data, limit=GENERIC_DATA_LIMIT)}\n```"),
        ]
        return self._card(body)

    def create_test_message(self, now: Optional[datetime] = None) -> Payload:
        """Card posted by the connection test."""
        sent_at = format_fr_datetime(now or datetime.now(timezone.utc))
        body = [
            {
                "type": "TextBlock",
                "text": "✅ Connexion Réussie!",
                "size": "ExtraLarge",
                "weight": "Bolder",
                "color": "Good",
            },
            self._text(
                "Votre intégration Microsoft Teams avec **Aurentia** fonctionne "
                "correctement.\n\nVous recevrez désormais des notifications ici "
                "lorsque des événements se produisent dans votre espace Aurentia."
            ),
            {
                "type": "TextBlock",
                "text": f"🤖 Message de test envoyé le {sent_at}",
                "size": "Small",
                "color": "Default",
                "spacing": "Medium",
            },
        ]
        return self._card(body)

    @staticmethod
    def _card(
        body: List[Dict[str, Any]], actions: Optional[List[Dict[str, Any]]] = None
    ) -> Payload:
        content: Dict[str, Any] = {
            "$schema": ADAPTIVE_CARD_SCHEMA,
            "type": "AdaptiveCard",
            "version": ADAPTIVE_CARD_VERSION,
            "body": body,
            "msteams": {"width": "Full"},
        }
        if actions:
            content["actions"] = actions
        return {
            "type": "message",
            "attachments": [
                {"contentType": ADAPTIVE_CARD_CONTENT_TYPE, "content": content}
            ],
        }

    @staticmethod
    def _title(text: str, color: str) -> Dict[str, Any]:
        return {
            "type": "TextBlock",
            "text": text,
            "size": "Large",
            "weight": "Bolder",
            "color": color,
        }

    @staticmethod
    def _text(text: str) -> Dict[str, Any]:
        return {"type": "TextBlock", "text": text, "wrap": True, "spacing": "Medium"}

    @staticmethod
    def _facts(*facts: tuple) -> Dict[str, Any]:
        return {
            "type": "FactSet",
            "facts": [{"title": title, "value": str(value)} for title, value in facts],
            "spacing": "Medium",
        }

    @staticmethod
    def _open_url(title: str, url: Optional[str]) -> Optional[List[Dict[str, Any]]]:
        if not url:
            return None
        return [{"type": "Action.OpenUrl", "title": title, "url": url}]
