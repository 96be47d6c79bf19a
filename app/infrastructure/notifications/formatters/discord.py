"""Discord embed event formatter.

Formats integration events as Discord webhook messages with rich embeds.
See: https://discord.com/developers/docs/resources/webhook#execute-webhook
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from infrastructure.notifications.formatters.base import (
    FOOTER_TEXT,
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

GENERIC_DATA_LIMIT = 1000


class DiscordColor:
    """Embed colors (decimal RGB)."""

    GREEN = 0x10B981
    BLUE = 0x3B82F6
    AURENTIA_PINK = 0xEC4899
    PURPLE = 0x8B5CF6
    AQUA = 0x06B6D4
    AURENTIA_ORANGE = 0xF97316
    GREY = 0x95A5A6


class DiscordEventFormatter(EventFormatter):
    """Formatter for Discord embeds.

    Messages have an optional ``content`` line and a single embed with a
    title, a color, inline fields, a link when the resource has an id, the
    platform footer and the event timestamp.
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
        name = value_or(data, "name", "Sans nom")
        embed = self._embed(
            event,
            title="🎉 Nouveau Projet Créé",
            description=data.get("description") or None,
            color=DiscordColor.GREEN,
            url=self.link("/project", data.get("id")),
            fields=[
                self._field("Projet", name),
                self._field("Créé par", value_or(data, "creator_name", "Utilisateur")),
                self._field("Statut", value_or(data, "status", "Actif")),
                self._field(
                    "Date",
                    format_fr_date(value_or(data, "created_at", event.timestamp)),
                ),
            ],
        )
        return {"content": f"🎉 Nouveau projet: **{name}**", "embeds": [embed]}

    def format_project_updated(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        embed = self._embed(
            event,
            title="📝 Projet Mis à Jour",
            description=f"**{value_or(data, 'name', 'Sans nom')}** a été modifié",
            color=DiscordColor.BLUE,
            url=self.link("/project", data.get("id")),
        )
        return {"embeds": [embed]}

    def format_deliverable_submitted(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        kind = value_or(data, "type", "Livrable")
        name = value_or(data, "name", kind)
        embed = self._embed(
            event,
            title="📝 Nouveau Livrable Soumis",
            description=f"**{name}** a été soumis pour révision",
            color=DiscordColor.AURENTIA_PINK,
            url=self.link("/deliverables", data.get("id")),
            fields=[
                self._field("Livrable", name),
                self._field("Type", kind),
                self._field("Projet", value_or(data, "project_name", "N/A")),
                self._field(
                    "Soumis par", value_or(data, "submitter_name", "Entrepreneur")
                ),
                self._field("Statut", "⏰ En attente de révision", inline=False),
            ],
        )
        return {
            "content": "📝 Un nouveau livrable attend votre révision!",
            "embeds": [embed],
        }

    def format_deliverable_reviewed(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        approved = is_approved(data)
        verb = "approuvé" if approved else "évalué"
        embed = self._embed(
            event,
            title="✅ Livrable Approuvé" if approved else "📝 Livrable Évalué",
            description=(
                f"**{value_or(data, 'name', 'Sans nom')}** a été {verb} par "
                f"{value_or(data, 'reviewer_name', 'un mentor')}"
            ),
            color=DiscordColor.GREEN if approved else DiscordColor.BLUE,
            url=self.link("/deliverables", data.get("id")),
        )
        return {
            "content": "✅ Félicitations!" if approved else "📝 Évaluation reçue",
            "embeds": [embed],
        }

    def format_comment_added(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        embed = self._embed(
            event,
            title="💬 Nouveau Commentaire",
            description=(
                f"{value_or(data, 'author_name', 'Utilisateur')} a ajouté un "
                f"commentaire sur **{value_or(data, 'deliverable_name', 'un livrable')}**"
            ),
            color=DiscordColor.PURPLE,
            url=self.link("/deliverables", data.get("deliverable_id")),
            fields=[
                self._field(
                    "Commentaire", truncate(data.get("comment_text")), inline=False
                )
            ],
        )
        return {"embeds": [embed]}

    def format_member_joined(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        name = value_or(data, "name", "Utilisateur")
        organisation = value_or(data, "organisation_name", "l'organisation")
        embed = self._embed(
            event,
            title="👋 Nouveau Membre",
            description=(
                f"**{name}** vient de rejoindre **{organisation}** "
                f"en tant que {value_or(data, 'role', 'membre')}!"
            ),
            color=DiscordColor.AQUA,
        )
        return {"content": f"👋 Bienvenue à {name}!", "embeds": [embed]}

    def format_event_created(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        start_date = format_fr_date(data.get("start_date"), "Date non définie")
        start_time = value_or(data, "start_time", "")
        embed = self._embed(
            event,
            title="📅 Nouvel Événement",
            description=(
                f"**{value_or(data, 'title', 'Sans titre')}**\n\n"
                f"{value_or(data, 'description', '')}"
            ),
            color=DiscordColor.AURENTIA_ORANGE,
            url=self.link("/events", ...),
            fields=[
                self._field("Date", f"{start_date} {start_time}".rstrip()),
                self._field("Lieu", value_or(data, "location", "Non spécifié")),
                self._field("Type", value_or(data, "type", "Événement")),
            ],
        )
        return {"content": "📅 Un nouvel événement a été créé!", "embeds": [embed]}

    def format_generic(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data_block = to_json(event.data, limit=GENERIC_DATA_LIMIT)
        embed = self._embed(
            event,
            title="Événement Aurentia",
            description=f"Type: {event.type}",
            color=DiscordColor.GREY,
            fields=[self._field("Données", f"```json\n{data_block}\n```", inline=False)],
        )
        return {"embeds": [embed]}

    def create_test_message(self, now: Optional[datetime] = None) -> Payload:
        """Message posted by the connection test."""
        sent_at = now or datetime.now(timezone.utc)
        embed = {
            "title": "✅ Connexion Réussie!",
            "description": (
                "Votre intégration Discord avec **Aurentia** fonctionne correctement.\n\n"
                "Vous recevrez désormais des notifications ici lorsque des "
                "événements se produisent dans votre espace Aurentia."
            ),
            "color": DiscordColor.GREEN,
            "footer": {
                "text": f"🤖 Message de test envoyé le {format_fr_datetime(sent_at)}"
            },
            "timestamp": sent_at.isoformat(),
        }
        return {
            "content": "🎉 **Aurentia - Test de connexion réussi!**",
            "embeds": [embed],
        }

    @staticmethod
    def _field(name: str, value: Any, inline: bool = True) -> Dict[str, Any]:
        return {"name": name, "value": str(value), "inline": inline}

    @staticmethod
    def _embed(
        event: IntegrationEvent,
        title: str,
        color: int,
        description: Optional[str] = None,
        url: Optional[str] = None,
        fields: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        embed: Dict[str, Any] = {"title": title, "color": color}
        if description:
            embed["description"] = description
        if url:
            embed["url"] = url
        if fields:
            embed["fields"] = fields
        embed["footer"] = {"text": FOOTER_TEXT}
        embed["timestamp"] = event.timestamp.isoformat()
        return embed
