"""Slack Block Kit event formatter.

Formats integration events as Slack incoming-webhook messages.
See: https://api.slack.com/block-kit
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


class SlackEventFormatter(EventFormatter):
    """Formatter for Slack Block Kit messages.

    Every message carries a plain ``text`` fallback (used in push
    notifications) and ``blocks``:
    - header blocks for new resources
    - section blocks with ``mrkdwn`` fields
    - an actions block with a link button when the resource has an id

    Example:
        formatter = SlackEventFormatter()
        message = formatter.format_event(event)
        # {"text": "🎉 Nouveau projet: ...", "blocks": [...]}
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
        blocks: List[Dict[str, Any]] = [
            self._header("🎉 Nouveau Projet Créé"),
            self._fields(
                f"*Projet:*\n{value_or(data, 'name', 'Sans nom')}",
                f"*Créé par:*\n{value_or(data, 'creator_name', 'Utilisateur')}",
                f"*Statut:*\n{value_or(data, 'status', 'Actif')}",
                f"*Date:*\n{format_fr_date(value_or(data, 'created_at', event.timestamp))}",
            ),
        ]
        if data.get("description"):
            blocks.append(self._section(f"*Description:*\n{data['description']}"))
        blocks.extend(
            self._button("Voir le projet", self.link("/project", data.get("id")), "primary")
        )
        return {
            "text": f"🎉 Nouveau projet: {value_or(data, 'name', 'Sans nom')}",
            "blocks": blocks,
        }

    def format_project_updated(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        name = value_or(data, "name", "Sans nom")
        blocks = [self._section(f"*📝 Projet mis à jour*\n\n*{name}* a été modifié")]
        blocks.extend(
            self._button("Voir les changements", self.link("/project", data.get("id")))
        )
        return {"text": f"📝 Projet mis à jour: {name}", "blocks": blocks}

    def format_deliverable_submitted(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        kind = value_or(data, "type", "Livrable")
        name = value_or(data, "name", kind)
        blocks = [
            self._header("📝 Nouveau Livrable Soumis"),
            self._fields(
                f"*Livrable:*\n{name}",
                f"*Type:*\n{kind}",
                f"*Projet:*\n{value_or(data, 'project_name', 'N/A')}",
                f"*Soumis par:*\n{value_or(data, 'submitter_name', 'Entrepreneur')}",
            ),
            self._section("⏰ *En attente de révision*"),
        ]
        blocks.extend(
            self._button(
                "Réviser le livrable",
                self.link("/deliverables", data.get("id")),
                "primary",
            )
        )
        return {"text": f"📝 Livrable soumis: {name}", "blocks": blocks}

    def format_deliverable_reviewed(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        approved = is_approved(data)
        name = value_or(data, "name", "Sans nom")
        title = "*✅ Livrable approuvé*" if approved else "*📝 Livrable évalué*"
        verb = "approuvé" if approved else "évalué"
        reviewer = value_or(data, "reviewer_name", "un mentor")
        blocks = [self._section(f"{title}\n\n*{name}* a été {verb} par {reviewer}")]
        blocks.extend(
            self._button("Voir les détails", self.link("/deliverables", data.get("id")))
        )
        return {
            "text": f"{'✅' if approved else '📝'} Livrable évalué: {name}",
            "blocks": blocks,
        }

    def format_comment_added(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        deliverable = value_or(data, "deliverable_name", "un livrable")
        author = value_or(data, "author_name", "Utilisateur")
        blocks = [
            self._section(
                f"*💬 Nouveau commentaire*\n\n{author} a ajouté un commentaire sur *{deliverable}*"
            ),
            self._section(f"> {truncate(data.get('comment_text'))}"),
        ]
        blocks.extend(
            self._button(
                "Voir le commentaire",
                self.link("/deliverables", data.get("deliverable_id")),
            )
        )
        return {"text": f"💬 Nouveau commentaire sur {deliverable}", "blocks": blocks}

    def format_member_joined(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        name = value_or(data, "name", "Utilisateur")
        organisation = value_or(data, "organisation_name", "l'organisation")
        role = value_or(data, "role", "membre")
        return {
            "text": f"👋 {name} a rejoint {organisation}",
            "blocks": [
                self._section(
                    f"👋 *{name}* vient de rejoindre *{organisation}* en tant que {role}!"
                )
            ],
        }

    def format_event_created(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        title = value_or(data, "title", "Sans titre")
        start_date = format_fr_date(data.get("start_date"), "Date non définie")
        start_time = value_or(data, "start_time", "")
        blocks = [
            self._header("📅 Nouvel Événement"),
            self._fields(
                f"*Titre:*\n{title}",
                f"*Date:*\n{start_date} {start_time}".rstrip(),
                f"*Lieu:*\n{value_or(data, 'location', 'Non spécifié')}",
                f"*Type:*\n{value_or(data, 'type', 'Événement')}",
            ),
        ]
        if data.get("description"):
            blocks.append(self._section(f"*Description:*\n{data['description']}"))
        blocks.extend(self._button("Voir l'événement", self.link("/events", ...)))
        return {"text": f"📅 Nouvel événement: {title}", "blocks": blocks}

    def format_generic(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        return {
            "text": f"Événement Aurentia: {event.type}",
            "blocks": [
                self._section(
                    f"*Événement:* {event.type}\n```{to_json(event.data)}```"
                )
            ],
        }

    def create_test_message(self, now: Optional[datetime] = None) -> Payload:
        """Message posted by the connection test."""
        sent_at = format_fr_datetime(now or datetime.now(timezone.utc))
        return {
            "text": "✅ Aurentia - Test de connexion réussi!",
            "blocks": [
                self._header("✅ Connexion Réussie!"),
                self._section(
                    "Votre intégration Slack avec *Aurentia* fonctionne correctement.\n\n"
                    "Vous recevrez désormais des notifications ici lorsque des "
                    "événements se produisent dans votre espace Aurentia."
                ),
                {
                    "type": "context",
                    "elements": [
                        {
                            "type": "mrkdwn",
                            "text": f"🤖 Message de test envoyé le {sent_at}",
                        }
                    ],
                },
            ],
        }

    @staticmethod
    def _header(text: str) -> Dict[str, Any]:
        return {
            "type": "header",
            "text": {"type": "plain_text", "text": text, "emoji": True},
        }

    @staticmethod
    def _section(text: str) -> Dict[str, Any]:
        return {"type": "section", "text": {"type": "mrkdwn", "text": text}}

    @staticmethod
    def _fields(*texts: str) -> Dict[str, Any]:
        return {
            "type": "section",
            "fields": [{"type": "mrkdwn", "text": text} for text in texts],
        }

    @staticmethod
    def _button(
        label: str, url: Optional[str], style: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Actions block with one link button; empty when there is no URL."""
        if not url:
            return []
        button: Dict[str, Any] = {
            "type": "button",
            "text": {"type": "plain_text", "text": label},
            "url": url,
        }
        if style:
            button["style"] = style
        return [{"type": "actions", "elements": [button]}]
