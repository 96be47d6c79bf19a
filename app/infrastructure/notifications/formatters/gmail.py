"""Gmail event formatter.

Formats integration events as HTML email messages. Recipients come from the
event data (mentor, organisation, user or explicit recipient addresses);
messages without any recipient are skipped.
"""

from html import escape
from typing import Any, Iterable, List, Mapping, Optional

from infrastructure.notifications.formatters.base import (
    EventFormatter,
    Payload,
    format_fr_date,
    value_or,
)
from infrastructure.notifications.models import IntegrationEvent

BUTTON_STYLE = (
    "background-color: #8b5cf6; color: white; padding: 10px 20px; "
    "text-decoration: none; border-radius: 5px; display: inline-block;"
)

EMAIL_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="background: linear-gradient(135deg, #8b5cf6 0%, #6366f1 100%); color: white; padding: 30px; border-radius: 10px 10px 0 0; text-align: center;">
    <h1 style="margin: 0; font-size: 24px;">{title}</h1>
  </div>
  <div style="background-color: #f9fafb; padding: 30px; border-radius: 0 0 10px 10px;">
    {content}
    <hr style="border: none; border-top: 1px solid #e5e7eb; margin: 30px 0;">
    <p style="color: #6b7280; font-size: 12px; text-align: center;">
      Cet email a été envoyé par Aurentia. Si vous ne souhaitez plus recevoir ces notifications, vous pouvez les désactiver dans vos paramètres.
    </p>
  </div>
</body>
</html>"""


def _text(value: Any) -> str:
    return escape("" if value is None else str(value))


class GmailEventFormatter(EventFormatter):
    """Formatter for Gmail messages.

    Produces ``{to, cc, bcc, subject, body, is_html}``. All interpolated
    event values are HTML-escaped.
    """

    handlers = {
        "deliverable.submitted": "format_deliverable_submitted",
        "deliverable.reviewed": "format_deliverable_reviewed",
        "comment.added": "format_comment_added",
        "project.created": "format_project_created",
        "member.joined": "format_member_joined",
        "event.created": "format_event_created",
    }

    def format_event(
        self,
        event: IntegrationEvent,
        settings: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Payload]:
        """Format an email, or None when the event is filtered out or has no recipient."""
        events = (settings or {}).get("events")
        if isinstance(events, list) and event.type not in events:
            return None
        message = super().format_event(event, settings)
        if message is None or not message["to"]:
            return None
        return message

    def format_deliverable_submitted(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        deliverable = value_or(data, "deliverable_name", value_or(data, "name", "Livrable"))
        items = [
            ("Projet", value_or(data, "project_name", "N/A")),
            ("Livrable", deliverable),
            ("Soumis par", value_or(data, "user_name", "Entrepreneur")),
            ("Date", format_fr_date(event.timestamp)),
        ]
        organisation_id = data.get("organisation_id") or event.organisation_id
        link = (
            self._app_link(data, f"/organisation/{organisation_id}/projets")
            if organisation_id
            else self.link("/deliverables", data.get("id"))
        )
        content = (
            "<p>Un nouveau livrable a été soumis pour révision.</p>"
            f"{self._list(items)}"
            f"<p>{_text(data.get('description'))}</p>"
            f"{self._button('Voir le livrable', link)}"
        )
        return self._message(
            self._recipients(data.get("mentor_email") or data.get("organisation_email")),
            f"📤 Nouveau livrable soumis : {deliverable}",
            "Nouveau Livrable Soumis",
            content,
        )

    def format_deliverable_reviewed(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        approved = data.get("status") == "approved"
        status = "approuvé ✅" if approved else "refusé ❌"
        deliverable = value_or(data, "deliverable_name", value_or(data, "name", "Livrable"))
        items = [
            ("Projet", value_or(data, "project_name", "N/A")),
            ("Livrable", deliverable),
            ("Statut", status),
            ("Note", f"{value_or(data, 'score', 'N/A')}/10"),
        ]
        content = (
            "<p>Votre livrable a été évalué.</p>"
            f"{self._list(items)}"
            "<p><strong>Commentaire du mentor :</strong></p>"
            f"<p>{_text(value_or(data, 'feedback', 'Aucun commentaire'))}</p>"
            f"{self._button('Voir mes projets', self._app_link(data, '/projets'))}"
        )
        return self._message(
            self._recipients(data.get("user_email")),
            f"{'✅' if approved else '❌'} Livrable {status} : {deliverable}",
            f"Livrable {status}",
            content,
        )

    def format_comment_added(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        deliverable = value_or(data, "deliverable_name", "un livrable")
        items = [
            ("Livrable", deliverable),
            (
                "Commenté par",
                value_or(data, "commenter_name", value_or(data, "author_name", "Utilisateur")),
            ),
            ("Date", format_fr_date(event.timestamp)),
        ]
        comment = value_or(data, "comment", data.get("comment_text"))
        content = (
            "<p>Un nouveau commentaire a été ajouté sur un livrable.</p>"
            f"{self._list(items)}"
            "<p><strong>Commentaire :</strong></p>"
            f"<p>{_text(comment)}</p>"
        )
        return self._message(
            self._recipients(data.get("recipient_email")),
            f"💬 Nouveau commentaire sur {deliverable}",
            "Nouveau Commentaire",
            content,
        )

    def format_project_created(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        project = value_or(data, "project_name", value_or(data, "name", "Sans nom"))
        items = [
            ("Projet", project),
            ("Créé par", value_or(data, "user_name", value_or(data, "creator_name", "Utilisateur"))),
            ("Date", format_fr_date(event.timestamp)),
        ]
        content = (
            "<p>Un nouveau projet a été créé dans Aurentia.</p>"
            f"{self._list(items)}"
            f"<p>{_text(data.get('description'))}</p>"
        )
        return self._message(
            self._recipients(data.get("organisation_email")),
            f"🎉 Nouveau projet créé : {project}",
            "Nouveau Projet Créé",
            content,
        )

    def format_member_joined(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        member = value_or(data, "user_name", value_or(data, "name", "Utilisateur"))
        items = [
            ("Nom", member),
            ("Email", value_or(data, "user_email", "N/A")),
            ("Date", format_fr_date(event.timestamp)),
        ]
        content = (
            "<p>Un nouveau membre a rejoint votre organisation.</p>"
            f"{self._list(items)}"
        )
        return self._message(
            self._recipients(data.get("organisation_email")),
            f"👋 Nouveau membre : {member}",
            "Nouveau Membre",
            content,
        )

    def format_event_created(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        title = value_or(data, "event_title", value_or(data, "title", "Sans titre"))
        items = [
            ("Titre", title),
            ("Date", format_fr_date(data.get("start_date"), "À définir")),
            ("Heure", value_or(data, "start_time", "À définir")),
        ]
        if data.get("location"):
            items.append(("Lieu", data["location"]))
        content = (
            "<p>Un nouvel événement a été créé dans le calendrier.</p>"
            f"{self._list(items)}"
            f"<p>{_text(data.get('description'))}</p>"
        )
        attendees = data.get("attendees")
        return self._message(
            self._recipients(*(attendees if isinstance(attendees, list) else [])),
            f"📅 Nouvel événement : {title}",
            "Nouvel Événement",
            content,
        )

    def _app_link(self, data: Mapping[str, Any], path: str) -> str:
        base = str(data.get("app_url") or self.app_url).rstrip("/")
        return f"{base}{path}"

    @staticmethod
    def _recipients(*addresses: Any) -> List[str]:
        return [str(address) for address in addresses if address]

    @staticmethod
    def _list(items: Iterable[tuple]) -> str:
        rows = "".join(
            f"<li><strong>{_text(label)} :</strong> {_text(value)}</li>"
            for label, value in items
        )
        return f"<ul>{rows}</ul>"

    @staticmethod
    def _button(label: str, url: Optional[str]) -> str:
        if not url:
            return ""
        return (
            f'<p><a href="{escape(url, quote=True)}" style="{BUTTON_STYLE}">'
            f"{_text(label)}</a></p>"
        )

    @staticmethod
    def _message(to: List[str], subject: str, title: str, content: str) -> Payload:
        return {
            "to": to,
            "cc": [],
            "bcc": [],
            "subject": subject,
            "body": EMAIL_TEMPLATE.format(title=_text(title), content=content),
            "is_html": True,
        }
