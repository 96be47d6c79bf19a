"""Google Drive file formatter.

Maps platform events to Drive ``files.create`` metadata: a folder per new
project, and empty Google Docs for submitted deliverables and meeting notes.
"""

from typing import Any, Mapping, Optional

from infrastructure.notifications.formatters.base import (
    EventFormatter,
    Payload,
    format_fr_date,
    value_or,
)
from infrastructure.notifications.models import IntegrationEvent

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
DOCUMENT_MIME_TYPE = "application/vnd.google-apps.document"


class GoogleDriveFileFormatter(EventFormatter):
    """Formatter for Google Drive files and folders.

    Payloads are ``{name, mimeType, description?}``; the channel adds
    ``parents`` from ``settings.folder_id``.
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
    ) -> Optional[Payload]:
        """Format file metadata, or None when the event type is filtered out."""
        events = (settings or {}).get("events")
        if isinstance(events, list) and event.type not in events:
            return None
        return super().format_event(event, settings)

    def format_project_created(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        return {
            "name": f"Aurentia - {value_or(data, 'name', 'Sans nom')}",
            "mimeType": FOLDER_MIME_TYPE,
        }

    def format_deliverable_submitted(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        kind = value_or(data, "type", "Livrable")
        lines = [
            f"Livrable soumis le {format_fr_date(event.timestamp)}",
            f"Type: {kind}",
            f"Projet: {value_or(data, 'project_name', 'N/A')}",
            f"Soumis par: {value_or(data, 'submitter_name', 'Entrepreneur')}",
        ]
        link = self.link("/deliverables", data.get("id"))
        if link:
            lines.append(f"Lien: {link}")
        return {
            "name": f"📝 {value_or(data, 'name', kind)}",
            "mimeType": DOCUMENT_MIME_TYPE,
            "description": "\n".join(lines),
        }

    def format_event_created(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        title = value_or(data, "title", "Événement")
        start_date = format_fr_date(data.get("start_date"), "Date non définie")
        lines = [
            f"Notes de réunion: {title}",
            f"Date: {start_date} {value_or(data, 'start_time', '')}".rstrip(),
            f"Lieu: {value_or(data, 'location', 'Non spécifié')}",
        ]
        if data.get("description"):
            lines.append(str(data["description"]))
        return {
            "name": f"📅 Notes - {title} ({start_date})",
            "mimeType": DOCUMENT_MIME_TYPE,
            "description": "\n".join(lines),
        }
