"""Google Calendar event formatter.

Converts platform calendar events into Google Calendar ``events.insert``
bodies. Other event types are notifications, not calendar entries, and
produce no payload.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Mapping, Optional

import pytz

from infrastructure.notifications.formatters.base import (
    EventFormatter,
    Payload,
    value_or,
)
from infrastructure.notifications.models import IntegrationEvent

DEFAULT_TIMEZONE = "America/Toronto"

EVENT_TYPE_LABELS = {
    "meeting": "Réunion",
    "workshop": "Atelier",
    "presentation": "Présentation",
    "deadline": "Date limite",
    "other": "Autre",
}

# Google Calendar colorId values: Peacock, Banana, Flamingo, Tomato, Graphite
DEFAULT_COLOR_IDS = {
    "meeting": "7",
    "workshop": "5",
    "presentation": "4",
    "deadline": "11",
    "other": "8",
}
FALLBACK_COLOR_ID = "8"


class GoogleCalendarEventFormatter(EventFormatter):
    """Formatter for Google Calendar events.

    Args:
        app_url: Base URL for deep links
        clock: Returns the current aware datetime; used for the default
            start date and the Meet request id
    """

    handlers = {"event.created": "format_event_created"}

    def __init__(
        self,
        app_url: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(app_url=app_url)
        self._clock = clock or (lambda: datetime.now(pytz.utc))

    def format_event_created(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Payload:
        data = event.data
        tz_name = settings.get("timezone") or DEFAULT_TIMEZONE
        start_date = data.get("start_date") or self._today(tz_name)
        start_time = data.get("start_time")
        end_time = data.get("end_time") or self._end_time(
            start_time, data.get("duration")
        )

        calendar_event: Dict[str, Any] = {
            "summary": value_or(data, "title", "Événement Aurentia"),
            "description": self._description(data),
            "start": self._moment(start_date, start_time, tz_name),
            "end": self._moment(data.get("end_date") or start_date, end_time, tz_name),
            "colorId": self._color_id(data.get("type"), settings),
            "status": "confirmed",
        }
        if data.get("location"):
            calendar_event["location"] = data["location"]

        attendees = data.get("attendees")
        if isinstance(attendees, list):
            calendar_event["attendees"] = [
                {"email": email, "responseStatus": "needsAction"}
                for email in attendees
                if email
            ]

        if settings.get("create_meet_links"):
            millis = int(self._clock().timestamp() * 1000)
            calendar_event["conferenceData"] = {
                "createRequest": {
                    "requestId": f"aurentia-{data.get('id')}-{millis}",
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            }

        return calendar_event

    def _today(self, tz_name: str) -> str:
        try:
            tz = pytz.timezone(tz_name)
        except pytz.UnknownTimeZoneError:
            tz = pytz.timezone(DEFAULT_TIMEZONE)
        return self._clock().astimezone(tz).strftime("%Y-%m-%d")

    @staticmethod
    def _moment(day: str, time: Optional[str], tz_name: str) -> Dict[str, str]:
        """Timed moment when a time is given, otherwise an all-day date."""
        if time:
            return {"dateTime": f"{day}T{time}:00", "timeZone": tz_name}
        return {"date": day}

    @staticmethod
    def _end_time(start_time: Optional[str], duration: Any) -> Optional[str]:
        """Add ``duration`` minutes to an ``HH:MM`` start time (wraps at midnight)."""
        if not start_time or not duration:
            return None
        try:
            hours, minutes = (int(part) for part in str(start_time).split(":")[:2])
            start = datetime(2000, 1, 1, hours, minutes)
            end = start + timedelta(minutes=int(duration))
        except (TypeError, ValueError):
            return None
        return end.strftime("%H:%M")

    @staticmethod
    def _description(data: Mapping[str, Any]) -> str:
        lines = []
        if data.get("description"):
            lines.append(f"{data['description']}\n")
        lines.append("---")
        lines.append("📅 Créé via Aurentia")
        if data.get("type"):
            label = EVENT_TYPE_LABELS.get(data["type"], data["type"])
            lines.append(f"Type: {label}")
        if data.get("organisation_name"):
            lines.append(f"Organisation: {data['organisation_name']}")
        return "\n".join(lines).strip()

    @staticmethod
    def _color_id(event_kind: Optional[str], settings: Mapping[str, Any]) -> str:
        color_mapping = settings.get("color_mapping") or {}
        if event_kind and isinstance(color_mapping, dict) and color_mapping.get(event_kind):
            return str(color_mapping[event_kind])
        return DEFAULT_COLOR_IDS.get(event_kind or "", FALLBACK_COLOR_ID)
