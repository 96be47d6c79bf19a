"""Base event formatter for provider-specific payloads.

All provider formatters (Slack Block Kit, Discord embeds, Teams Adaptive
Cards, Calendar events, Drive files, Gmail messages, Trello cards) inherit
from this base class.

Formatters are pure: they read ``event.data`` defensively, never perform
I/O and never raise on missing data. Each formatter declares a dispatch
table mapping event types to builder methods; unlisted types go to
``format_generic``.
"""

import json
from abc import ABC
from datetime import date, datetime
from typing import Any, Callable, Dict, Mapping, Optional

import structlog

from infrastructure.configuration import settings
from infrastructure.notifications.models import IntegrationEvent

logger = structlog.get_logger()

COMMENT_PREVIEW_LENGTH = 200
FOOTER_TEXT = "Aurentia Platform"

Payload = Dict[str, Any]
Builder = Callable[[IntegrationEvent, Mapping[str, Any]], Optional[Payload]]


def value_or(data: Mapping[str, Any], key: str, fallback: Any = "") -> Any:
    """Return ``data[key]`` unless it is missing or empty."""
    value = data.get(key)
    if value is None or value == "":
        return fallback
    return value


def truncate(text: Any, limit: int = COMMENT_PREVIEW_LENGTH, suffix: str = "...") -> str:
    """Cut text to ``limit`` characters, appending ``suffix`` when cut."""
    text = "" if text is None else str(text)
    if len(text) > limit:
        return f"{text[:limit]}{suffix}"
    return text


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse ISO strings, dates and datetimes. Returns None if unparseable."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def format_fr_date(value: Any, fallback: str = "") -> str:
    """Render a date as ``dd/mm/YYYY``."""
    parsed = parse_datetime(value)
    if parsed is None:
        return fallback if value in (None, "") else str(value)
    return parsed.strftime("%d/%m/%Y")


def format_fr_datetime(value: datetime) -> str:
    """Render a timestamp as ``dd/mm/YYYY HH:MM:SS``."""
    return value.strftime("%d/%m/%Y %H:%M:%S")


def to_json(data: Any, limit: Optional[int] = None) -> str:
    """Pretty-print event data, optionally truncated without suffix."""
    text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
    return text[:limit] if limit is not None else text


def is_approved(data: Mapping[str, Any]) -> bool:
    return data.get("status") == "approved" or bool(data.get("approved"))


class EventFormatter(ABC):
    """Abstract base class for provider event formatters.

    Subclasses fill ``handlers`` with ``{event_type: method_name}`` and
    implement one builder per entry. Builders receive the event and the
    integration settings and return the provider payload, or None when
    the provider should not be called.

    Attributes:
        handlers: Event type to builder method name
        _app_url: Optional override of the deep-link base URL
    """

    handlers: Dict[str, str] = {}

    def __init__(self, app_url: Optional[str] = None):
        """Initialize the formatter.

        Args:
            app_url: Base URL for deep links. Defaults to
                ``settings.notifications.APP_URL`` read at format time.
        """
        self._app_url = app_url.rstrip("/") if app_url else None
        self._logger = logger.bind(formatter=self.__class__.__name__)

    @property
    def app_url(self) -> str:
        return self._app_url or settings.notifications.APP_URL

    def link(self, path: str, resource_id: Any = None) -> Optional[str]:
        """Build a deep link, or None when the resource id is missing.

        Args:
            path: Path under the app, e.g. ``/project``
            resource_id: Identifier appended to the path. Pass ``...`` for
                paths that need no id (e.g. ``/events``).
        """
        if resource_id is ...:
            return f"{self.app_url}{path}"
        if resource_id in (None, ""):
            return None
        return f"{self.app_url}{path}/{resource_id}"

    def format_event(
        self,
        event: IntegrationEvent,
        settings: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Payload]:
        """Format an event through the dispatch table.

        Args:
            event: Event to format
            settings: Integration settings (``events``, provider options)

        Returns:
            Provider payload, or None when nothing should be sent.
        """
        integration_settings = settings or {}
        handler_name = self.handlers.get(event.type)
        if handler_name is None:
            return self.format_generic(event, integration_settings)
        builder: Builder = getattr(self, handler_name)
        return builder(event, integration_settings)

    def format_generic(
        self, event: IntegrationEvent, settings: Mapping[str, Any]
    ) -> Optional[Payload]:
        """Fallback for event types without a builder. Default: skip."""
        return None
