"""Structlog processors that keep integration secrets out of log output.

Two kinds of secret reach log calls in this service:

- credential fields (OAuth tokens, Trello keys, ciphertext) passed as
  keyword arguments; masked by key name
- incoming-webhook URLs, where the secret is part of the URL path, and
  Trello key/token query values; scrubbed from any string value, including
  the bare paths requests puts in its exception text

Usage:
    from infrastructure.logging.formatters import (
        mask_sensitive_data,
        redact_webhook_urls,
        scrub_secrets,
    )
"""

import re
from typing import Any, Callable, Dict, FrozenSet, Optional

MASK = "***REDACTED***"

SENSITIVE_PATTERNS = frozenset(
    {
        "token",
        "secret",
        "password",
        "authorization",
        "credential",
        "api_key",
        "apikey",
        "bearer",
    }
)

# Fixed path prefix of each provider's webhook URL, with or without the
# scheme and host; everything after the prefix authenticates the caller.
WEBHOOK_URL_RE = re.compile(
    r"((?:https://[^\s/\"']+)?/(?:services|api/webhooks|webhook))/[^\s\"'?]+"
)

# Trello passes its key and token as query parameters.
SECRET_QUERY_RE = re.compile(r"([?&](?:key|token)=)[^&\s\"']+")

Processor = Callable[[Any, str, Dict[str, Any]], Dict[str, Any]]


def mask_sensitive_data(
    mask_value: str = MASK,
    additional_patterns: Optional[FrozenSet[str]] = None,
) -> Processor:
    """Processor masking values whose key contains a sensitive pattern.

    Matching is case-insensitive. None values stay None so that "no token"
    remains visible in logs.
    """
    patterns = SENSITIVE_PATTERNS | (additional_patterns or frozenset())

    def processor(logger, method_name, event_dict):
        for key, value in event_dict.items():
            if value is None:
                continue
            lowered = key.lower()
            if any(pattern in lowered for pattern in patterns):
                event_dict[key] = mask_value
        return event_dict

    return processor


def scrub_webhook_url(text: str) -> str:
    """Keep the provider prefix of webhook URLs and drop the secret path."""
    return WEBHOOK_URL_RE.sub(r"\1/***", text)


def scrub_secrets(text: str) -> str:
    """Drop webhook path secrets and Trello key/token query values."""
    return SECRET_QUERY_RE.sub(r"\1***", scrub_webhook_url(text))


def redact_webhook_urls(logger, method_name, event_dict):
    """Scrub provider secrets out of every string value, including the event."""
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = scrub_secrets(value)
    return event_dict
