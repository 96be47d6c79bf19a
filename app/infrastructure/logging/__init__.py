"""Structured logging infrastructure built on structlog.

Public API:
    - configure_logging(): Initialize logging for the application
    - get_module_logger(): Get a logger for the calling module
    - bind_event_context(): Context manager for event-scoped logging
    - mask_sensitive_data(): Processor that redacts credential fields
    - redact_webhook_urls(): Processor that scrubs provider secrets from values
    - scrub_secrets(): Scrub provider secrets from a single string

Example:
    from infrastructure.logging import get_module_logger, bind_event_context

    logger = get_module_logger()

    with bind_event_context(event_type="comment.added"):
        logger.info("dispatching_event")
"""

from infrastructure.logging.setup import configure_logging, get_module_logger
from infrastructure.logging.context import bind_event_context
from infrastructure.logging.formatters import (
    SENSITIVE_PATTERNS,
    mask_sensitive_data,
    redact_webhook_urls,
    scrub_secrets,
)

__all__ = [
    "configure_logging",
    "get_module_logger",
    "bind_event_context",
    "mask_sensitive_data",
    "redact_webhook_urls",
    "scrub_secrets",
    "SENSITIVE_PATTERNS",
]
