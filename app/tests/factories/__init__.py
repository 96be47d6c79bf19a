"""Test data factories for deterministic test data generation."""

from tests.factories.notifications import (
    FIXED_NOW,
    make_event,
    make_google_credentials,
    make_integration,
    make_log_entry,
    make_trello_credentials,
    make_webhook_credentials,
)

__all__ = [
    "FIXED_NOW",
    "make_event",
    "make_google_credentials",
    "make_integration",
    "make_log_entry",
    "make_trello_credentials",
    "make_webhook_credentials",
]
