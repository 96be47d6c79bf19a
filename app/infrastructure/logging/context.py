"""Event context binding for structured logging.

Binds a correlation id and event metadata to every log line emitted while a
single integration event is being dispatched, including log lines emitted
from worker threads started with ``asyncio.to_thread`` (the context is
copied into the thread).

Usage:
    from infrastructure.logging import bind_event_context

    with bind_event_context(event_type="deliverable.submitted"):
        logger.info("dispatching")
"""

import uuid
from contextlib import contextmanager
from typing import Any, Generator, Optional

import structlog


@contextmanager
def bind_event_context(
    correlation_id: Optional[str] = None,
    event_type: Optional[str] = None,
    user_id: Optional[str] = None,
    organisation_id: Optional[str] = None,
    **extra_context: Any,
) -> Generator[None, None, None]:
    """Bind event-scoped context to all logs within the block.

    Args:
        correlation_id: Unique dispatch identifier. Auto-generated if not provided.
        event_type: Integration event type being dispatched.
        user_id: User the event belongs to.
        organisation_id: Organisation the event belongs to.
        **extra_context: Additional key-value pairs to include in logs.
    """
    context: dict[str, Any] = {"correlation_id": correlation_id or str(uuid.uuid4())}

    if event_type is not None:
        context["event_type"] = event_type
    if user_id is not None:
        context["user_id"] = user_id
    if organisation_id is not None:
        context["organisation_id"] = organisation_id

    context.update(extra_context)

    structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())

