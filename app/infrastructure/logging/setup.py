"""Structlog configuration for the integrations service.

Log lines carry the dispatch context bound by ``bind_event_context``, an ISO
timestamp and the call site. Credentials are masked and webhook URLs are
scrubbed before rendering. Production renders JSON; local runs render for
the console. Under pytest, loggers are configured but nothing is emitted.

Usage:
    from infrastructure.logging import get_module_logger

    logger = get_module_logger()
    logger.info("integration_notified", integration_id=integration.id)
"""

import inspect
import logging
import sys
from typing import List, Optional

import structlog
from structlog.stdlib import BoundLogger
from structlog.types import Processor

from infrastructure.configuration import settings
from infrastructure.logging.formatters import mask_sensitive_data, redact_webhook_urls

# Keys used by integration code that the generic patterns miss
CREDENTIAL_PATTERNS = frozenset({"webhook_url", "client_secret", "ciphertext", "raw"})

SILENT_LEVEL = logging.CRITICAL + 1


def _running_under_pytest() -> bool:
    return "pytest" in sys.modules


def build_processors(json_output: bool) -> List[Processor]:
    """Processor chain shared by every logger, ending with the renderer."""
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ),
        mask_sensitive_data(additional_patterns=CREDENTIAL_PATTERNS),
        redact_webhook_urls,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    return processors


def configure_logging(
    log_level: Optional[str] = None,
    is_production: Optional[bool] = None,
) -> BoundLogger:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Level name. Defaults to ``settings.LOG_LEVEL``.
        is_production: JSON output when True. Defaults to
            ``settings.is_production``.

    Returns:
        The root structlog logger.
    """
    if _running_under_pytest():
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.stdlib.add_log_level,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        logging.basicConfig(format="%(message)s", level=SILENT_LEVEL, force=True)
        return structlog.stdlib.get_logger()

    json_output = settings.is_production if is_production is None else is_production
    structlog.configure(
        processors=build_processors(json_output),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level_name = (log_level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        format="%(message)s", level=getattr(logging, level_name, logging.INFO)
    )
    return structlog.stdlib.get_logger()


logger: BoundLogger = configure_logging()


def get_module_logger() -> BoundLogger:
    """Logger bound with the calling module's name.

    ``component`` is the last dotted segment (``dispatcher``, ``trello``)
    and ``module_path`` the full module name.
    """
    frame = inspect.currentframe()
    caller = frame.f_back if frame is not None else None
    module = inspect.getmodule(caller) if caller is not None else None
    if module is None:
        return logger.bind(component="unknown")

    name = module.__name__
    return logger.bind(component=name.rsplit(".", 1)[-1], module_path=name)
