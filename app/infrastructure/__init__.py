"""Infrastructure modules for the integrations service.

Centralized infrastructure components:
- configuration: Settings management (settings, Settings)
- logging: Structured logging and event context (get_module_logger, bind_event_context)
- operations: Operation results (OperationResult, OperationStatus)
- notifications: Integration notification dispatcher
"""

# Configuration
from infrastructure.configuration import settings

# Logging
from infrastructure.logging import bind_event_context, get_module_logger

# Operations
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    # Configuration
    "settings",
    # Logging
    "bind_event_context",
    "get_module_logger",
    # Operations
    "OperationResult",
    "OperationStatus",
]
