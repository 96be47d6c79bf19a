"""Operation result types and status enums.

Standardized result types for provider HTTP calls: a status enum and a result
dataclass that carries the response payload and HTTP status code.
"""

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "OperationResult",
    "OperationStatus",
]
