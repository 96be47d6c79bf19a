"""Outcome classes for provider calls."""

from enum import Enum


class OperationStatus(str, Enum):
    """How a provider call ended.

    Attributes:
        SUCCESS: 2xx response
        TRANSIENT_ERROR: Timeout, refused connection or 5xx
        RATE_LIMITED: 429; ``retry_after`` carries the provider hint
        PERMANENT_ERROR: Any other rejected request
        UNAUTHORIZED: 401/403, credentials need attention
        NOT_FOUND: 404, the webhook, board or calendar is gone
    """

    SUCCESS = "success"
    TRANSIENT_ERROR = "transient_error"
    RATE_LIMITED = "rate_limited"
    PERMANENT_ERROR = "permanent_error"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"

    @classmethod
    def from_http_status(cls, status_code: int) -> "OperationStatus":
        if 200 <= status_code < 300:
            return cls.SUCCESS
        if status_code == 429:
            return cls.RATE_LIMITED
        if status_code >= 500:
            return cls.TRANSIENT_ERROR
        if status_code in (401, 403):
            return cls.UNAUTHORIZED
        if status_code == 404:
            return cls.NOT_FOUND
        return cls.PERMANENT_ERROR

    @property
    def is_retryable(self) -> bool:
        return self in (OperationStatus.TRANSIENT_ERROR, OperationStatus.RATE_LIMITED)
