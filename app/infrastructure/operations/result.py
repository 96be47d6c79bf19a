"""Outcome of a provider HTTP call.

``ProviderHttpClient`` never raises on transport or HTTP failures; it
returns an ``OperationResult`` and channels translate it into delivery
results and French connection-test messages.
"""

from typing import Optional, Any
from dataclasses import dataclass

from infrastructure.operations.status import OperationStatus


@dataclass
class OperationResult:
    """Normalized provider response.

    Attributes:
        status: Outcome class
        message: Provider error message, or a short success note
        data: Parsed JSON body, when the body was JSON
        error_code: ``TIMEOUT``, ``CONNECTION_ERROR``, ``REQUEST_ERROR`` or
            ``HTTP_<status>``
        status_code: HTTP status, None when no response arrived
        text: Raw response body
        retry_after: ``Retry-After`` seconds on retryable statuses
    """

    status: OperationStatus
    message: str
    data: Optional[Any] = None
    error_code: Optional[str] = None
    status_code: Optional[int] = None
    text: str = ""
    retry_after: Optional[int] = None

    @property
    def is_success(self) -> bool:
        return self.status == OperationStatus.SUCCESS

    @property
    def is_retryable(self) -> bool:
        return self.status.is_retryable

    @property
    def is_timeout(self) -> bool:
        return self.error_code == "TIMEOUT"

    @property
    def is_connection_error(self) -> bool:
        return self.error_code == "CONNECTION_ERROR"

    @classmethod
    def success(
        cls,
        data: Optional[Any] = None,
        message: str = "ok",
        status_code: Optional[int] = None,
        text: str = "",
    ) -> "OperationResult":
        return cls(
            status=OperationStatus.SUCCESS,
            message=message,
            data=data,
            status_code=status_code,
            text=text,
        )

    @classmethod
    def error(
        cls,
        status: OperationStatus,
        message: str,
        error_code: Optional[str] = None,
        retry_after: Optional[int] = None,
        data: Optional[Any] = None,
        status_code: Optional[int] = None,
        text: str = "",
    ) -> "OperationResult":
        """Failed call with an explicit outcome class.

        Args:
            status: Outcome class, anything but SUCCESS
            message: Error message extracted from the provider body
            error_code: Machine-readable code (see class attributes)
            retry_after: Seconds to wait before retrying, if the provider said
            data: Parsed error body
            status_code: HTTP status, if a response arrived
            text: Raw response body
        """
        return cls(
            status=status,
            message=message,
            error_code=error_code,
            retry_after=retry_after,
            data=data,
            status_code=status_code,
            text=text,
        )

    @classmethod
    def transient_error(
        cls,
        message: str,
        error_code: Optional[str] = None,
        retry_after: Optional[int] = None,
        status_code: Optional[int] = None,
        text: str = "",
    ) -> "OperationResult":
        """Timeout, refused connection or 5xx."""
        return cls.error(
            OperationStatus.TRANSIENT_ERROR,
            message,
            error_code,
            retry_after,
            status_code=status_code,
            text=text,
        )

    @classmethod
    def permanent_error(
        cls,
        message: str,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
        text: str = "",
        data: Optional[Any] = None,
    ) -> "OperationResult":
        """Request the provider will keep rejecting."""
        return cls.error(
            OperationStatus.PERMANENT_ERROR,
            message,
            error_code,
            data=data,
            status_code=status_code,
            text=text,
        )
