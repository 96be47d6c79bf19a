"""HTTP client for outbound provider calls.

Every channel talks to its provider (webhook endpoint, Google REST API,
Trello REST API) through this client. It owns the requests session, applies
the per-call timeout and normalizes every outcome into an
``OperationResult``, so channels never catch requests exceptions:

- 2xx: SUCCESS with the parsed JSON body in ``data``
- 401/403: UNAUTHORIZED, 404: NOT_FOUND, other 4xx: PERMANENT_ERROR
- 429: RATE_LIMITED, 5xx: TRANSIENT_ERROR (``retry_after`` from the header if present)
- timeout: error_code ``TIMEOUT``; refused/reset connection: ``CONNECTION_ERROR``

requests puts the request path and query string in its exception text, and
those carry webhook tokens and Trello keys, so transport failures are
reported by exception type only.

Failed HTTP responses carry ``error_code="HTTP_<status>"``, the status code
and the raw body. Nothing is retried.

Usage:
    from infrastructure.notifications.channels.http import ProviderHttpClient

    client = ProviderHttpClient(timeout=5)
    result = client.post(webhook_url, json_data=message)

    if not result.is_success:
        error = f"Slack API error: {result.status_code} - {result.text}"
"""

import json
from typing import Any, Dict, Optional

import requests
import structlog

from infrastructure.operations import OperationResult, OperationStatus

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class ProviderHttpClient:
    """HTTP client for third-party provider endpoints.

    Attributes:
        timeout: Default timeout in seconds
        session: Requests session with connection pooling
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize provider HTTP client.

        Args:
            timeout: Default timeout for requests in seconds
            session: Optional session (tests inject a mock)
        """
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": "Aurentia-Integrations/1.0"})
        self._logger = logger.bind(component="provider_http_client")

    def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """Send GET request.

        Args:
            url: Absolute provider URL
            params: Query parameters
            headers: Additional headers
            timeout: Request timeout (overrides default)

        Returns:
            OperationResult with response data or error
        """
        return self.request("GET", url, params=params, headers=headers, timeout=timeout)

    def post(
        self,
        url: str,
        json_data: Optional[Any] = None,
        form_data: Optional[Dict[str, Any]] = None,
        params: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """Send POST request.

        Args:
            url: Absolute provider URL
            json_data: JSON request body
            form_data: Form-encoded request body
            params: Query parameters (dict or list of pairs for repeated keys)
            headers: Additional headers
            timeout: Request timeout (overrides default)

        Returns:
            OperationResult with response data or error
        """
        return self.request(
            "POST",
            url,
            json_data=json_data,
            form_data=form_data,
            params=params,
            headers=headers,
            timeout=timeout,
        )

    def put(
        self,
        url: str,
        json_data: Optional[Any] = None,
        params: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """Send PUT request (full update of a provider resource)."""
        return self.request(
            "PUT",
            url,
            json_data=json_data,
            params=params,
            headers=headers,
            timeout=timeout,
        )

    def delete(
        self,
        url: str,
        params: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """Send DELETE request."""
        return self.request(
            "DELETE", url, params=params, headers=headers, timeout=timeout
        )

    def request(
        self,
        method: str,
        url: str,
        json_data: Optional[Any] = None,
        form_data: Optional[Dict[str, Any]] = None,
        params: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> OperationResult:
        """Send HTTP request and normalize the outcome.

        Returns:
            OperationResult with response data or error
        """
        timeout = timeout or self.timeout
        # Query strings carry Trello keys; log the path only
        log = self._logger.bind(method=method, url=url.split("?", 1)[0])
        log.debug("provider_http_request")

        try:
            response = self._session.request(
                method=method,
                url=url,
                json=json_data,
                data=form_data,
                params=params,
                headers=headers,
                timeout=timeout,
            )
        except requests.Timeout:
            log.warning("provider_http_timeout", timeout=timeout)
            return OperationResult.transient_error(
                message=f"Request timeout after {timeout}s",
                error_code="TIMEOUT",
            )
        except requests.ConnectionError as e:
            log.warning("provider_http_connection_error", error_type=type(e).__name__)
            return OperationResult.transient_error(
                message=f"Connection error: {type(e).__name__}",
                error_code="CONNECTION_ERROR",
            )
        except requests.RequestException as e:
            log.error("provider_http_request_error", error_type=type(e).__name__)
            return OperationResult.permanent_error(
                message=f"Request error: {type(e).__name__}",
                error_code="REQUEST_ERROR",
            )

        status_code = response.status_code
        text = response.text or ""
        log = log.bind(status_code=status_code)

        response_data: Optional[Any] = None
        if response.content:
            try:
                response_data = response.json()
            except (json.JSONDecodeError, ValueError):
                log.debug("non_json_response", content=text[:200])

        status = OperationStatus.from_http_status(status_code)
        if status == OperationStatus.SUCCESS:
            log.debug("provider_http_success")
            return OperationResult.success(
                data=response_data,
                message=f"{method} succeeded",
                status_code=status_code,
                text=text,
            )

        error_message = self._extract_error_message(response_data, text)
        if status.is_retryable:
            log.warning("provider_http_transient_error", error=error_message)
        else:
            log.warning("provider_http_client_error", error=error_message)
        return OperationResult.error(
            status=status,
            message=error_message,
            error_code=f"HTTP_{status_code}",
            retry_after=self._retry_after(response) if status.is_retryable else None,
            data=response_data,
            status_code=status_code,
            text=text,
        )

    @staticmethod
    def _retry_after(response: requests.Response) -> Optional[int]:
        value = response.headers.get("Retry-After")
        if not value:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @staticmethod
    def _extract_error_message(response_data: Optional[Any], response_text: str) -> str:
        """Extract error message from a provider error body.

        Google nests it under ``error.message``; Discord and Slack use
        ``message`` or ``error``.
        """
        if isinstance(response_data, dict):
            error = response_data.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            for key in ("message", "error", "detail"):
                if response_data.get(key):
                    return str(response_data[key])

        return response_text[:200] if response_text else "Unknown error"

    def close(self) -> None:
        """Close HTTP session and release connections."""
        self._session.close()
        self._logger.debug("provider_http_client_closed")


__all__ = ["ProviderHttpClient"]
