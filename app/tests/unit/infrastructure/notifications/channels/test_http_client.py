"""Unit tests for ProviderHttpClient outcome normalization."""

import pytest
import requests

from infrastructure.notifications.channels.http import ProviderHttpClient
from infrastructure.operations import OperationStatus


@pytest.fixture
def client(mock_session):
    return ProviderHttpClient(timeout=5, session=mock_session)


@pytest.mark.unit
class TestProviderHttpClient:
    def test_sets_user_agent(self, mock_session):
        ProviderHttpClient(session=mock_session)

        assert mock_session.headers["User-Agent"] == "Aurentia-Integrations/1.0"

    def test_success_parses_json(self, client, mock_session, make_response):
        mock_session.request.return_value = make_response(200, {"id": "msg-1"})

        result = client.post("https://example.com/hook", json_data={"text": "hi"})

        assert result.is_success
        assert result.data == {"id": "msg-1"}
        assert result.status_code == 200
        kwargs = mock_session.request.call_args.kwargs
        assert kwargs["method"] == "POST"
        assert kwargs["json"] == {"text": "hi"}
        assert kwargs["timeout"] == 5

    def test_empty_body_success(self, client, mock_session, make_response):
        """Slack answers ``ok`` as plain text and Discord 204 with no body."""
        mock_session.request.return_value = make_response(204)

        result = client.post("https://example.com/hook")

        assert result.is_success
        assert result.data is None

    def test_put_and_delete(self, client, mock_session, make_response):
        mock_session.request.return_value = make_response(204)

        assert client.put("https://example.com/r/1", json_data={"a": 1}).is_success
        assert mock_session.request.call_args.kwargs["method"] == "PUT"
        assert mock_session.request.call_args.kwargs["json"] == {"a": 1}

        assert client.delete("https://example.com/r/1", params={"k": "v"}).is_success
        assert mock_session.request.call_args.kwargs["method"] == "DELETE"
        assert mock_session.request.call_args.kwargs["params"] == {"k": "v"}

    def test_per_call_timeout_override(self, client, mock_session):
        client.get("https://example.com", timeout=1.5)

        assert mock_session.request.call_args.kwargs["timeout"] == 1.5

    @pytest.mark.parametrize(
        "status_code,status",
        [
            (400, OperationStatus.PERMANENT_ERROR),
            (401, OperationStatus.UNAUTHORIZED),
            (403, OperationStatus.UNAUTHORIZED),
            (404, OperationStatus.NOT_FOUND),
            (410, OperationStatus.PERMANENT_ERROR),
            (429, OperationStatus.RATE_LIMITED),
            (503, OperationStatus.TRANSIENT_ERROR),
        ],
    )
    def test_status_mapping(self, client, mock_session, make_response, status_code, status):
        mock_session.request.return_value = make_response(status_code, text="nope")

        result = client.post("https://example.com/hook")

        assert result.status == status
        assert result.status_code == status_code
        assert result.error_code == f"HTTP_{status_code}"
        assert result.text == "nope"

    def test_retry_after_header(self, client, mock_session, make_response):
        mock_session.request.return_value = make_response(
            429, text="slow down", headers={"Retry-After": "12"}
        )

        result = client.post("https://example.com/hook")

        assert result.retry_after == 12

    def test_google_error_message(self, client, mock_session, make_response):
        """Google nests the message under error.message."""
        mock_session.request.return_value = make_response(
            403, {"error": {"code": 403, "message": "Insufficient Permission"}}
        )

        result = client.get("https://www.googleapis.com/drive/v3/files")

        assert result.message == "Insufficient Permission"

    def test_timeout(self, client, mock_session):
        mock_session.request.side_effect = requests.Timeout("slow")

        result = client.get("https://example.com")

        assert result.is_timeout
        assert result.status_code is None
        assert result.message == "Request timeout after 5s"

    def test_connection_error(self, client, mock_session):
        mock_session.request.side_effect = requests.ConnectionError("refused")

        result = client.get("https://example.com")

        assert result.is_connection_error
        assert result.status_code is None
        assert result.message == "Connection error: ConnectionError"

    @pytest.mark.parametrize(
        "error",
        [
            requests.ConnectionError(
                "HTTPSConnectionPool(host='discord.com', port=443): Max retries "
                "exceeded with url: /api/webhooks/123/SECRETTOKEN"
            ),
            requests.exceptions.ChunkedEncodingError(
                "Max retries exceeded with url: /1/cards?key=APIKEY&token=TRELLOTOKEN"
            ),
        ],
    )
    def test_transport_error_message_omits_request_url(self, client, mock_session, error):
        """Exception text embeds the path and query, which hold the credentials."""
        mock_session.request.side_effect = error

        result = client.post("https://discord.com/api/webhooks/123/SECRETTOKEN")

        assert "SECRETTOKEN" not in result.message
        assert "APIKEY" not in result.message
        assert "TRELLOTOKEN" not in result.message
        assert "webhooks" not in result.message

    def test_other_request_error(self, client, mock_session):
        mock_session.request.side_effect = requests.exceptions.InvalidURL("bad url")

        result = client.get("not a url")

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert result.error_code == "REQUEST_ERROR"
