from unittest.mock import MagicMock

import pytest
import requests
from cryptography.fernet import Fernet

from infrastructure.notifications.credentials import FernetCredentialCipher
from infrastructure.notifications.store import InMemoryIntegrationStore
from tests.factories.notifications import FIXED_NOW


@pytest.fixture
def fernet_key() -> str:
    """Fresh Fernet key per test."""
    return Fernet.generate_key().decode("utf-8")


@pytest.fixture
def cipher(fernet_key):
    return FernetCredentialCipher(fernet_key)


@pytest.fixture
def store():
    return InMemoryIntegrationStore()


@pytest.fixture
def fixed_clock():
    """Clock returning the factories' fixed instant."""
    return lambda: FIXED_NOW


@pytest.fixture
def make_response():
    """Factory for mocked ``requests.Response`` objects.

    Example:
        response = make_response(200, {"ok": True})
        response = make_response(404, text="no_service")
    """

    def _factory(status_code=200, json_data=None, text=None, headers=None):
        response = MagicMock(spec=requests.Response)
        response.status_code = status_code
        response.headers = headers or {}
        if json_data is not None:
            response.json.return_value = json_data
            response.text = text if text is not None else str(json_data)
        else:
            response.json.side_effect = ValueError("No JSON")
            response.text = text or ""
        response.content = response.text.encode("utf-8")
        return response

    return _factory


@pytest.fixture
def mock_session(make_response):
    """Mock requests session returning 200 with an empty JSON body."""
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    session.request.return_value = make_response(200, {})
    return session
