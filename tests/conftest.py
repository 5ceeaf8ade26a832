import json
from typing import Any, Optional
from unittest.mock import MagicMock

import pytest
from record_stubs import API_VERSION, INSTANCE_URL

from sfclient.client import SalesforceClient, Session


def _make_response(
    status_code: int = 200,
    json_data: Any = None,
    text: Optional[str] = None,
    url: str = INSTANCE_URL,
) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.url = url
    if json_data is not None:
        resp.json.return_value = json_data
        resp.text = json.dumps(json_data) if text is None else text
    else:
        resp.json.side_effect = ValueError("No JSON object could be decoded")
        resp.text = text or ""
    return resp


@pytest.fixture
def make_response():
    """Factory for fake requests.Response objects."""
    return _make_response


@pytest.fixture
def client():
    """Return a client that already holds a session."""
    c = SalesforceClient(api_version=API_VERSION)
    c.sf_session = Session(access_token="00DFAKE-TOKEN", instance_url=INSTANCE_URL)
    c.session.headers.update({"Authorization": "Bearer 00DFAKE-TOKEN"})
    return c


@pytest.fixture
def sf_env(monkeypatch):
    """Minimal SF_* environment for the username-password flow."""
    for key, value in {
        "SF_CLIENT_ID": "test_client_id",
        "SF_CLIENT_SECRET": "test_secret",
        "SF_USERNAME": "user@example.com",
        "SF_PASSWORD": "pw",
        "SF_API_VERSION": API_VERSION,
    }.items():
        monkeypatch.setenv(key, value)
    for key in ("SF_ACCESS_TOKEN", "SF_INSTANCE_URL", "SF_AUTH_FLOW", "SF_TOKEN_URL"):
        monkeypatch.delenv(key, raising=False)
