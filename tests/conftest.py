"""Shared fixtures: isolated configuration and canned HTTP responses."""

import json
from http import HTTPStatus

import pytest
import requests

from atlcli.common import config as config_module
from atlcli.common.config import SERVICES, ServiceConfig


def make_response(status_code=200, payload=None, text=None, url="https://example.test/"):
    """Build a real requests.Response with a JSON or text body."""
    response = requests.Response()
    response.status_code = status_code
    response.reason = HTTPStatus(status_code).phrase
    response.url = url
    response.encoding = "utf-8"
    if payload is not None:
        response._content = json.dumps(payload).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    elif text is not None:
        response._content = text.encode("utf-8")
        response.headers["Content-Type"] = "text/plain"
    else:
        response._content = b""
    return response


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep the user's environment and config file out of every test."""
    for service in SERVICES:
        for key in ("BASE_URL", "API_TOKEN", "USERNAME", "PASSWORD"):
            monkeypatch.delenv(f"{service.upper()}_{key}", raising=False)
    for key in ("ATLCLI_LOG_LEVEL", "ATLCLI_TIMEOUT", "ATLCLI_PAGE_SIZE"):
        monkeypatch.delenv(key, raising=False)

    monkeypatch.setattr(config_module, "CONFIG_PATH", tmp_path / "config.toml")
    monkeypatch.setattr(config_module, "_config", None)


@pytest.fixture
def service_config():
    """Factory for explicit service settings with a PAT."""

    def factory(service="jira", base_url="https://jira.example.com", **credentials):
        credentials.setdefault("api_token", "secret-token")
        return ServiceConfig(service=service, base_url=base_url, **credentials)

    return factory


@pytest.fixture
def mock_request():
    """Patch the HTTP layer; set ``side_effect`` or ``return_value`` in the test."""
    from unittest.mock import patch

    with patch("requests.Session.request") as mocked:
        yield mocked


@pytest.fixture
def respond():
    """The make_response factory, as a fixture."""
    return make_response
