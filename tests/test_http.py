"""Tests for the shared REST layer: transport failures, bodies and session lifetime."""

from unittest.mock import patch

import pytest
import requests

from atlcli.common.errors import ConnectionFailure, DeserializationFailure, RequestFailure
from atlcli.common.http import RestClient
from atlcli.jira.client import connect_jira
from atlcli.jira.models import Issue


class UnreadableBody(requests.Response):
    """A response whose body fails to read, like a connection cut mid-stream."""

    @property
    def text(self):
        raise requests.exceptions.ChunkedEncodingError("connection broken mid-body")


@pytest.fixture
def client(service_config):
    with RestClient(service_config()) as rest:
        yield rest


class TestTransportFailures:
    def test_connection_error_becomes_connection_failure(self, client, mock_request):
        mock_request.side_effect = requests.ConnectionError("Name or service not known")

        with pytest.raises(ConnectionFailure) as excinfo:
            client.get_json("/rest/api/2/issue/X-1", Issue, "getting issue X-1", "issue X-1")

        error = excinfo.value
        assert error.message.startswith("Error getting issue X-1: ")
        assert "Name or service not known" in error.message
        assert isinstance(error.cause, requests.ConnectionError)
        assert error.context.url == "https://jira.example.com/rest/api/2/issue/X-1"
        assert error.troubleshooting

    def test_timeout_is_not_retried(self, client, mock_request):
        mock_request.side_effect = requests.Timeout("read timed out")

        with pytest.raises(ConnectionFailure, match="read timed out"):
            client.get_text("/rest/api/2/serverInfo", "reading server info")

        assert mock_request.call_count == 1


class TestResponseBodies:
    def test_html_on_success_is_a_deserialization_failure(self, client, mock_request, respond):
        mock_request.return_value = respond(200, text="<html><body>Login</body></html>")

        with pytest.raises(DeserializationFailure, match="response is not valid JSON") as excinfo:
            client.get_json("/rest/api/2/issue/X-1", Issue, "getting issue X-1", "issue X-1")

        assert excinfo.value.resource == "issue X-1"
        assert excinfo.value.operation == "getting issue X-1"

    def test_empty_success_body_decodes_to_none(self, client, mock_request, respond):
        response = respond(204)

        assert client.decode_json(response, "deleting", "thing") is None

    def test_error_body_is_attached(self, client, mock_request, respond):
        mock_request.return_value = respond(500, text="stack overflow")

        with pytest.raises(RequestFailure) as excinfo:
            client.get_text("/boom", "doing work")

        assert excinfo.value.body == "stack overflow"
        assert excinfo.value.message == "Error doing work: HTTP 500 (Internal Server Error) - Details: stack overflow"

    def test_unreadable_error_body_is_ignored(self, client, mock_request):
        response = UnreadableBody()
        response.status_code = 502
        response.reason = "Bad Gateway"
        response.url = "https://jira.example.com/boom"
        mock_request.return_value = response

        with pytest.raises(RequestFailure) as excinfo:
            client.get_text("/boom", "doing work")

        assert excinfo.value.status_code == 502
        assert excinfo.value.body == ""
        assert excinfo.value.message == "Error doing work: HTTP 502 (Bad Gateway)"


class TestSessionLifetime:
    def test_session_closed_after_success(self, service_config, mock_request, respond):
        mock_request.return_value = respond(payload={"key": "X-1", "fields": {"summary": "s"}})

        with patch.object(requests.Session, "close", autospec=True) as close:
            with connect_jira(service_config()) as jira:
                jira.get_issue("X-1")

        close.assert_called_once()

    def test_session_closed_when_call_raises(self, service_config, mock_request, respond):
        mock_request.return_value = respond(404, text="missing")

        with patch.object(requests.Session, "close", autospec=True) as close:
            with pytest.raises(RequestFailure):
                with connect_jira(service_config()) as jira:
                    jira.get_issue("X-1")

        close.assert_called_once()
