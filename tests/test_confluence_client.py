"""Tests for the Confluence client."""

import pytest

from atlcli.common.errors import NotFoundError
from atlcli.confluence.client import ConfluenceClient

PAGE = {
    "id": "12345",
    "type": "page",
    "status": "current",
    "title": "Release Notes",
    "space": {"key": "DOC", "name": "Documentation"},
    "body": {
        "storage": {"value": "<p>Hello</p>", "representation": "storage"},
        "view": {"value": "<p>Hello</p>", "representation": "view"},
    },
    "version": {"number": 4},
    "_links": {"webui": "/display/DOC/Release+Notes", "base": "https://wiki.example.com"},
}


@pytest.fixture
def client(service_config):
    config = service_config("confluence", "https://wiki.example.com", username="alice", password="pw", api_token=None)
    with ConfluenceClient(config) as client:
        yield client


class TestReadPages:
    def test_get_page_by_id(self, client, mock_request, respond):
        mock_request.return_value = respond(payload=PAGE)

        page = client.get_page_by_id("12345")

        assert page.title == "Release Notes"
        assert page.storage_value == "<p>Hello</p>"
        assert page.version.number == 4
        assert client.page_url(page) == "https://wiki.example.com/display/DOC/Release+Notes"
        assert mock_request.call_args.args == ("GET", "https://wiki.example.com/rest/api/content/12345")

    def test_get_page_by_title(self, client, mock_request, respond):
        mock_request.return_value = respond(payload={"results": [PAGE], "size": 1})

        page = client.get_page_by_title("DOC", "Release Notes")

        assert page.id == "12345"
        params = mock_request.call_args.kwargs["params"]
        assert params["spaceKey"] == "DOC"
        assert params["title"] == "Release Notes"

    def test_missing_title_is_none(self, client, mock_request, respond):
        mock_request.return_value = respond(payload={"results": [], "size": 0})

        assert client.get_page_by_title("DOC", "Nope") is None

    def test_find_page_raises_when_missing(self, client, mock_request, respond):
        mock_request.return_value = respond(payload={"results": []})

        with pytest.raises(NotFoundError, match="Page with title 'Nope' not found in space 'DOC'"):
            client.find_page("DOC", "Nope")

    def test_page_url_fallback(self, client, mock_request, respond):
        mock_request.return_value = respond(payload={"id": "7", "title": "T"})

        page = client.get_page_by_id("7")

        assert client.page_url(page) == "https://wiki.example.com/pages/viewpage.action?pageId=7"


class TestWritePages:
    def test_create_page_under_parent(self, client, mock_request, respond):
        mock_request.return_value = respond(200, payload=PAGE)

        client.create_page("DOC", "Release Notes", "<p>Hello</p>", parent_id="99")

        body = mock_request.call_args.kwargs["json"]
        assert body["space"] == {"key": "DOC"}
        assert body["ancestors"] == [{"id": "99"}]
        assert body["body"]["storage"] == {"value": "<p>Hello</p>", "representation": "storage"}

    def test_create_page_without_parent_has_no_ancestors(self, client, mock_request, respond):
        mock_request.return_value = respond(200, payload=PAGE)

        client.create_page("DOC", "Release Notes", "<p>Hello</p>")

        assert "ancestors" not in mock_request.call_args.kwargs["json"]

    def test_update_bumps_version(self, client, mock_request, respond):
        updated = {**PAGE, "version": {"number": 5}}
        mock_request.side_effect = [respond(payload=PAGE), respond(payload=updated)]

        page = client.update_page("12345", "<p>New</p>")

        assert page.version.number == 5
        put = mock_request.call_args_list[1]
        assert put.args == ("PUT", "https://wiki.example.com/rest/api/content/12345")
        assert put.kwargs["json"]["version"] == {"number": 5}
        assert put.kwargs["json"]["title"] == "Release Notes"
        assert put.kwargs["json"]["body"]["storage"]["value"] == "<p>New</p>"

    def test_append_keeps_existing_body(self, client, mock_request, respond):
        mock_request.side_effect = [respond(payload=PAGE), respond(payload=PAGE)]

        client.update_page("12345", "<p>More</p>", append=True)

        put = mock_request.call_args_list[1]
        assert put.kwargs["json"]["body"]["storage"]["value"] == "<p>Hello</p><p>More</p>"

    def test_page_id_is_escaped_in_path(self, client, mock_request, respond):
        mock_request.return_value = respond(payload={"id": "12/34", "title": "T"})

        client.get_page_by_id("12/34")

        assert mock_request.call_args.args == ("GET", "https://wiki.example.com/rest/api/content/12%2F34")
