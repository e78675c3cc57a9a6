"""Confluence REST client -- create, read and update pages."""

from __future__ import annotations

import logging
from urllib.parse import quote

from atlcli.common.config import ServiceConfig
from atlcli.common.errors import DeserializationFailure, NotFoundError
from atlcli.common.http import RestClient
from atlcli.confluence.models import Page, PageSearchResults

logger = logging.getLogger(__name__)

CONTENT_API = "/rest/api/content"

DEFAULT_EXPAND = "body.storage,body.view,version,space"


def _page_path(page_id: str) -> str:
    return f"{CONTENT_API}/{quote(str(page_id), safe='')}"


def _storage_body(value: str) -> dict:
    return {"storage": {"value": value, "representation": "storage"}}


class ConfluenceClient(RestClient):
    """Client for the Confluence content REST API."""

    def create_page(self, space_key: str, title: str, body: str, parent_id: str | None = None) -> Page:
        """Create a page in ``space_key`` with a storage-format (XHTML) body."""
        request = {
            "type": "page",
            "title": title,
            "space": {"key": space_key},
            "body": _storage_body(body),
            "ancestors": [{"id": parent_id}] if parent_id else None,
        }
        logger.debug(f"Creating page '{title}' in space {space_key}")
        return self.send_json("POST", CONTENT_API, Page, "creating page", f"page '{title}'", request)

    def get_page_by_id(self, page_id: str, expand: str = DEFAULT_EXPAND) -> Page:
        return self.get_json(
            _page_path(page_id),
            Page,
            f"getting page with ID {page_id}",
            f"page {page_id}",
            params={"expand": expand},
        )

    def get_page_by_title(self, space_key: str, title: str, expand: str = DEFAULT_EXPAND) -> Page | None:
        """Find a page by exact title within a space; None when there is no such page."""
        results = self.get_json(
            CONTENT_API,
            PageSearchResults,
            f"searching for page '{title}' in space '{space_key}'",
            f"page search '{title}'",
            params={"spaceKey": space_key, "title": title, "expand": expand},
        )
        return results.results[0] if results.results else None

    def find_page(self, space_key: str, title: str, expand: str = DEFAULT_EXPAND) -> Page:
        """Like get_page_by_title, but a missing page is an error.

        Raises:
            NotFoundError: If no page with that title exists in the space.
        """
        page = self.get_page_by_title(space_key, title, expand)
        if page is None:
            raise NotFoundError(f"Page with title '{title}' not found in space '{space_key}'")
        return page

    def update_page(self, page_id: str, body: str, append: bool = False) -> Page:
        """Replace (or append to) a page body, bumping its version number.

        The current page is read first for its title, version and, when
        appending, its storage body.
        """
        current = self.get_page_by_id(page_id, expand="body.storage,version")
        if current.version is None:
            raise DeserializationFailure(f"updating page with ID {page_id}", f"page {page_id}", "no version returned")

        new_body = current.storage_value + body if append else body
        request = {
            "id": page_id,
            "type": "page",
            "title": current.title,
            "body": _storage_body(new_body),
            "version": {"number": current.version.number + 1},
        }
        logger.debug(f"Updating page {page_id} to version {current.version.number + 1} (append={append})")
        return self.send_json(
            "PUT",
            _page_path(page_id),
            Page,
            f"updating page with ID {page_id}",
            f"page {page_id}",
            request,
        )

    def update_page_by_title(self, space_key: str, title: str, body: str, append: bool = False) -> Page:
        page = self.find_page(space_key, title, expand="version")
        return self.update_page(page.id, body, append)

    def page_url(self, page: Page) -> str:
        """Browser URL of a page, falling back to the viewpage action."""
        if page.links and page.links.webui:
            base = page.links.base or self.base_url
            return f"{base}{page.links.webui}"
        return f"{self.base_url}/pages/viewpage.action?pageId={page.id}"


def connect_confluence(config: ServiceConfig | None = None) -> ConfluenceClient:
    """Build a Confluence client from explicit settings or from CONFLUENCE_* variables."""
    return ConfluenceClient(config or ServiceConfig.load("confluence"))
