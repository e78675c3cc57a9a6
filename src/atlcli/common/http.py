"""Shared REST client plumbing: authentication, request logging, error envelopes."""

from __future__ import annotations

import base64
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import requests

from atlcli.common.config import ServiceConfig, get_config
from atlcli.common.errors import (
    ConfigurationError,
    ConnectionFailure,
    DeserializationFailure,
    ErrorContext,
    RequestFailure,
)
from atlcli.common.models import compact, from_payload
from atlcli.common.paging import Cursor, PagedResult, collect_pages

logger = logging.getLogger(__name__)

T = TypeVar("T")

PageParams = Callable[[int, int], dict[str, Any]]


@dataclass(frozen=True)
class AuthHeader:
    """An Authorization header value, e.g. ``Bearer <token>``."""

    scheme: str
    credentials: str

    @property
    def value(self) -> str:
        return f"{self.scheme} {self.credentials}"

    def __repr__(self) -> str:
        return f"AuthHeader(scheme={self.scheme!r}, credentials='***')"


def _basic(username: str, secret: str) -> AuthHeader:
    encoded = base64.b64encode(f"{username}:{secret}".encode()).decode("ascii")
    return AuthHeader("Basic", encoded)


def build_auth_header(config: ServiceConfig) -> AuthHeader:
    """Pick the authentication scheme for a service from the configured credentials.

    Precedence:
        1. API token without username -> Bearer (Personal Access Token)
        2. API token with username -> Basic with the token as password
        3. Username and password -> Basic

    Raises:
        ConfigurationError: If none of the combinations above is configured.
    """
    if config.api_token and not config.username:
        logger.debug(f"Using Bearer token authentication for {config.service}")
        return AuthHeader("Bearer", config.api_token)

    if config.api_token and config.username:
        logger.debug(f"Using Basic authentication with API token for {config.service} as {config.username}")
        return _basic(config.username, config.api_token)

    if config.username and config.password:
        logger.debug(f"Using Basic authentication with password for {config.service} as {config.username}")
        return _basic(config.username, config.password)

    prefix = config.env_prefix
    raise ConfigurationError(
        "Authentication not configured. Please set either:\n"
        f"  - {prefix}_API_TOKEN (for Personal Access Token / Bearer auth), or\n"
        f"  - {prefix}_USERNAME and {prefix}_API_TOKEN, or\n"
        f"  - {prefix}_USERNAME and {prefix}_PASSWORD"
    )


def start_index_params(limit: int, start: int) -> dict[str, Any]:
    """Query parameters for start-index pagination."""
    return {"limit": limit, "start": start}


def _read_body(response: requests.Response) -> str:
    try:
        return response.text
    except (requests.RequestException, UnicodeDecodeError) as e:
        logger.debug(f"Could not read error response body: {e}")
        return ""


class RestClient:
    """Base class for the per-service clients.

    Owns one ``requests.Session`` carrying the auth header. Use it as a
    context manager so the session is closed on every exit path.
    """

    def __init__(self, config: ServiceConfig, timeout: float | None = None):
        self.config = config
        self.base_url = config.base_url
        self.timeout = timeout if timeout is not None else get_config().timeout
        self.auth = build_auth_header(config)

        self.session = requests.Session()
        self.session.headers.update({"Authorization": self.auth.value, "Accept": "application/json"})
        logger.debug(f"Created {type(self).__name__} for {self.base_url}")

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def url(self, path: str) -> str:
        """Absolute URL for a path, passing absolute URLs through unchanged."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}{path}"

    def request(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> requests.Response:
        """Send one request and return the response if its status is 2xx.

        Raises:
            ConnectionFailure: If the request could not be sent or answered.
            RequestFailure: If the status is not 2xx.
        """
        url = self.url(path)
        logger.debug(f"{method} {url}")
        started = time.monotonic()
        try:
            response = self.session.request(
                method, url, params=params, json=json, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise ConnectionFailure(operation, e, ErrorContext(method=method, url=url)) from e

        elapsed_ms = (time.monotonic() - started) * 1000
        logger.debug(f"{method} {url} => {response.status_code} ({elapsed_ms:.0f}ms)")
        self.ensure_success(response, operation, ErrorContext(method=method, url=url))
        return response

    @staticmethod
    def ensure_success(response: requests.Response, operation: str, context: ErrorContext | None = None) -> None:
        """Raise RequestFailure for any non-2xx response, with the raw body attached."""
        if 200 <= response.status_code < 300:
            return
        raise RequestFailure(operation, response.status_code, response.reason, _read_body(response), context)

    @staticmethod
    def decode_json(response: requests.Response, operation: str, resource: str) -> Any:
        """Decode a JSON body; an empty body decodes to None."""
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise DeserializationFailure(operation, resource, f"response is not valid JSON ({e})") from e

    def get_json(
        self,
        path: str,
        tp: type[T] | Any,
        operation: str,
        resource: str,
        params: dict[str, Any] | None = None,
    ) -> T:
        """GET ``path`` and map the JSON body onto ``tp``."""
        response = self.request("GET", path, operation, params=params)
        return from_payload(tp, self.decode_json(response, operation, resource), operation=operation, resource=resource)

    def send_json(
        self,
        method: str,
        path: str,
        tp: type[T] | Any | None,
        operation: str,
        resource: str,
        body: Any = None,
    ) -> T | None:
        """Send ``body`` (None values dropped) and map the response onto ``tp``, if given."""
        payload = compact(body) if body is not None else None
        response = self.request(method, path, operation, json=payload)
        if tp is None:
            return None
        return from_payload(tp, self.decode_json(response, operation, resource), operation=operation, resource=resource)

    def get_text(self, path: str, operation: str, params: dict[str, Any] | None = None) -> str:
        """GET ``path`` and return the body as text."""
        response = self.request("GET", path, operation, params=params, headers={"Accept": "text/plain, */*"})
        return response.text

    def get_page(
        self,
        path: str,
        item_type: type[T],
        operation: str,
        resource: str,
        params: dict[str, Any] | None = None,
    ) -> PagedResult[T]:
        """GET a single page of a list endpoint."""
        response = self.request("GET", path, operation, params=params)
        data = self.decode_json(response, operation, resource)
        return PagedResult.from_payload(data, item_type, operation=operation, resource=resource)

    def list_all(
        self,
        path: str,
        item_type: type[T],
        operation: str,
        resource: str,
        params: dict[str, Any] | None = None,
        limit: int | None = None,
        page_params: PageParams = start_index_params,
    ) -> list[T]:
        """GET every page of a list endpoint, one after another, and return all values."""
        limit = limit or get_config().page_size

        def fetch(cursor: Cursor) -> PagedResult[T]:
            if cursor.url:
                return self.get_page(cursor.url, item_type, operation, resource)
            query = {**(params or {}), **page_params(limit, cursor.start)}
            return self.get_page(path, item_type, operation, resource, params=query)

        return collect_pages(fetch, limit)
