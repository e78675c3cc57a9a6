"""Error hierarchy for atlcli and the command-boundary error handler."""

import functools
import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TypeVar

import click

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_SENSITIVE_KEYS = {"api_key", "token", "secret", "password", "credential", "authorization"}


@dataclass
class ErrorContext:
    """Context information for debugging errors."""

    method: str | None = None
    url: str | None = None
    status_code: int | None = None
    body: str | None = None
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    extra: dict[str, Any] = field(default_factory=dict)


class AtlcliError(Exception):
    """Base exception for all atlcli errors."""

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: ErrorContext | None = None,
        troubleshooting: list[str] | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or ErrorContext()
        self.troubleshooting = troubleshooting or []
        super().__init__(message)

    def format_error(self) -> str:
        """Format the error with full context and troubleshooting steps."""
        lines = [f"Error: {self.message}"]

        if self.cause:
            lines.append(f"\nCause: {self.cause}")

        if self.troubleshooting:
            lines.append("\nTroubleshooting:")
            for i, step in enumerate(self.troubleshooting, 1):
                lines.append(f"  {i}. {step}")

        debug_items = []
        if self.context.method and self.context.url:
            debug_items.append(f"Request: {self.context.method} {self.context.url}")
        if self.context.status_code is not None:
            debug_items.append(f"Status Code: {self.context.status_code}")
        if self.context.body:
            body = self.context.body[:500]
            if len(self.context.body) > 500:
                body += "..."
            debug_items.append(f"Response Body: {body}")
        debug_items.append(f"Timestamp: {self.context.timestamp}")

        for key, value in self.context.extra.items():
            if any(s in key.lower() for s in _SENSITIVE_KEYS):
                if value:
                    debug_items.append(f"{key}: [MASKED]")
                continue
            if value is None:
                continue
            str_value = str(value)
            if len(str_value) > 500:
                str_value = str_value[:500] + "..."
            debug_items.append(f"{key}: {str_value}")

        lines.append("\nDebug Info:")
        for item in debug_items:
            lines.append(f"  - {item}")

        return "\n".join(lines)


class ConfigurationError(AtlcliError):
    """Raised for missing or conflicting configuration, before any network call."""


class UnsupportedOperationError(ConfigurationError):
    """Raised when an operation is not available for the configured deployment type."""


class NotFoundError(AtlcliError):
    """Raised when a local file or a looked-up remote resource does not exist.

    Distinct from an HTTP 404, which surfaces as a RequestFailure.
    """


class RequestFailure(AtlcliError):
    """Raised when the server answers with a non-2xx status."""

    def __init__(
        self,
        operation: str,
        status_code: int,
        reason: str | None = None,
        body: str = "",
        context: ErrorContext | None = None,
    ):
        self.operation = operation
        self.status_code = status_code
        self.reason = reason or ""
        self.body = body

        message = f"Error {operation}: HTTP {status_code} ({self.reason})"
        if body:
            message += f" - Details: {body}"

        troubleshooting = []
        if status_code == 401:
            troubleshooting.append("Check the username, API token or password for this service")
        elif status_code == 403:
            troubleshooting.append("The credentials are valid but lack permission for this resource")
        elif status_code == 404:
            troubleshooting.append("Verify the key or id exists and the base URL points at the right instance")

        context = context or ErrorContext()
        context.status_code = status_code
        context.body = body
        super().__init__(message, context=context, troubleshooting=troubleshooting)


class ConnectionFailure(AtlcliError):
    """Raised when the HTTP request could not be completed at all."""

    def __init__(self, operation: str, cause: Exception, context: ErrorContext | None = None):
        self.operation = operation
        troubleshooting = [
            "Check your network connection and the service base URL",
            "Check proxy configuration if behind a proxy (HTTP_PROXY, HTTPS_PROXY)",
            "Raise ATLCLI_TIMEOUT if the server is slow to answer",
        ]
        super().__init__(f"Error {operation}: {cause}", cause, context, troubleshooting)


class DeserializationFailure(AtlcliError):
    """Raised when a 2xx response body does not match the expected shape."""

    def __init__(self, operation: str, resource: str, cause: Exception | str | None = None):
        self.operation = operation
        self.resource = resource
        detail = f": {cause}" if cause else ""
        super().__init__(
            f"Failed to deserialize {resource} while {operation}{detail}",
            cause=cause if isinstance(cause, Exception) else None,
        )


class TransitionNotAvailable(AtlcliError):
    """Raised when no transition from the issue's current state reaches the target."""

    def __init__(self, issue_key: str, target: str, available: list[str]):
        self.issue_key = issue_key
        self.target = target
        self.available = available
        super().__init__(
            f"Cannot transition {issue_key} to '{target}'. Available transitions: {', '.join(available)}",
            troubleshooting=["Use one of the listed transition names, or the status it leads to"],
        )


def handle_errors(func: F) -> F:
    """Convert any exception into a one-line stderr message and exit code 1.

    When the root command was invoked with --verbose the full formatted error
    is printed instead.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        from atlcli.common.console import get_error_console, print_error

        try:
            return func(*args, **kwargs)
        except AtlcliError as e:
            logger.debug(f"{type(e).__name__} in {func.__name__}", exc_info=True)
            console = get_error_console()
            ctx = click.get_current_context(silent=True)
            if ctx is not None and ctx.find_root().params.get("verbose"):
                console.print(e.format_error(), markup=False)
            else:
                print_error(console, e.message)
            sys.exit(1)
        except (click.ClickException, click.Abort, click.exceptions.Exit):
            raise
        except Exception as e:
            logger.debug(f"Unexpected {type(e).__name__} in {func.__name__}", exc_info=True)
            print_error(get_error_console(), f"Unexpected error: {e}")
            sys.exit(1)

    return wrapper  # type: ignore[return-value]
