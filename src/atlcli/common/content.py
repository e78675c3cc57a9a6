"""Resolve command text from an inline option or a file."""

import logging
from pathlib import Path

from atlcli.common.errors import ConfigurationError, NotFoundError

logger = logging.getLogger(__name__)


def resolve_content(
    direct: str | None,
    file_path: str | Path | None,
    *,
    required: bool = True,
    content_option: str = "body",
    file_option: str = "file",
) -> str | None:
    """Return the text given inline or read from a file.

    Exactly one of ``direct`` and ``file_path`` may be given. Empty strings
    count as not given. Files are read as UTF-8 with line endings left as
    they are on disk.

    Args:
        direct: The inline value, e.g. from ``--body``.
        file_path: Path to a file holding the value, e.g. from ``--file``.
        required: Whether one of the two must be present.
        content_option: Option name used in error messages for ``direct``.
        file_option: Option name used in error messages for ``file_path``.

    Returns:
        The resolved text, or None when neither is given and ``required`` is False.

    Raises:
        ConfigurationError: If both are given, neither is given but one is required,
            or the file is not valid UTF-8.
        NotFoundError: If ``file_path`` does not exist or cannot be read.
    """
    has_direct = bool(direct)
    has_file = bool(file_path)

    # A missing file is reported as such even when an inline value was also given
    if has_file and not Path(file_path).is_file():
        raise NotFoundError(f"The specified file does not exist: {file_path}")

    if has_direct and has_file:
        raise ConfigurationError(
            f"You cannot specify both --{content_option} and --{file_option}. Please use only one."
        )

    if not has_direct and not has_file:
        if required:
            raise ConfigurationError(f"You must specify either --{content_option} or --{file_option}.")
        return None

    if has_file:
        path = Path(file_path)
        logger.debug(f"Reading --{file_option} content from {path}")
        try:
            with open(path, encoding="utf-8", newline="") as f:
                return f.read()
        except UnicodeDecodeError as e:
            raise ConfigurationError(f"The specified file is not valid UTF-8 text: {path}", cause=e) from e
        except OSError as e:
            raise NotFoundError(f"The specified file could not be read: {path}", cause=e) from e

    return direct
