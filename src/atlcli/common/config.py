"""Configuration loading from file and environment variables."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path

from atlcli.common.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_PATH = Path.home() / ".config" / "atlcli" / "config.toml"

SERVICES = ("confluence", "jira", "bamboo", "bitbucket")

_EXAMPLE_URLS = {
    "confluence": "https://confluence.example.com",
    "jira": "https://jira.example.com",
    "bamboo": "https://bamboo.example.com",
    "bitbucket": "https://bitbucket.example.com for Server or https://api.bitbucket.org for Cloud",
}


def _load_int_env(env_name: str, current: int) -> int:
    """Load an integer from an environment variable, warning on invalid values."""
    if value := os.environ.get(env_name):
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Invalid {env_name} value: {value}")
    return current


def _load_float_env(env_name: str, current: float | None) -> float | None:
    """Load a float from an environment variable, warning on invalid values."""
    if value := os.environ.get(env_name):
        try:
            return float(value)
        except ValueError:
            logger.warning(f"Invalid {env_name} value: {value}")
    return current


def _load_str_env(env_name: str, current: str) -> str:
    """Load a string from an environment variable."""
    if value := os.environ.get(env_name):
        return value
    return current


def _coerce_number(name: str, value: object, current, convert):
    """Convert a config file value with ``convert``, warning and keeping ``current`` on bad values."""
    if not isinstance(value, bool):
        try:
            return convert(value)
        except (TypeError, ValueError):
            pass
    logger.warning(f"Invalid {name} value in config file: {value!r}")
    return current


def _read_config_file(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning(f"Failed to load config file {path}: {e}")
        return {}


@dataclass
class AtlcliConfig:
    """Process-wide settings loaded from config file and environment."""

    log_level: str = "WARNING"
    timeout: float | None = None
    page_size: int = 100

    def _load_from_toml(self, data: dict) -> None:
        """Apply values from parsed TOML data."""
        self.log_level = str(data.get("log_level", self.log_level)).upper()
        if "timeout" in data:
            self.timeout = _coerce_number("timeout", data["timeout"], self.timeout, float)
        if "page_size" in data:
            self.page_size = _coerce_number("page_size", data["page_size"], self.page_size, int)

    def _load_from_env(self) -> None:
        """Apply environment variable overrides."""
        self.log_level = _load_str_env("ATLCLI_LOG_LEVEL", self.log_level).upper()
        self.timeout = _load_float_env("ATLCLI_TIMEOUT", self.timeout)
        self.page_size = _load_int_env("ATLCLI_PAGE_SIZE", self.page_size)

    def _validate(self) -> None:
        """Validate and clamp configuration values."""
        if self.page_size < 1 or self.page_size > 1000:
            logger.warning(f"page_size={self.page_size} outside valid range [1, 1000], clamping to valid range")
            self.page_size = max(1, min(1000, self.page_size))

        if self.timeout is not None and self.timeout <= 0:
            logger.warning(f"timeout={self.timeout} must be positive, using no timeout")
            self.timeout = None

    @classmethod
    def load(cls, path: Path | None = None) -> AtlcliConfig:
        """Load configuration from file and environment variables."""
        config = cls()
        config._load_from_toml(_read_config_file(path or CONFIG_PATH))
        config._load_from_env()
        config._validate()
        return config


_config: AtlcliConfig | None = None


def get_config() -> AtlcliConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AtlcliConfig.load()
    return _config


@dataclass
class ServiceConfig:
    """Connection settings for one backend: base URL plus credentials.

    Empty strings are treated as unset so that ``export JIRA_PASSWORD=`` does
    not count as a password.
    """

    service: str
    base_url: str
    api_token: str | None = None
    username: str | None = None
    password: str | None = None

    def __post_init__(self) -> None:
        self.base_url = (self.base_url or "").rstrip("/")
        self.api_token = self.api_token or None
        self.username = self.username or None
        self.password = self.password or None

    @property
    def env_prefix(self) -> str:
        return self.service.upper()

    def __repr__(self) -> str:
        return (
            f"ServiceConfig(service={self.service!r}, base_url={self.base_url!r}, "
            f"username={self.username!r}, api_token={'***' if self.api_token else None}, "
            f"password={'***' if self.password else None})"
        )

    @classmethod
    def load(cls, service: str, path: Path | None = None) -> ServiceConfig:
        """Build the settings for ``service`` from the config file and ``<SERVICE>_*`` variables.

        Environment variables take precedence over the ``[service]`` table of
        the config file.

        Raises:
            ConfigurationError: If no base URL is configured.
        """
        if service not in SERVICES:
            raise ConfigurationError(f"Unknown service '{service}'. Expected one of: {', '.join(SERVICES)}")

        section = _read_config_file(path or CONFIG_PATH).get(service, {})
        prefix = service.upper()

        def pick(key: str) -> str | None:
            return os.environ.get(f"{prefix}_{key.upper()}") or section.get(key) or None

        base_url = pick("base_url")
        if not base_url:
            raise ConfigurationError(
                f"{prefix}_BASE_URL environment variable is not set. "
                f"Please set it to your {service.capitalize()} instance URL (e.g., {_EXAMPLE_URLS[service]})"
            )

        config = cls(
            service=service,
            base_url=base_url,
            api_token=pick("api_token"),
            username=pick("username"),
            password=pick("password"),
        )
        logger.debug(f"Loaded {config!r}")
        return config
