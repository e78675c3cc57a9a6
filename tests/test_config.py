"""Tests for configuration loading from file and environment."""

import logging

import pytest

from atlcli.common import config as config_module
from atlcli.common.config import AtlcliConfig, ServiceConfig, get_config
from atlcli.common.errors import ConfigurationError


@pytest.fixture
def config_file():
    """Write the (patched) config file path and return it."""

    def write(text):
        config_module.CONFIG_PATH.write_text(text, encoding="utf-8")
        return config_module.CONFIG_PATH

    return write


class TestAtlcliConfig:
    def test_defaults(self):
        config = AtlcliConfig.load()

        assert config.log_level == "WARNING"
        assert config.timeout is None
        assert config.page_size == 100

    def test_file_then_environment(self, config_file, monkeypatch):
        config_file('log_level = "info"\ntimeout = 30\npage_size = 50\n')
        monkeypatch.setenv("ATLCLI_PAGE_SIZE", "20")

        config = AtlcliConfig.load()

        assert config.log_level == "INFO"
        assert config.timeout == 30
        assert config.page_size == 20

    def test_invalid_integer_keeps_current_value(self, monkeypatch, caplog):
        monkeypatch.setenv("ATLCLI_PAGE_SIZE", "lots")

        with caplog.at_level(logging.WARNING):
            config = AtlcliConfig.load()

        assert config.page_size == 100
        assert "Invalid ATLCLI_PAGE_SIZE value: lots" in caplog.text

    def test_page_size_is_clamped(self, monkeypatch):
        monkeypatch.setenv("ATLCLI_PAGE_SIZE", "5000")

        assert AtlcliConfig.load().page_size == 1000

    def test_non_positive_timeout_means_none(self, monkeypatch):
        monkeypatch.setenv("ATLCLI_TIMEOUT", "0")

        assert AtlcliConfig.load().timeout is None

    def test_broken_file_is_ignored(self, config_file, caplog):
        config_file("this is = = not toml")

        with caplog.at_level(logging.WARNING):
            config = AtlcliConfig.load()

        assert config.page_size == 100
        assert "Failed to load config file" in caplog.text

    def test_quoted_numbers_in_file_are_converted(self, config_file):
        config_file('page_size = "50"\ntimeout = "2.5"\n')

        config = AtlcliConfig.load()

        assert config.page_size == 50
        assert config.timeout == 2.5

    def test_invalid_numbers_in_file_keep_defaults(self, config_file, caplog):
        config_file('page_size = "lots"\ntimeout = true\n')

        with caplog.at_level(logging.WARNING):
            config = AtlcliConfig.load()

        assert config.page_size == 100
        assert config.timeout is None
        assert "Invalid page_size value in config file: 'lots'" in caplog.text
        assert "Invalid timeout value in config file: True" in caplog.text

    def test_get_config_is_cached(self):
        assert get_config() is get_config()


class TestServiceConfig:
    def test_environment(self, monkeypatch):
        monkeypatch.setenv("JIRA_BASE_URL", "https://jira.example.com/")
        monkeypatch.setenv("JIRA_API_TOKEN", "tok")

        config = ServiceConfig.load("jira")

        assert config.base_url == "https://jira.example.com"
        assert config.api_token == "tok"
        assert config.username is None

    def test_environment_wins_over_file(self, config_file, monkeypatch):
        config_file('[bamboo]\nbase_url = "https://file.example.com"\nusername = "filer"\npassword = "pw"\n')
        monkeypatch.setenv("BAMBOO_BASE_URL", "https://env.example.com")

        config = ServiceConfig.load("bamboo")

        assert config.base_url == "https://env.example.com"
        assert config.username == "filer"
        assert config.password == "pw"

    def test_missing_base_url(self):
        with pytest.raises(ConfigurationError, match="JIRA_BASE_URL environment variable is not set"):
            ServiceConfig.load("jira")

    def test_empty_values_are_unset(self, monkeypatch):
        monkeypatch.setenv("CONFLUENCE_BASE_URL", "https://wiki.example.com")
        monkeypatch.setenv("CONFLUENCE_PASSWORD", "")

        assert ServiceConfig.load("confluence").password is None

    def test_unknown_service(self):
        with pytest.raises(ConfigurationError, match="Unknown service 'gitlab'"):
            ServiceConfig.load("gitlab")

    def test_repr_masks_secrets(self):
        config = ServiceConfig("jira", "https://jira.example.com", api_token="tok-123", password="pw-456")

        assert "tok-123" not in repr(config)
        assert "pw-456" not in repr(config)
