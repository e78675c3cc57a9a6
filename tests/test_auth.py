"""Tests for picking the authentication scheme from configured credentials."""

import base64

import pytest

from atlcli.common.config import ServiceConfig
from atlcli.common.errors import ConfigurationError
from atlcli.common.http import build_auth_header


def basic(user, secret):
    return base64.b64encode(f"{user}:{secret}".encode()).decode("ascii")


def config(username=None, api_token=None, password=None):
    return ServiceConfig(
        service="bitbucket",
        base_url="https://bitbucket.mycorp.com",
        username=username,
        api_token=api_token,
        password=password,
    )


class TestBuildAuthHeader:
    @pytest.mark.parametrize(
        "username, api_token, password, expected",
        [
            (None, "tok", None, "Bearer tok"),
            (None, "tok", "pw", "Bearer tok"),
            ("alice", "tok", None, f"Basic {basic('alice', 'tok')}"),
            ("alice", "tok", "pw", f"Basic {basic('alice', 'tok')}"),
            ("alice", None, "pw", f"Basic {basic('alice', 'pw')}"),
        ],
    )
    def test_supported_combinations(self, username, api_token, password, expected):
        assert build_auth_header(config(username, api_token, password)).value == expected

    @pytest.mark.parametrize(
        "username, api_token, password",
        [
            (None, None, None),
            ("alice", None, None),
            (None, None, "pw"),
        ],
    )
    def test_unusable_combinations(self, username, api_token, password):
        with pytest.raises(ConfigurationError) as exc_info:
            build_auth_header(config(username, api_token, password))

        message = exc_info.value.message
        assert "BITBUCKET_API_TOKEN" in message
        assert "BITBUCKET_USERNAME and BITBUCKET_API_TOKEN" in message
        assert "BITBUCKET_USERNAME and BITBUCKET_PASSWORD" in message

    def test_empty_strings_count_as_unset(self):
        with pytest.raises(ConfigurationError):
            build_auth_header(config(username="", api_token="", password=""))

    def test_basic_auth_encodes_utf8(self):
        header = build_auth_header(config(username="jörg", password="pässword"))

        assert base64.b64decode(header.credentials).decode("utf-8") == "jörg:pässword"

    def test_repr_masks_credentials(self):
        header = build_auth_header(config(api_token="super-secret"))

        assert "super-secret" not in repr(header)
