"""Command-line client for Confluence, Jira, Bamboo and Bitbucket."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("atlcli")
except PackageNotFoundError:
    __version__ = "0.0.0"
