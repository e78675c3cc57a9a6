"""Root CLI entry point for atlcli."""

import click

from atlcli import __version__
from atlcli.bamboo.command import bamboo
from atlcli.bitbucket.command import bitbucket
from atlcli.common.console import get_console, setup_logging
from atlcli.confluence.command import confluence
from atlcli.jira.command import jira


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose/debug logging")
@click.option("--plain-text", is_flag=True, help="Plain output without colors or formatting")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, plain_text: bool) -> None:
    """Work with Confluence, Jira, Bamboo and Bitbucket from the command line.

    Each service reads <SERVICE>_BASE_URL plus credentials from the
    environment (<SERVICE>_API_TOKEN, <SERVICE>_USERNAME, <SERVICE>_PASSWORD)
    or from ~/.config/atlcli/config.toml.
    """
    setup_logging(verbose=verbose)
    ctx.obj = {"console": get_console(plain_text=plain_text)}


cli.add_command(bamboo)
cli.add_command(bitbucket)
cli.add_command(confluence)
cli.add_command(jira)
