"""atlcli confluence -- create, read and update Confluence pages."""

import click

from atlcli.common.errors import handle_errors


@click.group()
def confluence() -> None:
    """Manage Confluence pages.

    \b
    Examples:
        atlcli confluence create-page --space KEY --title "My Title" --body "<p>Hello</p>"
        atlcli confluence get-page --id 12345
        atlcli confluence get-page --space KEY --title "My Title"
        atlcli confluence update-page --id 12345 --file page.html
        atlcli confluence update-page --id 12345 --body "<p>More</p>" --append
    """


def _check_page_selector(page_id: str | None, space: str | None, title: str | None) -> None:
    from atlcli.common.errors import ConfigurationError

    if page_id and (space or title):
        raise ConfigurationError("Specify either --id or --space with --title, not both.")
    if not page_id and not (space and title):
        raise ConfigurationError("Specify either --id, or both --space and --title.")


@confluence.command("create-page")
@click.option("--space", "-s", required=True, help="Space key")
@click.option("--title", "-t", required=True, help="Page title")
@click.option("--body", "-b", help="Page body in storage format (XHTML)")
@click.option("--file", "file_path", type=click.Path(), help="Read the page body from a UTF-8 file")
@click.option("--parent-id", help="Create the page below this page")
@click.pass_obj
@handle_errors
def create_page(
    obj: dict,
    space: str,
    title: str,
    body: str | None,
    file_path: str | None,
    parent_id: str | None,
) -> None:
    """Create a new page in Confluence."""
    from atlcli.common.content import resolve_content
    from atlcli.confluence.client import connect_confluence

    content = resolve_content(body, file_path)
    with connect_confluence() as client:
        page = client.create_page(space, title, content, parent_id=parent_id)
        url = client.page_url(page)

    obj["console"].print(f"[green]Created page {page.id}[/green] '{page.title}'")
    obj["console"].print(f"  {url}", markup=False)


@confluence.command("get-page")
@click.option("--id", "page_id", help="Page ID")
@click.option("--space", "-s", help="Space key (with --title)")
@click.option("--title", "-t", help="Page title (with --space)")
@click.option(
    "--format",
    "body_format",
    type=click.Choice(["storage", "view", "none"]),
    default="storage",
    show_default=True,
    help="Which body representation to print",
)
@click.option("--json", "as_json", is_flag=True, help="Print the page as JSON")
@click.pass_obj
@handle_errors
def get_page(
    obj: dict,
    page_id: str | None,
    space: str | None,
    title: str | None,
    body_format: str,
    as_json: bool,
) -> None:
    """Retrieve a page by ID or by title and space."""
    from atlcli.common.console import print_fields, print_json
    from atlcli.common.models import to_dict
    from atlcli.confluence.client import connect_confluence

    _check_page_selector(page_id, space, title)
    console = obj["console"]

    with connect_confluence() as client:
        page = client.get_page_by_id(page_id) if page_id else client.find_page(space, title)
        url = client.page_url(page)

    if as_json:
        print_json(console, to_dict(page))
        return

    print_fields(
        console,
        page.title,
        [
            ("ID", page.id),
            ("Space", page.space.key if page.space else None),
            ("Version", page.version.number if page.version else None),
            ("Status", page.status),
            ("URL", url),
        ],
    )
    if body_format != "none":
        value = page.storage_value if body_format == "storage" else page.view_value
        console.print()
        console.print(value, markup=False, highlight=False)


@confluence.command("update-page")
@click.option("--id", "page_id", help="Page ID")
@click.option("--space", "-s", help="Space key (with --title)")
@click.option("--title", "-t", help="Page title (with --space)")
@click.option("--body", "-b", help="New body in storage format (XHTML)")
@click.option("--file", "file_path", type=click.Path(), help="Read the new body from a UTF-8 file")
@click.option("--append", is_flag=True, help="Append to the existing body instead of replacing it")
@click.pass_obj
@handle_errors
def update_page(
    obj: dict,
    page_id: str | None,
    space: str | None,
    title: str | None,
    body: str | None,
    file_path: str | None,
    append: bool,
) -> None:
    """Update an existing page in Confluence."""
    from atlcli.common.content import resolve_content
    from atlcli.confluence.client import connect_confluence

    _check_page_selector(page_id, space, title)
    content = resolve_content(body, file_path)

    with connect_confluence() as client:
        if page_id:
            page = client.update_page(page_id, content, append=append)
        else:
            page = client.update_page_by_title(space, title, content, append=append)

    version = page.version.number if page.version else "?"
    action = "Appended to" if append else "Updated"
    obj["console"].print(f"[green]{action} page {page.id}[/green] '{page.title}' (version {version})")
