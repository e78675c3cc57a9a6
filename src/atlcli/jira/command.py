"""atlcli jira -- Jira issue lifecycle management."""

import click

from atlcli.common.errors import handle_errors


@click.group()
def jira() -> None:
    """Manage Jira issues.

    \b
    Examples:
        atlcli jira get-issue --key PROJ-123
        atlcli jira create-issue --project PROJ --summary "New task" --type Task
        atlcli jira add-comment --key PROJ-123 --body "My comment"
        atlcli jira change-status --key PROJ-123 --status "In Progress"
        atlcli jira assign-user --key PROJ-123 --user john.doe
        atlcli jira update-issue --key PROJ-123 --description-file notes.txt
    """


@jira.command("get-issue")
@click.option("--key", "-k", required=True, help="Issue key, e.g. PROJ-123")
@click.option("--json", "as_json", is_flag=True, help="Print the issue as JSON")
@click.pass_obj
@handle_errors
def get_issue(obj: dict, key: str, as_json: bool) -> None:
    """Retrieve a Jira issue by key."""
    from atlcli.common.console import print_fields, print_json
    from atlcli.common.models import to_dict
    from atlcli.jira.client import connect_jira

    console = obj["console"]
    with connect_jira() as client:
        issue = client.get_issue(key)

    if as_json:
        print_json(console, to_dict(issue))
        return

    fields = issue.fields
    print_fields(
        console,
        f"{issue.key}: {fields.summary or ''}",
        [
            ("Status", fields.status.name if fields.status else None),
            ("Type", fields.issue_type.name if fields.issue_type else None),
            ("Priority", fields.priority.name if fields.priority else None),
            ("Project", fields.project.key if fields.project else None),
            ("Assignee", fields.assignee.label if fields.assignee else "Unassigned"),
            ("Reporter", fields.reporter.label if fields.reporter else None),
            ("Created", fields.created),
            ("Updated", fields.updated),
        ],
    )
    if fields.description:
        console.print("\n[bold]Description[/bold]")
        console.print(fields.description, markup=False)
    if fields.comment and fields.comment.comments:
        console.print(f"\n[bold]Comments ({fields.comment.total or len(fields.comment.comments)})[/bold]")
        for comment in fields.comment.comments:
            author = comment.author.label if comment.author else "Unknown"
            console.print(f"  [dim]{author} ({comment.created or ''})[/dim]")
            console.print(f"  {comment.body}", markup=False)


@jira.command("create-issue")
@click.option("--project", "-p", required=True, help="Project key")
@click.option("--summary", "-s", required=True, help="Issue summary")
@click.option("--type", "issue_type", default="Task", show_default=True, help="Issue type name")
@click.option("--description", "-d", help="Issue description")
@click.option("--description-file", type=click.Path(), help="Read the description from a UTF-8 file")
@click.pass_obj
@handle_errors
def create_issue(
    obj: dict,
    project: str,
    summary: str,
    issue_type: str,
    description: str | None,
    description_file: str | None,
) -> None:
    """Create a new issue in Jira."""
    from atlcli.common.content import resolve_content
    from atlcli.jira.client import connect_jira

    console = obj["console"]
    text = resolve_content(
        description,
        description_file,
        required=False,
        content_option="description",
        file_option="description-file",
    )
    with connect_jira() as client:
        created = client.create_issue(project, summary, issue_type, text)
        browse_url = f"{client.base_url}/browse/{created.key}"

    console.print(f"[green]Created {created.key}[/green] {browse_url}")


@jira.command("add-comment")
@click.option("--key", "-k", required=True, help="Issue key")
@click.option("--body", "-b", help="Comment text")
@click.option("--file", "file_path", type=click.Path(), help="Read the comment from a UTF-8 file")
@click.pass_obj
@handle_errors
def add_comment(obj: dict, key: str, body: str | None, file_path: str | None) -> None:
    """Add a comment to a Jira issue."""
    from atlcli.common.content import resolve_content
    from atlcli.jira.client import connect_jira

    text = resolve_content(body, file_path)
    with connect_jira() as client:
        comment = client.add_comment(key, text)

    obj["console"].print(f"[green]Added comment {comment.id}[/green] to {key}")


@jira.command("change-status")
@click.option("--key", "-k", required=True, help="Issue key")
@click.option("--status", "-s", "status_name", required=True, help="Target status or transition name")
@click.pass_obj
@handle_errors
def change_status(obj: dict, key: str, status_name: str) -> None:
    """Change the status of a Jira issue."""
    from atlcli.jira.client import connect_jira

    with connect_jira() as client:
        transition = client.transition_issue(key, status_name)

    target = transition.to.name if transition.to and transition.to.name else status_name
    obj["console"].print(f"[green]{key}[/green] -> {target}")


@jira.command("assign-user")
@click.option("--key", "-k", required=True, help="Issue key")
@click.option("--user", "-u", required=True, help="Username, display name or email to search for")
@click.pass_obj
@handle_errors
def assign_user(obj: dict, key: str, user: str) -> None:
    """Assign a user to a Jira issue."""
    from atlcli.jira.client import connect_jira

    with connect_jira() as client:
        assignee = client.assign_issue(key, user)

    obj["console"].print(f"[green]{key}[/green] assigned to {assignee.label}")


@jira.command("update-issue")
@click.option("--key", "-k", required=True, help="Issue key")
@click.option("--summary", "-s", help="New summary")
@click.option("--description", "-d", help="New description")
@click.option("--description-file", type=click.Path(), help="Read the description from a UTF-8 file")
@click.pass_obj
@handle_errors
def update_issue(
    obj: dict,
    key: str,
    summary: str | None,
    description: str | None,
    description_file: str | None,
) -> None:
    """Update a Jira issue's description and/or summary."""
    from atlcli.common.content import resolve_content
    from atlcli.common.errors import ConfigurationError
    from atlcli.jira.client import connect_jira

    text = resolve_content(
        description,
        description_file,
        required=summary is None,
        content_option="description",
        file_option="description-file",
    )
    if text is None and not summary:
        raise ConfigurationError("Nothing to update: pass --summary, --description or --description-file.")

    with connect_jira() as client:
        client.update_issue(key, description=text, summary=summary)

    obj["console"].print(f"[green]Updated {key}[/green]")
