"""atlcli bitbucket -- repositories, pull requests, build status and pipelines."""

import click

from atlcli.common.errors import handle_errors


@click.group()
def bitbucket() -> None:
    """Inspect Bitbucket Cloud or Server repositories.

    --project is the project key on Bitbucket Server and the workspace slug
    on Bitbucket Cloud. Pipeline commands need Bitbucket Cloud.

    \b
    Examples:
        atlcli bitbucket list-repos --project PROJ
        atlcli bitbucket list-prs --project PROJ --repo my-repo --state MERGED --all
        atlcli bitbucket get-pr-diff --project PROJ --repo my-repo --id 42
        atlcli bitbucket add-pr-comment --project PROJ --repo my-repo --id 42 --text "LGTM"
        atlcli bitbucket trigger-pipeline --project ws --repo my-repo --branch main --var ENV=staging
    """


def project_option(func):
    return click.option("--project", "-p", "project_key", required=True, help="Project key (Server) or workspace (Cloud)")(
        func
    )


def repo_options(func):
    func = click.option("--repo", "-r", "repo_slug", required=True, help="Repository slug")(func)
    return project_option(func)


def paging_options(func):
    func = click.option("--all", "all_pages", is_flag=True, help="Fetch every page instead of one")(func)
    func = click.option(
        "--start",
        default=0,
        show_default=True,
        type=click.IntRange(min=0),
        help="Index of the first result (a multiple of --limit on Bitbucket Cloud)",
    )(func)
    func = click.option("--limit", default=25, show_default=True, type=click.IntRange(1, 1000), help="Results per page")(func)
    return func


def json_option(func):
    return click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")(func)


def _print_listing(console, page, columns, row, title: str, as_json: bool) -> None:
    """Print one PagedResult as a table (or JSON) with a hint when more pages exist."""
    from atlcli.common.console import print_json, print_table
    from atlcli.common.models import to_dict

    if as_json:
        print_json(console, to_dict(page.values))
        return

    print_table(console, columns, [row(item) for item in page.values], title=f"{title} ({len(page.values)})")
    if page.is_last_page is False or page.next_url:
        following = page.next_page_start if page.next_page_start is not None else page.start + len(page.values)
        console.print(f"[dim]More results available: use --start {following} or --all[/dim]")


def _parse_variables(values: tuple[str, ...]) -> dict[str, str]:
    from atlcli.common.errors import ConfigurationError

    variables = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ConfigurationError(f"Invalid --var '{item}', expected KEY=VALUE")
        variables[key] = value
    return variables


@bitbucket.command("get-project")
@project_option
@json_option
@click.pass_obj
@handle_errors
def get_project(obj: dict, project_key: str, as_json: bool) -> None:
    """Retrieve a project (Server) or workspace (Cloud)."""
    from atlcli.bitbucket.client import connect_bitbucket
    from atlcli.bitbucket.models import link_href
    from atlcli.common.console import print_fields, print_json
    from atlcli.common.models import to_dict

    with connect_bitbucket() as client:
        project = client.get_project(project_key)

    if as_json:
        print_json(obj["console"], to_dict(project))
        return
    print_fields(
        obj["console"],
        f"{project.identifier}: {project.name}",
        [
            ("Description", project.description),
            ("Type", project.type),
            ("Public", project.is_public if project.is_private is None else not project.is_private),
            ("URL", link_href(project.links, "html") or link_href(project.links)),
        ],
    )


@bitbucket.command("list-projects")
@paging_options
@json_option
@click.pass_obj
@handle_errors
def list_projects(obj: dict, limit: int, start: int, all_pages: bool, as_json: bool) -> None:
    """List projects (Server) or workspaces (Cloud)."""
    from atlcli.bitbucket.client import connect_bitbucket

    with connect_bitbucket() as client:
        page = client.list_projects(limit, start, all_pages)

    _print_listing(
        obj["console"],
        page,
        ["Key", "Name", "Description"],
        lambda p: [p.identifier, p.name, p.description],
        "Projects",
        as_json,
    )


@bitbucket.command("get-repo")
@repo_options
@json_option
@click.pass_obj
@handle_errors
def get_repo(obj: dict, project_key: str, repo_slug: str, as_json: bool) -> None:
    """Retrieve repository details."""
    from atlcli.bitbucket.client import connect_bitbucket
    from atlcli.bitbucket.models import link_href
    from atlcli.common.console import print_fields, print_json
    from atlcli.common.models import to_dict

    with connect_bitbucket() as client:
        repo = client.get_repository(project_key, repo_slug)

    if as_json:
        print_json(obj["console"], to_dict(repo))
        return
    print_fields(
        obj["console"],
        repo.full_name or f"{project_key}/{repo.slug}",
        [
            ("Name", repo.name),
            ("Description", repo.description),
            ("SCM", repo.scm_id or repo.scm),
            ("State", repo.state),
            ("Visibility", repo.visibility),
            ("Forkable", repo.forkable),
            ("Main branch", repo.mainbranch.name if repo.mainbranch else None),
            ("URL", link_href(repo.links, "html") or link_href(repo.links)),
        ],
    )


@bitbucket.command("list-repos")
@project_option
@paging_options
@json_option
@click.pass_obj
@handle_errors
def list_repos(obj: dict, project_key: str, limit: int, start: int, all_pages: bool, as_json: bool) -> None:
    """List repositories in a project or workspace."""
    from atlcli.bitbucket.client import connect_bitbucket

    with connect_bitbucket() as client:
        page = client.list_repositories(project_key, limit, start, all_pages)

    _print_listing(
        obj["console"],
        page,
        ["Slug", "Name", "Visibility", "Description"],
        lambda r: [r.slug, r.name, r.visibility, r.description],
        f"Repositories in {project_key}",
        as_json,
    )


@bitbucket.command("list-branches")
@repo_options
@paging_options
@json_option
@click.pass_obj
@handle_errors
def list_branches(
    obj: dict, project_key: str, repo_slug: str, limit: int, start: int, all_pages: bool, as_json: bool
) -> None:
    """List branches of a repository."""
    from atlcli.bitbucket.client import connect_bitbucket

    with connect_bitbucket() as client:
        page = client.list_branches(project_key, repo_slug, limit, start, all_pages)

    _print_listing(
        obj["console"],
        page,
        ["Branch", "Head", "Default"],
        lambda b: [b.label, (b.head or "")[:11], "yes" if b.is_default else ""],
        f"Branches of {project_key}/{repo_slug}",
        as_json,
    )


@bitbucket.command("get-default-branch")
@repo_options
@click.pass_obj
@handle_errors
def get_default_branch(obj: dict, project_key: str, repo_slug: str) -> None:
    """Show the default branch of a repository."""
    from atlcli.bitbucket.client import connect_bitbucket

    with connect_bitbucket() as client:
        branch = client.get_default_branch(project_key, repo_slug)

    head = f" ({branch.head[:11]})" if branch.head else ""
    obj["console"].print(f"{branch.label}{head}", markup=False)


@bitbucket.command("list-commits")
@repo_options
@click.option("--branch", "-b", help="Only commits reachable from this branch")
@paging_options
@json_option
@click.pass_obj
@handle_errors
def list_commits(
    obj: dict,
    project_key: str,
    repo_slug: str,
    branch: str | None,
    limit: int,
    start: int,
    all_pages: bool,
    as_json: bool,
) -> None:
    """List commits of a repository, newest first."""
    from atlcli.bitbucket.client import connect_bitbucket

    with connect_bitbucket() as client:
        page = client.list_commits(project_key, repo_slug, branch, limit, start, all_pages)

    _print_listing(
        obj["console"],
        page,
        ["Commit", "Author", "Date", "Message"],
        lambda c: [c.short_id, c.author.label if c.author else "", c.when, c.summary],
        f"Commits of {project_key}/{repo_slug}" + (f" on {branch}" if branch else ""),
        as_json,
    )


def _print_commit(console, commit) -> None:
    from atlcli.common.console import print_fields

    print_fields(
        console,
        commit.commit_id,
        [
            ("Author", commit.author.label if commit.author else None),
            ("Date", commit.when),
            ("Parents", ", ".join(p.commit_id[:11] for p in commit.parents)),
        ],
    )
    console.print()
    console.print(commit.message, markup=False, highlight=False)


@bitbucket.command("get-commit")
@repo_options
@click.option("--commit", "-c", "commit_id", required=True, help="Commit hash")
@json_option
@click.pass_obj
@handle_errors
def get_commit(obj: dict, project_key: str, repo_slug: str, commit_id: str, as_json: bool) -> None:
    """Retrieve a single commit."""
    from atlcli.bitbucket.client import connect_bitbucket
    from atlcli.common.console import print_json
    from atlcli.common.models import to_dict

    with connect_bitbucket() as client:
        commit = client.get_commit(project_key, repo_slug, commit_id)

    if as_json:
        print_json(obj["console"], to_dict(commit))
    else:
        _print_commit(obj["console"], commit)


@bitbucket.command("list-prs")
@repo_options
@click.option(
    "--state",
    type=click.Choice(["OPEN", "MERGED", "DECLINED", "SUPERSEDED", "ALL"], case_sensitive=False),
    default="OPEN",
    show_default=True,
    help="Pull request state",
)
@paging_options
@json_option
@click.pass_obj
@handle_errors
def list_prs(
    obj: dict,
    project_key: str,
    repo_slug: str,
    state: str,
    limit: int,
    start: int,
    all_pages: bool,
    as_json: bool,
) -> None:
    """List pull requests of a repository."""
    from atlcli.bitbucket.client import connect_bitbucket

    with connect_bitbucket() as client:
        page = client.list_pull_requests(project_key, repo_slug, state, limit, start, all_pages)

    def row(pr):
        source, target = pr.source_ref, pr.target_ref
        branches = f"{source.label if source else '?'} -> {target.label if target else '?'}"
        return [f"#{pr.id}", pr.title, pr.author.label if pr.author else "", pr.state, branches]

    _print_listing(
        obj["console"],
        page,
        ["ID", "Title", "Author", "State", "Branches"],
        row,
        f"{state.upper()} pull requests in {project_key}/{repo_slug}",
        as_json,
    )


@bitbucket.command("get-pr")
@repo_options
@click.option("--id", "pr_id", required=True, type=int, help="Pull request ID")
@json_option
@click.pass_obj
@handle_errors
def get_pr(obj: dict, project_key: str, repo_slug: str, pr_id: int, as_json: bool) -> None:
    """Retrieve pull request details."""
    from atlcli.bitbucket.client import connect_bitbucket
    from atlcli.common.console import print_fields, print_json
    from atlcli.common.models import to_dict

    with connect_bitbucket() as client:
        pr = client.get_pull_request(project_key, repo_slug, pr_id)

    console = obj["console"]
    if as_json:
        print_json(console, to_dict(pr))
        return

    reviewers = pr.reviewers or [p for p in pr.participants if p.role == "REVIEWER"]
    print_fields(
        console,
        f"#{pr.id}: {pr.title}",
        [
            ("State", pr.state),
            ("Author", pr.author.label if pr.author else None),
            ("From", pr.source_ref.label if pr.source_ref else None),
            ("To", pr.target_ref.label if pr.target_ref else None),
            ("Created", pr.created),
            ("Updated", pr.updated),
            ("Reviewers", ", ".join(f"{r.label}{' (approved)' if r.approved else ''}" for r in reviewers)),
            ("URL", pr.url),
        ],
    )
    if pr.description:
        console.print()
        console.print(pr.description, markup=False, highlight=False)


@bitbucket.command("get-pr-diff")
@repo_options
@click.option("--id", "pr_id", required=True, type=int, help="Pull request ID")
@click.pass_obj
@handle_errors
def get_pr_diff(obj: dict, project_key: str, repo_slug: str, pr_id: int) -> None:
    """Print the diff of a pull request."""
    from atlcli.bitbucket.client import connect_bitbucket

    with connect_bitbucket() as client:
        diff = client.get_pull_request_diff(project_key, repo_slug, pr_id)

    obj["console"].print(diff.as_text(), markup=False, highlight=False)


@bitbucket.command("get-pr-commits")
@repo_options
@click.option("--id", "pr_id", required=True, type=int, help="Pull request ID")
@json_option
@click.pass_obj
@handle_errors
def get_pr_commits(obj: dict, project_key: str, repo_slug: str, pr_id: int, as_json: bool) -> None:
    """List every commit of a pull request."""
    from atlcli.bitbucket.client import connect_bitbucket
    from atlcli.common.console import print_json, print_table
    from atlcli.common.models import to_dict

    with connect_bitbucket() as client:
        commits = client.get_pull_request_commits(project_key, repo_slug, pr_id)

    if as_json:
        print_json(obj["console"], to_dict(commits))
        return
    rows = [[c.short_id, c.author.label if c.author else "", c.when, c.summary] for c in commits]
    print_table(obj["console"], ["Commit", "Author", "Date", "Message"], rows, title=f"Commits of #{pr_id} ({len(commits)})")


@bitbucket.command("get-pr-comments")
@repo_options
@click.option("--id", "pr_id", required=True, type=int, help="Pull request ID")
@json_option
@click.pass_obj
@handle_errors
def get_pr_comments(obj: dict, project_key: str, repo_slug: str, pr_id: int, as_json: bool) -> None:
    """List the comments on a pull request, with replies indented."""
    from atlcli.bitbucket.client import connect_bitbucket
    from atlcli.common.console import print_json
    from atlcli.common.models import to_dict

    with connect_bitbucket() as client:
        comments = client.get_pull_request_comments(project_key, repo_slug, pr_id)

    console = obj["console"]
    if as_json:
        print_json(console, to_dict(comments))
        return
    if not comments:
        console.print(f"No comments on pull request #{pr_id}")
        return

    def show(comment, depth: int) -> None:
        indent = "  " * depth
        console.print(f"{indent}[bold]{comment.who}[/bold] [dim]{comment.created or ''}[/dim]")
        for line in comment.body.splitlines() or [""]:
            console.print(f"{indent}  {line}", markup=False, highlight=False)
        for reply in comment.comments:
            show(reply, depth + 1)

    for comment in comments:
        if comment.deleted:
            continue
        show(comment, 0)
        console.print()


@bitbucket.command("add-pr-comment")
@repo_options
@click.option("--id", "pr_id", required=True, type=int, help="Pull request ID")
@click.option("--text", "-t", help="Comment text")
@click.option("--file", "file_path", type=click.Path(), help="Read the comment text from a UTF-8 file")
@click.pass_obj
@handle_errors
def add_pr_comment(
    obj: dict, project_key: str, repo_slug: str, pr_id: int, text: str | None, file_path: str | None
) -> None:
    """Add a comment to a pull request."""
    from atlcli.bitbucket.client import connect_bitbucket
    from atlcli.common.content import resolve_content

    content = resolve_content(text, file_path, content_option="text")
    with connect_bitbucket() as client:
        comment = client.add_pull_request_comment(project_key, repo_slug, pr_id, content)

    obj["console"].print(f"[green]Added comment {comment.id}[/green] to pull request #{pr_id}")


@bitbucket.command("get-build-status")
@repo_options
@click.option("--commit", "-c", "commit_id", required=True, help="Commit hash")
@paging_options
@json_option
@click.pass_obj
@handle_errors
def get_build_status(
    obj: dict,
    project_key: str,
    repo_slug: str,
    commit_id: str,
    limit: int,
    start: int,
    all_pages: bool,
    as_json: bool,
) -> None:
    """Show the build statuses reported for a commit."""
    from atlcli.bitbucket.client import connect_bitbucket

    with connect_bitbucket() as client:
        page = client.get_build_statuses(project_key, repo_slug, commit_id, limit, start, all_pages)

    _print_listing(
        obj["console"],
        page,
        ["State", "Key", "Name", "Added", "URL"],
        lambda s: [s.state, s.key, s.name, s.added, s.url],
        f"Build statuses of {commit_id[:11]}",
        as_json,
    )


@bitbucket.command("get-branch-restrictions")
@repo_options
@paging_options
@json_option
@click.pass_obj
@handle_errors
def get_branch_restrictions(
    obj: dict, project_key: str, repo_slug: str, limit: int, start: int, all_pages: bool, as_json: bool
) -> None:
    """List branch restrictions (branch permissions) of a repository."""
    from atlcli.bitbucket.client import connect_bitbucket

    with connect_bitbucket() as client:
        page = client.get_branch_restrictions(project_key, repo_slug, limit, start, all_pages)

    _print_listing(
        obj["console"],
        page,
        ["ID", "Restriction", "Branches", "Users", "Groups"],
        lambda r: [r.id, r.restriction, r.applies_to, len(r.users), len(r.groups)],
        f"Branch restrictions of {project_key}/{repo_slug}",
        as_json,
    )


@bitbucket.command("get-webhooks")
@repo_options
@paging_options
@json_option
@click.pass_obj
@handle_errors
def get_webhooks(
    obj: dict, project_key: str, repo_slug: str, limit: int, start: int, all_pages: bool, as_json: bool
) -> None:
    """List webhooks configured on a repository."""
    from atlcli.bitbucket.client import connect_bitbucket

    with connect_bitbucket() as client:
        page = client.get_webhooks(project_key, repo_slug, limit, start, all_pages)

    _print_listing(
        obj["console"],
        page,
        ["ID", "Name", "URL", "Active", "Events"],
        lambda w: [w.id if w.id is not None else w.uuid, w.label, w.url, w.active, ", ".join(w.events)],
        f"Webhooks of {project_key}/{repo_slug}",
        as_json,
    )


@bitbucket.command("get-pipeline-config")
@repo_options
@click.pass_obj
@handle_errors
def get_pipeline_config(obj: dict, project_key: str, repo_slug: str) -> None:
    """Show whether Pipelines is enabled for a repository (Cloud only)."""
    from atlcli.bitbucket.client import connect_bitbucket

    with connect_bitbucket() as client:
        config = client.get_pipeline_configuration(project_key, repo_slug)

    state = "[green]enabled[/green]" if config.enabled else "[yellow]disabled[/yellow]"
    obj["console"].print(f"Pipelines for {project_key}/{repo_slug}: {state}")


def _print_pipeline(console, pipeline) -> None:
    from atlcli.common.console import print_fields

    target = pipeline.target
    duration = pipeline.duration_in_seconds if pipeline.duration_in_seconds is not None else pipeline.build_seconds_used
    print_fields(
        console,
        f"Pipeline #{pipeline.build_number} {pipeline.uuid}",
        [
            ("State", pipeline.status),
            ("Branch", target.ref_name if target else None),
            ("Commit", target.commit.commit_id[:11] if target and target.commit else None),
            ("Custom", target.selector.pattern if target and target.selector else None),
            ("Trigger", pipeline.trigger.name if pipeline.trigger else None),
            ("Created", pipeline.created_on),
            ("Completed", pipeline.completed_on),
            ("Duration", f"{duration}s" if duration is not None else None),
        ],
    )


@bitbucket.command("list-pipelines")
@repo_options
@paging_options
@json_option
@click.pass_obj
@handle_errors
def list_pipelines(
    obj: dict, project_key: str, repo_slug: str, limit: int, start: int, all_pages: bool, as_json: bool
) -> None:
    """List pipelines of a repository, newest first (Cloud only)."""
    from atlcli.bitbucket.client import connect_bitbucket

    with connect_bitbucket() as client:
        page = client.list_pipelines(project_key, repo_slug, limit, start, all_pages)

    _print_listing(
        obj["console"],
        page,
        ["#", "UUID", "State", "Branch", "Created"],
        lambda p: [p.build_number, p.uuid, p.status, p.target.ref_name if p.target else "", p.created_on],
        f"Pipelines of {project_key}/{repo_slug}",
        as_json,
    )


@bitbucket.command("get-pipeline")
@repo_options
@click.option("--uuid", "pipeline_uuid", required=True, help="Pipeline UUID, e.g. {1234-...}")
@json_option
@click.pass_obj
@handle_errors
def get_pipeline(obj: dict, project_key: str, repo_slug: str, pipeline_uuid: str, as_json: bool) -> None:
    """Retrieve a single pipeline (Cloud only)."""
    from atlcli.bitbucket.client import connect_bitbucket
    from atlcli.common.console import print_json
    from atlcli.common.models import to_dict

    with connect_bitbucket() as client:
        pipeline = client.get_pipeline(project_key, repo_slug, pipeline_uuid)

    if as_json:
        print_json(obj["console"], to_dict(pipeline))
    else:
        _print_pipeline(obj["console"], pipeline)


@bitbucket.command("trigger-pipeline")
@repo_options
@click.option("--branch", "-b", required=True, help="Branch to run the pipeline on")
@click.option("--custom", help="Name of a custom pipeline to run")
@click.option("--var", "variables", multiple=True, help="Pipeline variable as KEY=VALUE (repeatable)")
@click.pass_obj
@handle_errors
def trigger_pipeline(
    obj: dict,
    project_key: str,
    repo_slug: str,
    branch: str,
    custom: str | None,
    variables: tuple[str, ...],
) -> None:
    """Trigger a pipeline run on a branch (Cloud only)."""
    from atlcli.bitbucket.client import connect_bitbucket

    parsed = _parse_variables(variables)
    with connect_bitbucket() as client:
        pipeline = client.trigger_pipeline(project_key, repo_slug, branch, custom, parsed or None)

    obj["console"].print(f"[green]Triggered pipeline #{pipeline.build_number}[/green] {pipeline.uuid}")
    _print_pipeline(obj["console"], pipeline)


@bitbucket.command("stop-pipeline")
@repo_options
@click.option("--uuid", "pipeline_uuid", required=True, help="Pipeline UUID")
@click.pass_obj
@handle_errors
def stop_pipeline(obj: dict, project_key: str, repo_slug: str, pipeline_uuid: str) -> None:
    """Stop a running pipeline (Cloud only)."""
    from atlcli.bitbucket.client import connect_bitbucket

    with connect_bitbucket() as client:
        client.stop_pipeline(project_key, repo_slug, pipeline_uuid)

    obj["console"].print(f"[green]Stop requested[/green] for pipeline {pipeline_uuid}")
