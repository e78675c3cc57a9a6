"""atlcli bamboo -- query build plans and results, trigger builds."""

import click

from atlcli.common.errors import handle_errors


@click.group()
def bamboo() -> None:
    """Query and trigger Bamboo builds.

    \b
    Examples:
        atlcli bamboo get-projects
        atlcli bamboo get-plans --project PROJ
        atlcli bamboo get-plan --key PROJ-PLAN
        atlcli bamboo get-builds --key PROJ-PLAN --max-results 10
        atlcli bamboo get-build --key PROJ-PLAN-123
        atlcli bamboo get-build-logs --key PROJ-PLAN-123
        atlcli bamboo queue-build --key PROJ-PLAN --branch feature/foo
    """


def _result_state(result) -> str:
    state = result.build_state or result.state or "Unknown"
    if result.life_cycle_state and result.life_cycle_state != "Finished":
        return f"{state} ({result.life_cycle_state})"
    return state


@bamboo.command("get-projects")
@click.option("--json", "as_json", is_flag=True, help="Print the projects as JSON")
@click.pass_obj
@handle_errors
def get_projects(obj: dict, as_json: bool) -> None:
    """List all Bamboo projects."""
    from atlcli.bamboo.client import connect_bamboo
    from atlcli.common.console import print_json, print_table
    from atlcli.common.models import to_dict

    with connect_bamboo() as client:
        projects = client.get_projects()

    if as_json:
        print_json(obj["console"], to_dict(projects))
        return
    rows = [[p.key, p.name, len(p.plans.plan) if p.plans else 0, p.description] for p in projects]
    print_table(obj["console"], ["Key", "Name", "Plans", "Description"], rows, title=f"Bamboo Projects ({len(projects)})")


@bamboo.command("get-project")
@click.option("--key", "-k", required=True, help="Project key")
@click.pass_obj
@handle_errors
def get_project(obj: dict, key: str) -> None:
    """Retrieve a Bamboo project by key."""
    from atlcli.bamboo.client import connect_bamboo
    from atlcli.common.console import print_fields, print_table

    with connect_bamboo() as client:
        project = client.get_project(key)

    console = obj["console"]
    print_fields(console, f"{project.key}: {project.name}", [("Description", project.description)])
    plans = project.plans.plan if project.plans else []
    if plans:
        print_table(console, ["Key", "Name", "Enabled"], [[p.key, p.name, p.enabled] for p in plans])


@bamboo.command("get-plans")
@click.option("--project", "-p", "project_key", help="Only plans of this project")
@click.option("--json", "as_json", is_flag=True, help="Print the plans as JSON")
@click.pass_obj
@handle_errors
def get_plans(obj: dict, project_key: str | None, as_json: bool) -> None:
    """List all Bamboo plans or plans for a specific project."""
    from atlcli.bamboo.client import connect_bamboo
    from atlcli.common.console import print_json, print_table
    from atlcli.common.models import to_dict

    with connect_bamboo() as client:
        plans = client.get_plans(project_key)

    if as_json:
        print_json(obj["console"], to_dict(plans))
        return
    rows = [[p.key, p.name, p.project_name, p.enabled, p.is_building] for p in plans]
    print_table(obj["console"], ["Key", "Name", "Project", "Enabled", "Building"], rows, title=f"Plans ({len(plans)})")


@bamboo.command("get-plan")
@click.option("--key", "-k", required=True, help="Plan key, e.g. PROJ-PLAN")
@click.option("--json", "as_json", is_flag=True, help="Print the plan as JSON")
@click.pass_obj
@handle_errors
def get_plan(obj: dict, key: str, as_json: bool) -> None:
    """Retrieve a Bamboo plan by key (includes configuration)."""
    from atlcli.bamboo.client import connect_bamboo
    from atlcli.common.console import print_fields, print_json
    from atlcli.common.models import to_dict

    with connect_bamboo() as client:
        plan = client.get_plan(key)

    console = obj["console"]
    if as_json:
        print_json(console, to_dict(plan))
        return

    average = f"{plan.average_build_time_in_seconds:.0f}s" if plan.average_build_time_in_seconds else None
    print_fields(
        console,
        f"{plan.key}: {plan.name}",
        [
            ("Project", plan.project_name),
            ("Description", plan.description),
            ("Enabled", plan.enabled),
            ("Building", plan.is_building),
            ("Average build time", average),
        ],
    )
    if plan.stages and plan.stages.stage:
        console.print("  Stages:")
        for stage in plan.stages.stage:
            console.print(f"    - {stage.name}", markup=False)
    if plan.branches and plan.branches.branch:
        console.print("  Branches:")
        for branch in plan.branches.branch:
            console.print(f"    - {branch.short_name or branch.name} ({branch.key})", markup=False)
    if plan.variable_context and plan.variable_context.variable:
        console.print("  Variables:")
        for variable in plan.variable_context.variable:
            console.print(f"    {variable.name} = {variable.value or ''}", markup=False)


@bamboo.command("get-branches")
@click.option("--key", "-k", required=True, help="Plan key")
@click.pass_obj
@handle_errors
def get_branches(obj: dict, key: str) -> None:
    """List branches for a Bamboo plan."""
    from atlcli.bamboo.client import connect_bamboo
    from atlcli.common.console import print_table

    with connect_bamboo() as client:
        branches = client.get_plan_branches(key)

    rows = [[b.key, b.short_name or b.name, b.enabled] for b in branches]
    print_table(obj["console"], ["Key", "Branch", "Enabled"], rows, title=f"Branches of {key} ({len(branches)})")


@bamboo.command("get-builds")
@click.option("--key", "-k", required=True, help="Plan key")
@click.option("--max-results", default=25, show_default=True, type=click.IntRange(min=1), help="Number of results")
@click.pass_obj
@handle_errors
def get_builds(obj: dict, key: str, max_results: int) -> None:
    """List build results for a Bamboo plan."""
    from atlcli.bamboo.client import connect_bamboo
    from atlcli.common.console import print_table

    with connect_bamboo() as client:
        results = client.get_build_results(key, max_results)

    rows = [
        [r.result_key, r.build_number, _result_state(r), r.build_relative_time, r.build_duration_description]
        for r in results
    ]
    print_table(obj["console"], ["Result", "#", "State", "When", "Duration"], rows, title=f"Builds of {key}")


def _print_build_result(console, result) -> None:
    from atlcli.common.console import print_fields

    tests = None
    if result.successful_test_count or result.failed_test_count:
        tests = f"{result.successful_test_count} passed, {result.failed_test_count} failed"
    print_fields(
        console,
        f"{result.result_key} #{result.build_number}",
        [
            ("Plan", result.plan_name or (result.plan.name if result.plan else None)),
            ("State", _result_state(result)),
            ("Reason", result.reason_summary),
            ("Started", result.build_started_time),
            ("Completed", result.build_completed_time),
            ("Duration", result.build_duration_description),
            ("Tests", tests),
        ],
    )
    if result.stages and result.stages.stage:
        console.print("  Stages:")
        for stage in result.stages.stage:
            console.print(f"    - {stage.name}: {stage.state or ''}", markup=False)
    if result.changes and result.changes.change:
        console.print("  Changes:")
        for change in result.changes.change:
            who = change.full_name or change.user_name or change.author or ""
            comment = (change.comment or "").strip().splitlines()
            console.print(f"    {change.change_set_id or ''} {who}: {comment[0] if comment else ''}", markup=False)


@bamboo.command("get-build")
@click.option("--key", "-k", required=True, help="Build result key, e.g. PROJ-PLAN-123")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_obj
@handle_errors
def get_build(obj: dict, key: str, as_json: bool) -> None:
    """Retrieve a specific build result."""
    from atlcli.bamboo.client import connect_bamboo
    from atlcli.common.console import print_json
    from atlcli.common.models import to_dict

    with connect_bamboo() as client:
        result = client.get_build_result(key)

    if as_json:
        print_json(obj["console"], to_dict(result))
    else:
        _print_build_result(obj["console"], result)


@bamboo.command("get-latest-build")
@click.option("--key", "-k", required=True, help="Plan key")
@click.pass_obj
@handle_errors
def get_latest_build(obj: dict, key: str) -> None:
    """Retrieve the latest build result for a plan."""
    from atlcli.bamboo.client import connect_bamboo

    with connect_bamboo() as client:
        result = client.get_latest_build_result(key)

    _print_build_result(obj["console"], result)


@bamboo.command("get-build-logs")
@click.option("--key", "-k", required=True, help="Build result key, e.g. PROJ-PLAN-123")
@click.option("--job", "job_key", help="Job key, to fetch the log of a single job")
@click.pass_obj
@handle_errors
def get_build_logs(obj: dict, key: str, job_key: str | None) -> None:
    """Retrieve build logs from a Bamboo build result."""
    from atlcli.bamboo.client import connect_bamboo

    with connect_bamboo() as client:
        log = client.get_job_logs(key, job_key) if job_key else client.get_build_logs(key)

    obj["console"].print(log, markup=False, highlight=False)


@bamboo.command("queue-build")
@click.option("--key", "-k", required=True, help="Plan key")
@click.option("--branch", "-b", help="Plan branch name to build instead of the default branch")
@click.pass_obj
@handle_errors
def queue_build(obj: dict, key: str, branch: str | None) -> None:
    """Queue a new build for a plan (trigger a build)."""
    from atlcli.bamboo.client import connect_bamboo

    with connect_bamboo() as client:
        queued = client.queue_build(key, branch)

    obj["console"].print(f"[green]Queued {queued.build_result_key or queued.plan_key}[/green] #{queued.build_number}")
    if queued.trigger_reason:
        obj["console"].print(f"  {queued.trigger_reason}", markup=False)
