"""Bamboo REST client -- projects, plans, build results, logs and queueing."""

from __future__ import annotations

import logging
from urllib.parse import quote

from atlcli.bamboo.models import (
    Branch,
    BranchesResponse,
    BuildResult,
    BuildResultsResponse,
    Plan,
    PlansResponse,
    Project,
    ProjectsResponse,
    QueuedBuild,
)
from atlcli.common.config import ServiceConfig
from atlcli.common.errors import RequestFailure
from atlcli.common.http import RestClient

logger = logging.getLogger(__name__)

API = "/rest/api/latest"

# Bamboo caps unpaged listings at 25 unless asked for more
MAX_RESULTS = 1000

RESULT_EXPAND = "stages.stage,changes.change"


def _seg(value: str) -> str:
    return quote(value, safe="")


class BambooClient(RestClient):
    """Client for the Bamboo REST API. Read operations plus build queueing."""

    def get_projects(self) -> list[Project]:
        result = self.get_json(
            f"{API}/project",
            ProjectsResponse,
            "getting projects",
            "project list",
            params={"expand": "projects.project.plans", "max-result": MAX_RESULTS},
        )
        return result.projects.project

    def get_project(self, project_key: str) -> Project:
        return self.get_json(
            f"{API}/project/{_seg(project_key)}",
            Project,
            f"getting project {project_key}",
            f"project {project_key}",
            params={"expand": "plans.plan"},
        )

    def get_plans(self, project_key: str | None = None) -> list[Plan]:
        """List all plans, optionally only those of one project."""
        result = self.get_json(
            f"{API}/plan",
            PlansResponse,
            "getting plans",
            "plan list",
            params={"max-result": MAX_RESULTS},
        )
        plans = result.plans.plan
        if project_key:
            wanted = project_key.casefold()
            plans = [
                p
                for p in plans
                if (p.project_key or "").casefold() == wanted or p.key.casefold().startswith(wanted + "-")
            ]
        return plans

    def get_plan(self, plan_key: str) -> Plan:
        """Fetch a plan with its stages, branches and variables."""
        return self.get_json(
            f"{API}/plan/{_seg(plan_key)}",
            Plan,
            f"getting plan {plan_key}",
            f"plan {plan_key}",
            params={"expand": "stages,branches,variableContext"},
        )

    def get_plan_branches(self, plan_key: str) -> list[Branch]:
        result = self.get_json(
            f"{API}/plan/{_seg(plan_key)}/branch",
            BranchesResponse,
            f"getting branches for plan {plan_key}",
            f"branches of {plan_key}",
            params={"max-result": MAX_RESULTS},
        )
        return result.branches.branch

    def get_build_results(self, plan_key: str, max_results: int = 25) -> list[BuildResult]:
        """List the most recent build results of a plan."""
        result = self.get_json(
            f"{API}/result/{_seg(plan_key)}",
            BuildResultsResponse,
            f"getting build results for plan {plan_key}",
            f"build results of {plan_key}",
            params={"expand": "results.result", "max-result": max_results},
        )
        return result.results.result

    def get_build_result(self, build_result_key: str) -> BuildResult:
        return self.get_json(
            f"{API}/result/{_seg(build_result_key)}",
            BuildResult,
            f"getting build result {build_result_key}",
            f"build result {build_result_key}",
            params={"expand": RESULT_EXPAND},
        )

    def get_latest_build_result(self, plan_key: str) -> BuildResult:
        return self.get_json(
            f"{API}/result/{_seg(plan_key)}/latest",
            BuildResult,
            f"getting latest build result for plan {plan_key}",
            f"latest build result of {plan_key}",
            params={"expand": RESULT_EXPAND},
        )

    def get_build_logs(self, build_result_key: str) -> str:
        """Return the log of a build result.

        Uses the log entries of the REST resource when Bamboo includes them,
        otherwise downloads the raw log file.
        """
        result = self.get_json(
            f"{API}/result/{_seg(build_result_key)}",
            BuildResult,
            f"getting build logs for {build_result_key}",
            f"build result {build_result_key}",
            params={"expand": "logEntries", "max-results": 10000},
        )
        entries = result.log_entries.log_entry if result.log_entries else []
        if entries:
            return "\n".join(entry.log or entry.unstyled_log or "" for entry in entries)

        logger.debug(f"No log entries in result {build_result_key}, downloading the log file")
        return self.download_build_log(build_result_key)

    def download_build_log(self, build_result_key: str) -> str:
        """Download the raw build log, trying the browse page if the download URL fails."""
        operation = f"downloading build logs for {build_result_key}"
        key = _seg(build_result_key)
        try:
            return self.get_text(f"/download/{key}/build_logs/{key}.log", operation)
        except RequestFailure as e:
            logger.debug(f"Log download failed with HTTP {e.status_code}, trying the browse endpoint")
        return self.get_text(f"/browse/{key}/log", operation)

    def get_job_logs(self, build_result_key: str, job_key: str) -> str:
        return self.get_text(
            f"/download/{_seg(build_result_key)}/build_logs/{_seg(job_key)}.log",
            f"getting job logs for {job_key} in build {build_result_key}",
        )

    def queue_build(self, plan_key: str, branch: str | None = None) -> QueuedBuild:
        """Trigger a build of a plan, or of one of its branches."""
        path = f"{API}/queue/{_seg(plan_key)}"
        operation = f"queuing build for plan {plan_key}"
        if branch:
            path += f"/branch/{_seg(branch)}"
            operation += f" branch {branch}"
        return self.send_json("POST", path, QueuedBuild, operation, f"queued build of {plan_key}")


def connect_bamboo(config: ServiceConfig | None = None) -> BambooClient:
    """Build a Bamboo client from explicit settings or from BAMBOO_* variables."""
    return BambooClient(config or ServiceConfig.load("bamboo"))
