"""Bitbucket Cloud and Bitbucket Server/Data Center URL shapes.

The deployment type is sniffed from the base URL once per client; the
matching strategy object then supplies every path template and the page
query parameters, so client methods never branch on the deployment type.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from atlcli.common.errors import ConfigurationError, UnsupportedOperationError

logger = logging.getLogger(__name__)

CLOUD_HOSTS = ("api.bitbucket.org", "bitbucket.org")

PIPELINES_UNSUPPORTED = (
    "Pipelines are only available for Bitbucket Cloud. "
    "For Bitbucket Server, use build status APIs or external CI/CD tools."
)


def is_cloud(base_url: str) -> bool:
    """Whether ``base_url`` points at Bitbucket Cloud rather than a Server instance."""
    lowered = base_url.lower()
    return any(host in lowered for host in CLOUD_HOSTS)


def _seg(value: str | int) -> str:
    return quote(str(value), safe="")


class BitbucketEndpoints:
    """Path templates shared by both deployment types; subclasses fill in the rest."""

    is_cloud = False
    name = "Bitbucket"

    def page_params(self, limit: int, start: int) -> dict[str, Any]:
        raise NotImplementedError

    def repository(self, project_key: str, repo_slug: str) -> str:
        raise NotImplementedError

    def pull_request(self, project_key: str, repo_slug: str, pr_id: int) -> str:
        raise NotImplementedError

    def pull_request_diff(self, project_key: str, repo_slug: str, pr_id: int) -> str:
        return f"{self.pull_request(project_key, repo_slug, pr_id)}/diff"

    def pull_request_commits(self, project_key: str, repo_slug: str, pr_id: int) -> str:
        return f"{self.pull_request(project_key, repo_slug, pr_id)}/commits"

    def pull_request_comments(self, project_key: str, repo_slug: str, pr_id: int) -> str:
        return f"{self.pull_request(project_key, repo_slug, pr_id)}/comments"

    def _pipelines_unsupported(self, message: str = PIPELINES_UNSUPPORTED) -> UnsupportedOperationError:
        return UnsupportedOperationError(
            message,
            troubleshooting=["Check BITBUCKET_BASE_URL; pipelines need https://api.bitbucket.org"],
        )


class CloudEndpoints(BitbucketEndpoints):
    """Bitbucket Cloud: ``/2.0`` API, workspaces in place of projects, ``pagelen``/``page`` paging."""

    is_cloud = True
    name = "Bitbucket Cloud"

    def page_params(self, limit: int, start: int) -> dict[str, Any]:
        # Cloud pages by number, so only page boundaries can be addressed
        if start % limit:
            raise ConfigurationError(
                f"Bitbucket Cloud pages by page number: --start must be a multiple of --limit ({limit}), got {start}"
            )
        return {"pagelen": limit, "page": start // limit + 1}

    def project(self, project_key: str) -> str:
        return f"/2.0/workspaces/{_seg(project_key)}"

    def projects(self) -> str:
        return "/2.0/workspaces"

    def repositories(self, project_key: str) -> str:
        return f"/2.0/repositories/{_seg(project_key)}"

    def repository(self, project_key: str, repo_slug: str) -> str:
        return f"/2.0/repositories/{_seg(project_key)}/{_seg(repo_slug)}"

    def branches(self, project_key: str, repo_slug: str) -> str:
        return f"{self.repository(project_key, repo_slug)}/refs/branches"

    def branch(self, project_key: str, repo_slug: str, name: str) -> str:
        return f"{self.branches(project_key, repo_slug)}/{_seg(name)}"

    def default_branch(self, project_key: str, repo_slug: str) -> str | None:
        # Cloud names the default branch on the repository itself
        return None

    def commits(self, project_key: str, repo_slug: str) -> str:
        return f"{self.repository(project_key, repo_slug)}/commits"

    def commit(self, project_key: str, repo_slug: str, commit_id: str) -> str:
        return f"{self.repository(project_key, repo_slug)}/commit/{_seg(commit_id)}"

    def branch_filter(self, branch: str) -> dict[str, Any]:
        return {"include": branch}

    def pull_requests(self, project_key: str, repo_slug: str) -> str:
        return f"{self.repository(project_key, repo_slug)}/pullrequests"

    def pull_request(self, project_key: str, repo_slug: str, pr_id: int) -> str:
        return f"{self.pull_requests(project_key, repo_slug)}/{_seg(pr_id)}"

    def comment_body(self, text: str) -> dict[str, Any]:
        return {"content": {"raw": text}}

    def build_statuses(self, project_key: str, repo_slug: str, commit_id: str) -> str:
        return f"{self.commit(project_key, repo_slug, commit_id)}/statuses"

    def branch_restrictions(self, project_key: str, repo_slug: str) -> str:
        return f"{self.repository(project_key, repo_slug)}/branch-restrictions"

    def webhooks(self, project_key: str, repo_slug: str) -> str:
        return f"{self.repository(project_key, repo_slug)}/hooks"

    def pipelines_config(self, project_key: str, repo_slug: str) -> str:
        return f"{self.repository(project_key, repo_slug)}/pipelines_config"

    def pipelines(self, project_key: str, repo_slug: str) -> str:
        return f"{self.repository(project_key, repo_slug)}/pipelines/"

    def pipeline(self, project_key: str, repo_slug: str, pipeline_uuid: str) -> str:
        return f"{self.pipelines(project_key, repo_slug)}{_seg(pipeline_uuid)}"

    def stop_pipeline(self, project_key: str, repo_slug: str, pipeline_uuid: str) -> str:
        return f"{self.pipeline(project_key, repo_slug, pipeline_uuid)}/stopPipeline"


class ServerEndpoints(BitbucketEndpoints):
    """Bitbucket Server/Data Center: ``/rest/api/1.0`` API, ``limit``/``start`` paging."""

    name = "Bitbucket Server"

    def page_params(self, limit: int, start: int) -> dict[str, Any]:
        return {"limit": limit, "start": start}

    def project(self, project_key: str) -> str:
        return f"/rest/api/1.0/projects/{_seg(project_key)}"

    def projects(self) -> str:
        return "/rest/api/1.0/projects"

    def repositories(self, project_key: str) -> str:
        return f"{self.project(project_key)}/repos"

    def repository(self, project_key: str, repo_slug: str) -> str:
        return f"{self.repositories(project_key)}/{_seg(repo_slug)}"

    def branches(self, project_key: str, repo_slug: str) -> str:
        return f"{self.repository(project_key, repo_slug)}/branches"

    def default_branch(self, project_key: str, repo_slug: str) -> str | None:
        return f"{self.repository(project_key, repo_slug)}/default-branch"

    def commits(self, project_key: str, repo_slug: str) -> str:
        return f"{self.repository(project_key, repo_slug)}/commits"

    def commit(self, project_key: str, repo_slug: str, commit_id: str) -> str:
        return f"{self.commits(project_key, repo_slug)}/{_seg(commit_id)}"

    def branch_filter(self, branch: str) -> dict[str, Any]:
        return {"until": branch}

    def pull_requests(self, project_key: str, repo_slug: str) -> str:
        return f"{self.repository(project_key, repo_slug)}/pull-requests"

    def pull_request(self, project_key: str, repo_slug: str, pr_id: int) -> str:
        return f"{self.pull_requests(project_key, repo_slug)}/{_seg(pr_id)}"

    def pull_request_activities(self, project_key: str, repo_slug: str, pr_id: int) -> str:
        return f"{self.pull_request(project_key, repo_slug, pr_id)}/activities"

    def comment_body(self, text: str) -> dict[str, Any]:
        return {"text": text}

    def build_statuses(self, project_key: str, repo_slug: str, commit_id: str) -> str:
        return f"/rest/build-status/1.0/commits/{_seg(commit_id)}"

    def branch_restrictions(self, project_key: str, repo_slug: str) -> str:
        return f"/rest/branch-permissions/2.0/projects/{_seg(project_key)}/repos/{_seg(repo_slug)}/restrictions"

    def webhooks(self, project_key: str, repo_slug: str) -> str:
        return f"{self.repository(project_key, repo_slug)}/webhooks"

    def pipelines_config(self, project_key: str, repo_slug: str) -> str:
        raise self._pipelines_unsupported(
            "Pipeline configuration is only available for Bitbucket Cloud. "
            "For Bitbucket Server, use build status APIs or external CI/CD tools."
        )

    def pipelines(self, project_key: str, repo_slug: str) -> str:
        raise self._pipelines_unsupported()

    def pipeline(self, project_key: str, repo_slug: str, pipeline_uuid: str) -> str:
        raise self._pipelines_unsupported()

    def stop_pipeline(self, project_key: str, repo_slug: str, pipeline_uuid: str) -> str:
        raise self._pipelines_unsupported()


def endpoints_for(base_url: str) -> BitbucketEndpoints:
    """Pick the endpoint strategy for a Bitbucket base URL."""
    endpoints = CloudEndpoints() if is_cloud(base_url) else ServerEndpoints()
    logger.debug(f"Using {endpoints.name} endpoints for {base_url}")
    return endpoints
