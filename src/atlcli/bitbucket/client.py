"""Bitbucket REST client for both Bitbucket Cloud and Bitbucket Server/Data Center.

``project_key`` is the project key on Server and the workspace slug on Cloud.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from atlcli.bitbucket.endpoints import BitbucketEndpoints, endpoints_for
from atlcli.bitbucket.models import (
    Activity,
    Branch,
    BranchRestriction,
    BuildStatus,
    Comment,
    Commit,
    Pipeline,
    PipelineConfiguration,
    Project,
    PullRequest,
    PullRequestDiff,
    Repository,
    Webhook,
)
from atlcli.common.config import ServiceConfig
from atlcli.common.errors import NotFoundError
from atlcli.common.http import RestClient
from atlcli.common.paging import PagedResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_LIMIT = 25

# Pull request commits and activities are always read in full
FULL_LISTING_LIMIT = 100


class BitbucketClient(RestClient):
    """Client for the Bitbucket REST API.

    Cloud vs Server is decided once from the base URL; the resulting
    ``endpoints`` strategy supplies every path and the paging parameters.
    List operations return one ``PagedResult`` page, or every page folded
    into one result when called with ``all_pages=True``.
    """

    def __init__(self, config: ServiceConfig, timeout: float | None = None):
        super().__init__(config, timeout)
        self.endpoints: BitbucketEndpoints = endpoints_for(self.base_url)

    @property
    def is_cloud(self) -> bool:
        return self.endpoints.is_cloud

    def _list(
        self,
        path: str,
        item_type: type[T],
        operation: str,
        resource: str,
        *,
        limit: int,
        start: int,
        all_pages: bool,
        params: dict[str, Any] | None = None,
    ) -> PagedResult[T]:
        if all_pages:
            values = self.list_all(
                path, item_type, operation, resource, params=params, limit=limit, page_params=self.endpoints.page_params
            )
            return PagedResult(values=values, size=len(values), limit=limit, start=0, is_last_page=True)

        query = {**(params or {}), **self.endpoints.page_params(limit, start)}
        return self.get_page(path, item_type, operation, resource, params=query)

    # Projects and repositories

    def get_project(self, project_key: str) -> Project:
        return self.get_json(
            self.endpoints.project(project_key),
            Project,
            f"getting project {project_key}",
            f"project {project_key}",
        )

    def list_projects(self, limit: int = DEFAULT_LIMIT, start: int = 0, all_pages: bool = False) -> PagedResult[Project]:
        return self._list(
            self.endpoints.projects(),
            Project,
            "listing projects",
            "project list",
            limit=limit,
            start=start,
            all_pages=all_pages,
        )

    def get_repository(self, project_key: str, repo_slug: str) -> Repository:
        return self.get_json(
            self.endpoints.repository(project_key, repo_slug),
            Repository,
            f"getting repository {project_key}/{repo_slug}",
            f"repository {project_key}/{repo_slug}",
        )

    def list_repositories(
        self,
        project_key: str,
        limit: int = DEFAULT_LIMIT,
        start: int = 0,
        all_pages: bool = False,
    ) -> PagedResult[Repository]:
        return self._list(
            self.endpoints.repositories(project_key),
            Repository,
            f"listing repositories in project {project_key}",
            f"repositories of {project_key}",
            limit=limit,
            start=start,
            all_pages=all_pages,
        )

    # Branches and commits

    def list_branches(
        self,
        project_key: str,
        repo_slug: str,
        limit: int = DEFAULT_LIMIT,
        start: int = 0,
        all_pages: bool = False,
    ) -> PagedResult[Branch]:
        return self._list(
            self.endpoints.branches(project_key, repo_slug),
            Branch,
            f"listing branches in {project_key}/{repo_slug}",
            f"branches of {project_key}/{repo_slug}",
            limit=limit,
            start=start,
            all_pages=all_pages,
        )

    def get_default_branch(self, project_key: str, repo_slug: str) -> Branch:
        """Return the repository's default branch.

        Server has a dedicated resource. On Cloud the branch is named by the
        repository's ``mainbranch`` and then fetched by name.

        Raises:
            NotFoundError: If a Cloud repository has no main branch yet.
        """
        operation = f"getting default branch for {project_key}/{repo_slug}"
        resource = f"default branch of {project_key}/{repo_slug}"

        path = self.endpoints.default_branch(project_key, repo_slug)
        if path is not None:
            return self.get_json(path, Branch, operation, resource)

        repository = self.get_repository(project_key, repo_slug)
        if not repository.mainbranch or not repository.mainbranch.name:
            raise NotFoundError(f"Repository {project_key}/{repo_slug} has no main branch")
        branch = self.get_json(
            self.endpoints.branch(project_key, repo_slug, repository.mainbranch.name), Branch, operation, resource
        )
        branch.is_default = True
        return branch

    def list_commits(
        self,
        project_key: str,
        repo_slug: str,
        branch: str | None = None,
        limit: int = DEFAULT_LIMIT,
        start: int = 0,
        all_pages: bool = False,
    ) -> PagedResult[Commit]:
        """List commits, newest first, optionally reachable from ``branch`` only."""
        return self._list(
            self.endpoints.commits(project_key, repo_slug),
            Commit,
            f"listing commits in {project_key}/{repo_slug}",
            f"commits of {project_key}/{repo_slug}",
            limit=limit,
            start=start,
            all_pages=all_pages,
            params=self.endpoints.branch_filter(branch) if branch else None,
        )

    def get_commit(self, project_key: str, repo_slug: str, commit_id: str) -> Commit:
        return self.get_json(
            self.endpoints.commit(project_key, repo_slug, commit_id),
            Commit,
            f"getting commit {commit_id} in {project_key}/{repo_slug}",
            f"commit {commit_id}",
        )

    # Pull requests

    def list_pull_requests(
        self,
        project_key: str,
        repo_slug: str,
        state: str = "OPEN",
        limit: int = DEFAULT_LIMIT,
        start: int = 0,
        all_pages: bool = False,
    ) -> PagedResult[PullRequest]:
        return self._list(
            self.endpoints.pull_requests(project_key, repo_slug),
            PullRequest,
            f"listing pull requests in {project_key}/{repo_slug}",
            f"pull requests of {project_key}/{repo_slug}",
            limit=limit,
            start=start,
            all_pages=all_pages,
            params={"state": state.upper()},
        )

    def get_pull_request(self, project_key: str, repo_slug: str, pr_id: int) -> PullRequest:
        return self.get_json(
            self.endpoints.pull_request(project_key, repo_slug, pr_id),
            PullRequest,
            f"getting pull request {pr_id} in {project_key}/{repo_slug}",
            f"pull request {pr_id}",
        )

    def get_pull_request_diff(self, project_key: str, repo_slug: str, pr_id: int) -> PullRequestDiff:
        """Fetch a pull request diff; structured JSON on Server, unified text on Cloud."""
        path = self.endpoints.pull_request_diff(project_key, repo_slug, pr_id)
        operation = f"getting diff for pull request {pr_id}"
        if self.is_cloud:
            return PullRequestDiff(raw=self.get_text(path, operation))
        return self.get_json(path, PullRequestDiff, operation, f"diff of pull request {pr_id}")

    def get_pull_request_commits(self, project_key: str, repo_slug: str, pr_id: int) -> list[Commit]:
        """Return every commit of a pull request, across all pages."""
        return self.list_all(
            self.endpoints.pull_request_commits(project_key, repo_slug, pr_id),
            Commit,
            f"getting commits for pull request {pr_id}",
            f"commits of pull request {pr_id}",
            limit=FULL_LISTING_LIMIT,
            page_params=self.endpoints.page_params,
        )

    def get_pull_request_comments(self, project_key: str, repo_slug: str, pr_id: int) -> list[Comment]:
        """Return every top-level comment of a pull request, oldest first on Cloud.

        Server has no comment listing; comments are read from the pull
        request activities, keeping only ``COMMENTED`` entries.
        """
        operation = f"getting comments for pull request {pr_id}"
        if self.is_cloud:
            return self.list_all(
                self.endpoints.pull_request_comments(project_key, repo_slug, pr_id),
                Comment,
                operation,
                f"comments of pull request {pr_id}",
                limit=FULL_LISTING_LIMIT,
                page_params=self.endpoints.page_params,
            )

        activities = self.list_all(
            self.endpoints.pull_request_activities(project_key, repo_slug, pr_id),
            Activity,
            operation,
            f"activities of pull request {pr_id}",
            limit=FULL_LISTING_LIMIT,
            page_params=self.endpoints.page_params,
        )
        comments = [a.comment for a in activities if a.action == "COMMENTED" and a.comment is not None]
        logger.debug(f"{len(comments)} of {len(activities)} activities on pull request {pr_id} are comments")
        return comments

    def add_pull_request_comment(self, project_key: str, repo_slug: str, pr_id: int, text: str) -> Comment:
        return self.send_json(
            "POST",
            self.endpoints.pull_request_comments(project_key, repo_slug, pr_id),
            Comment,
            f"adding comment to pull request {pr_id}",
            f"comment on pull request {pr_id}",
            self.endpoints.comment_body(text),
        )

    # Build status and repository settings

    def get_build_statuses(
        self,
        project_key: str,
        repo_slug: str,
        commit_id: str,
        limit: int = DEFAULT_LIMIT,
        start: int = 0,
        all_pages: bool = False,
    ) -> PagedResult[BuildStatus]:
        return self._list(
            self.endpoints.build_statuses(project_key, repo_slug, commit_id),
            BuildStatus,
            f"getting build statuses for commit {commit_id}",
            f"build statuses of {commit_id}",
            limit=limit,
            start=start,
            all_pages=all_pages,
        )

    def get_branch_restrictions(
        self,
        project_key: str,
        repo_slug: str,
        limit: int = DEFAULT_LIMIT,
        start: int = 0,
        all_pages: bool = False,
    ) -> PagedResult[BranchRestriction]:
        return self._list(
            self.endpoints.branch_restrictions(project_key, repo_slug),
            BranchRestriction,
            f"getting branch restrictions for {project_key}/{repo_slug}",
            f"branch restrictions of {project_key}/{repo_slug}",
            limit=limit,
            start=start,
            all_pages=all_pages,
        )

    def get_webhooks(
        self,
        project_key: str,
        repo_slug: str,
        limit: int = DEFAULT_LIMIT,
        start: int = 0,
        all_pages: bool = False,
    ) -> PagedResult[Webhook]:
        return self._list(
            self.endpoints.webhooks(project_key, repo_slug),
            Webhook,
            f"getting webhooks for {project_key}/{repo_slug}",
            f"webhooks of {project_key}/{repo_slug}",
            limit=limit,
            start=start,
            all_pages=all_pages,
        )

    # Pipelines (Cloud only; the Server endpoints raise before any request)

    def get_pipeline_configuration(self, project_key: str, repo_slug: str) -> PipelineConfiguration:
        return self.get_json(
            self.endpoints.pipelines_config(project_key, repo_slug),
            PipelineConfiguration,
            f"getting pipeline configuration for {project_key}/{repo_slug}",
            f"pipeline configuration of {project_key}/{repo_slug}",
        )

    def list_pipelines(
        self,
        project_key: str,
        repo_slug: str,
        limit: int = DEFAULT_LIMIT,
        start: int = 0,
        all_pages: bool = False,
    ) -> PagedResult[Pipeline]:
        """List pipelines, most recently created first."""
        return self._list(
            self.endpoints.pipelines(project_key, repo_slug),
            Pipeline,
            f"listing pipelines for {project_key}/{repo_slug}",
            f"pipelines of {project_key}/{repo_slug}",
            limit=limit,
            start=start,
            all_pages=all_pages,
            params={"sort": "-created_on"},
        )

    def get_pipeline(self, project_key: str, repo_slug: str, pipeline_uuid: str) -> Pipeline:
        return self.get_json(
            self.endpoints.pipeline(project_key, repo_slug, pipeline_uuid),
            Pipeline,
            f"getting pipeline {pipeline_uuid} for {project_key}/{repo_slug}",
            f"pipeline {pipeline_uuid}",
        )

    def trigger_pipeline(
        self,
        project_key: str,
        repo_slug: str,
        branch: str,
        custom: str | None = None,
        variables: dict[str, str] | None = None,
    ) -> Pipeline:
        """Run the pipeline of ``branch``, or the custom pipeline named ``custom``.

        Args:
            project_key: Workspace slug.
            repo_slug: Repository slug.
            branch: Branch to build.
            custom: Name of a custom pipeline from bitbucket-pipelines.yml.
            variables: Pipeline variables, sent as unsecured.
        """
        path = self.endpoints.pipelines(project_key, repo_slug)
        target: dict[str, Any] = {"type": "pipeline_ref_target", "ref_type": "branch", "ref_name": branch}
        if custom:
            target["selector"] = {"type": "custom", "pattern": custom}
        body: dict[str, Any] = {"target": target}
        if variables:
            body["variables"] = [{"key": key, "value": value, "secured": False} for key, value in variables.items()]

        logger.debug(f"Triggering pipeline on {project_key}/{repo_slug} branch {branch} (custom={custom})")
        return self.send_json(
            "POST",
            path,
            Pipeline,
            f"triggering pipeline for {project_key}/{repo_slug} on branch {branch}",
            "triggered pipeline",
            body,
        )

    def stop_pipeline(self, project_key: str, repo_slug: str, pipeline_uuid: str) -> None:
        self.send_json(
            "POST",
            self.endpoints.stop_pipeline(project_key, repo_slug, pipeline_uuid),
            None,
            f"stopping pipeline {pipeline_uuid} for {project_key}/{repo_slug}",
            f"pipeline {pipeline_uuid}",
        )


def connect_bitbucket(config: ServiceConfig | None = None) -> BitbucketClient:
    """Build a Bitbucket client from explicit settings or from BITBUCKET_* variables."""
    return BitbucketClient(config or ServiceConfig.load("bitbucket"))

