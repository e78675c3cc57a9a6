"""Jira REST client -- issues, comments, transitions and assignment."""

from __future__ import annotations

import logging
from urllib.parse import quote

from atlcli.common.config import ServiceConfig
from atlcli.common.http import RestClient
from atlcli.jira.models import Comment, CreatedIssue, Issue, JiraUser, Transition, TransitionList
from atlcli.jira.transitions import resolve_transition

logger = logging.getLogger(__name__)

API = "/rest/api/2"


def _issue_path(issue_key: str) -> str:
    return f"{API}/issue/{quote(issue_key, safe='')}"


class JiraClient(RestClient):
    """Client for the Jira REST API (v2, Server and Cloud)."""

    def get_issue(self, issue_key: str) -> Issue:
        """Fetch an issue with its rendered fields."""
        return self.get_json(
            _issue_path(issue_key),
            Issue,
            f"getting issue {issue_key}",
            f"issue {issue_key}",
            params={"expand": "renderedFields"},
        )

    def create_issue(
        self,
        project_key: str,
        summary: str,
        issue_type: str,
        description: str | None = None,
    ) -> CreatedIssue:
        """Create an issue and return its key."""
        body = {
            "fields": {
                "project": {"key": project_key},
                "summary": summary,
                "issuetype": {"name": issue_type},
                "description": description,
            }
        }
        logger.debug(f"Creating {issue_type} in project {project_key}")
        return self.send_json("POST", f"{API}/issue", CreatedIssue, "creating issue", "created issue", body)

    def add_comment(self, issue_key: str, body: str) -> Comment:
        return self.send_json(
            "POST",
            f"{_issue_path(issue_key)}/comment",
            Comment,
            f"adding comment to issue {issue_key}",
            f"comment on {issue_key}",
            {"body": body},
        )

    def get_transitions(self, issue_key: str) -> list[Transition]:
        """List the transitions available from the issue's current status."""
        result = self.get_json(
            f"{_issue_path(issue_key)}/transitions",
            TransitionList,
            f"getting transitions for issue {issue_key}",
            f"transitions of {issue_key}",
        )
        return result.transitions

    def transition_issue(self, issue_key: str, status_name: str) -> Transition:
        """Move an issue to the status named ``status_name``.

        Raises:
            TransitionNotAvailable: If no transition from the current status matches.
        """
        transition = resolve_transition(issue_key, self.get_transitions(issue_key), status_name)
        self.send_json(
            "POST",
            f"{_issue_path(issue_key)}/transitions",
            None,
            f"transitioning issue {issue_key} to {status_name}",
            f"transition of {issue_key}",
            {"transition": {"id": transition.id}},
        )
        logger.debug(f"Transitioned {issue_key} via '{transition.name}'")
        return transition

    def search_users(self, query: str) -> list[JiraUser]:
        return self.get_json(
            f"{API}/user/search",
            list[JiraUser],
            f"searching for user '{query}'",
            "user search results",
            params={"query": query},
        )

    def assign_issue(self, issue_key: str, username: str) -> JiraUser:
        """Assign an issue to the first user matching ``username``.

        When the search finds nobody, ``username`` is sent as the user name
        as-is, which older Jira Server versions accept.
        """
        users = self.search_users(username)
        if users:
            assignee = users[0]
            body = {"accountId": assignee.account_id, "name": assignee.name}
        else:
            logger.debug(f"No user found for '{username}', assigning by name")
            assignee = JiraUser(name=username)
            body = {"name": username}

        self.send_json(
            "PUT",
            f"{_issue_path(issue_key)}/assignee",
            None,
            f"assigning user '{username}' to issue {issue_key}",
            f"assignee of {issue_key}",
            body,
        )
        return assignee

    def update_issue(self, issue_key: str, description: str | None = None, summary: str | None = None) -> None:
        """Update the description and/or summary of an issue."""
        self.send_json(
            "PUT",
            _issue_path(issue_key),
            None,
            f"updating issue {issue_key}",
            f"issue {issue_key}",
            {"fields": {"description": description, "summary": summary}},
        )


def connect_jira(config: ServiceConfig | None = None) -> JiraClient:
    """Build a Jira client from explicit settings or from JIRA_* variables."""
    return JiraClient(config or ServiceConfig.load("jira"))
