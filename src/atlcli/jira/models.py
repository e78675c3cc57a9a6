"""Jira REST API v2 payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class JiraUser:
    account_id: str | None = None
    name: str | None = None
    display_name: str | None = None
    email_address: str | None = None
    active: bool = False

    @property
    def label(self) -> str:
        return self.display_name or self.name or self.account_id or "Unknown"


@dataclass
class StatusCategory:
    id: int = 0
    key: str = ""
    name: str = ""


@dataclass
class Status:
    id: str = ""
    name: str = ""
    description: str | None = None
    status_category: StatusCategory | None = None


@dataclass
class IssueType:
    id: str = ""
    name: str = ""
    description: str | None = None


@dataclass
class Project:
    id: str = ""
    key: str = ""
    name: str = ""


@dataclass
class Priority:
    id: str = ""
    name: str = ""


@dataclass
class Comment:
    id: str = ""
    body: str = ""
    author: JiraUser | None = None
    created: str | None = None
    updated: str | None = None


@dataclass
class CommentContainer:
    comments: list[Comment] = field(default_factory=list)
    total: int = 0


@dataclass
class IssueFields:
    summary: str | None = None
    description: str | None = None
    issue_type: IssueType | None = field(default=None, metadata={"json": "issuetype"})
    project: Project | None = None
    status: Status | None = None
    assignee: JiraUser | None = None
    reporter: JiraUser | None = None
    priority: Priority | None = None
    created: str | None = None
    updated: str | None = None
    comment: CommentContainer | None = None


@dataclass
class Issue:
    key: str
    id: str = ""
    self_url: str | None = field(default=None, metadata={"json": "self"})
    fields: IssueFields = field(default_factory=IssueFields)
    rendered_fields: dict[str, Any] | None = None


@dataclass
class CreatedIssue:
    key: str
    id: str = ""
    self_url: str | None = field(default=None, metadata={"json": "self"})


@dataclass
class Transition:
    id: str
    name: str = ""
    to: Status | None = None


@dataclass
class TransitionList:
    transitions: list[Transition] = field(default_factory=list)
