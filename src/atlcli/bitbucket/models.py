"""Bitbucket payloads, covering both Cloud and Server shapes.

Cloud and Server describe the same resources with different keys (``hash``
vs ``id``, ``created_on`` vs ``createdDate``, ``links.self`` as an object vs
a list), so each record carries the fields of both and exposes properties
that pick whichever one the server filled in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def format_timestamp(millis: int | None) -> str | None:
    """Render a Server epoch-millisecond timestamp as an ISO date-time."""
    if not millis:
        return None
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).isoformat(timespec="seconds")


def link_href(links: dict[str, Any] | None, name: str = "self") -> str | None:
    """First href of a named link, in either the Cloud (object) or Server (list) shape."""
    if not links:
        return None
    link = links.get(name)
    if isinstance(link, list):
        link = link[0] if link else None
    if isinstance(link, dict):
        return link.get("href")
    return None


@dataclass
class BitbucketUser:
    name: str | None = None
    display_name: str | None = None
    email_address: str | None = None
    id: int | None = None
    slug: str | None = None
    type: str | None = None
    active: bool | None = None
    uuid: str | None = None
    nickname: str | None = None
    account_id: str | None = None

    @property
    def label(self) -> str:
        return self.display_name or self.name or self.nickname or self.slug or self.uuid or "unknown"


@dataclass
class Project:
    """A Server project, or a Cloud workspace."""

    key: str = ""
    name: str = ""
    description: str | None = None
    is_public: bool = field(default=False, metadata={"json": "public"})
    is_private: bool | None = None
    type: str | None = None
    slug: str | None = None
    uuid: str | None = None
    links: dict[str, Any] | None = None

    @property
    def identifier(self) -> str:
        return self.key or self.slug or ""


@dataclass
class BranchName:
    name: str = ""
    type: str | None = None


@dataclass
class Repository:
    slug: str = ""
    name: str = ""
    full_name: str | None = None
    description: str | None = None
    scm_id: str | None = None
    scm: str | None = None
    state: str | None = None
    forkable: bool = False
    is_public: bool = field(default=False, metadata={"json": "public"})
    is_private: bool | None = None
    project: Project | None = None
    mainbranch: BranchName | None = None
    links: dict[str, Any] | None = None

    @property
    def visibility(self) -> str:
        if self.is_private is not None:
            return "private" if self.is_private else "public"
        return "public" if self.is_public else "private"


@dataclass
class CommitRef:
    hash: str | None = None
    id: str | None = None
    display_id: str | None = None

    @property
    def commit_id(self) -> str:
        return self.id or self.hash or ""


@dataclass
class Branch:
    id: str = ""
    display_id: str = ""
    name: str | None = None
    type: str | None = None
    latest_commit: str | None = None
    is_default: bool = False
    target: CommitRef | None = None

    @property
    def label(self) -> str:
        return self.display_id or self.name or self.id

    @property
    def head(self) -> str | None:
        return self.latest_commit or (self.target.commit_id if self.target else None)


@dataclass
class CommitAuthor:
    name: str | None = None
    email_address: str | None = None
    raw: str | None = None
    user: BitbucketUser | None = None

    @property
    def label(self) -> str:
        if self.name:
            return self.name
        if self.user:
            return self.user.label
        return self.raw or "unknown"


@dataclass
class Commit:
    id: str | None = None
    hash: str | None = None
    display_id: str | None = None
    message: str = ""
    author: CommitAuthor | None = None
    author_timestamp: int | None = None
    committer: CommitAuthor | None = None
    committer_timestamp: int | None = None
    date: str | None = None
    parents: list[CommitRef] = field(default_factory=list)

    @property
    def commit_id(self) -> str:
        return self.id or self.hash or ""

    @property
    def short_id(self) -> str:
        return self.display_id or self.commit_id[:11]

    @property
    def when(self) -> str | None:
        return self.date or format_timestamp(self.author_timestamp)

    @property
    def summary(self) -> str:
        lines = self.message.strip().splitlines()
        return lines[0] if lines else ""


@dataclass
class RefBranch:
    name: str = ""


@dataclass
class PullRequestRef:
    """``fromRef``/``toRef`` on Server, ``source``/``destination`` on Cloud."""

    id: str | None = None
    display_id: str | None = None
    latest_commit: str | None = None
    repository: Repository | None = None
    branch: RefBranch | None = None
    commit: CommitRef | None = None

    @property
    def label(self) -> str:
        if self.display_id:
            return self.display_id
        if self.branch:
            return self.branch.name
        return self.id or ""


@dataclass
class Participant:
    """A Server participant entry, or a Cloud user embedded directly."""

    user: BitbucketUser | None = None
    role: str | None = None
    approved: bool = False
    status: str | None = None
    state: str | None = None
    display_name: str | None = None
    nickname: str | None = None
    uuid: str | None = None

    @property
    def label(self) -> str:
        if self.user:
            return self.user.label
        return self.display_name or self.nickname or self.uuid or "unknown"


@dataclass
class PullRequest:
    id: int
    title: str = ""
    description: str | None = None
    state: str = "OPEN"
    open: bool = False
    closed: bool = False
    created_date: int | None = None
    updated_date: int | None = None
    created_on: str | None = None
    updated_on: str | None = None
    from_ref: PullRequestRef | None = None
    to_ref: PullRequestRef | None = None
    source: PullRequestRef | None = None
    destination: PullRequestRef | None = None
    author: Participant | None = None
    reviewers: list[Participant] = field(default_factory=list)
    participants: list[Participant] = field(default_factory=list)
    links: dict[str, Any] | None = None

    @property
    def source_ref(self) -> PullRequestRef | None:
        return self.from_ref or self.source

    @property
    def target_ref(self) -> PullRequestRef | None:
        return self.to_ref or self.destination

    @property
    def created(self) -> str | None:
        return self.created_on or format_timestamp(self.created_date)

    @property
    def updated(self) -> str | None:
        return self.updated_on or format_timestamp(self.updated_date)

    @property
    def url(self) -> str | None:
        return link_href(self.links, "html") or link_href(self.links, "self")


@dataclass
class CommentContent:
    raw: str | None = None


@dataclass
class Comment:
    id: int
    version: int | None = None
    text: str | None = None
    content: CommentContent | None = None
    author: BitbucketUser | None = None
    user: BitbucketUser | None = None
    created_date: int | None = None
    updated_date: int | None = None
    created_on: str | None = None
    updated_on: str | None = None
    comments: list[Comment] = field(default_factory=list)
    severity: str | None = None
    state: str | None = None
    deleted: bool = False

    @property
    def body(self) -> str:
        if self.text is not None:
            return self.text
        return self.content.raw if self.content and self.content.raw else ""

    @property
    def who(self) -> str:
        person = self.author or self.user
        return person.label if person else "unknown"

    @property
    def created(self) -> str | None:
        return self.created_on or format_timestamp(self.created_date)


@dataclass
class CommentAnchor:
    from_hash: str | None = None
    to_hash: str | None = None
    line: int | None = None
    line_type: str | None = None
    file_type: str | None = None
    path: str | None = None
    src_path: str | None = None


@dataclass
class Activity:
    """A Server pull request activity; comments arrive as ``COMMENTED`` activities."""

    id: int
    created_date: int | None = None
    user: BitbucketUser | None = None
    action: str | None = None
    comment: Comment | None = None
    comment_anchor: CommentAnchor | None = None


@dataclass
class DiffPath:
    to_string: str | None = None
    parent: str | None = None
    name: str | None = None
    extension: str | None = None


@dataclass
class DiffLine:
    source: int = 0
    destination: int = 0
    line: str = ""
    truncated: bool = False


@dataclass
class DiffSegment:
    type: str = "CONTEXT"
    lines: list[DiffLine] = field(default_factory=list)
    truncated: bool = False


_SEGMENT_PREFIX = {"ADDED": "+", "REMOVED": "-"}


@dataclass
class DiffHunk:
    source_line: int = 0
    source_span: int = 0
    destination_line: int = 0
    destination_span: int = 0
    segments: list[DiffSegment] = field(default_factory=list)
    truncated: bool = False


@dataclass
class FileDiff:
    source: DiffPath | None = None
    destination: DiffPath | None = None
    hunks: list[DiffHunk] = field(default_factory=list)
    truncated: bool = False


@dataclass
class PullRequestDiff:
    """A pull request diff: structured on Server, raw unified text on Cloud."""

    from_hash: str | None = None
    to_hash: str | None = None
    context_lines: int | None = None
    whitespace: str | None = None
    diffs: list[FileDiff] = field(default_factory=list)
    truncated: bool = False
    raw: str | None = None

    def as_text(self) -> str:
        """Render the diff as unified diff text."""
        if self.raw is not None:
            return self.raw

        out: list[str] = []
        for diff in self.diffs:
            source = diff.source.to_string if diff.source else None
            destination = diff.destination.to_string if diff.destination else None
            out.append(f"--- {'a/' + source if source else '/dev/null'}")
            out.append(f"+++ {'b/' + destination if destination else '/dev/null'}")
            for hunk in diff.hunks:
                out.append(
                    f"@@ -{hunk.source_line},{hunk.source_span} +{hunk.destination_line},{hunk.destination_span} @@"
                )
                for segment in hunk.segments:
                    prefix = _SEGMENT_PREFIX.get(segment.type, " ")
                    out.extend(prefix + line.line for line in segment.lines)
            if diff.truncated:
                out.append("... (file diff truncated)")
        if self.truncated:
            out.append("... (diff truncated)")
        return "\n".join(out)


@dataclass
class BuildStatus:
    state: str = ""
    key: str = ""
    name: str | None = None
    url: str | None = None
    description: str | None = None
    date_added: int | None = None
    created_on: str | None = None

    @property
    def added(self) -> str | None:
        return self.created_on or format_timestamp(self.date_added)


@dataclass
class MatcherType:
    id: str | None = None
    name: str | None = None


@dataclass
class BranchMatcher:
    id: str | None = None
    display_id: str | None = None
    type: MatcherType | None = None
    active: bool = True


@dataclass
class BranchRestriction:
    id: int | None = None
    type: str | None = None
    kind: str | None = None
    pattern: str | None = None
    branch_match_kind: str | None = None
    matcher: BranchMatcher | None = None
    value: int | None = None
    users: list[Any] = field(default_factory=list)
    groups: list[Any] = field(default_factory=list)

    @property
    def restriction(self) -> str:
        return self.type or self.kind or ""

    @property
    def applies_to(self) -> str:
        if self.matcher:
            return self.matcher.display_id or self.matcher.id or ""
        return self.pattern or self.branch_match_kind or ""


@dataclass
class Webhook:
    id: int | None = None
    uuid: str | None = None
    name: str | None = None
    description: str | None = None
    url: str = ""
    events: list[str] = field(default_factory=list)
    active: bool = False

    @property
    def label(self) -> str:
        return self.name or self.description or ""


@dataclass
class PipelineConfiguration:
    enabled: bool = False
    repository: Any = None


@dataclass
class PipelineResult:
    name: str | None = None
    type: str | None = None


@dataclass
class PipelineState:
    name: str | None = None
    type: str | None = None
    result: PipelineResult | None = None

    @property
    def label(self) -> str:
        if self.result and self.result.name:
            return f"{self.name} ({self.result.name})"
        return self.name or "UNKNOWN"


@dataclass
class PipelineSelector:
    type: str | None = None
    pattern: str | None = None


@dataclass
class PipelineTarget:
    type: str | None = None
    ref_type: str | None = None
    ref_name: str | None = None
    commit: CommitRef | None = None
    selector: PipelineSelector | None = None


@dataclass
class PipelineTrigger:
    name: str | None = None
    type: str | None = None


@dataclass
class Pipeline:
    uuid: str = ""
    build_number: int = 0
    state: PipelineState | None = None
    created_on: str | None = None
    completed_on: str | None = None
    target: PipelineTarget | None = None
    trigger: PipelineTrigger | None = None
    creator: BitbucketUser | None = None
    duration_in_seconds: int | None = None
    build_seconds_used: int | None = None

    @property
    def status(self) -> str:
        return self.state.label if self.state else "UNKNOWN"
