"""Bamboo REST API payloads.

Bamboo wraps every collection in an object carrying ``size``,
``start-index`` and ``max-result`` next to the item list, which is keyed by
the singular resource name (``{"plans": {"plan": [...]}}``).
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Link:
    href: str = ""
    rel: str | None = None


@dataclass
class Stage:
    name: str = ""
    description: str | None = None


@dataclass
class StageList:
    size: int = 0
    stage: list[Stage] = field(default_factory=list)


@dataclass
class Variable:
    name: str = ""
    value: str | None = None


@dataclass
class VariableContext:
    size: int = 0
    variable: list[Variable] = field(default_factory=list)


@dataclass
class Branch:
    key: str = ""
    name: str = ""
    short_key: str | None = None
    short_name: str | None = None
    description: str | None = None
    enabled: bool = False
    link: Link | None = None


@dataclass
class BranchList:
    size: int = 0
    start_index: int = 0
    max_result: int = 0
    branch: list[Branch] = field(default_factory=list)


@dataclass
class Plan:
    key: str = ""
    name: str = ""
    short_key: str | None = None
    short_name: str | None = None
    description: str | None = None
    project_key: str | None = None
    project_name: str | None = None
    enabled: bool = False
    type: str | None = None
    build_name: str | None = None
    average_build_time_in_seconds: float | None = None
    link: Link | None = None
    is_favourite: bool = False
    is_active: bool = False
    is_building: bool = False
    stages: StageList | None = None
    branches: BranchList | None = None
    variable_context: VariableContext | None = None


@dataclass
class PlanList:
    size: int = 0
    start_index: int = 0
    max_result: int = 0
    plan: list[Plan] = field(default_factory=list)


@dataclass
class PlansResponse:
    plans: PlanList = field(default_factory=PlanList)


@dataclass
class Project:
    key: str
    name: str = ""
    description: str | None = None
    link: Link | None = None
    plans: PlanList | None = None


@dataclass
class ProjectList:
    size: int = 0
    start_index: int = 0
    max_result: int = 0
    project: list[Project] = field(default_factory=list)


@dataclass
class ProjectsResponse:
    projects: ProjectList = field(default_factory=ProjectList)


@dataclass
class BranchesResponse:
    branches: BranchList = field(default_factory=BranchList)


@dataclass
class StageResult:
    name: str = ""
    state: str | None = None
    finished: bool = False
    successful: bool = False


@dataclass
class StageResultList:
    size: int = 0
    stage: list[StageResult] = field(default_factory=list)


@dataclass
class Change:
    author: str | None = None
    user_name: str | None = None
    full_name: str | None = None
    change_set_id: str | None = None
    comment: str | None = None
    date: str | None = None


@dataclass
class ChangeList:
    size: int = 0
    change: list[Change] = field(default_factory=list)


@dataclass
class LogEntry:
    log: str | None = None
    unstyled_log: str | None = None
    date: str | None = None


@dataclass
class LogEntryList:
    size: int = 0
    log_entry: list[LogEntry] = field(default_factory=list)


@dataclass
class PlanReference:
    key: str = ""
    name: str | None = None


@dataclass
class BuildResult:
    key: str = ""
    build_number: int = 0
    build_result_key: str | None = None
    state: str = ""
    build_state: str | None = None
    life_cycle_state: str | None = None
    successful: bool = False
    finished: bool = False
    build_reason: str | None = None
    reason_summary: str | None = None
    plan: PlanReference | None = None
    plan_name: str | None = None
    project_name: str | None = None
    build_started_time: str | None = None
    build_completed_time: str | None = None
    build_duration: int | None = None
    build_duration_description: str | None = None
    build_duration_in_seconds: int | None = None
    build_relative_time: str | None = None
    link: Link | None = None
    stages: StageResultList | None = None
    changes: ChangeList | None = None
    log_entries: LogEntryList | None = None
    successful_test_count: int = 0
    failed_test_count: int = 0
    quarantined_test_count: int = 0
    skipped_test_count: int = 0

    @property
    def result_key(self) -> str:
        return self.build_result_key or self.key


@dataclass
class BuildResultList:
    size: int = 0
    start_index: int = 0
    max_result: int = 0
    result: list[BuildResult] = field(default_factory=list)


@dataclass
class BuildResultsResponse:
    results: BuildResultList = field(default_factory=BuildResultList)


@dataclass
class QueuedBuild:
    plan_key: str = ""
    build_number: int = 0
    build_result_key: str = ""
    trigger_reason: str | None = None
    link: Link | None = None
