from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Literal


TaskStatus = Literal["not_started", "in_progress", "completed", "blocked"]
"""Lifecycle states a task can report."""

TASK_STATUSES: tuple[str, ...] = ("not_started", "in_progress", "completed", "blocked")

DiagnosticKind = Literal["unknown_dependency", "unresolved_dependency"]
"""Why a task was left out of the schedule."""


@dataclass(frozen=True)
class TaskInput:
    """Snapshot of one task as supplied by the storage layer."""

    id: str
    name: str
    duration: int
    dependencies: tuple[str, ...] = ()
    status: TaskStatus = "not_started"
    progress: int = 0
    assignee_id: str | None = None
    assignee_name: str | None = None


@dataclass(frozen=True)
class ScheduleNode:
    """A task with its computed CPM timing."""

    task: TaskInput
    effective_duration: int
    earliest_start: int
    earliest_finish: int
    latest_start: int
    latest_finish: int
    float: int
    is_critical: bool

    @property
    def id(self) -> str:
        return self.task.id

    @property
    def name(self) -> str:
        return self.task.name

    @property
    def duration(self) -> int:
        return self.task.duration

    @property
    def dependencies(self) -> tuple[str, ...]:
        return self.task.dependencies

    @property
    def status(self) -> str:
        return self.task.status

    @property
    def progress(self) -> int:
        return self.task.progress

    @property
    def assignee_id(self) -> str | None:
        return self.task.assignee_id

    @property
    def assignee_name(self) -> str | None:
        return self.task.assignee_name


@dataclass(frozen=True)
class Diagnostic:
    """Non-fatal report about tasks the engine could not place."""

    kind: DiagnosticKind
    message: str
    task_ids: tuple[str, ...]


@dataclass(frozen=True)
class ScheduleResult:
    """
    Output of one scheduling run.

    `nodes` follow topological order. `critical_path` holds the ids of zero-float
    nodes ordered by earliest start, ties kept in input order. Tasks that could
    not be placed are listed in `excluded` and explained by `diagnostics`.
    """

    nodes: tuple[ScheduleNode, ...] = ()
    critical_path: tuple[str, ...] = ()
    project_duration: int = 0
    excluded: tuple[str, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()

    def node(self, task_id: str) -> ScheduleNode | None:
        for node in self.nodes:
            if node.id == task_id:
                return node
        return None


@dataclass
class ResourceLoad:
    """Aggregated assignment load for one assignee."""

    assignee_id: str
    name: str
    task_count: int = 0
    critical_task_count: int = 0
    total_nominal_duration: int = 0


@dataclass
class ResourceAnalysis:
    """Per-assignee loads plus advisory recommendations for one schedule."""

    loads: list[ResourceLoad] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass
class ScheduleRow:
    """
    Flattened view of a scheduled task used by the chart renderer.

    Dates are inclusive-start/exclusive-finish calendar dates derived from the
    project start date and the node's day offsets.
    """

    order: int
    node_id: str
    name: str
    earliest_start: date
    earliest_finish: date
    latest_finish: date
    is_critical: bool
    status: str
    assignee: str | None = None
    depends_on: list[str] = field(default_factory=list)


@dataclass
class ProjectSnapshot:
    """Everything the caller side knows about one project at a point in time."""

    name: str
    start_date: date
    tasks: list[TaskInput] = field(default_factory=list)
    target_date: date | None = None
    open_blockers: int = 0
