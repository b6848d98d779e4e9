from __future__ import annotations

import logging
from typing import Iterable

from .graph import TaskGraph, topological_order
from .project_models import TASK_STATUSES, ScheduleNode, ScheduleResult, TaskInput

logger = logging.getLogger(__name__)


class ProjectValidationError(Exception):
    """Raised when a task snapshot is invalid (bad fields, duplicate ids, self references)."""


def calculate_schedule(tasks: Iterable[TaskInput]) -> ScheduleResult:
    """
    Run the full CPM pipeline over a task snapshot and return the result.

    - Builds the dependency graph and a deterministic topological order.
    - Runs the forward and backward passes over the tasks that could be placed.
    - Tasks caught in a cycle or waiting on an unknown id are reported in
      `excluded`/`diagnostics` instead of raising.
    """

    task_list = list(tasks)
    graph = topological_order(task_list)
    return schedule(task_list, graph)


def effective_duration(task: TaskInput) -> int:
    """
    Remaining scheduling weight of a task.

    Completed tasks weigh nothing regardless of a stale progress value; otherwise
    the remaining share of the duration is rounded up to whole days.
    """

    if task.status == "completed":
        return 0
    remaining = task.duration * (100 - task.progress)
    return -(-remaining // 100)


def schedule(tasks: Iterable[TaskInput], graph: TaskGraph) -> ScheduleResult:
    task_list = list(tasks)
    lookup = {task.id: task for task in task_list}
    input_index = {task.id: idx for idx, task in enumerate(task_list)}
    scheduled = set(graph.order)

    durations = {task_id: effective_duration(lookup[task_id]) for task_id in graph.order}
    earliest_start: dict[str, int] = {}
    earliest_finish: dict[str, int] = {}

    for task_id in graph.order:
        preds = [pred for pred in graph.predecessors[task_id] if pred in scheduled]
        start = max((earliest_finish[pred] for pred in preds), default=0)
        earliest_start[task_id] = start
        earliest_finish[task_id] = start + durations[task_id]

    project_duration = max(earliest_finish.values(), default=0)

    latest_start: dict[str, int] = {}
    latest_finish: dict[str, int] = {}
    for task_id in reversed(graph.order):
        succs = [succ for succ in graph.successors[task_id] if succ in scheduled]
        finish = min((latest_start[succ] for succ in succs), default=project_duration)
        latest_finish[task_id] = finish
        latest_start[task_id] = finish - durations[task_id]

    nodes: list[ScheduleNode] = []
    for task_id in graph.order:
        slack = latest_start[task_id] - earliest_start[task_id]
        nodes.append(
            ScheduleNode(
                task=lookup[task_id],
                effective_duration=durations[task_id],
                earliest_start=earliest_start[task_id],
                earliest_finish=earliest_finish[task_id],
                latest_start=latest_start[task_id],
                latest_finish=latest_finish[task_id],
                float=slack,
                is_critical=slack == 0,
            )
        )

    critical = sorted(
        (node for node in nodes if node.is_critical),
        key=lambda node: (node.earliest_start, input_index[node.id]),
    )

    logger.debug(
        "Scheduled %d task(s): duration=%d, critical=%d",
        len(nodes),
        project_duration,
        len(critical),
    )

    return ScheduleResult(
        nodes=tuple(nodes),
        critical_path=tuple(node.id for node in critical),
        project_duration=project_duration,
        excluded=graph.excluded,
        diagnostics=graph.diagnostics,
    )


def validate_tasks(tasks: Iterable[TaskInput]) -> list[TaskInput]:
    """
    Check a task snapshot against the engine's input contract and return it as a list.

    Unknown dependency ids are allowed through; the engine reports them as
    diagnostics rather than failing the whole snapshot.
    """

    task_list = list(tasks)
    seen: set[str] = set()
    for task in task_list:
        if task.id in seen:
            raise ProjectValidationError(f"Duplicate task id '{task.id}'")
        seen.add(task.id)

        if isinstance(task.duration, bool) or not isinstance(task.duration, int) or task.duration < 0:
            raise ProjectValidationError(f"Task '{task.id}' has invalid duration={task.duration!r}")
        if isinstance(task.progress, bool) or not isinstance(task.progress, int) or not 0 <= task.progress <= 100:
            raise ProjectValidationError(f"Task '{task.id}' has progress={task.progress!r} outside 0-100")
        if task.status not in TASK_STATUSES:
            raise ProjectValidationError(f"Task '{task.id}' has unknown status '{task.status}'")
        if task.id in task.dependencies:
            raise ProjectValidationError(f"Task '{task.id}' depends on itself")
        if len(set(task.dependencies)) != len(task.dependencies):
            raise ProjectValidationError(f"Task '{task.id}' lists a dependency more than once")
    return task_list
