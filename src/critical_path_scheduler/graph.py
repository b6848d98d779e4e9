from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Iterable

from .project_models import Diagnostic, TaskInput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskGraph:
    """
    Adjacency view of a task snapshot plus the order in which it can be scheduled.

    `order` covers only the tasks Kahn's algorithm could place. Everything else
    is listed in `excluded` (input order) and explained by `diagnostics`.
    """

    order: tuple[str, ...]
    predecessors: dict[str, tuple[str, ...]]
    successors: dict[str, tuple[str, ...]]
    excluded: tuple[str, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()


def topological_order(tasks: Iterable[TaskInput]) -> TaskGraph:
    """
    Build predecessor/successor maps and a deterministic topological order.

    Seeds are taken in input order and the queue is FIFO, so identical input
    always yields the identical order. Cycles and references to unknown ids
    never raise; the affected tasks are left out of `order`.
    """

    task_list = list(tasks)
    known = {task.id for task in task_list}

    predecessors: dict[str, tuple[str, ...]] = {task.id: tuple(task.dependencies) for task in task_list}
    dependents: dict[str, list[str]] = {task.id: [] for task in task_list}
    for task in task_list:
        for dep_id in task.dependencies:
            # Edges from unknown ids have nowhere to land.
            if dep_id in dependents:
                dependents[dep_id].append(task.id)
    successors = {task_id: tuple(children) for task_id, children in dependents.items()}

    indegree = {task_id: len(preds) for task_id, preds in predecessors.items()}
    queue = deque(task.id for task in task_list if indegree[task.id] == 0)
    order: list[str] = []

    while queue:
        current = queue.popleft()
        order.append(current)
        for child in successors[current]:
            indegree[child] -= 1
            if indegree[child] == 0:
                queue.append(child)

    placed = set(order)
    excluded = tuple(task.id for task in task_list if task.id not in placed)
    diagnostics = _describe_exclusions(task_list, excluded, known)
    if excluded:
        logger.warning(
            "Excluded %d of %d task(s) from the schedule: %s",
            len(excluded),
            len(task_list),
            ", ".join(excluded),
        )

    return TaskGraph(
        order=tuple(order),
        predecessors=predecessors,
        successors=successors,
        excluded=excluded,
        diagnostics=diagnostics,
    )


def _describe_exclusions(
    task_list: list[TaskInput], excluded: tuple[str, ...], known: set[str]
) -> tuple[Diagnostic, ...]:
    if not excluded:
        return ()

    excluded_set = set(excluded)
    diagnostics: list[Diagnostic] = []
    dangling: list[str] = []
    missing: list[str] = []

    for task in task_list:
        if task.id not in excluded_set:
            continue
        unknown = [dep_id for dep_id in task.dependencies if dep_id not in known]
        if unknown:
            dangling.append(task.id)
            missing.extend(dep_id for dep_id in unknown if dep_id not in missing)

    if dangling:
        diagnostics.append(
            Diagnostic(
                kind="unknown_dependency",
                message=f"Tasks {dangling} depend on unknown task ids {missing}",
                task_ids=tuple(dangling),
            )
        )

    unresolved = [task_id for task_id in excluded if task_id not in dangling]
    if unresolved:
        diagnostics.append(
            Diagnostic(
                kind="unresolved_dependency",
                message=f"Tasks {unresolved} are part of, or wait on, a dependency cycle or an excluded task",
                task_ids=tuple(unresolved),
            )
        )

    return tuple(diagnostics)
