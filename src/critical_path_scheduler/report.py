from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Literal

from .project_models import ProjectSnapshot, ResourceAnalysis, ScheduleNode, ScheduleResult
from .resources import ResourceThresholds, analyze_resources
from .scheduling import calculate_schedule, validate_tasks

ProjectHealth = Literal["on_track", "at_risk", "behind"]

# More than this many open blockers (or blocked tasks) puts a project behind.
BEHIND_BLOCKER_LIMIT = 2


@dataclass(frozen=True)
class TaskMetrics:
    total_tasks: int
    completed_tasks: int
    blocked_tasks: int
    in_progress_tasks: int
    completion_percentage: int
    critical_path_length: int
    critical_task_count: int


@dataclass(frozen=True)
class DependencyGraph:
    """Node and edge elements ready for a DAG viewer."""

    nodes: list[dict[str, Any]] = field(default_factory=list)
    edges: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class ProjectReport:
    """Caller-side view of a scheduled project."""

    snapshot: ProjectSnapshot
    schedule: ScheduleResult
    resources: ResourceAnalysis
    estimated_end_date: date
    health: ProjectHealth
    metrics: TaskMetrics
    graph: DependencyGraph

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping with camelCase keys."""

        snapshot = self.snapshot
        return {
            "project": {
                "name": snapshot.name,
                "startDate": snapshot.start_date.isoformat(),
                "targetDate": snapshot.target_date.isoformat() if snapshot.target_date else None,
                "estimatedEndDate": self.estimated_end_date.isoformat(),
            },
            "health": self.health,
            "metrics": {
                "totalTasks": self.metrics.total_tasks,
                "completedTasks": self.metrics.completed_tasks,
                "blockedTasks": self.metrics.blocked_tasks,
                "inProgressTasks": self.metrics.in_progress_tasks,
                "completionPercentage": self.metrics.completion_percentage,
                "criticalPathLength": self.metrics.critical_path_length,
                "criticalTaskCount": self.metrics.critical_task_count,
            },
            "nodes": [_node_dict(node) for node in self.schedule.nodes],
            "criticalPath": list(self.schedule.critical_path),
            "projectDuration": self.schedule.project_duration,
            "excluded": list(self.schedule.excluded),
            "diagnostics": [
                {"kind": diag.kind, "message": diag.message, "taskIds": list(diag.task_ids)}
                for diag in self.schedule.diagnostics
            ],
            "resourceAnalysis": {
                "developerLoad": [
                    {
                        "developerId": load.assignee_id,
                        "name": load.name,
                        "tasks": load.task_count,
                        "criticalTasks": load.critical_task_count,
                        "totalDuration": load.total_nominal_duration,
                    }
                    for load in self.resources.loads
                ],
                "recommendations": list(self.resources.recommendations),
            },
            "graph": {"nodes": self.graph.nodes, "edges": self.graph.edges},
        }


def build_project_report(
    snapshot: ProjectSnapshot, thresholds: ResourceThresholds = ResourceThresholds()
) -> ProjectReport:
    """
    Schedule a snapshot and derive everything the presentation layer shows for it.

    Raises ProjectValidationError when the snapshot breaks the task input contract.
    """

    result = calculate_schedule(validate_tasks(snapshot.tasks))
    return ProjectReport(
        snapshot=snapshot,
        schedule=result,
        resources=analyze_resources(result, thresholds),
        estimated_end_date=estimated_end_date(snapshot.start_date, result.project_duration),
        health=project_health(snapshot, result),
        metrics=task_metrics(snapshot, result),
        graph=dependency_graph(result),
    )


def estimated_end_date(start_date: date, project_duration: int) -> date:
    return start_date + timedelta(days=project_duration)


def project_health(snapshot: ProjectSnapshot, result: ScheduleResult) -> ProjectHealth:
    """
    Classify a project from blocker pressure and the projected end date.

    A projected end past the target date always means "behind".
    """

    blocked = sum(1 for task in snapshot.tasks if task.status == "blocked")
    health: ProjectHealth = "on_track"
    if snapshot.open_blockers > BEHIND_BLOCKER_LIMIT or blocked > BEHIND_BLOCKER_LIMIT:
        health = "behind"
    elif snapshot.open_blockers > 0 or blocked > 0:
        health = "at_risk"

    if snapshot.target_date is not None:
        if estimated_end_date(snapshot.start_date, result.project_duration) > snapshot.target_date:
            health = "behind"
    return health


def task_metrics(snapshot: ProjectSnapshot, result: ScheduleResult) -> TaskMetrics:
    tasks = snapshot.tasks
    total = len(tasks)
    completed = sum(1 for task in tasks if task.status == "completed")
    return TaskMetrics(
        total_tasks=total,
        completed_tasks=completed,
        blocked_tasks=sum(1 for task in tasks if task.status == "blocked"),
        in_progress_tasks=sum(1 for task in tasks if task.status == "in_progress"),
        # Rounds half up.
        completion_percentage=(completed * 200 + total) // (2 * total) if total else 0,
        critical_path_length=result.project_duration,
        critical_task_count=len(result.critical_path),
    )


def dependency_graph(result: ScheduleResult) -> DependencyGraph:
    """
    Build DAG viewer elements from scheduled nodes.

    An edge is critical when both of its endpoints are on the critical path.
    """

    critical = set(result.critical_path)
    nodes = []
    edges = []
    for node in result.nodes:
        nodes.append(
            {
                "id": node.id,
                "label": node.name,
                "status": node.status,
                "progress": node.progress,
                "duration": node.duration,
                "es": node.earliest_start,
                "ef": node.earliest_finish,
                "ls": node.latest_start,
                "lf": node.latest_finish,
                "float": node.float,
                "isCritical": node.is_critical,
                "assignee": node.assignee_name or "Unassigned",
            }
        )
        for dep_id in node.dependencies:
            edges.append(
                {
                    "id": f"{dep_id}->{node.id}",
                    "source": dep_id,
                    "target": node.id,
                    "isCritical": dep_id in critical and node.id in critical,
                }
            )
    return DependencyGraph(nodes=nodes, edges=edges)


def _node_dict(node: ScheduleNode) -> dict[str, Any]:
    return {
        "id": node.id,
        "name": node.name,
        "duration": node.duration,
        "effectiveDuration": node.effective_duration,
        "dependencies": list(node.dependencies),
        "status": node.status,
        "progress": node.progress,
        "assigneeId": node.assignee_id,
        "assigneeName": node.assignee_name,
        "es": node.earliest_start,
        "ef": node.earliest_finish,
        "ls": node.latest_start,
        "lf": node.latest_finish,
        "float": node.float,
        "isCritical": node.is_critical,
    }
