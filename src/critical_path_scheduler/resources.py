from __future__ import annotations

import logging
from dataclasses import dataclass

from .project_models import ResourceAnalysis, ResourceLoad, ScheduleResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceThresholds:
    """Limits above which an assignee's load produces a recommendation."""

    critical_tasks: int = 3
    timeline_share: float = 0.7


def analyze_resources(
    result: ScheduleResult, thresholds: ResourceThresholds = ResourceThresholds()
) -> ResourceAnalysis:
    """
    Aggregate per-assignee load over scheduled nodes and flag risky concentrations.

    Load counts raw task durations (planned effort), not the progress-adjusted
    effective durations. Unassigned nodes are skipped. Loads keep the order in
    which assignees first appear among the nodes.
    """

    loads: dict[str, ResourceLoad] = {}
    for node in result.nodes:
        if node.assignee_id is None:
            continue
        load = loads.get(node.assignee_id)
        if load is None:
            load = ResourceLoad(assignee_id=node.assignee_id, name=node.assignee_name or "Unknown")
            loads[node.assignee_id] = load
        load.task_count += 1
        if node.is_critical:
            load.critical_task_count += 1
        load.total_nominal_duration += node.duration

    recommendations: list[str] = []
    share_limit = result.project_duration * thresholds.timeline_share
    for load in loads.values():
        if load.critical_task_count >= thresholds.critical_tasks:
            recommendations.append(
                f"{load.name} has {load.critical_task_count} critical tasks. "
                "Consider redistributing to reduce risk."
            )
        if load.total_nominal_duration > share_limit:
            recommendations.append(
                f"{load.name} is assigned {load.total_nominal_duration} days of work across "
                f"{load.task_count} tasks. This exceeds {thresholds.timeline_share:.0%} of the project timeline."
            )

    if recommendations:
        logger.info("Resource analysis produced %d recommendation(s)", len(recommendations))

    return ResourceAnalysis(loads=list(loads.values()), recommendations=recommendations)
