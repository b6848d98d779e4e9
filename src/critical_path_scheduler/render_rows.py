from __future__ import annotations

from datetime import date, timedelta
from typing import List

from .project_models import ScheduleResult, ScheduleRow


def to_render_rows(result: ScheduleResult, start_date: date) -> list[ScheduleRow]:
    """
    Convert a ScheduleResult into a flat list of chart rows anchored at start_date.

    Rows follow the topological order of the schedule. Dependencies on tasks
    that were excluded from the schedule are dropped so every arrow has both ends.
    """

    scheduled = {node.id for node in result.nodes}
    rows: List[ScheduleRow] = []

    for order, node in enumerate(result.nodes):
        rows.append(
            ScheduleRow(
                order=order,
                node_id=node.id,
                name=node.name,
                earliest_start=start_date + timedelta(days=node.earliest_start),
                earliest_finish=start_date + timedelta(days=node.earliest_finish),
                latest_finish=start_date + timedelta(days=node.latest_finish),
                is_critical=node.is_critical,
                status=node.status,
                assignee=node.assignee_name,
                depends_on=[dep_id for dep_id in node.dependencies if dep_id in scheduled],
            )
        )

    return rows
