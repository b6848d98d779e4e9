import datetime as dt
import json

import pytest

from critical_path_scheduler.__main__ import main
from critical_path_scheduler.project_models import ProjectSnapshot, TaskInput
from critical_path_scheduler.render_gantt import render_gantt
from critical_path_scheduler.render_rows import to_render_rows
from critical_path_scheduler.report import (
    build_project_report,
    dependency_graph,
    estimated_end_date,
    project_health,
)
from critical_path_scheduler.scheduling import ProjectValidationError, calculate_schedule

START = dt.date(2026, 3, 2)

PROJECT_YAML = """
project:
  name: Checkout revamp
  start_date: 2026-03-02
tasks:
  - {id: A, name: Design, duration: 2, assignee: {id: dev-1, name: Ada}}
  - {id: B, name: Build, duration: 3, depends_on: [A], assignee: {id: dev-1, name: Ada}}
  - {id: C, name: Review, duration: 1, depends_on: [A]}
  - {id: X, name: Loop one, duration: 1, depends_on: [Y]}
  - {id: Y, name: Loop two, duration: 1, depends_on: [X]}
"""


def _tasks(*statuses):
    base = [
        TaskInput(id="A", name="Design", duration=2),
        TaskInput(id="B", name="Build", duration=3, dependencies=("A",)),
        TaskInput(id="C", name="Review", duration=1, dependencies=("A",)),
    ]
    return [
        TaskInput(id=task.id, name=task.name, duration=task.duration, dependencies=task.dependencies, status=status)
        for task, status in zip(base, statuses)
    ]


def _snapshot(statuses=("not_started",) * 3, target_date=None, open_blockers=0):
    return ProjectSnapshot(
        name="Checkout",
        start_date=START,
        tasks=_tasks(*statuses),
        target_date=target_date,
        open_blockers=open_blockers,
    )


def test_estimated_end_date_adds_calendar_days():
    assert estimated_end_date(START, 5) == dt.date(2026, 3, 7)
    assert estimated_end_date(START, 0) == START


@pytest.mark.parametrize(
    ("statuses", "open_blockers", "expected"),
    [
        (("not_started",) * 3, 0, "on_track"),
        (("not_started",) * 3, 1, "at_risk"),
        (("blocked", "not_started", "not_started"), 0, "at_risk"),
        (("not_started",) * 3, 3, "behind"),
        (("blocked",) * 3, 0, "behind"),
    ],
)
def test_project_health_from_blockers(statuses, open_blockers, expected):
    snapshot = _snapshot(statuses, open_blockers=open_blockers)

    assert project_health(snapshot, calculate_schedule(snapshot.tasks)) == expected


def test_project_health_behind_when_past_target_date():
    late = _snapshot(target_date=dt.date(2026, 3, 6))
    on_time = _snapshot(target_date=dt.date(2026, 3, 7))

    assert project_health(late, calculate_schedule(late.tasks)) == "behind"
    assert project_health(on_time, calculate_schedule(on_time.tasks)) == "on_track"


def test_build_project_report_collects_metrics():
    report = build_project_report(_snapshot(("completed", "in_progress", "blocked")))

    assert report.estimated_end_date == START + dt.timedelta(days=report.schedule.project_duration)
    assert report.health == "at_risk"
    metrics = report.metrics
    assert (metrics.total_tasks, metrics.completed_tasks, metrics.blocked_tasks, metrics.in_progress_tasks) == (
        3,
        1,
        1,
        1,
    )
    assert metrics.completion_percentage == 33
    assert metrics.critical_path_length == report.schedule.project_duration
    assert metrics.critical_task_count == len(report.schedule.critical_path)


def test_empty_project_report():
    report = build_project_report(ProjectSnapshot(name="Empty", start_date=START))

    assert report.metrics.completion_percentage == 0
    assert report.estimated_end_date == START
    assert report.health == "on_track"


def test_dependency_graph_marks_edges_between_critical_nodes():
    graph = dependency_graph(calculate_schedule(_tasks(*("not_started",) * 3)))

    edges = {edge["id"]: edge["isCritical"] for edge in graph.edges}
    assert edges == {"A->B": True, "A->C": False}
    assert [node["assignee"] for node in graph.nodes] == ["Unassigned"] * 3


def test_report_as_dict_is_json_ready():
    payload = build_project_report(_snapshot()).as_dict()

    decoded = json.loads(json.dumps(payload))
    assert decoded["projectDuration"] == 5
    assert decoded["criticalPath"] == ["A", "B"]
    assert decoded["project"]["estimatedEndDate"] == "2026-03-07"
    assert {"es", "ef", "ls", "lf", "float", "isCritical"} <= set(decoded["nodes"][0])


def test_render_rows_anchor_offsets_to_start_date():
    rows = to_render_rows(calculate_schedule(_tasks(*("not_started",) * 3)), START)

    review = rows[2]
    assert review.node_id == "C"
    assert review.earliest_start == dt.date(2026, 3, 4)
    assert review.earliest_finish == dt.date(2026, 3, 5)
    assert review.latest_finish == dt.date(2026, 3, 7)
    assert review.depends_on == ["A"]
    assert not review.is_critical


def test_renderer_produces_svg(tmp_path):
    tasks = _tasks("completed", "not_started", "not_started")
    rows = to_render_rows(calculate_schedule(tasks), START)

    out_file = tmp_path / "chart.svg"
    render_gantt(rows, out_path=str(out_file), title="Checkout")

    assert out_file.exists()
    assert out_file.stat().st_size > 0


def test_renderer_rejects_empty_rows(tmp_path):
    with pytest.raises(ValueError):
        render_gantt([], out_path=str(tmp_path / "chart.svg"), title="Empty")


def test_cli_prints_json_report(tmp_path, capsys):
    path = tmp_path / "project.yaml"
    path.write_text(PROJECT_YAML, encoding="utf-8")

    assert main([str(path), "--format", "json"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["criticalPath"] == ["A", "B"]
    assert payload["excluded"] == ["X", "Y"]
    assert payload["diagnostics"][0]["kind"] == "unresolved_dependency"
    assert payload["resourceAnalysis"]["recommendations"] == [
        "Ada is assigned 5 days of work across 2 tasks. This exceeds 70% of the project timeline."
    ]


def test_cli_text_report_and_chart(tmp_path, capsys):
    path = tmp_path / "project.yaml"
    path.write_text(PROJECT_YAML, encoding="utf-8")
    chart = tmp_path / "out" / "chart.svg"

    assert main([str(path), "--chart", str(chart)]) == 0

    out = capsys.readouterr().out
    assert "Critical path: A -> B" in out
    assert "Estimated end: 2026-03-07 (5 days)" in out
    assert "[unresolved_dependency]" in out
    assert chart.exists()


def test_cli_reports_missing_and_invalid_files(tmp_path, capsys):
    assert main([str(tmp_path / "missing.yaml")]) == 1

    bad = tmp_path / "bad.yaml"
    bad.write_text("project: {name: P, start_date: 2026-01-01}\ntasks:\n  - {id: A, name: A, duration: -2}\n")
    assert main([str(bad)]) == 2
    assert "duration" in capsys.readouterr().err


def test_build_project_report_validates_in_memory_snapshots():
    snapshot = ProjectSnapshot(
        name="Bad",
        start_date=START,
        tasks=[TaskInput(id="A", name="A", duration=1, progress=250)],
    )

    with pytest.raises(ProjectValidationError):
        build_project_report(snapshot)


def test_cli_reports_unreadable_project_paths(tmp_path, capsys):
    assert main([str(tmp_path)]) == 1

    not_utf8 = tmp_path / "latin1.yaml"
    not_utf8.write_bytes(b"project: {name: \xff}\n")
    assert main([str(not_utf8)]) == 1
    assert "Unexpected error while loading project" in capsys.readouterr().err
