from critical_path_scheduler.project_models import TaskInput
from critical_path_scheduler.resources import ResourceThresholds, analyze_resources
from critical_path_scheduler.scheduling import calculate_schedule


def _task(task_id, duration, deps=(), status="not_started", assignee_id=None, assignee_name=None):
    return TaskInput(
        id=task_id,
        name=task_id,
        duration=duration,
        dependencies=tuple(deps),
        status=status,
        assignee_id=assignee_id,
        assignee_name=assignee_name,
    )


def test_overloaded_assignee_triggers_both_recommendations():
    tasks = [
        _task("A", 2, assignee_id="dev-1", assignee_name="Ada"),
        _task("B", 3, ["A"], assignee_id="dev-1", assignee_name="Ada"),
        _task("C", 1, ["B"], assignee_id="dev-1", assignee_name="Ada"),
    ]

    analysis = analyze_resources(calculate_schedule(tasks))

    assert len(analysis.loads) == 1
    load = analysis.loads[0]
    assert (load.assignee_id, load.task_count, load.critical_task_count, load.total_nominal_duration) == (
        "dev-1",
        3,
        3,
        6,
    )
    assert analysis.recommendations == [
        "Ada has 3 critical tasks. Consider redistributing to reduce risk.",
        "Ada is assigned 6 days of work across 3 tasks. This exceeds 70% of the project timeline.",
    ]


def test_unassigned_tasks_are_skipped_and_missing_names_fall_back():
    tasks = [
        _task("A", 4),
        _task("B", 1, assignee_id="dev-2"),
        _task("C", 1, assignee_id="dev-3", assignee_name="Lin"),
    ]

    analysis = analyze_resources(calculate_schedule(tasks))

    assert [load.assignee_id for load in analysis.loads] == ["dev-2", "dev-3"]
    assert analysis.loads[0].name == "Unknown"
    assert analysis.recommendations == []


def test_load_counts_nominal_duration_of_completed_work():
    tasks = [
        _task("A", 5, status="completed", assignee_id="dev-1", assignee_name="Ada"),
        _task("B", 10, ["A"]),
    ]

    result = calculate_schedule(tasks)
    analysis = analyze_resources(result)

    assert result.project_duration == 10
    assert analysis.loads[0].total_nominal_duration == 5
    assert analysis.recommendations == []


def test_timeline_share_uses_strict_comparison():
    tasks = [
        _task("A", 8, assignee_id="dev-1", assignee_name="Ada"),
        _task("B", 10),
    ]

    result = calculate_schedule(tasks)

    assert analyze_resources(result).recommendations == [
        "Ada is assigned 8 days of work across 1 tasks. This exceeds 70% of the project timeline."
    ]
    assert analyze_resources(result, ResourceThresholds(timeline_share=0.8)).recommendations == []


def test_custom_thresholds_change_message():
    tasks = [
        _task("A", 2, assignee_id="dev-1", assignee_name="Ada"),
        _task("B", 2, ["A"], assignee_id="dev-1", assignee_name="Ada"),
        _task("C", 2),
    ]

    analysis = analyze_resources(
        calculate_schedule(tasks), ResourceThresholds(critical_tasks=2, timeline_share=0.5)
    )

    assert analysis.recommendations == [
        "Ada has 2 critical tasks. Consider redistributing to reduce risk.",
        "Ada is assigned 4 days of work across 2 tasks. This exceeds 50% of the project timeline.",
    ]


def test_empty_schedule_has_no_loads():
    analysis = analyze_resources(calculate_schedule([]))

    assert analysis.loads == []
    assert analysis.recommendations == []
