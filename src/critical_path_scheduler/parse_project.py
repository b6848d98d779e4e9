from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass
from typing import Any

import yaml

from .project_models import TASK_STATUSES, ProjectSnapshot, TaskInput
from .scheduling import ProjectValidationError


@dataclass(frozen=True)
class _Path:
    """Helper to produce readable YAML path strings like tasks[0].assignee."""

    parts: tuple[str, ...] = ()

    def child(self, segment: str) -> "_Path":
        return _Path(self.parts + (segment,))

    def __str__(self) -> str:  # pragma: no cover - trivial
        return ".".join(self.parts) if self.parts else "root"


def load_project(path: str) -> ProjectSnapshot:
    """Load a ProjectSnapshot from a YAML file at the given path (no scheduling)."""

    with open(path, "r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)

    return parse_project(raw)


def parse_project(data: Any) -> ProjectSnapshot:
    """Validate an already-decoded mapping and turn it into a ProjectSnapshot."""

    path = _Path()
    if not isinstance(data, dict):
        raise ProjectValidationError(f"{path}: expected mapping at top level")
    _assert_allowed_keys(data, {"project", "tasks"}, path)

    project_raw = data.get("project")
    project_path = path.child("project")
    if not isinstance(project_raw, dict):
        raise ProjectValidationError(f"{path}: missing required mapping 'project'")
    _assert_allowed_keys(project_raw, {"name", "start_date", "target_date", "open_blockers"}, project_path)
    name = _require_str(project_raw, "name", project_path)
    start_date = _parse_date(_require_value(project_raw, "start_date", project_path), project_path.child("start_date"))
    target_date = None
    if project_raw.get("target_date") is not None:
        target_date = _parse_date(project_raw["target_date"], project_path.child("target_date"))
    open_blockers = _optional_int(project_raw, "open_blockers", project_path, default=0, minimum=0)

    tasks_raw = data.get("tasks")
    if tasks_raw is None:
        raise ProjectValidationError(f"{path}: missing required field 'tasks'")
    if not isinstance(tasks_raw, list):
        raise ProjectValidationError(f"{path.child('tasks')}: expected list")

    ids: set[str] = set()
    tasks: list[TaskInput] = []
    for idx, task_raw in enumerate(tasks_raw):
        tasks.append(_parse_task(task_raw, path.child(f"tasks[{idx}]"), ids))

    return ProjectSnapshot(
        name=name,
        start_date=start_date,
        target_date=target_date,
        tasks=tasks,
        open_blockers=open_blockers,
    )


def _parse_task(data: Any, path: _Path, ids: set[str]) -> TaskInput:
    if not isinstance(data, dict):
        raise ProjectValidationError(f"{path}: expected mapping for task")

    _assert_allowed_keys(
        data,
        {"id", "name", "duration", "depends_on", "status", "progress", "assignee"},
        path,
    )
    task_id = _require_str(data, "id", path)
    if task_id in ids:
        raise ProjectValidationError(f"{path.child('id')}: duplicate task id '{task_id}'")
    ids.add(task_id)
    name = _require_str(data, "name", path)

    duration = _require_value(data, "duration", path)
    if isinstance(duration, bool) or not isinstance(duration, int):
        raise ProjectValidationError(f"{path.child('duration')}: expected integer")
    if duration < 0:
        raise ProjectValidationError(f"{path.child('duration')}: expected non-negative days, got {duration}")

    status = data.get("status", "not_started")
    if status not in TASK_STATUSES:
        raise ProjectValidationError(f"{path.child('status')}: expected one of {list(TASK_STATUSES)}, got {status!r}")

    progress = _optional_int(data, "progress", path, default=0, minimum=0)
    if progress > 100:
        raise ProjectValidationError(f"{path.child('progress')}: expected percent 0-100, got {progress}")

    depends_on_raw = data.get("depends_on", [])
    if depends_on_raw is None:
        depends_on_raw = []
    if not isinstance(depends_on_raw, list):
        raise ProjectValidationError(f"{path.child('depends_on')}: expected list of task ids")
    depends_on: list[str] = []
    for idx, dep in enumerate(depends_on_raw):
        dep_path = path.child(f"depends_on[{idx}]")
        if not isinstance(dep, str):
            raise ProjectValidationError(f"{dep_path}: expected string task id")
        if dep == task_id:
            raise ProjectValidationError(f"{dep_path}: task '{task_id}' cannot depend on itself")
        if dep in depends_on:
            raise ProjectValidationError(f"{dep_path}: duplicate dependency '{dep}'")
        depends_on.append(dep)

    assignee_id, assignee_name = _parse_assignee(data.get("assignee"), path.child("assignee"))

    return TaskInput(
        id=task_id,
        name=name,
        duration=duration,
        dependencies=tuple(depends_on),
        status=status,
        progress=progress,
        assignee_id=assignee_id,
        assignee_name=assignee_name,
    )


def _parse_assignee(value: Any, path: _Path) -> tuple[str | None, str | None]:
    if value is None:
        return None, None
    if not isinstance(value, dict):
        raise ProjectValidationError(f"{path}: expected mapping with 'id' and optional 'name'")
    _assert_allowed_keys(value, {"id", "name"}, path)
    assignee_id = _require_str(value, "id", path)
    name = value.get("name")
    if name is not None and not isinstance(name, str):
        raise ProjectValidationError(f"{path.child('name')}: expected string")
    return assignee_id, name


def _assert_allowed_keys(data: dict[str, Any], allowed: set[str], path: _Path) -> None:
    extras = sorted(set(data.keys()) - allowed)
    if extras:
        raise ProjectValidationError(f"{path}: unexpected fields {extras}")


def _require_str(data: dict[str, Any], key: str, path: _Path) -> str:
    value = _require_value(data, key, path)
    if not isinstance(value, str) or not value.strip():
        raise ProjectValidationError(f"{path.child(key)}: expected non-empty string")
    return value


def _require_value(data: dict[str, Any], key: str, path: _Path) -> Any:
    if key not in data:
        raise ProjectValidationError(f"{path}: missing required field '{key}'")
    return data[key]


def _optional_int(data: dict[str, Any], key: str, path: _Path, default: int, minimum: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProjectValidationError(f"{path.child(key)}: expected integer")
    if value < minimum:
        raise ProjectValidationError(f"{path.child(key)}: expected value >= {minimum}, got {value}")
    return value


def _parse_date(value: Any, path: _Path) -> _dt.date:
    # PyYAML already decodes unquoted ISO dates.
    if isinstance(value, _dt.datetime):
        return value.date()
    if isinstance(value, _dt.date):
        return value
    if not isinstance(value, str):
        raise ProjectValidationError(f"{path}: expected YYYY-MM-DD string")
    try:
        parsed = _dt.date.fromisoformat(value)
    except ValueError as exc:  # pragma: no cover - format guard
        raise ProjectValidationError(f"{path}: expected YYYY-MM-DD string") from exc
    return parsed
