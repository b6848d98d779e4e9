"""Critical path scheduling with progress-aware durations and resource load analysis."""

from .project_models import ProjectSnapshot, ScheduleNode, ScheduleResult, TaskInput
from .resources import ResourceThresholds, analyze_resources
from .scheduling import ProjectValidationError, calculate_schedule

__all__ = [
    "ProjectSnapshot",
    "ProjectValidationError",
    "ResourceThresholds",
    "ScheduleNode",
    "ScheduleResult",
    "TaskInput",
    "analyze_resources",
    "calculate_schedule",
]
