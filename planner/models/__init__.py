from planner.models.models import (
    TASK_PRIORITIES,
    TASK_STATUSES,
    Area,
    Note,
    Project,
    Resource,
    Task,
    now_ms,
)

__all__ = [
    "TASK_PRIORITIES",
    "TASK_STATUSES",
    "Area",
    "Note",
    "Project",
    "Resource",
    "Task",
    "now_ms",
]
