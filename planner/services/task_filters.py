from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, fields
from datetime import date, datetime
from typing import Any

ALL = "all"
STATUS_CYCLE = {"todo": "inprog", "inprog": "done", "done": "todo"}
DUE_KINDS = ("overdue", "today", "upcoming", "nodate")
GROUP_ORDERS = {
    "status": ("todo", "inprog", "done"),
    "priority": ("high", "med", "low", "none"),
    "due": DUE_KINDS,
}


@dataclass(frozen=True)
class DueInfo:
    kind: str
    label: str | None = None


@dataclass(frozen=True)
class TaskFilters:
    priority: str = ALL
    status: str = ALL
    due: str = ALL
    project_id: str = ALL
    tag: str = ALL

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "TaskFilters":
        if not data:
            return cls()
        values = {}
        for f in fields(cls):
            raw = data.get(f.name)
            if raw is not None and str(raw).strip():
                values[f.name] = str(raw).strip()
        return cls(**values)


def _get(task: Any, name: str) -> Any:
    if isinstance(task, Mapping):
        return task.get(name)
    return getattr(task, name, None)


def _as_date(value: Any) -> date | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def classify_due(due_date: Any, today: date | None = None) -> DueInfo:
    day = _as_date(due_date)
    if day is None:
        return DueInfo("nodate")
    diff = (day - (today or date.today())).days
    if diff < 0:
        return DueInfo("overdue", f"{abs(diff)}d overdue")
    if diff == 0:
        return DueInfo("today", "Today")
    if diff == 1:
        return DueInfo("upcoming", "Tomorrow")
    return DueInfo("upcoming", f"{day:%b} {day.day}")


def cycle_status(status: str) -> str:
    return STATUS_CYCLE.get(status, "todo")


def partition_archived(tasks: Iterable[Any]) -> tuple[list, list]:
    active, archived = [], []
    for task in tasks:
        (archived if _get(task, "archived") is True else active).append(task)
    return active, archived


def tag_facets(tasks: Iterable[Any]) -> list[str]:
    return list(dict.fromkeys(tag for task in tasks for tag in (_get(task, "tags") or [])))


def _matches(task: Any, filters: TaskFilters, today: date) -> bool:
    if filters.priority != ALL and _get(task, "priority") != filters.priority:
        return False
    if filters.status != ALL and _get(task, "status") != filters.status:
        return False
    if filters.project_id != ALL and str(_get(task, "project_id")) != filters.project_id:
        return False
    if filters.tag != ALL and filters.tag not in (_get(task, "tags") or []):
        return False
    if filters.due in DUE_KINDS and classify_due(_get(task, "due_date"), today).kind != filters.due:
        return False
    return True


def filter_tasks(
    tasks: Sequence[Any],
    filters: TaskFilters | Mapping[str, Any] | None = None,
    show_archived: bool = False,
    today: date | None = None,
) -> list:
    """
    Select the archived or active partition, then keep tasks matching every
    non-"all" filter. Input order is preserved. Unrecognized ``due`` values
    leave the due-date dimension unfiltered.
    """
    if not isinstance(filters, TaskFilters):
        filters = TaskFilters.from_mapping(filters)
    today = today or date.today()
    active, archived = partition_archived(tasks)
    base = archived if show_archived else active
    return [t for t in base if _matches(t, filters, today)]


def _group_key(task: Any, group_by: str, today: date) -> str:
    if group_by == "status":
        return _get(task, "status") or "todo"
    if group_by == "priority":
        return _get(task, "priority") or "none"
    if group_by == "due":
        return classify_due(_get(task, "due_date"), today).kind
    if group_by == "project":
        return str(_get(task, "project_id"))
    return ALL


def group_tasks(tasks: Sequence[Any], group_by: str = "status", today: date | None = None) -> list[tuple[str, list]]:
    if group_by not in {"status", "priority", "due", "project", "none"}:
        raise ValueError(f"Unknown grouping {group_by!r}")
    today = today or date.today()
    groups: dict[str, list] = {}
    for task in tasks:
        groups.setdefault(_group_key(task, group_by, today), []).append(task)
    order = GROUP_ORDERS.get(group_by)
    if order is None:
        return list(groups.items())
    return [(key, groups[key]) for key in order if key in groups]
