from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Form, Query
from pydantic import BaseModel

from planner.core.errors import ValidationError
from planner.models import TASK_PRIORITIES, TASK_STATUSES
from planner.routes.forms import choice, optional_text, parse_date, parse_tags, required_text
from planner.services.authz import OwnerContext, require_owner
from planner.services.integrity import delete_task
from planner.services.store import EntityStore, as_dict, get_store
from planner.services.task_filters import (
    TaskFilters,
    classify_due,
    cycle_status,
    filter_tasks,
    group_tasks,
    partition_archived,
    tag_facets,
)

router = APIRouter(tags=["tasks"])


class TaskPatch(BaseModel):
    title: str | None = None
    notes: str | None = None
    status: Literal["todo", "inprog", "done"] | None = None
    priority: Literal["high", "med", "low"] | None = None
    due_date: date | None = None
    tags: list[str] | None = None
    archived: bool | None = None


def task_filters(
    priority: str = Query(default="all"),
    status: str = Query(default="all"),
    due: str = Query(default="all"),
    project_id: str = Query(default="all"),
    tag: str = Query(default="all"),
) -> TaskFilters:
    return TaskFilters(priority=priority, status=status, due=due, project_id=project_id, tag=tag)


def _task_row(task: dict, today: date, project_names: dict[int, str]) -> dict:
    due = classify_due(task["due_date"], today)
    return {
        **task,
        "due": {"kind": due.kind, "label": due.label},
        "project_name": project_names.get(task["project_id"]),
    }


def _listing(
    tasks: list[dict],
    filters: TaskFilters,
    show_archived: bool,
    group_by: str | None,
    project_names: dict[int, str],
) -> dict:
    today = date.today()
    active, archived = partition_archived(tasks)
    visible = filter_tasks(tasks, filters, show_archived=show_archived, today=today)
    payload = {
        "tasks": [_task_row(t, today, project_names) for t in visible],
        "tags": tag_facets(tasks),
        "counts": {"active": len(active), "archived": len(archived), "shown": len(visible)},
    }
    if group_by:
        try:
            groups = group_tasks(visible, group_by, today)
        except ValueError as exc:
            raise ValidationError(str(exc)) from None
        payload["groups"] = [{"key": key, "task_ids": [t["id"] for t in items]} for key, items in groups]
    return payload


@router.get("/tasks")
def list_user_tasks(
    archived: bool = Query(default=False),
    group_by: str | None = Query(default=None),
    filters: TaskFilters = Depends(task_filters),
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
):
    tasks = [as_dict(t) for t in store.query("tasks", "by_user", ctx.user_id, order="desc")]
    names = {p.id: p.name for p in store.query("projects", "by_user", ctx.user_id)}
    return _listing(tasks, filters, archived, group_by, names)


@router.get("/areas/{area_id}/tasks")
def list_area_tasks(
    area_id: int,
    archived: bool = Query(default=False),
    group_by: str | None = Query(default=None),
    filters: TaskFilters = Depends(task_filters),
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
):
    area = store.require("areas", area_id)
    tasks = [as_dict(t) for t in store.query("tasks", "by_area", area.id, order="asc")]
    project = store.get("projects", area.project_id)
    names = {project.id: project.name} if project else {}
    return _listing(tasks, filters, archived, group_by, names)


@router.post("/tasks", status_code=201)
def create_task(
    area_id: int = Form(...),
    title: str = Form(""),
    notes: str = Form(""),
    status: str = Form("todo"),
    priority: str = Form(""),
    due_date: str = Form(""),
    tags: str = Form(""),
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
):
    fields = {
        "title": required_text(title, "Title"),
        "notes": optional_text(notes),
        "status": choice(status, TASK_STATUSES, "status") or "todo",
        "priority": choice(priority, TASK_PRIORITIES, "priority"),
        "due_date": parse_date(due_date),
        "tags": parse_tags(tags),
    }
    area = store.require("areas", area_id)
    task = store.insert("tasks", user_id=ctx.user_id, project_id=area.project_id, area_id=area.id, archived=False, **fields)
    store.commit()
    return as_dict(task)


@router.patch("/tasks/{task_id}")
def patch_task(
    task_id: int,
    patch: TaskPatch,
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
):
    fields = patch.model_dump(exclude_unset=True)
    if "title" in fields:
        fields["title"] = required_text(fields["title"], "Title")
    if "notes" in fields:
        fields["notes"] = optional_text(fields["notes"])
    if "tags" in fields:
        fields["tags"] = [t.strip() for t in fields["tags"] or [] if t.strip()] or None
    for name in ("status", "archived"):
        if name in fields and fields[name] is None:
            raise ValidationError(f"{name} cannot be cleared")
    task = store.patch("tasks", task_id, **fields) if fields else store.require("tasks", task_id)
    store.commit()
    return as_dict(task)


@router.post("/tasks/{task_id}/cycle")
def cycle_task_status(task_id: int, ctx: OwnerContext = Depends(require_owner), store: EntityStore = Depends(get_store)):
    task = store.require("tasks", task_id)
    store.patch("tasks", task.id, status=cycle_status(task.status))
    store.commit()
    return as_dict(task)


@router.post("/tasks/{task_id}/archive")
def toggle_task_archive(task_id: int, ctx: OwnerContext = Depends(require_owner), store: EntityStore = Depends(get_store)):
    task = store.require("tasks", task_id)
    store.patch("tasks", task.id, archived=not task.archived)
    store.commit()
    return as_dict(task)


@router.post("/tasks/{task_id}/delete")
def remove_task(task_id: int, ctx: OwnerContext = Depends(require_owner), store: EntityStore = Depends(get_store)):
    delete_task(store, task_id)
    return {"deleted": task_id}
