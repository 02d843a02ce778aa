"""
Cascading deletes over the project hierarchy.

Project -> Area -> {Task, Note, Resource}, with Notes and Resources optionally
attached straight to the Project. Each cascade runs in a single transaction;
the blobs behind removed note attachments are released only after it commits.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from planner.core.errors import NotFoundError
from planner.services.storage import BlobStorage
from planner.services.store import EntityStore

logger = logging.getLogger(__name__)


@dataclass
class CascadeResult:
    areas: int = 0
    tasks: int = 0
    notes: int = 0
    resources: int = 0
    blobs: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "areas": self.areas,
            "tasks": self.tasks,
            "notes": self.notes,
            "resources": self.resources,
            "blobs": len(self.blobs),
        }


def _attachment_refs(note) -> list[str]:
    return [a["storage_id"] for a in (note.attachments or []) if a.get("storage_id")]


def release_blobs(storage: BlobStorage | None, refs: Iterable[str]) -> None:
    if storage is None:
        return
    for ref in refs:
        try:
            storage.delete(ref)
        except (OSError, NotFoundError):
            logger.warning("Could not release blob %s", ref, exc_info=True)


def _delete_notes(store: EntityStore, notes, result: CascadeResult) -> None:
    for note in notes:
        result.blobs.extend(_attachment_refs(note))
        store.delete("notes", note.id)
        result.notes += 1


def _delete_rows(store: EntityStore, table: str, rows) -> int:
    for row in rows:
        store.delete(table, row.id)
    return len(rows)


def delete_area(store: EntityStore, area_id: int, storage: BlobStorage | None = None) -> CascadeResult:
    result = CascadeResult()
    with store.transaction():
        area = store.require("areas", area_id)
        result.tasks = _delete_rows(store, "tasks", store.query("tasks", "by_area", area.id))
        _delete_notes(store, store.query("notes", "by_area", area.id), result)
        result.resources = _delete_rows(store, "resources", store.query("resources", "by_area", area.id))
        store.delete("areas", area.id)
        result.areas = 1
    release_blobs(storage, result.blobs)
    logger.info(
        "Deleted area %s: %d tasks, %d notes, %d resources",
        area_id,
        result.tasks,
        result.notes,
        result.resources,
    )
    return result


def delete_project(store: EntityStore, project_id: int, storage: BlobStorage | None = None) -> CascadeResult:
    result = CascadeResult()
    with store.transaction():
        project = store.require("projects", project_id)
        for area in store.query("areas", "by_project", project.id):
            # Area-scoped notes and resources go with the project-wide sweep below.
            result.tasks += _delete_rows(store, "tasks", store.query("tasks", "by_area", area.id))
            store.delete("areas", area.id)
            result.areas += 1
        _delete_notes(store, store.query("notes", "by_project", project.id), result)
        result.resources = _delete_rows(store, "resources", store.query("resources", "by_project", project.id))
        store.delete("projects", project.id)
    release_blobs(storage, result.blobs)
    logger.info(
        "Deleted project %s: %d areas, %d tasks, %d notes, %d resources",
        project_id,
        result.areas,
        result.tasks,
        result.notes,
        result.resources,
    )
    return result


def delete_note(store: EntityStore, note_id: int, storage: BlobStorage | None = None) -> CascadeResult:
    result = CascadeResult()
    with store.transaction():
        _delete_notes(store, [store.require("notes", note_id)], result)
    release_blobs(storage, result.blobs)
    return result


def delete_task(store: EntityStore, task_id: int) -> None:
    with store.transaction():
        store.delete("tasks", task_id)


def delete_resource(store: EntityStore, resource_id: int) -> None:
    with store.transaction():
        store.delete("resources", resource_id)
