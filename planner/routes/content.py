from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from planner.routes.forms import optional_text, required_text
from planner.services.attachments import attach_file, remove_attachment, store_uploads
from planner.services.authz import OwnerContext, require_owner
from planner.services.integrity import delete_note, delete_resource
from planner.services.storage import BlobStorage, get_storage
from planner.services.store import EntityStore, as_dict, get_store

router = APIRouter(tags=["content"])


def _scoped_listing(store: EntityStore, table: str, index: str, value: int, direct_only: bool = False) -> list[dict]:
    rows = store.query(table, index, value, order="desc")
    if direct_only:
        rows = [r for r in rows if r.area_id is None]
    return [as_dict(r) for r in rows]


def _placement(store: EntityStore, project_id: int, area_id: int | None) -> tuple[int, int | None]:
    project = store.require("projects", project_id)
    if area_id is None:
        return project.id, None
    area = store.require("areas", area_id)
    # an area pins the project; a mismatched project_id is corrected rather than stored
    return area.project_id, area.id


# Notes


@router.get("/projects/{project_id}/notes")
def list_project_notes(
    project_id: int,
    direct_only: bool = Query(default=False),
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
):
    return _scoped_listing(store, "notes", "by_project", project_id, direct_only)


@router.get("/areas/{area_id}/notes")
def list_area_notes(area_id: int, ctx: OwnerContext = Depends(require_owner), store: EntityStore = Depends(get_store)):
    return _scoped_listing(store, "notes", "by_area", area_id)


@router.post("/notes", status_code=201)
def create_note(
    project_id: int = Form(...),
    area_id: int | None = Form(None),
    title: str = Form(""),
    content: str = Form(""),
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
):
    title = required_text(title, "Title")
    project_id, area_id = _placement(store, project_id, area_id)
    note = store.insert(
        "notes",
        user_id=ctx.user_id,
        project_id=project_id,
        area_id=area_id,
        title=title,
        content=optional_text(content),
        attachments=[],
    )
    store.commit()
    return as_dict(note)


@router.get("/notes/{note_id}")
def get_note(note_id: int, ctx: OwnerContext = Depends(require_owner), store: EntityStore = Depends(get_store)):
    return as_dict(store.require("notes", note_id))


@router.post("/notes/{note_id}/update")
def update_note(
    note_id: int,
    title: str = Form(""),
    content: str = Form(""),
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
):
    note = store.patch("notes", note_id, title=required_text(title, "Title"), content=optional_text(content))
    store.commit()
    return as_dict(note)


@router.post("/notes/{note_id}/delete")
def remove_note(
    note_id: int,
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
    storage: BlobStorage = Depends(get_storage),
):
    return {"deleted": delete_note(store, note_id, storage).as_dict()}


@router.post("/notes/{note_id}/attachments")
def register_attachment(
    note_id: int,
    storage_id: str = Form(...),
    name: str = Form(...),
    type: str = Form(""),
    size: int = Form(0),
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
    storage: BlobStorage = Depends(get_storage),
):
    note = attach_file(store, storage, note_id, storage_id, name, type or None, size)
    return as_dict(note)


@router.post("/notes/{note_id}/attachments/remove")
def unregister_attachment(
    note_id: int,
    storage_id: str = Form(...),
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
    storage: BlobStorage = Depends(get_storage),
):
    removed = remove_attachment(store, storage, note_id, storage_id)
    return {"removed": removed, "note": as_dict(store.require("notes", note_id))}


@router.post("/notes/{note_id}/files")
def upload_note_files(
    note_id: int,
    files: list[UploadFile] = File(...),
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
    storage: BlobStorage = Depends(get_storage),
):
    attached, failed = store_uploads(store, storage, note_id, [(f.filename, f.file, f.content_type) for f in files])
    return {"attached": attached, "failed": failed, "note": as_dict(store.require("notes", note_id))}


# Resources


@router.get("/projects/{project_id}/resources")
def list_project_resources(
    project_id: int,
    direct_only: bool = Query(default=False),
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
):
    return _scoped_listing(store, "resources", "by_project", project_id, direct_only)


@router.get("/areas/{area_id}/resources")
def list_area_resources(area_id: int, ctx: OwnerContext = Depends(require_owner), store: EntityStore = Depends(get_store)):
    return _scoped_listing(store, "resources", "by_area", area_id)


@router.post("/resources", status_code=201)
def create_resource(
    project_id: int = Form(...),
    area_id: int | None = Form(None),
    title: str = Form(""),
    url: str = Form(""),
    description: str = Form(""),
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
):
    title = required_text(title, "Title")
    project_id, area_id = _placement(store, project_id, area_id)
    resource = store.insert(
        "resources",
        user_id=ctx.user_id,
        project_id=project_id,
        area_id=area_id,
        title=title,
        url=optional_text(url),
        description=optional_text(description),
    )
    store.commit()
    return as_dict(resource)


@router.post("/resources/{resource_id}/update")
def update_resource(
    resource_id: int,
    title: str = Form(""),
    url: str = Form(""),
    description: str = Form(""),
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
):
    resource = store.patch(
        "resources",
        resource_id,
        title=required_text(title, "Title"),
        url=optional_text(url),
        description=optional_text(description),
    )
    store.commit()
    return as_dict(resource)


@router.post("/resources/{resource_id}/delete")
def remove_resource(resource_id: int, ctx: OwnerContext = Depends(require_owner), store: EntityStore = Depends(get_store)):
    delete_resource(store, resource_id)
    return {"deleted": resource_id}
