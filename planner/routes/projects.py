from fastapi import APIRouter, Depends, Form

from planner.routes.forms import optional_text, required_text
from planner.services.authz import OwnerContext, require_owner
from planner.services.integrity import delete_area, delete_project
from planner.services.storage import BlobStorage, get_storage
from planner.services.store import EntityStore, as_dict, get_store

router = APIRouter(tags=["projects"])


@router.get("/projects")
def list_projects(ctx: OwnerContext = Depends(require_owner), store: EntityStore = Depends(get_store)):
    return [as_dict(p) for p in store.query("projects", "by_user", ctx.user_id, order="desc")]


@router.post("/projects", status_code=201)
def create_project(
    name: str = Form(""),
    description: str = Form(""),
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
):
    project = store.insert(
        "projects",
        user_id=ctx.user_id,
        name=required_text(name, "Name"),
        description=optional_text(description),
    )
    store.commit()
    return as_dict(project)


@router.get("/projects/{project_id}")
def get_project(project_id: int, ctx: OwnerContext = Depends(require_owner), store: EntityStore = Depends(get_store)):
    return as_dict(store.require("projects", project_id))


@router.post("/projects/{project_id}/update")
def update_project(
    project_id: int,
    name: str = Form(""),
    description: str = Form(""),
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
):
    project = store.patch("projects", project_id, name=required_text(name, "Name"), description=optional_text(description))
    store.commit()
    return as_dict(project)


@router.post("/projects/{project_id}/delete")
def remove_project(
    project_id: int,
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
    storage: BlobStorage = Depends(get_storage),
):
    return {"deleted": delete_project(store, project_id, storage).as_dict()}


@router.get("/projects/{project_id}/areas")
def list_areas(project_id: int, ctx: OwnerContext = Depends(require_owner), store: EntityStore = Depends(get_store)):
    return [as_dict(a) for a in store.query("areas", "by_project", project_id, order="asc")]


@router.post("/areas", status_code=201)
def create_area(
    project_id: int = Form(...),
    name: str = Form(""),
    description: str = Form(""),
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
):
    name = required_text(name, "Name")
    project = store.require("projects", project_id)
    area = store.insert(
        "areas",
        user_id=ctx.user_id,
        project_id=project.id,
        name=name,
        description=optional_text(description),
    )
    store.commit()
    return as_dict(area)


@router.get("/areas/{area_id}")
def get_area(area_id: int, ctx: OwnerContext = Depends(require_owner), store: EntityStore = Depends(get_store)):
    return as_dict(store.require("areas", area_id))


@router.post("/areas/{area_id}/update")
def update_area(
    area_id: int,
    name: str = Form(""),
    description: str = Form(""),
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
):
    area = store.patch("areas", area_id, name=required_text(name, "Name"), description=optional_text(description))
    store.commit()
    return as_dict(area)


@router.post("/areas/{area_id}/delete")
def remove_area(
    area_id: int,
    ctx: OwnerContext = Depends(require_owner),
    store: EntityStore = Depends(get_store),
    storage: BlobStorage = Depends(get_storage),
):
    return {"deleted": delete_area(store, area_id, storage).as_dict()}
