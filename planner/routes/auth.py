from fastapi import APIRouter, Depends, Form
from fastapi.responses import JSONResponse

from planner.core.session import clear_session, set_session
from planner.routes.forms import required_text
from planner.services.authz import OwnerContext, require_owner

router = APIRouter(tags=["auth"])


@router.post("/session")
def open_session(user_id: str = Form(...)):
    # user_id is the subject issued by the external identity provider.
    user_id = required_text(user_id, "user_id")
    response = JSONResponse({"user_id": user_id})
    set_session(response, user_id)
    return response


@router.get("/session")
def current_session(ctx: OwnerContext = Depends(require_owner)):
    return {"user_id": ctx.user_id}


@router.post("/logout")
def logout():
    response = JSONResponse({"ok": True})
    clear_session(response)
    return response
