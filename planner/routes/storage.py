from tempfile import SpooledTemporaryFile

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import FileResponse

from planner.services.attachments import resolve_url
from planner.services.authz import OwnerContext, require_owner
from planner.services.storage import BlobStorage, get_storage

router = APIRouter(prefix="/storage", tags=["storage"])

# Request bodies larger than this spill from memory to a temporary file.
SPOOL_MAX_BYTES = 1024 * 1024


@router.post("/upload-url")
def issue_upload_url(ctx: OwnerContext = Depends(require_owner), storage: BlobStorage = Depends(get_storage)):
    return {"url": storage.generate_upload_url()}


@router.post("/upload")
async def upload_blob(request: Request, token: str = Query(...), storage: BlobStorage = Depends(get_storage)):
    # The signed token is the credential here; no session required.
    with SpooledTemporaryFile(max_size=SPOOL_MAX_BYTES) as body:
        async for chunk in request.stream():
            body.write(chunk)
        body.seek(0)
        storage_id = storage.accept_upload(token, body, request.headers.get("content-type"))
    return {"storage_id": storage_id}


@router.get("/{storage_id}/url")
def blob_url(storage_id: str, ctx: OwnerContext = Depends(require_owner), storage: BlobStorage = Depends(get_storage)):
    return {"url": resolve_url(storage, storage_id)}


@router.get("/{storage_id}")
def download_blob(storage_id: str, sig: str = Query(...), storage: BlobStorage = Depends(get_storage)):
    path, content_type = storage.open(storage_id, sig)
    return FileResponse(path=path, media_type=content_type)
