import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

import httpx

from planner.core.errors import UploadFailure
from planner.services.storage import DEFAULT_CONTENT_TYPE

logger = logging.getLogger(__name__)


@dataclass
class UploadItem:
    name: str
    content: bytes
    content_type: str | None = None

    @classmethod
    def from_path(cls, path: str | Path, content_type: str | None = None) -> "UploadItem":
        path = Path(path)
        return cls(name=path.name, content=path.read_bytes(), content_type=content_type)


def _upload_one(client: httpx.Client, note_id: int, item: UploadItem) -> str:
    content_type = item.content_type or DEFAULT_CONTENT_TYPE
    try:
        issued = client.post("/storage/upload-url")
        issued.raise_for_status()
        pushed = client.post(issued.json()["url"], content=item.content, headers={"Content-Type": content_type})
        pushed.raise_for_status()
        storage_id = pushed.json()["storage_id"]
        registered = client.post(
            f"/notes/{note_id}/attachments",
            data={"storage_id": storage_id, "name": item.name, "type": content_type, "size": str(len(item.content))},
        )
        registered.raise_for_status()
    except (httpx.HTTPError, KeyError, ValueError) as exc:
        raise UploadFailure(item.name, str(exc)) from exc
    return storage_id


def upload_note_files(
    client: httpx.Client,
    note_id: int,
    files: Sequence[UploadItem],
    on_status: Callable[[str], None] | None = None,
) -> list[str]:
    """
    Push files to a note through the upload-URL handshake, one after another.

    Each file: request an upload URL, POST the bytes to it, register the
    returned storage id on the note. A failed file is logged and skipped.
    Returns the storage ids that were attached.
    """
    attached: list[str] = []
    total = len(files)
    for i, item in enumerate(files, start=1):
        if on_status:
            on_status(f"Uploading {i}/{total}…")
        try:
            attached.append(_upload_one(client, note_id, item))
        except UploadFailure as exc:
            logger.error("%s", exc)
    if on_status:
        on_status("")
    return attached
