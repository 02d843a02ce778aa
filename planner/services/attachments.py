import logging
from collections.abc import Iterable
from pathlib import Path
from typing import BinaryIO

from sqlalchemy.exc import SQLAlchemyError

from planner.core.errors import NotFoundError, UploadFailure
from planner.models import Note, now_ms
from planner.services.storage import DEFAULT_CONTENT_TYPE, BlobStorage
from planner.services.store import EntityStore

logger = logging.getLogger(__name__)


def _require_note(store: EntityStore, note_id: int) -> Note:
    note = store.get("notes", note_id)
    if note is None:
        raise NotFoundError("notes", note_id, "Note not found")
    return note


def attach_file(
    store: EntityStore,
    storage: BlobStorage,
    note_id: int,
    storage_id: str,
    name: str,
    mime_type: str | None,
    size: int,
) -> Note:
    note = _require_note(store, note_id)
    if not storage.exists(storage_id):
        raise NotFoundError("blobs", storage_id, "Blob not found")
    entry = {
        "storage_id": storage_id,
        "name": name,
        "type": mime_type or DEFAULT_CONTENT_TYPE,
        "size": int(size),
        "uploaded_at": now_ms(),
    }
    store.patch("notes", note.id, attachments=[*(note.attachments or []), entry])
    store.commit()
    return note


def remove_attachment(store: EntityStore, storage: BlobStorage, note_id: int, storage_id: str) -> bool:
    """
    Release the blob, then drop its entry from the note.

    Returns False when the note has no such attachment. If the blob delete
    raises, the note is left as it was.
    """
    note = _require_note(store, note_id)
    current = list(note.attachments or [])
    remaining = [a for a in current if a.get("storage_id") != storage_id]
    if len(remaining) == len(current):
        # unlisted ids leave storage alone; only blobs this note owns are released
        return False
    try:
        storage.delete(storage_id)
    except NotFoundError:
        logger.warning("Attachment %s on note %s has no blob; dropping entry", storage_id, note.id)
    store.patch("notes", note.id, attachments=remaining)
    store.commit()
    return True


def resolve_url(storage: BlobStorage, storage_id: str) -> str | None:
    return storage.get_url(storage_id)


def _store_one(
    store: EntityStore,
    storage: BlobStorage,
    note_id: int,
    name: str,
    stream: BinaryIO,
    content_type: str | None,
) -> str:
    try:
        storage_id, size = storage.store_file(stream, content_type)
    except OSError as exc:
        raise UploadFailure(name, str(exc)) from exc
    try:
        attach_file(store, storage, note_id, storage_id, name, content_type, size)
    except (NotFoundError, SQLAlchemyError) as exc:
        store.rollback()
        storage.delete(storage_id)
        raise UploadFailure(name, str(exc)) from exc
    return storage_id


def store_uploads(
    store: EntityStore,
    storage: BlobStorage,
    note_id: int,
    uploads: Iterable[tuple[str | None, BinaryIO, str | None]],
) -> tuple[list[str], list[str]]:
    """
    Store and attach (filename, stream, content_type) uploads one at a time.

    A file that fails is logged and skipped; the rest still go through.
    Returns (attached storage ids, failed filenames).
    """
    _require_note(store, note_id)
    attached: list[str] = []
    failed: list[str] = []
    for filename, stream, content_type in uploads:
        name = Path(filename or "upload.bin").name
        try:
            attached.append(_store_one(store, storage, note_id, name, stream, content_type))
        except UploadFailure as exc:
            logger.error("%s", exc)
            failed.append(name)
    return attached, failed
