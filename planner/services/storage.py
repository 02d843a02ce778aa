from pathlib import Path
from typing import BinaryIO
import json
import logging
import re
import shutil
import uuid

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from planner.core.config import get_settings
from planner.core.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
_STORAGE_ID = re.compile(r"[0-9a-f]{32}")


class BlobStorage:
    """Local-disk blob store addressed by opaque storage ids."""

    def __init__(self, root: str | Path, secret_key: str, upload_ttl: int = 3600, download_ttl: int = 3600) -> None:
        self.root = Path(root)
        self.upload_ttl = upload_ttl
        self.download_ttl = download_ttl
        self._upload_tokens = URLSafeTimedSerializer(secret_key, salt="blob-upload")
        self._download_tokens = URLSafeTimedSerializer(secret_key, salt="blob-download")

    def _paths(self, storage_id: str) -> tuple[Path, Path]:
        if not isinstance(storage_id, str) or not _STORAGE_ID.fullmatch(storage_id):
            raise NotFoundError("blobs", storage_id, "Blob not found")
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root / storage_id, self.root / f"{storage_id}.json"

    def exists(self, storage_id: str) -> bool:
        try:
            blob, _ = self._paths(storage_id)
        except NotFoundError:
            return False
        return blob.exists()

    def _write(self, storage_id: str, stream: BinaryIO, content_type: str | None) -> int:
        blob, meta = self._paths(storage_id)
        with blob.open("xb") as buffer:
            try:
                shutil.copyfileobj(stream, buffer)
            except OSError:
                blob.unlink(missing_ok=True)
                raise
        size = blob.stat().st_size
        meta.write_text(json.dumps({"content_type": content_type or DEFAULT_CONTENT_TYPE, "size": size}), encoding="utf-8")
        logger.info("Stored blob %s (%d bytes)", storage_id, size)
        return size

    def generate_upload_url(self) -> str:
        token = self._upload_tokens.dumps(uuid.uuid4().hex)
        return f"/storage/upload?token={token}"

    def accept_upload(self, token: str, stream: BinaryIO, content_type: str | None) -> str:
        """Consume a single-use upload token and store the posted bytes under its id."""
        try:
            storage_id = self._upload_tokens.loads(token, max_age=self.upload_ttl)
        except SignatureExpired:
            raise ValidationError("Upload URL expired") from None
        except BadSignature:
            raise ValidationError("Invalid upload URL") from None
        if self.exists(storage_id):
            raise ValidationError("Upload URL already used")
        try:
            self._write(storage_id, stream, content_type)
        except FileExistsError:
            raise ValidationError("Upload URL already used") from None
        return storage_id

    def store_file(self, stream: BinaryIO, content_type: str | None) -> tuple[str, int]:
        storage_id = uuid.uuid4().hex
        size = self._write(storage_id, stream, content_type)
        return storage_id, size

    def delete(self, storage_id: str) -> None:
        blob, meta = self._paths(storage_id)
        blob.unlink(missing_ok=True)
        meta.unlink(missing_ok=True)
        logger.info("Deleted blob %s", storage_id)

    def get_url(self, storage_id: str) -> str | None:
        if not self.exists(storage_id):
            return None
        sig = self._download_tokens.dumps(storage_id)
        return f"/storage/{storage_id}?sig={sig}"

    def open(self, storage_id: str, sig: str) -> tuple[Path, str]:
        try:
            signed_id = self._download_tokens.loads(sig, max_age=self.download_ttl)
        except BadSignature:
            raise NotFoundError("blobs", storage_id, "Blob not found") from None
        if signed_id != storage_id or not self.exists(storage_id):
            raise NotFoundError("blobs", storage_id, "Blob not found")
        blob, meta = self._paths(storage_id)
        content_type = DEFAULT_CONTENT_TYPE
        if meta.exists():
            content_type = json.loads(meta.read_text(encoding="utf-8")).get("content_type", content_type)
        return blob, content_type


def get_storage() -> BlobStorage:
    settings = get_settings()
    return BlobStorage(
        settings.upload_root,
        settings.secret_key,
        upload_ttl=settings.upload_url_ttl,
        download_ttl=settings.download_url_ttl,
    )
