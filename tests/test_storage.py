import io
from urllib.parse import parse_qs, urlparse

import pytest

from planner.core.errors import NotFoundError, ValidationError
from planner.services.storage import BlobStorage


def _token(url):
    return parse_qs(urlparse(url).query)["token"][0]


def test_upload_url_is_single_use(storage):
    token = _token(storage.generate_upload_url())
    storage_id = storage.accept_upload(token, io.BytesIO(b"hello"), "text/plain")
    assert storage.exists(storage_id)

    with pytest.raises(ValidationError, match="already used"):
        storage.accept_upload(token, io.BytesIO(b"again"), "text/plain")


def test_upload_rejects_foreign_tokens(storage, tmp_path):
    other = BlobStorage(tmp_path / "other", "another-secret")
    token = _token(other.generate_upload_url())
    with pytest.raises(ValidationError, match="Invalid upload URL"):
        storage.accept_upload(token, io.BytesIO(b"x"), None)


def test_download_requires_matching_signature(storage):
    first, _ = storage.store_file(io.BytesIO(b"a"), "text/plain")
    second, _ = storage.store_file(io.BytesIO(b"b"), None)
    sig = parse_qs(urlparse(storage.get_url(first)).query)["sig"][0]

    path, content_type = storage.open(first, sig)
    assert path.read_bytes() == b"a"
    assert content_type == "text/plain"

    with pytest.raises(NotFoundError):
        storage.open(second, sig)
    with pytest.raises(NotFoundError):
        storage.open(first, "forged")


def test_delete_is_idempotent(storage):
    storage_id, _ = storage.store_file(io.BytesIO(b"a"), None)
    storage.delete(storage_id)
    storage.delete(storage_id)
    assert not storage.exists(storage_id)
    assert storage.get_url(storage_id) is None


def test_rejects_ids_that_are_not_storage_tokens(storage):
    with pytest.raises(NotFoundError):
        storage.delete("../../secrets")
