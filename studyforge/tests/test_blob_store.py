from urllib.parse import parse_qs, urlparse

import pytest

from studyforge.core.errors import UploadError
from studyforge.services.storage.blob_store import build_blob_path, sanitize_filename, verify_signed_token


def token_from(url):
    return parse_qs(urlparse(url).query)["token"][0]


async def test_put_exists_delete(blob_store):
    path = await blob_store.put("topic/user/1_notes.txt", b"hello", "text/plain")

    assert path == "topic/user/1_notes.txt"
    assert await blob_store.exists(path)

    await blob_store.delete(path)
    assert not await blob_store.exists(path)
    # Deleting again is a no-op
    await blob_store.delete(path)


async def test_signed_url_carries_blob_path(blob_store):
    path = await blob_store.put("topic/user/1_notes.txt", b"hello")

    url = await blob_store.resolve_signed_url(path)

    assert url.startswith("http://testserver/blobs/topic/user/1_notes.txt?token=")
    assert verify_signed_token(token_from(url), "test-signing-key") == path


async def test_signed_token_rejects_wrong_key_and_expiry(blob_store):
    url = blob_store.signed_read_url("topic/user/1_notes.txt")
    assert verify_signed_token(token_from(url), "another-key") is None

    expired = blob_store.signed_read_url("topic/user/1_notes.txt", ttl_seconds=-60)
    assert verify_signed_token(token_from(expired), "test-signing-key") is None


async def test_missing_blob_has_no_signed_url(blob_store):
    assert await blob_store.resolve_signed_url("topic/user/404_gone.txt") is None


async def test_path_escaping_root_is_rejected(blob_store):
    with pytest.raises(UploadError):
        await blob_store.put("../outside.txt", b"nope")


def test_sanitize_filename():
    assert sanitize_filename("Lecture 1 (final).pdf") == "Lecture_1__final_.pdf"
    assert sanitize_filename("résumé.docx") == "r_sum_.docx"


def test_build_blob_path():
    assert build_blob_path("t1", "u1", "my notes.txt", timestamp_ms=1700000000000) == "t1/u1/1700000000000_my_notes.txt"


class FailingWriter:
    """Opens the target file, then fails mid-write like a full disk."""

    def __init__(self, full_path):
        self.full_path = full_path

    async def __aenter__(self):
        with open(self.full_path, "wb") as f:
            f.write(b"half a lec")
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def write(self, data):
        raise OSError(28, "No space left on device")


async def test_failed_write_leaves_no_partial_blob(blob_store, tmp_path, monkeypatch):
    monkeypatch.setattr(
        "studyforge.services.storage.blob_store.aiofiles.open", lambda full_path, mode: FailingWriter(full_path)
    )

    with pytest.raises(UploadError):
        await blob_store.put("topic/user/1_lecture.txt", b"half a lecture")

    assert not (tmp_path / "blobs" / "topic" / "user" / "1_lecture.txt").exists()
    assert not await blob_store.exists("topic/user/1_lecture.txt")
