"""Upload storage tests."""

import pytest

from syncscript.errors import ValidationFailed
from syncscript.services.storage import UploadStorage, safe_filename


def test_safe_filename():
    assert safe_filename("my draft v2.pdf", now_ms=1700000000000) == "1700000000000-my_draft_v2.pdf"
    assert safe_filename("../../etc/passwd", now_ms=1) == "1-passwd"
    assert safe_filename("C:\\Users\\me\\scan.png", now_ms=1) == "1-scan.png"


def test_save_writes_file(tmp_path):
    storage = UploadStorage(root=tmp_path / "up")
    stored = storage.save("notes.txt", b"hello", "text/plain")

    assert stored.path.parent == tmp_path / "up"
    assert stored.path.read_bytes() == b"hello"
    assert stored.served_path == f"/uploads/{stored.path.name}"
    assert stored.size == 5
    assert stored.mime_type == "text/plain"


def test_validate_rejects_type_and_size(tmp_path):
    storage = UploadStorage(root=tmp_path, max_bytes=4)
    with pytest.raises(ValidationFailed, match="Unsupported file type: text/html"):
        storage.validate("text/html", 1)
    with pytest.raises(ValidationFailed, match="File too large"):
        storage.validate("image/png", 5)
    storage.validate("image/png", 4)


def test_resolve_round_trips_saved_file(tmp_path):
    storage = UploadStorage(root=tmp_path)
    stored = storage.save("a.png", b"\x89PNG", "image/png")
    assert storage.resolve(stored.served_path) == stored.path.resolve()


def test_discard_removes_file(tmp_path):
    storage = UploadStorage(root=tmp_path)
    stored = storage.save("a.png", b"\x89PNG", "image/png")
    storage.discard(stored)
    assert not stored.path.exists()
    assert storage.resolve(stored.served_path) is None
    # already gone
    storage.discard(stored)


def test_resolve_rejects_escape_and_missing(tmp_path):
    root = tmp_path / "uploads"
    root.mkdir()
    (tmp_path / "secret.txt").write_text("x")
    storage = UploadStorage(root=root)

    assert storage.resolve("/uploads/../secret.txt") is None
    assert storage.resolve("/uploads/nothing-here.pdf") is None
