"""Unit tests for the document store."""

import pytest

from confrev.core.errors import ValidationError
from confrev.papers.documents import DocumentStore


@pytest.fixture
def store(tmp_path) -> DocumentStore:
    return DocumentStore(upload_dir=tmp_path, allowed_extensions=[".pdf", ".docx"], max_bytes=1024)


class TestDocumentStore:
    """Tests for DocumentStore."""

    def test_save_returns_reference(self, store, tmp_path) -> None:
        ref = store.save("My Paper.pdf", b"%PDF-1.7")
        assert ref.startswith("/uploads/")
        assert ref.endswith("-My_Paper.pdf")
        assert store.path_for(ref).read_bytes() == b"%PDF-1.7"
        assert store.path_for(ref).parent == tmp_path

    def test_extension_is_case_insensitive(self, store) -> None:
        assert store.save("PAPER.PDF", b"x").endswith("PAPER.PDF")

    def test_rejects_disallowed_extension(self, store) -> None:
        with pytest.raises(ValidationError, match="files are allowed"):
            store.save("paper.exe", b"x")

    def test_rejects_oversized(self, store) -> None:
        with pytest.raises(ValidationError):
            store.save("big.pdf", b"x" * 1025)

    def test_rejects_empty(self, store) -> None:
        with pytest.raises(ValidationError):
            store.save("empty.pdf", b"")

    def test_strips_directories(self, store, tmp_path) -> None:
        ref = store.save("../../etc/passwd.pdf", b"x")
        assert store.path_for(ref).parent == tmp_path

    def test_names_are_unique(self, store) -> None:
        assert store.save("a.pdf", b"1") != store.save("a.pdf", b"2")

    def test_stored_keeps_file_on_success(self, store) -> None:
        with store.stored("kept.pdf", b"body") as ref:
            pass
        assert store.path_for(ref).read_bytes() == b"body"

    def test_stored_removes_file_when_block_fails(self, store, tmp_path) -> None:
        with pytest.raises(ValidationError):
            with store.stored("dropped.pdf", b"body") as ref:
                assert store.path_for(ref).exists()
                raise ValidationError("rejected downstream")
        assert not store.path_for(ref).exists()
        assert list(tmp_path.iterdir()) == []
