"""Local storage for uploaded paper documents."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional

from ..config.settings import settings
from ..core.errors import ValidationError
from ..core.ids import stored_document_name
from ..utils.logging import get_logger

logger = get_logger(__name__)


class DocumentStore:
    """Validate and persist uploaded documents under ``upload_dir``.

    The returned document reference (``/uploads/<stored name>``) is what
    the lifecycle engine records as a paper's ``file_url``.
    """

    def __init__(
        self,
        upload_dir: Optional[Path] = None,
        allowed_extensions: Optional[Iterable[str]] = None,
        max_bytes: Optional[int] = None,
    ) -> None:
        self.upload_dir = Path(upload_dir or settings.upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.allowed_extensions = {e.lower() for e in (allowed_extensions or settings.allowed_extensions)}
        self.max_bytes = max_bytes or settings.max_upload_bytes

    def validate(self, filename: str, size: int) -> None:
        if not filename:
            raise ValidationError("File is required")
        ext = Path(filename).suffix.lower()
        if ext not in self.allowed_extensions:
            allowed = ", ".join(sorted(self.allowed_extensions))
            raise ValidationError(f"Only {allowed} files are allowed")
        if size == 0:
            raise ValidationError("Uploaded file is empty")
        if size > self.max_bytes:
            raise ValidationError(f"File exceeds the {self.max_bytes} byte limit")

    def save(self, filename: str, content: bytes) -> str:
        """Store ``content`` and return its document reference."""
        self.validate(filename, len(content))
        stored = stored_document_name(filename)
        (self.upload_dir / stored).write_bytes(content)
        logger.info(f"Stored document {stored} ({len(content)} bytes)")
        return f"/uploads/{stored}"

    def path_for(self, document_ref: str) -> Path:
        """Resolve a document reference back to a file path."""
        name = Path(document_ref).name
        return self.upload_dir / name

    @contextmanager
    def stored(self, filename: str, content: bytes) -> Iterator[str]:
        """Store an upload for a block; the file is removed if the block raises."""
        document_ref = self.save(filename, content)
        try:
            yield document_ref
        except BaseException:
            self.path_for(document_ref).unlink(missing_ok=True)
            logger.info(f"Discarded document {Path(document_ref).name}")
            raise
