# =============================================================================
# Upload Records — Stored CV and Project Files
# =============================================================================
#
# POST /upload validates and writes both files to `upload_dir`, then records
# an Upload in the upload repository. The orchestrator only ever reads
# these records; they are immutable once created.
# =============================================================================

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from cv_eval.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredFile:
    """Metadata of one file saved on disk."""

    filename: str
    original_name: str
    path: str
    mimetype: str
    size: int

    @property
    def size_label(self) -> str:
        return f"{self.size / 1024:.2f} KB"


@dataclass(frozen=True)
class Upload:
    """A CV and project report submitted together."""

    cv_file: StoredFile
    project_file: StoredFile
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    uploaded_at: datetime = field(default_factory=lambda: datetime.now(UTC))


def store_file(
    content: bytes,
    original_name: str,
    mimetype: str,
    upload_dir: str | None = None,
) -> StoredFile:
    """
    Write an uploaded file to disk under a collision-free name.

    The original name is kept for display only; the stored name is a UUID
    prefix plus the original suffix.
    """
    directory = Path(upload_dir or settings.upload_dir)
    directory.mkdir(parents=True, exist_ok=True)

    filename = f"{uuid.uuid4().hex}{Path(original_name).suffix.lower()}"
    path = directory / filename
    path.write_bytes(content)

    logger.info("Saved upload: %s (%d bytes) → %s", original_name, len(content), path)
    return StoredFile(
        filename=filename,
        original_name=original_name,
        path=str(path),
        mimetype=mimetype,
        size=len(content),
    )
