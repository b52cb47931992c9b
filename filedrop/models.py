"""
Models for filedrop module.

Staged items are mutable (the orchestrator drives their status), everything
else is an immutable dataclass.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any
from enum import Enum
import asyncio
import uuid


def generate_id() -> str:
    """Opaque identifier assigned to an item when it is staged."""
    return uuid.uuid4().hex


class ItemStatus(Enum):
    """Lifecycle status of a staged item."""
    PENDING = "pending"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    FAILED = "failed"


ELIGIBLE_STATUSES = frozenset({ItemStatus.PENDING, ItemStatus.FAILED})


@dataclass(frozen=True)
class FileSource:
    """Immutable handle to a local file selected by the user."""
    path: Path
    name: str
    size: int
    mime_type: str

    async def read(self) -> bytes:
        """Read file bytes without blocking the event loop."""
        return await asyncio.to_thread(Path(self.path).read_bytes)


@dataclass(frozen=True)
class Preview:
    """Preview resource rendered for a staged item."""
    kind: str  # image | pdf
    url: str
    path: Optional[Path] = None  # temp file owned by the preview, if any


@dataclass(eq=False)
class StagedItem:
    """One file the user intends to upload."""
    source: FileSource
    id: str = field(default_factory=generate_id)
    status: ItemStatus = ItemStatus.PENDING
    last_error: Optional[str] = None
    preview: Optional[Preview] = None

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def is_eligible(self) -> bool:
        return self.status in ELIGIBLE_STATUSES

    def mark_uploading(self) -> None:
        self.status = ItemStatus.UPLOADING
        self.last_error = None

    def mark_uploaded(self) -> None:
        self.status = ItemStatus.UPLOADED
        self.last_error = None

    def mark_failed(self, error: str) -> None:
        self.status = ItemStatus.FAILED
        self.last_error = error


@dataclass(frozen=True)
class BatchOutcome:
    """Immutable result of one dispatch cycle."""
    attempted: int = 0
    succeeded: int = 0
    error: Optional[str] = None

    @property
    def failed(self) -> int:
        return self.attempted - self.succeeded

    @property
    def success(self) -> bool:
        return self.error is None and self.failed == 0

    @property
    def message(self) -> str:
        """User-facing completion notification."""
        if self.error is not None:
            return "An unexpected error occurred. Please try again."
        return f"Successfully processed {self.succeeded} / {self.attempted} file(s)!"

    @classmethod
    def empty(cls):
        return cls(attempted=0, succeeded=0)

    @classmethod
    def join_failed(cls, attempted: int, succeeded: int, error: str):
        return cls(attempted=attempted, succeeded=succeeded, error=error)


@dataclass(frozen=True)
class FileRecord:
    """Metadata record created after the file bytes are stored."""
    filename: str
    url: str
    type: str
    createdby: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "url": self.url,
            "type": self.type,
            "createdby": self.createdby,
        }


@dataclass(frozen=True)
class UploadConfig:
    """Immutable configuration for upload operations."""
    item_timeout: Optional[float] = 120.0  # seconds, None disables
    created_by: str = "currentUser"
    fallback_error: str = "Unknown error"
    simulated_delay: float = 1.0
    storage_base_url: str = "https://storage.example.com/files"
    preview_max_size: int = 360
