"""Staging layer - turns user-selected paths into queued items with previews."""
import logging
import mimetypes
from pathlib import Path
from typing import Iterable, List, Optional

from .errors import StagingError
from .models import FileSource, StagedItem
from .orchestrator.queue import UploadQueue
from .protocols import IPreviewRenderer

logger = logging.getLogger(__name__)

_FALLBACK_MIMES = {
    ".pdf": "application/pdf",
    ".html": "text/html",
    ".htm": "text/html",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
    ".webp": "image/webp",
    ".heic": "image/heic",
}


def guess_mime_type(path: Path) -> str:
    mimetype, _ = mimetypes.guess_type(str(path))
    if not mimetype:
        mimetype = _FALLBACK_MIMES.get(path.suffix.lower(), "application/octet-stream")
    return mimetype


class FileCollector:
    """Collects files from user-supplied paths."""

    @staticmethod
    def collect_files(paths: Iterable[Path]) -> List[Path]:
        """
        Expand paths into files, recursing into folders.

        Args:
            paths: Files or folders chosen by the user

        Returns:
            Files in the order given, folder contents sorted

        Raises:
            StagingError: a path does not exist
        """
        files = []
        for raw in paths:
            path = Path(raw).expanduser()
            if path.is_file():
                files.append(path)
            elif path.is_dir():
                files.extend(sorted(item for item in path.rglob("*") if item.is_file()))
            else:
                raise StagingError(f"Path does not exist: {path}")
        return files


class StagingArea:
    """
    Feeds staged items into the upload queue and removes them on request.

    Removal (single or clear) releases any preview the item holds. Items
    can be removed in any state.
    """

    def __init__(self, queue: UploadQueue, preview_renderer: Optional[IPreviewRenderer] = None):
        self._queue = queue
        self._preview = preview_renderer
        self._viewing: Optional[str] = None

    @property
    def queue(self) -> UploadQueue:
        return self._queue

    @property
    def viewing(self) -> Optional[StagedItem]:
        """Item currently open in the preview viewer."""
        if self._viewing is None:
            return None
        return self._queue.get(self._viewing)

    def build_source(self, path: Path) -> FileSource:
        path = Path(path)
        try:
            size = path.stat().st_size
        except OSError as e:
            raise StagingError(f"Cannot read {path}: {e}") from e
        return FileSource(
            path=path,
            name=path.name,
            size=size,
            mime_type=guess_mime_type(path),
        )

    def stage(self, paths: Iterable[Path]) -> List[StagedItem]:
        """Stage files (folders are expanded) as PENDING items."""
        staged = []
        for path in FileCollector.collect_files(paths):
            source = self.build_source(path)
            item = StagedItem(source=source)
            if self._preview is not None:
                item.preview = self._preview.render(source)
            self._queue.add(item)
            staged.append(item)
            logger.debug(f"Staged {source.name} ({source.mime_type}, {source.size} bytes) as {item.id}")
        logger.info(f"Staged {len(staged)} file(s), queue size {len(self._queue)}")
        return staged

    def remove(self, item_id: str) -> Optional[StagedItem]:
        item = self._queue.remove(item_id)
        if item is None:
            return None
        self._release(item)
        if self._viewing == item_id:
            self._viewing = None
        return item

    def clear(self) -> List[StagedItem]:
        removed = self._queue.clear()
        for item in removed:
            self._release(item)
        self._viewing = None
        return removed

    def release_all(self, items: Iterable[StagedItem]) -> None:
        """Release previews of items removed elsewhere (e.g. pruned after upload)."""
        for item in items:
            self._release(item)

    def view(self, item_id: str) -> StagedItem:
        item = self._queue.get(item_id)
        if item is None:
            raise KeyError(item_id)
        self._viewing = item_id
        return item

    def close_preview(self) -> None:
        self._viewing = None

    def _release(self, item: StagedItem) -> None:
        if item.preview is not None and self._preview is not None:
            self._preview.release(item.preview)
        item.preview = None
