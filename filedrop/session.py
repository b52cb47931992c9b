"""Upload session - one queue shared by the staging layer and the orchestrator."""
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from .models import BatchOutcome, ItemStatus, StagedItem, UploadConfig
from .orchestrator import SubmissionGuard, UploadQueue, UploadQueueOrchestrator
from .protocols import IPreviewRenderer, IRecordRegistrar, IStorageTransport
from .staging import StagingArea

logger = logging.getLogger(__name__)


class FileDropSession:
    """
    Wires a staging area and an orchestrator around one queue.

    Usage:
        session = FileDropSession(transport, registrar, preview_renderer=PreviewService())
        session.stage([Path("report.pdf"), Path("photos/")])
        outcome = await session.submit()
        print(outcome.message)
        for item in session.items:  # only failed items remain
            print(item.name, item.last_error)
    """

    def __init__(
        self,
        transport: IStorageTransport,
        registrar: IRecordRegistrar,
        config: Optional[UploadConfig] = None,
        preview_renderer: Optional[IPreviewRenderer] = None,
        guard: Optional[SubmissionGuard] = None,
    ):
        self._config = config or UploadConfig()
        self._queue = UploadQueue()
        self._staging = StagingArea(self._queue, preview_renderer)
        self._orchestrator = UploadQueueOrchestrator(
            transport,
            registrar,
            self._config,
            guard=guard,
        )

    @property
    def queue(self) -> UploadQueue:
        return self._queue

    @property
    def staging(self) -> StagingArea:
        return self._staging

    @property
    def orchestrator(self) -> UploadQueueOrchestrator:
        return self._orchestrator

    @property
    def items(self) -> List[StagedItem]:
        return self._queue.items

    @property
    def is_uploading(self) -> bool:
        return self._orchestrator.is_uploading

    def stage(self, paths: Iterable[Path]) -> List[StagedItem]:
        return self._staging.stage(paths)

    def remove(self, item_id: str) -> Optional[StagedItem]:
        return self._staging.remove(item_id)

    def clear(self) -> List[StagedItem]:
        return self._staging.clear()

    async def submit(self) -> BatchOutcome:
        """Submit the queue and release previews of items pruned after upload."""
        before = self._queue.items
        outcome = await self._orchestrator.submit_queue(self._queue)
        pruned = [
            item for item in before
            if item.id not in self._queue and item.status is ItemStatus.UPLOADED
        ]
        self._staging.release_all(pruned)
        return outcome
