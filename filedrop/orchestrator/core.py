"""Core orchestrator - drives staged items through the two-phase upload."""
import asyncio
import logging
from typing import Any, Callable, List, Optional

from ..errors import BatchJoinFailure, UploadTimeout
from ..models import BatchOutcome, ItemStatus, StagedItem, UploadConfig
from ..protocols import IRecordRegistrar, IStorageTransport
from ..use_cases.two_phase_upload import TwoPhaseUploadUseCase, describe_error
from ..utils.events import EventEmitter
from .guard import SubmissionGuard
from .queue import UploadQueue

logger = logging.getLogger(__name__)


class UploadQueueOrchestrator:
    """
    Dispatches every eligible staged item concurrently and reconciles the queue.

    One dispatch cycle:
        1. select PENDING/FAILED items (queue order)
        2. mark them UPLOADING and start one task per item
        3. wait for all tasks (one failure never cancels the others)
        4. count UPLOADED items, prune them from the queue
        5. notify listeners with a BatchOutcome

    Usage:
        orchestrator = UploadQueueOrchestrator(transport, registrar)
        orchestrator.on_item_status(lambda item: print(item.name, item.status))
        orchestrator.on_batch_complete(lambda outcome: print(outcome.message))
        outcome = await orchestrator.submit_queue(queue)
    """

    def __init__(
        self,
        transport: IStorageTransport,
        registrar: IRecordRegistrar,
        config: Optional[UploadConfig] = None,
        guard: Optional[SubmissionGuard] = None,
        pipeline: Optional[TwoPhaseUploadUseCase] = None,
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            transport: Storage transport (phase 1)
            registrar: Record registrar (phase 2)
            config: Upload configuration
            guard: Submission guard, shared when several orchestrators must not overlap
            pipeline: Two-phase upload use case
        """
        self._transport = transport
        self._registrar = registrar
        self._config = config or UploadConfig()
        self._guard = guard or SubmissionGuard()
        self._pipeline = pipeline or TwoPhaseUploadUseCase()
        self._events = EventEmitter()

    # Event subscription methods
    def on_item_status(self, callback: Callable[[StagedItem], Any]):
        """Called on every item status transition. Receives StagedItem."""
        self._events.on("item_status", callback)

    def on_batch_complete(self, callback: Callable[[BatchOutcome], Any]):
        """Called when a dispatch cycle finishes. Receives BatchOutcome."""
        self._events.on("batch_complete", callback)

    def on_batch_error(self, callback: Callable[[BatchJoinFailure], Any]):
        """Called when the batch join itself fails. Receives BatchJoinFailure."""
        self._events.on("batch_error", callback)

    @property
    def is_uploading(self) -> bool:
        return self._guard.in_flight

    async def submit_queue(self, queue: UploadQueue) -> BatchOutcome:
        """
        Run one dispatch cycle over the queue.

        No-op when the queue is empty or a submission is already in flight.

        Returns:
            BatchOutcome with attempted/succeeded counts
        """
        if len(queue) == 0:
            logger.debug("Submit ignored: queue is empty")
            return BatchOutcome.empty()
        if not self._guard.try_acquire():
            logger.debug("Submit ignored: a submission is already in flight")
            return BatchOutcome.empty()

        join_error: Optional[BatchJoinFailure] = None
        try:
            dispatched = queue.eligible()
            if not dispatched:
                logger.debug("Submit ignored: no pending or failed items")
                return BatchOutcome.empty()

            for item in dispatched:
                item.mark_uploading()

            logger.info(f"Starting upload: {len(dispatched)} file(s)")
            tasks = [
                asyncio.create_task(self._process_item(item), name=f"upload:{item.id}")
                for item in dispatched
            ]

            try:
                await self._join(tasks)
            except asyncio.CancelledError:
                await self._cancel_remaining_tasks(tasks)
                await self._fail_unresolved(dispatched, "Upload cancelled")
                raise
            except Exception as e:
                error_msg = describe_error(e, self._config.fallback_error)
                logger.error(f"Batch join failed: {error_msg}", exc_info=True)
                await self._cancel_remaining_tasks(tasks)
                join_error = BatchJoinFailure(error_msg)
                join_error.__cause__ = e

            await self._fail_unresolved(
                dispatched,
                str(join_error) if join_error else self._config.fallback_error,
            )

            attempted = len(dispatched)
            succeeded = sum(1 for item in dispatched if item.status is ItemStatus.UPLOADED)
            removed = queue.prune_uploaded()
            logger.info(
                f"Upload complete: {succeeded}/{attempted} successful, "
                f"{attempted - succeeded} failed, {len(removed)} removed from queue"
            )

            if join_error is not None:
                outcome = BatchOutcome.join_failed(attempted, succeeded, str(join_error))
            else:
                outcome = BatchOutcome(attempted=attempted, succeeded=succeeded)
        finally:
            self._guard.release()

        if join_error is not None:
            await self._events.emit("batch_error", join_error)
        else:
            await self._events.emit("batch_complete", outcome)
        return outcome

    async def _join(self, tasks: List[asyncio.Task]) -> List[Any]:
        """All-complete barrier: waits for every task regardless of outcome."""
        return await asyncio.gather(*tasks, return_exceptions=True)

    async def _process_item(self, item: StagedItem) -> bool:
        """Run the two-phase pipeline for one item and record its terminal status."""
        await self._events.emit("item_status", item)

        try:
            await self._run_pipeline(item)
        except Exception as e:
            error_msg = describe_error(e, self._config.fallback_error)
            logger.error(f"Upload failed for: {item.name}: {error_msg}", exc_info=True)
            item.mark_failed(error_msg)
            await self._events.emit("item_status", item)
            return False

        item.mark_uploaded()
        logger.info(f"Successfully uploaded and recorded: {item.name}")
        await self._events.emit("item_status", item)
        return True

    async def _run_pipeline(self, item: StagedItem) -> None:
        pipeline = self._pipeline.execute(
            self._transport,
            self._registrar,
            item.source,
            self._config.created_by,
        )
        timeout = self._config.item_timeout
        if timeout is None:
            await pipeline
            return

        try:
            await asyncio.wait_for(pipeline, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise UploadTimeout(item.name, timeout) from e

    async def _fail_unresolved(self, dispatched: List[StagedItem], error_msg: str) -> None:
        """Resolve items still UPLOADING after the join to FAILED."""
        for item in dispatched:
            if item.status is ItemStatus.UPLOADING:
                item.mark_failed(error_msg)
                await self._events.emit("item_status", item)

    async def _cancel_remaining_tasks(self, tasks: List[asyncio.Task]) -> None:
        """Cancel all remaining tasks and let them settle."""
        for task in tasks:
            if not task.done():
                task.cancel()

        await asyncio.gather(*tasks, return_exceptions=True)
