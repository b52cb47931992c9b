"""Tests for the upload queue orchestrator."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from filedrop.errors import BatchJoinFailure
from filedrop.models import BatchOutcome, ItemStatus, UploadConfig
from filedrop.orchestrator import SubmissionGuard, UploadQueue, UploadQueueOrchestrator


def _build_orchestrator(config: UploadConfig = None, guard: SubmissionGuard = None):
    transport = AsyncMock()
    registrar = AsyncMock()
    transport.upload.side_effect = lambda data, name: f"https://storage.example.com/files/{name}"
    orchestrator = UploadQueueOrchestrator(
        transport,
        registrar,
        config or UploadConfig(item_timeout=5),
        guard=guard,
    )
    return orchestrator, transport, registrar


@pytest.mark.asyncio
async def test_empty_queue_is_noop():
    orchestrator, transport, registrar = _build_orchestrator()

    outcome = await orchestrator.submit_queue(UploadQueue())

    assert outcome == BatchOutcome.empty()
    transport.upload.assert_not_awaited()
    registrar.add_record.assert_not_awaited()
    assert orchestrator.is_uploading is False


@pytest.mark.asyncio
async def test_mixed_outcome_keeps_only_failed_items(make_item):
    orchestrator, transport, registrar = _build_orchestrator()
    item_a = make_item("a.txt")
    item_b = make_item("b.txt", status=ItemStatus.FAILED, error="x")
    queue = UploadQueue([item_a, item_b])

    async def add_record(record):
        if record.filename == "b.txt":
            raise RuntimeError("row rejected")

    registrar.add_record.side_effect = add_record

    outcome = await orchestrator.submit_queue(queue)

    assert outcome.attempted == 2
    assert outcome.succeeded == 1
    assert outcome.failed == 1
    assert queue.items == [item_b]
    assert item_b.status is ItemStatus.FAILED
    assert item_b.last_error == "row rejected"
    assert item_a.status is ItemStatus.UPLOADED
    assert item_a.last_error is None


@pytest.mark.asyncio
async def test_transport_failure_skips_registrar(make_item):
    orchestrator, transport, registrar = _build_orchestrator()
    item = make_item("a.txt")
    queue = UploadQueue([item])
    transport.upload.side_effect = ConnectionError("storage unreachable")

    outcome = await orchestrator.submit_queue(queue)

    assert outcome == BatchOutcome(attempted=1, succeeded=0)
    registrar.add_record.assert_not_awaited()
    assert queue.items == [item]
    assert item.status is ItemStatus.FAILED
    assert item.last_error == "storage unreachable"


@pytest.mark.asyncio
async def test_successful_item_is_recorded_and_removed(make_item):
    orchestrator, transport, registrar = _build_orchestrator(
        UploadConfig(item_timeout=5, created_by="alice")
    )
    item = make_item("report.pdf", content=b"%PDF-1.4", mime_type="application/pdf")
    queue = UploadQueue([item])

    outcome = await orchestrator.submit_queue(queue)

    assert outcome == BatchOutcome(attempted=1, succeeded=1)
    assert len(queue) == 0
    assert item.status is ItemStatus.UPLOADED
    transport.upload.assert_awaited_once_with(b"%PDF-1.4", "report.pdf")
    record = registrar.add_record.await_args.args[0]
    assert record.to_dict() == {
        "filename": "report.pdf",
        "url": "https://storage.example.com/files/report.pdf",
        "type": "application/pdf",
        "createdby": "alice",
    }


@pytest.mark.asyncio
async def test_non_eligible_items_are_not_dispatched(make_item):
    orchestrator, transport, registrar = _build_orchestrator()
    pending = make_item("pending.txt")
    busy = make_item("busy.txt", status=ItemStatus.UPLOADING)
    queue = UploadQueue([pending, busy])

    outcome = await orchestrator.submit_queue(queue)

    assert outcome.attempted == 1
    transport.upload.assert_awaited_once()
    assert busy.status is ItemStatus.UPLOADING
    assert queue.items == [busy]


@pytest.mark.asyncio
async def test_only_uploaded_items_is_noop(make_item):
    orchestrator, transport, registrar = _build_orchestrator()
    done = make_item("done.txt", status=ItemStatus.UPLOADED)
    queue = UploadQueue([done])
    completed = []
    orchestrator.on_batch_complete(completed.append)

    outcome = await orchestrator.submit_queue(queue)

    assert outcome == BatchOutcome.empty()
    assert queue.items == [done]
    assert completed == []
    transport.upload.assert_not_awaited()
    assert orchestrator.is_uploading is False


@pytest.mark.asyncio
async def test_empty_error_message_uses_fallback(make_item):
    orchestrator, transport, _ = _build_orchestrator()
    item = make_item("a.txt")
    transport.upload.side_effect = RuntimeError()

    await orchestrator.submit_queue(UploadQueue([item]))

    assert item.status is ItemStatus.FAILED
    assert item.last_error == "Unknown error"


@pytest.mark.asyncio
async def test_missing_storage_reference_fails_item(make_item):
    orchestrator, transport, registrar = _build_orchestrator()
    item = make_item("a.txt")
    transport.upload.side_effect = None
    transport.upload.return_value = ""

    await orchestrator.submit_queue(UploadQueue([item]))

    assert item.last_error == "Storage transport returned no reference"
    registrar.add_record.assert_not_awaited()


@pytest.mark.asyncio
async def test_items_run_concurrently(make_item):
    """Each transport call waits for the other one to start; a sequential run would time out."""
    orchestrator, transport, _ = _build_orchestrator(UploadConfig(item_timeout=2))
    started = {"a.txt": asyncio.Event(), "b.txt": asyncio.Event()}

    async def upload(data, name):
        started[name].set()
        other = "b.txt" if name == "a.txt" else "a.txt"
        await started[other].wait()
        return f"https://storage.example.com/files/{name}"

    transport.upload.side_effect = upload
    queue = UploadQueue([make_item("a.txt"), make_item("b.txt")])

    outcome = await orchestrator.submit_queue(queue)

    assert outcome == BatchOutcome(attempted=2, succeeded=2)
    assert len(queue) == 0


@pytest.mark.asyncio
async def test_resubmission_while_in_flight_is_noop(make_item):
    orchestrator, transport, _ = _build_orchestrator()
    release = asyncio.Event()
    entered = asyncio.Event()

    async def upload(data, name):
        entered.set()
        await release.wait()
        return "https://storage.example.com/files/a.txt"

    transport.upload.side_effect = upload
    item = make_item("a.txt")
    queue = UploadQueue([item])

    first = asyncio.create_task(orchestrator.submit_queue(queue))
    await entered.wait()

    assert orchestrator.is_uploading is True
    assert item.status is ItemStatus.UPLOADING
    second = await orchestrator.submit_queue(queue)
    assert second == BatchOutcome.empty()
    assert transport.upload.await_count == 1

    release.set()
    outcome = await first

    assert outcome == BatchOutcome(attempted=1, succeeded=1)
    assert orchestrator.is_uploading is False


@pytest.mark.asyncio
async def test_shared_guard_blocks_other_orchestrator(make_item):
    guard = SubmissionGuard()
    orchestrator, transport, _ = _build_orchestrator(guard=guard)
    assert guard.try_acquire() is True

    outcome = await orchestrator.submit_queue(UploadQueue([make_item("a.txt")]))

    assert outcome == BatchOutcome.empty()
    transport.upload.assert_not_awaited()
    guard.release()


@pytest.mark.asyncio
async def test_timeout_fails_slow_item_only(make_item):
    orchestrator, transport, _ = _build_orchestrator(UploadConfig(item_timeout=0.05))

    async def upload(data, name):
        if name == "slow.txt":
            await asyncio.sleep(5)
        return f"https://storage.example.com/files/{name}"

    transport.upload.side_effect = upload
    slow = make_item("slow.txt")
    fast = make_item("fast.txt")
    queue = UploadQueue([slow, fast])

    outcome = await orchestrator.submit_queue(queue)

    assert outcome == BatchOutcome(attempted=2, succeeded=1)
    assert queue.items == [slow]
    assert slow.status is ItemStatus.FAILED
    assert "timed out" in slow.last_error


@pytest.mark.asyncio
async def test_status_transitions_are_observable(make_item):
    orchestrator, transport, _ = _build_orchestrator()
    item = make_item("a.txt")
    seen = []
    orchestrator.on_item_status(lambda changed: seen.append((changed.name, changed.status)))

    async def upload(data, name):
        assert item.status is ItemStatus.UPLOADING
        return "https://storage.example.com/files/a.txt"

    transport.upload.side_effect = upload

    await orchestrator.submit_queue(UploadQueue([item]))

    assert seen == [("a.txt", ItemStatus.UPLOADING), ("a.txt", ItemStatus.UPLOADED)]


@pytest.mark.asyncio
async def test_batch_complete_notification(make_item):
    orchestrator, _, registrar = _build_orchestrator()
    registrar.add_record.side_effect = [None, RuntimeError("denied")]
    outcomes = []
    orchestrator.on_batch_complete(outcomes.append)

    outcome = await orchestrator.submit_queue(UploadQueue([make_item("a.txt"), make_item("b.txt")]))

    assert outcomes == [outcome]
    assert outcome.message == "Successfully processed 1 / 2 file(s)!"


@pytest.mark.asyncio
async def test_join_failure_reports_batch_error(make_item, monkeypatch):
    orchestrator, transport, _ = _build_orchestrator()
    errors = []
    completed = []
    orchestrator.on_batch_error(errors.append)
    orchestrator.on_batch_complete(completed.append)

    async def broken_join(tasks):
        raise RuntimeError("join exploded")

    monkeypatch.setattr(orchestrator, "_join", broken_join)
    item_a = make_item("a.txt")
    item_b = make_item("b.txt")
    queue = UploadQueue([item_a, item_b])

    outcome = await orchestrator.submit_queue(queue)

    assert outcome.error == "join exploded"
    assert outcome.attempted == 2
    assert outcome.message == "An unexpected error occurred. Please try again."
    assert orchestrator.is_uploading is False
    assert completed == []
    assert len(errors) == 1
    assert isinstance(errors[0], BatchJoinFailure)
    for item in queue:
        assert item.status is not ItemStatus.UPLOADING


@pytest.mark.asyncio
async def test_join_failure_still_prunes_finished_items(make_item, monkeypatch):
    orchestrator, transport, _ = _build_orchestrator()
    errors = []
    orchestrator.on_batch_error(errors.append)
    stalled = asyncio.Event()

    async def upload(data, name):
        if name == "slow.txt":
            await stalled.wait()
        return f"https://storage.example.com/files/{name}"

    transport.upload.side_effect = upload

    async def join_after_first(tasks):
        await tasks[0]
        raise RuntimeError("join exploded")

    monkeypatch.setattr(orchestrator, "_join", join_after_first)
    fast = make_item("fast.txt")
    slow = make_item("slow.txt")
    queue = UploadQueue([fast, slow])

    outcome = await orchestrator.submit_queue(queue)

    assert outcome.attempted == 2
    assert outcome.succeeded == 1
    assert outcome.error == "join exploded"
    assert fast.status is ItemStatus.UPLOADED
    assert fast.id not in queue
    assert queue.items == [slow]
    assert slow.status is ItemStatus.FAILED
    assert slow.last_error == "join exploded"
    assert len(errors) == 1
    assert orchestrator.is_uploading is False


@pytest.mark.asyncio
async def test_cancelled_submission_releases_guard(make_item):
    orchestrator, transport, _ = _build_orchestrator()
    entered = asyncio.Event()

    async def upload(data, name):
        entered.set()
        await asyncio.sleep(10)

    transport.upload.side_effect = upload
    item = make_item("a.txt")
    queue = UploadQueue([item])

    task = asyncio.create_task(orchestrator.submit_queue(queue))
    await entered.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert orchestrator.is_uploading is False
    assert item.status is ItemStatus.FAILED
    assert item.last_error == "Upload cancelled"
