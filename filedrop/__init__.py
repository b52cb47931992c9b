"""
filedrop - Stage local files and upload them in one concurrent batch.

Each staged file goes through two phases: its bytes are stored (storage
transport), then a metadata record pointing at the stored bytes is created
(record registrar). Files that fail stay queued with their error and are
retried on the next submission; uploaded files leave the queue.

Usage:
    from filedrop import FileDropSession, SimulatedStorageTransport, JsonlRecordRegistrar

    session = FileDropSession(
        SimulatedStorageTransport(),
        JsonlRecordRegistrar(Path("records.jsonl")),
    )
    session.stage([Path("invoice.pdf"), Path("scans/")])

    outcome = await session.submit()
    print(outcome.message)  # Successfully processed 3 / 4 file(s)!

    # Failed items remain; submitting again retries only those
    outcome = await session.submit()
"""
from .errors import (
    BatchJoinFailure,
    FileDropError,
    RegistrarFailure,
    StagingError,
    TransportFailure,
    UploadTimeout,
)
from .models import BatchOutcome, FileRecord, FileSource, ItemStatus, Preview, StagedItem, UploadConfig
from .orchestrator import SubmissionGuard, UploadQueue, UploadQueueOrchestrator
from .services import (
    AppSheetRecordRegistrar,
    HTTPAPIClient,
    HTTPStorageTransport,
    JsonlRecordRegistrar,
    LocalStorageTransport,
    PreviewService,
    SimulatedStorageTransport,
)
from .session import FileDropSession
from .staging import StagingArea

__version__ = "0.1.0"
__all__ = [
    # Main
    "FileDropSession",
    "UploadQueueOrchestrator",
    "UploadQueue",
    "SubmissionGuard",
    "StagingArea",
    # Models
    "BatchOutcome",
    "FileRecord",
    "FileSource",
    "ItemStatus",
    "Preview",
    "StagedItem",
    "UploadConfig",
    # Errors
    "FileDropError",
    "StagingError",
    "TransportFailure",
    "RegistrarFailure",
    "UploadTimeout",
    "BatchJoinFailure",
    # Services
    "AppSheetRecordRegistrar",
    "HTTPAPIClient",
    "HTTPStorageTransport",
    "JsonlRecordRegistrar",
    "LocalStorageTransport",
    "PreviewService",
    "SimulatedStorageTransport",
]
