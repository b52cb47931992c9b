"""Exception taxonomy for staging and upload failures."""


class FileDropError(Exception):
    """Base class for filedrop errors."""


class StagingError(FileDropError):
    """A path could not be staged (missing or unreadable)."""


class TransportFailure(FileDropError):
    """Phase 1 failed: the file bytes were not stored."""


class RegistrarFailure(FileDropError):
    """Phase 2 failed: the metadata record was not created."""


class UploadTimeout(FileDropError):
    """An item's pipeline did not finish within the configured bound."""

    def __init__(self, filename: str, timeout: float):
        super().__init__(f"Upload of {filename} timed out after {timeout:g}s")
        self.filename = filename
        self.timeout = timeout


class BatchJoinFailure(FileDropError):
    """The batch join itself failed, independent of any single item."""
