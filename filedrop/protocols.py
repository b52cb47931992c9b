"""
Protocols (Interfaces) for Dependency Inversion.

Following Interface Segregation Principle - small, focused interfaces.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from .models import FileRecord, FileSource, Preview


@runtime_checkable
class IStorageTransport(Protocol):
    """Interface for durable object storage (phase 1)."""

    async def upload(self, data: bytes, name: str) -> str:
        """Store bytes and return a durable reference (URL)."""
        ...


@runtime_checkable
class IRecordRegistrar(Protocol):
    """Interface for metadata record creation (phase 2)."""

    async def add_record(self, record: FileRecord) -> Any:
        """Persist a record pointing at stored bytes."""
        ...


@runtime_checkable
class IAPIClient(Protocol):
    """Interface for API operations."""

    async def post(self, endpoint: str, json: Dict) -> Any:
        """POST request to API."""
        ...

    async def put(self, endpoint: str, content: bytes, headers: Optional[Dict] = None) -> Any:
        """PUT raw bytes to API."""
        ...


class IPreviewRenderer(ABC):
    """Interface for preview rendering."""

    @abstractmethod
    def render(self, source: FileSource) -> Optional[Preview]:
        """Render preview for a staged file, or None if unsupported."""
        pass

    @abstractmethod
    def release(self, preview: Preview) -> None:
        """Release any resource held by a preview."""
        pass
