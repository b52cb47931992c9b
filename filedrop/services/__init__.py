"""Services for filedrop module."""
from .api_client import HTTPAPIClient
from .preview import PreviewService, is_image, is_pdf
from .registrar import AppSheetRecordRegistrar, JsonlRecordRegistrar
from .storage import HTTPStorageTransport, LocalStorageTransport, SimulatedStorageTransport

__all__ = [
    "HTTPAPIClient",
    "PreviewService",
    "is_image",
    "is_pdf",
    "AppSheetRecordRegistrar",
    "JsonlRecordRegistrar",
    "HTTPStorageTransport",
    "LocalStorageTransport",
    "SimulatedStorageTransport",
]
