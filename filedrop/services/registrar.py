"""
Record Registrar - Single Responsibility: persist file records.

Implements Repository Pattern for data access.
"""
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from ..models import FileRecord
from ..protocols import IAPIClient

logger = logging.getLogger(__name__)


class AppSheetRecordRegistrar:
    """
    Registrar that adds rows to an AppSheet table.

    Uses the AppSheet API ``Action`` endpoint:
        POST /apps/{app_id}/tables/{table}/Action
        {"Action": "Add", "Properties": {...}, "Rows": [record]}
    The access key travels as an ``ApplicationAccessKey`` header configured
    on the API client.
    """

    def __init__(self, api_client: IAPIClient, app_id: str, table: str, locale: str = "en-US"):
        """
        Initialize registrar.

        Args:
            api_client: HTTP client for API calls
            app_id: AppSheet application id
            table: Table receiving file rows
            locale: Locale sent in request properties
        """
        self._api = api_client
        self._app_id = app_id
        self._table = table
        self._locale = locale

    @property
    def endpoint(self) -> str:
        return f"/apps/{self._app_id}/tables/{self._table}/Action"

    def prepare_action(self, records: List[FileRecord]) -> Dict[str, Any]:
        """Prepare an Add action payload for one or more records."""
        return {
            "Action": "Add",
            "Properties": {"Locale": self._locale},
            "Rows": [record.to_dict() for record in records],
        }

    async def add_record(self, record: FileRecord) -> Any:
        """
        Add one file record.

        Args:
            record: Record pointing at stored bytes

        Returns:
            Parsed JSON response (AppSheet echoes added rows)
        """
        response = await self._api.post(self.endpoint, json=self.prepare_action([record]))
        logger.debug(f"[registrar] Added record for {record.filename}")
        try:
            return response.json()
        except ValueError:
            return None


class JsonlRecordRegistrar:
    """Registrar that appends records to a local JSON-lines file."""

    def __init__(self, path: Path):
        self._path = Path(path)
        self._lock = asyncio.Lock()

    async def add_record(self, record: FileRecord) -> Any:
        line = json.dumps(record.to_dict(), ensure_ascii=False)
        async with self._lock:
            await asyncio.to_thread(self._append, line)
        logger.debug(f"[registrar] Wrote record for {record.filename} to {self._path}")
        return record.to_dict()

    def _append(self, line: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "a", encoding="utf-8") as f:
            f.write(line + "\n")

    def read_all(self) -> List[Dict[str, Any]]:
        if not self._path.exists():
            return []
        with open(self._path, encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]
