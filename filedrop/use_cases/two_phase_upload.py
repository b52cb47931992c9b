"""Use cases for the two-phase upload of one staged file."""
from __future__ import annotations

import logging
from typing import Any, Optional

from filedrop.errors import RegistrarFailure, TransportFailure
from filedrop.models import FileRecord, FileSource

logger = logging.getLogger(__name__)


def describe_error(exc: BaseException, fallback: str) -> str:
    """Best-effort human-readable message for an item failure."""
    message = str(exc).strip()
    return message or fallback


class StoreFileUseCase:
    """Phase 1: read the file and hand its bytes to the storage transport."""

    async def execute(self, transport: Any, source: FileSource) -> str:
        try:
            data = await source.read()
            url = await transport.upload(data, source.name)
        except TransportFailure:
            raise
        except Exception as exc:
            raise TransportFailure(str(exc)) from exc

        if not url:
            raise TransportFailure("Storage transport returned no reference")
        return url


class RegisterRecordUseCase:
    """Phase 2: create the metadata record for stored bytes."""

    async def execute(
        self,
        registrar: Any,
        source: FileSource,
        url: str,
        created_by: str,
    ) -> FileRecord:
        record = FileRecord(
            filename=source.name,
            url=url,
            type=source.mime_type,
            createdby=created_by,
        )
        try:
            await registrar.add_record(record)
        except RegistrarFailure:
            raise
        except Exception as exc:
            raise RegistrarFailure(str(exc)) from exc
        return record


class TwoPhaseUploadUseCase:
    """Store bytes, then register the record. Phase 2 never runs if phase 1 fails."""

    def __init__(
        self,
        store_file: Optional[StoreFileUseCase] = None,
        register_record: Optional[RegisterRecordUseCase] = None,
    ):
        self._store_file = store_file or StoreFileUseCase()
        self._register_record = register_record or RegisterRecordUseCase()

    async def execute(
        self,
        transport: Any,
        registrar: Any,
        source: FileSource,
        created_by: str,
    ) -> FileRecord:
        logger.debug("Phase 1 (storage) started: file=%s size=%s", source.name, source.size)
        url = await self._store_file.execute(transport, source)

        logger.debug("Phase 2 (record) started: file=%s url=%s", source.name, url)
        return await self._register_record.execute(registrar, source, url, created_by)
