"""Shared fixtures for filedrop tests."""
from pathlib import Path

import pytest

from filedrop.models import FileSource, ItemStatus, StagedItem


@pytest.fixture
def make_item(tmp_path):
    """Factory building staged items backed by real files under tmp_path."""

    def _make(
        name: str,
        status: ItemStatus = ItemStatus.PENDING,
        error: str = None,
        content: bytes = None,
        mime_type: str = "application/octet-stream",
    ) -> StagedItem:
        data = content if content is not None else f"content of {name}".encode()
        path = Path(tmp_path) / name
        path.write_bytes(data)
        source = FileSource(path=path, name=name, size=len(data), mime_type=mime_type)
        return StagedItem(source=source, status=status, last_error=error)

    return _make
