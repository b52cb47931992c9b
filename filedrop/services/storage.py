"""
Storage transports - Single Responsibility: store file bytes durably.

Every transport implements IStorageTransport: ``upload(data, name)`` returns
a URL once the bytes are stored, or raises.
"""
import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from ..models import UploadConfig
from .api_client import HTTPAPIClient
from .hashing import blake3_bytes

logger = logging.getLogger(__name__)


def _object_key(name: str) -> str:
    """Timestamp-prefixed key so repeated names never collide."""
    return f"{int(time.time() * 1000)}_{name}"


class SimulatedStorageTransport:
    """
    Stand-in storage that waits a fixed delay and returns a public URL.

    Useful for demos and tests where no storage backend is available.
    """

    def __init__(self, config: Optional[UploadConfig] = None, delay: Optional[float] = None):
        self._config = config or UploadConfig()
        self._delay = self._config.simulated_delay if delay is None else delay

    async def upload(self, data: bytes, name: str) -> str:
        logger.debug(f"[storage] Simulating upload of {name} ({len(data)} bytes)")
        await asyncio.sleep(self._delay)
        public_url = f"{self._config.storage_base_url.rstrip('/')}/{_object_key(name)}"
        logger.info(f"[storage] Simulated upload complete: {public_url}")
        return public_url


class LocalStorageTransport:
    """
    Stores bytes in a local directory.

    Objects are content-addressed by a BLAKE3 prefix, so storing the same
    bytes twice reuses the existing object.
    """

    def __init__(self, root: Path):
        self._root = Path(root)

    async def upload(self, data: bytes, name: str) -> str:
        digest = blake3_bytes(data)
        target = self._root / f"{digest[:16]}_{Path(name).name}"
        await asyncio.to_thread(self._write, target, data)
        logger.info(f"[storage] Stored {name} at {target}")
        return target.resolve().as_uri()

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.exists() and target.stat().st_size == len(data):
            return
        # one temp file per write; concurrent uploads of identical bytes share the target
        tmp = target.with_name(f"{target.name}.{uuid.uuid4().hex[:8]}.part")
        try:
            tmp.write_bytes(data)
            tmp.replace(target)
        finally:
            tmp.unlink(missing_ok=True)


class HTTPStorageTransport:
    """
    Uploads bytes with ``PUT {base_url}/{key}``.

    The returned URL is the ``url`` field of a JSON response when present,
    otherwise the object URL itself.
    """

    def __init__(self, api_client: HTTPAPIClient, base_url: str):
        self._api = api_client
        self._base_url = base_url.rstrip("/")

    async def upload(self, data: bytes, name: str) -> str:
        key = quote(_object_key(name))
        response = await self._api.put(
            f"/{key}",
            content=data,
            headers={"Content-Type": "application/octet-stream"},
        )

        url = None
        try:
            body = response.json()
            if isinstance(body, dict):
                url = body.get("url")
        except ValueError:
            pass

        url = url or f"{self._base_url}/{key}"
        logger.info(f"[storage] Uploaded {name} to {url}")
        return url
