"""Content hashing for stored objects."""
from blake3 import blake3


def blake3_bytes(data: bytes) -> str:
    """BLAKE3 hex digest of an in-memory payload."""
    return blake3(data).hexdigest()
