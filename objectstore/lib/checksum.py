"""Checksum utilities for object and part integrity verification.

Multipart parts are hashed when they are stored and hashed again before
they are assembled, so a part modified on disk between upload and
finalize is detected.
"""

from __future__ import annotations

import hashlib
from typing import BinaryIO, Optional

from objectstore.lib.streams import CHUNK_SIZE

__all__ = [
    "PREFERRED_ALGORITHMS",
    "preferred_hash_algorithm",
    "resolve_hash_algorithm",
    "hash_stream",
    "hash_bytes",
]

PREFERRED_ALGORITHMS = ("sha256", "sha1", "sha512", "md5")


def preferred_hash_algorithm() -> str:
    """Return the first preferred algorithm this interpreter supports.

    Falls back to any available algorithm when none of the preferred ones
    is present.
    """
    available = hashlib.algorithms_available
    for name in PREFERRED_ALGORITHMS:
        if name in available:
            return name
    return sorted(available)[0]


def resolve_hash_algorithm(name: Optional[str] = None) -> str:
    """Validate ``name`` or pick the preferred algorithm when it is None."""
    if name is None:
        return preferred_hash_algorithm()
    try:
        hashlib.new(name)
    except ValueError as exc:
        raise ValueError(f"Unsupported hash algorithm: {name}") from exc
    return name


def hash_stream(stream: BinaryIO, algorithm: str) -> str:
    """Hash the remainder of ``stream``.

    Reads in 1MB chunks to handle large parts efficiently.

    Returns:
        Hexadecimal digest string
    """
    hasher = hashlib.new(algorithm)
    for chunk in iter(lambda: stream.read(CHUNK_SIZE), b""):
        hasher.update(chunk)
    return hasher.hexdigest()


def hash_bytes(data: bytes, algorithm: str) -> str:
    """Hash an in-memory byte string."""
    return hashlib.new(algorithm, data).hexdigest()
