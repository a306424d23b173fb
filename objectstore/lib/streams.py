"""Read-once byte sources with explicit ownership transfer.

A ByteSource wraps a binary file-like object. Writing engines take the
underlying stream with detach(); from then on the source belongs to the
engine and the caller's ByteSource can no longer be read or detached.
"""

from __future__ import annotations

import io
import tempfile
from pathlib import Path
from typing import BinaryIO, Optional, Union

__all__ = [
    "ByteSource",
    "StreamConsumedError",
    "copy_stream",
    "temporary_copy",
    "SPOOL_MAX_SIZE",
    "CHUNK_SIZE",
]

# Private copies stay in memory up to this size, then spill to disk
SPOOL_MAX_SIZE = 2 * 1024 * 1024

CHUNK_SIZE = 1024 * 1024


class StreamConsumedError(ValueError):
    """Raised when a ByteSource is used after its stream was detached."""


class ByteSource:
    """Sequential, read-once byte stream.

    Example:
        >>> source = ByteSource.from_bytes(b"hello")
        >>> stream = source.detach()
        >>> stream.read()
        b'hello'
        >>> source.detached
        True
    """

    def __init__(self, stream: BinaryIO) -> None:
        self._stream: Optional[BinaryIO] = stream

    @classmethod
    def from_bytes(cls, data: bytes) -> "ByteSource":
        """Create a source over an in-memory copy of ``data``."""
        return cls(io.BytesIO(bytes(data)))

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "ByteSource":
        """Open a local file for reading."""
        return cls(open(path, "rb"))

    @property
    def detached(self) -> bool:
        return self._stream is None

    @property
    def closed(self) -> bool:
        return self._stream is None or self._stream.closed

    def _require_stream(self) -> BinaryIO:
        if self._stream is None:
            raise StreamConsumedError("Stream has already been detached")
        return self._stream

    def detach(self) -> BinaryIO:
        """Hand over the underlying stream; the source becomes unusable."""
        stream = self._require_stream()
        self._stream = None
        return stream

    def read(self, size: int = -1) -> bytes:
        return self._require_stream().read(size)

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()

    def __enter__(self) -> "ByteSource":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "detached" if self.detached else ("closed" if self.closed else "open")
        return f"{self.__class__.__name__}({state})"


def copy_stream(src: BinaryIO, dst: BinaryIO, chunk_size: int = CHUNK_SIZE) -> int:
    """Copy the remainder of ``src`` into ``dst``.

    Returns:
        Number of bytes written
    """
    written = 0
    for chunk in iter(lambda: src.read(chunk_size), b""):
        dst.write(chunk)
        written += len(chunk)
    return written


def temporary_copy(src: BinaryIO) -> BinaryIO:
    """Copy ``src`` into a private spooled buffer, rewound to the start."""
    copy = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE, mode="w+b")
    try:
        copy_stream(src, copy)
        copy.seek(0)
    except BaseException:
        copy.close()
        raise
    return copy
