"""Multipart upload protocol shared by all storage engines.

An upload session is opened with ``multipart_init`` (yielding a token),
receives numbered parts through ``multipart_upload`` (each returning the
hash of the stored bytes), and is closed by ``multipart_finalize`` with the
ordered (part number, hash) list, or discarded by ``multipart_abort``.

The checks here are pure and run before an engine touches any data, so
every engine rejects bad input with the same error and the same message.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, BinaryIO, Dict, Iterable, Optional

from objectstore.lib.errors import BadDataError
from objectstore.lib.streams import ByteSource, StreamConsumedError

if TYPE_CHECKING:
    from objectstore.lib.storage.base import FilePart

__all__ = [
    "MAX_PART_NUMBER",
    "TOKEN_BYTES",
    "MultipartSession",
    "UploadedPart",
    "new_token",
    "part_filename",
    "validate_part_number",
    "ensure_sorted",
    "verify_part_hash",
    "not_initialized",
    "take_data",
]

MAX_PART_NUMBER = 100000
TOKEN_BYTES = 32


@dataclass(frozen=True)
class UploadedPart:
    """A part stored by an engine together with the hash computed on upload."""

    part: int
    data: bytes
    hash: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class MultipartSession:
    """In-memory state of one multipart upload."""

    key: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    parts: Dict[int, UploadedPart] = field(default_factory=dict)


def new_token() -> str:
    """Generate an opaque, unguessable upload token."""
    return secrets.token_hex(TOKEN_BYTES)


def part_filename(part: int) -> str:
    """Return the on-disk name of a part (zero-based, zero-padded).

    Example:
        >>> part_filename(42)
        'part00041'
    """
    return f"part{part - 1:05d}"


def validate_part_number(part: Any) -> int:
    """Ensure ``part`` is an integer between 1 and MAX_PART_NUMBER."""
    if isinstance(part, bool) or not isinstance(part, int) or not 1 <= part <= MAX_PART_NUMBER:
        raise BadDataError(
            f"Part number must be an integer between 1 and {MAX_PART_NUMBER}",
            details={"part": part},
        )
    return part


def ensure_sorted(parts: Iterable["FilePart"]) -> None:
    """Reject part lists whose numbers are not strictly increasing."""
    previous = 0
    for file_part in parts:
        validate_part_number(file_part.part)
        if file_part.part <= previous:
            raise BadDataError("Parts must be sorted monotonically", part=file_part.part)
        previous = file_part.part


def verify_part_hash(file_part: "FilePart", actual: str) -> None:
    """Compare the hash declared by the caller with the stored one."""
    if file_part.hash != actual:
        raise BadDataError(
            f"Hash mismatch for part {file_part.part}",
            part=file_part.part,
        )


def not_initialized(token: str) -> BadDataError:
    """Build the error reported for unknown, aborted or foreign tokens."""
    return BadDataError(f"Multipart upload not initialized: {token}", token=token)


def take_data(source: Optional[ByteSource], message: str) -> BinaryIO:
    """Detach the stream from ``source`` or fail with BadDataError."""
    if source is None:
        raise BadDataError(message)
    try:
        return source.detach()
    except StreamConsumedError:
        raise BadDataError(message) from None
