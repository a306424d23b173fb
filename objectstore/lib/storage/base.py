"""Abstract base classes for storage engines.

Defines the data model shared by every engine and the two capability
interfaces engines implement: ObjectStorage (url/has/get/put/delete) and
MultipartUpload, which extends it with the multipart upload protocol.

All operations except ``url`` return a concurrent.futures.Future. Errors
are delivered through the future, never raised at call time.
"""

from __future__ import annotations

import mimetypes
from abc import ABC, abstractmethod
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from objectstore.lib.streams import ByteSource

__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "FileObject",
    "FilePart",
    "ObjectStorage",
    "MultipartUpload",
    "guess_content_type",
]

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def guess_content_type(name: str) -> Optional[str]:
    """Infer a MIME type from a key or file name."""
    content_type, _ = mimetypes.guess_type(name, strict=False)
    return content_type


@dataclass(frozen=True)
class FileObject:
    """A named blob with metadata.

    ``data`` is consumed exactly once when the object is written; objects
    returned by ``get`` own a private copy of the stored bytes.
    """

    key: str
    data: Optional[ByteSource] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def content_type(self) -> str:
        """Content type from metadata, else guessed from the key."""
        explicit = self.metadata.get("ContentType")
        if explicit:
            return explicit
        return guess_content_type(self.key) or DEFAULT_CONTENT_TYPE


@dataclass(frozen=True)
class FilePart:
    """One numbered chunk of a multipart upload.

    ``data`` is present while uploading; ``hash`` is the value returned by
    ``multipart_upload`` and is required at finalize.
    """

    part: int
    data: Optional[ByteSource] = None
    hash: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class ObjectStorage(ABC):
    """Core object storage operations."""

    @abstractmethod
    def url(self, key: str) -> str:
        """Return the public URL of an object. Performs no I/O."""

    @abstractmethod
    def has(self, key: str) -> "Future[bool]":
        """Resolve to True if an object is stored under ``key``."""

    @abstractmethod
    def get(self, key: str) -> "Future[FileObject]":
        """Resolve to the object stored under ``key``.

        Rejects with ObjectNotFoundError if there is none.
        """

    @abstractmethod
    def put(self, obj: FileObject) -> "Future[None]":
        """Store ``obj``, consuming its data and replacing any previous object."""

    @abstractmethod
    def delete(self, key: str) -> "Future[None]":
        """Remove the object stored under ``key``, if any."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class MultipartUpload(ObjectStorage):
    """Object storage that can assemble objects from uploaded parts."""

    @abstractmethod
    def multipart_init(self, obj: FileObject) -> "Future[str]":
        """Open an upload session for ``obj.key`` and resolve to its token."""

    @abstractmethod
    def multipart_upload(self, obj: FileObject, token: str, part: FilePart) -> "Future[str]":
        """Store one part and resolve to the hash of its contents."""

    @abstractmethod
    def multipart_finalize(self, obj: FileObject, token: str, *parts: FilePart) -> "Future[None]":
        """Validate ``parts`` and concatenate them into ``obj.key``."""

    @abstractmethod
    def multipart_abort(self, obj: FileObject, token: str) -> "Future[None]":
        """Discard an upload session and all of its parts."""
