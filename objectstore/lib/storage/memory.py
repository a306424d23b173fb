"""In-memory storage engine.

Reference implementation of the storage and multipart contract, free of
filesystem quirks. Useful as a test double: it makes the same decisions as
FilesystemStorage, in the same order (ordering checked before any lookup,
hashes checked before the final write, unknown tokens reported as not
initialized).
"""

from __future__ import annotations

import io
import logging
import threading
from typing import Any, Dict, Optional, Tuple

from objectstore.lib.checksum import hash_bytes, resolve_hash_algorithm
from objectstore.lib.errors import BadDataError, ObjectNotFoundError
from objectstore.lib.futures import deferred
from objectstore.lib.multipart import (
    MultipartSession,
    UploadedPart,
    ensure_sorted,
    new_token,
    not_initialized,
    take_data,
    validate_part_number,
    verify_part_hash,
)
from objectstore.lib.storage.base import (
    DEFAULT_CONTENT_TYPE,
    FileObject,
    FilePart,
    MultipartUpload,
    guess_content_type,
)
from objectstore.lib.streams import ByteSource

logger = logging.getLogger(__name__)

__all__ = ["InMemoryStorage"]


class InMemoryStorage(MultipartUpload):
    """Object storage held in process memory.

    Every operation runs under a re-entrant lock, so a shared instance can
    be used from several threads.

    Example:
        >>> storage = InMemoryStorage("https://static.example.com/")
        >>> storage.put(FileObject("a.txt", ByteSource.from_bytes(b"hi"))).result()
        >>> storage.has("a.txt").result()
        True
    """

    def __init__(
        self,
        base_url: str = "",
        hash_algorithm: Optional[str] = None,
        default_content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> None:
        self.base_url = base_url
        self.hash_algorithm = resolve_hash_algorithm(hash_algorithm)
        self.default_content_type = default_content_type
        self._objects: Dict[str, Tuple[bytes, Dict[str, Any]]] = {}
        self._uploads: Dict[str, MultipartSession] = {}
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(objects={len(self._objects)}, uploads={len(self._uploads)})"

    def _session(self, obj: FileObject, token: str) -> MultipartSession:
        session = self._uploads.get(token)
        if session is None or session.key != obj.key:
            raise not_initialized(token)
        return session

    def url(self, key: str) -> str:
        return self.base_url + key

    @deferred
    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._objects

    @deferred
    def get(self, key: str) -> FileObject:
        with self._lock:
            try:
                data, metadata = self._objects[key]
            except KeyError:
                raise ObjectNotFoundError(f"Object not found: {key}", key=key) from None
        metadata = dict(metadata)
        if not metadata.get("ContentType"):
            metadata["ContentType"] = guess_content_type(key) or self.default_content_type
        return FileObject(key, ByteSource(io.BytesIO(data)), metadata)

    @deferred
    def put(self, obj: FileObject) -> None:
        source = take_data(obj.data, "Missing object data")
        try:
            data = source.read()
        finally:
            source.close()
        with self._lock:
            self._objects[obj.key] = (data, dict(obj.metadata))

    @deferred
    def delete(self, key: str) -> None:
        with self._lock:
            self._objects.pop(key, None)

    @deferred
    def multipart_init(self, obj: FileObject) -> str:
        token = new_token()
        with self._lock:
            self._uploads[token] = MultipartSession(key=obj.key, metadata=dict(obj.metadata))
        logger.info("Initialized multipart upload %s for %s", token, obj.key)
        return token

    @deferred
    def multipart_upload(self, obj: FileObject, token: str, part: FilePart) -> str:
        validate_part_number(part.part)
        with self._lock:
            session = self._session(obj, token)
            source = take_data(part.data, "Missing part data")
            try:
                data = source.read()
            finally:
                source.close()

            digest = hash_bytes(data, self.hash_algorithm)
            session.parts[part.part] = UploadedPart(part.part, data, digest, dict(part.metadata))
        return digest

    @deferred
    def multipart_finalize(self, obj: FileObject, token: str, *parts: FilePart) -> None:
        with self._lock:
            session = self._session(obj, token)
            ensure_sorted(parts)

            chunks = []
            for file_part in parts:
                uploaded = session.parts.get(file_part.part)
                if uploaded is None:
                    raise BadDataError(f"Part not uploaded: {file_part.part}", token=token, part=file_part.part)
                verify_part_hash(file_part, uploaded.hash)
                chunks.append(uploaded.data)

            self._objects[obj.key] = (b"".join(chunks), dict(session.metadata or obj.metadata))
            del self._uploads[token]
        logger.info("Finalized multipart upload %s into %s (%d parts)", token, obj.key, len(parts))

    @deferred
    def multipart_abort(self, obj: FileObject, token: str) -> None:
        with self._lock:
            self._uploads.pop(token, None)
        logger.info("Aborted multipart upload %s for %s", token, obj.key)
