"""Local filesystem storage engine.

Emulates an object store on a POSIX filesystem. Finalized objects live at
``root/<key>``; parts of in-flight multipart uploads live at
``multipart_root/<token>/<hash(key)>/part<NNNNN>``. All state is on disk and
concurrent access is synchronised only by advisory file locks.
"""

from __future__ import annotations

import logging
import os
from contextlib import ExitStack
from typing import BinaryIO, List, Optional

from objectstore.lib._path_utils import is_safe_key, is_safe_token, join_path
from objectstore.lib.checksum import hash_bytes, hash_stream, resolve_hash_algorithm
from objectstore.lib.errors import BadDataError, ObjectNotFoundError, StorageError
from objectstore.lib.futures import deferred
from objectstore.lib.locks import locked_read, locked_write, make_dirs, remove_tree
from objectstore.lib.multipart import (
    ensure_sorted,
    new_token,
    not_initialized,
    part_filename,
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
from objectstore.lib.streams import ByteSource, temporary_copy

logger = logging.getLogger(__name__)

__all__ = ["FilesystemStorage"]


class FilesystemStorage(MultipartUpload):
    """Object storage backed by a local directory tree.

    Only the bytes are persisted. ``get`` infers the content type from the
    key, so a ``ContentType`` given at ``put`` time does not round-trip
    (unlike InMemoryStorage, which keeps the metadata).

    Example:
        >>> storage = FilesystemStorage("/srv/files", "/srv/parts", "https://static.example.com/")
        >>> storage.put(FileObject("docs/a.txt", ByteSource.from_bytes(b"hi"))).result()
        >>> storage.get("docs/a.txt").result().data.read()
        b'hi'
    """

    def __init__(
        self,
        root: str,
        multipart_root: str,
        base_url: str = "",
        umask: int = 0o077,
        hash_algorithm: Optional[str] = None,
        default_content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> None:
        """Initialize the filesystem engine.

        Args:
            root: Directory where finalized objects are stored
            multipart_root: Directory for incomplete multipart uploads;
                must not overlap ``root``
            base_url: Public base URL prepended to keys by ``url()``
            umask: Permission bits removed from created files and directories
            hash_algorithm: hashlib algorithm for part and key hashes
                (defaults to the preferred available one)
            default_content_type: Content type reported when none can be
                inferred
        """
        self.root = os.fspath(root)
        self.multipart_root = os.fspath(multipart_root)
        self.base_url = base_url
        self.umask = 0o777 & umask
        self.hash_algorithm = resolve_hash_algorithm(hash_algorithm)
        self.default_content_type = default_content_type

    @property
    def dir_mode(self) -> int:
        return 0o777 & ~self.umask

    @property
    def file_mode(self) -> int:
        return 0o666 & ~self.umask

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(root={self.root!r}, "
            f"multipart_root={self.multipart_root!r})"
        )

    def _object_path(self, key: str) -> str:
        if not is_safe_key(key):
            raise BadDataError(f"Invalid object key: {key}", key=key)
        return join_path(self.root, key)

    def _session_path(self, obj: FileObject, token: str, check_initialized: bool = False) -> str:
        """Return the directory holding the parts of an upload session."""
        if not is_safe_token(token):
            raise not_initialized(token)
        path = join_path(
            self.multipart_root,
            token,
            hash_bytes(obj.key.encode("utf-8"), self.hash_algorithm),
        )
        if check_initialized and not os.path.isdir(path):
            raise not_initialized(token)
        return path

    def _write(self, key: str, *sources: BinaryIO) -> None:
        """Write the concatenation of ``sources`` to ``key`` and close them."""
        try:
            path = self._object_path(key)
            make_dirs(os.path.dirname(path), self.dir_mode)
            locked_write(path, self.file_mode, *sources)
        finally:
            for source in sources:
                source.close()

    def url(self, key: str) -> str:
        return self.base_url + key

    @deferred
    def has(self, key: str) -> bool:
        if not is_safe_key(key):
            return False
        return os.path.isfile(join_path(self.root, key))

    @deferred
    def get(self, key: str) -> FileObject:
        path = self._object_path(key)
        if not os.path.isfile(path):
            raise ObjectNotFoundError(f"Object not found: {key}", key=key)

        with locked_read(path) as fh:
            copy = temporary_copy(fh)

        content_type = guess_content_type(path) or self.default_content_type
        return FileObject(key, ByteSource(copy), {"ContentType": content_type})

    @deferred
    def put(self, obj: FileObject) -> None:
        source = take_data(obj.data, "Missing object data")
        self._write(obj.key, source)
        logger.debug("Stored object %s", obj.key)

    @deferred
    def delete(self, key: str) -> None:
        path = self._object_path(key)
        if not os.path.lexists(path):
            return
        if not os.path.isfile(path):
            raise StorageError(f"Cannot delete {key}", key=key)
        try:
            os.unlink(path)
        except OSError as exc:
            raise StorageError(f"Cannot delete {key}", key=key, cause=exc) from exc
        logger.debug("Deleted object %s", key)

    @deferred
    def multipart_init(self, obj: FileObject) -> str:
        token = new_token()
        make_dirs(self._session_path(obj, token), self.dir_mode)
        logger.info("Initialized multipart upload %s for %s", token, obj.key)
        return token

    @deferred
    def multipart_upload(self, obj: FileObject, token: str, part: FilePart) -> str:
        validate_part_number(part.part)
        path = join_path(self._session_path(obj, token, True), part_filename(part.part))
        source = take_data(part.data, "Missing part data")

        digest: List[str] = []

        def _hash(fh: BinaryIO) -> None:
            fh.seek(0)
            digest.append(hash_stream(fh, self.hash_algorithm))

        try:
            locked_write(path, self.file_mode, source, callback=_hash)
        finally:
            source.close()

        logger.debug("Stored part %d of upload %s for %s", part.part, token, obj.key)
        return digest[0]

    def _read_parts(self, obj: FileObject, token: str, parts: List[FilePart], stack: ExitStack) -> List[BinaryIO]:
        """Open, lock and verify every part, in order.

        Handles are registered on ``stack`` so they are closed if a later
        part fails validation.
        """
        base_path = self._session_path(obj, token, True)
        ensure_sorted(parts)

        handles: List[BinaryIO] = []
        for file_part in parts:
            path = join_path(base_path, part_filename(file_part.part))
            if not os.path.isfile(path):
                raise BadDataError(f"Part not uploaded: {file_part.part}", token=token, part=file_part.part)

            fh = stack.enter_context(locked_read(path))
            verify_part_hash(file_part, hash_stream(fh, self.hash_algorithm))
            fh.seek(0)
            handles.append(fh)
        return handles

    @deferred
    def multipart_finalize(self, obj: FileObject, token: str, *parts: FilePart) -> None:
        with ExitStack() as stack:
            handles = self._read_parts(obj, token, list(parts), stack)
            self._write(obj.key, *handles)
        self._cleanup(token)
        logger.info("Finalized multipart upload %s into %s (%d parts)", token, obj.key, len(parts))

    @deferred
    def multipart_abort(self, obj: FileObject, token: str) -> None:
        self._cleanup(token)
        logger.info("Aborted multipart upload %s for %s", token, obj.key)

    def _cleanup(self, token: str) -> None:
        """Remove every part uploaded under ``token``."""
        if not is_safe_token(token):
            return
        remove_tree(join_path(self.multipart_root, token))
