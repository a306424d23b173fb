"""Object storage with a multipart upload protocol.

Engines store objects on the local filesystem (crash-consistent through
advisory file locks), in memory, or on AWS S3, behind one interface whose
operations all return concurrent.futures.Future objects.

Usage:
    from objectstore import FileObject, get_storage
    from objectstore.lib.streams import ByteSource

    storage = get_storage("./data/objects", base_url="https://static.example.com/")
    storage.put(FileObject("docs/a.txt", ByteSource.from_bytes(b"hello"))).result()
"""

from objectstore.lib.errors import BadDataError, ObjectNotFoundError, StorageError
from objectstore.lib.storage import (
    FileObject,
    FilePart,
    FilesystemStorage,
    InMemoryStorage,
    MultipartUpload,
    ObjectStorage,
    S3Storage,
    get_storage,
)

__version__ = "0.1.0"

__all__ = [
    "BadDataError",
    "FileObject",
    "FilePart",
    "FilesystemStorage",
    "InMemoryStorage",
    "MultipartUpload",
    "ObjectNotFoundError",
    "ObjectStorage",
    "S3Storage",
    "StorageError",
    "get_storage",
]
