"""Storage engine abstraction.

Provides one interface for storing objects on the local filesystem, in
memory, or on AWS S3, including multipart uploads.

Usage:
    from objectstore.lib.storage import get_storage

    # Local filesystem (parts go to ./data/objects.multipart)
    storage = get_storage("./data/objects", base_url="https://static.example.com/")

    # In memory (tests)
    storage = get_storage("memory://")

    # AWS S3
    storage = get_storage("s3://my-bucket/uploads/")
"""

from __future__ import annotations

from typing import Any, Tuple

from objectstore.lib.storage.base import (
    DEFAULT_CONTENT_TYPE,
    FileObject,
    FilePart,
    MultipartUpload,
    ObjectStorage,
)
from objectstore.lib.storage.filesystem import FilesystemStorage
from objectstore.lib.storage.memory import InMemoryStorage
from objectstore.lib.storage.s3 import S3Storage, create_s3_client

__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "FileObject",
    "FilePart",
    "ObjectStorage",
    "MultipartUpload",
    "FilesystemStorage",
    "InMemoryStorage",
    "S3Storage",
    "get_storage",
    "parse_uri",
]


def parse_uri(path: str) -> Tuple[str, str]:
    """Parse a storage URI into scheme and path.

    Args:
        path: Storage location (local path or URI)

    Returns:
        Tuple of (scheme, path) where scheme is 'local', 'memory' or 's3'

    Examples:
        >>> parse_uri("./data/objects/")
        ('local', './data/objects/')
        >>> parse_uri("file:///srv/objects")
        ('local', '/srv/objects')
        >>> parse_uri("s3://my-bucket/uploads/")
        ('s3', 'my-bucket/uploads/')
        >>> parse_uri("memory://")
        ('memory', '')
    """
    if path.startswith("s3://"):
        return ("s3", path[5:])
    elif path.startswith("memory://"):
        return ("memory", path[9:])
    elif path.startswith("file://"):
        return ("local", path[7:])
    else:
        return ("local", path)


def get_storage(path: str, **options: Any) -> MultipartUpload:
    """Get the storage engine for a location.

    Args:
        path: Storage location (local path or URI)
        **options: Engine options. Filesystem: multipart_root, base_url,
            umask, hash_algorithm, default_content_type. Memory: base_url,
            hash_algorithm, default_content_type. S3: client, region,
            endpoint_url.

    Returns:
        Storage engine instance for the detected scheme

    Examples:
        >>> storage = get_storage("./data/objects")
        >>> storage = get_storage("s3://my-bucket/uploads/", region="eu-west-1")
    """
    scheme, rest = parse_uri(path)

    if scheme == "s3":
        bucket, _, prefix = rest.partition("/")
        client = options.pop("client", None) or create_s3_client(**options)
        return S3Storage(client, bucket, prefix)
    elif scheme == "memory":
        return InMemoryStorage(**options)
    else:
        root = rest.rstrip("/") or "."
        multipart_root = options.pop("multipart_root", None) or f"{root}.multipart"
        return FilesystemStorage(root, multipart_root, **options)
