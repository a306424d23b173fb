"""Storage library modules.

This package contains the storage engines and the primitives they share:
byte sources, futures, locked file access, hashing and the multipart
session protocol.
"""

from objectstore.lib.checksum import hash_bytes, hash_stream, preferred_hash_algorithm
from objectstore.lib.config_loader import (
    StorageConfig,
    build_storage,
    load_storage,
    load_storage_config,
    validate_storage_config,
)
from objectstore.lib.env import expand_env_vars, expand_options, load_env_file
from objectstore.lib.errors import (
    BadDataError,
    ConfigurationError,
    ObjectNotFoundError,
    StorageError,
)
from objectstore.lib.futures import deferred, rejected, resolved, run_sync
from objectstore.lib.logging import JSONFormatter, setup_logging
from objectstore.lib.multipart import MAX_PART_NUMBER
from objectstore.lib.storage import (
    FileObject,
    FilePart,
    FilesystemStorage,
    InMemoryStorage,
    MultipartUpload,
    ObjectStorage,
    S3Storage,
    get_storage,
    parse_uri,
)
from objectstore.lib.streams import ByteSource, StreamConsumedError

__all__ = [
    # Data model and engines
    "FileObject",
    "FilePart",
    "ObjectStorage",
    "MultipartUpload",
    "FilesystemStorage",
    "InMemoryStorage",
    "S3Storage",
    "get_storage",
    "parse_uri",
    "MAX_PART_NUMBER",
    # Streams and futures
    "ByteSource",
    "StreamConsumedError",
    "deferred",
    "rejected",
    "resolved",
    "run_sync",
    # Errors
    "StorageError",
    "ObjectNotFoundError",
    "BadDataError",
    "ConfigurationError",
    # Configuration
    "StorageConfig",
    "build_storage",
    "load_storage",
    "load_storage_config",
    "validate_storage_config",
    "expand_env_vars",
    "expand_options",
    "load_env_file",
    # Hashing and logging
    "hash_bytes",
    "hash_stream",
    "preferred_hash_algorithm",
    "JSONFormatter",
    "setup_logging",
]
