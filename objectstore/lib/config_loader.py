"""YAML configuration loader for storage engines.

Example YAML (storage.yaml):
    storage:
      backend: filesystem
      root: ./data/objects
      multipart_root: ./data/multipart
      base_url: https://static.example.com/
      umask: "0077"
      hash_algorithm: sha256

    # or
    storage:
      backend: s3
      bucket: ${UPLOAD_BUCKET}
      prefix: uploads/
      region: eu-west-1

Usage:
    from objectstore.lib.config_loader import load_storage
    storage = load_storage("./storage.yaml")
    storage.has("docs/readme.txt").result()
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from objectstore.lib.checksum import resolve_hash_algorithm
from objectstore.lib.env import config_path_from_env, expand_options
from objectstore.lib.errors import ConfigurationError
from objectstore.lib.storage.base import DEFAULT_CONTENT_TYPE, MultipartUpload
from objectstore.lib.storage.filesystem import FilesystemStorage
from objectstore.lib.storage.memory import InMemoryStorage
from objectstore.lib.storage.s3 import S3Storage, create_s3_client

logger = logging.getLogger(__name__)

__all__ = [
    "BACKENDS",
    "StorageConfig",
    "build_storage",
    "load_storage",
    "load_storage_config",
    "parse_storage_config",
    "validate_storage_config",
]

BACKENDS = ("filesystem", "memory", "s3")

# Accepted spellings for each backend
BACKEND_ALIASES = {
    "filesystem": "filesystem",
    "local": "filesystem",
    "fs": "filesystem",
    "memory": "memory",
    "in_memory": "memory",
    "s3": "s3",
}


@dataclass
class StorageConfig:
    """Validated storage configuration."""

    backend: str
    root: Optional[str] = None
    multipart_root: Optional[str] = None
    base_url: str = ""
    umask: int = 0o077
    hash_algorithm: Optional[str] = None
    default_content_type: str = DEFAULT_CONTENT_TYPE
    bucket: Optional[str] = None
    prefix: str = ""
    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


def _resolve_path(path: str, config_dir: Path) -> str:
    """Resolve paths relative to the config file's directory.

    Absolute paths and paths still containing unexpanded variables are
    returned unchanged.
    """
    if not path or os.path.isabs(path) or "$" in path:
        return path
    return str(config_dir / path)


def _parse_umask(value: Any) -> int:
    """Accept an int or an octal string such as "0077" or "0o077"."""
    if isinstance(value, bool):
        raise ConfigurationError("storage.umask must be an octal number", field="umask", value=value)
    if isinstance(value, int):
        umask = value
    else:
        text = str(value).strip().lower()
        if text.startswith("0o"):
            text = text[2:]
        try:
            umask = int(text, 8)
        except ValueError:
            raise ConfigurationError(
                "storage.umask must be an octal number", field="umask", value=value
            ) from None
    if not 0 <= umask <= 0o777:
        raise ConfigurationError("storage.umask must be between 0 and 0777", field="umask", value=value)
    return umask


def parse_storage_config(
    config: Dict[str, Any],
    config_dir: Optional[Path] = None,
) -> StorageConfig:
    """Create a StorageConfig from the ``storage`` section of a YAML file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    config_dir = config_dir or Path.cwd()
    config = expand_options(dict(config))

    backend_name = str(config.pop("backend", "filesystem")).lower()
    if backend_name not in BACKEND_ALIASES:
        valid = ", ".join(BACKENDS)
        raise ConfigurationError(
            f"Invalid backend '{backend_name}'. Valid options: {valid}",
            field="backend",
            value=backend_name,
        )
    backend = BACKEND_ALIASES[backend_name]

    hash_algorithm = config.pop("hash_algorithm", None)
    if hash_algorithm is not None:
        try:
            resolve_hash_algorithm(str(hash_algorithm))
        except ValueError as exc:
            raise ConfigurationError(str(exc), field="hash_algorithm", value=hash_algorithm) from exc

    parsed = StorageConfig(
        backend=backend,
        base_url=str(config.pop("base_url", "") or ""),
        umask=_parse_umask(config.pop("umask", 0o077)),
        hash_algorithm=hash_algorithm,
        default_content_type=str(config.pop("default_content_type", DEFAULT_CONTENT_TYPE)),
        prefix=str(config.pop("prefix", "") or ""),
        region=config.pop("region", None),
        endpoint_url=config.pop("endpoint_url", None),
        bucket=config.pop("bucket", None),
    )

    root = config.pop("root", None)
    multipart_root = config.pop("multipart_root", None)
    if backend == "filesystem":
        if not root:
            raise ConfigurationError("storage.root is required for the filesystem backend", field="root")
        parsed.root = _resolve_path(str(root), config_dir)
        parsed.multipart_root = (
            _resolve_path(str(multipart_root), config_dir)
            if multipart_root
            else f"{parsed.root.rstrip('/')}.multipart"
        )
        if os.path.abspath(parsed.root) == os.path.abspath(parsed.multipart_root):
            raise ConfigurationError(
                "storage.multipart_root must differ from storage.root",
                field="multipart_root",
                value=parsed.multipart_root,
            )
    elif backend == "s3" and not parsed.bucket:
        raise ConfigurationError("storage.bucket is required for the s3 backend", field="bucket")

    if config:
        logger.warning("Ignoring unknown storage options: %s", ", ".join(sorted(config)))
        parsed.extra = config

    return parsed


def load_storage_config(config_path: Optional[Union[str, Path]] = None) -> StorageConfig:
    """Load and validate a storage configuration file.

    Args:
        config_path: YAML file; defaults to $OBJECTSTORE_CONFIG

    Raises:
        ConfigurationError: If the file is missing, empty or invalid
    """
    path = Path(config_path) if config_path else config_path_from_env()
    if path is None:
        raise ConfigurationError("No configuration file given and OBJECTSTORE_CONFIG is not set")
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            document = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax: {e}") from e

    if not document:
        raise ConfigurationError("Empty configuration file")
    section = document.get("storage") if isinstance(document, dict) else None
    if not isinstance(section, dict):
        raise ConfigurationError("Configuration must have a 'storage' section")

    return parse_storage_config(section, path.parent.resolve())


def build_storage(config: StorageConfig, **overrides: Any) -> MultipartUpload:
    """Instantiate the engine described by ``config``.

    ``overrides`` are passed to the engine constructor; for S3 a ``client``
    override replaces the client built from region/endpoint settings.
    """
    if config.backend == "memory":
        return InMemoryStorage(
            base_url=config.base_url,
            hash_algorithm=config.hash_algorithm,
            default_content_type=config.default_content_type,
        )
    if config.backend == "s3":
        client = overrides.pop("client", None) or create_s3_client(
            region=config.region, endpoint_url=config.endpoint_url
        )
        return S3Storage(client, config.bucket or "", config.prefix)

    options: Dict[str, Any] = {
        "base_url": config.base_url,
        "umask": config.umask,
        "hash_algorithm": config.hash_algorithm,
        "default_content_type": config.default_content_type,
    }
    options.update(overrides)
    return FilesystemStorage(config.root or ".", config.multipart_root or ".multipart", **options)


def load_storage(config_path: Optional[Union[str, Path]] = None, **overrides: Any) -> MultipartUpload:
    """Load a configuration file and build its storage engine."""
    config = load_storage_config(config_path)
    storage = build_storage(config, **overrides)
    logger.info("Configured %s storage engine: %r", config.backend, storage)
    return storage


def validate_storage_config(config_path: Union[str, Path]) -> List[str]:
    """Validate a configuration file without building the engine.

    Returns:
        List of validation errors (empty if valid)
    """
    errors: List[str] = []
    try:
        load_storage_config(config_path)
    except ConfigurationError as e:
        errors.append(e.message)
    return errors
