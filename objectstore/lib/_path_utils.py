"""Internal helpers for mapping keys and tokens onto filesystem paths.

Keys are path-like strings relative to a storage root. These helpers keep
every resolved path inside its root so the filesystem engine never touches
files outside the trees it owns.
"""

from __future__ import annotations

import posixpath
from typing import Iterable

__all__ = ["join_path", "split_path", "is_safe_key", "is_safe_token"]


def split_path(path: str) -> list[str]:
    """Split a slash-separated path into segments.

    Example:
        >>> split_path("a/b/c.txt")
        ['a', 'b', 'c.txt']
    """
    return path.split("/") if path else []


def join_path(*paths: str) -> str:
    """Join path segments with ``/``.

    An absolute segment discards everything to its left, matching
    ``posixpath.join``.

    Example:
        >>> join_path("/srv/files", "foo/bar.txt")
        '/srv/files/foo/bar.txt'
    """
    if not paths:
        return ""
    return posixpath.join(*paths)


def _has_unsafe_segment(segments: Iterable[str]) -> bool:
    return any(segment in ("", ".", "..") for segment in segments)


def is_safe_key(key: str) -> bool:
    """Return True if ``key`` stays below the root it is joined to."""
    if not key or key.startswith("/") or "\\" in key or "\0" in key:
        return False
    return not _has_unsafe_segment(split_path(key))


def is_safe_token(token: str) -> bool:
    """Return True if ``token`` names exactly one directory level."""
    if not token or "\0" in token:
        return False
    return "/" not in token and "\\" not in token and token not in (".", "..")
