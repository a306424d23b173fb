"""Locked file primitives for the filesystem storage engine.

Locks are advisory ``flock`` locks on the data files themselves. They are
held for the duration of a single read or write and are never waited on:
a lock that cannot be taken immediately is reported as a StorageError.

Because a writer holds an exclusive lock from before truncation until the
last byte is written, readers asking for a shared lock during a write fail
outright and can never observe a half-written file.
"""

from __future__ import annotations

import fcntl
import logging
import os
import shutil
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Union

from objectstore.lib.errors import ObjectNotFoundError, StorageError
from objectstore.lib.streams import copy_stream

logger = logging.getLogger(__name__)

__all__ = [
    "touch_and_chmod",
    "locked_read",
    "locked_write",
    "make_dirs",
    "remove_tree",
]

PathLike = Union[str, Path]


def _check_mode(mode: int) -> None:
    if not 0 <= mode <= 0o777:
        raise ValueError(f"Permissions should be a three-digit octal number, got {mode:o}")


def touch_and_chmod(path: PathLike, mode: int) -> None:
    """Create ``path`` if it does not exist, then set its permissions.

    An existing path that is not a regular file is left untouched.
    """
    _check_mode(mode)
    if os.path.exists(path) and not os.path.isfile(path):
        raise StorageError(f"Not a regular file: {path}")
    try:
        Path(path).touch(exist_ok=True)
    except OSError as exc:
        raise StorageError(f"Cannot touch: {path}", cause=exc) from exc
    try:
        os.chmod(path, mode)
    except OSError as exc:
        raise StorageError(f"Cannot set permission {mode:o}: {path}", cause=exc) from exc


def locked_read(path: PathLike) -> BinaryIO:
    """Open a file for reading and take a non-blocking shared lock.

    The lock is released when the returned handle is closed.

    Raises:
        ObjectNotFoundError: path is not an existing, readable regular file
        StorageError: the file cannot be opened or is locked by a writer
    """
    if not os.path.isfile(path) or not os.access(path, os.R_OK):
        raise ObjectNotFoundError(f"File does not exist: {path}")

    try:
        fh = open(path, "rb")
    except OSError as exc:
        raise StorageError(f"Cannot open: {path}", cause=exc) from exc

    try:
        fcntl.flock(fh.fileno(), fcntl.LOCK_SH | fcntl.LOCK_NB)
    except OSError as exc:
        fh.close()
        logger.warning("Shared lock contended on %s", path)
        raise StorageError(f"Cannot acquire shared lock: {path}", cause=exc) from exc

    logger.debug("Acquired shared lock %s by pid %s", path, os.getpid())
    return fh


def locked_write(
    path: PathLike,
    mode: int,
    *sources: BinaryIO,
    callback: Optional[Callable[[BinaryIO], None]] = None,
) -> None:
    """Replace the contents of a file while holding an exclusive lock.

    Permissions are set before the file is opened. The file is opened
    without truncation, locked, and only then truncated, so an unlocked
    writer can never clobber data a concurrent writer holds. Sources are
    copied in order; ``callback`` then receives the still-locked handle
    (readable and seekable) before it is closed.

    Args:
        path: Destination file
        mode: Permission bits for the file
        *sources: Streams whose remaining contents are concatenated
        callback: Optional function invoked with the locked handle

    Raises:
        StorageError: the file cannot be opened, locked, truncated or written
    """
    touch_and_chmod(path, mode)
    try:
        fd = os.open(path, os.O_RDWR | os.O_CREAT, mode)
        fh = os.fdopen(fd, "r+b")
    except OSError as exc:
        raise StorageError(f"Cannot open: {path}", cause=exc) from exc

    with fh:
        try:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as exc:
            logger.warning("Exclusive lock contended on %s", path)
            raise StorageError(f"Cannot acquire exclusive lock: {path}", cause=exc) from exc
        logger.debug("Acquired exclusive lock %s by pid %s", path, os.getpid())

        try:
            fh.truncate(0)
        except OSError as exc:
            raise StorageError(f"Cannot truncate file: {path}", cause=exc) from exc

        written = 0
        try:
            for source in sources:
                written += copy_stream(source, fh)
            fh.flush()
        except OSError as exc:
            raise StorageError(f"Cannot write file: {path}", cause=exc) from exc

        if callback is not None:
            callback(fh)

    logger.debug("Wrote %d bytes to %s", written, path)


def make_dirs(path: PathLike, mode: int) -> None:
    """Ensure a directory exists, creating every missing level with ``mode``.

    Directories that already exist keep their permissions.
    """
    _check_mode(mode)
    missing = []
    current = os.path.abspath(path)
    while not os.path.isdir(current):
        missing.append(current)
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent

    for directory in reversed(missing):
        try:
            os.mkdir(directory, mode)
        except FileExistsError:
            if not os.path.isdir(directory):
                raise StorageError(f"Cannot create directory: {directory}") from None
            continue
        except OSError as exc:
            raise StorageError(f"Cannot create directory: {directory}", cause=exc) from exc
        # mkdir is narrowed by the process umask
        try:
            os.chmod(directory, mode)
        except OSError as exc:
            raise StorageError(f"Cannot set permission {mode:o}: {directory}", cause=exc) from exc


def remove_tree(path: PathLike) -> None:
    """Recursively remove a directory and its contents; no-op if absent."""
    if not os.path.lexists(path):
        return
    try:
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.unlink(path)
    except FileNotFoundError:
        return
    except OSError as exc:
        raise StorageError(f"Cannot remove: {path}", cause=exc) from exc
