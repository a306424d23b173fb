"""Uniform async-result wrapper for storage operations.

Every engine operation returns a concurrent.futures.Future. Synchronous
engines (filesystem, memory) do their work at call time and hand back an
already settled future, so call sites look the same whether a backend is
truly asynchronous or not. Exceptions never escape the call; they are
stored on the future and re-raised by ``.result()``.
"""

from __future__ import annotations

import functools
from concurrent.futures import Future
from typing import Any, Callable, TypeVar

__all__ = ["run_sync", "deferred", "resolved", "rejected"]

T = TypeVar("T")


def resolved(value: Any) -> "Future[Any]":
    """Return a future already fulfilled with ``value``."""
    future: "Future[Any]" = Future()
    future.set_result(value)
    return future


def rejected(exc: BaseException) -> "Future[Any]":
    """Return a future already rejected with ``exc``."""
    future: "Future[Any]" = Future()
    future.set_exception(exc)
    return future


def run_sync(func: Callable[..., Any], *args: Any, **kwargs: Any) -> "Future[Any]":
    """Run ``func`` now and capture its outcome in a future.

    If ``func`` itself returns a Future it is passed through unchanged.
    """
    try:
        result = func(*args, **kwargs)
    except Exception as exc:
        return rejected(exc)
    if isinstance(result, Future):
        return result
    return resolved(result)


def deferred(method: Callable[..., T]) -> Callable[..., "Future[T]"]:
    """Decorator turning a synchronous method into one returning a Future.

    Example:
        >>> class Engine:
        ...     @deferred
        ...     def has(self, key):
        ...         return key == "a"
        >>> Engine().has("a").result()
        True
    """

    @functools.wraps(method)
    def wrapper(*args: Any, **kwargs: Any) -> "Future[T]":
        return run_sync(method, *args, **kwargs)

    return wrapper
