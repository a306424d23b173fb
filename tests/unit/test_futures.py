"""Tests for objectstore/lib/futures.py - async-result wrapper."""

from concurrent.futures import Future

import pytest

from objectstore.lib.futures import deferred, rejected, resolved, run_sync


class TestSettledFutures:
    """Tests for resolved() and rejected()."""

    def test_resolved(self):
        future = resolved(42)
        assert future.done()
        assert future.result() == 42

    def test_rejected(self):
        error = RuntimeError("boom")
        future = rejected(error)
        assert future.done()
        assert future.exception() is error
        with pytest.raises(RuntimeError, match="boom"):
            future.result()


class TestRunSync:
    """Tests for run_sync()."""

    def test_return_value_fulfils(self):
        assert run_sync(lambda a, b: a + b, 1, b=2).result() == 3

    def test_exception_rejects(self):
        """Exceptions are captured instead of raised at call time."""

        def fail():
            raise KeyError("missing")

        future = run_sync(fail)
        assert isinstance(future.exception(), KeyError)

    def test_work_runs_immediately(self):
        calls = []
        run_sync(calls.append, "ran")
        assert calls == ["ran"]

    def test_returned_future_passes_through(self):
        """A future returned by the function is not wrapped again."""
        inner: Future = Future()
        assert run_sync(lambda: inner) is inner


class TestDeferred:
    """Tests for the deferred decorator."""

    def test_method_returns_future(self):
        class Engine:
            @deferred
            def has(self, key):
                return key == "a"

        engine = Engine()
        assert isinstance(engine.has("a"), Future)
        assert engine.has("a").result() is True
        assert engine.has("b").result() is False

    def test_errors_become_rejections(self):
        class Engine:
            @deferred
            def get(self, key):
                raise LookupError(key)

        future = Engine().get("x")
        with pytest.raises(LookupError):
            future.result()

    def test_preserves_metadata(self):
        class Engine:
            @deferred
            def put(self, obj):
                """Store an object."""

        assert Engine.put.__name__ == "put"
        assert Engine.put.__doc__ == "Store an object."
