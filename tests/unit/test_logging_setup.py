"""Tests for objectstore logging utilities."""

import json
import logging
import sys

import pytest

from objectstore.lib.errors import BadDataError, StorageError
from objectstore.lib.logging import JSONFormatter, setup_logging


def make_record(msg="Test message", args=(), level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name="objectstore.lib.locks",
        level=level,
        pathname="/test/file.py",
        lineno=42,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestJSONFormatter:
    """Tests for JSONFormatter class."""

    def test_basic_format(self):
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "objectstore.lib.locks"
        assert data["message"] == "Test message"
        assert data["timestamp"].endswith("Z")
        assert data["source"] == "file:42"
        assert isinstance(data["pid"], int)
        assert "extra" not in data

    def test_format_with_args(self):
        record = make_record("Cannot acquire %s lock: %s", ("shared", "/srv/a.txt"))
        data = json.loads(JSONFormatter().format(record))
        assert data["message"] == "Cannot acquire shared lock: /srv/a.txt"

    def test_format_with_exception(self):
        try:
            raise OSError("disk gone")
        except OSError:
            exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(make_record(level=logging.ERROR, exc_info=exc_info)))
        assert "OSError: disk gone" in data["exception"]
        assert "error" not in data

    def test_storage_context_is_top_level(self):
        record = make_record()
        record.key = "docs/a.txt"
        record.token = "abc"
        record.part = 3
        record.attempt = 2
        data = json.loads(JSONFormatter().format(record))

        assert data["key"] == "docs/a.txt"
        assert data["token"] == "abc"
        assert data["part"] == 3
        assert data["extra"] == {"attempt": 2}

    def test_storage_error_context(self):
        try:
            raise BadDataError("Hash mismatch for part 2", key="a.txt", token="abc", part=2)
        except BadDataError:
            exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(make_record(level=logging.ERROR, exc_info=exc_info)))
        assert data["error"]["error_type"] == "BadDataError"
        assert data["error"]["message"] == "Hash mismatch for part 2"
        assert (data["key"], data["token"], data["part"]) == ("a.txt", "abc", 2)

    def test_explicit_context_wins_over_error(self):
        try:
            raise StorageError("Cannot delete a.txt", key="a.txt")
        except StorageError:
            exc_info = sys.exc_info()

        record = make_record(level=logging.ERROR, exc_info=exc_info)
        record.key = "b.txt"
        data = json.loads(JSONFormatter().format(record))
        assert data["key"] == "b.txt"
        assert data["error"]["key"] == "a.txt"

    def test_exclude_fields(self):
        record = make_record()
        record.request_id = "r-1"
        record.attempt = 2
        data = json.loads(JSONFormatter(exclude_fields=["request_id"]).format(record))
        assert data["extra"] == {"attempt": 2}


class TestSetupLogging:
    def test_default_level(self, restore_root_logger):
        setup_logging()
        assert restore_root_logger.level == logging.INFO
        assert len(restore_root_logger.handlers) == 1

    def test_verbose(self, restore_root_logger):
        setup_logging(verbose=True)
        assert restore_root_logger.level == logging.DEBUG
        assert logging.getLogger("botocore").level == logging.WARNING

    def test_json_format(self, restore_root_logger):
        setup_logging(json_format=True)
        assert isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)

    def test_log_file(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "objectstore.log"
        setup_logging(log_file=str(log_file))
        logging.getLogger("objectstore.test").info("written to file")
        for handler in restore_root_logger.handlers:
            handler.flush()
        assert "written to file" in log_file.read_text(encoding="utf-8")

    def test_repeated_setup_does_not_duplicate(self, restore_root_logger):
        setup_logging()
        setup_logging()
        assert len(restore_root_logger.handlers) == 1
