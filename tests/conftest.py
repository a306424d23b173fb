"""Pytest configuration and fixtures."""

import os
from pathlib import Path

import pytest

from objectstore.lib.storage import FileObject, FilesystemStorage, InMemoryStorage
from objectstore.lib.streams import ByteSource

BASE_URL = "https://static.example.com/"
PROJECT_ROOT = Path(__file__).resolve().parents[1]


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: tests that spawn processes or touch external services")


def make_object(key: str, data: bytes = b"", **metadata) -> FileObject:
    """Build a FileObject over an in-memory copy of ``data``."""
    return FileObject(key, ByteSource.from_bytes(data), metadata)


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    """Object root holding a directory ``foo`` and ``example.txt``."""
    root = tmp_path / "files"
    root.mkdir()
    (root / "foo").mkdir()
    (root / "example.txt").write_bytes(b"hello world")
    return root


@pytest.fixture
def process_umask():
    """Run under a permissive process umask so engine modes are observable."""
    previous = os.umask(0o022)
    yield 0o022
    os.umask(previous)


@pytest.fixture
def multipart_root(tmp_path: Path) -> Path:
    path = tmp_path / "multipart"
    path.mkdir()
    return path


@pytest.fixture
def fs_storage(storage_root: Path, multipart_root: Path) -> FilesystemStorage:
    return FilesystemStorage(str(storage_root), str(multipart_root), BASE_URL)


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    storage = InMemoryStorage(BASE_URL)
    storage.put(make_object("example.txt", b"hello world")).result()
    return storage


@pytest.fixture(params=["filesystem", "memory"])
def storage(request, fs_storage, memory_storage):
    """Every engine that runs without external services, pre-seeded with example.txt."""
    if request.param == "filesystem":
        return fs_storage
    return memory_storage


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mock AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.delenv("AWS_ENDPOINT_URL", raising=False)
    monkeypatch.delenv("AWS_REGION", raising=False)
