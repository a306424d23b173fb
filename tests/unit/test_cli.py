"""Tests for the ``python -m objectstore`` command line."""

import logging

import pytest

from objectstore.__main__ import build_parser, main


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def store_args(storage_root, multipart_root):
    """Global arguments pointing the CLI at the seeded filesystem engine."""
    return ["--storage", str(storage_root)]


class TestParser:
    def test_requires_command(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_storage_and_config_are_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--storage", "x", "--config", "y", "url", "k"])


class TestCommands:
    def test_url(self, store_args, capsys):
        assert main(store_args + ["--base-url", "https://static.example.com/", "url", "a.txt"]) == 0
        assert capsys.readouterr().out.strip().endswith("https://static.example.com/a.txt")

    def test_put_and_get(self, store_args, storage_root, tmp_path):
        source = tmp_path / "input.txt"
        source.write_bytes(b"from the command line")
        assert main(store_args + ["put", "docs/input.txt", str(source)]) == 0
        assert (storage_root / "docs" / "input.txt").read_bytes() == b"from the command line"

        output = tmp_path / "output.txt"
        assert main(store_args + ["get", "docs/input.txt", "--output", str(output)]) == 0
        assert output.read_bytes() == b"from the command line"

    def test_has(self, store_args, capsys):
        assert main(store_args + ["has", "example.txt"]) == 0
        assert main(store_args + ["has", "missing.txt"]) == 1
        out = capsys.readouterr().out.split()
        assert out[-2:] == ["yes", "no"]

    def test_get_to_stdout(self, store_args, capsysbinary):
        assert main(store_args + ["get", "example.txt"]) == 0
        assert capsysbinary.readouterr().out.endswith(b"hello world")

    def test_get_missing(self, store_args, capsys):
        assert main(store_args + ["get", "missing.txt"]) == 1
        assert "Object not found: missing.txt" in capsys.readouterr().err

    def test_delete(self, store_args, storage_root):
        assert main(store_args + ["delete", "example.txt"]) == 0
        assert not (storage_root / "example.txt").exists()

    def test_delete_directory_fails(self, store_args, capsys):
        assert main(store_args + ["delete", "foo"]) == 1
        assert "Cannot delete foo" in capsys.readouterr().err

    def test_chunked_upload(self, store_args, storage_root, tmp_path):
        data = bytes(range(256)) * 40
        source = tmp_path / "big.bin"
        source.write_bytes(data)

        assert main(store_args + ["upload", "big.bin", str(source), "--part-size", "1000"]) == 0

        assert (storage_root / "big.bin").read_bytes() == data
        leftovers = list((storage_root.parent / (storage_root.name + ".multipart")).iterdir())
        assert leftovers == []

    def test_upload_empty_file(self, store_args, storage_root, tmp_path):
        source = tmp_path / "empty.bin"
        source.write_bytes(b"")
        assert main(store_args + ["upload", "empty.bin", str(source)]) == 0
        assert (storage_root / "empty.bin").read_bytes() == b""

    def test_upload_invalid_part_size(self, store_args, tmp_path):
        source = tmp_path / "a.bin"
        source.write_bytes(b"x")
        assert main(store_args + ["upload", "a.bin", str(source), "--part-size", "0"]) == 2

    def test_config_file(self, tmp_path, capsys):
        config = tmp_path / "storage.yaml"
        config.write_text("storage:\n  root: ./objects\n  base_url: https://cdn.example.com/\n", encoding="utf-8")
        source = tmp_path / "a.txt"
        source.write_bytes(b"x")

        assert main(["--config", str(config), "put", "a.txt", str(source)]) == 0
        assert (tmp_path / "objects" / "a.txt").read_bytes() == b"x"
        assert "https://cdn.example.com/a.txt" in capsys.readouterr().out

    def test_check_config(self, tmp_path, capsys):
        good = tmp_path / "good.yaml"
        good.write_text("storage:\n  backend: memory\n", encoding="utf-8")
        bad = tmp_path / "bad.yaml"
        bad.write_text("storage:\n  backend: ftp\n", encoding="utf-8")

        assert main(["check-config", str(good)]) == 0
        assert main(["check-config", str(bad)]) == 1
        assert "Invalid backend 'ftp'" in capsys.readouterr().err
