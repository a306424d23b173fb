"""Tests for objectstore/lib/_path_utils.py - key and token path safety."""

import pytest

from objectstore.lib._path_utils import is_safe_key, is_safe_token, join_path, split_path


class TestJoinPath:
    def test_joins_segments(self):
        assert join_path("/srv/files", "foo/bar.txt") == "/srv/files/foo/bar.txt"

    def test_no_duplicate_separator(self):
        assert join_path("/srv/files/", "a.txt") == "/srv/files/a.txt"

    def test_empty(self):
        assert join_path() == ""

    def test_split(self):
        assert split_path("a/b/c.txt") == ["a", "b", "c.txt"]
        assert split_path("") == []


class TestKeySafety:
    """Keys must stay below the storage root."""

    @pytest.mark.parametrize("key", ["a.txt", "foo/bar.txt", "deep/er/path/x.bin", "..hidden", "a..b"])
    def test_safe_keys(self, key):
        assert is_safe_key(key)

    @pytest.mark.parametrize(
        "key",
        ["", "/etc/passwd", "../escape", "foo/../../x", "foo/./bar", "foo//bar", "foo/", "a\\b", "a\0b"],
    )
    def test_unsafe_keys(self, key):
        assert not is_safe_key(key)


class TestTokenSafety:
    """Tokens name exactly one directory level."""

    def test_hex_token(self):
        assert is_safe_token("ab" * 32)
        assert is_safe_token("EXAMPLE-TOKEN")

    @pytest.mark.parametrize("token", ["", ".", "..", "a/b", "../x", "a\\b", "a\0b"])
    def test_unsafe_tokens(self, token):
        assert not is_safe_token(token)
