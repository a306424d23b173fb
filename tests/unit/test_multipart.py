"""Tests for objectstore/lib/multipart.py - shared multipart protocol checks."""

import re

import pytest

from objectstore.lib.errors import BadDataError
from objectstore.lib.multipart import (
    MAX_PART_NUMBER,
    ensure_sorted,
    new_token,
    not_initialized,
    part_filename,
    take_data,
    validate_part_number,
    verify_part_hash,
)
from objectstore.lib.storage.base import FilePart
from objectstore.lib.streams import ByteSource


class TestPartNumbers:
    def test_part_filename_is_zero_based(self):
        assert part_filename(1) == "part00000"
        assert part_filename(42) == "part00041"
        assert part_filename(MAX_PART_NUMBER) == "part99999"

    @pytest.mark.parametrize("part", [1, 2, MAX_PART_NUMBER])
    def test_valid_numbers(self, part):
        assert validate_part_number(part) == part

    @pytest.mark.parametrize("part", [0, -1, MAX_PART_NUMBER + 1, "1", 1.0, True, None])
    def test_invalid_numbers(self, part):
        with pytest.raises(BadDataError, match="Part number must be an integer between 1 and 100000"):
            validate_part_number(part)


class TestEnsureSorted:
    def test_strictly_increasing(self):
        ensure_sorted([FilePart(1), FilePart(2), FilePart(42)])

    def test_empty_list(self):
        ensure_sorted([])

    def test_descending(self):
        with pytest.raises(BadDataError, match="Parts must be sorted monotonically"):
            ensure_sorted([FilePart(2), FilePart(1)])

    def test_duplicates(self):
        with pytest.raises(BadDataError, match="Parts must be sorted monotonically"):
            ensure_sorted([FilePart(1), FilePart(1)])

    def test_out_of_range_in_list(self):
        with pytest.raises(BadDataError, match="Part number"):
            ensure_sorted([FilePart(0)])


class TestSessionHelpers:
    def test_token_is_unguessable_hex(self):
        tokens = {new_token() for _ in range(10)}
        assert len(tokens) == 10
        assert all(re.fullmatch(r"[0-9a-f]{64}", t) for t in tokens)

    def test_not_initialized_message(self):
        error = not_initialized("EXAMPLE-TOKEN")
        assert isinstance(error, BadDataError)
        assert error.message == "Multipart upload not initialized: EXAMPLE-TOKEN"
        assert error.token == "EXAMPLE-TOKEN"

    def test_verify_part_hash(self):
        verify_part_hash(FilePart(3, hash="abc"), "abc")
        with pytest.raises(BadDataError, match="Hash mismatch for part 3"):
            verify_part_hash(FilePart(3, hash="abc"), "abd")

    def test_verify_missing_hash(self):
        with pytest.raises(BadDataError, match="Hash mismatch for part 1"):
            verify_part_hash(FilePart(1), "abc")


class TestTakeData:
    def test_detaches_stream(self):
        source = ByteSource.from_bytes(b"x")
        stream = take_data(source, "Missing part data")
        assert stream.read() == b"x"
        assert source.detached

    def test_missing_source(self):
        with pytest.raises(BadDataError, match="Missing object data"):
            take_data(None, "Missing object data")

    def test_consumed_source(self):
        source = ByteSource.from_bytes(b"x")
        source.detach()
        with pytest.raises(BadDataError, match="Missing part data"):
            take_data(source, "Missing part data")
