"""Tests for task id encoding."""

from datetime import datetime, timezone

import pytest

from strategy_vault.errors import InvalidInputError
from strategy_vault.execution import decode_task_id, encode_task_id, is_valid_task_id

SUBMITTED_AT = datetime(2024, 1, 1, 12, 0, 0, 500000, tzinfo=timezone.utc)


class TestEncodeTaskId:
    """Test encode_task_id."""

    def test_shape(self):
        """0x, 12 hex digits of epoch millis, then the suffix."""
        task_id = encode_task_id(SUBMITTED_AT, "deadbeef")

        assert task_id == "0x" + f"{1704110400500:012x}" + "deadbeef"
        assert len(task_id) == 2 + 12 + 8

    def test_random_suffix(self):
        """Without a suffix, ids for the same instant differ."""
        first = encode_task_id(SUBMITTED_AT)
        second = encode_task_id(SUBMITTED_AT)

        assert first[:14] == second[:14]
        assert is_valid_task_id(first)

    def test_suffix_lowercased(self):
        """Suffixes are stored lower-case."""
        assert encode_task_id(SUBMITTED_AT, "DEADBEEF").endswith("deadbeef")

    @pytest.mark.parametrize("suffix", ["abc", "xyz12345", "a" * 65])
    def test_bad_suffix(self, suffix):
        """Suffixes must be 8-64 hex digits."""
        with pytest.raises(InvalidInputError):
            encode_task_id(SUBMITTED_AT, suffix)

    def test_pre_epoch_rejected(self):
        """Instants before the epoch cannot be encoded."""
        with pytest.raises(InvalidInputError):
            encode_task_id(datetime(1969, 12, 31, tzinfo=timezone.utc))


class TestDecodeTaskId:
    """Test decode_task_id."""

    def test_recovers_instant(self):
        """Decoding recovers the submission instant to the millisecond."""
        decoded = decode_task_id(encode_task_id(SUBMITTED_AT, "0123456789abcdef"))

        assert decoded.submitted_at == SUBMITTED_AT
        assert decoded.suffix == "0123456789abcdef"

    def test_remote_task_id_suffix(self):
        """A 64-digit remote task id fits in the suffix."""
        remote = "ab" * 32
        assert decode_task_id(encode_task_id(SUBMITTED_AT, remote)).suffix == remote

    @pytest.mark.parametrize("task_id", [
        None,
        42,
        "",
        "invalid-task-id",
        "0x123",
        "0x" + "g" * 20,
        "0X" + "0" * 20,
        "0x" + "0" * 12 + "1" * 7,
        "0x" + "f" * 12 + "1" * 8,
    ])
    def test_invalid_ids(self, task_id):
        """Malformed or out-of-range ids are rejected."""
        with pytest.raises(InvalidInputError) as exc_info:
            decode_task_id(task_id)

        assert exc_info.value.message == "Invalid task ID"
        assert not is_valid_task_id(task_id)
