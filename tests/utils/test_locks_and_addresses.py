"""Tests for keyed locks, address normalization and address validation."""

import threading
import time

import pytest

from strategy_vault.errors import InvalidInputError
from strategy_vault.utils.addresses import addresses_equal, normalize_address, validate_address
from strategy_vault.utils.locks import KeyedLock


class TestKeyedLock:
    """Test KeyedLock."""

    def test_same_key_serialized(self):
        """Holders of one key never overlap."""
        lock = KeyedLock()
        active = []
        overlaps = []

        def work():
            with lock.hold("k"):
                active.append(1)
                if len(active) > 1:
                    overlaps.append(True)
                time.sleep(0.01)
                active.pop()

        threads = [threading.Thread(target=work) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert overlaps == []

    def test_different_keys_independent(self):
        """Holding one key does not block another."""
        lock = KeyedLock()
        with lock.hold("a"):
            acquired = threading.Event()

            def other():
                with lock.hold("b"):
                    acquired.set()

            thread = threading.Thread(target=other)
            thread.start()
            assert acquired.wait(timeout=1)
            thread.join()

    def test_locks_released(self):
        """Unused keys are dropped."""
        lock = KeyedLock()
        with lock.hold("a"):
            assert lock.active_keys() == 1
        assert lock.active_keys() == 0

    def test_released_on_exception(self):
        """An exception inside the block releases the key."""
        lock = KeyedLock()
        with pytest.raises(RuntimeError):
            with lock.hold("a"):
                raise RuntimeError("boom")
        assert lock.active_keys() == 0


class TestAddresses:
    """Test address normalization."""

    def test_normalize(self):
        """Addresses are stripped and case-folded."""
        assert normalize_address("  0xAbC ") == "0xabc"

    @pytest.mark.parametrize("address", [None, "", "   ", 42])
    def test_blank_rejected(self, address):
        """Missing addresses are rejected."""
        with pytest.raises(InvalidInputError):
            normalize_address(address)

    def test_equal(self):
        """Comparison ignores case; blanks never match."""
        assert addresses_equal("0xABC", "0xabc")
        assert not addresses_equal("0xabc", "0xabd")
        assert not addresses_equal("", "")


class TestValidateAddress:
    """Test validate_address."""

    def test_folds_valid_address(self):
        """Valid addresses come back trimmed and lower-cased."""
        address = "  0xAbCdEf0123456789aBcDeF0123456789AbCdEf01 "
        assert validate_address(address) == "0xabcdef0123456789abcdef0123456789abcdef01"

    @pytest.mark.parametrize("address", [None, "", "   "])
    def test_missing(self, address):
        with pytest.raises(InvalidInputError) as exc_info:
            validate_address(address)
        assert exc_info.value.message == "Address is required"

    @pytest.mark.parametrize("address", [
        "0x123",
        "0x" + "a" * 41,
        "1x" + "a" * 40,
        "0x" + "z" * 40,
        "0x " + "a" * 39,
    ])
    def test_malformed(self, address):
        with pytest.raises(InvalidInputError) as exc_info:
            validate_address(address)
        assert exc_info.value.message == "Invalid address format"
