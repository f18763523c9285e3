"""Tests for the error hierarchy."""

import pytest

from strategy_vault.errors import (
    AccessDeniedError,
    ConfigError,
    DependencyNotReadyError,
    ExecutorError,
    ImmutableConfigError,
    InvalidInputError,
    NotFoundError,
    NotInitializedError,
    PersistenceError,
    ProtectionError,
    ServiceNotReadyError,
    SystemFailureError,
    UnknownError,
    VaultError,
    sanitize_error_message,
    wrap_unexpected,
)


class TestErrorHierarchy:
    """Test error classification."""

    @pytest.mark.parametrize("error_class", [
        ConfigError, NotInitializedError, DependencyNotReadyError, ImmutableConfigError,
        AccessDeniedError, NotFoundError, InvalidInputError, SystemFailureError,
    ])
    def test_all_errors_are_vault_errors(self, error_class):
        """Every error derives from VaultError."""
        assert issubclass(error_class, VaultError)

    @pytest.mark.parametrize("error_class", [ProtectionError, PersistenceError, ExecutorError, UnknownError])
    def test_system_failures(self, error_class):
        """Collaborator failures are system failures."""
        assert issubclass(error_class, SystemFailureError)

    def test_service_not_ready_is_not_initialized(self):
        """Purchase-before-initialize is a kind of not-initialized error."""
        assert issubclass(ServiceNotReadyError, NotInitializedError)


class TestErrorAttributes:
    """Test error payloads."""

    def test_base_error(self):
        """Message and context are kept."""
        error = VaultError("boom", context={"key": "value"})

        assert str(error) == "boom"
        assert error.message == "boom"
        assert error.context == {"key": "value"}
        assert error.recoverable is False

    def test_access_denied(self):
        """AccessDeniedError carries the strategy and address."""
        error = AccessDeniedError("denied", strategy_id="s", address="0xabc")
        assert (error.strategy_id, error.address) == ("s", "0xabc")

    def test_recoverable_errors(self):
        """Input and executor errors are recoverable."""
        assert InvalidInputError("bad", field="task_id").recoverable
        assert ExecutorError("down", status_code=503).recoverable

    def test_immutable_config_fields(self):
        """ImmutableConfigError lists the attempted fields."""
        assert ImmutableConfigError("frozen", fields=["a"]).fields == ["a"]
        assert ImmutableConfigError("frozen").fields == []

    def test_unknown_error_keeps_cause(self):
        """UnknownError wraps its cause."""
        cause = RuntimeError("x")
        assert UnknownError("wrapped", cause=cause).cause is cause


class TestWrapUnexpected:
    """Test classification at service boundaries."""

    def test_vault_errors_pass_through(self):
        error = ExecutorError("HTTP 503")
        assert wrap_unexpected(error, "Task submission failed") is error

    def test_other_errors_become_unknown(self):
        cause = RuntimeError("boom")
        wrapped = wrap_unexpected(cause, "Purchase failed")

        assert isinstance(wrapped, UnknownError)
        assert wrapped.message == "Purchase failed: boom"
        assert wrapped.cause is cause

    def test_empty_message_uses_prefix_only(self):
        assert wrap_unexpected(RuntimeError(), "Status lookup failed").message == "Status lookup failed"


class TestSanitizeErrorMessage:
    """Test redaction of caller-facing error text."""

    @pytest.mark.parametrize("raw,expected", [
        ("signing with 0x" + "1f" * 32 + " failed", "signing with [REDACTED_KEY] failed"),
        ("cannot read /home/vault/.config/key.txt", "cannot read [PATH]"),
        ("cannot read C:\\vault\\key.txt", "cannot read [PATH]"),
        ("rejected api_key=abc-123", "rejected api_key=[REDACTED]"),
        ("rejected token: xyz", "rejected token=[REDACTED]"),
        ("header Bearer abc123", "header bearer [REDACTED]"),
        ("contact ops@example.com", "contact [EMAIL]"),
        ("HTTP 503: Service Unavailable", "HTTP 503: Service Unavailable"),
    ])
    def test_redactions(self, raw, expected):
        assert sanitize_error_message(raw) == expected

    def test_mnemonic_redacted(self):
        phrase = " ".join(["abandon"] * 11 + ["about"])
        assert sanitize_error_message(f"bad seed: {phrase}") == "bad seed: [REDACTED_MNEMONIC]"

    def test_truncated(self):
        message = sanitize_error_message("x" * 600)
        assert message == "x" * 500 + "..."

    @pytest.mark.parametrize("error", [None, ""])
    def test_empty(self, error):
        assert sanitize_error_message(error) == "An unknown error occurred"

    def test_accepts_exceptions(self):
        assert sanitize_error_message(PersistenceError("disk full at /var/db")) == "disk full at [PATH]"
