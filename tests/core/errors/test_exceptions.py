"""
Tests for exception hierarchy and error classification.
"""

import builtins

from core.errors.exceptions import (
    AuthError,
    AvrodeskError,
    BrokerError,
    ClipboardError,
    ConfigurationError,
    DraftStoreError,
    EditorError,
    ErrorCategory,
    PayloadValidationError,
    PermanentError,
    RegistryError,
    SchemaError,
    TimeoutError,
    TransientError,
    classify_exception,
    wrap_exception,
)


class TestAvrodeskError:
    """Test base AvrodeskError class."""

    def test_basic_error(self):
        """Can create basic error with message."""
        err = AvrodeskError("Something went wrong")
        assert err.message == "Something went wrong"
        assert err.cause is None
        assert err.context == {}
        assert err.category == ErrorCategory.UNKNOWN

    def test_error_with_cause(self):
        """Can wrap another exception."""
        cause = ValueError("Invalid value")
        err = AvrodeskError("Wrapper message", cause=cause)
        assert err.cause == cause
        assert str(err) == "Wrapper message | Caused by: Invalid value"

    def test_error_with_context(self):
        """Can add context dict."""
        err = AvrodeskError("Error", context={"subject": "orders-value"})
        assert err.context["subject"] == "orders-value"

    def test_is_retryable_default(self):
        """Unknown category is retryable."""
        assert AvrodeskError("Error").is_retryable is True


class TestCategories:
    """Test category of each error family."""

    def test_auth_error(self):
        err = AuthError("Auth failed")
        assert err.category == ErrorCategory.AUTH
        assert err.is_retryable is False

    def test_transient_error(self):
        err = TransientError("Temporary issue")
        assert err.category == ErrorCategory.TRANSIENT
        assert err.is_retryable is True

    def test_timeout_is_transient(self):
        assert isinstance(TimeoutError("slow"), TransientError)

    def test_permanent_error(self):
        err = PermanentError("Fatal error")
        assert err.category == ErrorCategory.PERMANENT
        assert err.is_retryable is False

    def test_broker_error_is_transient(self):
        assert BrokerError("no leader").category == ErrorCategory.TRANSIENT

    def test_document_and_collaborator_errors_are_permanent(self):
        for cls in (
            SchemaError,
            PayloadValidationError,
            ConfigurationError,
            EditorError,
            ClipboardError,
            DraftStoreError,
        ):
            assert cls("x").category == ErrorCategory.PERMANENT


class TestRegistryError:
    """Test registry error with per-instance category."""

    def test_defaults_to_transient(self):
        err = RegistryError("Server error")
        assert err.category == ErrorCategory.TRANSIENT
        assert err.status_code is None

    def test_explicit_category_and_status(self):
        err = RegistryError("Not found", status_code=404, category=ErrorCategory.PERMANENT)
        assert err.status_code == 404
        assert err.category == ErrorCategory.PERMANENT
        assert err.is_retryable is False

    def test_category_is_per_instance(self):
        RegistryError("a", category=ErrorCategory.AUTH)
        assert RegistryError("b").category == ErrorCategory.TRANSIENT


class TestClassifyException:
    """Test classify_exception() utility."""

    def test_typed_error_keeps_category(self):
        assert classify_exception(AuthError("x")) == ErrorCategory.AUTH

    def test_builtin_timeout_is_transient(self):
        assert classify_exception(builtins.TimeoutError()) == ErrorCategory.TRANSIENT

    def test_builtin_connection_error_is_transient(self):
        assert classify_exception(ConnectionRefusedError()) == ErrorCategory.TRANSIENT

    def test_value_error_is_permanent(self):
        assert classify_exception(ValueError("bad")) == ErrorCategory.PERMANENT

    def test_file_error_is_permanent(self):
        assert classify_exception(FileNotFoundError("missing")) == ErrorCategory.PERMANENT

    def test_string_matching_timeout(self):
        assert classify_exception(Exception("request timed out")) == ErrorCategory.TRANSIENT

    def test_string_matching_401(self):
        assert classify_exception(Exception("Got 401 Unauthorized")) == ErrorCategory.AUTH

    def test_no_match(self):
        assert classify_exception(Exception("Something else")) == ErrorCategory.UNKNOWN


class TestWrapException:
    """Test wrap_exception() utility."""

    def test_typed_error_returned_as_is(self):
        err = BrokerError("down")
        assert wrap_exception(err) is err

    def test_typed_error_gains_context(self):
        err = BrokerError("down")
        wrap_exception(err, context={"token": 3})
        assert err.context["token"] == 3

    def test_transient_wrapped(self):
        cause = builtins.TimeoutError("slow")
        wrapped = wrap_exception(cause)
        assert isinstance(wrapped, TransientError)
        assert wrapped.cause is cause
        assert wrapped.context["error_type"] == "TimeoutError"

    def test_permanent_wrapped(self):
        wrapped = wrap_exception(KeyError("x"))
        assert isinstance(wrapped, PermanentError)

    def test_unknown_uses_default_class(self):
        wrapped = wrap_exception(Exception("weird"), default_class=BrokerError)
        assert isinstance(wrapped, BrokerError)
        assert wrapped.message == "weird"
