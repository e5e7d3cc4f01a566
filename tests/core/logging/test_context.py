"""Tests for core.logging.context module."""

from core.logging.context import clear_log_context, get_log_context, set_log_context


class TestLogContext:
    def setup_method(self):
        clear_log_context()

    def teardown_method(self):
        clear_log_context()

    def test_defaults_are_empty(self):
        assert get_log_context() == {
            "session_id": "",
            "profile": "",
            "subject": "",
            "topic": "",
        }

    def test_set_all_fields(self):
        set_log_context(session_id="s1", profile="local", subject="orders-value", topic="orders")
        ctx = get_log_context()
        assert ctx["session_id"] == "s1"
        assert ctx["profile"] == "local"
        assert ctx["subject"] == "orders-value"
        assert ctx["topic"] == "orders"

    def test_partial_set_preserves_others(self):
        set_log_context(session_id="s1", profile="local")
        set_log_context(subject="users-value")
        ctx = get_log_context()
        assert ctx["session_id"] == "s1"
        assert ctx["profile"] == "local"
        assert ctx["subject"] == "users-value"

    def test_clear_resets_everything(self):
        set_log_context(session_id="s1", topic="orders")
        clear_log_context()
        assert set(get_log_context().values()) == {""}
