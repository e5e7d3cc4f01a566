"""Tests for the external editor and clipboard helpers."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from avrodesk.clipboard import copy_to_clipboard, find_copy_command
from avrodesk.editor import find_editor, open_in_editor
from core.errors.exceptions import ClipboardError, EditorError


class TestFindEditor:
    def test_editor_variable_wins(self, monkeypatch):
        monkeypatch.setenv("EDITOR", "code --wait")
        monkeypatch.setenv("VISUAL", "vim")
        assert find_editor() == ["code", "--wait"]

    def test_visual_variable(self, monkeypatch):
        monkeypatch.delenv("EDITOR", raising=False)
        monkeypatch.setenv("VISUAL", "nano")
        assert find_editor() == ["nano"]

    def test_no_editor(self, monkeypatch):
        monkeypatch.delenv("EDITOR", raising=False)
        monkeypatch.delenv("VISUAL", raising=False)
        with patch("avrodesk.editor.sys.platform", "linux"), patch(
            "avrodesk.editor.shutil.which", return_value=None
        ):
            assert find_editor() is None


class TestOpenInEditor:
    def test_returns_saved_text(self, monkeypatch):
        monkeypatch.setenv("EDITOR", "fake-editor")

        def fake_run(command, check):
            with open(command[-1], "w", encoding="utf-8") as f:
                f.write('{"edited": true}')
            return subprocess.CompletedProcess(command, 0)

        with patch("avrodesk.editor.subprocess.run", side_effect=fake_run) as run:
            assert open_in_editor("{}") == '{"edited": true}'
        assert run.call_args.args[0][0] == "fake-editor"

    def test_non_zero_exit(self, monkeypatch):
        monkeypatch.setenv("EDITOR", "fake-editor")
        with patch(
            "avrodesk.editor.subprocess.run",
            return_value=subprocess.CompletedProcess(["fake-editor"], 1),
        ):
            with pytest.raises(EditorError, match="status 1"):
                open_in_editor("{}")

    def test_missing_binary(self, monkeypatch):
        monkeypatch.setenv("EDITOR", "fake-editor")
        with patch("avrodesk.editor.subprocess.run", side_effect=FileNotFoundError("nope")):
            with pytest.raises(EditorError, match="cannot run editor"):
                open_in_editor("{}")

    def test_no_editor(self):
        with patch("avrodesk.editor.find_editor", return_value=None):
            with pytest.raises(EditorError, match="set \\$EDITOR"):
                open_in_editor("{}")


class TestClipboard:
    def test_prefers_first_available_command(self):
        with patch("avrodesk.clipboard.sys.platform", "linux"), patch(
            "avrodesk.clipboard.shutil.which", side_effect=lambda name: name == "xclip"
        ):
            assert find_copy_command() == ["xclip", "-selection", "clipboard"]

    def test_copy_pipes_text(self):
        with patch("avrodesk.clipboard.find_copy_command", return_value=["pbcopy"]), patch(
            "avrodesk.clipboard.subprocess.run", return_value=MagicMock()
        ) as run:
            copy_to_clipboard("héllo")
        assert run.call_args.kwargs["input"] == "héllo".encode("utf-8")

    def test_no_command(self):
        with patch("avrodesk.clipboard.find_copy_command", return_value=None):
            with pytest.raises(ClipboardError, match="no clipboard command"):
                copy_to_clipboard("x")

    def test_command_failure(self):
        with patch("avrodesk.clipboard.find_copy_command", return_value=["pbcopy"]), patch(
            "avrodesk.clipboard.subprocess.run",
            side_effect=subprocess.CalledProcessError(1, "pbcopy"),
        ):
            with pytest.raises(ClipboardError, match="copy failed"):
                copy_to_clipboard("x")
