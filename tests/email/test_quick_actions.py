"""Tests for quick action extraction from reply bodies."""

from __future__ import annotations

from replymail.domain.types import IssuableState
from replymail.email.quick_actions import QuickAction, extract_commands


class TestExtractCommands:
    """Tests for extract_commands."""

    def test_no_commands(self) -> None:
        assert extract_commands("Just a comment.") == ("Just a comment.", [])

    def test_close_removed_from_content(self) -> None:
        content, commands = extract_commands("Fixed in main.\n/close")
        assert content == "Fixed in main."
        assert commands == [QuickAction.CLOSE]

    def test_commands_only(self) -> None:
        assert extract_commands("/close") == ("", [QuickAction.CLOSE])

    def test_case_insensitive_and_ordered(self) -> None:
        _, commands = extract_commands("/Close\n/REOPEN")
        assert commands == [QuickAction.CLOSE, QuickAction.REOPEN]

    def test_unknown_command_kept(self) -> None:
        content, commands = extract_commands("/assign @jane")
        assert content == "/assign @jane"
        assert commands == []

    def test_inline_slash_is_not_a_command(self) -> None:
        content, commands = extract_commands("please /close this")
        assert content == "please /close this"
        assert commands == []

    def test_fenced_code_ignored(self) -> None:
        text = "Run:\n```\n/close\n```"
        content, commands = extract_commands(text)
        assert commands == []
        assert "/close" in content


class TestQuickAction:
    def test_target_states(self) -> None:
        assert QuickAction.CLOSE.target_state == IssuableState.CLOSED
        assert QuickAction.REOPEN.target_state == IssuableState.OPENED
