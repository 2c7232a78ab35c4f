"""Tests for the inbound email models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from replymail.email.models import (
    HandlerResult,
    ParsedMail,
    normalize_references,
    scan_references,
)

# ---------------------------------------------------------------------------
# References normalization
# ---------------------------------------------------------------------------


class TestNormalizeReferences:
    """List and joined-string References normalize to the same sequence."""

    def test_comma_joined_string_matches_list(self) -> None:
        assert normalize_references("<a@x>, <b@x>") == normalize_references(
            ["<a@x>", "<b@x>"]
        )

    def test_list_without_brackets(self) -> None:
        assert normalize_references(["a@x", " b@x "]) == ["a@x", "b@x"]

    def test_none_is_empty(self) -> None:
        assert normalize_references(None) == []

    def test_blank_list_entries_dropped(self) -> None:
        assert normalize_references(["<a@x>", "  "]) == ["a@x"]

    def test_scan_preserves_order(self) -> None:
        assert scan_references("<c@x><a@x>,<b@x>") == ["c@x", "a@x", "b@x"]


# ---------------------------------------------------------------------------
# ParsedMail
# ---------------------------------------------------------------------------


class TestParsedMail:
    """Tests for the ParsedMail model."""

    def test_references_string_coerced(self) -> None:
        mail = ParsedMail(references="<a@x>, <b@x>")  # type: ignore[arg-type]
        assert mail.references == ("a@x", "b@x")

    def test_references_list_coerced(self) -> None:
        mail = ParsedMail(references=["<a@x>", "<b@x>"])  # type: ignore[arg-type]
        assert mail.references == ("a@x", "b@x")

    def test_header_names_lowercased(self) -> None:
        mail = ParsedMail(headers={"Auto-Submitted": ["no"]})  # type: ignore[dict-item]
        assert mail.header("AUTO-SUBMITTED") == "no"
        assert "auto-submitted" in mail.headers

    def test_frozen_immutability(self) -> None:
        mail = ParsedMail(subject="hello")
        with pytest.raises(ValidationError):
            mail.subject = "changed"


class TestHandlerResult:
    """Tests for the HandlerResult model."""

    def test_defaults(self) -> None:
        result = HandlerResult(handler="UnsubscribeHandler", action="ignored")
        assert result.record_type is None
        assert result.record_id is None

    def test_requires_action(self) -> None:
        with pytest.raises(ValidationError):
            HandlerResult(handler="CreateNoteHandler")  # type: ignore[call-arg]
