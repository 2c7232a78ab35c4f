"""Tests for domain models and enums."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from replymail.domain.models import SentNotification, User
from replymail.domain.types import (
    ISSUABLE_TYPES,
    AccessLevel,
    NoteableType,
    UserState,
)


class TestUser:
    def test_defaults(self) -> None:
        user = User(id=1, username="jane", email="jane@example.com", incoming_email_token="t")
        assert user.state == UserState.ACTIVE
        assert user.blocked is False
        assert user.admin is False

    def test_blocked(self) -> None:
        user = User(
            id=1,
            username="jane",
            email="jane@example.com",
            incoming_email_token="t",
            state="blocked",  # type: ignore[arg-type]
        )
        assert user.blocked is True

    def test_frozen(self) -> None:
        user = User(id=1, username="jane", email="jane@example.com", incoming_email_token="t")
        with pytest.raises(ValidationError):
            user.username = "john"


class TestSentNotification:
    @pytest.mark.parametrize(
        ("noteable_type", "expected"),
        [
            (NoteableType.ISSUE, True),
            (NoteableType.MERGE_REQUEST, True),
            (NoteableType.COMMIT, False),
        ],
    )
    def test_unsubscribable(self, noteable_type: NoteableType, expected: bool) -> None:
        notification = SentNotification(
            id=1,
            reply_key="k",
            project_id=1,
            recipient_id=1,
            noteable_type=noteable_type,
            noteable_ref="1",
        )
        assert notification.unsubscribable is expected

    def test_invalid_noteable_type(self) -> None:
        with pytest.raises(ValidationError):
            SentNotification(
                id=1,
                reply_key="k",
                project_id=1,
                recipient_id=1,
                noteable_type="snippet",  # type: ignore[arg-type]
                noteable_ref="1",
            )


class TestTypes:
    def test_access_levels_ordered(self) -> None:
        assert AccessLevel.GUEST < AccessLevel.REPORTER < AccessLevel.DEVELOPER
        assert AccessLevel.MAINTAINER < AccessLevel.OWNER

    def test_issuable_types(self) -> None:
        assert NoteableType.COMMIT not in ISSUABLE_TYPES
        assert str(NoteableType.MERGE_REQUEST) == "merge_request"
