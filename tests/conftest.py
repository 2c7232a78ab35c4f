"""Shared pytest fixtures for the reply-by-email test suite."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable, Mapping
from email.message import EmailMessage
from typing import Any

import pytest

from replymail.domain.models import Issue, Project, SentNotification, User
from replymail.domain.types import AccessLevel, NoteableType, Visibility
from replymail.email.incoming import IncomingEmail
from replymail.store import SqliteStore, init_schema

INCOMING_ADDRESS = "incoming+%{key}@appmail.example.com"
HOST = "example.com"


class RecordingSink:
    """EventSink test double that keeps every recorded event."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def record_event(self, name: str, params: Mapping[str, Any]) -> None:
        self.events.append((name, dict(params)))


@pytest.fixture
def conn() -> sqlite3.Connection:
    """In-memory SQLite connection with the schema initialized."""
    connection = sqlite3.connect(":memory:")
    init_schema(connection)
    return connection


@pytest.fixture
def store(conn: sqlite3.Connection) -> SqliteStore:
    """SqliteStore backed by the in-memory connection."""
    return SqliteStore(conn)


@pytest.fixture
def incoming() -> IncomingEmail:
    """Routing-key codec for ``incoming+%{key}@appmail.example.com``."""
    return IncomingEmail(INCOMING_ADDRESS, HOST)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def user(store: SqliteStore) -> User:
    """An active user with a known incoming email token."""
    return store.add_user("jane", "jane@example.com", incoming_email_token="tok3n")


@pytest.fixture
def project(store: SqliteStore, user: User) -> Project:
    """A private project where ``user`` is a developer."""
    project = store.add_project("acme/widgets", visibility=Visibility.PRIVATE)
    store.add_member(project, user, AccessLevel.DEVELOPER)
    return project


@pytest.fixture
def issue(store: SqliteStore, project: Project, user: User) -> Issue:
    return store.add_issue(project, user, "Widgets are wobbly")


@pytest.fixture
def sent_notification(
    store: SqliteStore, project: Project, user: User, issue: Issue
) -> SentNotification:
    """A notification about ``issue`` sent to ``user``."""
    return store.add_sent_notification(
        project, user, NoteableType.ISSUE, str(issue.id), reply_key="a" * 32
    )


@pytest.fixture
def build_email() -> Callable[..., bytes]:
    """Factory producing raw message bytes.

    Keyword arguments map to headers (``to``, ``subject``, ``references``,
    ``delivered_to``, ``auto_submitted``, ``cc``); ``body`` sets the text
    content.  A ``delivered_to`` list adds one header per value.
    """

    def _build(
        *,
        to: str = "someone@example.com",
        subject: str = "Re: Widgets are wobbly",
        body: str = "I can reproduce this on staging.",
        from_address: str = "jane@example.com",
        **headers: Any,
    ) -> bytes:
        msg = EmailMessage()
        msg["From"] = from_address
        msg["To"] = to
        msg["Subject"] = subject
        msg["Message-ID"] = "<CAH+reply-1@mail.example.org>"
        for name, value in headers.items():
            header_name = name.replace("_", "-").title()
            values = value if isinstance(value, list) else [value]
            for item in values:
                msg[header_name] = item
        msg.set_content(body)
        return msg.as_bytes()

    return _build
