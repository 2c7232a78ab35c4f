"""Collaborator interfaces consumed by the inbound email handlers.

The receiver never talks to a database directly.  It is handed objects
satisfying these protocols; ``replymail.store.SqliteStore`` implements the
first two, ``replymail.observability.metrics.MetricsEventSink`` the third.
"""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import AbstractContextManager
from typing import Any, Protocol

from replymail.domain.models import (
    Issue,
    MergeRequest,
    Note,
    Noteable,
    Project,
    SentNotification,
    User,
)
from replymail.domain.types import Action, IssuableState, NoteableType


class IdentityStore(Protocol):
    """Principal lookup and authorization."""

    def find_user_by_id(self, user_id: int) -> User | None: ...

    def find_user_by_incoming_email_token(self, token: str) -> User | None: ...

    def authorize(
        self,
        user: User,
        action: Action,
        project: Project,
        subject: Issue | MergeRequest | None = None,
    ) -> bool: ...


class DomainStore(Protocol):
    """Lookup and mutation of projects, noteables, and notes."""

    def transaction(self) -> AbstractContextManager[None]: ...

    def find_project(self, project_id: int) -> Project | None: ...

    def find_project_by_full_path(self, full_path: str) -> Project | None: ...

    def find_sent_notification(self, reply_key: str) -> SentNotification | None: ...

    def find_noteable(
        self, project_id: int, noteable_type: NoteableType, noteable_ref: str
    ) -> Noteable | None: ...

    def create_note(
        self,
        project: Project,
        author: User,
        noteable_type: NoteableType,
        noteable_ref: str,
        note: str,
    ) -> Note: ...

    def create_issue(
        self, project: Project, author: User, title: str, description: str
    ) -> Issue: ...

    def create_merge_request(
        self,
        project: Project,
        author: User,
        title: str,
        source_branch: str,
        target_branch: str,
        description: str,
    ) -> MergeRequest: ...

    def set_issuable_state(
        self, issuable: Issue | MergeRequest, state: IssuableState
    ) -> None: ...

    def unsubscribe(
        self, user: User, noteable_type: NoteableType, noteable_ref: str
    ) -> None: ...


class Store(IdentityStore, DomainStore, Protocol):
    """A single backend providing both identity and domain access."""


class EventSink(Protocol):
    """Observability sink for one event per processed message."""

    def record_event(self, name: str, params: Mapping[str, Any]) -> None: ...
