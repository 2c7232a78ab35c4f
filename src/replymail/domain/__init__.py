"""Domain types, models, policy, and collaborator ports for reply-by-email."""

from replymail.domain.models import (
    Commit,
    Issue,
    MergeRequest,
    Note,
    Noteable,
    Project,
    SentNotification,
    User,
)
from replymail.domain.policy import can, can_read_project
from replymail.domain.ports import DomainStore, EventSink, IdentityStore, Store
from replymail.domain.types import (
    ISSUABLE_TYPES,
    AccessLevel,
    Action,
    IssuableState,
    NoteableType,
    UserState,
    Visibility,
)

__all__ = [
    "ISSUABLE_TYPES",
    "AccessLevel",
    "Action",
    "Commit",
    "DomainStore",
    "EventSink",
    "IdentityStore",
    "Issue",
    "IssuableState",
    "MergeRequest",
    "Note",
    "Noteable",
    "NoteableType",
    "Project",
    "SentNotification",
    "Store",
    "User",
    "UserState",
    "Visibility",
    "can",
    "can_read_project",
]
