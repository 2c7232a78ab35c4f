"""Domain enumerations for users, projects, and noteables."""

from enum import IntEnum, StrEnum


class UserState(StrEnum):
    """Account states."""

    ACTIVE = "active"
    BLOCKED = "blocked"


class Visibility(StrEnum):
    """Project visibility levels."""

    PRIVATE = "private"
    INTERNAL = "internal"
    PUBLIC = "public"


class AccessLevel(IntEnum):
    """Project membership access levels, ordered by privilege."""

    NO_ACCESS = 0
    GUEST = 10
    REPORTER = 20
    DEVELOPER = 30
    MAINTAINER = 40
    OWNER = 50


class NoteableType(StrEnum):
    """Kinds of records a note can be attached to."""

    ISSUE = "issue"
    MERGE_REQUEST = "merge_request"
    COMMIT = "commit"


class IssuableState(StrEnum):
    """Open/closed state shared by issues and merge requests."""

    OPENED = "opened"
    CLOSED = "closed"


class Action(StrEnum):
    """Actions checked by the authorization policy."""

    READ_PROJECT = "read_project"
    CREATE_NOTE = "create_note"
    CREATE_ISSUE = "create_issue"
    CREATE_MERGE_REQUEST = "create_merge_request"
    UPDATE_ISSUABLE = "update_issuable"


ISSUABLE_TYPES: frozenset[NoteableType] = frozenset(
    {NoteableType.ISSUE, NoteableType.MERGE_REQUEST}
)
