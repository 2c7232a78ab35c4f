"""Pydantic v2 models for domain records touched by inbound email."""

from pydantic import BaseModel, ConfigDict

from replymail.domain.types import (
    ISSUABLE_TYPES,
    IssuableState,
    NoteableType,
    UserState,
    Visibility,
)


class User(BaseModel):
    """An account that can act through reply-by-email.

    ``incoming_email_token`` authenticates mail sent to a project's
    issue/merge-request creation address.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    incoming_email_token: str
    state: UserState = UserState.ACTIVE
    admin: bool = False
    external: bool = False

    @property
    def blocked(self) -> bool:
        return self.state == UserState.BLOCKED


class Project(BaseModel):
    """A project addressed by its full path (``group/name``)."""

    model_config = ConfigDict(frozen=True)

    id: int
    full_path: str
    visibility: Visibility = Visibility.PRIVATE
    default_branch: str = "main"
    archived: bool = False


class Issue(BaseModel):
    """An issue within a project."""

    model_config = ConfigDict(frozen=True)

    id: int
    project_id: int
    iid: int
    author_id: int
    title: str
    description: str = ""
    state: IssuableState = IssuableState.OPENED


class MergeRequest(BaseModel):
    """A merge request between two branches of the same project."""

    model_config = ConfigDict(frozen=True)

    id: int
    project_id: int
    iid: int
    author_id: int
    title: str
    source_branch: str
    target_branch: str
    description: str = ""
    state: IssuableState = IssuableState.OPENED


class Commit(BaseModel):
    """A commit known to the project, identified by its SHA."""

    model_config = ConfigDict(frozen=True)

    project_id: int
    sha: str
    title: str = ""


Noteable = Issue | MergeRequest | Commit


class Note(BaseModel):
    """A comment on an issue, merge request, or commit."""

    model_config = ConfigDict(frozen=True)

    id: int
    project_id: int
    author_id: int
    noteable_type: NoteableType
    noteable_ref: str  # issue/MR id, or commit SHA
    note: str


class SentNotification(BaseModel):
    """Record of a notification email whose reply key routes replies back.

    ``noteable_ref`` is the issue or merge request id rendered as a string,
    or the commit SHA for commit notifications.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    reply_key: str
    project_id: int
    recipient_id: int
    noteable_type: NoteableType
    noteable_ref: str

    @property
    def unsubscribable(self) -> bool:
        """Only issues and merge requests carry subscriptions."""
        return self.noteable_type in ISSUABLE_TYPES
