"""Access-control rules for actions performed through inbound email.

The policy is a pure function of the user, the project, the user's
membership level in that project, and (for issuable updates) the record
being changed.  Stores call it from ``authorize`` after looking up the
membership.
"""

from __future__ import annotations

from replymail.domain.models import Issue, MergeRequest, Project, User
from replymail.domain.types import AccessLevel, Action, Visibility


def can_read_project(user: User, project: Project, access_level: AccessLevel) -> bool:
    """Return whether *user* can see *project* at all."""
    if user.admin:
        return True
    if project.visibility == Visibility.PUBLIC:
        return True
    if project.visibility == Visibility.INTERNAL and not user.external:
        return True
    return access_level >= AccessLevel.GUEST


def can(
    user: User,
    action: Action,
    project: Project,
    access_level: AccessLevel,
    subject: Issue | MergeRequest | None = None,
) -> bool:
    """Decide whether *user* may perform *action* on *project*.

    Args:
        user: The acting user.
        action: The action being attempted.
        project: The project the action targets.
        access_level: The user's membership level in *project*.
        subject: The issue or merge request being updated, for
            ``Action.UPDATE_ISSUABLE``.

    Returns:
        ``True`` if the action is allowed.
    """
    if user.blocked:
        return False
    if not can_read_project(user, project, access_level):
        return False
    if action == Action.READ_PROJECT:
        return True

    # Archived projects are read-only, even for admins.
    if project.archived:
        return False
    if user.admin:
        return True

    if action in (Action.CREATE_NOTE, Action.CREATE_ISSUE):
        return True
    if action == Action.CREATE_MERGE_REQUEST:
        return access_level >= AccessLevel.DEVELOPER
    if action == Action.UPDATE_ISSUABLE:
        if subject is not None and subject.author_id == user.id:
            return True
        return access_level >= AccessLevel.REPORTER

    return False
