"""Replies to notification emails become notes on the notified record."""

from __future__ import annotations

import re
from functools import cached_property

import structlog

from replymail.domain.models import (
    Issue,
    MergeRequest,
    Noteable,
    Project,
    SentNotification,
    User,
)
from replymail.domain.types import Action
from replymail.email.errors import (
    EmptyEmailError,
    InvalidNoteError,
    NoteableNotFoundError,
    SentNotificationNotFoundError,
)
from replymail.email.handlers.base import BaseHandler
from replymail.email.models import HandlerResult
from replymail.email.quick_actions import QuickAction, extract_commands

logger = structlog.get_logger()

MAX_NOTE_LENGTH = 1_000_000

_REPLY_KEY_RE = re.compile(r"\A\w+\Z")


class CreateNoteHandler(BaseHandler):
    """Turn a reply to a notification into a note.

    The routing key is the notification's reply key.  The note's author is
    the notification's recipient, never the ``From`` header.  ``/close``
    and ``/reopen`` lines are applied to issues and merge requests when
    the author may update them, and removed from the note text.
    """

    @classmethod
    def can_handle(cls, mail_key: str) -> bool:
        return bool(_REPLY_KEY_RE.match(mail_key))

    @cached_property
    def sent_notification(self) -> SentNotification | None:
        return self.store.find_sent_notification(self.mail_key)

    @cached_property
    def author(self) -> User | None:
        notification = self.sent_notification
        if notification is None:
            return None
        return self.store.find_user_by_id(notification.recipient_id)

    @cached_property
    def project(self) -> Project | None:
        notification = self.sent_notification
        if notification is None:
            return None
        return self.store.find_project(notification.project_id)

    @cached_property
    def noteable(self) -> Noteable | None:
        notification = self.sent_notification
        if notification is None:
            return None
        return self.store.find_noteable(
            notification.project_id, notification.noteable_type, notification.noteable_ref
        )

    def execute(self) -> HandlerResult:
        notification = self.sent_notification
        if notification is None:
            raise SentNotificationNotFoundError

        author = self.validate_author()
        project = self.validate_project(author)
        noteable = self.noteable
        if noteable is None:
            raise NoteableNotFoundError
        self.validate_permission(author, Action.CREATE_NOTE, project)

        if not self.message:
            raise EmptyEmailError

        content, commands = self._split_commands(author, project, noteable)

        errors: list[str] = []
        if len(content) > MAX_NOTE_LENGTH:
            errors.append(f"Note is too long (maximum is {MAX_NOTE_LENGTH} characters)")
        self.verify_record(errors, InvalidNoteError, "comment")

        note = None
        with self.store.transaction():
            if content:
                note = self.store.create_note(
                    project,
                    author,
                    notification.noteable_type,
                    notification.noteable_ref,
                    content,
                )
            if isinstance(noteable, (Issue, MergeRequest)):
                self._apply_commands(noteable, commands)

        logger.info(
            "note_created_from_email" if note else "commands_applied_from_email",
            project=project.full_path,
            noteable_type=str(notification.noteable_type),
            noteable_ref=notification.noteable_ref,
            user=author.username,
            commands=[str(command) for command in commands],
        )

        if note is None:
            return HandlerResult(handler=self.name, action="commands_applied")
        return HandlerResult(
            handler=self.name,
            action="note_created",
            record_type="note",
            record_id=note.id,
        )

    def _split_commands(
        self, author: User, project: Project, noteable: Noteable
    ) -> tuple[str, list[QuickAction]]:
        """Extract commands only where the author could run them.

        Commands on commits, or from users who may not update the issuable,
        stay in the note text verbatim.
        """
        if not isinstance(noteable, (Issue, MergeRequest)):
            return self.message, []
        if not self.store.authorize(author, Action.UPDATE_ISSUABLE, project, noteable):
            return self.message, []
        return extract_commands(self.message)

    def _apply_commands(
        self, issuable: Issue | MergeRequest, commands: list[QuickAction]
    ) -> None:
        state = issuable.state
        for command in commands:
            if command.target_state != state:
                state = command.target_state
                self.store.set_issuable_state(issuable, state)
