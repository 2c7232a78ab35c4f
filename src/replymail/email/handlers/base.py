"""Shared behaviour for inbound email handlers.

A handler is built per message by :func:`replymail.email.handlers.handler_for`
and owns one kind of intent: replying to a notification, opening an issue,
opening a merge request, or unsubscribing.  Lookups are memoized on the
instance, so the project named in ``metrics_params`` is the same one the
mutation later uses.
"""

from __future__ import annotations

from functools import cached_property
from typing import Any

import structlog

from replymail.domain.models import Issue, MergeRequest, Project, User
from replymail.domain.ports import Store
from replymail.domain.types import Action
from replymail.email.errors import (
    InvalidRecordError,
    ProjectNotFound,
    UserBlockedError,
    UserNotAuthorizedError,
    UserNotFoundError,
)
from replymail.email.models import HandlerResult, ParsedMail
from replymail.email.parser import extract_reply

logger = structlog.get_logger()


class BaseHandler:
    """Base class for one category of inbound email intent.

    Subclasses implement :meth:`can_handle`, :attr:`author`,
    :attr:`project`, and :meth:`execute`.

    Args:
        mail: The parsed message.
        mail_key: The routing key extracted from the message.
        store: Identity and domain store collaborator.
    """

    def __init__(self, mail: ParsedMail, mail_key: str, store: Store) -> None:
        self.mail = mail
        self.mail_key = mail_key
        self.store = store

    @classmethod
    def can_handle(cls, mail_key: str) -> bool:
        """Return whether this handler accepts *mail_key*."""
        raise NotImplementedError

    @property
    def name(self) -> str:
        return type(self).__name__

    @cached_property
    def author(self) -> User | None:
        raise NotImplementedError

    @cached_property
    def project(self) -> Project | None:
        raise NotImplementedError

    def metrics_params(self) -> dict[str, Any]:
        """Describe this handler and its target for the receive event."""
        project = self.project
        return {
            "handler": self.name,
            "project": project.full_path if project else None,
        }

    def execute(self) -> HandlerResult:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Reply processing
    # ------------------------------------------------------------------

    @cached_property
    def message(self) -> str:
        """The reply with quoted content and signatures trimmed."""
        return extract_reply(self.mail.body)

    @cached_property
    def message_including_reply(self) -> str:
        """The whole body, used for issue and merge request descriptions."""
        return extract_reply(self.mail.body, trim=False)

    def validate_author(self) -> User:
        """Return the acting user, or raise if missing or blocked."""
        author = self.author
        if author is None:
            raise UserNotFoundError
        if author.blocked:
            raise UserBlockedError
        return author

    def validate_project(self, author: User) -> Project:
        """Return the target project, or raise if missing or hidden from *author*.

        A project the author cannot read is reported as not found so the
        reply does not reveal that it exists.
        """
        project = self.project
        if project is None or not self.store.authorize(author, Action.READ_PROJECT, project):
            raise ProjectNotFound
        return project

    def validate_permission(
        self,
        author: User,
        action: Action,
        project: Project,
        subject: Issue | MergeRequest | None = None,
    ) -> None:
        if not self.store.authorize(author, action, project, subject):
            logger.info(
                "email_action_denied",
                handler=self.name,
                action=str(action),
                user=author.username,
                project=project.full_path,
            )
            raise UserNotAuthorizedError

    @staticmethod
    def verify_record(
        errors: list[str],
        invalid_exception: type[InvalidRecordError],
        record_name: str,
    ) -> None:
        """Raise *invalid_exception* if validation produced any *errors*."""
        if errors:
            raise invalid_exception(record_name, errors)
