"""Mail sent to a project's issue address opens a new issue."""

from __future__ import annotations

import re
from functools import cached_property

import structlog

from replymail.domain.models import Project, User
from replymail.domain.ports import Store
from replymail.domain.types import Action
from replymail.email.errors import InvalidIssueError
from replymail.email.handlers.base import BaseHandler
from replymail.email.models import HandlerResult, ParsedMail

logger = structlog.get_logger()

MAX_TITLE_LENGTH = 255

_HANDLER_RE = re.compile(r"\A(?P<project_path>[^+]*)\+(?P<incoming_email_token>.*)\Z")


class CreateIssueHandler(BaseHandler):
    """Open an issue from ``<project full path>+<incoming email token>`` mail.

    The subject becomes the title and the whole body, quotes included,
    becomes the description.
    """

    def __init__(self, mail: ParsedMail, mail_key: str, store: Store) -> None:
        super().__init__(mail, mail_key, store)
        match = _HANDLER_RE.match(self.mail_key)
        self.project_path = match.group("project_path") if match else ""
        self.incoming_email_token = match.group("incoming_email_token") if match else ""

    @classmethod
    def can_handle(cls, mail_key: str) -> bool:
        return bool(_HANDLER_RE.match(mail_key))

    @cached_property
    def author(self) -> User | None:
        return self.store.find_user_by_incoming_email_token(self.incoming_email_token)

    @cached_property
    def project(self) -> Project | None:
        return self.store.find_project_by_full_path(self.project_path)

    def execute(self) -> HandlerResult:
        author = self.validate_author()
        project = self.validate_project(author)
        self.validate_permission(author, Action.CREATE_ISSUE, project)

        title = self.mail.subject.strip()
        errors: list[str] = []
        if not title:
            errors.append("Title can't be blank")
        elif len(title) > MAX_TITLE_LENGTH:
            errors.append(f"Title is too long (maximum is {MAX_TITLE_LENGTH} characters)")
        self.verify_record(errors, InvalidIssueError, "issue")

        with self.store.transaction():
            issue = self.store.create_issue(
                project, author, title, self.message_including_reply
            )

        logger.info(
            "issue_created_from_email",
            project=project.full_path,
            iid=issue.iid,
            user=author.username,
        )
        return HandlerResult(
            handler=self.name,
            action="issue_created",
            record_type="issue",
            record_id=issue.id,
        )
