"""Mail sent to a project's merge request address opens a merge request."""

from __future__ import annotations

import re
from functools import cached_property

import structlog

from replymail.domain.models import Project, User
from replymail.domain.ports import Store
from replymail.domain.types import Action
from replymail.email.errors import InvalidMergeRequestError
from replymail.email.handlers.base import BaseHandler
from replymail.email.models import HandlerResult, ParsedMail

logger = structlog.get_logger()

_HANDLER_RE = re.compile(
    r"\A(?P<project_path>[^+]*)\+merge-request\+(?P<incoming_email_token>.*)\Z"
)

# Characters git forbids anywhere in a ref name (see git-check-ref-format).
_FORBIDDEN_REF_CHARS = re.compile(r"[\x00-\x20\x7f~^:?*\[\\]")


def valid_ref_name(name: str) -> bool:
    """Return whether *name* is a valid git branch name."""
    if not name or name == "@" or name.startswith("-"):
        return False
    if _FORBIDDEN_REF_CHARS.search(name):
        return False
    if ".." in name or "@{" in name or "//" in name:
        return False
    if name.startswith("/") or name.endswith("/") or name.endswith("."):
        return False
    for component in name.split("/"):
        if component.startswith(".") or component.endswith(".lock"):
            return False
    return True


def humanize_branch(branch: str) -> str:
    """Turn ``feature/add-login_form`` into ``Feature/add login form``."""
    words = re.sub(r"[-_]+", " ", branch).strip()
    return words[:1].upper() + words[1:].lower()


class CreateMergeRequestHandler(BaseHandler):
    """Open a merge request from ``<full path>+merge-request+<token>`` mail.

    The subject names the source branch; the target is the project's
    default branch.  The title is derived from the branch name and the
    whole body becomes the description.
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
        self.validate_permission(author, Action.CREATE_MERGE_REQUEST, project)

        source_branch = self.mail.subject.strip()
        target_branch = project.default_branch

        errors: list[str] = []
        if not source_branch:
            errors.append("Source branch can't be blank")
        elif not valid_ref_name(source_branch):
            errors.append(f"Source branch '{source_branch}' is not a valid branch name")
        elif source_branch == target_branch:
            errors.append("Source branch must be different from the target branch")
        self.verify_record(errors, InvalidMergeRequestError, "merge request")

        with self.store.transaction():
            merge_request = self.store.create_merge_request(
                project,
                author,
                humanize_branch(source_branch),
                source_branch,
                target_branch,
                self.message_including_reply,
            )

        logger.info(
            "merge_request_created_from_email",
            project=project.full_path,
            iid=merge_request.iid,
            source_branch=source_branch,
            user=author.username,
        )
        return HandlerResult(
            handler=self.name,
            action="merge_request_created",
            record_type="merge_request",
            record_id=merge_request.id,
        )
