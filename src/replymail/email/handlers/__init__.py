"""Inbound email handlers and the resolver that picks one per message."""

from __future__ import annotations

from replymail.domain.ports import Store
from replymail.email.handlers.base import BaseHandler
from replymail.email.handlers.create_issue import CreateIssueHandler
from replymail.email.handlers.create_merge_request import CreateMergeRequestHandler
from replymail.email.handlers.create_note import CreateNoteHandler
from replymail.email.handlers.unsubscribe import UnsubscribeHandler
from replymail.email.models import ParsedMail

# Order matters: a merge request key also matches the issue pattern, and a
# legacy ``+unsubscribe`` key also matches it.
HANDLERS: tuple[type[BaseHandler], ...] = (
    UnsubscribeHandler,
    CreateNoteHandler,
    CreateMergeRequestHandler,
    CreateIssueHandler,
)


def handler_for(mail: ParsedMail, mail_key: str | None, store: Store) -> BaseHandler | None:
    """Return the handler for *mail_key*, or ``None`` if nothing accepts it.

    Args:
        mail: The parsed message.
        mail_key: The extracted routing key, or ``None``.
        store: Collaborator passed through to the handler.

    Returns:
        A fresh handler instance, or ``None``.
    """
    if not mail_key:
        return None
    for handler_class in HANDLERS:
        if handler_class.can_handle(mail_key):
            return handler_class(mail, mail_key, store)
    return None


__all__ = [
    "HANDLERS",
    "BaseHandler",
    "CreateIssueHandler",
    "CreateMergeRequestHandler",
    "CreateNoteHandler",
    "UnsubscribeHandler",
    "handler_for",
]
