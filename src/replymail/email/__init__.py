"""Email domain: parsing, routing keys, handlers, and the receiver."""

from replymail.email.errors import (
    AutoGeneratedEmailError,
    EmailUnparsableError,
    EmptyEmailError,
    InvalidIssueError,
    InvalidMergeRequestError,
    InvalidNoteError,
    InvalidRecordError,
    NoteableNotFoundError,
    ProcessingError,
    ProjectNotFound,
    SentNotificationNotFoundError,
    UnknownIncomingEmail,
    UserBlockedError,
    UserNotAuthorizedError,
    UserNotFoundError,
)
from replymail.email.handlers import handler_for
from replymail.email.incoming import IncomingEmail
from replymail.email.models import HandlerResult, ParsedMail, normalize_references
from replymail.email.parser import extract_reply, parse_mail
from replymail.email.receiver import Receiver, extract_mail_key

__all__ = [
    "AutoGeneratedEmailError",
    "EmailUnparsableError",
    "EmptyEmailError",
    "HandlerResult",
    "IncomingEmail",
    "InvalidIssueError",
    "InvalidMergeRequestError",
    "InvalidNoteError",
    "InvalidRecordError",
    "NoteableNotFoundError",
    "ParsedMail",
    "ProcessingError",
    "ProjectNotFound",
    "Receiver",
    "SentNotificationNotFoundError",
    "UnknownIncomingEmail",
    "UserBlockedError",
    "UserNotAuthorizedError",
    "UserNotFoundError",
    "extract_mail_key",
    "extract_reply",
    "handler_for",
    "normalize_references",
    "parse_mail",
]
