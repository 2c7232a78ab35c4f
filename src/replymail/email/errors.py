"""Exception taxonomy for inbound email processing.

Every failure is terminal for the message being processed.  The mail
transport that invoked the receiver decides what to do with each kind
(bounce, drop, log).
"""


class ProcessingError(Exception):
    """Base class for all inbound email processing errors."""


class EmailUnparsableError(ProcessingError):
    """Raised when the raw message cannot be decoded."""


class SentNotificationNotFoundError(ProcessingError):
    """Raised when a reply key does not match any sent notification."""


class ProjectNotFound(ProcessingError):
    """Raised when the target project is missing or not visible to the sender."""


class EmptyEmailError(ProcessingError):
    """Raised when the message, or the reply left after trimming, is blank."""


class AutoGeneratedEmailError(ProcessingError):
    """Raised for auto-submitted mail (RFC 3834) to break reply loops."""


class UserNotFoundError(ProcessingError):
    """Raised when no user matches the routing key."""


class UserBlockedError(ProcessingError):
    """Raised when the acting user is blocked."""


class UserNotAuthorizedError(ProcessingError):
    """Raised when the acting user may not perform the requested action."""


class NoteableNotFoundError(ProcessingError):
    """Raised when the issue, merge request or commit no longer exists."""


class InvalidRecordError(ProcessingError):
    """Raised when a record fails domain validation.

    Attributes:
        record_name: Human-readable name of the record kind.
        errors: The individual validation messages.
    """

    def __init__(self, record_name: str, errors: list[str]) -> None:
        self.record_name = record_name
        self.errors = errors
        super().__init__(
            f"The {record_name} could not be created for the following reasons: "
            + "; ".join(errors)
        )


class InvalidNoteError(InvalidRecordError):
    """Raised when a note fails validation."""


class InvalidIssueError(InvalidRecordError):
    """Raised when an issue fails validation."""


class InvalidMergeRequestError(InvalidRecordError):
    """Raised when a merge request fails validation."""


class UnknownIncomingEmail(ProcessingError):
    """Raised when no handler accepts the message."""
