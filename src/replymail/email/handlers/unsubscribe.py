"""Mail sent to a notification's unsubscribe address ends the subscription."""

from __future__ import annotations

import re
from functools import cached_property

import structlog

from replymail.domain.models import Project, SentNotification, User
from replymail.email.errors import NoteableNotFoundError, SentNotificationNotFoundError
from replymail.email.handlers.base import BaseHandler
from replymail.email.incoming import UNSUBSCRIBE_SUFFIX, UNSUBSCRIBE_SUFFIX_LEGACY
from replymail.email.models import HandlerResult

logger = structlog.get_logger()

_HANDLER_RE = re.compile(
    rf"\A(?P<reply_key>\w+)"
    rf"({re.escape(UNSUBSCRIBE_SUFFIX)}|{re.escape(UNSUBSCRIBE_SUFFIX_LEGACY)})\Z"
)


class UnsubscribeHandler(BaseHandler):
    """Unsubscribe a notification's recipient from the notified issuable."""

    @classmethod
    def can_handle(cls, mail_key: str) -> bool:
        return bool(_HANDLER_RE.match(mail_key))

    @property
    def reply_key(self) -> str:
        match = _HANDLER_RE.match(self.mail_key)
        return match.group("reply_key") if match else ""

    @cached_property
    def sent_notification(self) -> SentNotification | None:
        return self.store.find_sent_notification(self.reply_key)

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

    def execute(self) -> HandlerResult:
        notification = self.sent_notification
        if notification is None:
            raise SentNotificationNotFoundError

        if not notification.unsubscribable:
            logger.info(
                "unsubscribe_ignored",
                noteable_type=str(notification.noteable_type),
                noteable_ref=notification.noteable_ref,
            )
            return HandlerResult(handler=self.name, action="ignored")

        author = self.validate_author()
        noteable = self.store.find_noteable(
            notification.project_id, notification.noteable_type, notification.noteable_ref
        )
        if noteable is None:
            raise NoteableNotFoundError

        with self.store.transaction():
            self.store.unsubscribe(
                author, notification.noteable_type, notification.noteable_ref
            )

        logger.info(
            "unsubscribed_from_email",
            noteable_type=str(notification.noteable_type),
            noteable_ref=notification.noteable_ref,
            user=author.username,
        )
        return HandlerResult(
            handler=self.name,
            action="unsubscribed",
            record_type=str(notification.noteable_type),
            record_id=int(notification.noteable_ref),
        )
