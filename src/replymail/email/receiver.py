"""Entry point for one inbound message: parse, route, and hand off.

Provides:
- ``extract_mail_key``: find the routing key in a parsed message
- ``Receiver``: run the whole pipeline for one raw message
"""

from __future__ import annotations

import structlog

from replymail.domain.ports import EventSink, Store
from replymail.email.errors import (
    AutoGeneratedEmailError,
    EmptyEmailError,
    UnknownIncomingEmail,
)
from replymail.email.handlers import handler_for
from replymail.email.incoming import IncomingEmail
from replymail.email.models import HandlerResult, ParsedMail
from replymail.email.parser import parse_mail

logger = structlog.get_logger()

RECEIVE_EVENT = "receive_email"


def _key_from_to_header(mail: ParsedMail, incoming: IncomingEmail) -> str | None:
    for address in mail.to:
        key = incoming.key_from_address(address)
        if key:
            return key
    return None


def _key_from_references(mail: ParsedMail, incoming: IncomingEmail) -> str | None:
    for mail_id in mail.references:
        key = incoming.key_from_fallback_message_id(mail_id)
        if key:
            return key
    return None


def _key_from_delivered_to_header(mail: ParsedMail, incoming: IncomingEmail) -> str | None:
    for address in mail.delivered_to:
        key = incoming.key_from_address(address)
        if key:
            return key
    return None


def extract_mail_key(mail: ParsedMail, incoming: IncomingEmail) -> str | None:
    """Find the routing key in *mail*.

    Tries, in order, the ``To`` addresses, the fallback Message-IDs in
    ``References``, and the ``Delivered-To`` addresses.  The first match
    wins.

    Returns:
        The key, or ``None`` when no source carries one.
    """
    return (
        _key_from_to_header(mail, incoming)
        or _key_from_references(mail, incoming)
        or _key_from_delivered_to_header(mail, incoming)
    )


def ensure_not_auto_submitted(mail: ParsedMail) -> None:
    """Reject auto-generated mail (RFC 3834) to avoid reply loops.

    Raises:
        AutoGeneratedEmailError: If ``Auto-Submitted`` is present with any
            value other than ``no``.
    """
    auto_submitted = mail.auto_submitted
    if auto_submitted is not None and auto_submitted.strip() != "no":
        raise AutoGeneratedEmailError


class Receiver:
    """Process one raw inbound message.

    A receiver is built per message and keeps no state between messages.
    Every failure is raised as a ``ProcessingError`` subclass; the caller
    (the mail transport) decides how to report it.

    Args:
        raw: The raw message as delivered.
        store: Identity and domain store collaborator.
        sink: Observability sink receiving one event per resolved message.
        incoming: The routing-key codec.
    """

    def __init__(
        self,
        raw: bytes | str,
        *,
        store: Store,
        sink: EventSink,
        incoming: IncomingEmail,
    ) -> None:
        self._raw = raw
        self._store = store
        self._sink = sink
        self._incoming = incoming

    def execute(self) -> HandlerResult:
        """Run the pipeline.

        Returns:
            The result reported by the selected handler.

        Raises:
            ProcessingError: Any subclass, unchanged from where it arose.
        """
        if not self._raw or not self._raw.strip():
            raise EmptyEmailError

        mail = parse_mail(self._raw)

        ensure_not_auto_submitted(mail)

        mail_key = extract_mail_key(mail, self._incoming)
        handler = handler_for(mail, mail_key, self._store)

        if handler is None:
            logger.info(
                "unknown_incoming_email",
                message_id=mail.message_id,
                has_key=mail_key is not None,
            )
            raise UnknownIncomingEmail

        self._sink.record_event(RECEIVE_EVENT, handler.metrics_params())

        return handler.execute()
