"""Raw message parsing and reply text extraction.

Provides helpers for:
- Decoding raw email bytes into a frozen ``ParsedMail``
- Trimming quoted content and signatures from a reply body
"""

from __future__ import annotations

import re
from email import message_from_bytes
from email.errors import HeaderParseError
from email.header import decode_header, make_header
from email.message import Message
from email.utils import getaddresses

import structlog
from mailparser_reply import EmailReplyParser  # type: ignore[import-untyped]

from replymail.email.errors import EmailUnparsableError
from replymail.email.models import ParsedMail, scan_references

logger = structlog.get_logger()

_FOLD_RE = re.compile(r"\r?\n(?=[ \t])")
_TAG_RE = re.compile(r"<[^>]+>")

# Headers whose RFC 2047 encoded words are decoded for display.
_DISPLAY_HEADERS = {"subject", "from"}


def _header_text(name: str, raw_value: str) -> str:
    """Turn a raw stored header value into unfolded, decoded text.

    The bytes parser keeps non-ASCII header bytes as surrogate escapes;
    they must form valid UTF-8 (RFC 6532) or the message is unparsable.
    """
    text = raw_value.encode("ascii", "surrogateescape").decode("utf-8")
    text = _FOLD_RE.sub("", text).strip()
    if name.lower() in _DISPLAY_HEADERS:
        text = str(make_header(decode_header(text)))
    return text


def _collect_headers(msg: Message) -> dict[str, list[str]]:
    headers: dict[str, list[str]] = {}
    for name, raw_value in msg.raw_items():
        headers.setdefault(name.lower(), []).append(_header_text(name, raw_value))
    return headers


def _decode_part(part: Message) -> str:
    """Decode a text part strictly under its declared charset."""
    raw_payload = part.get_payload(decode=True)
    if not isinstance(raw_payload, bytes) or not raw_payload:
        return ""
    charset = part.get_content_charset() or "utf-8"
    return raw_payload.decode(charset)


def _extract_body(msg: Message) -> str:
    """Extract the text body of *msg*.

    For multipart messages, walks all parts and prefers the first non-empty
    ``text/plain`` part.  If no ``text/plain`` part exists, falls back to
    ``text/html`` with HTML tags stripped via regex.
    """
    if msg.is_multipart():
        text_plain = ""
        text_html = ""
        for part in msg.walk():
            if part.is_multipart() or part.get_content_disposition() == "attachment":
                continue
            content_type = part.get_content_type()
            if content_type == "text/plain" and not text_plain:
                text_plain = _decode_part(part)
            elif content_type == "text/html" and not text_html:
                text_html = _decode_part(part)

        if text_plain:
            return text_plain
        if text_html:
            return _TAG_RE.sub("", text_html)
        return ""

    content_type = msg.get_content_type()
    if content_type == "text/html":
        return _TAG_RE.sub("", _decode_part(msg))
    if content_type.startswith("text/"):
        return _decode_part(msg)
    return ""


def parse_mail(raw: bytes | str) -> ParsedMail:
    """Parse a raw RFC 5322 message into a ``ParsedMail``.

    Args:
        raw: The message bytes as delivered by the mail transport.  A
            ``str`` is encoded as UTF-8 first.

    Returns:
        The parsed message.

    Raises:
        EmailUnparsableError: If a header is not valid UTF-8, an encoded
            word or the body uses an unknown charset, or the body bytes are
            invalid under the declared charset.  The decoding error is
            chained as ``__cause__``.
    """
    if isinstance(raw, str):
        raw = raw.encode("utf-8")

    try:
        msg = message_from_bytes(raw)
        headers = _collect_headers(msg)
        body = _extract_body(msg)
    except (UnicodeError, LookupError, HeaderParseError) as exc:
        logger.warning("email_unparsable", error=str(exc))
        raise EmailUnparsableError(str(exc)) from exc

    def first(name: str) -> str | None:
        values = headers.get(name)
        return values[0] if values else None

    recipients = getaddresses(headers.get("to", []))
    copied = getaddresses(headers.get("cc", []))
    delivered_to = getaddresses(headers.get("delivered-to", []))
    message_id = first("message-id")

    return ParsedMail(
        headers=headers,
        to=tuple(address for _, address in recipients if address),
        cc=tuple(address for _, address in copied if address),
        from_address=first("from") or "",
        subject=first("subject") or "",
        message_id=message_id.strip("<>") if message_id else None,
        references=tuple(scan_references(" ".join(headers.get("references", [])))),
        delivered_to=tuple(address for _, address in delivered_to if address),
        auto_submitted=first("auto-submitted"),
        body=body,
    )


def extract_reply(body: str, *, trim: bool = True) -> str:
    """Return the new content of a reply body.

    Uses ``mail-parser-reply`` to strip quoted content, signature blocks,
    and forwarded message headers.  A body made up entirely of quoted
    content trims to the empty string.

    Args:
        body: The full text body of the email.
        trim: When ``False`` the body is returned unchanged apart from
            surrounding whitespace (issue and merge request descriptions
            keep the whole message).

    Returns:
        The reply text, stripped of surrounding whitespace.
    """
    if not trim or not body.strip():
        return body.strip()
    parsed: str = EmailReplyParser(languages=["en"]).parse_reply(text=body)
    return (parsed or "").strip()
