"""Pydantic v2 models for the inbound email pipeline.

Provides frozen (immutable) models for a parsed inbound message and for
the result a handler hands back to the receiver's caller.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, field_validator

# Each <...> group in a References header, whatever separates them.
_REFERENCE_RE = re.compile(r"(?!<)[^<>]+(?=>)")


def scan_references(references: str) -> list[str]:
    """Return every ``<...>`` message id in *references*, brackets removed.

    Handles both the RFC 5322 space-separated form and the comma-joined
    form some clients (Microsoft Exchange, the iOS mail app) produce.
    """
    return _REFERENCE_RE.findall(references)


def normalize_references(references: list[str] | tuple[str, ...] | str | None) -> list[str]:
    """Normalize a References value to an ordered list of bare message ids.

    Args:
        references: A list of ids (with or without angle brackets), a
            joined string, or ``None``.

    Returns:
        The message ids in order, without angle brackets.
    """
    if references is None:
        return []
    if isinstance(references, str):
        return scan_references(references)
    return [ref.strip().strip("<>").strip() for ref in references if ref.strip()]


class ParsedMail(BaseModel):
    """An inbound message, parsed once and never mutated.

    ``headers`` maps lower-cased header names to every value seen for that
    name, in order.  Use :meth:`header` / :meth:`header_values` for
    case-insensitive access.  ``to`` holds the To addresses only; Cc
    addresses are kept apart in ``cc`` and never used for routing.
    """

    model_config = ConfigDict(frozen=True)

    headers: dict[str, tuple[str, ...]] = {}
    to: tuple[str, ...] = ()
    cc: tuple[str, ...] = ()
    from_address: str = ""
    subject: str = ""
    message_id: str | None = None
    references: tuple[str, ...] = ()
    delivered_to: tuple[str, ...] = ()
    auto_submitted: str | None = None
    body: str = ""

    @field_validator("headers", mode="before")
    @classmethod
    def lowercase_header_names(cls, v: object) -> object:
        """Store header names lower-cased so lookups ignore case."""
        if isinstance(v, dict):
            return {str(name).lower(): tuple(values) for name, values in v.items()}
        return v

    @field_validator("references", mode="before")
    @classmethod
    def coerce_references(cls, v: object) -> object:
        """Accept a list of ids or a joined References string."""
        if v is None or isinstance(v, (str, list, tuple)):
            return tuple(normalize_references(v))
        return v

    def header(self, name: str) -> str | None:
        """Return the first value of header *name*, ignoring case."""
        values = self.headers.get(name.lower())
        return values[0] if values else None

    def header_values(self, name: str) -> tuple[str, ...]:
        """Return every value of header *name*, ignoring case."""
        return self.headers.get(name.lower(), ())


class HandlerResult(BaseModel):
    """What a handler did with a message.

    ``record_id`` is ``None`` when the handler succeeded without creating
    anything (an unsubscribe from a commit, or a commands-only reply).
    """

    model_config = ConfigDict(frozen=True)

    handler: str
    action: str
    record_type: str | None = None
    record_id: int | None = None
