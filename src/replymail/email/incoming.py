"""Routing-key codec for reply addresses and fallback Message-IDs.

A routing key reaches the receiver in one of two places:

- the local part of a wildcard reply address, built from a template such
  as ``incoming+%{key}@example.com``;
- a fallback ``Message-ID`` of the form ``reply-<key>@<host>``, which mail
  clients echo back in ``References`` when they drop the reply address.

The codec is immutable and safe to share across concurrent receivers.
"""

from __future__ import annotations

import re

from replymail.config import WILDCARD_PLACEHOLDER, Settings

UNSUBSCRIBE_SUFFIX = "-unsubscribe"
UNSUBSCRIBE_SUFFIX_LEGACY = "+unsubscribe"


class IncomingEmail:
    """Encode and decode routing keys for one reply address template.

    Args:
        address: The reply address template containing ``%{key}``.  An
            empty string disables address-based keys.
        host: The domain used for fallback Message-IDs.
        enabled: Whether reply-by-email is switched on at all.
    """

    def __init__(self, address: str, host: str, *, enabled: bool = True) -> None:
        self._address = address
        self._host = host
        self._enabled = enabled
        self._address_regex = self._build_address_regex(address)
        self._message_id_regex = re.compile(rf"\Areply-(.+)@{re.escape(host)}\Z")

    @classmethod
    def from_settings(cls, settings: Settings) -> IncomingEmail:
        return cls(
            settings.incoming_email_address,
            settings.host,
            enabled=settings.incoming_email_enabled,
        )

    @staticmethod
    def _build_address_regex(address: str) -> re.Pattern[str] | None:
        if WILDCARD_PLACEHOLDER not in address:
            return None
        pattern = re.escape(address).replace(re.escape(WILDCARD_PLACEHOLDER), "(.+)")
        return re.compile(rf"\A<?{pattern}>?\Z", re.IGNORECASE)

    @property
    def enabled(self) -> bool:
        return self._enabled and self._address_regex is not None

    def reply_address(self, key: str) -> str:
        """Return the address that routes replies to *key*."""
        return self._address.replace(WILDCARD_PLACEHOLDER, key, 1)

    def unsubscribe_address(self, key: str) -> str:
        """Return the address that unsubscribes the holder of *key*."""
        return self._address.replace(WILDCARD_PLACEHOLDER, f"{key}{UNSUBSCRIBE_SUFFIX}", 1)

    def fallback_message_id(self, key: str) -> str:
        """Return the Message-ID (without brackets) that embeds *key*."""
        return f"reply-{key}@{self._host}"

    def key_from_address(self, address: str) -> str | None:
        """Extract the key from a reply address, or ``None`` if it does not match."""
        if self._address_regex is None:
            return None
        match = self._address_regex.match(address.strip())
        return match.group(1) if match else None

    def key_from_fallback_message_id(self, mail_id: str) -> str | None:
        """Extract the key from a fallback Message-ID, or ``None``."""
        match = self._message_id_regex.match(mail_id.strip().strip("<>"))
        return match.group(1) if match else None
