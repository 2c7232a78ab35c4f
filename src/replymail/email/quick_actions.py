"""Quick actions embedded in reply bodies.

A line consisting of ``/close`` or ``/reopen`` (case-insensitive) is a
command.  Lines inside fenced code blocks are never commands.
"""

from __future__ import annotations

import re
from enum import StrEnum

from replymail.domain.types import IssuableState

_COMMAND_RE = re.compile(r"\A/(?P<name>[a-z_]+)\s*\Z", re.IGNORECASE)
_FENCE_RE = re.compile(r"\A\s*(```|~~~)")


class QuickAction(StrEnum):
    """Supported commands and the state each one moves an issuable to."""

    CLOSE = "close"
    REOPEN = "reopen"

    @property
    def target_state(self) -> IssuableState:
        if self is QuickAction.CLOSE:
            return IssuableState.CLOSED
        return IssuableState.OPENED


_COMMAND_NAMES = frozenset(action.value for action in QuickAction)


def extract_commands(text: str) -> tuple[str, list[QuickAction]]:
    """Split *text* into note content and the commands it contains.

    Unknown ``/word`` lines are left in the content.

    Args:
        text: The trimmed reply body.

    Returns:
        The content with command lines removed (stripped of surrounding
        whitespace) and the commands in the order they appear.
    """
    content: list[str] = []
    commands: list[QuickAction] = []
    in_fence = False

    for line in text.splitlines():
        if _FENCE_RE.match(line):
            in_fence = not in_fence
            content.append(line)
            continue

        match = None if in_fence else _COMMAND_RE.match(line.strip())
        name = match.group("name").lower() if match else None
        if name in _COMMAND_NAMES:
            commands.append(QuickAction(name))
        else:
            content.append(line)

    return "\n".join(content).strip(), commands
