"""
Edit classification.

Labels a raw edit as bot/human, revert, anonymous, or fixup, and scans
the free-text edit comment for notability and volatility signals.

All functions are pure (stateless) and treat a missing comment as "".
"""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .events import RawEvent


# -----------------------------------------------------------------------------
# Marker inventories
# -----------------------------------------------------------------------------

# Accounts that behave as bots without carrying the bot flag.
KNOWN_BOTS = frozenset({
    "ClueBot NG",
})

REVERT_MARKERS = (
    "tag:",
    "undid",
    "revert",
    "reverting",
    "wp:",
    "reverted",
)

FIXUP_MARKERS = (
    "fixed error",
)

NOTABILITY_MARKERS = (
    "eventtag",
    "current event",
    "ongoing event",
    "\u2192\u200edeath",  # rendered section link to a Death heading
    "\u2192death",
    "/* death */",
)

VOLATILITY_MARKERS = (
    "speedy deletion",
    "nominated for deletion",
    "nominated page for deletion",
    "restore afd template",
    "{{pp-vandalism",
    "proposing article for deletion",
)

IPV4_PATTERN = re.compile(r"[0-9]+\.[0-9]+\.[0-9]+\.[0-9]+")
IPV6_PATTERN = re.compile(r"[0-9A-F]+:[0-9A-F]+:[0-9A-F]+:[0-9A-F]+:[0-9A-F]+", re.I)


@dataclass(frozen=True)
class CommentFlags:
    """Signals raised by one edit comment."""

    notability: bool = False
    volatility: bool = False


# -----------------------------------------------------------------------------
# Classifiers
# -----------------------------------------------------------------------------

def _normalize(comment: object) -> str:
    return comment.lower() if isinstance(comment, str) else ""


def _contains_any(text: str, markers: tuple[str, ...]) -> bool:
    return any(marker in text for marker in markers)


def is_anonymous_editor(username: object) -> bool:
    """Whether the username is an IP address rather than a registered account."""
    if not isinstance(username, str) or not username:
        return False
    try:
        ipaddress.ip_address(username.strip())
        return True
    except ValueError:
        pass
    return bool(IPV4_PATTERN.search(username) or IPV6_PATTERN.search(username))


def is_bot_edit(event: "RawEvent") -> bool:
    """Whether the edit was made by a flagged or known bot."""
    return bool(event.bot) or event.user in KNOWN_BOTS


def is_revert_edit(comment: object) -> bool:
    """Whether the comment marks the edit as undoing a previous one."""
    return _contains_any(_normalize(comment), REVERT_MARKERS)


def is_fixup_edit(comment: object) -> bool:
    """Whether the comment marks the edit as fixing a previous bad edit."""
    return _contains_any(_normalize(comment), FIXUP_MARKERS)


def scan_comment_flags(comment: object) -> CommentFlags:
    """Scan a comment for notability and volatility markers."""
    text = _normalize(comment)
    return CommentFlags(
        notability=_contains_any(text, NOTABILITY_MARKERS),
        volatility=_contains_any(text, VOLATILITY_MARKERS),
    )
