"""
Raw recent-change events.

The upstream stream delivers loosely shaped JSON objects. RawEvent is
the typed form the rest of the package works with; from_dict is the
only place the payload is validated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


MAIN_NAMESPACE = 0
NEW_PAGE_TYPE = "new"


class InvalidEventError(ValueError):
    """Raised when a raw payload cannot be read as an event."""


class LogAction(str, Enum):
    """Structural actions reported through the log stream."""

    MOVE = "move"
    PROTECT = "protect"
    DELETE = "delete"


def _as_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class RawEvent:
    """A single recent-change event."""

    title: str
    wiki: str
    namespace: int
    user: str = ""
    comment: str = ""
    server_name: str | None = None
    old_length: int = 0
    new_length: int = 0
    bot: bool = False
    type: str | None = None  # "new" for page creations

    # Control (log) events only
    log_type: str | None = None
    log_action: str | None = None
    log_params: Any = field(default_factory=dict)  # dict or list depending on action
    log_action_comment: str = ""

    @property
    def is_control(self) -> bool:
        return bool(self.log_type)

    @property
    def is_new_page(self) -> bool:
        return self.type == NEW_PAGE_TYPE

    @property
    def delta(self) -> int:
        """Change in page size in bytes."""
        return self.new_length - self.old_length

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RawEvent":
        """
        Validate and convert a raw payload.

        Missing optional fields fall back to neutral values (empty
        comment, zero lengths). A payload without a title or with a
        non-integer namespace is rejected.

        Raises:
            InvalidEventError: if the payload is not a usable event
        """
        if not isinstance(data, Mapping):
            raise InvalidEventError(f"event must be a mapping, got {type(data).__name__}")

        title = data.get("title")
        if not isinstance(title, str) or not title:
            raise InvalidEventError("event has no title")

        namespace = data.get("namespace")
        if isinstance(namespace, bool):
            raise InvalidEventError(f"invalid namespace: {namespace!r}")
        try:
            namespace = int(namespace)
        except (TypeError, ValueError):
            raise InvalidEventError(f"invalid namespace: {namespace!r}") from None

        length = data.get("length")
        if not isinstance(length, Mapping):
            length = {}

        server_name = data.get("server_name")
        log_type = data.get("log_type")
        log_action = data.get("log_action")
        log_params = data.get("log_params")

        return cls(
            title=title,
            wiki=_as_str(data.get("wiki")),
            namespace=namespace,
            user=_as_str(data.get("user")),
            comment=_as_str(data.get("comment")),
            server_name=server_name if isinstance(server_name, str) and server_name else None,
            old_length=_as_int(length.get("old")),
            new_length=_as_int(length.get("new")),
            bot=bool(data.get("bot", False)),
            type=data.get("type") if isinstance(data.get("type"), str) else None,
            log_type=log_type if isinstance(log_type, str) and log_type else None,
            log_action=log_action if isinstance(log_action, str) else None,
            log_params=log_params if isinstance(log_params, (Mapping, list)) else {},
            log_action_comment=_as_str(data.get("log_action_comment")),
        )
