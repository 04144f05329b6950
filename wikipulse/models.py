"""
Per-page aggregate state.

A PageRecord is the running picture of one page while it is tracked:
counters folded in from edits, the editors who contributed, and the
timestamps used by the retention policy. Derived metrics are computed on
demand and never stored.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _minutes_between(later: datetime, earlier: datetime) -> float:
    return (later - earlier).total_seconds() / 60


def _parse_timestamp(value: Any, fallback: datetime) -> datetime:
    """Accept a datetime or its ISO-8601 string form."""
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, str) and value:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        return fallback
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass
class PageRecord:
    """Running edit state for a single tracked page."""

    id: str
    title: str
    wiki: str = ""

    # Counters
    edits: int = 0
    reverts: int = 0
    anon_edits: int = 0
    notability_flags: int = 0  # comments suggesting the page is notable
    volatile_flags: int = 0  # comments suggesting deletion or vandalism
    bytes_changed: int = 0  # signed

    # Sticky flags
    is_new: bool = False
    is_protected: bool = False
    safe: bool = False  # exempt from speed/inactivity checks until max lifespan

    # Attribution
    contributors: set[str] = field(default_factory=set)
    anons: set[str] = field(default_factory=set)
    distribution: dict[str, int] = field(default_factory=dict)

    start: datetime = field(default_factory=utcnow)
    updated: datetime | None = None

    def __post_init__(self) -> None:
        if self.updated is None or self.updated < self.start:
            self.updated = self.start

    # --- Derived metrics ---

    def age(self, now: datetime | None = None) -> float:
        """Minutes since the page entered the collection."""
        return _minutes_between(now or utcnow(), self.start)

    def recency(self, now: datetime | None = None) -> float:
        """Minutes since the last qualifying update."""
        return _minutes_between(now or utcnow(), self.updated)

    def edit_velocity(
        self,
        include_reverts: bool = False,
        include_anons: bool = False,
        now: datetime | None = None,
    ) -> float:
        """
        Edits per minute since the page entered the collection.

        Pages younger than a minute report the raw count so a brand new
        page is not scored as infinitely fast.
        """
        count = self.edits
        if include_reverts:
            count += self.reverts
        if include_anons:
            count += self.anon_edits

        age = self.age(now)
        if age < 1 or count == 0:
            return float(count)
        return count / age

    def bias_score(self) -> float:
        """
        Share of edits made by the single most active editor.

        Between 0 and 1; higher means activity is concentrated on one
        author. Pages without counted edits score 0.
        """
        if self.edits == 0:
            return 0.0
        top = max(self.distribution.values(), default=0)
        return top / self.edits

    # --- Mutation helpers ---

    def attribute(self, editor: str, anonymous: bool) -> None:
        """Credit one qualifying edit to an editor."""
        if anonymous:
            self.anon_edits += 1
            self.anons.add(editor)
        else:
            self.contributors.add(editor)
        self.distribution[editor] = self.distribution.get(editor, 0) + 1

    def touch(self, now: datetime | None = None) -> None:
        self.updated = max(now or utcnow(), self.start)

    def snapshot(self) -> "PageRecord":
        """Detached copy safe to hand to readers."""
        return copy.deepcopy(self)

    # --- Serialization ---

    def to_dict(self) -> dict[str, Any]:
        """Flatten to JSON-serializable fields."""
        return {
            "id": self.id,
            "title": self.title,
            "wiki": self.wiki,
            "edits": self.edits,
            "reverts": self.reverts,
            "anon_edits": self.anon_edits,
            "notability_flags": self.notability_flags,
            "volatile_flags": self.volatile_flags,
            "bytes_changed": self.bytes_changed,
            "is_new": self.is_new,
            "is_protected": self.is_protected,
            "safe": self.safe,
            "contributors": sorted(self.contributors),
            "anons": sorted(self.anons),
            "distribution": dict(self.distribution),
            "start": self.start.isoformat(),
            "updated": self.updated.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], page_id: str | None = None) -> "PageRecord":
        """
        Rebuild a record from its flattened form.

        Raises:
            ValueError: if the entry or its distribution is not a mapping
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"page entry must be an object, got {type(data).__name__}")
        distribution = data.get("distribution") or {}
        if not isinstance(distribution, Mapping):
            raise ValueError(f"distribution must be an object, got {type(distribution).__name__}")
        now = utcnow()
        start = _parse_timestamp(data.get("start"), now)
        return cls(
            id=str(page_id if page_id is not None else data.get("id", data["title"])),
            title=str(data["title"]),
            wiki=str(data.get("wiki") or ""),
            edits=int(data.get("edits", 0)),
            reverts=int(data.get("reverts", 0)),
            anon_edits=int(data.get("anon_edits", 0)),
            notability_flags=int(data.get("notability_flags", 0)),
            volatile_flags=int(data.get("volatile_flags", 0)),
            bytes_changed=int(data.get("bytes_changed", 0)),
            is_new=bool(data.get("is_new", False)),
            is_protected=bool(data.get("is_protected", False)),
            safe=bool(data.get("safe", False)),
            contributors=set(data.get("contributors") or []),
            anons=set(data.get("anons") or []),
            distribution={str(k): int(v) for k, v in distribution.items()},
            start=start,
            updated=_parse_timestamp(data.get("updated"), start),
        )
