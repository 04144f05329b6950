"""
Collection configuration.

Every recognized option is listed on CollectionConfig with its default.
Files use TOML with a single [collection] table:

    [collection]
    project = "en.wikipedia.org"
    min_speed = 3
    collection_id = "enwiki-live"
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from .store import DEFAULT_HOME_WIKI

DEFAULT_PROJECT = "en.wikipedia.org"


def _coerce_dict(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}


def _positive(name: str, value: Any, allow_zero: bool = False) -> float:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number") from None
    if number < 0 or (number == 0 and not allow_zero):
        raise ValueError(f"{name} must be {'non-negative' if allow_zero else 'positive'}")
    return number


@dataclass(frozen=True)
class CollectionConfig:
    """Options for a WikiCollection. Times in minutes unless noted."""

    project: str = DEFAULT_PROJECT  # server filter, "*" = all, fnmatch patterns allowed
    max_lifespan: float = 60 * 24
    max_inactivity: float = 60
    min_speed: float = 3  # edits per minute
    min_purge_time: float = 5
    collection_id: str | None = None  # snapshot key, None disables persistence
    home_wiki: str = DEFAULT_HOME_WIKI
    sweep_interval: float = 20.0  # seconds
    snapshot_dir: Path = Path("db_collection")

    def __post_init__(self) -> None:
        if not isinstance(self.project, str) or not self.project.strip():
            raise ValueError("project must be a non-empty string")
        if not isinstance(self.home_wiki, str) or not self.home_wiki:
            raise ValueError("home_wiki must be a non-empty string")
        for name in ("max_lifespan", "max_inactivity", "min_speed", "sweep_interval"):
            object.__setattr__(self, name, _positive(name, getattr(self, name)))
        object.__setattr__(
            self, "min_purge_time", _positive("min_purge_time", self.min_purge_time, allow_zero=True)
        )
        if self.collection_id is not None:
            object.__setattr__(self, "collection_id", str(self.collection_id).strip() or None)
        object.__setattr__(self, "snapshot_dir", Path(self.snapshot_dir))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CollectionConfig":
        """Build a config from a mapping, rejecting unknown keys."""
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown collection options: {', '.join(unknown)}")
        return cls(**{k: v for k, v in data.items() if v is not None})

    def replace(self, **overrides: Any) -> "CollectionConfig":
        """Copy with overrides applied; None values are ignored."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes)


def load_config(path: Path) -> CollectionConfig:
    """
    Load a config from TOML.

    A missing [collection] table yields the defaults.
    """
    import tomllib

    data = tomllib.loads(Path(path).read_text(encoding="utf-8"))
    return CollectionConfig.from_mapping(_coerce_dict(data.get("collection")))
